# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import base64
import gzip

import pytest

from trigc.config import CodecParams
from trigc.core.errors import InvalidFormat, NotFound
from trigc.level.codec import (
	Layer,
	LevelDocument,
	build_document,
	decode,
	encode,
	xor_bytes,
)
from trigc.level.listing import LevelListing

A = LevelListing.parse("1,1,2,15,3,45;")
B = LevelListing.parse("kA13,0;1,1268,2,45,3,15,51,4;")


def test_decode_selects_a_level() -> None:
	data = build_document([("A", A), ("B", B)])
	assert decode(data).serialize() == A.serialize()
	assert decode(data, "B").serialize() == B.serialize()
	with pytest.raises(NotFound, match="no level named 'C'"):
		decode(data, "C")


def test_encode_replaces_only_the_selected_level() -> None:
	data = build_document([("A", A), ("B", B)])
	new = LevelListing.parse("1,1,2,75,3,75;")
	out = encode(new, data, "B")
	assert decode(out, "B").serialize() == "1,1,2,75,3,75;"
	before = LevelDocument.parse(data)
	after = LevelDocument.parse(out)
	assert after.levels() == ["A", "B"]
	assert after.payload("A") == before.payload("A")
	cut = before.entries[1].payload[0]
	assert after.text[:cut] == before.text[:cut]


def test_level_names_are_escaped() -> None:
	data = build_document([("Tom & Jerry <3", A)])
	assert LevelDocument.parse(data).levels() == ["Tom & Jerry <3"]
	assert decode(data, "Tom & Jerry <3").serialize() == A.serialize()


def test_missing_payload_is_inserted_after_the_name() -> None:
	text = (
		'<?xml version="1.0"?><plist version="1.0"><dict><k>LLM_01</k><d>'
		"<k>k_0</k><d><k>kCEK</k><i>4</i><k>k2</k><s>Empty</s><k>k5</k><s>me</s></d>"
		"</d></dict></plist>"
	)
	data = Layer(b"\x0b").wrap(text.encode("utf-8"))
	assert decode(data, "Empty").serialize() == ""
	out = encode(A, data, "Empty")
	doc = LevelDocument.parse(out)
	assert "<k>k2</k><s>Empty</s><k>k4</k><s>" in doc.text
	assert decode(out, "Empty").serialize() == A.serialize()


def test_empty_document_has_no_levels() -> None:
	data = Layer(b"\x0b").wrap(b'<?xml version="1.0"?><plist><dict></dict></plist>')
	with pytest.raises(NotFound, match="no levels"):
		decode(data)


@pytest.mark.parametrize(
	"data",
	[
		b"",
		b"this is not a save file",
		xor_bytes(base64.urlsafe_b64encode(gzip.compress(b"<?xml")[:12]), b"\x0b"),
	],
)
def test_corrupt_documents_are_rejected(data: bytes) -> None:
	with pytest.raises(InvalidFormat):
		decode(data)


def test_corrupt_level_payload_names_the_level() -> None:
	text = "<k>k_0</k><d><k>k2</k><s>X</s><k>k4</k><s>@@@@</s></d>"
	data = Layer(b"\x0b").wrap(text.encode("utf-8"))
	with pytest.raises(InvalidFormat) as info:
		decode(data, "X")
	assert info.value.level_name == "X"


def test_mac_documents_round_trip() -> None:
	params = CodecParams(mac=True)
	data = build_document([("A", A)], params)
	assert decode(data, params=params).serialize() == A.serialize()
	out = encode(B, data, "A", params)
	assert decode(out, "A", params).serialize() == B.serialize()
	with pytest.raises(InvalidFormat, match="does not decrypt"):
		decode(data[:-3], params=params)


def test_xor_is_an_involution() -> None:
	data = b"level data \x00\xff"
	assert xor_bytes(xor_bytes(data, b"\x0b"), b"\x0b") == data
	assert xor_bytes(xor_bytes(data, b"key"), b"key") == data
	assert xor_bytes(data, b"") == data


def test_truncated_level_payload_is_rejected() -> None:
	payload = base64.urlsafe_b64encode(gzip.compress(b"1,1,2,15;" * 50)[:20]).decode("ascii")
	text = (
		f"<k>k_0</k><d><k>k2</k><s>A</s><k>k4</k><s>{payload}</s></d>"
		"<k>k_1</k><d><k>k2</k><s>B</s></d>"
	)
	data = Layer(b"\x0b").wrap(text.encode("utf-8"))
	with pytest.raises(InvalidFormat, match="truncated"):
		decode(data, "A")
	assert decode(data, "B").serialize() == ""
