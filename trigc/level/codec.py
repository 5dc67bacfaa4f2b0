# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Save artifact codec.

The local-levels file is two nested layers:

- the outer layer wraps the whole document: gzip, url-safe base64, then a
  repeating-key XOR (key `0x0b`);
- the document is a plist-like XML dictionary. Every level is a
  `<k>k_N</k><d>...</d>` entry whose `k2` string is the level name and whose
  `k4` string is the inner layer: the level listing, gzipped and base64
  encoded (no XOR).

On macOS the outer layer is additionally AES-ECB encrypted.

Only `decode`/`encode` are meant for the rest of the build; the layer
constants come from `CodecParams` so a format change stays in this module and
the configuration.
"""

from __future__ import annotations

import base64
import binascii
import gzip
import logging
import re
import zlib
from dataclasses import dataclass
from typing import List, Optional, Tuple
from xml.sax.saxutils import escape, unescape

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from trigc.config import CodecParams
from trigc.core.errors import InvalidFormat, NotFound
from trigc.level.listing import LevelListing

log = logging.getLogger(__name__)

MAC_KEY = b"ipu9TUv54yv]isFMh5@;t.5w34E2Ry@{"

_LEVEL_KEY = re.compile(r"<k>(k_\d+)</k>")
_ELEMENT = re.compile(r"<(\w+)\s*(/?)>")
_DICT_TAG = re.compile(r"<d\s*/>|<d>|</d>")


def xor_bytes(data: bytes, key: bytes) -> bytes:
	if not key:
		return data
	if len(key) == 1:
		k = key[0]
		return data.translate(bytes(i ^ k for i in range(256)))
	return bytes(b ^ key[i % len(key)] for i, b in enumerate(data))


@dataclass(frozen=True)
class Layer:
	"""One XOR + base64 + gzip envelope."""

	xor_key: bytes = b""

	def unwrap(self, data: bytes) -> bytes:
		raw = xor_bytes(data, self.xor_key).rstrip(b"\x00 \t\r\n")
		raw = raw + b"=" * (-len(raw) % 4)
		try:
			compressed = base64.urlsafe_b64decode(raw)
		except (binascii.Error, ValueError) as exc:
			raise InvalidFormat(f"layer is not valid base64: {exc}") from exc
		# wbits 47 accepts both gzip and zlib headers.
		dec = zlib.decompressobj(47)
		try:
			out = dec.decompress(compressed)
		except zlib.error as exc:
			raise InvalidFormat(f"layer does not decompress: {exc}") from exc
		if not dec.eof:
			raise InvalidFormat("layer is truncated")
		return out

	def wrap(self, data: bytes) -> bytes:
		compressed = gzip.compress(data, mtime=0)
		return xor_bytes(base64.urlsafe_b64encode(compressed), self.xor_key)


@dataclass(frozen=True)
class MacLayer:
	"""AES-ECB envelope used by the macOS build of the game."""

	key: bytes = MAC_KEY

	def _cipher(self) -> Cipher:
		return Cipher(algorithms.AES(self.key), modes.ECB())

	def unwrap(self, data: bytes) -> bytes:
		dec = self._cipher().decryptor()
		unpadder = padding.PKCS7(128).unpadder()
		try:
			plain = dec.update(data) + dec.finalize()
			plain = unpadder.update(plain) + unpadder.finalize()
		except ValueError as exc:
			raise InvalidFormat(f"save file does not decrypt: {exc}") from exc
		if plain.lstrip().startswith(b"<?xml"):
			return plain
		return Layer().unwrap(plain)

	def wrap(self, data: bytes) -> bytes:
		padder = padding.PKCS7(128).padder()
		padded = padder.update(data) + padder.finalize()
		enc = self._cipher().encryptor()
		return enc.update(padded) + enc.finalize()


def outer_layer(params: CodecParams):
	return MacLayer() if params.mac else Layer(params.outer_key)


def _element_end(text: str, pos: int) -> Tuple[int, int, int]:
	"""(content start, content end, element end) of the XML element at `pos`."""
	m = _ELEMENT.match(text, pos)
	if m is None:
		raise InvalidFormat(f"expected an element at offset {pos}")
	tag, closed = m.group(1), m.group(2)
	if closed:
		return m.end(), m.end(), m.end()
	if tag == "d":
		depth = 1
		for t in _DICT_TAG.finditer(text, m.end()):
			if t.group(0) == "<d>":
				depth += 1
			elif t.group(0) == "</d>":
				depth -= 1
				if depth == 0:
					return m.end(), t.start(), t.end()
		raise InvalidFormat("unterminated dictionary")
	close = f"</{tag}>"
	end = text.find(close, m.end())
	if end < 0:
		raise InvalidFormat(f"unterminated <{tag}> element")
	return m.end(), end, end + len(close)


@dataclass
class LevelEntry:
	key: str
	name: Optional[str]
	body: Tuple[int, int]
	name_end: Optional[int]
	payload: Optional[Tuple[int, int]]


class LevelDocument:
	def __init__(self, text: str, entries: List[LevelEntry]) -> None:
		self.text = text
		self.entries = entries

	@classmethod
	def parse(cls, document_bytes: bytes, params: CodecParams | None = None) -> "LevelDocument":
		params = params or CodecParams()
		plain = outer_layer(params).unwrap(document_bytes)
		try:
			text = plain.decode("utf-8")
		except UnicodeDecodeError as exc:
			raise InvalidFormat(f"save document is not UTF-8: {exc}") from exc
		return cls.from_text(text)

	@classmethod
	def from_text(cls, text: str) -> "LevelDocument":
		entries: List[LevelEntry] = []
		pos = 0
		while True:
			m = _LEVEL_KEY.search(text, pos)
			if m is None:
				break
			if not text.startswith("<d", m.end()):
				pos = m.end()
				continue
			start, end, after = _element_end(text, m.end())
			entries.append(cls._scan_level(text, m.group(1), start, end))
			pos = after
		return cls(text, entries)

	@staticmethod
	def _scan_level(text: str, key: str, start: int, end: int) -> LevelEntry:
		entry = LevelEntry(key=key, name=None, body=(start, end), name_end=None, payload=None)
		pos = start
		while pos < end:
			if not text.startswith("<k>", pos):
				break
			kend = text.find("</k>", pos)
			if kend < 0 or kend > end:
				raise InvalidFormat(f"unterminated key in level {key}")
			name = text[pos + 3:kend]
			vstart, vend, after = _element_end(text, kend + 4)
			if name == "k2":
				entry.name = unescape(text[vstart:vend], {"&quot;": '"', "&apos;": "'"})
				entry.name_end = after
			elif name == "k4":
				entry.payload = (vstart, vend)
			pos = after
		return entry

	def levels(self) -> List[str]:
		return [e.name for e in self.entries if e.name is not None]

	def find(self, level_name: Optional[str] = None) -> LevelEntry:
		if not self.entries:
			raise NotFound("save file contains no levels", level_name=level_name)
		if level_name is None:
			return self.entries[0]
		for entry in self.entries:
			if entry.name == level_name:
				return entry
		raise NotFound(f"no level named '{level_name}'", level_name=level_name)

	def payload(self, level_name: Optional[str] = None) -> str:
		entry = self.find(level_name)
		if entry.payload is None:
			return ""
		return self.text[entry.payload[0]:entry.payload[1]]

	def with_payload(self, level_name: Optional[str], payload: str) -> str:
		entry = self.find(level_name)
		if entry.payload is not None:
			a, b = entry.payload
			return self.text[:a] + payload + self.text[b:]
		at = entry.name_end if entry.name_end is not None else entry.body[0]
		return self.text[:at] + f"<k>k4</k><s>{escape(payload)}</s>" + self.text[at:]


def decode_listing(payload: str, params: CodecParams | None = None) -> LevelListing:
	params = params or CodecParams()
	if not payload.strip():
		return LevelListing()
	raw = Layer(params.inner_key).unwrap(payload.encode("utf-8"))
	try:
		return LevelListing.parse(raw.decode("utf-8"))
	except UnicodeDecodeError as exc:
		raise InvalidFormat(f"level listing is not UTF-8: {exc}") from exc


def encode_listing(listing: LevelListing, params: CodecParams | None = None) -> str:
	params = params or CodecParams()
	return Layer(params.inner_key).wrap(listing.serialize().encode("utf-8")).decode("ascii")


def decode(
	document_bytes: bytes,
	level_name: Optional[str] = None,
	params: CodecParams | None = None,
) -> LevelListing:
	"""Listing of `level_name` (the first level when None)."""
	doc = LevelDocument.parse(document_bytes, params)
	try:
		return decode_listing(doc.payload(level_name), params)
	except InvalidFormat as exc:
		raise InvalidFormat(exc.message, level_name=level_name) from exc


def encode(
	listing: LevelListing,
	original_document_bytes: bytes,
	level_name: Optional[str] = None,
	params: CodecParams | None = None,
) -> bytes:
	"""Document bytes with only the selected level's payload replaced."""
	params = params or CodecParams()
	doc = LevelDocument.parse(original_document_bytes, params)
	text = doc.with_payload(level_name, encode_listing(listing, params))
	log.debug("re-encoded level %r (%d objects)", level_name, len(listing))
	return outer_layer(params).wrap(text.encode("utf-8"))


def build_document(levels: List[Tuple[str, LevelListing]], params: CodecParams | None = None) -> bytes:
	"""A minimal save document holding `levels`; used to create fresh artifacts."""
	params = params or CodecParams()
	body = ['<?xml version="1.0"?><plist version="1.0" gjver="2.0"><dict><k>LLM_01</k><d><k>_isArr</k><t />']
	for idx, (name, listing) in enumerate(levels):
		body.append(
			f"<k>k_{idx}</k><d><k>kCEK</k><i>4</i><k>k2</k><s>{escape(name)}</s>"
			f"<k>k4</k><s>{encode_listing(listing, params)}</s></d>"
		)
	body.append("</d><k>LLM_02</k><i>35</i></dict></plist>")
	return outer_layer(params).wrap("".join(body).encode("utf-8"))


__all__ = [
	"Layer",
	"MacLayer",
	"LevelDocument",
	"LevelEntry",
	"decode",
	"encode",
	"decode_listing",
	"encode_listing",
	"build_document",
	"xor_bytes",
	"MAC_KEY",
]
