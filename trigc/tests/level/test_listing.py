# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from trigc.core.errors import InvalidFormat
from trigc.level.listing import LevelListing, RawObject, parse_listing

SAMPLE = "kS38,1_0_2,kA13,0;1,1,2,15,3,45;1,1268,2,45,3,15,51,4;"


def test_untouched_listing_serializes_byte_for_byte() -> None:
	listing = parse_listing(SAMPLE)
	assert listing.header == "kS38,1_0_2,kA13,0"
	assert len(listing) == 2
	assert listing.serialize() == SAMPLE


def test_listing_without_header_or_trailing_separator() -> None:
	listing = LevelListing.parse("1,1,2,15;;1,2,2,30")
	assert listing.header is None
	assert [o.kind() for o in listing] == [1, 2]
	assert listing.serialize() == "1,1,2,15;1,2,2,30"
	assert LevelListing.parse("  ").serialize() == ""


def test_raw_object_accessors() -> None:
	obj = RawObject.parse("1,1268,2,45,3,15,51,4")
	assert obj.get(51) == "4"
	assert obj.get(63) is None
	assert obj.params() == {1: "1268", 2: "45", 3: "15", 51: "4"}
	assert obj.kind() == 1268
	assert not obj.is_generated
	assert RawObject.parse("1,1,108,635").is_generated
	assert RawObject.from_params({1: "1", 57: "3.4"}).serialize() == "1,1,57,3.4"


@pytest.mark.parametrize(
	"text, match",
	[
		("1,1,2", "odd number"),
		("1,1,x,2", "not an integer"),
		("1,1,2,5,2,6", "repeats property key 2"),
	],
)
def test_malformed_objects_are_rejected(text: str, match: str) -> None:
	with pytest.raises(InvalidFormat, match=match):
		LevelListing.parse(text)
