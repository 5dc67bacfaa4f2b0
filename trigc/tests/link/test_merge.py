# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from trigc.alloc import IdAllocator
from trigc.core.ids import Namespace, arbitrary, group, item
from trigc.ir.cond import Var
from trigc.ir.objects import ObjectMode, TargetObject, spawn_trigger
from trigc.level.listing import LevelListing
from trigc.link.merge import merge, scan_usage, strip_prior_generation, to_raw


def test_fresh_groups_land_above_user_content() -> None:
	existing = LevelListing.parse("1,1,2,5,57,10;1,1,2,6,57,20")
	generated = [TargetObject({1: 1, 57: (arbitrary(Namespace.GROUP, 1),)}, ObjectMode.OBJECT)]
	merged, usage = merge(existing, generated, IdAllocator())
	assert merged.serialize() == "1,1,2,5,57,10;1,1,2,6,57,20;1,1,57,21,108,635"
	assert usage.groups == 21
	assert usage.report() == ["21 groups"]


def test_merge_keeps_the_header_and_existing_objects() -> None:
	existing = LevelListing.parse("kS38,1_0_2;1,1,2,15,3,45;")
	merged, _ = merge(existing, [spawn_trigger((group(3),), group(4))])
	assert merged.header == "kS38,1_0_2"
	assert merged.serialize() == "kS38,1_0_2;1,1,2,15,3,45;1,1268,51,4,57,3,108,635;"


def test_strip_prior_generation_is_idempotent() -> None:
	listing = LevelListing.parse("1,1,2,15;1,1268,51,4,108,635;1,1,2,30;")
	stripped = strip_prior_generation(listing)
	assert stripped.serialize() == "1,1,2,15;1,1,2,30;"
	assert strip_prior_generation(stripped).serialize() == stripped.serialize()
	# A marker with another value is user content.
	assert len(strip_prior_generation(LevelListing.parse("1,1,108,3;"))) == 1


def test_rebuilding_does_not_accumulate() -> None:
	existing = LevelListing.parse("1,1,57,10;")
	generated = [spawn_trigger((), arbitrary(Namespace.GROUP, 1))]
	first, _ = merge(strip_prior_generation(existing), generated, IdAllocator())
	second, _ = merge(strip_prior_generation(first), generated, IdAllocator())
	assert second.serialize() == first.serialize()


def test_scan_usage_follows_kind_rules() -> None:
	listing = LevelListing.parse("1,899,51,5,21,1005;1,1817,80,7;1,1815,80,3;1,1006,51,9,52,1")
	usage = scan_usage(listing)
	assert usage.colors == 5
	assert usage.item_ids == 7
	assert usage.block_ids == 3
	assert usage.groups == 9
	assert usage.report() == ["9 groups", "5 colors", "3 block IDs", "7 item IDs"]


def test_scan_usage_respects_capacities() -> None:
	listing = LevelListing.parse("1,1,57,3.12.400;")
	assert scan_usage(listing).groups == 400
	assert scan_usage(listing, {Namespace.GROUP: 100}).groups == 12


def test_to_raw_requires_lowered_conditions() -> None:
	with pytest.raises(ValueError, match="lowered"):
		to_raw(spawn_trigger((), group(1), cond=Var(item(1))))
	raw = to_raw(TargetObject({57: (group(2), group(3)), 1: 1, 108: 635}))
	assert raw.serialize() == "1,1,57,2.3,108,635"
