# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Merging generated objects into a user level.

Generated objects carry the generation marker (`108,635`). Stripping every
marked object restores the user-authored listing, so rebuilding against the
same save never accumulates output from earlier builds.
"""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional, Sequence, Tuple

from trigc.alloc import IdAllocator
from trigc.core.ids import DEFAULT_CAPACITY, Namespace
from trigc.core.usage import UsageCounters
from trigc.ir.cond import TRUE
from trigc.ir.objects import GROUPS, MARKER_KEY, MARKER_VALUE, OBJ_ID, TargetObject, format_value, namespace_of
from trigc.level.listing import LevelListing, RawObject

log = logging.getLogger(__name__)


def strip_prior_generation(listing: LevelListing) -> LevelListing:
	kept = [obj for obj in listing.objects if not obj.is_generated]
	if len(kept) != len(listing.objects):
		log.info("removed %d objects from a previous build", len(listing.objects) - len(kept))
	return LevelListing(header=listing.header, objects=kept, trailing_separator=listing.trailing_separator)


def scan_usage(listing: LevelListing, capacities: Mapping[Namespace, int] | None = None) -> UsageCounters:
	"""Highest identifier per namespace, using the per-kind key rules."""
	counters = UsageCounters()
	for obj in listing.objects:
		params = obj.params()
		kind = obj.kind()
		for key, raw in params.items():
			ns = namespace_of(kind, key, params)
			if ns is None:
				continue
			cap = (capacities or {}).get(ns, DEFAULT_CAPACITY)
			values = raw.split(".") if key == GROUPS else [raw]
			for value in values:
				if not value.isdigit():
					continue
				n = int(value)
				if 0 < n <= cap:
					counters.observe(ns, n)
	return counters


def to_raw(obj: TargetObject) -> RawObject:
	"""Wire form of a linked, materialized object, tagged as generated."""
	if obj.cond != TRUE:
		raise ValueError("conditions must be lowered before merging")
	fields: Dict[int, str] = {}
	if OBJ_ID in obj.params:
		fields[OBJ_ID] = format_value(obj.params[OBJ_ID])
	for key in sorted(obj.params):
		if key in (OBJ_ID, MARKER_KEY):
			continue
		fields[key] = format_value(obj.params[key])
	fields[MARKER_KEY] = str(MARKER_VALUE)
	return RawObject.from_params(fields)


def merge(
	existing: LevelListing,
	generated: Sequence[TargetObject],
	allocator: Optional[IdAllocator] = None,
) -> Tuple[LevelListing, UsageCounters]:
	"""
	Append `generated` to `existing`.

	The allocator is seeded with the usage scanned from `existing` before any
	remaining placeholder is materialized, so fresh identifiers land above user
	content. Returns the combined listing and its usage counters.
	"""
	if allocator is None:
		allocator = IdAllocator()
	caps = {ns: allocator.capacity(ns) for ns in Namespace}
	before = scan_usage(existing, caps)
	allocator.seed(before)
	added = [to_raw(obj.renamed(allocator.materialize)) for obj in generated]
	merged = LevelListing(
		header=existing.header,
		objects=list(existing.objects) + added,
		trailing_separator=existing.trailing_separator,
	)
	return merged, scan_usage(merged, caps)


__all__ = ["merge", "strip_prior_generation", "scan_usage", "to_raw"]
