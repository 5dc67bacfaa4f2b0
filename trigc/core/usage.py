# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from trigc.core.ids import NAMESPACE_ORDER, Namespace

_FIELD_BY_NS = {
	Namespace.GROUP: "groups",
	Namespace.COLOR: "colors",
	Namespace.BLOCK: "block_ids",
	Namespace.ITEM: "item_ids",
}


@dataclass
class UsageCounters:
	"""
	Highest identifier observed per namespace in a level listing.

	Seeds the allocator so fresh identifiers land strictly above user content,
	and is reported to the operator after a build.
	"""

	groups: int = 0
	colors: int = 0
	block_ids: int = 0
	item_ids: int = 0

	def get(self, namespace: Namespace) -> int:
		return getattr(self, _FIELD_BY_NS[namespace])

	def observe(self, namespace: Namespace, value: int) -> None:
		name = _FIELD_BY_NS[namespace]
		if value > getattr(self, name):
			setattr(self, name, value)

	def copy(self) -> "UsageCounters":
		return UsageCounters(self.groups, self.colors, self.block_ids, self.item_ids)

	def to_dict(self) -> dict[str, Any]:
		return {ns.display_name: self.get(ns) for ns in NAMESPACE_ORDER}

	def report(self) -> list[str]:
		"""Operator lines, skipping namespaces nothing uses."""
		return [f"{self.get(ns)} {ns.display_name}" for ns in NAMESPACE_ORDER if self.get(ns) > 0]


__all__ = ["UsageCounters"]
