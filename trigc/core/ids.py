# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Identifier namespaces of the target substrate.

The substrate addresses everything through four small integer spaces. The
backend keeps two flavours of identifier apart:

- *specific* ids are concrete values (user-named groups, values read from a
  level listing);
- *arbitrary* ids are build-global placeholders minted by the front end. They
  are materialized into concrete values by `trigc.alloc.IdAllocator` right
  before emission and never reach the wire as placeholders.

`SymbolRef` is a link-time reference to an identifier exposed by another
function unit; `trigc.link.flatten` resolves it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterable, Iterator


class Namespace(Enum):
	GROUP = "group"
	COLOR = "color"
	BLOCK = "block"
	ITEM = "item"

	@property
	def prefix(self) -> str:
		return _PREFIX[self]

	@property
	def display_name(self) -> str:
		return _DISPLAY[self]

	@classmethod
	def from_prefix(cls, prefix: str) -> "Namespace":
		for ns, p in _PREFIX.items():
			if p == prefix:
				return ns
		raise ValueError(f"unknown namespace prefix '{prefix}'")


_PREFIX = {
	Namespace.GROUP: "g",
	Namespace.COLOR: "c",
	Namespace.BLOCK: "b",
	Namespace.ITEM: "i",
}

_DISPLAY = {
	Namespace.GROUP: "groups",
	Namespace.COLOR: "colors",
	Namespace.BLOCK: "block IDs",
	Namespace.ITEM: "item IDs",
}

# Highest allocatable value per namespace. Values above this (e.g. the special
# color channels starting at 1000) exist on the wire but are never handed out.
DEFAULT_CAPACITY = 999

NAMESPACE_ORDER = (Namespace.GROUP, Namespace.COLOR, Namespace.BLOCK, Namespace.ITEM)


@dataclass(frozen=True)
class Id:
	namespace: Namespace
	value: int
	arbitrary: bool = False

	def __post_init__(self) -> None:
		if self.value < 0:
			raise ValueError(f"identifier value must be non-negative, got {self.value}")

	def __str__(self) -> str:
		marker = "?" if self.arbitrary else ""
		return f"{self.namespace.prefix}{marker}{self.value}"

	def sort_key(self) -> tuple[int, int, int]:
		return (NAMESPACE_ORDER.index(self.namespace), 1 if self.arbitrary else 0, self.value)


def group(value: int) -> Id:
	return Id(Namespace.GROUP, value)


def item(value: int) -> Id:
	return Id(Namespace.ITEM, value)


def arbitrary(namespace: Namespace, value: int) -> Id:
	return Id(namespace, value, arbitrary=True)


@dataclass(frozen=True)
class SymbolRef:
	"""A reference to the identifier another unit exports under `name`."""

	namespace: Namespace
	name: str

	def __str__(self) -> str:
		return f"{self.namespace.prefix}@{self.name}"


@dataclass(frozen=True)
class ClosedGroups:
	"""
	Identifiers the backend must never reassign, remove or alias.

	Activations of closed groups are externally observable (they are referenced
	by name in the source or by pre-existing level content), so every rewrite
	treats them as fixed points.
	"""

	ids: FrozenSet[Id] = field(default_factory=frozenset)

	@classmethod
	def of(cls, ids: Iterable[Id]) -> "ClosedGroups":
		return cls(frozenset(ids))

	def __contains__(self, ident: object) -> bool:
		return ident in self.ids

	def __iter__(self) -> Iterator[Id]:
		return iter(sorted(self.ids, key=Id.sort_key))

	def __len__(self) -> int:
		return len(self.ids)

	def in_namespace(self, namespace: Namespace) -> list[Id]:
		return [i for i in self if i.namespace is namespace]


__all__ = [
	"Namespace",
	"Id",
	"SymbolRef",
	"ClosedGroups",
	"DEFAULT_CAPACITY",
	"NAMESPACE_ORDER",
	"group",
	"item",
	"arbitrary",
]
