# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Iterator, Optional, Tuple

from trigc.core.ids import Id
from trigc.ir.cond import FALSE, TRUE, cost
from trigc.ir.objects import TargetObject


@dataclass(frozen=True)
class FunctionUnit:
	"""
	One linkable chunk of compiled output.

	`objects` is ordered; listing order is significant. `entry` is the group
	whose activation starts the unit (None for straight-line top-level code).
	`exports` maps symbol names to the identifiers other units may reference
	through `SymbolRef`.
	"""

	name: str
	objects: Tuple[TargetObject, ...] = ()
	entry: Optional[Id] = None
	exports: Dict[str, Id] = field(default_factory=dict)

	def __post_init__(self) -> None:
		if not isinstance(self.objects, tuple):
			object.__setattr__(self, "objects", tuple(self.objects))

	def with_objects(self, objects: Iterable[TargetObject]) -> "FunctionUnit":
		return replace(self, objects=tuple(objects))

	def __iter__(self) -> Iterator[TargetObject]:
		return iter(self.objects)

	def __len__(self) -> int:
		return len(self.objects)


def emitted_cost(obj: TargetObject) -> int:
	"""Objects `obj` turns into once its condition is lowered."""
	if obj.cond == TRUE:
		return 1
	if obj.cond == FALSE:
		return 0
	return 1 + cost(obj.cond)


def object_count(units: Iterable[FunctionUnit]) -> int:
	return sum(emitted_cost(obj) for unit in units for obj in unit.objects)


__all__ = ["FunctionUnit", "emitted_cost", "object_count"]
