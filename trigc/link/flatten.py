# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Flattening: function units to one absolute object list.

Units are concatenated in order. On the way every object is

1. linked: `SymbolRef`s are replaced by the identifier the named unit exports;
2. materialized: arbitrary placeholders get concrete values from the
   allocator;
3. lowered: a trigger's activation condition becomes helper instant-count
   triggers (see `lower_condition`);
4. laid out: triggers without coordinates are placed on a grid, one row per
   unit.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Tuple

from trigc.alloc import IdAllocator
from trigc.core.errors import UnresolvedReference
from trigc.core.ids import Id, Namespace, SymbolRef
from trigc.ir.cond import FALSE, TRUE, Expr, lowering_terms
from trigc.ir.objects import (
	ACTIVATE_GROUP,
	CMP_EQUALS,
	CMP_LARGER,
	COMPARISON,
	COUNT,
	GROUPS,
	INSTANT_COUNT,
	ITEM,
	MULTI_TRIGGER,
	OBJ_ID,
	SPAWN_TRIGGERED,
	TARGET,
	X,
	Y,
	ObjectMode,
	ParamValue,
	Ref,
	TargetObject,
)
from trigc.ir.unit import FunctionUnit

log = logging.getLogger(__name__)

GRID = 30
ROWS_PER_COLUMN = 80


def export_table(units: Sequence[FunctionUnit]) -> Dict[str, Id]:
	table: Dict[str, Id] = {}
	owner: Dict[str, str] = {}
	for unit in units:
		for name, ident in unit.exports.items():
			if name in table:
				raise UnresolvedReference(
					f"symbol '{name}' is exported by both '{owner[name]}' and '{unit.name}'",
					symbol=name,
				)
			table[name] = ident
			owner[name] = unit.name
	return table


def _resolver(table: Dict[str, Id]):
	def resolve(ref: Ref) -> Ref:
		if not isinstance(ref, SymbolRef):
			return ref
		ident = table.get(ref.name)
		if ident is None:
			raise UnresolvedReference(f"no unit exports '{ref.name}'", symbol=ref.name, namespace=ref.namespace.value)
		if ident.namespace is not ref.namespace:
			raise UnresolvedReference(
				f"'{ref.name}' is a {ident.namespace.value} identifier, referenced as {ref.namespace.value}",
				symbol=ref.name,
				namespace=ref.namespace.value,
			)
		return ident

	return resolve


def with_trigger_flags(obj: TargetObject) -> TargetObject:
	"""Triggers placed in a group wait for a spawn and may fire repeatedly."""
	if not obj.is_trigger or not obj.groups:
		return obj
	params = dict(obj.params)
	params.setdefault(SPAWN_TRIGGERED, True)
	params.setdefault(MULTI_TRIGGER, True)
	return TargetObject(params=params, mode=obj.mode, cond=obj.cond)


def count_check(groups: Tuple[Ref, ...], signal: Ref, active: bool, target: Ref) -> TargetObject:
	"""Instant count trigger activating `target` when `signal` is (in)active."""
	params: Dict[int, ParamValue] = {
		OBJ_ID: INSTANT_COUNT,
		GROUPS: tuple(groups),
		ITEM: signal,
		COUNT: 0,
		COMPARISON: CMP_LARGER if active else CMP_EQUALS,
		TARGET: target,
		ACTIVATE_GROUP: True,
	}
	if not groups:
		del params[GROUPS]
	return with_trigger_flags(TargetObject(params=params, mode=ObjectMode.TRIGGER))


def lower_condition(obj: TargetObject, allocator: IdAllocator) -> List[TargetObject]:
	"""
	Lower `obj.cond` into an if/else chain of instant count checks.

	For a condition `t1 | ... | tm` (minimal sum of products, largest term
	last), term `i` starts in the trigger's own groups (i = 1) or in a fresh
	group. Every literal gets a pass check; on a non-final term it also gets a
	fail check jumping to the next term's start group. The pass check of a
	term's last literal activates a fresh group holding the trigger itself,
	without its condition.
	"""
	cond: Expr = obj.cond
	if cond == TRUE:
		return [obj]
	if cond == FALSE:
		return []
	terms = lowering_terms(cond)
	body = allocator.reserve(Namespace.GROUP)
	starts: List[Tuple[Ref, ...]] = [tuple(obj.groups)]
	for _ in terms[1:]:
		starts.append((allocator.reserve(Namespace.GROUP),))

	out: List[TargetObject] = []
	for j, term in enumerate(terms):
		current = starts[j]
		last_term = j == len(terms) - 1
		for l, (signal, positive) in enumerate(term):
			last_literal = l == len(term) - 1
			target: Ref = body if last_literal else allocator.reserve(Namespace.GROUP)
			out.append(count_check(current, signal, positive, target))
			if not last_term:
				out.append(count_check(current, signal, not positive, starts[j + 1][0]))
			current = (target,)

	params = dict(obj.params)
	params[GROUPS] = (body,)
	params.pop(SPAWN_TRIGGERED, None)
	params.pop(MULTI_TRIGGER, None)
	out.append(with_trigger_flags(TargetObject(params=params, mode=obj.mode)))
	return out


class GridLayout:
	"""One row per unit, rows filling columns top to bottom."""

	def __init__(self) -> None:
		self.row = 0
		self.column_x = 0
		self.column_width = 0

	def place(self, objects: List[TargetObject]) -> List[TargetObject]:
		out: List[TargetObject] = []
		order = 0
		for obj in objects:
			if obj.is_trigger and X not in obj.params and Y not in obj.params:
				params = dict(obj.params)
				params[X] = self.column_x * GRID + order * GRID + GRID // 2
				params[Y] = (ROWS_PER_COLUMN + 1 - self.row) * GRID - GRID // 2
				obj = TargetObject(params=params, mode=obj.mode, cond=obj.cond)
				order += 1
			out.append(obj)
		self.column_width = max(self.column_width, order)
		self.row += 1
		if self.row >= ROWS_PER_COLUMN:
			self.row = 0
			self.column_x += self.column_width + 1
			self.column_width = 0
		return out


def flatten(
	units: Sequence[FunctionUnit],
	allocator: IdAllocator,
	layout: bool = True,
) -> List[TargetObject]:
	resolve = _resolver(export_table(units))
	grid = GridLayout()
	out: List[TargetObject] = []
	for unit in units:
		emitted: List[TargetObject] = []
		for obj in unit.objects:
			obj = obj.renamed(resolve).renamed(allocator.materialize)
			emitted.extend(lower_condition(with_trigger_flags(obj), allocator))
		if layout and emitted:
			emitted = grid.place(emitted)
		out.extend(emitted)
	log.debug("flattened %d units into %d objects", len(units), len(out))
	return out


__all__ = ["flatten", "lower_condition", "count_check", "export_table", "with_trigger_flags", "GridLayout"]
