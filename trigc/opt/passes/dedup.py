# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Structural deduplication of function units.

Two units with an entry group have the same *shape* when every object is a
trigger waiting in the entry (or a unit-private) group and the objects are
equal after renaming the entry and every unit-private arbitrary identifier to
canonical placeholders. All members of a shape class are served by one shared
copy:

- a member with an internal entry is dropped and every spawn of its entry is
  redirected to the shared copy (exports follow);
- a member whose entry is closed keeps a single zero-delay forwarding spawn
  into the shared copy;
- when every member is closed the shared copy moves to a fresh entry from the
  allocator.

A class is merged only when that strictly lowers the emitted object count.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, Hashable, List, Optional, Tuple

from trigc.core.ids import Id, Namespace, SymbolRef
from trigc.ir.objects import TARGET, Ref, TargetObject, spawn_trigger
from trigc.ir.unit import emitted_cost
from trigc.opt.graph import TriggerGraph
from trigc.opt.passes.base import PassContext

log = logging.getLogger(__name__)


@dataclass
class Member:
	unit: int
	entry: Id
	cost: int


def _canonical(obj: TargetObject, mapping: Dict[Ref, Ref], graph: TriggerGraph) -> Hashable:
	def canon(r: Ref) -> Ref:
		r = graph.resolve(r)
		return mapping.get(r, r)

	c = obj.renamed(canon)
	return (c.mode, tuple(sorted(c.params.items(), key=lambda kv: kv[0])), c.cond)


def _fixed(graph: TriggerGraph, entry: Id) -> bool:
	return entry in graph.closed or not entry.arbitrary


def unit_shape(graph: TriggerGraph, unit: int, cycles: set) -> Optional[Tuple[Hashable, Member]]:
	"""Shape key and member record, or None when the unit cannot be shared."""
	meta = graph.meta[unit]
	nodes = graph.unit_nodes(unit)
	if meta.entry is None or not nodes:
		return None
	if any(n.handle in cycles for n in nodes):
		return None
	entry = meta.entry

	inside: "OrderedDict[Ref, int]" = OrderedDict()
	for node in nodes:
		for _, ref in node.obj.refs():
			r = graph.resolve(ref)
			inside[r] = inside.get(r, 0) + 1

	for node in graph.alive():
		if node.unit == unit:
			continue
		for key, ref in node.obj.refs():
			if graph.resolve(ref) == entry and not (key == TARGET and node.obj.activates_target):
				return None

	mapping: Dict[Ref, Ref] = {entry: SymbolRef(entry.namespace, "#entry")}
	for r, count in inside.items():
		# Counters, colors and blocks carry state; only private groups are interchangeable.
		if r == entry or not isinstance(r, Id) or not r.arbitrary or r.namespace is not Namespace.GROUP:
			continue
		if graph.is_external(r) or graph.mentions(r) != count:
			continue
		mapping[r] = SymbolRef(r.namespace, f"#{len(mapping)}")

	# Only objects started by the entry (or a private group) may be shared.
	for node in nodes:
		obj = node.obj
		if not obj.is_trigger or not obj.is_spawn_triggered:
			return None
		if any(graph.resolve(g) not in mapping for g in obj.groups):
			return None

	key = tuple(_canonical(n.obj, mapping, graph) for n in nodes)
	cost = sum(emitted_cost(n.obj) for n in nodes)
	return key, Member(unit, entry, cost)


def _mentions_entry(graph: TriggerGraph, unit: int, entry: Id) -> bool:
	return any(graph.resolve(r) == entry for n in graph.unit_nodes(unit) for r in n.obj.ids())


def _forward(graph: TriggerGraph, member: Member, target: Id) -> None:
	graph.clear_unit(member.unit)
	graph.add(member.unit, spawn_trigger((member.entry,), target))


def merge_class(graph: TriggerGraph, members: List[Member], ctx: PassContext) -> int:
	n = len(members)
	k = members[0].cost
	for m in members:
		if any(_mentions_entry(graph, m.unit, other.entry) for other in members if other is not m):
			return 0

	free = [m for m in members if not _fixed(graph, m.entry)]
	fixed = [m for m in members if _fixed(graph, m.entry)]

	if free:
		rep = free[0]
		if k + len(fixed) >= n * k:
			return 0
		for m in free[1:]:
			graph.clear_unit(m.unit)
			graph.rename_everywhere(m.entry, rep.entry)
			graph.meta[m.unit].entry = None
		for m in fixed:
			_forward(graph, m, rep.entry)
		log.debug("dedup: %d units share %s", n, graph.meta[rep.unit].name)
		return n - 1

	if ctx.allocator is None or n * k <= n + k:
		return 0
	rep = fixed[0]
	fresh = ctx.allocator.reserve(rep.entry.namespace)
	body = [node.obj.rename({rep.entry: fresh}) for node in graph.unit_nodes(rep.unit)]
	for m in fixed:
		_forward(graph, m, fresh)
	for obj in body:
		graph.add(rep.unit, obj)
	log.debug("dedup: %d closed units forward to %s", n, fresh)
	return n - 1


def shape_classes(graph: TriggerGraph) -> List[List[Member]]:
	cycles = graph.cycle_members()
	classes: "OrderedDict[Hashable, List[Member]]" = OrderedDict()
	for unit in range(len(graph.meta)):
		shaped = unit_shape(graph, unit, cycles)
		if shaped is None:
			continue
		key, member = shaped
		classes.setdefault(key, []).append(member)
	return [members for members in classes.values() if len(members) > 1]


def run(graph: TriggerGraph, ctx: PassContext) -> int:
	# A merge renames spawn targets in other units, so shapes are recomputed
	# after every merge.
	fired = 0
	for _ in range(len(graph.meta)):
		merged = 0
		for members in shape_classes(graph):
			merged = merge_class(graph, members, ctx)
			if merged:
				break
		if not merged:
			break
		fired += merged
	return fired


__all__ = ["run", "unit_shape", "merge_class", "shape_classes"]
