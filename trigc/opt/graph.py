# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Arena representation of the trigger graph.

Every object of every unit lives in one arena and is addressed by a stable
integer handle. There are no object-to-object links: edges are lookup tables
from identifiers to handle lists, rebuilt lazily after a mutation.

- `readers(g)`: spawn-triggered triggers placed in group `g` (activating `g`
  fires them);
- `writers(g)`: triggers that activate `g`;
- `signal_writers(i)`: objects that modify item counter `i`.

Symbol references are resolved through unit exports for analysis. A
reference nothing exports (or that two units export) stays an opaque external
identifier.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Set

from trigc.core.ids import ClosedGroups, Id, Namespace, SymbolRef
from trigc.ir.objects import COUNT_TRIGGER, INSTANT_COUNT, ITEM, ITEM_DISPLAY, Ref, TargetObject
from trigc.ir.unit import FunctionUnit

log = logging.getLogger(__name__)

# Kinds that only read their item counter.
ITEM_READER_KINDS = frozenset({INSTANT_COUNT, COUNT_TRIGGER, ITEM_DISPLAY})


@dataclass
class Node:
	handle: int
	unit: int
	obj: TargetObject
	alive: bool = True


@dataclass
class UnitMeta:
	name: str
	entry: Optional[Id]
	exports: Dict[str, Id] = field(default_factory=dict)


class TriggerGraph:
	def __init__(self, units: Iterable[FunctionUnit], closed: ClosedGroups | None = None) -> None:
		self.closed = closed or ClosedGroups()
		self.nodes: List[Node] = []
		self.meta: List[UnitMeta] = []
		self._order: List[List[int]] = []
		for idx, unit in enumerate(units):
			self.meta.append(UnitMeta(unit.name, unit.entry, dict(unit.exports)))
			handles: List[int] = []
			for obj in unit.objects:
				handles.append(self._append(idx, obj))
			self._order.append(handles)
		self._dirty = True
		self._readers: Dict[Ref, List[int]] = {}
		self._writers: Dict[Ref, List[int]] = {}
		self._signal_writers: Dict[Ref, List[int]] = {}
		self._mentions: Dict[Ref, int] = {}
		self._exports: Dict[tuple, Optional[Id]] = {}
		self._exported: Set[Id] = set()
		self._cycles: Optional[Set[int]] = None

	def _append(self, unit: int, obj: TargetObject) -> int:
		handle = len(self.nodes)
		self.nodes.append(Node(handle, unit, obj))
		return handle

	# Mutation.

	def replace(self, handle: int, obj: TargetObject) -> None:
		self.nodes[handle].obj = obj
		self._invalidate()

	def remove(self, handle: int) -> None:
		self.nodes[handle].alive = False
		self._invalidate()

	def add(self, unit: int, obj: TargetObject, front: bool = False) -> int:
		handle = self._append(unit, obj)
		if front:
			self._order[unit].insert(0, handle)
		else:
			self._order[unit].append(handle)
		self._invalidate()
		return handle

	def clear_unit(self, unit: int) -> None:
		for h in self._order[unit]:
			self.nodes[h].alive = False
		self._invalidate()

	def rename_everywhere(self, old: Id, new: Id) -> None:
		for node in self.alive():
			if old in node.obj.ids():
				node.obj = node.obj.rename({old: new})
		for meta in self.meta:
			for name, ident in meta.exports.items():
				if ident == old:
					meta.exports[name] = new
		self._invalidate()

	def _invalidate(self) -> None:
		self._dirty = True
		self._cycles = None

	# Queries.

	def alive(self) -> Iterator[Node]:
		"""Alive nodes in listing order (unit order, then object order)."""
		for handles in self._order:
			for h in handles:
				node = self.nodes[h]
				if node.alive:
					yield node

	def unit_nodes(self, unit: int) -> List[Node]:
		return [self.nodes[h] for h in self._order[unit] if self.nodes[h].alive]

	def object_total(self) -> int:
		return sum(1 for _ in self.alive())

	def resolve(self, ref: Ref) -> Ref:
		if isinstance(ref, SymbolRef):
			self._rebuild()
			target = self._exports.get((ref.namespace, ref.name))
			return target if target is not None else ref
		return ref

	def exported_ids(self) -> Set[Id]:
		self._rebuild()
		return set(self._exported)

	def is_external(self, ref: Ref) -> bool:
		"""
		Whether activations or values of `ref` may be observed or caused outside
		the graph.

		Closed identifiers, concrete identifiers (which pre-existing level content
		may share), exported identifiers and unresolved symbols all count.
		"""
		ref = self.resolve(ref)
		if isinstance(ref, SymbolRef):
			return True
		if ref in self.closed or not ref.arbitrary:
			return True
		self._rebuild()
		return ref in self._exported

	def readers(self, group: Ref) -> List[int]:
		self._rebuild()
		return list(self._readers.get(self.resolve(group), ()))

	def writers(self, group: Ref) -> List[int]:
		self._rebuild()
		return list(self._writers.get(self.resolve(group), ()))

	def signal_writers(self, signal: Ref) -> List[int]:
		self._rebuild()
		return list(self._signal_writers.get(self.resolve(signal), ()))

	def written_signals(self) -> Set[Ref]:
		self._rebuild()
		return {s for s, hs in self._signal_writers.items() if hs}

	def mentions(self, ref: Ref) -> int:
		"""How many (object, key) slots across alive objects hold `ref`."""
		self._rebuild()
		return self._mentions.get(self.resolve(ref), 0)

	def resolved_groups(self, node: Node) -> List[Ref]:
		return [self.resolve(g) for g in node.obj.groups]

	def resolved_target(self, node: Node) -> Optional[Ref]:
		t = node.obj.target
		return self.resolve(t) if t is not None else None

	def _rebuild(self) -> None:
		if not self._dirty:
			return
		self._dirty = False
		exports: Dict[tuple, Optional[Id]] = {}
		for meta in self.meta:
			for name, ident in meta.exports.items():
				key = (ident.namespace, name)
				# Ambiguous names resolve to nothing.
				exports[key] = None if key in exports else ident
		self._exports = exports
		self._exported = {ident for meta in self.meta for ident in meta.exports.values()}
		readers: Dict[Ref, List[int]] = {}
		writers: Dict[Ref, List[int]] = {}
		signal_writers: Dict[Ref, List[int]] = {}
		mentions: Dict[Ref, int] = {}
		for node in self.alive():
			obj = node.obj
			for key, ref in obj.refs():
				r = self._resolve_raw(ref)
				mentions[r] = mentions.get(r, 0) + 1
			if obj.is_spawn_triggered:
				for g in obj.groups:
					readers.setdefault(self._resolve_raw(g), []).append(node.handle)
			if obj.activates_target and obj.target is not None:
				writers.setdefault(self._resolve_raw(obj.target), []).append(node.handle)
			if obj.kind not in ITEM_READER_KINDS:
				item = obj.params.get(ITEM)
				if isinstance(item, (Id, SymbolRef)) and item.namespace is Namespace.ITEM:
					signal_writers.setdefault(self._resolve_raw(item), []).append(node.handle)
		self._readers = readers
		self._writers = writers
		self._signal_writers = signal_writers
		self._mentions = mentions

	def _resolve_raw(self, ref: Ref) -> Ref:
		if isinstance(ref, SymbolRef):
			target = self._exports.get((ref.namespace, ref.name))
			return target if target is not None else ref
		return ref

	def successors(self, node: Node) -> List[int]:
		if not node.obj.activates_target or node.obj.target is None:
			return []
		return self.readers(node.obj.target)

	def cycle_members(self) -> Set[int]:
		"""Handles on an activation cycle (iterative Tarjan SCC over spawn edges)."""
		if self._cycles is not None:
			return self._cycles
		index: Dict[int, int] = {}
		low: Dict[int, int] = {}
		on_stack: Set[int] = set()
		stack: List[int] = []
		members: Set[int] = set()
		counter = 0
		for root in self.alive():
			if root.handle in index:
				continue
			work = [(root.handle, iter(self.successors(root)))]
			index[root.handle] = low[root.handle] = counter
			counter += 1
			stack.append(root.handle)
			on_stack.add(root.handle)
			while work:
				h, it = work[-1]
				advanced = False
				for succ in it:
					if succ not in index:
						index[succ] = low[succ] = counter
						counter += 1
						stack.append(succ)
						on_stack.add(succ)
						work.append((succ, iter(self.successors(self.nodes[succ]))))
						advanced = True
						break
					if succ in on_stack:
						low[h] = min(low[h], index[succ])
				if advanced:
					continue
				work.pop()
				if work:
					parent = work[-1][0]
					low[parent] = min(low[parent], low[h])
				if low[h] == index[h]:
					component: List[int] = []
					while True:
						top = stack.pop()
						on_stack.discard(top)
						component.append(top)
						if top == h:
							break
					if len(component) > 1 or h in self.successors(self.nodes[h]):
						members.update(component)
		self._cycles = members
		if members:
			log.debug("%d objects sit on activation cycles", len(members))
		return members

	def to_units(self) -> List[FunctionUnit]:
		out: List[FunctionUnit] = []
		for idx, meta in enumerate(self.meta):
			objects = tuple(n.obj for n in self.unit_nodes(idx))
			out.append(FunctionUnit(name=meta.name, objects=objects, entry=meta.entry, exports=dict(meta.exports)))
		return out


__all__ = ["TriggerGraph", "Node", "UnitMeta", "ITEM_READER_KINDS"]
