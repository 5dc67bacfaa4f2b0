# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Reference activation-propagation semantics.

Used to check optimizer rewrites: two graphs are equivalent when they produce
the same observed trace.

- Activating a group fires every spawn-triggered trigger placed in it, in
  listing order. Triggers that do not wait for a spawn fire at time zero.
- A firing trigger whose condition holds either activates its target after
  its delay or performs an effect. A zero delay activates in the same step,
  depth first; a group already on the current zero-delay path is not
  re-entered.
- Pickups add to item counters; instant count triggers compare and activate;
  every other kind is recorded as an effect.

The observed trace is, per time step, the sorted multiset of closed-group
activations and effects. Arbitrary identifiers inside effects are rendered
as `?`, because rewrites may rename them.
"""

from __future__ import annotations

import heapq
import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from trigc.core.ids import ClosedGroups, Id
from trigc.ir.cond import evaluate, variables
from trigc.ir.objects import (
	CMP_EQUALS,
	CMP_LARGER,
	CMP_SMALLER,
	COMPARISON,
	COUNT,
	GROUPS,
	INSTANT_COUNT,
	ITEM,
	LAYOUT_KEYS,
	MULTI_TRIGGER,
	PICKUP,
	SPAWN,
	SPAWN_TRIGGERED,
	Ref,
	iter_refs,
)
from trigc.ir.unit import FunctionUnit
from trigc.opt.graph import Node, TriggerGraph

log = logging.getLogger(__name__)

TIME_PRECISION = 6
# Keys that never change what an effect does.
_SILENT_KEYS = LAYOUT_KEYS | {GROUPS, SPAWN_TRIGGERED, MULTI_TRIGGER}

Trace = List[Tuple[float, Tuple[str, ...]]]


@dataclass(frozen=True)
class SimulationLimits:
	max_time: float = 60.0
	max_events: int = 100_000


def _render(ref: Ref) -> str:
	if isinstance(ref, Id) and ref.arbitrary:
		return f"{ref.namespace.prefix}?"
	return str(ref)


def _render_value(value) -> str:
	refs = list(iter_refs(value))
	if refs:
		return ".".join(_render(r) for r in refs)
	return repr(value)


class Simulator:
	def __init__(
		self,
		units: Sequence[FunctionUnit],
		closed: ClosedGroups | None = None,
		limits: SimulationLimits | None = None,
	) -> None:
		self.graph = TriggerGraph(units, closed)
		self.closed = self.graph.closed
		self.limits = limits or SimulationLimits()
		self.items: Dict[Ref, int] = {}
		self.trace: Dict[float, List[str]] = {}
		self.events = 0
		self._queue: List[Tuple[float, int, Ref]] = []
		self._seq = 0
		self.truncated = False

	def _record(self, t: float, entry: str) -> None:
		self.trace.setdefault(t, []).append(entry)

	def _signal_env(self, node: Node) -> Dict[Ref, bool]:
		return {sig: self.items.get(self.graph.resolve(sig), 0) != 0 for sig in variables(node.obj.cond)}

	def _schedule(self, t: float, group: Ref) -> None:
		self._seq += 1
		heapq.heappush(self._queue, (t, self._seq, group))

	def _budget(self) -> bool:
		self.events += 1
		if self.events > self.limits.max_events:
			self.truncated = True
			return False
		return True

	def activate(self, group: Ref, t: float, path: FrozenSet[Ref] = frozenset()) -> None:
		group = self.graph.resolve(group)
		if group in path or not self._budget():
			return
		if isinstance(group, Id) and group in self.closed:
			self._record(t, f"activate {group}")
		path = path | {group}
		for h in self.graph.readers(group):
			self.fire(self.graph.nodes[h], t, path)

	def fire(self, node: Node, t: float, path: FrozenSet[Ref] = frozenset()) -> None:
		obj = node.obj
		if not evaluate(obj.cond, self._signal_env(node)):
			return
		kind = obj.kind
		if kind == PICKUP:
			item = obj.params.get(ITEM)
			if item is not None:
				r = self.graph.resolve(item)
				amount = obj.params.get(COUNT, 0)
				self.items[r] = self.items.get(r, 0) + int(amount)
				self._record(t, f"pickup {_render(r)} {amount}")
			return
		if kind == INSTANT_COUNT and not self._compare(obj.params):
			return
		if kind in (SPAWN, INSTANT_COUNT) and obj.activates_target and obj.target is not None:
			delay = round(obj.delay, TIME_PRECISION)
			if delay == 0:
				self.activate(obj.target, t, path)
			else:
				self._schedule(round(t + delay, TIME_PRECISION), self.graph.resolve(obj.target))
			return
		params = ",".join(
			f"{k}={_render_value(obj.params[k])}" for k in sorted(obj.params) if k not in _SILENT_KEYS
		)
		self._record(t, f"effect {params}")

	def _compare(self, params) -> bool:
		item = params.get(ITEM)
		current = self.items.get(self.graph.resolve(item), 0) if item is not None else 0
		count = int(params.get(COUNT, 0))
		mode = int(params.get(COMPARISON, CMP_EQUALS))
		if mode == CMP_LARGER:
			return current > count
		if mode == CMP_SMALLER:
			return current < count
		return current == count

	def run(self, external: Iterable[Tuple[float, Ref]] = ()) -> Trace:
		for node in list(self.graph.alive()):
			if node.obj.is_trigger and not node.obj.is_spawn_triggered:
				self.fire(node, 0.0)
		for t, group in external:
			self._schedule(round(t, TIME_PRECISION), group)
		while self._queue:
			t, _, group = heapq.heappop(self._queue)
			if t > self.limits.max_time:
				self.truncated = True
				break
			self.activate(group, t)
			if self.truncated:
				break
		if self.truncated:
			log.debug("simulation truncated after %d events", self.events)
		return [(t, tuple(sorted(entries))) for t, entries in sorted(self.trace.items()) if entries]


def simulate(
	units: Sequence[FunctionUnit],
	closed: ClosedGroups | None = None,
	external: Iterable[Tuple[float, Ref]] = (),
	limits: Optional[SimulationLimits] = None,
) -> Trace:
	return Simulator(units, closed, limits).run(external)


def equivalent(
	before: Sequence[FunctionUnit],
	after: Sequence[FunctionUnit],
	closed: ClosedGroups | None = None,
	external: Iterable[Tuple[float, Ref]] = (),
	limits: Optional[SimulationLimits] = None,
) -> bool:
	external = list(external)
	return simulate(before, closed, external, limits) == simulate(after, closed, external, limits)


__all__ = ["Simulator", "SimulationLimits", "simulate", "equivalent", "Trace"]
