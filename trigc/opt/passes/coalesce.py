# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Chain coalescing: A -> B -> C becomes A -> C.

Applies when A and B are plain spawn triggers, B is the only object placed in
A's target group GB, A is the only writer of GB, and GB is internal and
mentioned nowhere else. The merged trigger waits for the combined delay and
fires on `cA & cB`. If A has a delay, B's condition would be evaluated later
than A's, so only an unconditional B may be folded into a delayed A.
"""

from __future__ import annotations

import logging
from typing import Optional

from trigc.ir.cond import TRUE, And, minimize
from trigc.ir.objects import (
	GROUPS,
	MULTI_TRIGGER,
	OBJ_ID,
	SPAWN,
	SPAWN_DELAY,
	SPAWN_TRIGGERED,
	TARGET,
	X,
	Y,
	TargetObject,
)
from trigc.ir.unit import emitted_cost
from trigc.opt.delay import DelayModel
from trigc.opt.graph import Node, TriggerGraph
from trigc.opt.passes.base import PassContext

log = logging.getLogger(__name__)

# Keys a spawn trigger may carry and still be merged with its neighbour.
BASIC_KEYS = frozenset({OBJ_ID, GROUPS, TARGET, SPAWN_DELAY, SPAWN_TRIGGERED, MULTI_TRIGGER, X, Y})


def _plain_spawn(obj: TargetObject) -> bool:
	return obj.is_trigger and obj.kind == SPAWN and set(obj.params) <= BASIC_KEYS


def merged(a: TargetObject, b: TargetObject, delay: DelayModel) -> TargetObject:
	out = a.with_param(TARGET, b.params[TARGET])
	total = delay.combine(a.delay, b.delay)
	if total:
		out = out.with_param(SPAWN_DELAY, total)
	else:
		out = out.without_param(SPAWN_DELAY)
	if b.cond != TRUE:
		out = out.with_cond(minimize(And((a.cond, b.cond))))
	return out


def _candidate(graph: TriggerGraph, a: Node, cycles: set) -> Optional[Node]:
	if a.handle in cycles or not _plain_spawn(a.obj):
		return None
	gb = a.obj.target
	if gb is None or graph.is_external(gb):
		return None
	writers = graph.writers(gb)
	readers = graph.readers(gb)
	if writers != [a.handle] or len(readers) != 1:
		return None
	b = graph.nodes[readers[0]]
	if b.handle == a.handle or b.handle in cycles or not _plain_spawn(b.obj):
		return None
	if b.obj.target is None or graph.resolved_groups(b) != [graph.resolve(gb)]:
		return None
	# GB appears exactly twice: A's target and B's group list.
	if graph.mentions(gb) != 2:
		return None
	if a.obj.delay != 0 and b.obj.cond != TRUE:
		return None
	return b


def run(graph: TriggerGraph, ctx: PassContext) -> int:
	fired = 0
	for a in list(graph.alive()):
		if not a.alive:
			continue
		cycles = graph.cycle_members()
		b = _candidate(graph, a, cycles)
		if b is None:
			continue
		new = merged(a.obj, b.obj, ctx.delay)
		if emitted_cost(new) >= emitted_cost(a.obj) + emitted_cost(b.obj):
			continue
		log.debug("coalesce: %d absorbs %d", a.handle, b.handle)
		graph.replace(a.handle, new)
		graph.remove(b.handle)
		fired += 1
	return fired


__all__ = ["run", "merged", "BASIC_KEYS"]
