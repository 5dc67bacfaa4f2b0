# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Constant folding of activation conditions.

An internal item counter that no surviving object writes keeps its initial
value (zero), so its signal is statically false. Conditions are partially
evaluated with those facts: TRUE drops the condition, FALSE deletes the
trigger.

Folding is independent per unit once the global facts are known, so with
`ctx.jobs > 1` units are folded on a thread pool and the decisions applied
after the pool drains.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Set, Tuple

from trigc.ir.cond import FALSE, TRUE, substitute, variables
from trigc.ir.objects import Ref, TargetObject
from trigc.opt.graph import Node, TriggerGraph
from trigc.opt.passes.base import PassContext

log = logging.getLogger(__name__)

Decision = Tuple[int, Optional[TargetObject]]


def constant_signals(graph: TriggerGraph) -> Set[Ref]:
	"""Signals provably inactive for the whole run."""
	written = graph.written_signals()
	out: Set[Ref] = set()
	for node in graph.alive():
		for sig in variables(node.obj.cond):
			r = graph.resolve(sig)
			if r not in written and not graph.is_external(r):
				out.add(sig)
	return out


def fold_nodes(nodes: List[Node], inactive: Set[Ref], cycles: Set[int]) -> List[Decision]:
	decisions: List[Decision] = []
	for node in nodes:
		obj = node.obj
		if not obj.is_trigger or obj.cond == TRUE or node.handle in cycles:
			continue
		if obj.cond == FALSE:
			decisions.append((node.handle, None))
			continue
		env: Dict[Ref, bool] = {sig: False for sig in variables(obj.cond) if sig in inactive}
		if not env:
			continue
		folded = substitute(obj.cond, env)
		if folded == FALSE:
			decisions.append((node.handle, None))
		elif folded != obj.cond:
			decisions.append((node.handle, obj.with_cond(folded)))
	return decisions


def run(graph: TriggerGraph, ctx: PassContext) -> int:
	inactive = constant_signals(graph)
	cycles = graph.cycle_members()
	per_unit = [graph.unit_nodes(idx) for idx in range(len(graph.meta))]

	if ctx.jobs > 1 and len(per_unit) > 1:
		with ThreadPoolExecutor(max_workers=ctx.jobs) as pool:
			results = list(pool.map(lambda nodes: fold_nodes(nodes, inactive, cycles), per_unit))
	else:
		results = [fold_nodes(nodes, inactive, cycles) for nodes in per_unit]

	fired = 0
	for decisions in results:
		for handle, obj in decisions:
			if obj is None:
				log.debug("fold: %d can never fire", handle)
				graph.remove(handle)
			else:
				graph.replace(handle, obj)
			fired += 1
	return fired


__all__ = ["run", "constant_signals", "fold_nodes"]
