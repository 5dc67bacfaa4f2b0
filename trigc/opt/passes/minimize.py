# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Boolean minimization: swap a condition for its minimal form when that saves helpers."""

from __future__ import annotations

import logging

from trigc.ir.cond import Const, cost, minimize
from trigc.opt.graph import TriggerGraph
from trigc.opt.passes.base import PassContext

log = logging.getLogger(__name__)


def run(graph: TriggerGraph, ctx: PassContext) -> int:
	cycles = graph.cycle_members()
	fired = 0
	for node in list(graph.alive()):
		obj = node.obj
		if not obj.is_trigger or isinstance(obj.cond, Const) or node.handle in cycles:
			continue
		best = minimize(obj.cond)
		before, after = cost(obj.cond), cost(best)
		if after < before:
			log.debug("minimize: %d helpers %d -> %d", node.handle, before, after)
			graph.replace(node.handle, obj.with_cond(best))
			fired += 1
	return fired


__all__ = ["run"]
