# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Fixed-point driver for the optimizer passes.

Every sweep runs the passes in a fixed order (dead elimination, constant
folding, coalescing, minimization, deduplication) over one arena. The loop
stops when a full sweep fires nothing or after `max_iterations` sweeps. The
inputs are never mutated, and a result that would emit more objects than the
input is discarded in favour of the input.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from trigc.alloc import IdAllocator
from trigc.config import OptimizerConfig
from trigc.core.ids import ClosedGroups
from trigc.ir.unit import FunctionUnit, object_count
from trigc.opt.delay import DelayModel
from trigc.opt.graph import TriggerGraph
from trigc.opt.passes import PASSES, PassContext

log = logging.getLogger(__name__)


@dataclass
class OptimizeResult:
	units: List[FunctionUnit]
	sweeps: int = 0
	fired: Dict[str, int] = field(default_factory=dict)
	before: int = 0
	after: int = 0
	reverted: bool = False


def run_optimizer(
	units: Sequence[FunctionUnit],
	closed: ClosedGroups | None = None,
	allocator: IdAllocator | None = None,
	config: OptimizerConfig | None = None,
) -> OptimizeResult:
	config = config or OptimizerConfig()
	closed = closed or ClosedGroups()
	before = object_count(units)
	result = OptimizeResult(units=list(units), before=before, after=before)
	if not config.enabled:
		return result

	graph = TriggerGraph(units, closed)
	ctx = PassContext(allocator=allocator, delay=DelayModel(config.delay_fps), jobs=config.jobs)
	fired: Dict[str, int] = {name: 0 for name, _ in PASSES}
	sweeps = 0
	while sweeps < config.max_iterations:
		sweeps += 1
		changed = 0
		for name, run in PASSES:
			n = run(graph, ctx)
			if n:
				log.debug("sweep %d: %s fired %d", sweeps, name, n)
			fired[name] += n
			changed += n
		if not changed:
			break
	else:
		log.warning("optimizer stopped after %d sweeps without reaching a fixed point", sweeps)

	out = graph.to_units()
	after = object_count(out)
	result.sweeps = sweeps
	result.fired = fired
	if after > before:
		log.warning("optimizer output grew from %d to %d objects; keeping the input", before, after)
		result.reverted = True
		result.after = before
		return result
	result.units = out
	result.after = after
	return result


def optimize(
	units: Sequence[FunctionUnit],
	closed: ClosedGroups | None = None,
	allocator: IdAllocator | None = None,
	config: OptimizerConfig | None = None,
) -> List[FunctionUnit]:
	return run_optimizer(units, closed, allocator, config).units


__all__ = ["optimize", "run_optimizer", "OptimizeResult"]
