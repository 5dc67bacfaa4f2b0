# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Optimizer passes.

Each pass is `run(graph, ctx) -> int`: it rewrites the arena in place and
returns how many rewrites fired. `PASSES` is the sweep order.
"""

from __future__ import annotations

from typing import List, Tuple

from trigc.opt.passes import coalesce, dead, dedup, fold, minimize
from trigc.opt.passes.base import PassContext, PassFn

PASSES: List[Tuple[str, PassFn]] = [
	("dead", dead.run),
	("fold", fold.run),
	("coalesce", coalesce.run),
	("minimize", minimize.run),
	("dedup", dedup.run),
]

__all__ = ["PassContext", "PassFn", "PASSES"]
