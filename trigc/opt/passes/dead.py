# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Dead-object elimination.

Two rules, both skipping objects on activation cycles:

- a spawn trigger whose target is internal and placed on no surviving
  spawn-triggered object does nothing;
- a spawn-triggered trigger none of whose groups can ever be activated never
  fires. Activation is computed as a fixpoint from the roots: external
  identifiers and the targets of triggers that do not wait for a spawn.

Plain objects are never removed.
"""

from __future__ import annotations

import logging
from typing import List, Set

from trigc.ir.objects import SPAWN, Ref
from trigc.opt.graph import Node, TriggerGraph
from trigc.opt.passes.base import PassContext

log = logging.getLogger(__name__)


def reachable_groups(graph: TriggerGraph) -> Set[Ref]:
	active: Set[Ref] = set()
	pending: List[Node] = []
	for node in graph.alive():
		if not node.obj.is_trigger:
			continue
		if not node.obj.is_spawn_triggered:
			pending.append(node)
		elif any(graph.is_external(g) for g in node.obj.groups):
			pending.append(node)
	fired: Set[int] = set()
	while pending:
		node = pending.pop()
		if node.handle in fired:
			continue
		fired.add(node.handle)
		target = graph.resolved_target(node)
		if not node.obj.activates_target or target is None or target in active:
			continue
		active.add(target)
		for h in graph.readers(target):
			if h not in fired:
				pending.append(graph.nodes[h])
	return active


def run(graph: TriggerGraph, ctx: PassContext) -> int:
	cycles = graph.cycle_members()
	removed = 0

	for node in list(graph.alive()):
		obj = node.obj
		if node.handle in cycles or obj.kind != SPAWN or not obj.is_trigger:
			continue
		target = obj.target
		if target is None or graph.is_external(target):
			continue
		if not graph.readers(target):
			log.debug("dead: spawn of unread %s", target)
			graph.remove(node.handle)
			removed += 1

	active = reachable_groups(graph)
	for node in list(graph.alive()):
		obj = node.obj
		if node.handle in cycles or not obj.is_spawn_triggered:
			continue
		groups = graph.resolved_groups(node)
		if any(graph.is_external(g) or g in active for g in groups):
			continue
		log.debug("dead: %d never activated", node.handle)
		graph.remove(node.handle)
		removed += 1
	return removed


__all__ = ["run", "reachable_groups"]
