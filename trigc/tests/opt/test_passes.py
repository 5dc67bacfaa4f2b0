# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from trigc.alloc import IdAllocator
from trigc.core.ids import Namespace, arbitrary, group, item
from trigc.ir.cond import TRUE, And, Var
from trigc.ir.objects import spawn_trigger
from trigc.ir.text import parse_units
from trigc.opt.delay import DelayModel
from trigc.opt.graph import TriggerGraph
from trigc.opt.optimizer import optimize
from trigc.opt.passes import PassContext, coalesce, dead, dedup, fold, minimize
from trigc.opt.simulate import simulate


def g(n: int):
	return arbitrary(Namespace.GROUP, n)


def _graph(text: str) -> TriggerGraph:
	units, closed = parse_units(text)
	return TriggerGraph(units, closed)


# Dead-object elimination.

DEAD = """
unit main {
	trigger 1268 51=g?1
	trigger 1268 51=g?9
}
unit f entry g?1 {
	trigger 1268 groups(g?1) 51=g10
}
unit orphan entry g?5 {
	trigger 901 groups(g?5) 51=g11
	object 1 groups(g?5) 2=15 3=15
}
"""


def test_dead_removes_unread_spawns_and_unreachable_triggers() -> None:
	graph = _graph(DEAD)
	assert dead.run(graph, PassContext()) == 2
	units = graph.to_units()
	assert [len(u) for u in units] == [1, 1, 1]
	assert units[0].objects[0].target == g(1)
	# Plain objects stay even in a dead group.
	assert not units[2].objects[0].is_trigger


def test_dead_keeps_closed_and_cyclic_groups() -> None:
	graph = _graph(
		"closed g?5\n"
		+ DEAD
		+ """
		unit a entry g?20 {
			trigger 1268 groups(g?20) 51=g?21
		}
		unit b entry g?21 {
			trigger 1268 groups(g?21) 51=g?20
		}
		"""
	)
	assert dead.run(graph, PassContext()) == 1
	assert graph.object_total() == 6


# Constant folding.

FOLD = """
unit main {
	trigger 1268 51=g?1 if i?1
	trigger 1268 51=g?2 if !i?1 & i?2
	trigger 1268 51=g?3 if i?2 | i?1
	trigger 1268 51=g?4 if i3 & i?1
}
unit writer entry g?4 {
	trigger 1817 groups(g?4) 80=i?2 77=1
}
"""


def test_fold_drops_never_written_signals() -> None:
	graph = _graph(FOLD)
	assert fold.run(graph, PassContext()) == 4
	objs = graph.to_units()[0].objects
	i2 = arbitrary(Namespace.ITEM, 2)
	assert [o.target for o in objs] == [g(2), g(3)]
	assert objs[0].cond == Var(i2)
	assert objs[1].cond == Var(i2)


def test_fold_keeps_external_signals() -> None:
	graph = _graph("closed i?1\n" + FOLD)
	assert fold.run(graph, PassContext()) == 0


def test_fold_in_parallel_matches_serial() -> None:
	serial = _graph(FOLD)
	parallel = _graph(FOLD)
	fold.run(serial, PassContext(jobs=1))
	fold.run(parallel, PassContext(jobs=4))
	assert serial.to_units() == parallel.to_units()


# Chain coalescing.

CHAIN = """
unit main {
	trigger 1268 51=g?1
}
unit f entry g?1 {
	trigger 1268 groups(g?1) 51=g?2 63=0.25
}
unit h entry g?2 {
	trigger 901 groups(g?2) 51=g12
}
"""


def test_coalesce_merges_a_private_hop() -> None:
	graph = _graph(CHAIN)
	assert coalesce.run(graph, PassContext()) == 1
	main, f, h = graph.to_units()
	(merged,) = main.objects
	assert merged.target == g(2)
	assert merged.delay == 0.25
	assert merged.cond == TRUE
	assert len(f) == 0
	assert len(h) == 1


def test_coalesce_combines_conditions_without_delay() -> None:
	graph = _graph(
		"""
		unit main {
			trigger 1268 51=g?1 if i5
		}
		unit f entry g?1 {
			trigger 1268 groups(g?1) 51=g?2 if i6
		}
		"""
	)
	assert coalesce.run(graph, PassContext()) == 1
	(merged,) = graph.to_units()[0].objects
	assert merged.cond == And((Var(item(5)), Var(item(6))))


def test_coalesce_refuses_condition_after_delay() -> None:
	graph = _graph(
		"""
		unit main {
			trigger 1268 51=g?1 63=1 if i5
		}
		unit f entry g?1 {
			trigger 1268 groups(g?1) 51=g?2 if i6
		}
		"""
	)
	assert coalesce.run(graph, PassContext()) == 0


def test_coalesce_leaves_shared_or_external_groups() -> None:
	external = _graph(CHAIN.replace("g?1", "g7"))
	assert coalesce.run(external, PassContext()) == 0
	shared = _graph(CHAIN + "unit other {\n\ttrigger 1268 51=g?1\n}\n")
	assert coalesce.run(shared, PassContext()) == 0


def test_coalesce_uses_the_delay_model() -> None:
	graph = _graph(CHAIN.replace("51=g?1", "51=g?1 63=0.01").replace("63=0.25", "63=0.01"))
	coalesce.run(graph, PassContext(delay=DelayModel(fps=60)))
	(merged,) = graph.to_units()[0].objects
	assert merged.delay == 0.0333


# Condition minimization.


def test_minimize_rewrites_only_when_cheaper() -> None:
	graph = _graph(
		"""
		unit main {
			trigger 1268 51=g1 if i1 & i2 | i1 & !i2
			trigger 1268 51=g2 if i1 & i2
		}
		"""
	)
	assert minimize.run(graph, PassContext()) == 1
	first, second = graph.to_units()[0].objects
	assert first.cond == Var(item(1))
	assert second.cond == And((Var(item(1)), Var(item(2))))


# Unit deduplication.

TWINS = """
unit main {
	trigger 1268 51=g?1
	trigger 1268 51=g?2 63=1
}
unit f1 entry g?1 {
	trigger 901 groups(g?1) 51=g20 10=0.5
	trigger 1268 groups(g?1) 51=g?11
}
unit f2 entry g?2 {
	trigger 901 groups(g?2) 51=g20 10=0.5
	trigger 1268 groups(g?2) 51=g?12
}
unit t1 entry g?11 {
	trigger 1006 groups(g?11) 51=c3
}
unit t2 entry g?12 {
	trigger 1006 groups(g?12) 51=c3
}
"""


def test_dedup_shares_identical_units() -> None:
	graph = _graph(TWINS)
	# The tails merge first, which makes the two callers identical.
	assert dedup.run(graph, PassContext()) == 2
	main, f1, f2, t1, t2 = graph.to_units()
	assert [o.target for o in main.objects] == [g(1), g(1)]
	assert f1.objects[1].target == g(11)
	assert len(f2) == 0 and f2.entry is None
	assert len(t2) == 0 and t2.entry is None
	assert len(t1) == 1


def test_dedup_forwards_closed_entries() -> None:
	graph = _graph("closed g?2\n" + TWINS)
	dedup.run(graph, PassContext())
	f2 = graph.to_units()[2]
	assert f2.entry == g(2)
	assert f2.objects == (spawn_trigger((g(2),), g(1)),)


ALL_CLOSED = """
closed g?1 g?2
unit main {
	trigger 1268 51=g?1
	trigger 1268 51=g?2 63=1
}
unit f1 entry g?1 {
	trigger 901 groups(g?1) 51=g20 10=0.5
	trigger 901 groups(g?1) 51=g21
	trigger 1268 groups(g?1) 51=g?11
}
unit f2 entry g?2 {
	trigger 901 groups(g?2) 51=g20 10=0.5
	trigger 901 groups(g?2) 51=g21
	trigger 1268 groups(g?2) 51=g?11
}
unit t entry g?11 {
	trigger 1006 groups(g?11) 51=c3
}
"""


def test_dedup_moves_an_all_closed_class_to_a_fresh_entry() -> None:
	units, closed = parse_units(ALL_CLOSED)

	without = TriggerGraph(units, closed)
	assert dedup.run(without, PassContext()) == 0

	graph = TriggerGraph(units, closed)
	alloc = IdAllocator()
	alloc.mark_used(Namespace.GROUP, 21)
	assert dedup.run(graph, PassContext(allocator=alloc)) == 1
	_, f1, f2, _ = graph.to_units()
	fresh = group(22)
	assert f2.objects == (spawn_trigger((g(2),), fresh),)
	assert f1.objects[0] == spawn_trigger((g(1),), fresh)
	assert [o.groups for o in f1.objects[1:]] == [(fresh,)] * 3


LEVEL_START_TWINS = """
unit a entry g?1 {
	trigger 1817 80=i5 77=1
}
unit b entry g?2 {
	trigger 1817 80=i5 77=1
}
"""


def test_dedup_ignores_units_with_objects_outside_the_entry() -> None:
	assert dedup.run(_graph(LEVEL_START_TWINS), PassContext()) == 0
	decorated = _graph(
		"""
		unit main {
			trigger 1268 51=g?1
			trigger 1268 51=g?2
		}
		unit a entry g?1 {
			trigger 901 groups(g?1) 51=g20
			object 1 groups(g?1) 2=15 3=15
		}
		unit b entry g?2 {
			trigger 901 groups(g?2) 51=g20
			object 1 groups(g?2) 2=15 3=15
		}
		"""
	)
	assert dedup.run(decorated, PassContext()) == 0


def test_level_start_triggers_survive_optimization() -> None:
	units, closed = parse_units(LEVEL_START_TWINS)
	before = simulate(units, closed)
	assert before == [(0.0, ("pickup i5 1", "pickup i5 1"))]
	assert simulate(optimize(units, closed, IdAllocator()), closed) == before
