# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from trigc.core.ids import ClosedGroups, Namespace, SymbolRef, arbitrary, group
from trigc.ir.text import parse_units
from trigc.opt.graph import TriggerGraph


def g(n: int):
	return arbitrary(Namespace.GROUP, n)


def i(n: int):
	return arbitrary(Namespace.ITEM, n)


PROGRAM = """
unit main {
	trigger 1268 51=g?1
}
unit f entry g?1 {
	trigger 1268 groups(g?1) 51=g?2
	trigger 1817 groups(g?1) 80=i?1 77=1
}
unit h entry g?2 {
	trigger 1811 groups(g?2) 80=i?1 77=0 88=1 51=g?3 56=true
}
"""


def test_edges_are_indexed_by_identifier() -> None:
	graph = TriggerGraph(parse_units(PROGRAM)[0])
	assert graph.readers(g(1)) == [1, 2]
	assert graph.writers(g(1)) == [0]
	assert graph.writers(g(3)) == [3]
	assert graph.signal_writers(i(1)) == [2]
	assert graph.written_signals() == {i(1)}
	assert graph.mentions(g(1)) == 3
	assert [n.handle for n in graph.alive()] == [0, 1, 2, 3]
	assert graph.object_total() == 4


def test_removal_updates_the_indexes() -> None:
	graph = TriggerGraph(parse_units(PROGRAM)[0])
	graph.remove(1)
	assert graph.readers(g(1)) == [2]
	assert graph.writers(g(2)) == []
	units = graph.to_units()
	assert [len(u) for u in units] == [1, 1, 1]
	assert units[1].entry == g(1)


def test_external_identifiers() -> None:
	units, _ = parse_units(
		"""
		unit lib entry g?5 {
			export start = g?5
			trigger 1268 groups(g?5) 51=g?6
		}
		"""
	)
	graph = TriggerGraph(units, ClosedGroups.of([g(9)]))
	assert graph.is_external(g(5))
	assert graph.is_external(g(9))
	assert graph.is_external(group(3))
	assert graph.is_external(SymbolRef(Namespace.GROUP, "nobody"))
	assert not graph.is_external(g(6))
	assert graph.resolve(SymbolRef(Namespace.GROUP, "start")) == g(5)


def test_ambiguous_exports_stay_unresolved() -> None:
	units, _ = parse_units(
		"""
		unit a entry g?1 {
			export start = g?1
		}
		unit b entry g?2 {
			export start = g?2
		}
		"""
	)
	graph = TriggerGraph(units)
	ref = SymbolRef(Namespace.GROUP, "start")
	assert graph.resolve(ref) == ref


def test_cycle_members() -> None:
	units, _ = parse_units(
		"""
		unit main {
			trigger 1268 51=g?1
		}
		unit a entry g?1 {
			trigger 1268 groups(g?1) 51=g?2 63=1
		}
		unit b entry g?2 {
			trigger 1268 groups(g?2) 51=g?1 63=1
		}
		unit c entry g?5 {
			trigger 1268 groups(g?5) 51=g?5
			trigger 1268 groups(g?5) 51=g?6
		}
		"""
	)
	graph = TriggerGraph(units)
	assert graph.cycle_members() == {1, 2, 3}


def test_rename_everywhere_follows_exports() -> None:
	units, _ = parse_units(
		"""
		unit main {
			trigger 1268 51=g?1
		}
		unit f entry g?1 {
			export f = g?1
			trigger 901 groups(g?1) 51=g20
		}
		"""
	)
	graph = TriggerGraph(units)
	graph.rename_everywhere(g(1), g(7))
	assert graph.readers(g(7)) == [1]
	assert graph.meta[1].exports == {"f": g(7)}
	assert graph.to_units()[0].objects[0].target == g(7)
