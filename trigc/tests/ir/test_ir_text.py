# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from pathlib import Path

import pytest

from trigc.core.errors import InvalidFormat, IOFailure
from trigc.core.ids import Id, Namespace, SymbolRef, arbitrary, group, item
from trigc.ir.cond import And, Not, Var
from trigc.ir.objects import ObjectMode
from trigc.ir.text import load_units, parse_id, parse_symbol, parse_units, print_units

SOURCE = """
# front end output
closed g10 i3
unit main entry g1 {
	export done = g?4
	trigger 1268 groups(g1) 51=g?2 63=0.5 if i3 & !i4
	object 1 groups(g?2) 2=15 3=45 21=c5
	trigger 1268 groups(g?2) 51=g@lib.start
}
unit lib entry g?7 {
	export lib.start = g?7
	object 914 groups(g?7) 31="hello, world" 24=[g?7, g2]
}
"""


def test_parse_units() -> None:
	units, closed = parse_units(SOURCE)
	assert [u.name for u in units] == ["main", "lib"]
	assert list(closed) == [group(10), item(3)]

	main = units[0]
	assert main.entry == group(1)
	assert main.exports == {"done": arbitrary(Namespace.GROUP, 4)}
	first, obj, last = main.objects
	assert first.mode is ObjectMode.TRIGGER
	assert first.kind == 1268
	assert first.groups == (group(1),)
	assert first.target == arbitrary(Namespace.GROUP, 2)
	assert first.delay == 0.5
	assert first.cond == And((Var(item(3)), Not(Var(item(4)))))
	assert obj.mode is ObjectMode.OBJECT
	assert obj.params[21] == Id(Namespace.COLOR, 5)
	assert obj.params[2] == 15
	assert last.target == SymbolRef(Namespace.GROUP, "lib.start")

	lib = units[1]
	assert lib.entry == arbitrary(Namespace.GROUP, 7)
	(text_obj,) = lib.objects
	assert text_obj.params[31] == "hello, world"
	assert text_obj.params[24] == (arbitrary(Namespace.GROUP, 7), group(2))


def test_print_then_parse_gives_the_same_units() -> None:
	units, closed = parse_units(SOURCE)
	again, closed_again = parse_units(print_units(units, closed))
	assert again == units
	assert closed_again == closed


def test_id_helpers() -> None:
	assert parse_id("g?12") == arbitrary(Namespace.GROUP, 12)
	assert parse_id("b3") == Id(Namespace.BLOCK, 3)
	assert parse_symbol("i@score") == SymbolRef(Namespace.ITEM, "score")


def test_empty_source_has_no_units() -> None:
	units, closed = parse_units("# nothing here\n")
	assert units == []
	assert len(closed) == 0


@pytest.mark.parametrize(
	"text, message",
	[
		("unit main {\n\ttrigger\n}\n", "IR syntax error"),
		("unit a {\n}\nunit a {\n}\n", "duplicate unit 'a'"),
		("unit a {\n\ttrigger 1268 51=g1 51=g2\n}\n", "duplicate property key 51"),
		("unit a {\n\texport x = g1\n\texport x = g2\n}\n", "exports 'x' twice"),
		("closed g@lib.start\n", "closed identifiers must be"),
	],
)
def test_malformed_ir_is_invalid_format(text: str, message: str) -> None:
	with pytest.raises(InvalidFormat, match=message):
		parse_units(text)


def test_load_units(tmp_path: Path) -> None:
	path = tmp_path / "prog.tir"
	path.write_text(SOURCE, encoding="utf-8")
	units, _ = load_units(path)
	assert len(units) == 2
	with pytest.raises(IOFailure, match="cannot read IR file") as excinfo:
		load_units(tmp_path / "missing.tir")
	assert excinfo.value.transient is False
