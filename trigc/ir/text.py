# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Textual form of the trigger-graph IR.

This is the interchange format between the language front end and the
backend. A file holds `closed` declarations and `unit` blocks:

	closed g10 g11 i3
	unit main entry g1 {
		export done = g?4
		trigger 1268 groups(g1) 51=g?2 63=0.5 if i3 & !i4
		object 1 groups(g?2) 2=15 3=45 21=c5
		trigger 1268 groups(g?2) 51=g@lib.start
	}

`gN`/`cN`/`bN`/`iN` are specific identifiers, `g?N` arbitrary placeholders,
`g@name` a reference to another unit's export, `[g1, g?2]` a list.
"""

from __future__ import annotations

import ast
import json
from pathlib import Path
from typing import Dict, List, Tuple

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedInput

from trigc.core.errors import InvalidFormat, IOFailure
from trigc.core.ids import ClosedGroups, Id, Namespace, SymbolRef
from trigc.ir.cond import FALSE, TRUE, And, Expr, Not, Or, Var, format_expr
from trigc.ir.objects import GROUPS, OBJ_ID, ObjectMode, ParamValue, Ref, TargetObject
from trigc.ir.unit import FunctionUnit

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()

_PARSER = Lark(
	_GRAMMAR_SRC,
	parser="lalr",
	start="start",
	propagate_positions=True,
	maybe_placeholders=False,
)


def parse_id(text: str) -> Id:
	ns = Namespace.from_prefix(text[0])
	if text[1] == "?":
		return Id(ns, int(text[2:]), arbitrary=True)
	return Id(ns, int(text[1:]))


def parse_symbol(text: str) -> SymbolRef:
	prefix, name = text.split("@", 1)
	return SymbolRef(Namespace.from_prefix(prefix), name)


def parse_units(text: str) -> Tuple[List[FunctionUnit], ClosedGroups]:
	"""Parse IR text into function units and the closed identifier set."""
	try:
		tree = _PARSER.parse(text)
	except UnexpectedInput as exc:
		raise InvalidFormat(f"IR syntax error at line {exc.line}, column {exc.column}") from exc
	try:
		return _build_start(tree)
	except ValueError as exc:
		raise InvalidFormat(f"invalid IR: {exc}") from exc


def load_units(path: Path) -> Tuple[List[FunctionUnit], ClosedGroups]:
	try:
		text = Path(path).read_text(encoding="utf-8")
	except OSError as exc:
		raise IOFailure(f"cannot read IR file: {exc}", artifact_path=str(path), transient=False) from exc
	return parse_units(text)


def _name(node: Tree | Token) -> str:
	if isinstance(node, Tree):
		data = node.data
		if isinstance(data, Token):
			return data.value
		return data
	return node.type


def _line(tree: Tree) -> int:
	return getattr(tree.meta, "line", 0)


def _build_start(tree: Tree) -> Tuple[List[FunctionUnit], ClosedGroups]:
	units: List[FunctionUnit] = []
	closed: List[Id] = []
	names: set = set()
	for child in tree.children:
		kind = _name(child)
		if kind == "closed":
			for ref in child.children:
				r = _build_ref(ref)
				if not isinstance(r, Id):
					raise ValueError(f"line {_line(child)}: closed identifiers must be concrete or arbitrary ids, got {r}")
				closed.append(r)
		elif kind == "unit":
			unit = _build_unit(child)
			if unit.name in names:
				raise ValueError(f"line {_line(child)}: duplicate unit '{unit.name}'")
			names.add(unit.name)
			units.append(unit)
	return units, ClosedGroups.of(closed)


def _build_unit(tree: Tree) -> FunctionUnit:
	children = list(tree.children)
	name = children[0].value
	entry = None
	objects: List[TargetObject] = []
	exports: Dict[str, Id] = {}
	for child in children[1:]:
		kind = _name(child)
		if kind == "entry":
			entry = parse_id(child.children[0].value)
		elif kind == "export":
			export_name = child.children[0].value
			if export_name in exports:
				raise ValueError(f"line {_line(child)}: unit '{name}' exports '{export_name}' twice")
			exports[export_name] = parse_id(child.children[1].value)
		elif kind == "trigger":
			objects.append(_build_object(child, ObjectMode.TRIGGER))
		elif kind == "object":
			objects.append(_build_object(child, ObjectMode.OBJECT))
	return FunctionUnit(name=name, objects=tuple(objects), entry=entry, exports=exports)


def _build_object(tree: Tree, mode: ObjectMode) -> TargetObject:
	children = list(tree.children)
	params: Dict[int, ParamValue] = {OBJ_ID: int(children[0].value)}
	cond: Expr = TRUE

	def put(key: int, value: ParamValue) -> None:
		if key in params:
			raise ValueError(f"line {_line(tree)}: duplicate property key {key}")
		params[key] = value

	for child in children[1:]:
		kind = _name(child)
		if kind == "groups":
			put(GROUPS, tuple(_build_ref(r) for r in child.children))
		elif kind == "param":
			key_tok, value = child.children
			put(int(key_tok.value), _build_value(value))
		elif kind == "cond":
			cond = _build_expr(child.children[0])
	return TargetObject(params=params, mode=mode, cond=cond)


def _build_ref(node: Tree) -> Ref:
	tok = node.children[0]
	if _name(node) == "id_ref":
		return parse_id(tok.value)
	return parse_symbol(tok.value)


def _build_value(node: Tree | Token) -> ParamValue:
	kind = _name(node)
	if kind in ("id_ref", "sym_ref"):
		return _build_ref(node)
	if kind == "list":
		return tuple(_build_ref(r) for r in node.children)
	if kind == "number":
		raw = node.children[0].value
		if any(c in raw for c in ".eE"):
			return float(raw)
		return int(raw)
	if kind == "string":
		return ast.literal_eval(node.children[0].value)
	if kind == "true":
		return True
	if kind == "false":
		return False
	raise ValueError(f"unexpected value node {kind}")


def _build_expr(node: Tree) -> Expr:
	kind = _name(node)
	if kind == "signal":
		return Var(parse_id(node.children[0].value))
	if kind == "sym_signal":
		return Var(parse_symbol(node.children[0].value))
	if kind == "const_true":
		return TRUE
	if kind == "const_false":
		return FALSE
	if kind == "not_":
		return Not(_build_expr(node.children[0]))
	left, right = (_build_expr(c) for c in node.children)
	if kind == "and_":
		return And((left, right))
	if kind == "or_":
		return Or((left, right))
	raise ValueError(f"unexpected condition node {kind}")


def _format_param(value: ParamValue) -> str:
	if isinstance(value, bool):
		return "true" if value else "false"
	if isinstance(value, (int, float)):
		return repr(value)
	if isinstance(value, str):
		return json.dumps(value)
	if isinstance(value, (Id, SymbolRef)):
		return str(value)
	return "[" + ", ".join(str(v) for v in value) + "]"


def print_units(units: List[FunctionUnit], closed: ClosedGroups | None = None) -> str:
	"""Render units back to IR text; `parse_units` reads the result back."""
	lines: List[str] = []
	if closed:
		lines.append("closed " + " ".join(str(i) for i in closed))
	for unit in units:
		head = f"unit {unit.name}"
		if unit.entry is not None:
			head += f" entry {unit.entry}"
		lines.append(head + " {")
		for name, ident in unit.exports.items():
			lines.append(f"\texport {name} = {ident}")
		for obj in unit.objects:
			word = "trigger" if obj.is_trigger else "object"
			parts = [word, str(obj.params.get(OBJ_ID, 0))]
			if GROUPS in obj.params:
				parts.append("groups(" + ", ".join(str(g) for g in obj.groups) + ")")
			for key in sorted(obj.params):
				if key in (OBJ_ID, GROUPS):
					continue
				parts.append(f"{key}={_format_param(obj.params[key])}")
			if obj.cond != TRUE:
				parts.append("if " + format_expr(obj.cond))
			lines.append("\t" + " ".join(parts))
		lines.append("}")
	return "\n".join(lines) + "\n"


__all__ = ["parse_units", "load_units", "print_units", "parse_id", "parse_symbol"]
