# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Activation conditions as a small tagged-variant expression tree.

A *signal* is an identifier-active predicate: "item counter `i` is non-zero".
Conditions are boolean combinations of signals:

  Const(True|False) | Var(signal) | Not(e) | And(e, ...) | Or(e, ...)

All functions here are pure and total over the tree:

- `simplify` applies idempotence, absorption, complement elimination, constant
  propagation, double negation and flattening until nothing changes;
- `minimize` computes a minimal-term sum of products (Quine-McCluskey prime
  implicants, essential primes first, then a greedy cover) for conditions over
  at most `MAX_EXACT_VARS` signals and falls back to `simplify` above that;
- `lowering_terms`/`cost` describe the helper triggers the flattener emits
  for a condition (see `trigc.link.flatten`).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from trigc.core.errors import ConditionTooLarge
from trigc.core.ids import NAMESPACE_ORDER, Id, SymbolRef

Signal = Union[Id, SymbolRef]
Literal = Tuple[Signal, bool]
Term = Tuple[Literal, ...]

MAX_EXACT_VARS = 10
MAX_DNF_TERMS = 4096


@dataclass(frozen=True)
class Const:
	value: bool


@dataclass(frozen=True)
class Var:
	signal: Signal


@dataclass(frozen=True)
class Not:
	operand: "Expr"


@dataclass(frozen=True)
class And:
	operands: Tuple["Expr", ...]


@dataclass(frozen=True)
class Or:
	operands: Tuple["Expr", ...]


Expr = Union[Const, Var, Not, And, Or]

TRUE = Const(True)
FALSE = Const(False)


def signal_sort_key(sig: Signal) -> tuple:
	if isinstance(sig, Id):
		return (0, NAMESPACE_ORDER.index(sig.namespace), 1 if sig.arbitrary else 0, sig.value, "")
	return (1, NAMESPACE_ORDER.index(sig.namespace), 0, 0, sig.name)


def conj(*operands: Expr) -> Expr:
	if not operands:
		return TRUE
	if len(operands) == 1:
		return operands[0]
	return And(tuple(operands))


def disj(*operands: Expr) -> Expr:
	if not operands:
		return FALSE
	if len(operands) == 1:
		return operands[0]
	return Or(tuple(operands))


def neg(operand: Expr) -> Expr:
	if isinstance(operand, Not):
		return operand.operand
	if isinstance(operand, Const):
		return Const(not operand.value)
	return Not(operand)


def variables(expr: Expr) -> List[Signal]:
	"""Signals in first-occurrence order, without duplicates."""
	out: List[Signal] = []
	seen: set = set()
	stack: List[Expr] = [expr]
	while stack:
		e = stack.pop()
		if isinstance(e, Var):
			if e.signal not in seen:
				seen.add(e.signal)
				out.append(e.signal)
		elif isinstance(e, Not):
			stack.append(e.operand)
		elif isinstance(e, (And, Or)):
			stack.extend(reversed(e.operands))
	return out


def evaluate(expr: Expr, env: Mapping[Signal, bool]) -> bool:
	"""Evaluate with `env`; signals missing from `env` read as inactive."""
	if isinstance(expr, Const):
		return expr.value
	if isinstance(expr, Var):
		return bool(env.get(expr.signal, False))
	if isinstance(expr, Not):
		return not evaluate(expr.operand, env)
	if isinstance(expr, And):
		return all(evaluate(op, env) for op in expr.operands)
	if isinstance(expr, Or):
		return any(evaluate(op, env) for op in expr.operands)
	raise TypeError(f"not a condition expression: {expr!r}")


def rename_signals(expr: Expr, fn: Callable[[Signal], Signal]) -> Expr:
	if isinstance(expr, Const):
		return expr
	if isinstance(expr, Var):
		return Var(fn(expr.signal))
	if isinstance(expr, Not):
		return Not(rename_signals(expr.operand, fn))
	if isinstance(expr, And):
		return And(tuple(rename_signals(op, fn) for op in expr.operands))
	return Or(tuple(rename_signals(op, fn) for op in expr.operands))


def substitute(expr: Expr, env: Mapping[Signal, bool]) -> Expr:
	"""Partially evaluate: signals in `env` become constants, then simplify."""

	def go(e: Expr) -> Expr:
		if isinstance(e, Var) and e.signal in env:
			return Const(bool(env[e.signal]))
		if isinstance(e, Not):
			return Not(go(e.operand))
		if isinstance(e, And):
			return And(tuple(go(op) for op in e.operands))
		if isinstance(e, Or):
			return Or(tuple(go(op) for op in e.operands))
		return e

	return simplify(go(expr))


def _complement(e: Expr) -> Expr:
	return e.operand if isinstance(e, Not) else Not(e)


def _simplify_once(expr: Expr) -> Expr:
	if isinstance(expr, (Const, Var)):
		return expr
	if isinstance(expr, Not):
		inner = _simplify_once(expr.operand)
		if isinstance(inner, Const):
			return Const(not inner.value)
		if isinstance(inner, Not):
			return inner.operand
		return Not(inner)

	is_and = isinstance(expr, And)
	node_type = And if is_and else Or
	dual_type = Or if is_and else And
	unit, zero = (TRUE, FALSE) if is_and else (FALSE, TRUE)

	flat: List[Expr] = []
	for op in expr.operands:
		op = _simplify_once(op)
		if isinstance(op, node_type):
			flat.extend(op.operands)
		else:
			flat.append(op)

	out: List[Expr] = []
	for op in flat:
		if op == zero:
			return zero
		if op == unit or op in out:
			continue
		out.append(op)

	for op in out:
		if _complement(op) in out:
			return zero

	# Absorption: a ∧ (a ∨ b) = a, a ∨ (a ∧ b) = a.
	kept: List[Expr] = []
	for idx, op in enumerate(out):
		if isinstance(op, dual_type) and any(other in op.operands for j, other in enumerate(out) if j != idx):
			continue
		kept.append(op)

	if not kept:
		return unit
	if len(kept) == 1:
		return kept[0]
	return node_type(tuple(kept))


def simplify(expr: Expr) -> Expr:
	cur = expr
	for _ in range(64):
		nxt = _simplify_once(cur)
		if nxt == cur:
			return nxt
		cur = nxt
	return cur


def to_nnf(expr: Expr) -> Expr:
	"""Negation normal form: `Not` only directly above `Var`."""
	if isinstance(expr, (Const, Var)):
		return expr
	if isinstance(expr, And):
		return And(tuple(to_nnf(op) for op in expr.operands))
	if isinstance(expr, Or):
		return Or(tuple(to_nnf(op) for op in expr.operands))
	inner = expr.operand
	if isinstance(inner, Const):
		return Const(not inner.value)
	if isinstance(inner, Var):
		return expr
	if isinstance(inner, Not):
		return to_nnf(inner.operand)
	if isinstance(inner, And):
		return Or(tuple(to_nnf(Not(op)) for op in inner.operands))
	return And(tuple(to_nnf(Not(op)) for op in inner.operands))


def _merge_terms(a: Term, b: Term) -> Optional[Term]:
	lits = list(a)
	for sig, pos in b:
		if (sig, not pos) in lits:
			return None
		if (sig, pos) not in lits:
			lits.append((sig, pos))
	return tuple(lits)


def _dnf(expr: Expr) -> List[Term]:
	if isinstance(expr, Const):
		return [()] if expr.value else []
	if isinstance(expr, Var):
		return [((expr.signal, True),)]
	if isinstance(expr, Not):
		# Only reachable for Not(Var) after to_nnf.
		return [((expr.operand.signal, False),)]  # type: ignore[union-attr]
	if isinstance(expr, Or):
		out: List[Term] = []
		for op in expr.operands:
			out.extend(_dnf(op))
		return out
	acc: List[Term] = [()]
	for op in expr.operands:
		nxt: List[Term] = []
		for t in acc:
			for u in _dnf(op):
				merged = _merge_terms(t, u)
				if merged is not None:
					nxt.append(merged)
		if len(nxt) > MAX_DNF_TERMS:
			raise ConditionTooLarge(f"condition expands to more than {MAX_DNF_TERMS} terms")
		acc = nxt
	return acc


def dnf_terms(expr: Expr) -> List[Term]:
	"""
	Sum-of-products form: `[]` is FALSE, `[()]` is TRUE.

	Duplicate terms and terms absorbed by a smaller term are dropped; the
	remaining order follows the expression.
	"""
	terms = _dnf(to_nnf(simplify(expr)))
	sets = [frozenset(t) for t in terms]
	out: List[Term] = []
	out_sets: List[frozenset] = []
	for t, s in zip(terms, sets):
		if not s:
			return [()]
		if s in out_sets:
			continue
		if any(other < s for other in sets):
			continue
		out.append(t)
		out_sets.append(s)
	return out


def to_dnf(expr: Expr) -> Expr:
	return from_terms(dnf_terms(expr))


def lowering_terms(expr: Expr) -> List[Term]:
	"""Terms in the order the flattener lowers them (largest term last)."""
	terms = dnf_terms(expr)
	return sorted(terms, key=len)


def lowering_cost(terms: Iterable[Term]) -> int:
	"""
	Helper triggers needed for an if/else chain over `terms`.

	Every literal of a non-final term needs a pass and a fail check; the final
	term only needs pass checks.
	"""
	terms = list(terms)
	if not terms or terms == [()]:
		return 0
	return sum(2 * len(t) for t in terms) - len(terms[-1])


def cost(expr: Expr) -> int:
	"""Helper triggers needed to lower `expr`; oversized conditions get an upper bound."""
	try:
		return lowering_cost(lowering_terms(expr))
	except ConditionTooLarge:
		return 2 * MAX_DNF_TERMS * max(1, len(variables(expr)))


def literal_expr(lit: Literal) -> Expr:
	sig, pos = lit
	return Var(sig) if pos else Not(Var(sig))


def from_terms(terms: Iterable[Term]) -> Expr:
	products = [conj(*(literal_expr(l) for l in t)) for t in terms]
	if any(p == TRUE for p in products):
		return TRUE
	return disj(*products)


def _combine(a: str, b: str) -> Optional[str]:
	diff = -1
	for idx, (x, y) in enumerate(zip(a, b)):
		if x != y:
			if x == "-" or y == "-" or diff != -1:
				return None
			diff = idx
	if diff == -1:
		return None
	return a[:diff] + "-" + a[diff + 1:]


def _prime_implicants(minterms: List[int], width: int) -> List[str]:
	current = sorted({format(m, f"0{width}b") for m in minterms})
	primes: set = set()
	while current:
		used: set = set()
		nxt: set = set()
		by_ones: Dict[int, List[str]] = {}
		for imp in current:
			by_ones.setdefault(imp.count("1"), []).append(imp)
		for ones in sorted(by_ones):
			for a in by_ones[ones]:
				for b in by_ones.get(ones + 1, []):
					merged = _combine(a, b)
					if merged is not None:
						used.add(a)
						used.add(b)
						nxt.add(merged)
		primes.update(imp for imp in current if imp not in used)
		current = sorted(nxt)
	return sorted(primes, key=lambda p: (width - p.count("-"), p))


def _covers(imp: str, minterm: str) -> bool:
	return all(c == "-" or c == m for c, m in zip(imp, minterm))


def _select_cover(primes: List[str], minterms: List[str]) -> List[str]:
	remaining = set(minterms)
	chosen: List[str] = []
	for m in minterms:
		covering = [p for p in primes if _covers(p, m)]
		if len(covering) == 1 and covering[0] not in chosen:
			chosen.append(covering[0])
	for p in chosen:
		remaining -= {m for m in remaining if _covers(p, m)}
	while remaining:
		best = max(
			(p for p in primes if p not in chosen),
			key=lambda p: (sum(1 for m in remaining if _covers(p, m)), p.count("-"), [-ord(c) for c in p]),
		)
		chosen.append(best)
		remaining -= {m for m in remaining if _covers(best, m)}
	return chosen


def minimize(expr: Expr) -> Expr:
	simplified = simplify(expr)
	if isinstance(simplified, Const):
		return simplified
	sigs = sorted(variables(simplified), key=signal_sort_key)
	width = len(sigs)
	if width > MAX_EXACT_VARS:
		return simplified
	minterms: List[str] = []
	for m in range(1 << width):
		bits = format(m, f"0{width}b")
		env = {sig: bit == "1" for sig, bit in zip(sigs, bits)}
		if evaluate(simplified, env):
			minterms.append(bits)
	if not minterms:
		return FALSE
	if len(minterms) == 1 << width:
		return TRUE
	primes = _prime_implicants([int(m, 2) for m in minterms], width)
	cover = _select_cover(primes, minterms)
	terms: List[Term] = []
	for imp in cover:
		terms.append(tuple((sig, c == "1") for sig, c in zip(sigs, imp) if c != "-"))
	terms.sort(key=len)
	return from_terms(terms)


def format_expr(expr: Expr) -> str:
	def go(e: Expr, prec: int) -> str:
		if isinstance(e, Const):
			return "true" if e.value else "false"
		if isinstance(e, Var):
			return str(e.signal)
		if isinstance(e, Not):
			return "!" + go(e.operand, 3)
		if isinstance(e, And):
			text = " & ".join(go(op, 2) for op in e.operands)
			return f"({text})" if prec > 2 else text
		text = " | ".join(go(op, 1) for op in e.operands)
		return f"({text})" if prec > 1 else text

	return go(expr, 0)


__all__ = [
	"Expr",
	"Const",
	"Var",
	"Not",
	"And",
	"Or",
	"TRUE",
	"FALSE",
	"Signal",
	"Term",
	"conj",
	"disj",
	"neg",
	"variables",
	"evaluate",
	"substitute",
	"rename_signals",
	"simplify",
	"to_nnf",
	"dnf_terms",
	"to_dnf",
	"lowering_terms",
	"lowering_cost",
	"cost",
	"from_terms",
	"minimize",
	"format_expr",
	"signal_sort_key",
	"MAX_EXACT_VARS",
]
