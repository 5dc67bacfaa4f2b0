# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Target objects: the unit of compiled output.

A `TargetObject` is a bag of integer-keyed properties plus, for triggers, an
activation condition. The condition never reaches the wire directly; the
flattener lowers it into helper instant-count triggers.

Property keys and object kinds below are substrate constants. Only the keys
the backend reasons about are named; every other key is carried through
untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, Iterator, Mapping, Optional, Tuple, Union

from trigc.core.ids import Id, Namespace, SymbolRef
from trigc.ir.cond import TRUE, Expr, rename_signals, variables

# Property keys.
OBJ_ID = 1
X = 2
Y = 3
MAIN_COLOR = 21
SECONDARY_COLOR = 22
COLOR_TARGET = 23
COPY_COLOR = 50
TARGET = 51
PULSE_TARGET_TYPE = 52
ACTIVATE_GROUP = 56
GROUPS = 57
SPAWN_TRIGGERED = 62
SPAWN_DELAY = 63
CENTER_GROUP = 71
COUNT = 77
ITEM = 80
MULTI_TRIGGER = 87
COMPARISON = 88
BLOCK_B = 95
LINKED_GROUP = 108

# Generation marker: objects emitted by this compiler carry `108,635` so the
# next build can strip them before merging again.
MARKER_KEY = LINKED_GROUP
MARKER_VALUE = 635

# Object kinds.
SPAWN = 1268
TOGGLE = 1049
INSTANT_COUNT = 1811
PICKUP = 1817
COLLISION = 1815
COLLISION_BLOCK = 1816
COUNT_TRIGGER = 1611
TOUCH = 1595
COLOR = 899
PULSE = 1006
MOVE = 901
STOP = 1616
ITEM_DISPLAY = 1615

# Kinds that activate their TARGET group (spawn semantics).
ACTIVATING_KINDS = frozenset({SPAWN, INSTANT_COUNT, COUNT_TRIGGER, COLLISION, TOUCH})
# Kinds whose ITEM key refers to an item counter (not a collision block).
ITEM_KINDS = frozenset({INSTANT_COUNT, PICKUP, COUNT_TRIGGER, ITEM_DISPLAY})
BLOCK_KINDS = frozenset({COLLISION, COLLISION_BLOCK})

# Instant count comparison modes.
CMP_EQUALS = 0
CMP_LARGER = 1
CMP_SMALLER = 2

# Keys that only position an object in the editor.
LAYOUT_KEYS = frozenset({X, Y})

Ref = Union[Id, SymbolRef]
ParamValue = Union[bool, int, float, str, Id, SymbolRef, Tuple[Ref, ...]]


class ObjectMode(Enum):
	OBJECT = "object"
	TRIGGER = "trigger"


def namespace_of(kind: int | None, key: int, params: Optional[Dict[int, str]] = None) -> Namespace | None:
	"""
	Namespace of the identifier stored under `key` on an object of `kind`.

	Used when scanning raw listings, where values are plain integers. `params`
	(raw string values) disambiguates pulse triggers, whose target is a color
	channel unless the target-type flag is set.
	"""
	if key == GROUPS or key == CENTER_GROUP:
		return Namespace.GROUP
	if key in (MAIN_COLOR, SECONDARY_COLOR, COLOR_TARGET, COPY_COLOR):
		return Namespace.COLOR
	if key == TARGET:
		if kind == COLOR:
			return Namespace.COLOR
		if kind == PULSE:
			flag = (params or {}).get(PULSE_TARGET_TYPE, "0")
			return Namespace.GROUP if flag not in ("", "0") else Namespace.COLOR
		return Namespace.GROUP
	if key == ITEM:
		if kind in BLOCK_KINDS:
			return Namespace.BLOCK
		if kind in ITEM_KINDS:
			return Namespace.ITEM
		return None
	if key == BLOCK_B:
		return Namespace.BLOCK
	return None


def format_float(value: float) -> str:
	if value == int(value):
		return str(int(value))
	return f"{value:.4f}".rstrip("0").rstrip(".")


def format_value(value: ParamValue) -> str:
	"""Wire form of a resolved, materialized value."""
	if isinstance(value, bool):
		return "1" if value else "0"
	if isinstance(value, int):
		return str(value)
	if isinstance(value, float):
		return format_float(value)
	if isinstance(value, str):
		return value
	if isinstance(value, Id):
		if value.arbitrary:
			raise ValueError(f"cannot serialize unmaterialized identifier {value}")
		return str(value.value)
	if isinstance(value, SymbolRef):
		raise ValueError(f"cannot serialize unresolved symbol reference {value}")
	if isinstance(value, tuple):
		return ".".join(format_value(v) for v in value)
	raise TypeError(f"unsupported parameter value {value!r}")


def map_refs(value: ParamValue, fn: Callable[[Ref], Ref]) -> ParamValue:
	if isinstance(value, (Id, SymbolRef)):
		return fn(value)
	if isinstance(value, tuple):
		return tuple(fn(v) for v in value)
	return value


def iter_refs(value: ParamValue) -> Iterator[Ref]:
	if isinstance(value, (Id, SymbolRef)):
		yield value
	elif isinstance(value, tuple):
		for v in value:
			yield v


@dataclass
class TargetObject:
	"""
	One placed object or trigger.

	Instances are treated as values: rewrites build new objects through
	`with_param`, `without_param`, `with_cond` and `renamed` instead of mutating.
	"""

	params: Dict[int, ParamValue] = field(default_factory=dict)
	mode: ObjectMode = ObjectMode.OBJECT
	cond: Expr = TRUE

	def __post_init__(self) -> None:
		if self.mode is ObjectMode.OBJECT and self.cond != TRUE:
			raise ValueError("only triggers carry an activation condition")

	@property
	def is_trigger(self) -> bool:
		return self.mode is ObjectMode.TRIGGER

	@property
	def kind(self) -> int | None:
		k = self.params.get(OBJ_ID)
		return k if isinstance(k, int) and not isinstance(k, bool) else None

	@property
	def groups(self) -> Tuple[Ref, ...]:
		raw = self.params.get(GROUPS, ())
		if isinstance(raw, (Id, SymbolRef)):
			return (raw,)
		if isinstance(raw, tuple):
			return raw
		return ()

	@property
	def target(self) -> Ref | None:
		t = self.params.get(TARGET)
		return t if isinstance(t, (Id, SymbolRef)) else None

	@property
	def delay(self) -> float:
		d = self.params.get(SPAWN_DELAY, 0)
		if isinstance(d, bool) or not isinstance(d, (int, float)):
			return 0.0
		return float(d)

	@property
	def is_spawn_triggered(self) -> bool:
		"""
		Whether the trigger fires on activation of one of its groups.

		An explicit key 62 wins; otherwise a trigger placed in any group is
		spawn-triggered and a group-less trigger fires at level start.
		"""
		if not self.is_trigger:
			return False
		if SPAWN_TRIGGERED in self.params:
			return bool(self.params[SPAWN_TRIGGERED])
		return bool(self.groups)

	@property
	def activates_target(self) -> bool:
		if not self.is_trigger or self.kind not in ACTIVATING_KINDS:
			return False
		if self.kind == SPAWN:
			return True
		return bool(self.params.get(ACTIVATE_GROUP, False))

	def refs(self) -> Iterator[tuple[int, Ref]]:
		"""Every (key, identifier) the object mentions, in key order; conditions use key 0."""
		for key in sorted(self.params):
			for r in iter_refs(self.params[key]):
				yield key, r
		for sig in variables(self.cond):
			yield 0, sig

	def ids(self) -> list[Ref]:
		"""Distinct identifiers the object mentions, first occurrence first."""
		out: list[Ref] = []
		for _, r in self.refs():
			if r not in out:
				out.append(r)
		return out

	def with_param(self, key: int, value: ParamValue) -> "TargetObject":
		params = dict(self.params)
		params[key] = value
		return replace(self, params=params)

	def without_param(self, key: int) -> "TargetObject":
		params = dict(self.params)
		params.pop(key, None)
		return replace(self, params=params)

	def with_cond(self, cond: Expr) -> "TargetObject":
		return replace(self, cond=cond)

	def renamed(self, fn: Callable[[Ref], Ref]) -> "TargetObject":
		params = {k: map_refs(v, fn) for k, v in self.params.items()}
		cond = rename_signals(self.cond, fn)
		return TargetObject(params=params, mode=self.mode, cond=cond)

	def rename(self, mapping: Mapping[Ref, Ref]) -> "TargetObject":
		return self.renamed(lambda r: mapping.get(r, r))


def spawn_trigger(groups: Tuple[Ref, ...], target: Ref, delay: float = 0.0, cond: Expr = TRUE) -> TargetObject:
	params: Dict[int, ParamValue] = {OBJ_ID: SPAWN, GROUPS: tuple(groups), TARGET: target}
	if delay:
		params[SPAWN_DELAY] = delay
	return TargetObject(params=params, mode=ObjectMode.TRIGGER, cond=cond)


__all__ = [
	"TargetObject",
	"ObjectMode",
	"ParamValue",
	"Ref",
	"namespace_of",
	"format_value",
	"format_float",
	"map_refs",
	"iter_refs",
	"spawn_trigger",
]
