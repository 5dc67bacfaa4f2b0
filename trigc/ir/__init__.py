# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Trigger-graph IR: target objects, activation conditions and function units.
"""

from __future__ import annotations

from trigc.ir.objects import ObjectMode, TargetObject, spawn_trigger
from trigc.ir.text import parse_units, print_units
from trigc.ir.unit import FunctionUnit, object_count

__all__ = [
	"FunctionUnit",
	"ObjectMode",
	"TargetObject",
	"object_count",
	"parse_units",
	"print_units",
	"spawn_trigger",
]
