# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Core value types shared by every stage: identifiers, usage counters, errors."""

from trigc.core.errors import (
	CapacityExceeded,
	ConditionTooLarge,
	InvalidFormat,
	IOFailure,
	LockError,
	NotFound,
	TrigcError,
	UnresolvedReference,
)
from trigc.core.ids import ClosedGroups, Id, Namespace, SymbolRef
from trigc.core.usage import UsageCounters

__all__ = [
	"CapacityExceeded",
	"ClosedGroups",
	"ConditionTooLarge",
	"Id",
	"InvalidFormat",
	"IOFailure",
	"LockError",
	"Namespace",
	"NotFound",
	"SymbolRef",
	"TrigcError",
	"UnresolvedReference",
	"UsageCounters",
]
