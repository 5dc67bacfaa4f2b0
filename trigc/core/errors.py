# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Typed failures surfaced by the backend.

Every failure is detected as close to its cause as possible and propagated
unchanged to the build driver, which renders it either as a human line or as a
JSON object (`to_dict`). Only `IOFailure` is ever retried, and only by the
driver.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class TrigcError(Exception):
	"""
	A structured, serializable backend error.

	`reason_code` is stable across releases; `message` is for humans.
	"""

	message: str
	reason_code: str = "TRIGC_ERROR"
	level_name: str | None = None
	artifact_path: str | None = None
	namespace: str | None = None
	symbol: str | None = None

	def __str__(self) -> str:
		return self.format_human()

	def to_dict(self) -> dict[str, Any]:
		return {
			"reason_code": self.reason_code,
			"message": self.message,
			"level_name": self.level_name,
			"artifact_path": self.artifact_path,
			"namespace": self.namespace,
			"symbol": self.symbol,
		}

	def format_human(self) -> str:
		parts: list[str] = [f"[{self.reason_code}] {self.message}"]
		if self.level_name is not None:
			parts.append(f"level_name={self.level_name!r}")
		if self.namespace:
			parts.append(f"namespace={self.namespace}")
		if self.symbol:
			parts.append(f"symbol={self.symbol}")
		if self.artifact_path:
			parts.append(f"artifact_path={self.artifact_path}")
		return " ".join(parts)


@dataclass(frozen=True)
class InvalidFormat(TrigcError):
	"""Malformed or corrupt container, payload, listing or textual IR."""

	reason_code: str = "INVALID_FORMAT"


@dataclass(frozen=True)
class NotFound(TrigcError):
	"""The requested level is absent from the container."""

	reason_code: str = "NOT_FOUND"


@dataclass(frozen=True)
class CapacityExceeded(TrigcError):
	"""An identifier namespace has no free value left."""

	reason_code: str = "CAPACITY_EXCEEDED"


@dataclass(frozen=True)
class UnresolvedReference(TrigcError):
	"""A symbol referenced by generated IR is not exposed by any unit."""

	reason_code: str = "UNRESOLVED_REFERENCE"


@dataclass(frozen=True)
class ConditionTooLarge(TrigcError):
	"""An activation condition expands to too many terms to lower into helper triggers."""

	reason_code: str = "CONDITION_TOO_LARGE"


@dataclass(frozen=True)
class IOFailure(TrigcError):
	"""Reading or writing the save artifact failed; the artifact is left intact."""

	reason_code: str = "IO_FAILURE"
	transient: bool = True


@dataclass(frozen=True)
class LockError(IOFailure):
	"""Another build holds the artifact lock."""

	reason_code: str = "ARTIFACT_LOCKED"
	transient: bool = False


__all__ = [
	"TrigcError",
	"InvalidFormat",
	"NotFound",
	"CapacityExceeded",
	"ConditionTooLarge",
	"UnresolvedReference",
	"IOFailure",
	"LockError",
]
