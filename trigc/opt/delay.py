# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

# Delays are stored with this many decimals on the wire.
DELAY_PRECISION = 4


@dataclass(frozen=True)
class DelayModel:
	"""
	How two consecutive spawn delays combine into one.

	With `fps` unset the delays add and the sum is rounded to the wire
	precision. With `fps` set each delay is first snapped to whole frames, which
	is how the substrate actually schedules delayed activations.
	"""

	fps: Optional[float] = None
	precision: int = DELAY_PRECISION

	def __post_init__(self) -> None:
		if self.fps is not None and self.fps <= 0:
			raise ValueError(f"delay fps must be positive, got {self.fps}")

	def snap(self, delay: float) -> float:
		if self.fps is None:
			return round(delay, self.precision)
		return round(round(delay * self.fps) / self.fps, self.precision)

	def combine(self, a: float, b: float) -> float:
		if self.fps is None:
			return round(a + b, self.precision)
		frames = round(a * self.fps) + round(b * self.fps)
		return round(frames / self.fps, self.precision)


__all__ = ["DelayModel", "DELAY_PRECISION"]
