# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

from trigc.alloc import IdAllocator
from trigc.opt.delay import DelayModel
from trigc.opt.graph import TriggerGraph


@dataclass
class PassContext:
	allocator: Optional[IdAllocator] = None
	delay: DelayModel = field(default_factory=DelayModel)
	jobs: int = 1


PassFn = Callable[[TriggerGraph, PassContext], int]

__all__ = ["PassContext", "PassFn"]
