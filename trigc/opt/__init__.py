# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Trigger-graph optimizer and the reference simulator used to check it."""

from __future__ import annotations

from trigc.opt.delay import DelayModel
from trigc.opt.optimizer import OptimizeResult, optimize, run_optimizer
from trigc.opt.simulate import equivalent, simulate

__all__ = ["DelayModel", "OptimizeResult", "equivalent", "optimize", "run_optimizer", "simulate"]
