# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Linking: flatten function units, then merge the result into a level listing."""

from __future__ import annotations

from trigc.link.flatten import flatten
from trigc.link.merge import merge, scan_usage, strip_prior_generation

__all__ = ["flatten", "merge", "scan_usage", "strip_prior_generation"]
