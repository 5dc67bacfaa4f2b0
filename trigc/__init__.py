# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
trigc: trigger-graph compiler backend.

Stages:
  ir:    function units, target objects, conditions (+ textual IR reader)
  opt:   graph optimizer over the trigger arena
  link:  flattening/lowering and merging into a level listing
  level: save artifact codec and failure-atomic persistence

The CLI entrypoint is `trigc.driver:main`.
"""

__all__ = ["core", "ir", "opt", "link", "level"]
