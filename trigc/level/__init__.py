# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Save artifact: container codec, level listings and failure-atomic persistence."""

from __future__ import annotations

from trigc.level.codec import LevelDocument, decode, encode
from trigc.level.listing import LevelListing, RawObject
from trigc.level.savefile import artifact_lock, default_save_path, read_artifact, with_io_retries, write_artifact

__all__ = [
	"LevelDocument",
	"LevelListing",
	"RawObject",
	"artifact_lock",
	"decode",
	"default_save_path",
	"encode",
	"read_artifact",
	"with_io_retries",
	"write_artifact",
]
