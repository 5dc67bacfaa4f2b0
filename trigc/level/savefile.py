# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Failure-atomic access to the on-disk save artifact.

The artifact is replaced, never rewritten in place: new bytes go to a staging
file next to it, are flushed to disk, and only then renamed over the original.
A crash or I/O error at any point leaves the original readable.

Concurrent builds against one artifact are rejected through a lock file.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import sys
import time
from pathlib import Path
from typing import Callable, Mapping, Optional, TypeVar

from trigc.core.errors import IOFailure, LockError

log = logging.getLogger(__name__)

T = TypeVar("T")

SAVE_FILE_NAME = "CCLocalLevels.dat"
_STEAM_PREFIX = "steamapps/compatdata/322170/pfx/drive_c/users/steamuser/Local Settings/Application Data"


def default_save_path(platform: str | None = None, environ: Mapping[str, str] | None = None) -> Path:
	"""Where the game keeps local levels on this OS."""
	platform = platform or sys.platform
	env = os.environ if environ is None else environ
	if platform.startswith("win"):
		base = env.get("LOCALAPPDATA")
		if not base:
			raise IOFailure("LOCALAPPDATA is not set; pass the save file explicitly", transient=False)
		return Path(base) / "GeometryDash" / SAVE_FILE_NAME
	home = env.get("HOME")
	if not home:
		raise IOFailure("HOME is not set; pass the save file explicitly", transient=False)
	if platform == "darwin":
		return Path(home) / "Library" / "Application Support" / "GeometryDash" / SAVE_FILE_NAME
	if platform.startswith("linux"):
		return Path(home) / ".steam" / "steam" / _STEAM_PREFIX / "GeometryDash" / SAVE_FILE_NAME
	raise IOFailure(f"no default save file location for platform '{platform}'", transient=False)


def read_artifact(path: Path) -> bytes:
	try:
		return Path(path).read_bytes()
	except FileNotFoundError as exc:
		raise IOFailure(f"save file not found: {path}", artifact_path=str(path), transient=False) from exc
	except OSError as exc:
		raise IOFailure(f"cannot read save file: {exc}", artifact_path=str(path)) from exc


def write_artifact(path: Path, data: bytes, backup: bool = True) -> None:
	path = Path(path)
	tmp = path.with_name(path.name + f".tmp.{os.getpid()}")
	try:
		with open(tmp, "wb") as fh:
			fh.write(data)
			fh.flush()
			os.fsync(fh.fileno())
		if backup and path.exists():
			shutil.copy2(path, path.with_name(path.name + ".bak"))
		os.replace(tmp, path)
	except OSError as exc:
		with contextlib.suppress(OSError):
			tmp.unlink()
		raise IOFailure(f"cannot write save file: {exc}", artifact_path=str(path)) from exc
	log.debug("wrote %d bytes to %s", len(data), path)


class ArtifactLock:
	"""Exclusive `<name>.lock` file next to the artifact, held for a `with` block."""

	def __init__(self, path: Path) -> None:
		self.path = Path(path)
		self.lock_path = self.path.with_name(self.path.name + ".lock")

	def __enter__(self) -> Path:
		try:
			fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
		except FileExistsError as exc:
			raise LockError(
				f"save file is locked by another build (remove {self.lock_path} if no build is running)",
				artifact_path=str(self.path),
			) from exc
		except OSError as exc:
			raise IOFailure(f"cannot create lock file: {exc}", artifact_path=str(self.path)) from exc
		try:
			os.write(fd, str(os.getpid()).encode("ascii"))
		finally:
			os.close(fd)
		return self.lock_path

	def __exit__(self, exc_type, exc, tb) -> None:
		with contextlib.suppress(OSError):
			self.lock_path.unlink()


def artifact_lock(path: Path) -> ArtifactLock:
	return ArtifactLock(path)


def with_io_retries(
	fn: Callable[[], T],
	attempts: int = 3,
	backoff: float = 0.05,
	sleep: Optional[Callable[[float], None]] = None,
) -> T:
	"""Run `fn`, retrying transient `IOFailure` up to `attempts` times in total."""
	if attempts < 1:
		raise ValueError(f"attempts must be >= 1, got {attempts}")
	sleep = sleep or time.sleep
	for attempt in range(1, attempts + 1):
		try:
			return fn()
		except IOFailure as exc:
			if not exc.transient or attempt == attempts:
				raise
			log.warning("I/O failure (attempt %d/%d): %s", attempt, attempts, exc.message)
			sleep(backoff * attempt)
	raise AssertionError("unreachable")


__all__ = [
	"default_save_path",
	"read_artifact",
	"write_artifact",
	"artifact_lock",
	"ArtifactLock",
	"with_io_retries",
	"SAVE_FILE_NAME",
]
