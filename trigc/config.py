# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Build configuration.

Everything substrate-specific that could change between game versions
(capacities, codec constants, delay model) lives here instead of in the
stages, and can be overridden from a JSON file:

	{
	  "format": "trigc-config",
	  "version": 0,
	  "capacities": { "group": 999, "color": 999, "block": 999, "item": 999 },
	  "optimizer": { "enabled": true, "max_iterations": 32, "jobs": 1, "delay_fps": null },
	  "codec": { "outer_key": "0b", "inner_key": "", "mac": false },
	  "io_retries": 3,
	  "backup": true
	}

Every key is optional; unknown keys are rejected.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from trigc.core.ids import DEFAULT_CAPACITY, Namespace

CONFIG_FORMAT = "trigc-config"
CONFIG_VERSION = 0


@dataclass(frozen=True)
class OptimizerConfig:
	enabled: bool = True
	max_iterations: int = 32
	jobs: int = 1
	# None: delays add exactly; otherwise they are snapped to frames at this rate.
	delay_fps: Optional[float] = None


@dataclass(frozen=True)
class CodecParams:
	outer_key: bytes = b"\x0b"
	inner_key: bytes = b""
	mac: bool = False


@dataclass(frozen=True)
class BuildConfig:
	capacities: Dict[Namespace, int] = field(default_factory=lambda: {ns: DEFAULT_CAPACITY for ns in Namespace})
	optimizer: OptimizerConfig = field(default_factory=OptimizerConfig)
	codec: CodecParams = field(default_factory=CodecParams)
	io_retries: int = 3
	backup: bool = True

	def with_optimizer(self, **changes: Any) -> "BuildConfig":
		return replace(self, optimizer=replace(self.optimizer, **changes))


def _check_keys(obj: Mapping[str, Any], allowed: set, where: str) -> None:
	unknown = sorted(set(obj) - allowed)
	if unknown:
		raise ValueError(f"unknown {where} key(s): {', '.join(unknown)}")


def _int(value: Any, where: str, minimum: int) -> int:
	if isinstance(value, bool) or not isinstance(value, int):
		raise ValueError(f"{where} must be an integer")
	if value < minimum:
		raise ValueError(f"{where} must be >= {minimum}, got {value}")
	return value


def _bool(value: Any, where: str) -> bool:
	if not isinstance(value, bool):
		raise ValueError(f"{where} must be true or false")
	return value


def _hex(value: Any, where: str) -> bytes:
	if not isinstance(value, str):
		raise ValueError(f"{where} must be a hex string")
	try:
		return bytes.fromhex(value)
	except ValueError as exc:
		raise ValueError(f"{where} is not valid hex: {value!r}") from exc


def config_from_dict(obj: Any) -> BuildConfig:
	if not isinstance(obj, dict):
		raise ValueError("config must be a JSON object")
	if obj.get("format") != CONFIG_FORMAT or obj.get("version") != CONFIG_VERSION:
		raise ValueError("unsupported config format/version")
	_check_keys(obj, {"format", "version", "capacities", "optimizer", "codec", "io_retries", "backup"}, "config")
	cfg = BuildConfig()

	caps_obj = obj.get("capacities") or {}
	if not isinstance(caps_obj, dict):
		raise ValueError("config capacities must be a JSON object")
	capacities = dict(cfg.capacities)
	for name, value in caps_obj.items():
		try:
			ns = Namespace(name)
		except ValueError as exc:
			raise ValueError(f"unknown namespace '{name}' in capacities") from exc
		capacities[ns] = _int(value, f"capacities.{name}", 1)

	opt_obj = obj.get("optimizer") or {}
	if not isinstance(opt_obj, dict):
		raise ValueError("config optimizer must be a JSON object")
	_check_keys(opt_obj, {"enabled", "max_iterations", "jobs", "delay_fps"}, "optimizer")
	optimizer = cfg.optimizer
	if "enabled" in opt_obj:
		optimizer = replace(optimizer, enabled=_bool(opt_obj["enabled"], "optimizer.enabled"))
	if "max_iterations" in opt_obj:
		optimizer = replace(optimizer, max_iterations=_int(opt_obj["max_iterations"], "optimizer.max_iterations", 1))
	if "jobs" in opt_obj:
		optimizer = replace(optimizer, jobs=_int(opt_obj["jobs"], "optimizer.jobs", 1))
	if "delay_fps" in opt_obj:
		fps = opt_obj["delay_fps"]
		if fps is not None and (isinstance(fps, bool) or not isinstance(fps, (int, float)) or fps <= 0):
			raise ValueError("optimizer.delay_fps must be a positive number or null")
		optimizer = replace(optimizer, delay_fps=None if fps is None else float(fps))

	codec_obj = obj.get("codec") or {}
	if not isinstance(codec_obj, dict):
		raise ValueError("config codec must be a JSON object")
	_check_keys(codec_obj, {"outer_key", "inner_key", "mac"}, "codec")
	codec = cfg.codec
	if "outer_key" in codec_obj:
		codec = replace(codec, outer_key=_hex(codec_obj["outer_key"], "codec.outer_key"))
	if "inner_key" in codec_obj:
		codec = replace(codec, inner_key=_hex(codec_obj["inner_key"], "codec.inner_key"))
	if "mac" in codec_obj:
		codec = replace(codec, mac=_bool(codec_obj["mac"], "codec.mac"))

	io_retries = _int(obj.get("io_retries", cfg.io_retries), "io_retries", 1)
	backup = _bool(obj.get("backup", cfg.backup), "backup")
	return BuildConfig(
		capacities=capacities,
		optimizer=optimizer,
		codec=codec,
		io_retries=io_retries,
		backup=backup,
	)


def load_config_json(path: Path) -> BuildConfig:
	try:
		obj = json.loads(Path(path).read_text(encoding="utf-8"))
	except json.JSONDecodeError as exc:
		raise ValueError(f"config {path} is not valid JSON: {exc}") from exc
	return config_from_dict(obj)


__all__ = [
	"BuildConfig",
	"OptimizerConfig",
	"CodecParams",
	"config_from_dict",
	"load_config_json",
	"CONFIG_FORMAT",
	"CONFIG_VERSION",
]
