# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Build driver: textual IR + save artifact -> updated save artifact.

Pipeline (every stage must succeed before the artifact is touched):

	load IR -> lock -> read -> decode -> strip -> scan -> seed allocator
	-> optimize -> flatten -> merge -> encode -> atomic write

With console output (`-c`) the save is never touched: the same pipeline runs
against an empty listing and the merged listing is printed instead. Compile
only (`-l`) stops after loading the IR.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from trigc import logger as trigc_logger
from trigc.alloc import IdAllocator
from trigc.config import BuildConfig, load_config_json
from trigc.core.errors import IOFailure, TrigcError
from trigc.core.ids import ClosedGroups, Id, Namespace, SymbolRef
from trigc.core.usage import UsageCounters
from trigc.ir.objects import Ref
from trigc.ir.text import load_units
from trigc.ir.unit import FunctionUnit
from trigc.level.codec import decode, encode
from trigc.level.listing import LevelListing
from trigc.level.savefile import ArtifactLock, default_save_path, read_artifact, with_io_retries, write_artifact
from trigc.link.flatten import flatten
from trigc.link.merge import merge, scan_usage, strip_prior_generation
from trigc.opt.optimizer import OptimizeResult, run_optimizer
from trigc.opt.simulate import equivalent

__version__ = "0.1.0"

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildRequest:
	ir_path: Path
	save_file: Optional[Path] = None
	level_name: Optional[str] = None
	# False: no artifact is read or written; the listing starts empty.
	use_save: bool = True
	compile_only: bool = False
	verify: bool = False
	config: BuildConfig = field(default_factory=BuildConfig)


@dataclass
class BuildResult:
	listing: LevelListing
	usage: UsageCounters
	objects_added: int
	optimizer: Optional[OptimizeResult] = None
	verified: Optional[bool] = None
	written: Optional[Path] = None
	units: int = 0

	@property
	def listing_text(self) -> str:
		return self.listing.serialize()

	def to_dict(self) -> Dict[str, Any]:
		opt: Dict[str, Any] | None = None
		if self.optimizer is not None:
			opt = {
				"sweeps": self.optimizer.sweeps,
				"fired": dict(self.optimizer.fired),
				"before": self.optimizer.before,
				"after": self.optimizer.after,
				"reverted": self.optimizer.reverted,
			}
		return {
			"exit_code": 0,
			"units": self.units,
			"objects_added": self.objects_added,
			"usage": self.usage.to_dict(),
			"optimizer": opt,
			"verified": self.verified,
			"written": str(self.written) if self.written is not None else None,
		}


def mark_specific_ids(allocator: IdAllocator, units: Sequence[FunctionUnit]) -> None:
	"""Fresh identifiers must also land above everything the IR names directly."""
	for unit in units:
		refs: List[Ref] = list(unit.exports.values())
		if unit.entry is not None:
			refs.append(unit.entry)
		for obj in unit.objects:
			refs.extend(obj.ids())
		for ref in refs:
			if isinstance(ref, Id) and not ref.arbitrary:
				allocator.mark_used(ref.namespace, ref.value)


def verification_inputs(units: Sequence[FunctionUnit], closed: ClosedGroups) -> List[Tuple[float, Ref]]:
	"""External stimuli for the equivalence check: every closed group and every exported group."""
	stimuli: List[Tuple[float, Ref]] = [(0.0, g) for g in closed.in_namespace(Namespace.GROUP)]
	for unit in units:
		for name, ident in sorted(unit.exports.items()):
			if ident.namespace is Namespace.GROUP:
				stimuli.append((0.0, SymbolRef(Namespace.GROUP, name)))
	return stimuli


def _optimize(
	units: List[FunctionUnit],
	closed: ClosedGroups,
	allocator: IdAllocator,
	request: BuildRequest,
) -> Tuple[List[FunctionUnit], OptimizeResult, Optional[bool]]:
	log.info("Optimizing triggers...")
	result = run_optimizer(units, closed, allocator, request.config.optimizer)
	log.info(
		"optimizer: %d -> %d objects in %d sweeps %s",
		result.before,
		result.after,
		result.sweeps,
		result.fired,
	)
	if not request.verify:
		return result.units, result, None
	stimuli = verification_inputs(units, closed)
	ok = equivalent(units, result.units, closed, stimuli)
	if not ok:
		log.warning("optimized graph is not equivalent to the input on the reference stimuli; keeping the input")
		result.reverted = True
		result.after = result.before
		return list(units), result, False
	return result.units, result, True


def _existing_listing(request: BuildRequest, data: Optional[bytes]) -> LevelListing:
	if data is None:
		return LevelListing()
	return decode(data, request.level_name, request.config.codec)


def _compile(
	request: BuildRequest,
	units: List[FunctionUnit],
	closed: ClosedGroups,
	data: Optional[bytes],
) -> BuildResult:
	config = request.config
	count = len(units)
	existing = strip_prior_generation(_existing_listing(request, data))
	allocator = IdAllocator(config.capacities, closed)
	allocator.seed(scan_usage(existing, config.capacities))
	mark_specific_ids(allocator, units)

	opt_result: Optional[OptimizeResult] = None
	verified: Optional[bool] = None
	if config.optimizer.enabled:
		units, opt_result, verified = _optimize(units, closed, allocator, request)

	generated = flatten(units, allocator)
	merged, usage = merge(existing, generated, allocator)
	return BuildResult(
		listing=merged,
		usage=usage,
		objects_added=len(generated),
		optimizer=opt_result,
		verified=verified,
		units=count,
	)


def build(request: BuildRequest) -> BuildResult:
	units, closed = load_units(request.ir_path)
	config = request.config
	log.info("loaded %d units from %s", len(units), request.ir_path)

	if request.compile_only:
		return BuildResult(listing=LevelListing(), usage=UsageCounters(), objects_added=0, units=len(units))
	if not request.use_save:
		return _compile(request, units, closed, None)

	save_file = request.save_file if request.save_file is not None else default_save_path()
	with ArtifactLock(save_file):
		log.info("Reading savefile...")
		data = with_io_retries(lambda: read_artifact(save_file), attempts=config.io_retries)
		result = _compile(request, units, closed, data)
		out = encode(result.listing, data, request.level_name, config.codec)
		log.info("Writing back to savefile...")
		with_io_retries(lambda: write_artifact(save_file, out, backup=config.backup), attempts=config.io_retries)
	result.written = save_file
	return result


def _build_parser() -> argparse.ArgumentParser:
	p = argparse.ArgumentParser(prog="trigc", description="Compile trigger-graph IR into a Geometry Dash level")
	p.add_argument("ir", type=Path, help="Path to the textual IR file")
	p.add_argument("--save-file", "-s", type=Path, default=None, help="Save file to update (default: the game's local levels)")
	p.add_argument("--level-name", "-n", type=str, default=None, help="Level to write into (default: the first level)")
	p.add_argument("--no-optimize", "-o", action="store_true", help="Skip the trigger optimizer")
	p.add_argument("--console-output", "-c", action="store_true", help="Print the level listing instead of updating the save file")
	p.add_argument("--no-level", "-l", action="store_true", help="Compile only; do not build a level")
	p.add_argument("--verify", action="store_true", help="Check optimizer output against the reference simulator")
	p.add_argument("--jobs", "-j", type=int, default=None, help="Worker threads for parallel passes")
	p.add_argument("--config", type=Path, default=None, help="Path to a trigc-config JSON file")
	p.add_argument("--json", action="store_true", help="Emit a machine-readable JSON report")
	p.add_argument("--version", action="version", version=f"trigc {__version__}")
	trigc_logger.add_args(p)
	return p


def _config_from_args(args: argparse.Namespace) -> BuildConfig:
	config = load_config_json(args.config) if args.config is not None else BuildConfig()
	if args.no_optimize:
		config = config.with_optimizer(enabled=False)
	if args.jobs is not None:
		if args.jobs < 1:
			raise ValueError(f"--jobs must be >= 1, got {args.jobs}")
		config = config.with_optimizer(jobs=args.jobs)
	return config


def main(argv: list[str] | None = None) -> int:
	p = _build_parser()
	args = p.parse_args(argv)
	trigc_logger.from_args(args)

	try:
		config = _config_from_args(args)
	except (OSError, ValueError) as err:
		if args.json:
			print(json.dumps({"exit_code": 2, "error": {"reason_code": "INVALID_CONFIG", "message": str(err)}}))
		else:
			print(f"trigc: error: {err}", file=sys.stderr)
		return 2

	request = BuildRequest(
		ir_path=args.ir,
		save_file=args.save_file,
		level_name=args.level_name,
		use_save=not (args.console_output or args.no_level),
		compile_only=bool(args.no_level),
		verify=bool(args.verify),
		config=config,
	)
	try:
		result = build(request)
	except TrigcError as err:
		log.debug("build failed", exc_info=True)
		if args.json:
			payload = {"exit_code": 1, "error": err.to_dict()}
			if isinstance(err, IOFailure):
				payload["error"]["transient"] = err.transient
			print(json.dumps(payload))
		else:
			print(f"trigc: error: {err.format_human()}", file=sys.stderr)
		return 1

	if args.json:
		payload = result.to_dict()
		if result.written is None and not args.no_level:
			payload["listing"] = result.listing_text
		print(json.dumps(payload, sort_keys=True))
		return 0

	if args.no_level:
		return 0
	print(f"{result.objects_added} objects added")
	print("Level:")
	for line in result.usage.report():
		print(f"\t{line}")
	if result.written is None:
		print(f"Output: {result.listing_text}")
	return 0


__all__ = ["BuildRequest", "BuildResult", "build", "main", "mark_specific_ids", "verification_inputs"]
