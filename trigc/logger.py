# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Package logger setup.

Modules log through `logging.getLogger(__name__)`; only the driver configures
handlers, on the package-wide `trigc` logger.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def log_format(verbose: bool = False) -> logging.Formatter:
	default_fmt = "%(levelname)s %(name)s: %(message)s"
	verbose_fmt = "[%(asctime)s] %(levelname)s %(name)s:%(lineno)d %(funcName)s(): %(message)s"
	return logging.Formatter(verbose_fmt if verbose else default_fmt, datefmt="%Y-%m-%dT%H:%M:%S")


def add_args(parser: argparse.ArgumentParser) -> None:
	group = parser.add_argument_group("logging")
	group.add_argument("--log-level", type=str.upper, default="WARNING", choices=LEVELS, help="Log level (default: WARNING)")
	group.add_argument("--log-file", type=Path, default=None, help="Also write the log to this file")
	group.add_argument("--log-verbose", action="store_true", help="Include timestamps and source locations")


def init_logger(
	level: str = "WARNING",
	log_file: Optional[Path] = None,
	verbose: bool = False,
	stream: Optional[TextIO] = None,
) -> logging.Logger:
	"""(Re)configure the `trigc` logger: stderr plus an optional file."""
	logger = logging.getLogger("trigc")
	close_logger()
	formatter = log_format(verbose)
	handler = logging.StreamHandler(stream or sys.stderr)
	handler.setFormatter(formatter)
	logger.addHandler(handler)
	if log_file is not None:
		file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
		file_handler.setFormatter(formatter)
		logger.addHandler(file_handler)
	logger.propagate = False
	logger.setLevel(getattr(logging, level))
	return logger


def from_args(args: argparse.Namespace, stream: Optional[TextIO] = None) -> logging.Logger:
	return init_logger(args.log_level, args.log_file, args.log_verbose, stream)


def close_logger() -> None:
	logger = logging.getLogger("trigc")
	for handler in logger.handlers[:]:
		handler.close()
		logger.removeHandler(handler)


__all__ = ["log_format", "add_args", "init_logger", "from_args", "close_logger"]
