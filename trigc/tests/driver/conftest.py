# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import logging
from pathlib import Path

import pytest

from trigc.level.codec import build_document
from trigc.level.listing import LevelListing
from trigc.logger import close_logger

PROGRAM = """
unit main {
	trigger 1268 51=g?1
}
unit f entry g?1 {
	trigger 1268 groups(g?1) 51=g?2 63=0.5
}
unit h entry g?2 {
	trigger 901 groups(g?2) 51=g?3 10=1
	object 1 groups(g?3) 2=15 3=15
}
"""


@pytest.fixture(autouse=True)
def _reset_logging():
	yield
	close_logger()
	logging.getLogger("trigc").propagate = True


@pytest.fixture
def ir_file(tmp_path: Path) -> Path:
	path = tmp_path / "program.tir"
	path.write_text(PROGRAM, encoding="utf-8")
	return path


@pytest.fixture
def save_file(tmp_path: Path) -> Path:
	path = tmp_path / "CCLocalLevels.dat"
	path.write_bytes(
		build_document(
			[
				("other", LevelListing.parse("1,1,2,45,3,45,57,99;")),
				("mylevel", LevelListing.parse("1,1,2,5,57,10;")),
			]
		)
	)
	return path
