# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from trigc.core.errors import InvalidFormat, IOFailure, LockError, NotFound, TrigcError
from trigc.core.ids import ClosedGroups, Id, Namespace, SymbolRef, arbitrary, group, item
from trigc.core.usage import UsageCounters


def test_identifier_text_forms() -> None:
	assert str(group(3)) == "g3"
	assert str(arbitrary(Namespace.GROUP, 3)) == "g?3"
	assert str(Id(Namespace.COLOR, 12)) == "c12"
	assert str(SymbolRef(Namespace.ITEM, "lib.counter")) == "i@lib.counter"
	assert Namespace.from_prefix("b") is Namespace.BLOCK
	with pytest.raises(ValueError, match="unknown namespace prefix"):
		Namespace.from_prefix("x")
	with pytest.raises(ValueError, match="non-negative"):
		group(-1)


def test_closed_groups_iterate_in_namespace_order() -> None:
	closed = ClosedGroups.of([item(2), group(9), arbitrary(Namespace.GROUP, 1), group(3)])
	assert list(closed) == [group(3), group(9), arbitrary(Namespace.GROUP, 1), item(2)]
	assert group(9) in closed
	assert group(4) not in closed
	assert closed.in_namespace(Namespace.ITEM) == [item(2)]


def test_usage_report_skips_unused_namespaces() -> None:
	usage = UsageCounters()
	usage.observe(Namespace.GROUP, 21)
	usage.observe(Namespace.GROUP, 4)
	usage.observe(Namespace.ITEM, 2)
	assert usage.report() == ["21 groups", "2 item IDs"]
	assert usage.to_dict() == {"groups": 21, "colors": 0, "block IDs": 0, "item IDs": 2}
	snapshot = usage.copy()
	usage.observe(Namespace.COLOR, 5)
	assert snapshot.colors == 0


def test_error_serialization() -> None:
	err = NotFound("no level named 'x'", level_name="x")
	assert err.reason_code == "NOT_FOUND"
	assert err.to_dict() == {
		"reason_code": "NOT_FOUND",
		"message": "no level named 'x'",
		"level_name": "x",
		"artifact_path": None,
		"namespace": None,
		"symbol": None,
	}
	assert str(err) == "[NOT_FOUND] no level named 'x' level_name='x'"


def test_error_hierarchy() -> None:
	lock = LockError("busy", artifact_path="/tmp/save.dat")
	assert isinstance(lock, IOFailure)
	assert isinstance(lock, TrigcError)
	assert lock.transient is False
	assert IOFailure("flaky").transient is True
	with pytest.raises(TrigcError, match="INVALID_FORMAT"):
		raise InvalidFormat("bad bytes")
