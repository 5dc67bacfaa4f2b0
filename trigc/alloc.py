# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Identifier allocator (one value per build).

The allocator is threaded explicitly through the optimizer, the flattener and
the merge stage; there is no ambient "next free group" state. Allocation order
is therefore a pure function of the inputs, which keeps rebuilds reproducible.

Rules:
- `reserve` always returns a value strictly above every value known to be in
  use in the namespace (closed ids, scanned usage, earlier reservations);
- nothing is ever handed out twice, even after a logical free;
- exhausting a namespace is a hard `CapacityExceeded`, never a wrap-around.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Mapping

from trigc.core.errors import CapacityExceeded
from trigc.core.ids import DEFAULT_CAPACITY, ClosedGroups, Id, Namespace
from trigc.core.usage import UsageCounters

log = logging.getLogger(__name__)


class IdAllocator:
	def __init__(
		self,
		capacities: Mapping[Namespace, int] | None = None,
		closed: ClosedGroups | None = None,
	) -> None:
		self._capacity: Dict[Namespace, int] = {ns: DEFAULT_CAPACITY for ns in Namespace}
		if capacities:
			for ns, cap in capacities.items():
				if cap < 1:
					raise ValueError(f"capacity for {ns.value} must be positive, got {cap}")
				self._capacity[ns] = cap
		self._highest: Dict[Namespace, int] = {ns: 0 for ns in Namespace}
		self._reserved: Dict[Namespace, List[int]] = {ns: [] for ns in Namespace}
		self._materialized: Dict[Id, Id] = {}
		self._lock = threading.RLock()
		for ident in closed or ():
			if not ident.arbitrary:
				self.mark_used(ident.namespace, ident.value)

	def capacity(self, namespace: Namespace) -> int:
		return self._capacity[namespace]

	def highest(self, namespace: Namespace) -> int:
		return self._highest[namespace]

	def mark_used(self, namespace: Namespace, value: int) -> bool:
		"""
		Record an identifier discovered outside the allocator.

		Values outside `1..capacity` (zero, special color channels) are not part
		of the allocatable space and are ignored; returns whether the value was
		recorded.
		"""
		if value < 1 or value > self._capacity[namespace]:
			return False
		with self._lock:
			if value > self._highest[namespace]:
				self._highest[namespace] = value
		return True

	def seed(self, counters: UsageCounters) -> None:
		for ns in Namespace:
			self.mark_used(ns, counters.get(ns))

	def reserve(self, namespace: Namespace) -> Id:
		with self._lock:
			nxt = self._highest[namespace] + 1
			if nxt > self._capacity[namespace]:
				raise CapacityExceeded(
					f"no free {namespace.value} identifier left (capacity {self._capacity[namespace]})",
					namespace=namespace.value,
				)
			self._highest[namespace] = nxt
			self._reserved[namespace].append(nxt)
		log.debug("reserved %s%d", namespace.prefix, nxt)
		return Id(namespace, nxt)

	def materialize(self, ident: Id) -> Id:
		"""Concrete id for `ident`; a placeholder is reserved once and reused."""
		if not ident.arbitrary:
			return ident
		with self._lock:
			existing = self._materialized.get(ident)
			if existing is not None:
				return existing
			concrete = self.reserve(ident.namespace)
			self._materialized[ident] = concrete
			return concrete

	def allocated(self, namespace: Namespace) -> list[int]:
		return list(self._reserved[namespace])

	def materialized(self) -> dict[Id, Id]:
		return dict(self._materialized)


__all__ = ["IdAllocator"]
