"""Per vendor/line/day capacity bookkeeping."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import date
from typing import Dict, Iterable, Iterator, List, Tuple

from .domain import LineAllocation, ProductionSchedule, Vendor

LedgerKey = Tuple[str, int, date]


class CapacityLedger:
    """Running totals of committed quantity keyed by (vendor, line, day).

    Missing keys mean nothing has been reserved yet. :meth:`reserve` never
    clamps; callers are expected to stay within :meth:`available_lines`.
    """

    def __init__(self) -> None:
        self._allocated: Dict[LedgerKey, int] = {}
        self._vendor_locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @classmethod
    def from_schedules(cls, schedules: Iterable[ProductionSchedule]) -> "CapacityLedger":
        """Rebuild a ledger from the allocations stored on persisted schedules."""

        ledger = cls()
        for schedule in schedules:
            ledger.record(schedule.allocations)
        return ledger

    def __len__(self) -> int:  # pragma: no cover - convenience
        return len(self._allocated)

    def allocated(self, vendor_id: str, line_number: int, day: date) -> int:
        return self._allocated.get((vendor_id, line_number, day), 0)

    def available_lines(self, vendor: Vendor, day: date) -> List[Tuple[int, int]]:
        lines: List[Tuple[int, int]] = []
        for line_number in range(1, vendor.line_count + 1):
            available = vendor.daily_capacity - self.allocated(vendor.id, line_number, day)
            if available > 0:
                lines.append((line_number, available))
        return lines

    def reserve(self, vendor_id: str, line_number: int, day: date, quantity: int) -> None:
        if quantity <= 0:
            raise ValueError("Reserved quantity must be positive")
        key = (vendor_id, line_number, day)
        self._allocated[key] = self._allocated.get(key, 0) + quantity

    def record(self, allocations: Iterable[LineAllocation]) -> None:
        for allocation in allocations:
            self.reserve(
                allocation.vendor_id,
                allocation.line_number,
                allocation.day,
                allocation.quantity,
            )

    def total_for(self, vendor_id: str) -> int:
        return sum(
            quantity
            for (entry_vendor, _, _), quantity in self._allocated.items()
            if entry_vendor == vendor_id
        )

    def entries(self) -> Iterator[Tuple[LedgerKey, int]]:
        return iter(sorted(self._allocated.items()))

    @contextmanager
    def vendor_lock(self, vendor_id: str) -> Iterator[None]:
        """Serialise writers reserving capacity on the same vendor."""

        with self._locks_guard:
            lock = self._vendor_locks.setdefault(vendor_id, threading.Lock())
        with lock:
            yield


__all__ = ["CapacityLedger", "LedgerKey"]
