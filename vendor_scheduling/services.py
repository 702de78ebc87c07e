"""Service layer tying allocation, move validation and persistence together."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional, Sequence
from uuid import uuid4

from .allocation import (
    AllocationResult,
    PlanningOptions,
    allocate_multiple_orders,
    allocate_production_schedule,
)
from .domain import Order, ProductionSchedule, ScheduleStatus, Vendor
from .ledger import CapacityLedger
from .moves import ScheduleMove
from .repository import InMemoryRepository, RecordNotFoundError
from .working_days import DEFAULT_POLICY, WorkingDayPolicy

logger = logging.getLogger(__name__)

SCHEDULE_GONE_REASON = "schedule no longer exists; it may have been regenerated"
STALE_VERSION_REASON = "schedule was modified concurrently; reload and retry"


@dataclass(slots=True)
class GenerationReport:
    """Schedules persisted by a generation run plus human-readable warnings."""

    results: List[AllocationResult] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def schedules(self) -> List[ProductionSchedule]:
        return [result.schedule for result in self.results]

    @property
    def failed_count(self) -> int:
        return sum(1 for result in self.results if not result.success)


@dataclass(slots=True)
class MoveOutcome:
    """Result of a move request; ``schedule`` reflects the persisted state."""

    accepted: bool
    reason: Optional[str] = None
    schedule: Optional[ProductionSchedule] = None


class SchedulingService:
    """Facade exposing the scheduling use-cases to clients."""

    def __init__(
        self,
        vendor_repo: Optional[InMemoryRepository[Vendor]] = None,
        order_repo: Optional[InMemoryRepository[Order]] = None,
        schedule_repo: Optional[InMemoryRepository[ProductionSchedule]] = None,
        *,
        policy: Optional[WorkingDayPolicy] = None,
        planning_options: Optional[PlanningOptions] = None,
    ) -> None:
        self.vendors = vendor_repo if vendor_repo is not None else InMemoryRepository()
        self.orders = order_repo if order_repo is not None else InMemoryRepository()
        self.schedules = (
            schedule_repo if schedule_repo is not None else InMemoryRepository()
        )
        self.policy = policy or DEFAULT_POLICY
        self.planning_options = planning_options or PlanningOptions()
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Reference data
    # ------------------------------------------------------------------
    def register_vendor(
        self,
        daily_capacity: int,
        *,
        line_count: int = 1,
        name: str = "",
        code: str = "",
    ) -> Vendor:
        vendor = Vendor(
            id=str(uuid4()),
            daily_capacity=daily_capacity,
            line_count=line_count,
            name=name,
            code=code,
        )
        self.vendors.add(vendor.id, vendor)
        return vendor

    def create_order(
        self,
        vendor_id: str,
        quantity: int,
        order_date: date,
        *,
        delivery_date: Optional[date] = None,
        product_name: str = "",
        product_code: str = "",
    ) -> Order:
        if vendor_id not in self.vendors:
            raise RecordNotFoundError(f"Vendor {vendor_id!r} does not exist")
        order = Order(
            id=str(uuid4()),
            vendor_id=vendor_id,
            quantity=quantity,
            order_date=order_date,
            delivery_date=delivery_date,
            product_name=product_name,
            product_code=product_code,
        )
        self.orders.add(order.id, order)
        return order

    def update_planning_options(
        self,
        *,
        default_horizon_days: int,
        transfer_lead_days: int,
        production_lead_days: int,
    ) -> PlanningOptions:
        self.planning_options = PlanningOptions(
            default_horizon_days=default_horizon_days,
            transfer_lead_days=transfer_lead_days,
            production_lead_days=production_lead_days,
        )
        return self.planning_options

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_schedules(self, vendor_id: Optional[str] = None) -> List[ProductionSchedule]:
        if vendor_id is None:
            schedules = self.schedules.list()
        else:
            schedules = self.schedules.filter_by(vendor_id=vendor_id)
        schedules.sort(key=lambda schedule: (schedule.start_date, schedule.order_id))
        return schedules

    def get_schedules_by_date_range(
        self, start: date, end: date, vendor_id: Optional[str] = None
    ) -> List[ProductionSchedule]:
        """Schedules lying entirely inside ``start..end``."""

        return [
            schedule
            for schedule in self.get_schedules(vendor_id)
            if schedule.start_date >= start and schedule.end_date <= end
        ]

    def get_schedule_for_order(self, order_id: str) -> Optional[ProductionSchedule]:
        matches = self.schedules.filter_by(order_id=order_id)
        return matches[0] if matches else None

    def build_ledger(self, exclude_order_ids: Iterable[str] = ()) -> CapacityLedger:
        """Ledger of the capacity already committed by persisted schedules."""

        excluded = set(exclude_order_ids)
        return CapacityLedger.from_schedules(
            schedule for schedule in self.schedules if schedule.order_id not in excluded
        )

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------
    def delete_schedules_by_order_ids(self, order_ids: Iterable[str]) -> int:
        targets = set(order_ids)
        removed = 0
        with self._lock:
            for schedule in list(self.schedules):
                if schedule.order_id in targets:
                    self.schedules.remove(schedule.id)
                    removed += 1
        return removed

    def generate_schedules_for_orders(
        self,
        order_ids: Optional[Sequence[str]] = None,
        *,
        respect_existing: bool = True,
    ) -> GenerationReport:
        """Allocate and persist schedules for the given (default: all) orders.

        Existing schedules of these orders are replaced. With
        ``respect_existing`` the capacity held by every other persisted
        schedule is reserved before the batch runs.
        """

        with self._lock:
            if order_ids is None:
                orders = self.orders.list()
            else:
                # Repeated ids are planned once.
                orders = [
                    self.orders.get(order_id) for order_id in dict.fromkeys(order_ids)
                ]
            target_ids = [order.id for order in orders]
            self.delete_schedules_by_order_ids(target_ids)
            ledger = self.build_ledger() if respect_existing else CapacityLedger()
            results = allocate_multiple_orders(
                orders,
                self.vendors.as_mapping(),
                ledger=ledger,
                options=self.planning_options,
                policy=self.policy,
            )
            report = GenerationReport(results=results)
            for order, result in zip(orders, results):
                self.schedules.add(result.schedule.id, result.schedule)
                if not result.success:
                    report.warnings.append(f"{order.label}: {result.message}")
        logger.info(
            "Generated %d schedules (%d warnings)",
            len(report.results),
            len(report.warnings),
        )
        return report

    def regenerate_schedule_for_order(
        self, order_id: str, *, respect_existing: bool = False
    ) -> AllocationResult:
        """Drop the order's schedule and allocate it again.

        Manual adjustments are discarded. By default the order is placed as if
        its vendor were idle, which reproduces its first un-adjusted dates.
        """

        with self._lock:
            order = self.orders.get(order_id)
            vendor = self.vendors.get(order.vendor_id)
            self.delete_schedules_by_order_ids([order.id])
            ledger = self.build_ledger() if respect_existing else CapacityLedger()
            result = allocate_production_schedule(
                order,
                vendor,
                ledger,
                options=self.planning_options,
                policy=self.policy,
            )
            self.schedules.add(result.schedule.id, result.schedule)
        if not result.success:
            logger.warning("Regenerated order %s with warning: %s", order.id, result.message)
        return result

    # ------------------------------------------------------------------
    # Manual changes
    # ------------------------------------------------------------------
    def move_schedule(
        self,
        schedule_id: str,
        new_start: date,
        *,
        new_end: Optional[date] = None,
        target_vendor_id: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> MoveOutcome:
        """Validate and persist a manual move as one atomic step."""

        with self._lock:
            try:
                schedule = self.schedules.get(schedule_id)
            except RecordNotFoundError:
                logger.warning("Move rejected, schedule %s is gone", schedule_id)
                return MoveOutcome(False, SCHEDULE_GONE_REASON)
            if expected_version is not None and expected_version != schedule.version:
                logger.warning(
                    "Move rejected, schedule %s is at version %d not %d",
                    schedule_id,
                    schedule.version,
                    expected_version,
                )
                return MoveOutcome(False, STALE_VERSION_REASON, schedule)
            order = self.orders.get(schedule.order_id)
            move = ScheduleMove(
                schedule,
                order,
                new_start,
                new_end,
                target_vendor_id=target_vendor_id,
            )
            validation = move.evaluate(self.policy)
            if not validation.accepted:
                return MoveOutcome(False, validation.reason, schedule)
            move.apply()
            self.schedules.upsert(schedule.id, schedule)
        return MoveOutcome(True, None, schedule)

    def update_schedule_status(
        self, schedule_id: str, status: ScheduleStatus
    ) -> ProductionSchedule:
        with self._lock:
            schedule = self.schedules.get(schedule_id)
            schedule.status = ScheduleStatus(status)
            schedule.touch()
            self.schedules.upsert(schedule.id, schedule)
        return schedule


__all__ = [
    "SchedulingService",
    "GenerationReport",
    "MoveOutcome",
    "SCHEDULE_GONE_REASON",
    "STALE_VERSION_REASON",
]
