"""Validation of manual drag-to-reschedule moves.

A move keeps the schedule's length and quantity and only shifts its dates.
Only calendar, earliest-start, deadline and vendor rules are checked; capacity
on the target days is not re-validated, so a planner may knowingly
over-commit a line.
"""

from __future__ import annotations

import logging
from bisect import bisect_left
from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import List, Optional, Tuple

from .domain import Order, ProductionSchedule
from .working_days import DEFAULT_POLICY, WorkingDayPolicy

logger = logging.getLogger(__name__)


class SchedulingError(RuntimeError):
    """Base exception for scheduling errors."""


class InvalidMoveError(SchedulingError):
    """Raised when applying a move that has not been accepted."""


class MoveState(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass(slots=True, frozen=True)
class MoveValidation:
    accepted: bool
    reason: Optional[str] = None


def shift_dates(schedule: ProductionSchedule, new_start: date) -> Tuple[date, date]:
    """Return the new (start, end) pair keeping the bar's calendar length."""

    duration = schedule.end_date - schedule.start_date
    return new_start, new_start + duration


def remap_day(day: date, old_days: List[date], new_days: List[date]) -> date:
    """Map ``day`` to the working day at the same position in ``new_days``.

    Positions past the end of a shorter window land on its last working day.
    """

    index = bisect_left(old_days, day)
    return new_days[min(index, len(new_days) - 1)]


def validate_move(
    schedule: ProductionSchedule,
    order: Order,
    new_start: date,
    new_end: date,
    *,
    target_vendor_id: Optional[str] = None,
    policy: Optional[WorkingDayPolicy] = None,
) -> MoveValidation:
    policy = policy or DEFAULT_POLICY
    if not policy.is_working_day(new_start):
        return MoveValidation(False, "cannot start production on a weekend")
    if not policy.is_working_day(new_end):
        return MoveValidation(False, "cannot end production on a weekend")
    if new_end < new_start:
        return MoveValidation(False, "end date must not precede start date")
    earliest = schedule.earliest_production_date
    if earliest is not None and new_start < earliest:
        return MoveValidation(
            False,
            f"cannot start before the earliest production date ({earliest.isoformat()})",
        )
    if order.delivery_date is not None and new_end > order.delivery_date:
        return MoveValidation(
            False,
            f"cannot end after the delivery date ({order.delivery_date.isoformat()})",
        )
    if target_vendor_id is not None and target_vendor_id != schedule.vendor_id:
        return MoveValidation(False, "schedules cannot be moved to another vendor")
    return MoveValidation(True)


class ScheduleMove:
    """A proposed move of one schedule: pending until evaluated once."""

    def __init__(
        self,
        schedule: ProductionSchedule,
        order: Order,
        new_start: date,
        new_end: Optional[date] = None,
        *,
        target_vendor_id: Optional[str] = None,
    ) -> None:
        if new_end is None:
            new_start, new_end = shift_dates(schedule, new_start)
        self.schedule = schedule
        self.order = order
        self.new_start = new_start
        self.new_end = new_end
        self.target_vendor_id = target_vendor_id
        self.state = MoveState.PENDING
        self.reason: Optional[str] = None
        self.policy: WorkingDayPolicy = DEFAULT_POLICY

    def evaluate(self, policy: Optional[WorkingDayPolicy] = None) -> MoveValidation:
        if self.state is not MoveState.PENDING:
            return MoveValidation(self.state is MoveState.ACCEPTED, self.reason)
        if policy is not None:
            self.policy = policy
        validation = validate_move(
            self.schedule,
            self.order,
            self.new_start,
            self.new_end,
            target_vendor_id=self.target_vendor_id,
            policy=self.policy,
        )
        self.state = MoveState.ACCEPTED if validation.accepted else MoveState.REJECTED
        self.reason = validation.reason
        if validation.accepted:
            logger.info(
                "Move of schedule %s to %s..%s accepted",
                self.schedule.id,
                self.new_start,
                self.new_end,
            )
        else:
            logger.warning(
                "Move of schedule %s rejected: %s", self.schedule.id, validation.reason
            )
        return validation

    def apply(self) -> ProductionSchedule:
        """Write the new dates onto the schedule; only valid once accepted.

        Each allocation keeps its working-day position inside the bar, so
        reservations never land on non-working days.
        """

        if self.state is not MoveState.ACCEPTED:
            raise InvalidMoveError(
                f"Move of schedule {self.schedule.id!r} is {self.state.value}, not accepted"
            )
        schedule = self.schedule
        old_days = self.policy.working_days_between(schedule.start_date, schedule.end_date)
        new_days = self.policy.working_days_between(self.new_start, self.new_end)
        schedule.allocations = [
            replace(allocation, day=remap_day(allocation.day, old_days, new_days))
            for allocation in schedule.allocations
        ]
        schedule.start_date = self.new_start
        schedule.end_date = self.new_end
        schedule.is_manually_adjusted = True
        schedule.touch()
        return schedule


__all__ = [
    "SchedulingError",
    "InvalidMoveError",
    "MoveState",
    "MoveValidation",
    "ScheduleMove",
    "remap_day",
    "shift_dates",
    "validate_move",
]
