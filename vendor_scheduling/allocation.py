"""Greedy capacity allocation of orders onto vendor lines.

A single order is placed by walking the working days between its earliest
production date and its deadline, filling lines in line-number order until
the quantity is covered. Batches are admitted earliest-deadline-first against
one shared :class:`~vendor_scheduling.ledger.CapacityLedger`, so later orders
see the capacity claimed by earlier ones.

Capacity that cannot be found within the horizon is reported as a shortfall:
the partial schedule is still returned together with a message, never raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Mapping, Optional, Sequence, Tuple
from uuid import uuid4

from .domain import LineAllocation, Order, ProductionSchedule, ScheduleStatus, Vendor
from .ledger import CapacityLedger
from .working_days import DEFAULT_POLICY, WorkingDayPolicy

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = 30
NO_WORKING_DAYS_MESSAGE = "no working days available"
VENDOR_NOT_FOUND_MESSAGE = "vendor not found"


@dataclass(slots=True)
class PlanningOptions:
    """Tuning parameters for the allocator."""

    default_horizon_days: int = DEFAULT_HORIZON_DAYS
    transfer_lead_days: int = 1
    production_lead_days: int = 1

    def __post_init__(self) -> None:
        if self.default_horizon_days < 1:
            raise ValueError("default_horizon_days must be >= 1")
        if self.transfer_lead_days < 1 or self.production_lead_days < 1:
            raise ValueError("Lead times must be at least one working day")


@dataclass(slots=True)
class AllocationResult:
    """Outcome of allocating one order."""

    schedule: ProductionSchedule
    success: bool
    message: Optional[str] = None

    @property
    def is_shortfall(self) -> bool:
        return not self.success and bool(self.schedule.allocations)


def shortfall_message(unallocated: int) -> str:
    return f"insufficient capacity: {unallocated} units unallocated"


def order_urgency_key(order: Order) -> Tuple[int, date, date]:
    """Sort key: dated orders by deadline first, undated ones last, then order date."""

    if order.delivery_date is not None:
        return (0, order.delivery_date, order.order_date)
    return (1, date.max, order.order_date)


def _build_schedule(
    order: Order,
    vendor_id: str,
    start: date,
    end: date,
    transfer: Optional[date],
    earliest: Optional[date],
    allocations: Sequence[LineAllocation] = (),
    notes: Optional[str] = None,
) -> ProductionSchedule:
    return ProductionSchedule(
        id=str(uuid4()),
        order_id=order.id,
        vendor_id=vendor_id,
        start_date=start,
        end_date=end,
        transfer_date=transfer,
        earliest_production_date=earliest,
        status=ScheduleStatus.PLANNED,
        is_manually_adjusted=False,
        notes=notes,
        allocations=list(allocations),
    )


def allocate_production_schedule(
    order: Order,
    vendor: Vendor,
    ledger: Optional[CapacityLedger] = None,
    *,
    options: Optional[PlanningOptions] = None,
    policy: Optional[WorkingDayPolicy] = None,
) -> AllocationResult:
    """Place one order on its vendor's lines, reserving capacity in ``ledger``."""

    if order.vendor_id != vendor.id:
        raise ValueError(
            f"Order {order.id!r} belongs to vendor {order.vendor_id!r}, not {vendor.id!r}"
        )
    options = options or PlanningOptions()
    policy = policy or DEFAULT_POLICY
    ledger = ledger if ledger is not None else CapacityLedger()

    transfer = policy.next_working_day(order.order_date, options.transfer_lead_days)
    earliest = policy.next_working_day(transfer, options.production_lead_days)
    if order.delivery_date is not None:
        deadline = order.delivery_date
    else:
        deadline = earliest + timedelta(days=options.default_horizon_days)

    working_days = policy.working_days_between(earliest, deadline)
    if not working_days:
        logger.warning(
            "Order %s: no working days between %s and %s", order.id, earliest, deadline
        )
        return AllocationResult(
            schedule=_build_schedule(order, vendor.id, earliest, earliest, transfer, earliest),
            success=False,
            message=NO_WORKING_DAYS_MESSAGE,
        )

    remaining = order.quantity
    plan_start: Optional[date] = None
    plan_end = working_days[0]
    allocations: List[LineAllocation] = []

    for day in working_days:
        if remaining <= 0:
            break
        for line_number, available in ledger.available_lines(vendor, day):
            if remaining <= 0:
                break
            quantity = min(remaining, available)
            ledger.reserve(vendor.id, line_number, day, quantity)
            allocations.append(LineAllocation(vendor.id, line_number, day, quantity))
            logger.debug(
                "Order %s: reserved %d on %s line %d for %s",
                order.id,
                quantity,
                vendor.id,
                line_number,
                day,
            )
            if plan_start is None:
                plan_start = day
            plan_end = day
            remaining -= quantity

    if plan_start is None:
        plan_start = earliest
    schedule = _build_schedule(
        order, vendor.id, plan_start, plan_end, transfer, earliest, allocations
    )
    if remaining > 0:
        message = shortfall_message(remaining)
        logger.warning("Order %s: %s", order.id, message)
        return AllocationResult(schedule=schedule, success=False, message=message)
    return AllocationResult(schedule=schedule, success=True)


def allocate_multiple_orders(
    orders: Sequence[Order],
    vendors: Mapping[str, Vendor],
    *,
    ledger: Optional[CapacityLedger] = None,
    options: Optional[PlanningOptions] = None,
    policy: Optional[WorkingDayPolicy] = None,
) -> List[AllocationResult]:
    """Allocate a batch earliest-deadline-first; results follow input order."""

    ledger = ledger if ledger is not None else CapacityLedger()
    processing_order = sorted(
        range(len(orders)), key=lambda index: order_urgency_key(orders[index])
    )
    results: List[Optional[AllocationResult]] = [None] * len(orders)

    for index in processing_order:
        order = orders[index]
        vendor = vendors.get(order.vendor_id)
        if vendor is None:
            logger.warning(
                "Order %s references unknown vendor %s", order.id, order.vendor_id
            )
            results[index] = AllocationResult(
                schedule=_build_schedule(
                    order,
                    order.vendor_id,
                    order.order_date,
                    order.order_date,
                    None,
                    None,
                    notes=VENDOR_NOT_FOUND_MESSAGE,
                ),
                success=False,
                message=VENDOR_NOT_FOUND_MESSAGE,
            )
            continue
        with ledger.vendor_lock(vendor.id):
            results[index] = allocate_production_schedule(
                order, vendor, ledger, options=options, policy=policy
            )

    failed = sum(1 for result in results if result is not None and not result.success)
    logger.info("Allocated %d orders (%d with warnings)", len(orders), failed)
    return [result for result in results if result is not None]


__all__ = [
    "DEFAULT_HORIZON_DAYS",
    "NO_WORKING_DAYS_MESSAGE",
    "VENDOR_NOT_FOUND_MESSAGE",
    "PlanningOptions",
    "AllocationResult",
    "allocate_production_schedule",
    "allocate_multiple_orders",
    "order_urgency_key",
    "shortfall_message",
]
