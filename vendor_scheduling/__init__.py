"""Production scheduling allocation for outsourced vendor lines.

This package places purchase orders onto vendor production lines with
working-day aware greedy allocation, validates manual re-scheduling moves,
and persists the resulting production schedules.
"""

from .allocation import (
    AllocationResult,
    PlanningOptions,
    allocate_multiple_orders,
    allocate_production_schedule,
)
from .domain import LineAllocation, Order, ProductionSchedule, ScheduleStatus, Vendor
from .ledger import CapacityLedger
from .moves import InvalidMoveError, MoveValidation, ScheduleMove, validate_move
from .services import GenerationReport, MoveOutcome, SchedulingService
from .working_days import HolidayPolicy, WeekendPolicy, WorkingDayPolicy

__all__ = [
    "AllocationResult",
    "PlanningOptions",
    "allocate_multiple_orders",
    "allocate_production_schedule",
    "LineAllocation",
    "Order",
    "ProductionSchedule",
    "ScheduleStatus",
    "Vendor",
    "CapacityLedger",
    "InvalidMoveError",
    "MoveValidation",
    "ScheduleMove",
    "validate_move",
    "GenerationReport",
    "MoveOutcome",
    "SchedulingService",
    "HolidayPolicy",
    "WeekendPolicy",
    "WorkingDayPolicy",
]
