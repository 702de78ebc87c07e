"""Core data structures for vendor production scheduling."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional


class ScheduleStatus(str, Enum):
    """Lifecycle stages for a production schedule."""

    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DELAYED = "delayed"


@dataclass(slots=True)
class Vendor:
    """An outsourcing vendor running one or more parallel production lines."""

    id: str
    daily_capacity: int
    line_count: int = 1
    name: str = ""
    code: str = ""

    def __post_init__(self) -> None:
        if self.daily_capacity <= 0:
            raise ValueError("Vendor daily capacity must be positive")
        if self.line_count < 1:
            raise ValueError("A vendor must run at least one production line")


@dataclass(slots=True)
class Order:
    """A purchase order placed with a vendor."""

    id: str
    vendor_id: str
    quantity: int
    order_date: date
    delivery_date: Optional[date] = None
    product_name: str = ""
    product_code: str = ""

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError("Order quantity must be a positive number of units")

    @property
    def label(self) -> str:
        return self.product_name or self.id


@dataclass(slots=True, frozen=True)
class LineAllocation:
    """Quantity reserved on one vendor line for one working day."""

    vendor_id: str
    line_number: int
    day: date
    quantity: int


@dataclass(slots=True)
class ProductionSchedule:
    """Planned production window of one order at its vendor."""

    id: str
    order_id: str
    vendor_id: str
    start_date: date
    end_date: date
    transfer_date: Optional[date] = None
    earliest_production_date: Optional[date] = None
    status: ScheduleStatus = ScheduleStatus.PLANNED
    is_manually_adjusted: bool = False
    notes: Optional[str] = None
    allocations: List[LineAllocation] = field(default_factory=list)
    version: int = 1
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def allocated_quantity(self) -> int:
        return sum(allocation.quantity for allocation in self.allocations)

    def touch(self) -> None:
        self.version += 1
        self.updated_at = datetime.utcnow()


__all__ = [
    "ScheduleStatus",
    "Vendor",
    "Order",
    "LineAllocation",
    "ProductionSchedule",
]
