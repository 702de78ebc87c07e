"""Shared test fixtures for vendor scheduling tests."""

from datetime import date

import pytest

from vendor_scheduling.domain import Order, Vendor
from vendor_scheduling.services import SchedulingService

MONDAY = date(2024, 3, 4)


@pytest.fixture
def monday():
    """A Monday used as the default order date."""
    return MONDAY


@pytest.fixture
def single_line_vendor():
    return Vendor(id="V-1", daily_capacity=50_000, line_count=1, name="Hanil Molding")


@pytest.fixture
def two_line_vendor():
    return Vendor(id="V-2", daily_capacity=30_000, line_count=2, name="Daesung")


@pytest.fixture
def make_order(monday):
    """Factory for orders against vendor V-1 placed on Monday by default."""

    def _make(order_id="O-1", quantity=100_000, order_date=None, delivery_date=None,
              vendor_id="V-1", product_name=""):
        return Order(
            id=order_id,
            vendor_id=vendor_id,
            quantity=quantity,
            order_date=order_date or monday,
            delivery_date=delivery_date,
            product_name=product_name,
        )

    return _make


@pytest.fixture
def service():
    """In-memory scheduling service."""
    return SchedulingService()
