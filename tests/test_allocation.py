"""Tests for single-order and batch allocation."""

from collections import defaultdict
from datetime import date

import pytest

from vendor_scheduling.allocation import (
    NO_WORKING_DAYS_MESSAGE,
    VENDOR_NOT_FOUND_MESSAGE,
    PlanningOptions,
    allocate_multiple_orders,
    allocate_production_schedule,
    order_urgency_key,
)
from vendor_scheduling.domain import ScheduleStatus, Vendor
from vendor_scheduling.ledger import CapacityLedger
from vendor_scheduling.working_days import HolidayPolicy, is_working_day


def _cells(ledger):
    return dict(ledger.entries())


class TestSingleOrderScenarios:

    def test_two_days_at_full_capacity(self, single_line_vendor, make_order):
        result = allocate_production_schedule(make_order(), single_line_vendor)
        schedule = result.schedule
        assert result.success is True
        assert result.message is None
        assert schedule.transfer_date == date(2024, 3, 5)  # Tuesday
        assert schedule.earliest_production_date == date(2024, 3, 6)  # Wednesday
        assert schedule.start_date == date(2024, 3, 6)
        assert schedule.end_date == date(2024, 3, 7)
        assert schedule.status is ScheduleStatus.PLANNED
        assert schedule.is_manually_adjusted is False

    def test_ten_working_days_within_default_horizon(self, make_order):
        vendor = Vendor(id="V-1", daily_capacity=10_000)
        result = allocate_production_schedule(make_order(), vendor)
        assert result.success is True
        assert result.schedule.start_date == date(2024, 3, 6)
        assert result.schedule.end_date == date(2024, 3, 19)
        assert len(result.schedule.allocations) == 10

    def test_shortfall_over_twenty_working_days(self, make_order):
        vendor = Vendor(id="V-1", daily_capacity=1_000)
        order = make_order(delivery_date=date(2024, 4, 2))
        result = allocate_production_schedule(order, vendor)
        assert result.success is False
        assert "80000 units unallocated" in result.message
        assert result.is_shortfall is True
        assert result.schedule.start_date == date(2024, 3, 6)
        assert result.schedule.end_date == date(2024, 4, 2)
        assert result.schedule.allocated_quantity == 20_000

    def test_default_horizon_is_thirty_calendar_days(self, make_order):
        vendor = Vendor(id="V-1", daily_capacity=1_000)
        result = allocate_production_schedule(make_order(), vendor)
        assert result.success is False
        assert result.schedule.end_date == date(2024, 4, 5)
        assert "77000 units unallocated" in result.message

    def test_horizon_is_configurable(self, make_order):
        vendor = Vendor(id="V-1", daily_capacity=1_000)
        options = PlanningOptions(default_horizon_days=2)
        result = allocate_production_schedule(make_order(), vendor, options=options)
        assert result.schedule.end_date == date(2024, 3, 8)
        assert result.schedule.allocated_quantity == 3_000


class TestSingleOrderRules:

    def test_order_placed_on_friday(self, single_line_vendor, make_order):
        order = make_order(order_date=date(2024, 3, 8))
        schedule = allocate_production_schedule(order, single_line_vendor).schedule
        assert schedule.transfer_date == date(2024, 3, 11)
        assert schedule.earliest_production_date == date(2024, 3, 12)

    def test_order_placed_on_saturday(self, single_line_vendor, make_order):
        order = make_order(order_date=date(2024, 3, 9))
        schedule = allocate_production_schedule(order, single_line_vendor).schedule
        assert schedule.transfer_date == date(2024, 3, 11)
        assert schedule.start_date == date(2024, 3, 12)

    def test_hand_off_dates_are_ordered_working_days(self, single_line_vendor, make_order):
        for day in range(1, 15):
            order_date = date(2024, 3, day)
            schedule = allocate_production_schedule(
                make_order(order_date=order_date), single_line_vendor
            ).schedule
            assert order_date < schedule.transfer_date < schedule.earliest_production_date
            assert is_working_day(schedule.transfer_date)
            assert is_working_day(schedule.earliest_production_date)
            assert schedule.earliest_production_date <= schedule.start_date <= schedule.end_date

    def test_lower_lines_fill_first(self, two_line_vendor, make_order):
        order = make_order(vendor_id="V-2")
        result = allocate_production_schedule(order, two_line_vendor)
        assert [(a.line_number, a.day, a.quantity) for a in result.schedule.allocations] == [
            (1, date(2024, 3, 6), 30_000),
            (2, date(2024, 3, 6), 30_000),
            (1, date(2024, 3, 7), 30_000),
            (2, date(2024, 3, 7), 10_000),
        ]

    def test_delivery_date_bounds_successful_schedule(self, single_line_vendor, make_order):
        order = make_order(delivery_date=date(2024, 3, 7))
        result = allocate_production_schedule(order, single_line_vendor)
        assert result.success is True
        assert result.schedule.end_date <= order.delivery_date

    def test_delivery_before_earliest_date_has_no_working_days(self, single_line_vendor, make_order):
        order = make_order(delivery_date=date(2024, 3, 5))
        ledger = CapacityLedger()
        result = allocate_production_schedule(order, single_line_vendor, ledger)
        assert result.success is False
        assert result.message == NO_WORKING_DAYS_MESSAGE
        assert result.schedule.start_date == result.schedule.end_date == date(2024, 3, 6)
        assert _cells(ledger) == {}

    def test_delivery_on_weekend_before_earliest_date(self, single_line_vendor, make_order):
        order = make_order(order_date=date(2024, 3, 7), delivery_date=date(2024, 3, 10))
        result = allocate_production_schedule(order, single_line_vendor)
        assert result.success is False
        assert result.message == NO_WORKING_DAYS_MESSAGE

    def test_fully_booked_vendor_reports_whole_quantity(self, single_line_vendor, make_order):
        order = make_order(delivery_date=date(2024, 3, 8))
        ledger = CapacityLedger()
        for day in (6, 7, 8):
            ledger.reserve("V-1", 1, date(2024, 3, day), 50_000)
        result = allocate_production_schedule(order, single_line_vendor, ledger)
        assert result.success is False
        assert result.is_shortfall is False
        assert "100000 units unallocated" in result.message
        assert result.schedule.start_date == result.schedule.end_date == date(2024, 3, 6)

    def test_holiday_policy_shifts_production(self, single_line_vendor, make_order):
        policy = HolidayPolicy([date(2024, 3, 6)])
        result = allocate_production_schedule(make_order(), single_line_vendor, policy=policy)
        assert result.schedule.earliest_production_date == date(2024, 3, 7)
        assert result.schedule.end_date == date(2024, 3, 8)

    def test_vendor_mismatch_is_an_error(self, two_line_vendor, make_order):
        with pytest.raises(ValueError):
            allocate_production_schedule(make_order(), two_line_vendor)

    def test_reservations_land_in_ledger(self, single_line_vendor, make_order):
        ledger = CapacityLedger()
        result = allocate_production_schedule(
            make_order(quantity=70_000), single_line_vendor, ledger
        )
        assert _cells(ledger) == {
            ("V-1", 1, date(2024, 3, 6)): 50_000,
            ("V-1", 1, date(2024, 3, 7)): 20_000,
        }
        assert result.schedule.allocated_quantity == 70_000


class TestBatchAllocation:

    def test_urgency_key_orders_dated_before_undated(self, make_order):
        undated = make_order("U", order_date=date(2024, 3, 1))
        late = make_order("L", delivery_date=date(2024, 4, 1))
        early = make_order("E", delivery_date=date(2024, 3, 20), order_date=date(2024, 3, 5))
        early_tie = make_order("T", delivery_date=date(2024, 3, 20), order_date=date(2024, 3, 4))
        ordered = sorted([undated, late, early, early_tie], key=order_urgency_key)
        assert [order.id for order in ordered] == ["T", "E", "L", "U"]

    def test_earlier_deadline_claims_capacity_first(self, single_line_vendor, make_order):
        order_b = make_order("B", delivery_date=date(2024, 3, 29))
        order_a = make_order("A", delivery_date=date(2024, 3, 15))
        results = allocate_multiple_orders([order_b, order_a], {"V-1": single_line_vendor})
        assert [result.schedule.order_id for result in results] == ["B", "A"]
        assert results[1].schedule.start_date == date(2024, 3, 6)
        assert results[1].schedule.end_date == date(2024, 3, 7)
        assert results[0].schedule.start_date == date(2024, 3, 8)
        assert results[0].schedule.end_date == date(2024, 3, 11)

    def test_undated_orders_go_last(self, single_line_vendor, make_order):
        undated = make_order("C", order_date=date(2024, 3, 1))
        dated = make_order("D", delivery_date=date(2024, 3, 29))
        results = allocate_multiple_orders([undated, dated], {"V-1": single_line_vendor})
        assert results[1].schedule.start_date == date(2024, 3, 6)
        undated_schedule = results[0].schedule
        assert undated_schedule.start_date == date(2024, 3, 5)
        assert undated_schedule.end_date == date(2024, 3, 8)

    def test_partial_days_are_shared(self, single_line_vendor, make_order):
        first = make_order("F", quantity=70_000, delivery_date=date(2024, 3, 20))
        second = make_order("S", quantity=50_000, delivery_date=date(2024, 3, 21))
        ledger = CapacityLedger()
        results = allocate_multiple_orders(
            [second, first], {"V-1": single_line_vendor}, ledger=ledger
        )
        assert results[0].schedule.start_date == date(2024, 3, 7)
        assert results[0].schedule.end_date == date(2024, 3, 8)
        assert _cells(ledger)[("V-1", 1, date(2024, 3, 7))] == 50_000

    def test_missing_vendor_does_not_abort_batch(self, single_line_vendor, make_order):
        orphan = make_order("X", vendor_id="V-404", order_date=date(2024, 3, 5))
        regular = make_order("R")
        results = allocate_multiple_orders([orphan, regular], {"V-1": single_line_vendor})
        assert len(results) == 2
        stub = results[0]
        assert stub.success is False
        assert stub.message == VENDOR_NOT_FOUND_MESSAGE
        assert stub.schedule.start_date == stub.schedule.end_date == date(2024, 3, 5)
        assert stub.schedule.transfer_date is None
        assert stub.schedule.earliest_production_date is None
        assert stub.schedule.notes == VENDOR_NOT_FOUND_MESSAGE
        assert results[1].success is True

    def test_capacity_and_quantity_are_conserved(self, two_line_vendor, make_order):
        orders = [
            make_order(f"O-{index}", quantity=quantity, vendor_id="V-2",
                       delivery_date=date(2024, 3, 29) if index % 2 else None)
            for index, quantity in enumerate([45_000, 80_000, 12_500, 61_000, 100_000])
        ]
        ledger = CapacityLedger()
        results = allocate_multiple_orders(orders, {"V-2": two_line_vendor}, ledger=ledger)
        for order, result in zip(orders, results):
            assert result.success is True
            assert result.schedule.allocated_quantity == order.quantity
        per_cell = defaultdict(int)
        for result in results:
            for allocation in result.schedule.allocations:
                per_cell[(allocation.line_number, allocation.day)] += allocation.quantity
        assert max(per_cell.values()) <= two_line_vendor.daily_capacity
        assert all(quantity <= 30_000 for _, quantity in ledger.entries())

    def test_batches_are_deterministic(self, two_line_vendor, single_line_vendor, make_order):
        orders = [
            make_order("A", quantity=75_000, delivery_date=date(2024, 3, 22)),
            make_order("B", quantity=40_000, vendor_id="V-2"),
            make_order("C", quantity=90_000, order_date=date(2024, 3, 5)),
        ]
        vendors = {"V-1": single_line_vendor, "V-2": two_line_vendor}

        def snapshot():
            return [
                (r.schedule.start_date, r.schedule.end_date, r.success, r.schedule.allocations)
                for r in allocate_multiple_orders(orders, vendors)
            ]

        assert snapshot() == snapshot()

    def test_empty_batch(self, single_line_vendor):
        assert allocate_multiple_orders([], {"V-1": single_line_vendor}) == []
