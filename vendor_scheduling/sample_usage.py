"""Demonstration script for vendor production scheduling."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from pprint import pprint

from . import SchedulingService


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    service = SchedulingService()

    # Vendors
    molding = service.register_vendor(
        50_000, line_count=2, name="Hanil Molding", code="V-001"
    )
    packaging = service.register_vendor(1_000, name="Daesung Packaging", code="V-002")

    # Orders placed on a Monday
    monday = date(2024, 3, 4)
    caps = service.create_order(
        molding.id,
        100_000,
        monday,
        product_name="Cap 28mm",
        product_code="CAP-28",
    )
    urgent = service.create_order(
        molding.id,
        150_000,
        monday + timedelta(days=1),
        delivery_date=monday + timedelta(days=9),
        product_name="Cap 38mm",
        product_code="CAP-38",
    )
    service.create_order(
        packaging.id,
        100_000,
        monday,
        delivery_date=monday + timedelta(days=29),
        product_name="Carton 12x",
        product_code="CTN-12",
    )

    report = service.generate_schedules_for_orders()
    print("Schedules:")
    for schedule in service.get_schedules():
        pprint(
            {
                "order": schedule.order_id,
                "vendor": schedule.vendor_id,
                "start": schedule.start_date.isoformat(),
                "end": schedule.end_date.isoformat(),
                "allocated": schedule.allocated_quantity,
            }
        )
    print("Warnings:")
    pprint(report.warnings)

    # Drag the cap schedule one week later, then try a Saturday
    cap_schedule = service.get_schedule_for_order(caps.id)
    if cap_schedule is None:
        return
    outcome = service.move_schedule(
        cap_schedule.id, cap_schedule.start_date + timedelta(days=7)
    )
    print(f"Move by one week accepted: {outcome.accepted}")
    saturday = monday + timedelta(days=5)
    outcome = service.move_schedule(cap_schedule.id, saturday)
    print(f"Move to Saturday accepted: {outcome.accepted} ({outcome.reason})")

    result = service.regenerate_schedule_for_order(urgent.id)
    print(
        "Regenerated urgent order:",
        result.schedule.start_date.isoformat(),
        result.schedule.end_date.isoformat(),
        result.message or "ok",
    )


if __name__ == "__main__":
    main()
