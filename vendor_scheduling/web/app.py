"""FastAPI adapter exposing the scheduling service as a small JSON API."""

from __future__ import annotations

import os
from datetime import date, timedelta
from typing import Any, Dict, Optional

from fastapi import FastAPI, Form, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ..domain import ProductionSchedule, ScheduleStatus
from ..repository import RecordNotFoundError
from ..services import SCHEDULE_GONE_REASON, SchedulingService
from ..storage import SchedulingDatabase
from ..working_days import parse_date

DEFAULT_DATABASE_PATH = "scheduling.sqlite3"


def schedule_payload(schedule: ProductionSchedule) -> Dict[str, Any]:
    payload = jsonable_encoder(schedule)
    payload["allocated_quantity"] = schedule.allocated_quantity
    return payload


def _parse_date_field(value: str, field_name: str) -> date:
    try:
        return parse_date(value)
    except ValueError as exc:
        raise HTTPException(
            status_code=400, detail=f"{field_name} must be a YYYY-MM-DD date"
        ) from exc


def create_app(
    database_path: Optional[str] = None, *, seed_demo_data: bool = True
) -> FastAPI:
    database_path = database_path or os.environ.get(
        "VENDOR_SCHEDULING_DB", DEFAULT_DATABASE_PATH
    )
    database = SchedulingDatabase(database_path)
    service = SchedulingService(
        vendor_repo=database.vendors,
        order_repo=database.orders,
        schedule_repo=database.schedules,
    )
    if seed_demo_data:
        ensure_demo_data(service)

    app = FastAPI(title="Vendor Production Scheduling")
    app.state.scheduling_service = service
    app.state.database = database

    @app.on_event("shutdown")
    async def shutdown_event() -> None:  # pragma: no cover - framework hook
        database.close()

    @app.get("/schedules")
    async def list_schedules(
        request: Request,
        vendor_id: Optional[str] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
    ):
        service: SchedulingService = request.app.state.scheduling_service
        if start and end:
            schedules = service.get_schedules_by_date_range(
                _parse_date_field(start, "start"),
                _parse_date_field(end, "end"),
                vendor_id,
            )
        else:
            schedules = service.get_schedules(vendor_id)
        return [schedule_payload(schedule) for schedule in schedules]

    @app.post("/schedules/generate")
    async def generate_schedules(
        request: Request,
        respect_existing: Optional[str] = Form(None),
    ):
        service: SchedulingService = request.app.state.scheduling_service
        report = service.generate_schedules_for_orders(
            respect_existing=respect_existing is not None
        )
        return {
            "schedules": [schedule_payload(schedule) for schedule in report.schedules],
            "warnings": report.warnings,
        }

    @app.post("/schedules/{schedule_id}/move")
    async def move_schedule(
        request: Request,
        schedule_id: str,
        new_start_date: str = Form(...),
        target_vendor_id: Optional[str] = Form(None),
        expected_version: Optional[int] = Form(None),
    ):
        service: SchedulingService = request.app.state.scheduling_service
        new_start = _parse_date_field(new_start_date, "new_start_date")
        outcome = service.move_schedule(
            schedule_id,
            new_start,
            target_vendor_id=target_vendor_id or None,
            expected_version=expected_version,
        )
        if not outcome.accepted:
            if outcome.reason == SCHEDULE_GONE_REASON:
                raise HTTPException(status_code=404, detail=outcome.reason)
            return JSONResponse(
                status_code=409, content={"accepted": False, "reason": outcome.reason}
            )
        return {"accepted": True, "schedule": schedule_payload(outcome.schedule)}

    @app.post("/schedules/{schedule_id}/status")
    async def update_status(request: Request, schedule_id: str, status: str = Form(...)):
        service: SchedulingService = request.app.state.scheduling_service
        try:
            new_status = ScheduleStatus(status)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=f"Unknown status {status!r}") from exc
        try:
            schedule = service.update_schedule_status(schedule_id, new_status)
        except RecordNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return schedule_payload(schedule)

    @app.post("/orders/{order_id}/regenerate")
    async def regenerate_order(request: Request, order_id: str):
        service: SchedulingService = request.app.state.scheduling_service
        try:
            result = service.regenerate_schedule_for_order(order_id)
        except RecordNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return {
            "schedule": schedule_payload(result.schedule),
            "success": result.success,
            "warning": result.message,
        }

    @app.get("/planning/options")
    async def planning_options(request: Request):
        service: SchedulingService = request.app.state.scheduling_service
        return jsonable_encoder(service.planning_options)

    @app.post("/planning/options")
    async def update_planning_options(
        request: Request,
        default_horizon_days: int = Form(...),
        transfer_lead_days: int = Form(1),
        production_lead_days: int = Form(1),
    ):
        service: SchedulingService = request.app.state.scheduling_service
        try:
            options = service.update_planning_options(
                default_horizon_days=default_horizon_days,
                transfer_lead_days=transfer_lead_days,
                production_lead_days=production_lead_days,
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return jsonable_encoder(options)

    return app


def ensure_demo_data(service: SchedulingService) -> None:
    if len(service.vendors) > 0:
        return
    today = date.today()
    injection = service.register_vendor(
        50_000, line_count=2, name="Hanil Molding", code="V-001"
    )
    packaging = service.register_vendor(10_000, name="Daesung Packaging", code="V-002")
    service.create_order(
        injection.id,
        120_000,
        today,
        delivery_date=today + timedelta(days=14),
        product_name="Cap 28mm",
        product_code="CAP-28",
    )
    service.create_order(
        injection.id,
        40_000,
        today - timedelta(days=1),
        product_name="Cap 38mm",
        product_code="CAP-38",
    )
    service.create_order(
        packaging.id,
        150_000,
        today,
        delivery_date=today + timedelta(days=10),
        product_name="Carton 12x",
        product_code="CTN-12",
    )
    service.generate_schedules_for_orders()
