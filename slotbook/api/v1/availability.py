from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

from slotbook.api.v1.schemas import (
    BlockDateRequestSchema,
    BlockedDateSchema,
    BookableDatesResponseSchema,
    DayUpdateSchema,
    RuleOutSchema,
    SlotsResponseSchema,
    WeeklyScheduleOutSchema,
    WeeklyScheduleSchema,
)
from slotbook.application.exceptions import PersistenceUnavailable, UniqueConstraintViolation
from slotbook.application.use_cases.booking import BookingRequestService
from slotbook.application.use_cases.schedule import ManageScheduleUseCase
from slotbook.core.config import settings
from slotbook.wiring.dependencies import get_booking_service, get_schedule_use_case

router = APIRouter()


@router.get("/providers/{provider_id}/schedule", response_model=WeeklyScheduleOutSchema)
def get_schedule(
    provider_id: str,
    uc: ManageScheduleUseCase = Depends(get_schedule_use_case),
):
    try:
        rules = uc.get_weekly_schedule(provider_id)
    except PersistenceUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return WeeklyScheduleOutSchema(provider_id=provider_id, rules=[RuleOutSchema.from_rule(r) for r in rules])


@router.put("/providers/{provider_id}/schedule", response_model=WeeklyScheduleOutSchema)
def save_schedule(
    provider_id: str,
    req: WeeklyScheduleSchema,
    uc: ManageScheduleUseCase = Depends(get_schedule_use_case),
):
    try:
        rules = uc.save_weekly_schedule(provider_id, [r.to_rule(provider_id) for r in req.rules])
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PersistenceUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return WeeklyScheduleOutSchema(provider_id=provider_id, rules=[RuleOutSchema.from_rule(r) for r in rules])


@router.patch("/providers/{provider_id}/schedule/{day_of_week}", response_model=RuleOutSchema)
def update_day(
    provider_id: str,
    day_of_week: int,
    req: DayUpdateSchema,
    uc: ManageScheduleUseCase = Depends(get_schedule_use_case),
):
    if not 0 <= day_of_week <= 6:
        raise HTTPException(status_code=404, detail=f"Unknown day of week: {day_of_week}")
    if (req.start_time is None) != (req.end_time is None):
        raise HTTPException(status_code=400, detail="start_time and end_time must be updated together")
    if req.is_available is None and req.start_time is None:
        raise HTTPException(status_code=400, detail="Nothing to update")
    try:
        rule = None
        # Times first so that opening a day validates against the new window.
        if req.start_time is not None:
            rule = uc.set_day_times(provider_id, day_of_week, req.start_time, req.end_time)
        if req.is_available is not None:
            rule = uc.set_day_availability(provider_id, day_of_week, req.is_available)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PersistenceUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return RuleOutSchema.from_rule(rule)


@router.get("/providers/{provider_id}/blocked-dates", response_model=list[BlockedDateSchema])
def list_blocked_dates(
    provider_id: str,
    uc: ManageScheduleUseCase = Depends(get_schedule_use_case),
):
    try:
        blocked = uc.list_blocked_dates(provider_id)
    except PersistenceUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return [BlockedDateSchema.from_exception(exc) for exc in blocked]


@router.post("/providers/{provider_id}/blocked-dates", response_model=BlockedDateSchema, status_code=201)
def block_date(
    provider_id: str,
    req: BlockDateRequestSchema,
    uc: ManageScheduleUseCase = Depends(get_schedule_use_case),
):
    try:
        blocked = uc.block_date(provider_id, req.date, req.reason)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UniqueConstraintViolation as e:
        raise HTTPException(status_code=409, detail=str(e))
    except PersistenceUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return BlockedDateSchema.from_exception(blocked)


@router.delete("/blocked-dates/{exception_id}", status_code=204)
def unblock_date(
    exception_id: str,
    uc: ManageScheduleUseCase = Depends(get_schedule_use_case),
):
    try:
        removed = uc.unblock_date(exception_id)
    except PersistenceUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    if not removed:
        raise HTTPException(status_code=404, detail="Blocked date not found")


@router.get("/providers/{provider_id}/slots", response_model=SlotsResponseSchema)
def get_slots(
    provider_id: str,
    day: date = Query(alias="date"),
    duration_minutes: int | None = Query(default=None, gt=0),
    service_id: str | None = Query(default=None),
    service: BookingRequestService = Depends(get_booking_service),
):
    try:
        slots = service.open_slots(provider_id, day, duration_minutes, service_id=service_id)
    except PersistenceUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return SlotsResponseSchema(provider_id=provider_id, date=day, slots=[str(s) for s in slots])


@router.get("/providers/{provider_id}/bookable-dates", response_model=BookableDatesResponseSchema)
def get_bookable_dates(
    provider_id: str,
    limit: int = Query(default=5, ge=1, le=31),
    service: BookingRequestService = Depends(get_booking_service),
):
    try:
        dates = service.bookable_dates(provider_id, limit=limit, horizon_days=settings.BOOKING_HORIZON_DAYS)
    except PersistenceUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return BookableDatesResponseSchema(provider_id=provider_id, dates=dates)
