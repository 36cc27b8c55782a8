from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

from slotbook.api.v1.schemas import (
    AppointmentSchema,
    BookingRequestSchema,
    PaidUpdateSchema,
    RescheduleRequestSchema,
    StatusUpdateSchema,
)
from slotbook.application.exceptions import (
    AppointmentNotFound,
    InvalidStatusTransition,
    PersistenceUnavailable,
)
from slotbook.application.use_cases.booking import BookingRequestService
from slotbook.domain.entities.appointment import AppointmentStatus, CustomerDetails
from slotbook.domain.entities.booking_result import BookingErrorKind, BookingResult
from slotbook.wiring.dependencies import get_booking_service

router = APIRouter()

_ERROR_STATUS = {
    BookingErrorKind.DATE_UNAVAILABLE: 422,
    BookingErrorKind.SLOT_NOT_OFFERED: 422,
    BookingErrorKind.INVALID_DETAILS: 422,
    BookingErrorKind.SLOT_CONFLICT: 409,
}


def _unwrap(result: BookingResult) -> AppointmentSchema:
    if result.error is not None:
        raise HTTPException(
            status_code=_ERROR_STATUS[result.error.kind],
            detail={"kind": result.error.kind.value, "message": result.error.message},
        )
    return AppointmentSchema.from_appointment(result.appointment)


@router.post("/providers/{provider_id}/bookings", response_model=AppointmentSchema, status_code=201)
def submit_booking(
    provider_id: str,
    req: BookingRequestSchema,
    service: BookingRequestService = Depends(get_booking_service),
):
    customer = CustomerDetails(
        name=req.customer_name,
        phone=req.customer_phone,
        email=req.customer_email,
        notes=req.notes,
    )
    try:
        result = service.submit_booking(
            provider_id, req.service_id, req.date, req.time, req.duration_minutes, customer
        )
    except PersistenceUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return _unwrap(result)


@router.get("/providers/{provider_id}/bookings", response_model=list[AppointmentSchema])
def list_bookings(
    provider_id: str,
    day: date | None = Query(default=None, alias="date"),
    status: list[AppointmentStatus] | None = Query(default=None),
    service: BookingRequestService = Depends(get_booking_service),
):
    try:
        appointments = service.list_appointments(provider_id, day=day, statuses=status)
    except PersistenceUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return [AppointmentSchema.from_appointment(a) for a in appointments]


@router.patch("/bookings/{appointment_id}/schedule", response_model=AppointmentSchema)
def reschedule_booking(
    appointment_id: str,
    req: RescheduleRequestSchema,
    service: BookingRequestService = Depends(get_booking_service),
):
    try:
        result = service.reschedule_booking(appointment_id, req.date, req.time, req.duration_minutes)
    except AppointmentNotFound:
        raise HTTPException(status_code=404, detail="Booking not found")
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    except PersistenceUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return _unwrap(result)


@router.patch("/bookings/{appointment_id}/status", response_model=AppointmentSchema)
def update_status(
    appointment_id: str,
    req: StatusUpdateSchema,
    service: BookingRequestService = Depends(get_booking_service),
):
    try:
        appointment = service.update_status(appointment_id, req.status)
    except AppointmentNotFound:
        raise HTTPException(status_code=404, detail="Booking not found")
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    except PersistenceUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return AppointmentSchema.from_appointment(appointment)


@router.patch("/bookings/{appointment_id}/paid", response_model=AppointmentSchema)
def set_paid(
    appointment_id: str,
    req: PaidUpdateSchema,
    service: BookingRequestService = Depends(get_booking_service),
):
    try:
        appointment = service.set_paid(appointment_id, req.paid)
    except AppointmentNotFound:
        raise HTTPException(status_code=404, detail="Booking not found")
    except PersistenceUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return AppointmentSchema.from_appointment(appointment)
