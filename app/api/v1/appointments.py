from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.core.utils import utcnow
from app.db.models import User
from app.db.models.enums import AppointmentStatus
from app.db.session import get_session
from app.schemas.appointment import (
    AppointmentListResponse,
    AppointmentResponse,
    AvailabilityResponse,
    BookingRequest,
    BookingResponse,
    CancelResponse,
)
from app.services.appointment_service import AppointmentService
from app.services.booking_service import BookingService
from app.services.side_effects import BookingSideEffects
from app.services.slot_service import SlotService

router = APIRouter()

async def get_booking_service(session: AsyncSession = Depends(get_session)) -> BookingService:
    return BookingService(session)

async def get_appointment_service(session: AsyncSession = Depends(get_session)) -> AppointmentService:
    return AppointmentService(session)

def get_side_effects() -> BookingSideEffects:
    return BookingSideEffects()

@router.post("/book", response_model=BookingResponse)
async def book_appointment(
    payload: BookingRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
    side_effects: BookingSideEffects = Depends(get_side_effects),
):
    appointment = await service.book(current_user, payload)
    background_tasks.add_task(side_effects.run, appointment.id)
    return BookingResponse(
        message="Appointment booked successfully!",
        requires_merge=appointment.requires_merge,
        appointment=AppointmentResponse.model_validate(appointment),
    )

@router.get("/availability", response_model=AvailabilityResponse)
async def get_availability(
    doctor_id: UUID = Query(alias="doctorId"),
    day: date = Query(alias="date"),
    session: AsyncSession = Depends(get_session),
):
    slots = await SlotService(session).available_slots(doctor_id, day)
    message = None if slots else "Doctor has no available slots for this day"
    return AvailabilityResponse(available_slots=slots, message=message)

@router.get("/patient", response_model=AppointmentListResponse)
async def list_patient_appointments(
    status: Optional[str] = Query(default=None, pattern="^(upcoming|past)$"),
    limit: int = Query(default=50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointments = await service.list_for_caller(current_user, status, limit)
    now = utcnow()
    upcoming = [
        a for a in appointments
        if a.appointment_date >= now and a.status != AppointmentStatus.CANCELLED.value
    ]
    return AppointmentListResponse(
        appointments=[AppointmentResponse.model_validate(a) for a in appointments],
        upcoming_count=len(upcoming),
        past_count=len(appointments) - len(upcoming),
        total_count=len(appointments),
    )

@router.patch("/{appointment_id}/cancel", response_model=CancelResponse)
async def cancel_appointment(
    appointment_id: UUID,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.cancel(current_user, appointment_id)
    return CancelResponse(
        message="Appointment cancelled successfully",
        appointment=AppointmentResponse.model_validate(appointment),
    )
