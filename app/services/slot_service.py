from datetime import date, datetime, timedelta
from typing import List, Tuple
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import settings
from app.core.utils import to_naive_utc, utcnow
from app.db.models import Appointment, Doctor, DoctorAvailability
from app.db.models.enums import AppointmentStatus


def slot_bucket(requested: datetime) -> Tuple[datetime, datetime]:
    """Return the fixed-origin bucket ``[start, end)`` containing ``requested``.

    Buckets start on the hour and on the half hour, so 10:17 and 10:25 share
    the 10:00 bucket while 10:29 and 10:31 do not.
    """
    requested = to_naive_utc(requested)
    minutes = requested.minute - (requested.minute % settings.SLOT_MINUTES)
    start = requested.replace(minute=minutes, second=0, microsecond=0)
    return start, start + timedelta(minutes=settings.SLOT_MINUTES)


class SlotService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def is_slot_taken(self, doctor_id: UUID, requested: datetime) -> bool:
        start, end = slot_bucket(requested)
        stmt = select(Appointment.id).where(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date >= start,
            Appointment.appointment_date < end,
            Appointment.status != AppointmentStatus.CANCELLED.value,
        ).limit(1)
        result = await self.session.execute(stmt)
        return result.scalars().first() is not None

    async def available_slots(self, doctor_id: UUID, day: date) -> List[str]:
        doctor = await self.session.get(Doctor, doctor_id)
        if not doctor or not doctor.is_active:
            raise HTTPException(status_code=404, detail="Doctor not found or not active")

        # Python date.weekday() is 0=Monday..6=Sunday, stored as 0=Sunday..6=Saturday
        python_day = day.weekday()
        db_day = 0 if python_day == 6 else python_day + 1

        stmt = select(DoctorAvailability).where(
            DoctorAvailability.doctor_id == doctor_id,
            DoctorAvailability.day_of_week == db_day,
            DoctorAvailability.is_active == True
        ).order_by(DoctorAvailability.start_time)
        result = await self.session.execute(stmt)
        availabilities = result.scalars().all()
        if not availabilities:
            return []

        day_start = datetime.combine(day, datetime.min.time())
        stmt = select(Appointment.slot_start).where(
            Appointment.doctor_id == doctor_id,
            Appointment.slot_start >= day_start,
            Appointment.slot_start < day_start + timedelta(days=1),
            Appointment.status != AppointmentStatus.CANCELLED.value,
        )
        result = await self.session.execute(stmt)
        taken = set(result.scalars().all())

        now = utcnow()
        slots = []
        for availability in availabilities:
            current_time = datetime.combine(day, availability.start_time)
            end_time = datetime.combine(day, availability.end_time)
            step = timedelta(minutes=availability.slot_duration_minutes)
            if step <= timedelta(0):
                continue

            while current_time < end_time:
                if current_time > now and slot_bucket(current_time)[0] not in taken:
                    slots.append(current_time.strftime("%H:%M"))
                current_time += step

        return slots
