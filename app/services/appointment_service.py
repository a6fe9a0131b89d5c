from datetime import timedelta
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, or_

from app.core.config import settings
from app.core.logger import logger
from app.core.utils import utcnow
from app.db.models import Appointment, Patient, User
from app.db.models.enums import AppointmentStatus


class AppointmentService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_patient(self, caller: User) -> Patient:
        stmt = select(Patient).where(Patient.user_id == caller.id)
        result = await self.session.execute(stmt)
        patient = result.scalars().first()
        if not patient:
            raise HTTPException(status_code=404, detail="Patient not found")
        return patient

    async def list_for_caller(self, caller: User, status: Optional[str] = None, limit: int = 50) -> List[Appointment]:
        patient = await self.get_patient(caller)

        stmt = select(Appointment).where(
            or_(
                Appointment.patient_id == patient.id,
                Appointment.booked_by_patient_id == patient.id,
                Appointment.merged_to_patient_id == patient.id,
            )
        )

        now = utcnow()
        if status == "upcoming":
            stmt = stmt.where(
                Appointment.appointment_date >= now,
                Appointment.status != AppointmentStatus.CANCELLED.value
            )
        elif status == "past":
            stmt = stmt.where(Appointment.appointment_date < now)

        stmt = stmt.order_by(Appointment.created_at.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def cancel(self, caller: User, appointment_id: UUID) -> Appointment:
        patient = await self.get_patient(caller)

        stmt = select(Appointment).where(
            Appointment.id == appointment_id,
            Appointment.patient_id == patient.id
        )
        result = await self.session.execute(stmt)
        appointment = result.scalars().first()
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found or access denied")

        now = utcnow()
        if appointment.appointment_date < now:
            raise HTTPException(status_code=400, detail={
                "error": "Cannot cancel past appointments",
                "details": "This appointment has already passed.",
            })

        if appointment.status == AppointmentStatus.CANCELLED.value:
            raise HTTPException(status_code=400, detail={
                "error": "Appointment already cancelled",
                "details": "This appointment is already cancelled.",
            })

        hours_until = (appointment.appointment_date - now) / timedelta(hours=1)
        if hours_until < settings.MIN_CANCELLATION_HOURS:
            raise HTTPException(status_code=400, detail={
                "error": "Cancellation policy violation",
                "details": f"Appointments must be cancelled at least {settings.MIN_CANCELLATION_HOURS} hours in advance.",
                "hoursUntilAppointment": round(hours_until),
            })

        appointment.status = AppointmentStatus.CANCELLED.value
        appointment.cancelled_at = now
        appointment.updated_at = now
        self.session.add(appointment)
        await self.session.commit()
        await self.session.refresh(appointment)

        logger.info(f"Appointment {appointment_id} cancelled by patient {patient.id}")
        return appointment
