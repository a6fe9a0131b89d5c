from uuid import UUID

from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.config import settings
from app.core.logger import logger
from app.core.utils import generate_meet_code, utcnow
from app.db.models import Appointment, Doctor, FamilyMember, Patient, User
from app.db.models.enums import AppointmentType
from app.db.session import async_session
from app.services.email_service import EmailService


class BookingSideEffects:
    """Best-effort work run after a booking has committed.

    Each step opens its own session. A failing step is logged and skipped;
    the confirmed appointment is never rolled back or re-stated because of it.
    """

    def __init__(self, session_factory: async_sessionmaker = async_session,
                 email_service: EmailService | None = None):
        self.session_factory = session_factory
        self.email_service = email_service or EmailService()

    async def run(self, appointment_id: UUID):
        for step in (self.attach_meeting_link, self.send_confirmation):
            try:
                await step(appointment_id)
            except Exception:
                logger.exception(f"Post-booking step {step.__name__} failed for appointment {appointment_id}")

    async def attach_meeting_link(self, appointment_id: UUID):
        async with self.session_factory() as session:
            appointment = await session.get(Appointment, appointment_id)
            if not appointment or appointment.appointment_type != AppointmentType.ONLINE.value:
                return
            if appointment.google_meet_link:
                return

            appointment.google_meet_link = (
                settings.DOCTOR_PERMANENT_MEET_LINK
                or f"https://meet.google.com/{generate_meet_code()}"
            )
            appointment.updated_at = utcnow()
            session.add(appointment)
            await session.commit()

    async def send_confirmation(self, appointment_id: UUID):
        async with self.session_factory() as session:
            appointment = await session.get(Appointment, appointment_id)
            if not appointment:
                return

            doctor = await session.get(Doctor, appointment.doctor_id)
            patient = await session.get(Patient, appointment.patient_id)
            patient_user = await session.get(User, patient.user_id) if patient else None
            booker = await session.get(User, appointment.booked_by_user_id)

            to_email = patient_user.email if patient_user else booker.email
            patient_name = appointment.original_patient_name or (patient_user.name if patient_user else None)

            if appointment.family_member_id:
                member = await session.get(FamilyMember, appointment.family_member_id)
                if member:
                    patient_name = member.name
                    # Members without contact details are reached through the owner
                    to_email = member.email or to_email

            await self.email_service.send_appointment_confirmation(
                to_email,
                patient_name or "Patient",
                doctor.name if doctor else "your doctor",
                appointment,
            )
