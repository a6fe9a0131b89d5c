from typing import NamedTuple, Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import settings
from app.core.logger import logger
from app.core.utils import to_naive_utc, utcnow
from app.db.models import Appointment, Doctor, FamilyMember, Patient, User
from app.db.models.enums import AppointmentStatus, UserRole
from app.schemas.appointment import (
    BookForFamilyMember,
    BookForMyself,
    BookForSomeoneElse,
    BookingRequest,
)
from app.services.slot_service import SlotService, slot_bucket


class PatientResolution(NamedTuple):
    """Who an appointment is for, as decided by one booking variant."""
    patient_id: UUID
    family_member_id: Optional[UUID] = None
    requires_merge: bool = False
    merge_notes: Optional[str] = None
    original_name: Optional[str] = None
    original_email: Optional[str] = None
    original_phone: Optional[str] = None


class BookingService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.slots = SlotService(session)

    async def get_patient_for_user(self, user_id: UUID) -> Patient | None:
        stmt = select(Patient).where(Patient.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_user_by_email(self, email: str) -> User | None:
        stmt = select(User).where(User.email == email)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def create_patient(self, user: User) -> Patient:
        patient = Patient(user_id=user.id)
        self.session.add(patient)
        await self.session.flush()
        return patient

    def update_contact(self, user: User, name: Optional[str], phone: Optional[str]):
        if name:
            user.name = name
        if phone:
            user.phone = phone
        self.session.add(user)

    async def resolve_myself(self, caller: User, request: BookForMyself) -> PatientResolution:
        patient = await self.get_patient_for_user(caller.id)
        if not patient:
            patient = await self.create_patient(caller)
        self.update_contact(caller, request.patient_name, request.patient_phone)
        return PatientResolution(patient_id=patient.id)

    async def resolve_family_member(self, request: BookForFamilyMember) -> PatientResolution:
        family_member = await self.session.get(FamilyMember, request.family_member_id)
        if not family_member or not family_member.is_active:
            raise HTTPException(status_code=404, detail="Family member not found")

        # A family member always books under the patient who owns them
        return PatientResolution(
            patient_id=family_member.patient_id,
            family_member_id=family_member.id,
        )

    async def resolve_someone_else(self, caller: User, request: BookForSomeoneElse) -> PatientResolution:
        """Match the typed email against existing accounts.

        Only a user who already has a patient profile can conflict with the
        typed identity; that case is flagged for merge and left untouched.
        """
        original = dict(
            original_name=request.patient_name,
            original_email=request.patient_email,
            original_phone=request.patient_phone,
        )

        existing_user = await self.get_user_by_email(request.patient_email)
        if not existing_user:
            user = User(
                email=request.patient_email,
                name=request.patient_name,
                phone=request.patient_phone,
                role=UserRole.PATIENT.value,
                email_verified_at=utcnow(),
            )
            self.session.add(user)
            await self.session.flush()
            patient = await self.create_patient(user)
            return PatientResolution(patient_id=patient.id, **original)

        existing_patient = await self.get_patient_for_user(existing_user.id)
        if not existing_patient:
            patient = await self.create_patient(existing_user)
            self.update_contact(existing_user, request.patient_name, request.patient_phone)
            return PatientResolution(patient_id=patient.id, **original)

        merge_notes = f"Email matches existing user: {existing_user.email}"
        if existing_user.id == caller.id:
            merge_notes += " (Logged in user)"
        logger.info(f"Booking for {request.patient_email} flagged for merge with patient {existing_patient.id}")
        return PatientResolution(
            patient_id=existing_patient.id,
            requires_merge=True,
            merge_notes=merge_notes,
            **original,
        )

    async def resolve_patient(self, caller: User, request: BookingRequest) -> PatientResolution:
        if isinstance(request, BookForMyself):
            return await self.resolve_myself(caller, request)
        if isinstance(request, BookForFamilyMember):
            return await self.resolve_family_member(request)
        if isinstance(request, BookForSomeoneElse):
            return await self.resolve_someone_else(caller, request)
        raise HTTPException(status_code=400, detail="Invalid booking type")

    async def book(self, caller: User, request: BookingRequest) -> Appointment:
        doctor = await self.session.get(Doctor, request.doctor_id)
        if not doctor or not doctor.is_active:
            raise HTTPException(status_code=404, detail="Selected doctor is not available")

        doctor_id = doctor.id
        appointment_date = to_naive_utc(request.appointment_date)
        if await self.slots.is_slot_taken(doctor_id, appointment_date):
            raise HTTPException(status_code=409, detail="This time slot is no longer available")

        slot_start, _ = slot_bucket(appointment_date)
        try:
            resolution = await self.resolve_patient(caller, request)
            booker_patient = await self.get_patient_for_user(caller.id)

            appointment = Appointment(
                patient_id=resolution.patient_id,
                doctor_id=doctor_id,
                family_member_id=resolution.family_member_id,
                appointment_date=appointment_date,
                slot_start=slot_start,
                appointment_type=request.appointment_type,
                service_type=request.service_type,
                status=AppointmentStatus.PENDING.value,
                duration=settings.APPOINTMENT_DURATION_MINUTES,
                symptoms=request.symptoms,
                previous_treatment=request.previous_treatment,
                original_patient_name=resolution.original_name,
                original_patient_email=resolution.original_email,
                original_patient_phone=resolution.original_phone,
                booked_by_user_id=caller.id,
                booked_by_patient_id=booker_patient.id if booker_patient else None,
                requires_merge=resolution.requires_merge,
                merge_notes=resolution.merge_notes,
            )
            self.session.add(appointment)
            await self.session.flush()

            appointment.status = AppointmentStatus.CONFIRMED.value
            appointment.confirmed_at = utcnow()
            appointment.updated_at = appointment.confirmed_at
            self.session.add(appointment)
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            # Rollback expired every loaded row, so only locals are safe here
            if await self.slots.is_slot_taken(doctor_id, appointment_date):
                logger.warning(f"Lost slot race for doctor {doctor_id} at {slot_start.isoformat()}")
                raise HTTPException(status_code=409, detail="This time slot is no longer available")
            raise HTTPException(status_code=409, detail="Booking conflicted with a concurrent update, please retry")
        except Exception:
            await self.session.rollback()
            raise

        await self.session.refresh(appointment)
        logger.info(
            f"Appointment {appointment.id} confirmed | booking_for={request.booking_for} | "
            f"requires_merge={appointment.requires_merge}"
        )
        return appointment
