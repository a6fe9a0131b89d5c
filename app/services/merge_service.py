from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, func, or_

from app.core.config import settings
from app.core.logger import logger
from app.core.utils import utcnow
from app.db.models import Appointment, AuditLog, FamilyMember, Patient, User
from app.db.models.enums import FamilyRelationship
from app.schemas.merge import (
    FamilyResolution,
    MergeResolutionRequest,
    NewMemberResolution,
    SelfResolution,
)
from app.services.family_service import ensure_family_email_free

MERGE_ACTION = "MERGE_RESOLUTION"


def append_note(existing: Optional[str], entry: str) -> str:
    if existing:
        return f"{existing} | RESOLVED: {entry}"
    return f"RESOLVED: {entry}"


class MergeService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_patient_for_user(self, user_id: UUID) -> Patient | None:
        stmt = select(Patient).where(Patient.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    def pending_filter(self, caller: User, patient: Patient | None):
        """Flagged, unresolved appointments the caller is allowed to resolve."""
        owners = [
            Appointment.booked_by_user_id == caller.id,
            Appointment.original_patient_email == caller.email,
        ]
        if patient:
            owned_members = select(FamilyMember.id).where(FamilyMember.patient_id == patient.id)
            owners.append(Appointment.booked_by_patient_id == patient.id)
            owners.append(Appointment.family_member_id.in_(owned_members))
        return [
            Appointment.requires_merge == True,
            Appointment.merge_resolved_at.is_(None),
            or_(*owners),
        ]

    async def list_pending(self, caller: User) -> List[Appointment]:
        patient = await self.get_patient_for_user(caller.id)
        stmt = select(Appointment).where(
            *self.pending_filter(caller, patient)
        ).order_by(Appointment.created_at.desc())
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def count_pending(self, caller: User) -> int:
        patient = await self.get_patient_for_user(caller.id)
        stmt = select(func.count(Appointment.id)).where(*self.pending_filter(caller, patient))
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def can_resolve(self, appointment: Appointment, caller: User, patient: Patient | None) -> bool:
        if appointment.booked_by_user_id == caller.id:
            return True
        if appointment.original_patient_email and appointment.original_patient_email == caller.email:
            return True
        if patient is None:
            return False
        if appointment.booked_by_patient_id == patient.id:
            return True
        if appointment.family_member_id:
            family_member = await self.session.get(FamilyMember, appointment.family_member_id)
            return family_member is not None and family_member.patient_id == patient.id
        return False

    def require_patient(self, patient: Patient | None) -> Patient:
        if patient is None:
            raise HTTPException(status_code=404, detail="Patient not found")
        return patient

    async def resolve_self(self, appointment: Appointment, caller: User, patient: Patient | None,
                           resolution: SelfResolution) -> str:
        if resolution.keep_separate:
            return "Kept as separate patient record"

        patient = self.require_patient(patient)
        appointment.patient_id = patient.id
        appointment.family_member_id = None
        appointment.merged_to_patient_id = patient.id
        return f"Merged to logged-in user: {caller.email}"

    async def resolve_family(self, appointment: Appointment, patient: Patient | None,
                             resolution: FamilyResolution) -> str:
        patient = self.require_patient(patient)
        family_member = await self.session.get(FamilyMember, resolution.family_member_id)
        if not family_member or not family_member.is_active:
            raise HTTPException(status_code=404, detail="Family member not found or not active")
        if family_member.patient_id != patient.id:
            raise HTTPException(status_code=403, detail="You can only merge into your own family members")

        # The stored family member is the source of truth; only the appointment moves
        appointment.patient_id = patient.id
        appointment.family_member_id = family_member.id
        appointment.merged_to_patient_id = patient.id
        appointment.merged_to_family_member_id = family_member.id
        return f"Merged to family member: {family_member.name}"

    async def resolve_new_member(self, appointment: Appointment, patient: Patient | None,
                                 resolution: NewMemberResolution) -> str:
        patient = self.require_patient(patient)
        stmt = select(func.count(FamilyMember.id)).where(
            FamilyMember.patient_id == patient.id,
            FamilyMember.is_active == True
        )
        result = await self.session.execute(stmt)
        if (result.scalar() or 0) >= settings.MAX_FAMILY_MEMBERS:
            raise HTTPException(
                status_code=400,
                detail=f"Maximum limit of {settings.MAX_FAMILY_MEMBERS} family members reached"
            )
        if appointment.original_patient_email:
            await ensure_family_email_free(self.session, patient.id, appointment.original_patient_email)

        family_member = FamilyMember(
            patient_id=patient.id,
            name=resolution.patient_name,
            email=appointment.original_patient_email,
            phone=appointment.original_patient_phone,
            relationship=resolution.relationship or FamilyRelationship.OTHER.value,
            age=resolution.age,
            gender=resolution.gender,
            medical_notes=appointment.symptoms,
        )
        self.session.add(family_member)
        await self.session.flush()

        appointment.patient_id = patient.id
        appointment.family_member_id = family_member.id
        appointment.merged_to_patient_id = patient.id
        appointment.merged_to_family_member_id = family_member.id
        return f"Created new family member: {family_member.name}"

    async def apply_resolution(self, appointment: Appointment, caller: User, patient: Patient | None,
                               resolution: MergeResolutionRequest) -> str:
        if isinstance(resolution, SelfResolution):
            return await self.resolve_self(appointment, caller, patient, resolution)
        if isinstance(resolution, FamilyResolution):
            return await self.resolve_family(appointment, patient, resolution)
        if isinstance(resolution, NewMemberResolution):
            return await self.resolve_new_member(appointment, patient, resolution)
        raise HTTPException(status_code=400, detail="Invalid resolution type")

    async def resolve_merge(
        self,
        appointment_id: UUID,
        caller: User,
        resolution: MergeResolutionRequest,
        request_path: Optional[str] = None,
        request_method: Optional[str] = None,
    ) -> Appointment:
        try:
            stmt = select(Appointment).where(Appointment.id == appointment_id).with_for_update()
            result = await self.session.execute(stmt)
            appointment = result.scalars().first()
            if not appointment:
                raise HTTPException(status_code=404, detail="Appointment not found")

            patient = await self.get_patient_for_user(caller.id)
            if not await self.can_resolve(appointment, caller, patient):
                raise HTTPException(status_code=403, detail="You do not have permission to resolve this merge")

            if appointment.merge_resolved_at is not None:
                raise HTTPException(status_code=409, detail="Merge has already been resolved")
            if not appointment.requires_merge:
                raise HTTPException(status_code=409, detail="Appointment does not require merge resolution")

            old_data = appointment.model_dump(mode="json")
            entry = await self.apply_resolution(appointment, caller, patient, resolution)

            resolved_at = utcnow()
            appointment.requires_merge = False
            appointment.merge_resolved_at = resolved_at
            appointment.merge_notes = append_note(appointment.merge_notes, entry)
            appointment.updated_at = resolved_at
            self.session.add(appointment)
            await self.session.flush()

            audit = AuditLog(
                action=MERGE_ACTION,
                entity_type="APPOINTMENT",
                entity_id=appointment.id,
                actor_id=caller.id,
                actor_email=caller.email,
                actor_role=caller.role,
                old_data=old_data,
                new_data=appointment.model_dump(mode="json"),
                meta={
                    "resolution": resolution.model_dump(mode="json"),
                    "notes": entry,
                },
                request_path=request_path,
                request_method=request_method,
            )
            self.session.add(audit)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.session.refresh(appointment)
        logger.info(f"Merge resolved for appointment {appointment.id} | {entry}")
        return appointment
