from typing import List
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, func, update

from app.core.config import settings
from app.core.logger import logger
from app.core.utils import utcnow
from app.db.models import Appointment, FamilyMember, Patient, User
from app.db.models.enums import ACTIVE_STATUSES
from app.schemas.family_member import FamilyMemberCreate, FamilyMemberUpdate


async def ensure_family_email_free(session: AsyncSession, patient_id: UUID, email: str,
                                   exclude_id: UUID | None = None):
    """Emails are unique among one patient's active family members."""
    stmt = select(FamilyMember.id).where(
        FamilyMember.patient_id == patient_id,
        FamilyMember.email == email,
        FamilyMember.is_active == True
    )
    if exclude_id:
        stmt = stmt.where(FamilyMember.id != exclude_id)
    result = await session.execute(stmt)
    if result.scalars().first():
        raise HTTPException(status_code=409, detail="Email already exists in your family members")


class FamilyMemberService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_patient(self, caller: User) -> Patient:
        stmt = select(Patient).where(Patient.user_id == caller.id)
        result = await self.session.execute(stmt)
        patient = result.scalars().first()
        if not patient:
            raise HTTPException(status_code=404, detail="Patient not found")
        return patient

    async def get_owned_member(self, patient: Patient, member_id: UUID) -> FamilyMember:
        stmt = select(FamilyMember).where(
            FamilyMember.id == member_id,
            FamilyMember.patient_id == patient.id,
            FamilyMember.is_active == True
        )
        result = await self.session.execute(stmt)
        member = result.scalars().first()
        if not member:
            raise HTTPException(status_code=404, detail="Family member not found")
        return member

    async def count_active(self, patient_id: UUID) -> int:
        stmt = select(func.count(FamilyMember.id)).where(
            FamilyMember.patient_id == patient_id,
            FamilyMember.is_active == True
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def ensure_email_free(self, patient_id: UUID, email: str, exclude_id: UUID | None = None):
        await ensure_family_email_free(self.session, patient_id, email, exclude_id)

    async def list_members(self, caller: User) -> List[FamilyMember]:
        stmt = select(Patient).where(Patient.user_id == caller.id)
        result = await self.session.execute(stmt)
        patient = result.scalars().first()
        if not patient:
            return []

        stmt = select(FamilyMember).where(
            FamilyMember.patient_id == patient.id,
            FamilyMember.is_active == True
        ).order_by(FamilyMember.created_at)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def create_member(self, caller: User, data: FamilyMemberCreate) -> FamilyMember:
        patient = await self.get_patient(caller)

        if await self.count_active(patient.id) >= settings.MAX_FAMILY_MEMBERS:
            raise HTTPException(
                status_code=400,
                detail=f"Maximum limit of {settings.MAX_FAMILY_MEMBERS} family members reached"
            )
        if data.email:
            await self.ensure_email_free(patient.id, data.email)

        member = FamilyMember(patient_id=patient.id, **data.model_dump())
        self.session.add(member)
        await self.session.commit()
        await self.session.refresh(member)
        return member

    async def update_member(self, caller: User, member_id: UUID, data: FamilyMemberUpdate) -> FamilyMember:
        patient = await self.get_patient(caller)
        member = await self.get_owned_member(patient, member_id)

        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("email") and update_data["email"] != member.email:
            await self.ensure_email_free(patient.id, update_data["email"], exclude_id=member.id)

        for key, value in update_data.items():
            setattr(member, key, value)
        member.updated_at = utcnow()

        self.session.add(member)
        await self.session.commit()
        await self.session.refresh(member)
        return member

    async def delete_member(self, caller: User, member_id: UUID) -> dict:
        patient = await self.get_patient(caller)
        stmt = select(FamilyMember).where(
            FamilyMember.id == member_id,
            FamilyMember.patient_id == patient.id
        )
        result = await self.session.execute(stmt)
        member = result.scalars().first()
        if not member:
            raise HTTPException(status_code=404, detail="Family member not found")

        stmt = select(func.count(Appointment.id)).where(
            Appointment.family_member_id == member.id,
            Appointment.status.in_(ACTIVE_STATUSES)
        )
        result = await self.session.execute(stmt)
        blocking = result.scalar() or 0
        if blocking:
            raise HTTPException(
                status_code=409,
                detail={
                    "error": "Family member has upcoming appointments",
                    "details": {"blockingAppointments": blocking},
                },
            )

        try:
            # Completed and cancelled visits keep their patient but lose the link
            await self.session.execute(
                update(Appointment)
                .where(Appointment.family_member_id == member.id)
                .values(family_member_id=None)
            )
            await self.session.execute(
                update(Appointment)
                .where(Appointment.merged_to_family_member_id == member.id)
                .values(merged_to_family_member_id=None)
            )
            await self.session.delete(member)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(f"Family member {member_id} deleted by patient {patient.id}")
        return {"success": True, "message": "Family member deleted successfully"}
