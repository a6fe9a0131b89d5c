from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.db.models import User
from app.db.session import get_session
from app.schemas.family_member import (
    FamilyMemberCreate,
    FamilyMemberListResponse,
    FamilyMemberResponse,
    FamilyMemberSavedResponse,
    FamilyMemberUpdate,
)
from app.services.family_service import FamilyMemberService

router = APIRouter()

async def get_family_service(session: AsyncSession = Depends(get_session)) -> FamilyMemberService:
    return FamilyMemberService(session)

@router.get("", response_model=FamilyMemberListResponse)
async def list_family_members(
    current_user: User = Depends(get_current_user),
    service: FamilyMemberService = Depends(get_family_service),
):
    members = await service.list_members(current_user)
    return FamilyMemberListResponse(
        family_members=[FamilyMemberResponse.model_validate(m) for m in members]
    )

@router.post("", response_model=FamilyMemberSavedResponse, status_code=201)
async def create_family_member(
    payload: FamilyMemberCreate,
    current_user: User = Depends(get_current_user),
    service: FamilyMemberService = Depends(get_family_service),
):
    member = await service.create_member(current_user, payload)
    return FamilyMemberSavedResponse(
        message="Family member added successfully",
        family_member=FamilyMemberResponse.model_validate(member),
    )

@router.put("/{member_id}", response_model=FamilyMemberSavedResponse)
async def update_family_member(
    member_id: UUID,
    payload: FamilyMemberUpdate,
    current_user: User = Depends(get_current_user),
    service: FamilyMemberService = Depends(get_family_service),
):
    member = await service.update_member(current_user, member_id, payload)
    return FamilyMemberSavedResponse(
        message="Family member updated successfully",
        family_member=FamilyMemberResponse.model_validate(member),
    )

@router.delete("/{member_id}")
async def delete_family_member(
    member_id: UUID,
    current_user: User = Depends(get_current_user),
    service: FamilyMemberService = Depends(get_family_service),
):
    return await service.delete_member(current_user, member_id)
