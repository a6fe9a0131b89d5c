from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.db.models import User
from app.db.session import get_session
from app.schemas.appointment import AppointmentResponse
from app.schemas.merge import (
    MergeResolutionRequest,
    MergeResolutionResponse,
    PendingMergeCountResponse,
    PendingMergeListResponse,
)
from app.services.merge_service import MergeService

router = APIRouter()

async def get_merge_service(session: AsyncSession = Depends(get_session)) -> MergeService:
    return MergeService(session)

@router.get("/merge", response_model=PendingMergeListResponse)
async def list_pending_merges(
    current_user: User = Depends(get_current_user),
    service: MergeService = Depends(get_merge_service),
):
    appointments = await service.list_pending(current_user)
    return PendingMergeListResponse(
        appointments=[AppointmentResponse.model_validate(a) for a in appointments]
    )

@router.get("/merge/count", response_model=PendingMergeCountResponse)
async def count_pending_merges(
    current_user: User = Depends(get_current_user),
    service: MergeService = Depends(get_merge_service),
):
    return PendingMergeCountResponse(count=await service.count_pending(current_user))

@router.post("/{appointment_id}/merge", response_model=MergeResolutionResponse)
async def resolve_merge(
    appointment_id: UUID,
    payload: MergeResolutionRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: MergeService = Depends(get_merge_service),
):
    appointment = await service.resolve_merge(
        appointment_id,
        current_user,
        payload,
        request_path=request.url.path,
        request_method=request.method,
    )
    return MergeResolutionResponse(
        message="Merge resolved successfully",
        appointment=AppointmentResponse.model_validate(appointment),
    )
