from pydantic import Field
from uuid import UUID
from typing import Annotated, Optional, List, Literal, Union

from app.schemas.common import CamelModel
from app.schemas.appointment import AppointmentResponse
from app.schemas.family_member import GenderLiteral, RelationshipLiteral

class SelfResolution(CamelModel):
    resolution_type: Literal["SELF"]
    # Acknowledge the flag without moving the appointment
    keep_separate: bool = False

class FamilyResolution(CamelModel):
    resolution_type: Literal["FAMILY"]
    family_member_id: UUID

class NewMemberResolution(CamelModel):
    resolution_type: Literal["NEW"]
    patient_name: str = Field(min_length=2)
    relationship: RelationshipLiteral = "OTHER"
    age: Optional[int] = Field(default=None, ge=0, le=120)
    gender: Optional[GenderLiteral] = None

MergeResolutionRequest = Annotated[
    Union[SelfResolution, FamilyResolution, NewMemberResolution],
    Field(discriminator="resolution_type"),
]

class MergeResolutionResponse(CamelModel):
    success: bool = True
    message: str
    appointment: AppointmentResponse

class PendingMergeListResponse(CamelModel):
    success: bool = True
    appointments: List[AppointmentResponse]

class PendingMergeCountResponse(CamelModel):
    success: bool = True
    count: int
