from pydantic import Field, EmailStr, field_validator
from uuid import UUID
from datetime import datetime
from typing import List, Optional, Literal

from app.core.utils import normalize_email
from app.schemas.common import CamelModel, blank_to_none

RelationshipLiteral = Literal["SPOUSE", "CHILD", "PARENT", "OTHER"]
GenderLiteral = Literal["MALE", "FEMALE", "OTHER"]

class FamilyMemberCreate(CamelModel):
    name: str = Field(min_length=2)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, pattern=r"^[0-9]{10}$")
    relationship: RelationshipLiteral
    age: Optional[int] = Field(default=None, ge=0, le=120)
    gender: Optional[GenderLiteral] = None
    medical_notes: Optional[str] = None

    @field_validator("email", "phone", "medical_notes", mode="before")
    @classmethod
    def blank_optional(cls, value):
        return blank_to_none(value)

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: Optional[str]) -> Optional[str]:
        return normalize_email(value)

class FamilyMemberUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=2)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, pattern=r"^[0-9]{10}$")
    relationship: Optional[RelationshipLiteral] = None
    age: Optional[int] = Field(default=None, ge=0, le=120)
    gender: Optional[GenderLiteral] = None
    medical_notes: Optional[str] = None

    @field_validator("email", "phone", "medical_notes", mode="before")
    @classmethod
    def blank_optional(cls, value):
        return blank_to_none(value)

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: Optional[str]) -> Optional[str]:
        return normalize_email(value)

class FamilyMemberResponse(CamelModel):
    id: UUID
    patient_id: UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    relationship: str
    age: Optional[int] = None
    gender: Optional[str] = None
    medical_notes: Optional[str] = None
    is_active: bool
    created_at: datetime

class FamilyMemberListResponse(CamelModel):
    success: bool = True
    family_members: List[FamilyMemberResponse]

class FamilyMemberSavedResponse(CamelModel):
    success: bool = True
    message: str
    family_member: FamilyMemberResponse
