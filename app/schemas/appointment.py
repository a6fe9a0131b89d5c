from pydantic import Field, EmailStr, field_validator
from uuid import UUID
from datetime import datetime
from typing import Annotated, Optional, List, Literal, Union

from app.core.utils import normalize_email
from app.schemas.common import CamelModel, blank_to_none

AppointmentTypeLiteral = Literal["IN_PERSON", "ONLINE"]
ServiceTypeLiteral = Literal[
    "GENERAL_CONSULTATION",
    "FOLLOW_UP",
    "ACUTE_TREATMENT",
    "CHRONIC_TREATMENT",
    "CHILD_CARE",
    "WOMENS_HEALTH",
    "SKIN_TREATMENT",
    "ALLERGY_TREATMENT",
]
PHONE_PATTERN = r"^[0-9]{10}$"

class BookingBase(CamelModel):
    doctor_id: UUID
    appointment_date: datetime
    appointment_type: AppointmentTypeLiteral
    service_type: ServiceTypeLiteral
    symptoms: str = Field(min_length=4, max_length=1000)
    previous_treatment: Optional[str] = None
    agree_to_terms: bool

    @field_validator("agree_to_terms")
    @classmethod
    def terms_accepted(cls, value: bool) -> bool:
        if value is not True:
            raise ValueError("You must agree to the terms")
        return value

class BookForMyself(BookingBase):
    booking_for: Literal["MYSELF"]
    patient_name: Optional[str] = Field(default=None, min_length=2)
    patient_phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)

    @field_validator("patient_name", "patient_phone", mode="before")
    @classmethod
    def blank_optional(cls, value):
        return blank_to_none(value)

class BookForFamilyMember(BookingBase):
    booking_for: Literal["FAMILY_MEMBER"]
    family_member_id: UUID

class BookForSomeoneElse(BookingBase):
    booking_for: Literal["SOMEONE_ELSE"]
    patient_name: str = Field(min_length=2)
    patient_email: EmailStr
    patient_phone: str = Field(pattern=PHONE_PATTERN)

    @field_validator("patient_email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return normalize_email(value)

BookingRequest = Annotated[
    Union[BookForMyself, BookForFamilyMember, BookForSomeoneElse],
    Field(discriminator="booking_for"),
]

class AppointmentResponse(CamelModel):
    id: UUID
    patient_id: UUID
    doctor_id: UUID
    family_member_id: Optional[UUID] = None
    appointment_date: datetime
    appointment_type: str
    service_type: str
    status: str
    duration: int
    symptoms: Optional[str] = None
    previous_treatment: Optional[str] = None
    google_meet_link: Optional[str] = None
    original_patient_name: Optional[str] = None
    original_patient_email: Optional[str] = None
    original_patient_phone: Optional[str] = None
    booked_by_user_id: UUID
    booked_by_patient_id: Optional[UUID] = None
    requires_merge: bool
    merge_notes: Optional[str] = None
    merge_resolved_at: Optional[datetime] = None
    merged_to_patient_id: Optional[UUID] = None
    merged_to_family_member_id: Optional[UUID] = None
    created_at: datetime
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

class BookingResponse(CamelModel):
    success: bool = True
    message: str
    requires_merge: bool
    appointment: AppointmentResponse

class AppointmentListResponse(CamelModel):
    success: bool = True
    appointments: List[AppointmentResponse]
    upcoming_count: int
    past_count: int
    total_count: int

class CancelResponse(CamelModel):
    success: bool = True
    message: str
    appointment: AppointmentResponse

class AvailabilityResponse(CamelModel):
    success: bool = True
    available_slots: List[str]
    message: Optional[str] = None
