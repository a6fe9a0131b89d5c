from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID, uuid4
from sqlalchemy import Index, text

from app.core.utils import utcnow

class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    __table_args__ = (
        # One live appointment per doctor per slot bucket
        Index(
            "uq_appointments_doctor_slot_active",
            "doctor_id",
            "slot_start",
            unique=True,
            postgresql_where=text("status <> 'CANCELLED'"),
            sqlite_where=text("status <> 'CANCELLED'"),
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    patient_id: UUID = Field(foreign_key="patients.id", index=True)
    doctor_id: UUID = Field(foreign_key="doctors.id", index=True)
    family_member_id: Optional[UUID] = Field(default=None, foreign_key="family_members.id")
    appointment_date: datetime
    slot_start: datetime
    appointment_type: str # IN_PERSON, ONLINE
    service_type: str
    status: str = Field(default="PENDING") # PENDING, CONFIRMED, COMPLETED, CANCELLED
    duration: int = Field(default=30)
    symptoms: Optional[str] = None
    previous_treatment: Optional[str] = None
    google_meet_link: Optional[str] = None
    google_event_id: Optional[str] = None
    booking_method: str = Field(default="PORTAL")

    # Identity as typed at booking time, never rewritten afterwards
    original_patient_name: Optional[str] = None
    original_patient_email: Optional[str] = None
    original_patient_phone: Optional[str] = None
    booked_by_user_id: UUID = Field(foreign_key="users.id")
    booked_by_patient_id: Optional[UUID] = Field(default=None, foreign_key="patients.id")
    requires_merge: bool = Field(default=False, index=True)
    merge_notes: Optional[str] = None
    merge_resolved_at: Optional[datetime] = None
    merged_to_patient_id: Optional[UUID] = Field(default=None, foreign_key="patients.id")
    merged_to_family_member_id: Optional[UUID] = Field(default=None, foreign_key="family_members.id")

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
