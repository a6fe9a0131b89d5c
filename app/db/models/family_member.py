from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, TYPE_CHECKING
from datetime import datetime
from uuid import UUID, uuid4

from app.core.utils import utcnow

if TYPE_CHECKING:
    from .patient import Patient

class FamilyMember(SQLModel, table=True):
    __tablename__ = "family_members"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    patient_id: UUID = Field(foreign_key="patients.id", index=True)
    name: str
    # Without email/phone the member is reached through the owning patient's account
    email: Optional[str] = None
    phone: Optional[str] = None
    relationship: str # SPOUSE, CHILD, PARENT, OTHER
    age: Optional[int] = None
    gender: Optional[str] = None
    medical_notes: Optional[str] = None
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    patient: "Patient" = Relationship(back_populates="family_members")
