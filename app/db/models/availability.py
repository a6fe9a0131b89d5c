from sqlmodel import SQLModel, Field, Relationship
from typing import TYPE_CHECKING
from datetime import time
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from .doctor import Doctor

class DoctorAvailability(SQLModel, table=True):
    __tablename__ = "doctor_availabilities"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    doctor_id: UUID = Field(foreign_key="doctors.id", index=True)
    day_of_week: int # 0=Sunday..6=Saturday
    start_time: time
    end_time: time
    slot_duration_minutes: int = Field(default=30)
    is_active: bool = Field(default=True)

    doctor: "Doctor" = Relationship(back_populates="availabilities")
