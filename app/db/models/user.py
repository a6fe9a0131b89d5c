from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, TYPE_CHECKING
from datetime import datetime
from uuid import UUID, uuid4

from app.core.utils import utcnow

if TYPE_CHECKING:
    from .patient import Patient
    from .doctor import Doctor

class User(SQLModel, table=True):
    __tablename__ = "users"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(unique=True, index=True) # stored lower-cased
    name: Optional[str] = None
    phone: Optional[str] = None
    role: str = Field(default="PATIENT") # PATIENT, DOCTOR, ADMIN
    email_verified_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)

    patient: Optional["Patient"] = Relationship(
        back_populates="user", sa_relationship_kwargs={"uselist": False}
    )
    doctor: Optional["Doctor"] = Relationship(
        back_populates="user", sa_relationship_kwargs={"uselist": False}
    )
