from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID, uuid4
from sqlalchemy import JSON, Column
from sqlalchemy.dialects.postgresql import JSONB

from app.core.utils import utcnow

JSONType = JSON().with_variant(JSONB(), "postgresql")

class AuditLog(SQLModel, table=True):
    __tablename__ = "audit_logs"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    action: str
    entity_type: str
    entity_id: UUID = Field(index=True)
    actor_id: Optional[UUID] = None
    actor_email: Optional[str] = None
    actor_role: Optional[str] = None
    old_data: Optional[dict] = Field(default=None, sa_column=Column(JSONType))
    new_data: Optional[dict] = Field(default=None, sa_column=Column(JSONType))
    meta: Optional[dict] = Field(default=None, sa_column=Column(JSONType))
    request_path: Optional[str] = None
    request_method: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
