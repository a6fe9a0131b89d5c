from sqlmodel import SQLModel
from .user import User
from .patient import Patient
from .family_member import FamilyMember
from .doctor import Doctor
from .availability import DoctorAvailability
from .appointment import Appointment
from .audit_log import AuditLog

__all__ = [
    "SQLModel",
    "User",
    "Patient",
    "FamilyMember",
    "Doctor",
    "DoctorAvailability",
    "Appointment",
    "AuditLog",
]
