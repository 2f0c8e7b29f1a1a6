"""Profile model definitions."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Column, DateTime, String
from clinic_backend.database import Base


class ProfileRole(str, Enum):
    CLIENT = "client"
    # Practitioner accounts are stored with the "doctor" role.
    PRACTITIONER = "doctor"


class Profile(Base):
    """Represents a signed-up user of the clinic."""
    __tablename__ = "profiles"

    id = Column(String, primary_key=True, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    role = Column(String, nullable=False, default=ProfileRole.CLIENT.value)  # client/doctor
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
