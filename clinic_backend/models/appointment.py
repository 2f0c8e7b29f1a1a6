"""Appointment model definitions."""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from clinic_backend.database import Base
from clinic_backend.models.profile import Profile


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    REQUEST = "request"
    CONFIRMED = "confirmed"
    FINISHED = "finished"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


TERMINAL_STATUSES = frozenset({AppointmentStatus.FINISHED, AppointmentStatus.CANCELLED})


class PaymentMethod(str, Enum):
    BAC = "BAC"
    OCCIDENTE = "Occidente"
    NOT_APPLICABLE = "N/A"


def _new_appointment_id() -> str:
    return str(uuid.uuid4())


class Appointment(Base):
    """Represents a visit booked by a client or by the practitioner on their behalf."""
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=_new_appointment_id)
    client_id = Column(String, ForeignKey("profiles.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(String, nullable=False, default="")
    payment_method = Column(String, nullable=False, default=PaymentMethod.NOT_APPLICABLE.value)
    attendees = Column(JSON, nullable=False, default=list)
    status = Column(String, nullable=False)
    scheduled_at = Column(DateTime, nullable=False)
    client_rating = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    version = Column(Integer, nullable=False)

    client = relationship(Profile, lazy="select")

    __mapper_args__ = {"version_id_col": version}
