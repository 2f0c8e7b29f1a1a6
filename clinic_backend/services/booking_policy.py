"""Initial status for new appointments."""

from enum import Enum

from clinic_backend.models.appointment import AppointmentStatus
from clinic_backend.models.clinic_config import ClinicConfig


class BookingSource(str, Enum):
    CLIENT = "client"
    PRACTITIONER = "practitioner"


def decide_initial_status(clinic_config: ClinicConfig) -> AppointmentStatus:
    """Status for a client-submitted booking.

    An open clinic takes the booking as ``pending`` confirmation; a closed one
    records it as a ``request`` the practitioner has to follow up on.
    """
    if clinic_config.is_open:
        return AppointmentStatus.PENDING
    return AppointmentStatus.REQUEST


def initial_status_for(source: BookingSource, clinic_config: ClinicConfig) -> AppointmentStatus:
    if source == BookingSource.PRACTITIONER:
        return AppointmentStatus.CONFIRMED
    return decide_initial_status(clinic_config)
