from datetime import date

from clinic_backend.models.appointment import Appointment, AppointmentStatus


def agenda_stats(appointments: list[Appointment], today: date) -> dict[str, int]:
    """Counters shown at the top of the practitioner's agenda."""
    return {
        'total': len(appointments),
        'today': sum(1 for appointment in appointments if appointment.scheduled_at.date() == today),
        'requests': sum(1 for appointment in appointments if appointment.status == AppointmentStatus.REQUEST.value),
    }
