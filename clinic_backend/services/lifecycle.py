"""Practitioner actions on stored appointments.

Each action reads the appointment, decides whether the move is allowed, and
writes the new status through :class:`AppointmentRepository`. Store errors are
not caught here; a failed write leaves the appointment in its prior status.

Two transition modes are supported:

* ``permissive`` - every action overwrites the status, whatever it was.
* ``strict`` - only the moves in ``ALLOWED_TRANSITIONS`` are accepted, others
  raise :class:`InvalidTransitionError`.
"""

import logging
from datetime import timedelta

from clinic_backend.core import config
from clinic_backend.core.errors import InvalidTransitionError
from clinic_backend.models.appointment import Appointment, AppointmentStatus
from clinic_backend.repositories.appointments import AppointmentRepository
from clinic_backend.services.notifications import NotificationSink, finished_visit_message
from clinic_backend.services.ratings import validate_rating

logger = logging.getLogger(__name__)

_ACTIVE_TARGETS = frozenset({
    AppointmentStatus.FINISHED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.RESCHEDULED,
})

ALLOWED_TRANSITIONS = {
    AppointmentStatus.PENDING: _ACTIVE_TARGETS | {AppointmentStatus.CONFIRMED},
    AppointmentStatus.REQUEST: _ACTIVE_TARGETS | {AppointmentStatus.CONFIRMED},
    AppointmentStatus.CONFIRMED: _ACTIVE_TARGETS,
    AppointmentStatus.RESCHEDULED: _ACTIVE_TARGETS | {AppointmentStatus.CONFIRMED},
    AppointmentStatus.FINISHED: frozenset(),
    # Cancelling twice is a no-op rather than an error.
    AppointmentStatus.CANCELLED: frozenset({AppointmentStatus.CANCELLED}),
}


def is_transition_allowed(current_status: str, target_status: AppointmentStatus) -> bool:
    try:
        current = AppointmentStatus(current_status)
    except ValueError:
        return False
    return target_status in ALLOWED_TRANSITIONS[current]


class AppointmentLifecycle:
    def __init__(
        self,
        repository: AppointmentRepository,
        notifier: NotificationSink,
        mode: str | None = None,
    ):
        self.repository = repository
        self.notifier = notifier
        self.mode = mode or config.TRANSITION_MODE
        if self.mode not in config.TRANSITION_MODES:
            raise ValueError(f'Unknown transition mode {self.mode!r}.')

    @property
    def strict(self) -> bool:
        return self.mode == 'strict'

    def confirm(self, appointment_id: str, expected_version: int | None = None) -> Appointment:
        return self._transition(appointment_id, AppointmentStatus.CONFIRMED, expected_version=expected_version)

    def cancel(self, appointment_id: str, expected_version: int | None = None) -> Appointment:
        return self._transition(appointment_id, AppointmentStatus.CANCELLED, expected_version=expected_version)

    def finish(
        self,
        appointment_id: str,
        rating: int | None = None,
        expected_version: int | None = None,
    ) -> Appointment:
        extra_fields = {}
        if rating is not None:
            extra_fields['client_rating'] = validate_rating(rating)

        appointment = self._transition(
            appointment_id,
            AppointmentStatus.FINISHED,
            extra_fields=extra_fields,
            expected_version=expected_version,
        )
        self._notify_finished(appointment, rating)
        return appointment

    def reschedule_to_next_day(self, appointment_id: str, expected_version: int | None = None) -> Appointment:
        appointment = self.repository.get_appointment(appointment_id)
        return self._transition(
            appointment_id,
            AppointmentStatus.RESCHEDULED,
            extra_fields={'scheduled_at': appointment.scheduled_at + timedelta(days=1)},
            expected_version=expected_version,
            appointment=appointment,
        )

    def _transition(
        self,
        appointment_id: str,
        target_status: AppointmentStatus,
        extra_fields: dict | None = None,
        expected_version: int | None = None,
        appointment: Appointment | None = None,
    ) -> Appointment:
        if appointment is None:
            appointment = self.repository.get_appointment(appointment_id)

        previous_status = appointment.status
        if self.strict and not is_transition_allowed(previous_status, target_status):
            raise InvalidTransitionError(previous_status, target_status.value)

        fields = {'status': target_status.value}
        if target_status != AppointmentStatus.FINISHED:
            fields['client_rating'] = None
        fields.update(extra_fields or {})

        updated = self.repository.update_appointment(appointment_id, fields, expected_version)
        logger.info('Appointment %s: %s -> %s', appointment_id, previous_status, target_status.value)
        return updated

    def _notify_finished(self, appointment: Appointment, rating: int | None) -> None:
        client = appointment.client
        if client is None or not client.email:
            logger.warning('Appointment %s finished but its client has no email address.', appointment.id)
            return

        subject, body = finished_visit_message(client.full_name, appointment.title, rating)
        try:
            self.notifier.send(client.email, subject, body)
        except Exception:
            # The status change is already committed.
            logger.exception('Failed to notify %s about appointment %s.', client.email, appointment.id)
