from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

from clinic_backend.core.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    TransientStoreError,
    ValidationError,
)
from clinic_backend.repositories.appointments import AppointmentRepository
from clinic_backend.services.lifecycle import (
    ALLOWED_TRANSITIONS,
    AppointmentLifecycle,
    is_transition_allowed,
    validate_rating,
)
from clinic_backend.models.appointment import AppointmentStatus


@pytest.fixture
def lifecycle(db, sink) -> AppointmentLifecycle:
    return AppointmentLifecycle(AppointmentRepository(db), sink, mode='permissive')


@pytest.fixture
def strict_lifecycle(db, sink) -> AppointmentLifecycle:
    return AppointmentLifecycle(AppointmentRepository(db), sink, mode='strict')


@pytest.mark.parametrize('initial_status', ['pending', 'request'])
def test_confirm_moves_new_bookings_to_confirmed(lifecycle, make_appointment, initial_status: str) -> None:
    appointment = make_appointment(status=initial_status)

    confirmed = lifecycle.confirm(appointment.id)

    assert confirmed.status == 'confirmed'


def test_finish_with_rating_records_it_and_notifies_client_once(lifecycle, make_appointment, sink) -> None:
    appointment = make_appointment(status='confirmed')

    finished = lifecycle.finish(appointment.id, rating=5)

    assert finished.status == 'finished'
    assert finished.client_rating == 5
    assert len(sink.sent) == 1
    assert sink.sent[0]['recipient'] == 'ana@example.com'
    assert 'Cleaning' in sink.sent[0]['subject']
    assert '5/5' in sink.sent[0]['body']


def test_finish_without_rating_leaves_rating_empty(lifecycle, make_appointment, sink) -> None:
    appointment = make_appointment(status='confirmed')

    finished = lifecycle.finish(appointment.id)

    assert finished.status == 'finished'
    assert finished.client_rating is None
    assert len(sink.sent) == 1


@pytest.mark.parametrize('rating', [0, 6, -1, 2.5, '5', True])
def test_finish_rejects_ratings_outside_one_to_five(lifecycle, make_appointment, sink, db, rating) -> None:
    appointment = make_appointment(status='confirmed')

    with pytest.raises(ValidationError):
        lifecycle.finish(appointment.id, rating=rating)

    reloaded = AppointmentRepository(db).get_appointment(appointment.id)
    assert reloaded.status == 'confirmed'
    assert reloaded.client_rating is None
    assert sink.sent == []


def test_validate_rating_accepts_bounds() -> None:
    assert validate_rating(1) == 1
    assert validate_rating(5) == 5


def test_reschedule_to_next_day_keeps_clock_time(lifecycle, make_appointment) -> None:
    appointment = make_appointment(status='pending', scheduled_at=datetime(2024, 6, 10, 9, 0))

    rescheduled = lifecycle.reschedule_to_next_day(appointment.id)

    assert rescheduled.scheduled_at == datetime(2024, 6, 11, 9, 0)
    assert rescheduled.status == 'rescheduled'


def test_reschedule_to_next_day_rolls_over_month_end(lifecycle, make_appointment) -> None:
    appointment = make_appointment(status='confirmed', scheduled_at=datetime(2024, 6, 30, 16, 45))

    rescheduled = lifecycle.reschedule_to_next_day(appointment.id)

    assert rescheduled.scheduled_at == datetime(2024, 7, 1, 16, 45)


def test_reschedule_does_not_check_working_hours(lifecycle, make_appointment) -> None:
    # Friday evening moves to Saturday evening even though the clinic is closed on weekends.
    appointment = make_appointment(status='confirmed', scheduled_at=datetime(2024, 6, 14, 19, 0))

    rescheduled = lifecycle.reschedule_to_next_day(appointment.id)

    assert rescheduled.scheduled_at == datetime(2024, 6, 15, 19, 0)


@pytest.mark.parametrize('mode', ['permissive', 'strict'])
def test_cancel_twice_leaves_appointment_cancelled(db, sink, make_appointment, mode: str) -> None:
    lifecycle = AppointmentLifecycle(AppointmentRepository(db), sink, mode=mode)
    appointment = make_appointment(status='pending')

    assert lifecycle.cancel(appointment.id).status == 'cancelled'
    assert lifecycle.cancel(appointment.id).status == 'cancelled'


def test_permissive_mode_overwrites_terminal_status(lifecycle, make_appointment) -> None:
    appointment = make_appointment(status='cancelled')

    finished = lifecycle.finish(appointment.id, rating=3)

    assert finished.status == 'finished'
    assert finished.client_rating == 3


def test_leaving_finished_clears_the_rating(lifecycle, make_appointment) -> None:
    appointment = make_appointment(status='confirmed')
    lifecycle.finish(appointment.id, rating=4)

    reopened = lifecycle.confirm(appointment.id)

    assert reopened.status == 'confirmed'
    assert reopened.client_rating is None


def test_strict_mode_rejects_finishing_a_cancelled_appointment(strict_lifecycle, make_appointment, sink, db) -> None:
    appointment = make_appointment(status='cancelled')

    with pytest.raises(InvalidTransitionError) as exception_info:
        strict_lifecycle.finish(appointment.id, rating=5)

    assert exception_info.value.current_status == 'cancelled'
    assert exception_info.value.target_status == 'finished'
    assert AppointmentRepository(db).get_appointment(appointment.id).status == 'cancelled'
    assert sink.sent == []


@pytest.mark.parametrize('action', ['confirm', 'cancel', 'reschedule_to_next_day'])
def test_strict_mode_treats_finished_as_terminal(strict_lifecycle, make_appointment, action: str) -> None:
    appointment = make_appointment(status='finished')

    with pytest.raises(InvalidTransitionError):
        getattr(strict_lifecycle, action)(appointment.id)


def test_strict_mode_allows_confirming_a_rescheduled_appointment(strict_lifecycle, make_appointment) -> None:
    appointment = make_appointment(status='pending')
    strict_lifecycle.reschedule_to_next_day(appointment.id)

    assert strict_lifecycle.confirm(appointment.id).status == 'confirmed'


def test_strict_mode_rejects_confirming_twice(strict_lifecycle, make_appointment) -> None:
    appointment = make_appointment(status='request')
    strict_lifecycle.confirm(appointment.id)

    with pytest.raises(InvalidTransitionError):
        strict_lifecycle.confirm(appointment.id)


def test_transition_table_covers_every_status() -> None:
    assert set(ALLOWED_TRANSITIONS) == set(AppointmentStatus)
    assert ALLOWED_TRANSITIONS[AppointmentStatus.FINISHED] == frozenset()
    assert is_transition_allowed('unknown', AppointmentStatus.CONFIRMED) is False


def test_unknown_appointment_raises_not_found(lifecycle) -> None:
    with pytest.raises(NotFoundError):
        lifecycle.confirm('does-not-exist')


def test_stale_expected_version_raises_conflict(lifecycle, make_appointment, db) -> None:
    appointment = make_appointment(status='pending')
    stale_version = appointment.version
    lifecycle.confirm(appointment.id)

    with pytest.raises(ConflictError):
        lifecycle.cancel(appointment.id, expected_version=stale_version)

    assert AppointmentRepository(db).get_appointment(appointment.id).status == 'confirmed'


def test_each_transition_bumps_the_version(lifecycle, make_appointment) -> None:
    appointment = make_appointment(status='pending')
    assert appointment.version == 1

    confirmed = lifecycle.confirm(appointment.id, expected_version=1)

    assert confirmed.version == 2


def test_notification_failure_does_not_undo_finish(db, failing_sink, make_appointment) -> None:
    lifecycle = AppointmentLifecycle(AppointmentRepository(db), failing_sink, mode='permissive')
    appointment = make_appointment(status='confirmed')

    finished = lifecycle.finish(appointment.id, rating=4)

    assert finished.status == 'finished'
    assert AppointmentRepository(db).get_appointment(appointment.id).status == 'finished'


def test_store_failure_leaves_previous_status(lifecycle, make_appointment, db, monkeypatch, sink) -> None:
    appointment = make_appointment(status='pending')

    def broken_commit():
        raise OperationalError('UPDATE appointments', {}, Exception('connection lost'))

    monkeypatch.setattr(db, 'commit', broken_commit)

    with pytest.raises(TransientStoreError):
        lifecycle.finish(appointment.id, rating=5)

    monkeypatch.undo()
    assert AppointmentRepository(db).get_appointment(appointment.id).status == 'pending'
    assert sink.sent == []


def test_unknown_mode_is_rejected(db, sink) -> None:
    with pytest.raises(ValueError):
        AppointmentLifecycle(AppointmentRepository(db), sink, mode='lenient')
