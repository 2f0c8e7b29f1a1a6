"""Reads and writes of appointment rows."""

from datetime import datetime

from sqlalchemy.orm import Session, joinedload

from clinic_backend.core.errors import ConflictError, NotFoundError, ValidationError
from clinic_backend.models.appointment import Appointment, AppointmentStatus, PaymentMethod
from clinic_backend.repositories.store import store_errors
from clinic_backend.services.ratings import validate_rating

REQUIRED_FIELDS = ('title', 'client_id', 'scheduled_at')
UPDATABLE_FIELDS = frozenset({
    'title',
    'description',
    'payment_method',
    'attendees',
    'status',
    'scheduled_at',
    'client_rating',
})
STATUS_VALUES = frozenset(status.value for status in AppointmentStatus)
PAYMENT_METHOD_VALUES = frozenset(method.value for method in PaymentMethod)


def _check_status(value) -> str:
    status = getattr(value, 'value', value)
    if status not in STATUS_VALUES:
        raise ValidationError(f'Unknown appointment status {status!r}.')
    return status


def _check_payment_method(value) -> str:
    method = getattr(value, 'value', value)
    if method not in PAYMENT_METHOD_VALUES:
        raise ValidationError(f'Unknown payment method {method!r}.')
    return method


def _check_scheduled_at(value) -> datetime:
    if not isinstance(value, datetime):
        raise ValidationError('scheduled_at must be a date and time.')
    return value


def _check_text(field: str, value, required: bool = False) -> str:
    if value is None and not required:
        return ''
    if not isinstance(value, str):
        raise ValidationError(f'{field} must be text.')
    value = value.strip()
    if required and not value:
        raise ValidationError(f'{field} cannot be blank.')
    return value


def clean_attendees(attendees) -> list[str]:
    if attendees is None:
        return []
    if not isinstance(attendees, (list, tuple)):
        raise ValidationError('attendees must be a list of names.')
    if any(name is not None and not isinstance(name, str) for name in attendees):
        raise ValidationError('Attendee names must be text.')
    return [name.strip() for name in attendees if name and name.strip()]


class AppointmentRepository:
    def __init__(self, db: Session):
        self.db = db

    def list_appointments(self, client_id: str | None = None, include_client: bool = False) -> list[Appointment]:
        with store_errors(self.db, 'list appointments'):
            query = self.db.query(Appointment)
            if include_client:
                query = query.options(joinedload(Appointment.client))
            if client_id is not None:
                query = query.filter(Appointment.client_id == client_id)
            return query.order_by(Appointment.scheduled_at.desc()).all()

    def get_appointment(self, appointment_id: str) -> Appointment:
        with store_errors(self.db, 'load the appointment'):
            appointment = self.db.query(Appointment).filter(Appointment.id == appointment_id).first()

        if appointment is None:
            raise NotFoundError('Appointment not found.')
        return appointment

    def create_appointment(self, data: dict) -> Appointment:
        missing = [
            field for field in REQUIRED_FIELDS
            if data.get(field) is None or (isinstance(data.get(field), str) and not data[field].strip())
        ]
        if missing:
            raise ValidationError(f"Missing required appointment fields: {', '.join(missing)}.")
        if 'status' not in data:
            raise ValidationError('New appointments need an initial status.')

        appointment = Appointment(
            client_id=_check_text('client_id', data['client_id'], required=True),
            title=_check_text('title', data['title'], required=True),
            description=_check_text('description', data.get('description')),
            payment_method=_check_payment_method(data.get('payment_method', PaymentMethod.NOT_APPLICABLE)),
            attendees=clean_attendees(data.get('attendees')),
            status=_check_status(data['status']),
            scheduled_at=_check_scheduled_at(data['scheduled_at']),
        )

        with store_errors(self.db, 'create the appointment'):
            self.db.add(appointment)
            self.db.commit()
            self.db.refresh(appointment)

        return appointment

    def update_appointment(
        self,
        appointment_id: str,
        fields: dict,
        expected_version: int | None = None,
    ) -> Appointment:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Appointment fields cannot be updated: {', '.join(sorted(unknown))}.")

        appointment = self.get_appointment(appointment_id)
        if expected_version is not None and appointment.version != expected_version:
            raise ConflictError('Appointment was changed by another request. Reload and try again.')

        cleaned = {}
        for field, value in fields.items():
            if field == 'title':
                value = _check_text('title', value, required=True)
            elif field == 'description':
                value = _check_text('description', value)
            elif field == 'status':
                value = _check_status(value)
            elif field == 'payment_method':
                value = _check_payment_method(value)
            elif field == 'scheduled_at':
                value = _check_scheduled_at(value)
            elif field == 'attendees':
                value = clean_attendees(value)
            elif field == 'client_rating' and value is not None:
                value = validate_rating(value)
            cleaned[field] = value

        # A rating only belongs to a finished visit.
        if cleaned.get('client_rating') is not None:
            status = cleaned.get('status', appointment.status)
            if status != AppointmentStatus.FINISHED.value:
                raise ValidationError('Only finished appointments can carry a rating.')

        for field, value in cleaned.items():
            setattr(appointment, field, value)

        with store_errors(self.db, 'update the appointment'):
            self.db.commit()
            self.db.refresh(appointment)

        return appointment
