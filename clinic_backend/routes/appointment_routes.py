import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, StrictInt, field_validator
from sqlalchemy.orm import Session

from clinic_backend.auth.dependencies import require_client, require_practitioner
from clinic_backend.auth.session import ClientSession, PractitionerSession
from clinic_backend.core import config
from clinic_backend.core.errors import ClinicError, ValidationError
from clinic_backend.database import get_db
from clinic_backend.models.appointment import Appointment, PaymentMethod
from clinic_backend.models.profile import ProfileRole
from clinic_backend.repositories.appointments import AppointmentRepository, clean_attendees
from clinic_backend.repositories.clinic_config import ClinicConfigStore
from clinic_backend.repositories.profiles import ProfileRepository
from clinic_backend.routes.common import VersionedActionRequest, get_notification_sink, http_error
from clinic_backend.services.availability import is_within_working_hours
from clinic_backend.services.booking_policy import BookingSource, initial_status_for
from clinic_backend.services.lifecycle import AppointmentLifecycle
from clinic_backend.services.notifications import NotificationSink
from clinic_backend.services.stats import agenda_stats

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 120
MAX_DESCRIPTION_LENGTH = 600


def _normalize_title(value: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise ValueError('Title is required.')
    if len(normalized) > MAX_TITLE_LENGTH:
        raise ValueError(f'Title must be {MAX_TITLE_LENGTH} characters or fewer.')
    return normalized


def _normalize_description(value: str | None) -> str:
    normalized = (value or '').strip()
    if len(normalized) > MAX_DESCRIPTION_LENGTH:
        raise ValueError(f'Description must be {MAX_DESCRIPTION_LENGTH} characters or fewer.')
    return normalized


def _normalize_scheduled_at(value: datetime) -> datetime:
    # Stored as the clinic's wall-clock time.
    return value.replace(tzinfo=None, second=0, microsecond=0)


class CreateAppointmentRequest(BaseModel):
    title: str
    description: str = ''
    payment_method: PaymentMethod = PaymentMethod.BAC
    attendees: list[str] = []
    scheduled_at: datetime

    @field_validator('title')
    @classmethod
    def validate_title(cls, value: str) -> str:
        return _normalize_title(value)

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str | None) -> str:
        return _normalize_description(value)

    @field_validator('attendees')
    @classmethod
    def validate_attendees(cls, value: list[str]) -> list[str]:
        return clean_attendees(value)

    @field_validator('scheduled_at')
    @classmethod
    def validate_scheduled_at(cls, value: datetime) -> datetime:
        return _normalize_scheduled_at(value)


class ManualAppointmentRequest(BaseModel):
    client_id: str
    title: str
    description: str = ''
    scheduled_at: datetime

    @field_validator('client_id')
    @classmethod
    def validate_client_id(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('A client must be selected.')
        return normalized

    @field_validator('title')
    @classmethod
    def validate_title(cls, value: str) -> str:
        return _normalize_title(value)

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str | None) -> str:
        return _normalize_description(value)

    @field_validator('scheduled_at')
    @classmethod
    def validate_scheduled_at(cls, value: datetime) -> datetime:
        return _normalize_scheduled_at(value)


class FinishAppointmentRequest(VersionedActionRequest):
    rating: StrictInt | None = None


class ClientSummaryResponse(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: str

    class Config:
        from_attributes = True


class AppointmentResponse(BaseModel):
    id: str
    client_id: str
    title: str
    description: str
    payment_method: str
    attendees: list[str]
    status: str
    scheduled_at: datetime
    client_rating: int | None = None
    created_at: datetime
    version: int
    within_working_hours: bool
    client: ClientSummaryResponse | None = None


class AgendaStatsResponse(BaseModel):
    total: int
    today: int
    requests: int


def to_appointment_response(
    appointment: Appointment,
    working_hours: dict,
    include_client: bool = False,
) -> AppointmentResponse:
    client = None
    if include_client and appointment.client is not None:
        client = ClientSummaryResponse.model_validate(appointment.client)

    return AppointmentResponse(
        id=appointment.id,
        client_id=appointment.client_id,
        title=appointment.title,
        description=appointment.description or '',
        payment_method=appointment.payment_method,
        attendees=list(appointment.attendees or []),
        status=appointment.status,
        scheduled_at=appointment.scheduled_at,
        client_rating=appointment.client_rating,
        created_at=appointment.created_at,
        version=appointment.version,
        within_working_hours=is_within_working_hours(appointment.scheduled_at, working_hours or {}),
        client=client,
    )


def _lifecycle(db: Session, notifier: NotificationSink) -> AppointmentLifecycle:
    return AppointmentLifecycle(AppointmentRepository(db), notifier)


def _working_hours(db: Session) -> dict:
    # Read before acting so a missing config fails the request without a write.
    return ClinicConfigStore(db).get_clinic_config().working_hours or {}


@router.post('/appointments', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: CreateAppointmentRequest,
    session: ClientSession = Depends(require_client),
    db: Session = Depends(get_db),
):
    try:
        clinic_config = ClinicConfigStore(db).get_clinic_config()
        within_hours = is_within_working_hours(data.scheduled_at, clinic_config.working_hours or {})
        if config.ENFORCE_WORKING_HOURS and not within_hours:
            raise ValidationError('The clinic is not attending at the requested time.')

        appointment = AppointmentRepository(db).create_appointment({
            'client_id': session.profile_id,
            'title': data.title,
            'description': data.description,
            'payment_method': data.payment_method,
            'attendees': data.attendees,
            'scheduled_at': data.scheduled_at,
            'status': initial_status_for(BookingSource.CLIENT, clinic_config),
        })
        logger.info(
            'Client %s booked appointment %s with status %s.',
            session.profile_id,
            appointment.id,
            appointment.status,
        )

        return to_appointment_response(appointment, clinic_config.working_hours)
    except ClinicError as exc:
        raise http_error(exc) from exc


@router.get('/appointments/mine', response_model=list[AppointmentResponse])
def list_my_appointments(
    session: ClientSession = Depends(require_client),
    db: Session = Depends(get_db),
):
    try:
        working_hours = ClinicConfigStore(db).get_clinic_config().working_hours
        appointments = AppointmentRepository(db).list_appointments(client_id=session.profile_id)

        return [to_appointment_response(appointment, working_hours) for appointment in appointments]
    except ClinicError as exc:
        raise http_error(exc) from exc


@router.get('/appointments', response_model=list[AppointmentResponse])
def list_agenda(
    session: PractitionerSession = Depends(require_practitioner),
    db: Session = Depends(get_db),
):
    try:
        working_hours = ClinicConfigStore(db).get_clinic_config().working_hours
        appointments = AppointmentRepository(db).list_appointments(include_client=True)

        return [
            to_appointment_response(appointment, working_hours, include_client=True)
            for appointment in appointments
        ]
    except ClinicError as exc:
        raise http_error(exc) from exc


@router.get('/appointments/stats', response_model=AgendaStatsResponse)
def get_agenda_stats(
    session: PractitionerSession = Depends(require_practitioner),
    db: Session = Depends(get_db),
):
    try:
        appointments = AppointmentRepository(db).list_appointments()
        return AgendaStatsResponse(**agenda_stats(appointments, date.today()))
    except ClinicError as exc:
        raise http_error(exc) from exc


@router.post('/appointments/manual', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_manual_appointment(
    data: ManualAppointmentRequest,
    session: PractitionerSession = Depends(require_practitioner),
    db: Session = Depends(get_db),
):
    try:
        client = ProfileRepository(db).get_profile(data.client_id)
        if client.role != ProfileRole.CLIENT.value:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Appointments can only be booked for clients.',
            )

        clinic_config = ClinicConfigStore(db).get_clinic_config()
        appointment = AppointmentRepository(db).create_appointment({
            'client_id': client.id,
            'title': data.title,
            'description': data.description,
            'payment_method': PaymentMethod.NOT_APPLICABLE,
            'attendees': [],
            'scheduled_at': data.scheduled_at,
            'status': initial_status_for(BookingSource.PRACTITIONER, clinic_config),
        })
        logger.info('Practitioner booked appointment %s for client %s.', appointment.id, client.id)

        return to_appointment_response(appointment, clinic_config.working_hours, include_client=True)
    except ClinicError as exc:
        raise http_error(exc) from exc


@router.post('/appointments/{appointment_id}/confirm', response_model=AppointmentResponse)
def confirm_appointment(
    appointment_id: str,
    data: VersionedActionRequest | None = None,
    session: PractitionerSession = Depends(require_practitioner),
    db: Session = Depends(get_db),
    notifier: NotificationSink = Depends(get_notification_sink),
):
    expected_version = data.expected_version if data else None
    try:
        working_hours = _working_hours(db)
        appointment = _lifecycle(db, notifier).confirm(appointment_id, expected_version)
        return to_appointment_response(appointment, working_hours, include_client=True)
    except ClinicError as exc:
        raise http_error(exc) from exc


@router.post('/appointments/{appointment_id}/finish', response_model=AppointmentResponse)
def finish_appointment(
    appointment_id: str,
    data: FinishAppointmentRequest | None = None,
    session: PractitionerSession = Depends(require_practitioner),
    db: Session = Depends(get_db),
    notifier: NotificationSink = Depends(get_notification_sink),
):
    data = data or FinishAppointmentRequest()
    try:
        working_hours = _working_hours(db)
        appointment = _lifecycle(db, notifier).finish(appointment_id, data.rating, data.expected_version)
        return to_appointment_response(appointment, working_hours, include_client=True)
    except ClinicError as exc:
        raise http_error(exc) from exc


@router.post('/appointments/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: str,
    data: VersionedActionRequest | None = None,
    session: PractitionerSession = Depends(require_practitioner),
    db: Session = Depends(get_db),
    notifier: NotificationSink = Depends(get_notification_sink),
):
    expected_version = data.expected_version if data else None
    try:
        working_hours = _working_hours(db)
        appointment = _lifecycle(db, notifier).cancel(appointment_id, expected_version)
        return to_appointment_response(appointment, working_hours, include_client=True)
    except ClinicError as exc:
        raise http_error(exc) from exc


@router.post('/appointments/{appointment_id}/reschedule-next-day', response_model=AppointmentResponse)
def reschedule_appointment_to_next_day(
    appointment_id: str,
    data: VersionedActionRequest | None = None,
    session: PractitionerSession = Depends(require_practitioner),
    db: Session = Depends(get_db),
    notifier: NotificationSink = Depends(get_notification_sink),
):
    expected_version = data.expected_version if data else None
    try:
        working_hours = _working_hours(db)
        appointment = _lifecycle(db, notifier).reschedule_to_next_day(appointment_id, expected_version)
        return to_appointment_response(appointment, working_hours, include_client=True)
    except ClinicError as exc:
        raise http_error(exc) from exc
