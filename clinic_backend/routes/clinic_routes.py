import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from clinic_backend.auth.dependencies import get_current_session, require_practitioner
from clinic_backend.auth.session import ClinicSession, PractitionerSession
from clinic_backend.core.errors import ClinicError
from clinic_backend.database import get_db
from clinic_backend.models.clinic_config import ClinicConfig
from clinic_backend.repositories.clinic_config import ClinicConfigStore
from clinic_backend.routes.common import VersionedActionRequest, http_error
from clinic_backend.services.availability import WEEKDAYS, is_within_working_hours, parse_time_of_day

router = APIRouter(tags=['clinic'])

logger = logging.getLogger(__name__)


class WorkingDayResponse(BaseModel):
    enabled: bool
    start: str
    end: str


class ClinicConfigResponse(BaseModel):
    id: int
    is_open: bool
    working_hours: dict[str, WorkingDayResponse]
    version: int


class UpdateWorkingDayRequest(VersionedActionRequest):
    enabled: bool
    start: str
    end: str

    @field_validator('start', 'end')
    @classmethod
    def validate_time_of_day(cls, value: str) -> str:
        try:
            return parse_time_of_day(value).strftime('%H:%M')
        except ClinicError as exc:
            raise ValueError(exc.detail) from exc


class AvailabilityCheckResponse(BaseModel):
    at: datetime
    is_open: bool
    within_working_hours: bool


def to_clinic_config_response(clinic_config: ClinicConfig) -> ClinicConfigResponse:
    working_hours = clinic_config.working_hours or {}
    return ClinicConfigResponse(
        id=clinic_config.id,
        is_open=clinic_config.is_open,
        working_hours={
            weekday: WorkingDayResponse(**working_hours[weekday])
            for weekday in WEEKDAYS
            if weekday in working_hours
        },
        version=clinic_config.version,
    )


@router.get('/clinic/config', response_model=ClinicConfigResponse)
def get_clinic_config(
    session: ClinicSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        return to_clinic_config_response(ClinicConfigStore(db).get_clinic_config())
    except ClinicError as exc:
        raise http_error(exc) from exc


@router.post('/clinic/toggle', response_model=ClinicConfigResponse)
def toggle_clinic_status(
    data: VersionedActionRequest | None = None,
    session: PractitionerSession = Depends(require_practitioner),
    db: Session = Depends(get_db),
):
    expected_version = data.expected_version if data else None
    try:
        clinic_config = ClinicConfigStore(db).toggle_open(expected_version)
        logger.info('Clinic is now %s.', 'open' if clinic_config.is_open else 'closed')

        return to_clinic_config_response(clinic_config)
    except ClinicError as exc:
        raise http_error(exc) from exc


@router.put('/clinic/working-hours/{weekday}', response_model=ClinicConfigResponse)
def update_working_day(
    weekday: str,
    data: UpdateWorkingDayRequest,
    session: PractitionerSession = Depends(require_practitioner),
    db: Session = Depends(get_db),
):
    try:
        clinic_config = ClinicConfigStore(db).set_working_day(
            weekday,
            {'enabled': data.enabled, 'start': data.start, 'end': data.end},
            data.expected_version,
        )

        return to_clinic_config_response(clinic_config)
    except ClinicError as exc:
        raise http_error(exc) from exc


@router.get('/clinic/availability', response_model=AvailabilityCheckResponse)
def check_availability(
    at: datetime = Query(...),
    session: ClinicSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        clinic_config = ClinicConfigStore(db).get_clinic_config()
        at = at.replace(tzinfo=None)

        return AvailabilityCheckResponse(
            at=at,
            is_open=clinic_config.is_open,
            within_working_hours=is_within_working_hours(at, clinic_config.working_hours or {}),
        )
    except ClinicError as exc:
        raise http_error(exc) from exc
