from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from clinic_backend.auth.dependencies import get_current_session, get_token_subject, require_practitioner
from clinic_backend.auth.session import ClinicSession, PractitionerSession
from clinic_backend.core.errors import ClinicError
from clinic_backend.database import get_db
from clinic_backend.models.profile import ProfileRole
from clinic_backend.repositories.profiles import ProfileRepository
from clinic_backend.routes.common import http_error

router = APIRouter(tags=['profiles'])

MAX_NAME_LENGTH = 80


class CreateProfileRequest(BaseModel):
    first_name: str
    last_name: str
    email: str

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError('Name is required')
        if len(value) > MAX_NAME_LENGTH:
            raise ValueError(f'Name must be at most {MAX_NAME_LENGTH} characters')
        return value

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        value = value.strip().lower()
        local_part, _, domain = value.partition('@')
        if not local_part or '.' not in domain:
            raise ValueError('Enter a valid email address')
        return value


class ProfileResponse(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: str
    role: str
    created_at: datetime

    class Config:
        from_attributes = True


@router.get('/profiles/me', response_model=ProfileResponse)
def me(session: ClinicSession = Depends(get_current_session)):
    return session.profile


@router.get('/profiles/clients', response_model=list[ProfileResponse])
def list_clients(
    session: PractitionerSession = Depends(require_practitioner),
    db: Session = Depends(get_db),
):
    try:
        return ProfileRepository(db).list_profiles(role=ProfileRole.CLIENT)
    except ClinicError as exc:
        raise http_error(exc) from exc


@router.post('/profiles', response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
def create_my_profile(
    data: CreateProfileRequest,
    profile_id: str = Depends(get_token_subject),
    db: Session = Depends(get_db),
):
    """Sign-up: the signed-in user registers their own client profile."""
    try:
        return ProfileRepository(db).create_profile(
            profile_id,
            data.first_name,
            data.last_name,
            data.email,
            role=ProfileRole.CLIENT,
        )
    except ClinicError as exc:
        raise http_error(exc) from exc
