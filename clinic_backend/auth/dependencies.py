from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from clinic_backend.auth import jwt_handler
from clinic_backend.auth.session import ClientSession, ClinicSession, PractitionerSession, build_session
from clinic_backend.core.errors import AuthError, ClinicError, NotFoundError
from clinic_backend.database import get_db
from clinic_backend.repositories.profiles import ProfileRepository

security = HTTPBearer()


def get_token_subject(credentials: HTTPAuthorizationCredentials = Depends(security)) -> str:
    """Signed-in user id, whether or not a profile exists for it yet."""
    try:
        profile_id = jwt_handler.profile_id_from_token(credentials.credentials)
    except Exception as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    if not profile_id:
        raise HTTPException(status_code=401, detail="Invalid token subject")
    return profile_id


def get_current_session(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> ClinicSession:
    profile_id = get_token_subject(credentials)

    try:
        profile = ProfileRepository(db).get_profile(profile_id)
        return build_session(profile)
    except NotFoundError as exc:
        raise HTTPException(status_code=401, detail="Profile not found") from exc
    except AuthError as exc:
        raise HTTPException(status_code=401, detail=exc.detail) from exc
    except ClinicError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


def require_client(session: ClinicSession = Depends(get_current_session)) -> ClientSession:
    if not isinstance(session, ClientSession):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only clients can book and view their own appointments.",
        )
    return session


def require_practitioner(session: ClinicSession = Depends(get_current_session)) -> PractitionerSession:
    if not isinstance(session, PractitionerSession):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the practitioner can manage appointments and clinic settings.",
        )
    return session
