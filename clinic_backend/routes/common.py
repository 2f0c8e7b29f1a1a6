from fastapi import HTTPException
from pydantic import BaseModel

from clinic_backend.core.errors import ClinicError
from clinic_backend.services.notifications import NotificationSink, build_notification_sink


class VersionedActionRequest(BaseModel):
    expected_version: int | None = None


def http_error(exc: ClinicError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.detail)


def get_notification_sink() -> NotificationSink:
    return build_notification_sink()
