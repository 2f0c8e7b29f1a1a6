"""Error taxonomy shared by the repositories, the booking rules and the routes."""


class ClinicError(Exception):
    """Base class for every error raised by the booking core."""

    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(ClinicError):
    """A required field is missing or malformed."""

    status_code = 422


class NotFoundError(ClinicError):
    status_code = 404


class AuthError(ClinicError):
    status_code = 401


class InvalidTransitionError(ClinicError):
    """The appointment's current status does not allow the requested action."""

    status_code = 409

    def __init__(self, current_status: str, target_status: str):
        super().__init__(f"Cannot move an appointment from {current_status} to {target_status}.")
        self.current_status = current_status
        self.target_status = target_status


class ConflictError(ClinicError):
    """Somebody else updated the record since it was read."""

    status_code = 409


class TransientStoreError(ClinicError):
    status_code = 503
