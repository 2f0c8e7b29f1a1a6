"""Role dispatch for signed-in users.

A profile's role is resolved once per request into either a
:class:`ClientSession` or a :class:`PractitionerSession`; routes depend on the
variant they serve instead of comparing role strings.
"""

from clinic_backend.core.errors import AuthError
from clinic_backend.models.profile import Profile, ProfileRole


class ClinicSession:
    role: ProfileRole

    def __init__(self, profile: Profile):
        self.profile = profile

    @property
    def profile_id(self) -> str:
        return self.profile.id


class ClientSession(ClinicSession):
    """A patient: books visits and sees their own appointments."""

    role = ProfileRole.CLIENT


class PractitionerSession(ClinicSession):
    """The clinic's practitioner: manages the agenda and the clinic settings."""

    role = ProfileRole.PRACTITIONER


SESSION_TYPES = {
    ProfileRole.CLIENT.value: ClientSession,
    ProfileRole.PRACTITIONER.value: PractitionerSession,
}


def build_session(profile: Profile) -> ClinicSession:
    session_type = SESSION_TYPES.get(profile.role)
    if session_type is None:
        raise AuthError(f'Profile has an unknown role {profile.role!r}.')
    return session_type(profile)
