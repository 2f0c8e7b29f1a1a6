from sqlalchemy.orm import Session

from clinic_backend.core.errors import ConflictError, NotFoundError, ValidationError
from clinic_backend.models.profile import Profile, ProfileRole
from clinic_backend.repositories.store import store_errors

ROLE_VALUES = frozenset(role.value for role in ProfileRole)


class ProfileRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_profile(self, profile_id: str) -> Profile:
        with store_errors(self.db, 'load the profile'):
            profile = self.db.query(Profile).filter(Profile.id == profile_id).first()

        if profile is None:
            raise NotFoundError('Profile not found.')
        return profile

    def list_profiles(self, role: ProfileRole | None = None) -> list[Profile]:
        with store_errors(self.db, 'list profiles'):
            query = self.db.query(Profile)
            if role is not None:
                query = query.filter(Profile.role == role.value)
            return query.order_by(Profile.last_name.asc(), Profile.first_name.asc()).all()

    def create_profile(
        self,
        profile_id: str,
        first_name: str,
        last_name: str,
        email: str,
        role: ProfileRole | str = ProfileRole.CLIENT,
    ) -> Profile:
        role_value = getattr(role, 'value', role)
        if role_value not in ROLE_VALUES:
            raise ValidationError(f'Unknown role {role_value!r}.')

        first_name = (first_name or '').strip()
        last_name = (last_name or '').strip()
        email = (email or '').strip().lower()
        if not profile_id or not first_name or not last_name or not email:
            raise ValidationError('Profile id, first name, last name and email are required.')

        with store_errors(self.db, 'check for an existing profile'):
            exists = self.db.query(Profile.id).filter(Profile.id == profile_id).first() is not None
        if exists:
            raise ConflictError('A profile already exists for this account.')

        profile = Profile(
            id=profile_id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            role=role_value,
        )
        with store_errors(self.db, 'create the profile'):
            self.db.add(profile)
            self.db.commit()
            self.db.refresh(profile)

        return profile
