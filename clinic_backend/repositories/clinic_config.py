"""Singleton clinic configuration row."""

import logging

from sqlalchemy.orm import Session

from clinic_backend.core.errors import ConflictError, NotFoundError, ValidationError
from clinic_backend.models.clinic_config import ClinicConfig
from clinic_backend.repositories.store import store_errors
from clinic_backend.services.availability import (
    default_working_hours,
    normalize_weekday,
    validate_working_day,
    validate_working_hours,
)

logger = logging.getLogger(__name__)

CLINIC_CONFIG_ID = 1
UPDATABLE_FIELDS = frozenset({'is_open', 'working_hours'})


class ClinicConfigStore:
    def __init__(self, db: Session):
        self.db = db

    def get_clinic_config(self) -> ClinicConfig:
        with store_errors(self.db, 'load the clinic configuration'):
            clinic_config = self.db.query(ClinicConfig).order_by(ClinicConfig.id.asc()).first()

        if clinic_config is None:
            raise NotFoundError('Clinic configuration has not been set up.')
        return clinic_config

    def seed_clinic_config(self, is_open: bool = True, working_hours: dict | None = None) -> ClinicConfig:
        """Create the configuration row if the clinic has none yet."""
        try:
            return self.get_clinic_config()
        except NotFoundError:
            pass

        clinic_config = ClinicConfig(
            id=CLINIC_CONFIG_ID,
            is_open=is_open,
            working_hours=validate_working_hours(working_hours or default_working_hours()),
        )
        with store_errors(self.db, 'seed the clinic configuration'):
            self.db.add(clinic_config)
            self.db.commit()
            self.db.refresh(clinic_config)

        logger.info('Seeded clinic configuration (is_open=%s).', clinic_config.is_open)
        return clinic_config

    def update_clinic_config(self, fields: dict, expected_version: int | None = None) -> ClinicConfig:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Clinic configuration fields cannot be updated: {', '.join(sorted(unknown))}.")

        cleaned = dict(fields)
        if 'is_open' in cleaned:
            cleaned['is_open'] = bool(cleaned['is_open'])
        if 'working_hours' in cleaned:
            cleaned['working_hours'] = validate_working_hours(cleaned['working_hours'])

        clinic_config = self.get_clinic_config()
        if expected_version is not None and clinic_config.version != expected_version:
            raise ConflictError('Clinic configuration was changed by another request. Reload and try again.')

        for field, value in cleaned.items():
            setattr(clinic_config, field, value)

        with store_errors(self.db, 'update the clinic configuration'):
            self.db.commit()
            self.db.refresh(clinic_config)

        return clinic_config

    def toggle_open(self, expected_version: int | None = None) -> ClinicConfig:
        clinic_config = self.get_clinic_config()
        return self.update_clinic_config({'is_open': not clinic_config.is_open}, expected_version)

    def set_working_day(self, weekday: str, entry: dict, expected_version: int | None = None) -> ClinicConfig:
        weekday = normalize_weekday(weekday)
        clinic_config = self.get_clinic_config()
        # A fresh dict, so the JSON column registers the change.
        working_hours = dict(clinic_config.working_hours or {})
        working_hours[weekday] = validate_working_day(entry)
        return self.update_clinic_config({'working_hours': working_hours}, expected_version)
