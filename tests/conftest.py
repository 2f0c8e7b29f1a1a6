"""Shared test fixtures."""
import os
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from clinic_backend.auth.session import ClientSession, PractitionerSession  # noqa: E402
from clinic_backend.database import Base  # noqa: E402
from clinic_backend.models.appointment import Appointment  # noqa: E402
from clinic_backend.models.clinic_config import ClinicConfig  # noqa: E402
from clinic_backend.models.profile import Profile, ProfileRole  # noqa: E402
from clinic_backend.repositories.appointments import AppointmentRepository  # noqa: E402
from clinic_backend.repositories.clinic_config import ClinicConfigStore  # noqa: E402
from clinic_backend.repositories.profiles import ProfileRepository  # noqa: E402
from clinic_backend.services.notifications import NotificationSink  # noqa: E402

TABLES = [Profile.__table__, ClinicConfig.__table__, Appointment.__table__]


class RecordingSink(NotificationSink):
    def __init__(self):
        self.sent = []

    def send(self, recipient: str, subject: str, body: str) -> None:
        self.sent.append({'recipient': recipient, 'subject': subject, 'body': body})


class FailingSink(NotificationSink):
    def send(self, recipient: str, subject: str, body: str) -> None:
        raise ConnectionRefusedError('SMTP server unreachable')


@pytest.fixture
def db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=TABLES)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(TABLES)))


@pytest.fixture
def client_profile(db) -> Profile:
    return ProfileRepository(db).create_profile(
        profile_id='client-1',
        first_name='Ana',
        last_name='Lopez',
        email='ana@example.com',
        role=ProfileRole.CLIENT,
    )


@pytest.fixture
def practitioner_profile(db) -> Profile:
    return ProfileRepository(db).create_profile(
        profile_id='doctor-1',
        first_name='Marta',
        last_name='Salvado',
        email='marta@clinic.example.com',
        role=ProfileRole.PRACTITIONER,
    )


@pytest.fixture
def clinic_config(db) -> ClinicConfig:
    return ClinicConfigStore(db).seed_clinic_config(is_open=True)


@pytest.fixture
def client_session(client_profile) -> ClientSession:
    return ClientSession(client_profile)


@pytest.fixture
def practitioner_session(practitioner_profile) -> PractitionerSession:
    return PractitionerSession(practitioner_profile)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_appointment(db, client_profile):
    def _make(status: str = 'pending', scheduled_at: datetime = datetime(2024, 6, 10, 9, 0), **fields) -> Appointment:
        data = {
            'client_id': client_profile.id,
            'title': 'Cleaning',
            'scheduled_at': scheduled_at,
            'status': status,
        }
        data.update(fields)
        return AppointmentRepository(db).create_appointment(data)

    return _make


@pytest.fixture
def failing_sink() -> FailingSink:
    return FailingSink()
