from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from clinic_backend.core import config


DATABASE_URL = config.DATABASE_URL

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_appointment_schema_checked = False
_clinic_config_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('version', 'ALTER TABLE appointments ADD COLUMN version INTEGER DEFAULT 1'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_client_scheduled ON appointments(client_id, scheduled_at)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_status ON appointments(status)')
            )

        _appointment_schema_checked = True


def ensure_clinic_config_schema() -> None:
    global _clinic_config_schema_checked

    if _clinic_config_schema_checked:
        return

    with _schema_lock:
        if _clinic_config_schema_checked:
            return

        inspector = inspect(engine)

        if 'clinic_config' not in inspector.get_table_names():
            _clinic_config_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('clinic_config')}
        migration_steps = [
            ('version', 'ALTER TABLE clinic_config ADD COLUMN version INTEGER DEFAULT 1'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))

        _clinic_config_schema_checked = True
