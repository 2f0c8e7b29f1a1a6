import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from clinic_backend.core import config
from clinic_backend.core.errors import ClinicError
from clinic_backend.database import Base, SessionLocal, engine, ensure_appointment_schema, ensure_clinic_config_schema
from clinic_backend.models import appointment, clinic_config, profile  # noqa: F401
from clinic_backend.repositories.clinic_config import ClinicConfigStore
from clinic_backend.routes import appointment_routes, clinic_routes, profile_routes

logging.basicConfig(level=config.LOG_LEVEL.upper())

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()

    try:
        Base.metadata.create_all(bind=engine)
        ensure_appointment_schema()
        ensure_clinic_config_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')
        return

    db = SessionLocal()
    try:
        ClinicConfigStore(db).seed_clinic_config()
    except ClinicError:
        logger.exception('Could not seed the clinic configuration.')
    finally:
        db.close()


@app.get('/')
def root():
    return {'status': 'Clinic Booking API Running'}


app.include_router(profile_routes.router)
app.include_router(clinic_routes.router)
app.include_router(appointment_routes.router)
