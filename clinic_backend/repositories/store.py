import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from clinic_backend.core.errors import ConflictError, TransientStoreError

logger = logging.getLogger(__name__)

STORE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


@contextmanager
def store_errors(db: Session, action: str):
    """Roll back and re-raise SQLAlchemy failures as booking-core errors."""
    try:
        yield
    except StaleDataError as exc:
        db.rollback()
        raise ConflictError(f'Could not {action}: the record was changed by another request.') from exc
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(f'Could not {action}: the record conflicts with existing data.') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Store failure while trying to %s.', action)
        raise TransientStoreError(STORE_UNAVAILABLE_DETAIL) from exc
