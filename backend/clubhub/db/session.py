"""Database engine, session lifecycle and store access helpers."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy import create_engine
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from clubhub.core.config import settings
from clubhub.core.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(settings.DATABASE_URL, **_engine_kwargs(settings.DATABASE_URL))
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def run_read(db: Session, operation: str, fn: Callable[[], T], *, retries: int | None = None) -> T:
    """Run an idempotent read, retrying transient store failures."""
    attempts = 1 + max(settings.STORE_READ_RETRIES if retries is None else retries, 0)
    last_exc: SQLAlchemyError | None = None
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except (OperationalError, DBAPIError) as exc:
            last_exc = exc
            db.rollback()
            logger.warning("Store read %s failed (attempt %s/%s): %s", operation, attempt, attempts, exc)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Store read %s failed: %s", operation, exc)
            raise StoreUnavailableError(operation=operation) from exc
    raise StoreUnavailableError(operation=operation) from last_exc


def run_write(db: Session, operation: str, fn: Callable[[], T]) -> T:
    """Run ``fn`` and commit as one unit; any store failure rolls everything back."""
    try:
        result = fn()
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Store write %s rolled back: %s", operation, exc)
        raise StoreUnavailableError(operation=operation) from exc
    except Exception:
        db.rollback()
        raise
    return result
