# backend/database.py
from contextlib import contextmanager

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from errors import ErrorType
from exceptions import AppException


Base = declarative_base()


def normalize_url(url: str) -> str:
    # Hosted Postgres hands out postgres://, SQLAlchemy requires postgresql://
    if url and url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def build_engine(url: str) -> Engine:
    url = normalize_url(url)

    if "sqlite" in url:
        # Writers wait on the database lock instead of failing immediately
        connect_args = {"check_same_thread": False, "timeout": 30}
    else:
        connect_args = {}

    return create_engine(url, connect_args=connect_args)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine):
    # Import models so every table is registered on Base.metadata
    import models.catalog  # noqa: F401
    import models.product  # noqa: F401
    import models.variant  # noqa: F401
    import models.coupon  # noqa: F401
    import models.stock  # noqa: F401
    import models.order  # noqa: F401
    import models.log  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db(request: Request):
    """Yield a session from the factory the app was started with.

    An uncommitted transaction is rolled back when the session closes, so a
    request that dies half-way leaves no partial writes behind.
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session):
    """Commit the unit of work on success, roll it back on any error."""
    try:
        yield db
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        # A unique index caught a concurrent writer that slipped past the lookup
        if "unique" in str(exc.orig).lower():
            raise AppException(ErrorType.DUPLICATE_KEY, "Duplicate value for a unique field") from exc
        raise AppException(ErrorType.VALIDATION_ERROR, "Value rejected by a database constraint") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise AppException(ErrorType.STORAGE_UNAVAILABLE, "Storage unavailable") from exc
    except Exception:
        db.rollback()
        raise
