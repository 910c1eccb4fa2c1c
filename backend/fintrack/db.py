import os
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from backend.fintrack.config import get_settings


def utcnow() -> datetime:
    """Naive UTC timestamp; every DateTime column stores UTC without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _build_engine(database_url: str):
    url = make_url(database_url)
    kwargs = {}
    if url.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        else:
            # Make sure folder exists for database
            folder = os.path.dirname(url.database)
            if folder:
                os.makedirs(folder, exist_ok=True)

    engine = create_engine(database_url, **kwargs)

    if url.get_backend_name() == "sqlite":
        # SQLite ignores ON DELETE CASCADE / SET NULL unless asked per connection
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


engine = _build_engine(get_settings().database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


class TimestampMixin:
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class SoftDeleteMixin:
    """Rows are tombstoned with ``deleted_at`` instead of being removed."""

    deleted_at = Column(DateTime, nullable=True, index=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        self.deleted_at = utcnow()

    def restore(self) -> None:
        self.deleted_at = None


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    # Import models *AFTER* Base is defined so every table is registered
    from backend.fintrack.models import (  # noqa: F401
        budget_model,
        category_model,
        token_model,
        transaction_model,
        user_model,
    )

    Base.metadata.create_all(bind=engine)
