from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from appointments.core.config import settings
from appointments.core.exceptions import StoreUnavailable

PG_LOCK_NOT_AVAILABLE_SQLSTATE = "55P03"

engine = create_engine(settings.database_url, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def is_postgresql_session(db: Session) -> bool:
    bind = db.get_bind()
    return bind is not None and bind.dialect.name == "postgresql"


def is_pg_lock_not_available(exc: DBAPIError) -> bool:
    original_error = getattr(exc, "orig", None)
    if original_error is None:
        return False

    sqlstate = getattr(original_error, "sqlstate", None)
    if sqlstate is None:
        sqlstate = getattr(original_error, "pgcode", None)

    return sqlstate == PG_LOCK_NOT_AVAILABLE_SQLSTATE


def is_store_unavailable(exc: DBAPIError) -> bool:
    return isinstance(exc, (OperationalError, InterfaceError)) or exc.connection_invalidated


def apply_lock_timeout(db: Session, timeout_ms: int | None = None) -> None:
    """Bound row-lock waits for the current PostgreSQL transaction.

    SQLite has no row locks; writers there wait on the connection's busy
    timeout instead, so this is a no-op for it.
    """
    if not is_postgresql_session(db):
        return
    timeout = int(timeout_ms if timeout_ms is not None else settings.db_lock_timeout_ms)
    db.execute(text(f"SET LOCAL lock_timeout = '{timeout}ms'"))


@contextmanager
def store_errors() -> Iterator[None]:
    """Report an unreachable database as ``StoreUnavailable`` on read paths."""
    try:
        yield
    except DBAPIError as exc:
        if is_store_unavailable(exc):
            raise StoreUnavailable() from exc
        raise
