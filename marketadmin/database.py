"""
SQLAlchemy engine and session setup.

Usage in FastAPI route handlers:
    from marketadmin.database import get_db
    def my_route(db: Session = Depends(get_db)): ...

Usage in RQ worker jobs (synchronous):
    from marketadmin.database import SessionLocal
    with SessionLocal() as db:
        ...
"""

import logging
from collections.abc import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from marketadmin.settings import settings

logger = logging.getLogger(__name__)


def build_engine(url: str, echo: bool = False) -> Engine:
    """
    Create an engine for `url`.

    Postgres gets the pooled production configuration. SQLite (tests, local
    demos) gets a single shared connection and explicit BEGIN handling so
    SAVEPOINTs behave the same way they do on Postgres.
    """
    if not url.startswith("sqlite"):
        # pool_pre_ping validates connections before use, which matters for
        # long-lived worker processes that may outlive a Postgres connection.
        return create_engine(
            url, pool_pre_ping=True, pool_size=5, max_overflow=10, echo=echo
        )

    sqlite_engine = create_engine(
        url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=echo,
    )

    @event.listens_for(sqlite_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(sqlite_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return sqlite_engine


# ── Engine ─────────────────────────────────────────────────────────────────
engine = build_engine(settings.database_url, echo=settings.is_development)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    class_=Session,
)


# ── FastAPI dependency ──────────────────────────────────────────────────────
def get_db() -> Generator[Session, None, None]:
    """Yield a database session, ensuring it is closed after the request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ── Health check helper ─────────────────────────────────────────────────────
def check_db_connection() -> bool:
    """Return True if the database is reachable. Used by /health endpoint."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as exc:
        logger.warning("Database health check failed: %s", exc)
        return False
