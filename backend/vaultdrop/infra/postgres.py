import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from vaultdrop.models.base import Base

logger = logging.getLogger(__name__)

# =========================
# ENGINE CONFIGURATION
# =========================


def build_engine(database_url: str, echo: bool = False, statement_timeout: float = 30.0) -> Engine:
    """
    Create the engine for the message database.

    PostgreSQL gets a pooled engine; SQLite (local runs and tests) gets
    a connection that may be shared across the request thread pool and
    a busy timeout so concurrent writers wait instead of failing.
    statement_timeout bounds the SQLite lock wait and the PostgreSQL
    statement time; a timed-out take rolls back and leaves the message.
    """
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": statement_timeout},
            echo=echo,
        )

    return create_engine(
        database_url,
        connect_args={"options": f"-c statement_timeout={int(statement_timeout * 1000)}"},
        pool_pre_ping=True,  # Check connections before using them
        pool_size=5,         # Maintain 5 connections in the pool
        max_overflow=10,     # Allow 10 extra connections if needed
        pool_recycle=3600,   # Recycle connections every hour
        echo=echo,           # Set True to see SQL statements (debugging)
    )


# =========================
# SESSION CONFIGURATION
# =========================


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


@contextmanager
def db_session(session_factory: sessionmaker):
    """
    Context manager for one unit of work.
    Usage:
        with db_session(factory) as session:
            session.execute(...)
    Commits on success, rolls back and re-raises on error.
    """
    session: Session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine):
    """Create all tables registered on Base."""
    # Import models here to register them with Base
    from vaultdrop.models.message import MessageRecord  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")


def check_connection(engine: Engine) -> bool:
    """Run a trivial query; True when the database answers."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.exception("Database connection failed")
        return False
