"""Engine factory with SQLite PRAGMA injection and a lazily bound session factory.

The engine is built on first use rather than at import time, so services and
tests can be handed a Session from any engine without touching the configured
database.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from bizcap.config import get_settings


def create_db_engine(url: Optional[str] = None) -> Engine:
    """Create a SQLAlchemy engine for the pattern store.

    - Falls back to settings.database_url when no URL is given
    - Creates the parent directory of file-backed SQLite databases
    - Event listener sets foreign keys and busy timeout on each SQLite connection
    """
    settings = get_settings()
    url = url or settings.database_url
    parsed = make_url(url)
    is_sqlite = parsed.get_backend_name() == "sqlite"

    if is_sqlite and parsed.database and parsed.database != ":memory:":
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(
        url,
        pool_pre_ping=True,
        echo=settings.debug,
    )

    if is_sqlite:

        @event.listens_for(engine, "connect")
        def set_sqlite_pragmas(dbapi_connection, connection_record):
            """Set SQLite PRAGMAs on every new connection."""
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.close()

    return engine


# Session factory, bound to the configured engine on first get_engine() call
SessionLocal = sessionmaker(expire_on_commit=False)

_engine: Optional[Engine] = None


def get_engine() -> Engine:
    """Return the process-wide engine, creating and binding it on first use."""
    global _engine
    if _engine is None:
        _engine = create_db_engine()
        SessionLocal.configure(bind=_engine)
    return _engine


@contextmanager
def get_db() -> Generator[Session, None, None]:
    """Context manager yielding a database session.

    Usage:
        with get_db() as db:
            patterns = db.query(AssignmentPattern).all()
    """
    get_engine()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
