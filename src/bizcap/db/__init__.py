"""Database layer: engine factory, base models, session management."""

from bizcap.db.base import Base, TimestampMixin
from bizcap.db.engine import SessionLocal, create_db_engine, get_db, get_engine

__all__ = [
    "Base",
    "TimestampMixin",
    "create_db_engine",
    "get_engine",
    "SessionLocal",
    "get_db",
]
