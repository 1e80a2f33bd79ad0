# intake/db/__init__.py
"""
Database package for SQLAlchemy setup, session management, and base models.
"""

from intake.db.base import Base, TimestampMixin
from intake.db.session import AsyncSessionLocal, engine, get_session, transaction_session

__all__ = [
    "Base",
    "TimestampMixin",
    "engine",
    "AsyncSessionLocal",
    "get_session",
    "transaction_session",
]
