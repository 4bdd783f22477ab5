"""
Database Package
Engine, sessions and the declarative base.
"""

from portal.database.base import Base, IdMixin, TimestampMixin
from portal.database.connection import close_db, get_async_session, session_scope

__all__ = [
    "Base",
    "IdMixin",
    "TimestampMixin",
    "close_db",
    "get_async_session",
    "session_scope",
]
