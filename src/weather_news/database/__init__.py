"""Database module for the weather & news portal.

This module provides:
- SQLAlchemy async database connection
- User and session models
- User store with database and in-memory implementations
- Encrypted storage for session payloads
"""

from weather_news.database.connection import Database
from weather_news.database.models import Base, SessionRecord, User
from weather_news.database.users import DatabaseUserStore, MemoryUserStore, UserStore

__all__ = [
    # Connection
    "Database",
    # Models
    "Base",
    "SessionRecord",
    "User",
    # Stores
    "UserStore",
    "DatabaseUserStore",
    "MemoryUserStore",
]
