"""
Shared FastAPI dependencies.

Tests override these through ``app.dependency_overrides``.
"""

import logging
from typing import Optional

from config import Config
from sentiment_engine.clock import Clock, SystemClock
from sentiment_engine.db import DatabaseManager

logger = logging.getLogger(__name__)

# Shared database manager instance
_db: Optional[DatabaseManager] = None


def get_database() -> DatabaseManager:
    """Get or create the database manager for the configured path."""
    global _db
    if _db is None:
        logger.info(f"Opening database at {Config.DATABASE_PATH}")
        _db = DatabaseManager(Config.DATABASE_PATH, echo=Config.DATABASE_ECHO)
        _db.init_db()
    return _db


def get_clock() -> Clock:
    """Time source for created/computed timestamps."""
    return SystemClock()
