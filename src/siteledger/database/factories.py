"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from siteledger.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks SITELEDGER_DB_PATH
            environment variable, then defaults to ~/.siteledger/siteledger.db

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        # Check environment variable
        database_path = os.environ.get("SITELEDGER_DB_PATH")

    if database_path is None:
        # Default to ~/.siteledger/siteledger.db
        home = Path.home()
        db_dir = home / ".siteledger"
        db_dir.mkdir(exist_ok=True)
        database_path = str(db_dir / "siteledger.db")

    database_url = f"sqlite:///{database_path}"
    return SQLAlchemyDatabase(database_url)
