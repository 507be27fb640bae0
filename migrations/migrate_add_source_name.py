#!/usr/bin/env python3
"""Migration script to add source_name columns to expenses and revenues.

Older databases only stored a generated description ("bill - Home Depot
(Unassigned)", "Invoice from Acme") and the resolved payee or client. This
migration adds a nullable source_name column to both tables and fills it
from those descriptions where the export name can still be recovered:

- source_name (VARCHAR, nullable)

Rows whose name cannot be recovered keep NULL and are matched through the
joined payee/client display name during history deduplication.

Usage:
    python migrations/migrate_add_source_name.py [--db-path PATH]
"""

import sys
from pathlib import Path

# Add src to path so we can import siteledger modules
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy import text, inspect
from siteledger.database.factories import create_sqlite_database
from siteledger.domain.batch import BatchService

TABLES = ("expenses", "revenues")


def column_exists(engine, table_name: str, column_name: str) -> bool:
    """Check if a column exists in a table.

    Args:
        engine: SQLAlchemy engine
        table_name: Name of the table
        column_name: Name of the column

    Returns:
        True if column exists, False otherwise
    """
    inspector = inspect(engine)
    columns = [col["name"] for col in inspector.get_columns(table_name)]
    return column_name in columns


def migrate_database(database_path: str | None = None) -> None:
    """Add source_name columns and backfill them.

    Args:
        database_path: Path to database file. If None, uses default location.

    Raises:
        Exception: If migration fails
    """
    db = create_sqlite_database(database_path=database_path)
    db.connect()

    try:
        # Get engine from sessionmaker by creating a session and accessing its bind
        session = db.session_factory()
        try:
            engine = session.bind
            if engine is None:
                raise Exception("Could not get database engine from session")
        finally:
            session.close()

        inspector = inspect(engine)
        existing_tables = inspector.get_table_names()
        for table in TABLES:
            if table not in existing_tables:
                raise Exception(f"Table '{table}' does not exist. Please initialize the database schema first.")

        print("Starting migration: adding source_name columns...")
        with engine.begin() as conn:
            for table in TABLES:
                if column_exists(engine, table, "source_name"):
                    print(f"  Column source_name already exists in {table}")
                    continue
                conn.execute(text(f"ALTER TABLE {table} ADD COLUMN source_name VARCHAR"))
                print(f"  Added column: {table}.source_name")

        print("Backfilling source names from legacy descriptions...")
        updated = BatchService(db).backfill_source_names()
        print(f"  Updated {updated} row(s)")

        print("Migration completed successfully!")

    except Exception as e:
        print(f"Migration failed: {e}")
        raise
    finally:
        db.disconnect()


def main():
    """Main entry point for migration script."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Migrate database to add source_name columns"
    )
    parser.add_argument(
        "--db-path",
        type=str,
        help="Path to database file (overrides SITELEDGER_DB_PATH environment variable)",
    )
    args = parser.parse_args()

    try:
        migrate_database(database_path=args.db_path)
        return 0
    except Exception as e:
        print(f"\nMigration failed: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
