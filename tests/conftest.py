"""Shared pytest fixtures for siteledger tests."""

import tempfile
import os
from pathlib import Path
import pytest

from siteledger.config import ImportSettings
from siteledger.database.factories import create_sqlite_database
from siteledger.domain.batch import BatchService
from siteledger.domain.categories import CategoryMappingService
from siteledger.domain.entity import EntityService
from siteledger.domain.importer import TransactionImportService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def settings():
    """Default thresholds, resolved inline."""
    return ImportSettings(max_workers=1)


@pytest.fixture
def entity_service(temp_db):
    """Create an EntityService with a temporary database."""
    return EntityService(temp_db)


@pytest.fixture
def mapping_service(temp_db):
    """Create a CategoryMappingService with a temporary database."""
    return CategoryMappingService(temp_db)


@pytest.fixture
def batch_service(temp_db):
    """Create a BatchService with a temporary database."""
    return BatchService(temp_db)


@pytest.fixture
def import_service(temp_db, settings):
    """Create a TransactionImportService with a temporary database."""
    return TransactionImportService(temp_db, settings=settings)


@pytest.fixture
def seeded_pools(entity_service, mapping_service):
    """Create sample payees, clients and projects plus the default mappings."""
    ids = {
        "home_depot": entity_service.create_payee("Home Depot"),
        "lopez": entity_service.create_payee("Lopez Framing LLC"),
        "acme": entity_service.create_client("Acme Properties", company_name="Acme Properties Inc"),
        "project": entity_service.create_project("24-001", name="Kitchen Remodel"),
    }
    mapping_service.seed_defaults()
    return ids


@pytest.fixture
def make_row():
    """Build a header-mapped export row with sensible defaults."""

    def _make_row(**overrides):
        row = {
            "Date": "01/15/2025",
            "Transaction type": "Expense",
            "Name": "Home Depot",
            "Amount": "100.00",
            "Account full name": "Cost of Goods Sold:Supplies & Materials",
            "Account name": "Supplies & Materials",
            "Description": "",
            "Project/WO #": "",
            "Invoice #": "",
        }
        row.update(overrides)
        return row

    return _make_row


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
