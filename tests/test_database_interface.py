"""Tests for Database interface returning domain models."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from siteledger.domain import entities
from siteledger.domain.errors import ConflictError, NotFoundError


def _pending(**kwargs):
    values = dict(
        track=entities.Track.EXPENSE,
        date=date(2025, 1, 15),
        amount=Decimal("-42.50"),
        category=entities.AccountCategory.MATERIALS,
        kind=entities.TransactionKind.CHECK,
        description="Lumber",
        source_name="Home Depot",
        account_path="Cost of Goods Sold:Supplies & Materials",
        account_name="Supplies & Materials",
        entity_id=None,
        project_id=None,
    )
    values.update(kwargs)
    return entities.PendingRow(**values)


class TestDatabaseInterface:
    """Tests to verify Database interface returns domain models."""

    def test_list_payees_with_aliases(self, temp_db):
        """Test that payees come back with their active aliases only."""
        payee_id = temp_db.create_payee("Home Depot")
        temp_db.create_alias(entities.EntityType.PAYEE, payee_id, "THD")
        temp_db.create_alias(
            entities.EntityType.PAYEE, payee_id, "HD", entities.AliasMatchType.STARTS_WITH
        )

        payees = temp_db.list_payees()

        assert len(payees) == 1
        payee = payees[0]
        assert isinstance(payee, entities.Payee)
        assert payee.display_name == "Home Depot"
        assert [a.alias for a in payee.aliases] == ["THD", "HD"]
        assert payee.aliases[1].match_type is entities.AliasMatchType.STARTS_WITH

    def test_aliases_are_scoped_by_type(self, temp_db):
        """Test that a client alias is not attached to a payee with the same ID."""
        payee_id = temp_db.create_payee("Home Depot")
        client_id = temp_db.create_client("Acme", company_name="Acme Inc")
        assert payee_id == client_id
        temp_db.create_alias(entities.EntityType.CLIENT, client_id, "ACME PROPS")

        assert temp_db.list_payees()[0].aliases == ()
        client = temp_db.list_clients()[0]
        assert client.company_name == "Acme Inc"
        assert client.aliases[0].alias == "ACME PROPS"

    def test_create_alias_twice_returns_same_id(self, temp_db):
        """Test the alias uniqueness constraint."""
        payee_id = temp_db.create_payee("Home Depot")
        first = temp_db.create_alias(entities.EntityType.PAYEE, payee_id, "THD")
        second = temp_db.create_alias(entities.EntityType.PAYEE, payee_id, "THD")
        assert first == second

    def test_create_alias_unknown_entity(self, temp_db):
        """Test alias for a missing entity."""
        with pytest.raises(NotFoundError):
            temp_db.create_alias(entities.EntityType.PROJECT, 99, "X")

    def test_projects(self, temp_db):
        """Test project round trip."""
        project_id = temp_db.create_project("24-001", "Kitchen Remodel")

        projects = temp_db.list_projects()
        assert projects[0] == entities.Project(id=project_id, number="24-001", name="Kitchen Remodel")
        assert temp_db.entity_exists(entities.EntityType.PROJECT, project_id)
        assert not temp_db.entity_exists(entities.EntityType.PAYEE, project_id)
        assert not temp_db.entity_exists(entities.EntityType.ACCOUNT, project_id)

    def test_category_mapping_lookup_is_case_insensitive(self, temp_db):
        """Test mapping lookup by path."""
        mapping_id = temp_db.create_category_mapping("Job Expenses:Tools", entities.AccountCategory.EQUIPMENT)

        mapping = temp_db.get_category_mapping_by_path("  job expenses:TOOLS ")

        assert isinstance(mapping, entities.CategoryMapping)
        assert mapping.id == mapping_id
        assert mapping.category is entities.AccountCategory.EQUIPMENT
        assert isinstance(mapping.created_at, datetime)

    def test_duplicate_category_mapping_conflicts(self, temp_db):
        """Test one mapping per account path."""
        temp_db.create_category_mapping("Job Expenses:Tools", entities.AccountCategory.EQUIPMENT)

        with pytest.raises(ConflictError, match="already mapped"):
            temp_db.create_category_mapping("job expenses:tools", entities.AccountCategory.MATERIALS)

    def test_list_committed_rows_filters_dates(self, temp_db):
        """Test the history query window."""
        temp_db.commit_batch(
            "b1",
            "jan.csv",
            [_pending(date=date(2025, 1, 10)), _pending(date=date(2025, 1, 15)), _pending(date=date(2025, 1, 20))],
            0,
            0,
            [],
        )

        records = temp_db.list_committed_rows(date(2025, 1, 14), date(2025, 1, 16), entities.Track.EXPENSE)

        assert len(records) == 1
        record = records[0]
        assert isinstance(record, entities.HistoricalRecord)
        assert record.amount == Decimal("-42.50")
        assert record.source_name == "Home Depot"
        assert record.batch_id == "b1"
        assert temp_db.list_committed_rows(None, None, entities.Track.REVENUE) == []

    def test_list_committed_rows_joins_entity_name(self, temp_db):
        """Test that the payee display name is included."""
        payee_id = temp_db.create_payee("Home Depot")
        temp_db.commit_batch("b1", "jan.csv", [_pending(entity_id=payee_id), _pending(source_name="X")], 0, 0, [])

        records = temp_db.list_committed_rows(None, None, entities.Track.EXPENSE)

        assert [r.entity_name for r in records] == ["Home Depot", None]

    def test_list_batch_rows_returns_domain_models(self, temp_db):
        """Test committed rows of a batch."""
        temp_db.commit_batch("b1", "jan.csv", [_pending()], 0, 0, [])

        rows = temp_db.list_batch_rows("b1")

        assert isinstance(rows[0], entities.CommittedRow)
        assert rows[0].kind is entities.TransactionKind.CHECK
        assert rows[0].category is entities.AccountCategory.MATERIALS
        assert rows[0].account_path == "Cost of Goods Sold:Supplies & Materials"

    def test_import_batch_round_trip(self, temp_db):
        """Test batch metadata and match log."""
        log = [{"source_text": "Home Depot", "decision": "auto_matched"}]
        batch = temp_db.commit_batch("b1", "jan.csv", [_pending()], 3, 1, log)

        assert isinstance(batch, entities.ImportBatch)
        fetched = temp_db.get_import_batch("b1")
        assert fetched.imported_count == 1
        assert fetched.duplicate_count == 3
        assert fetched.error_count == 1
        assert fetched.status is entities.BatchStatus.COMPLETED
        assert fetched.match_log == tuple(log)
        assert temp_db.get_import_batch("missing") is None

    def test_update_and_delete_rows(self, temp_db):
        """Test the helpers used by backfill and sweep."""
        temp_db.commit_batch("b1", "jan.csv", [_pending(source_name=None), _pending()], 0, 0, [])
        missing = temp_db.list_committed_rows(None, None, entities.Track.EXPENSE, missing_source_name=True)
        assert len(missing) == 1

        assert temp_db.update_source_names(entities.Track.EXPENSE, {missing[0].id: "Lowe's"}) == 1
        assert temp_db.list_committed_rows(None, None, entities.Track.EXPENSE, missing_source_name=True) == []

        assert temp_db.remove_batch_duplicates("b1", {entities.Track.EXPENSE: [missing[0].id]}) == 1
        assert len(temp_db.list_batch_rows("b1")) == 1
        batch = temp_db.get_import_batch("b1")
        assert batch.imported_count == 1
        assert batch.duplicate_count == 1

    def test_remove_batch_duplicates_ignores_other_batches(self, temp_db):
        """Test that only the named batch loses rows."""
        temp_db.commit_batch("b1", "jan.csv", [_pending()], 0, 0, [])
        temp_db.commit_batch("b2", "feb.csv", [_pending()], 0, 0, [])
        other = temp_db.list_batch_rows("b1")[0]

        assert temp_db.remove_batch_duplicates("b2", {entities.Track.EXPENSE: [other.id]}) == 0
        assert len(temp_db.list_batch_rows("b1")) == 1
        assert temp_db.get_import_batch("b2").imported_count == 1

    def test_remove_batch_duplicates_unknown_batch(self, temp_db):
        """Test sweeping a missing batch."""
        with pytest.raises(NotFoundError):
            temp_db.remove_batch_duplicates("missing", {})
