"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so the import pipeline keeps
working on plain domain entities when the schema changes.
"""

import json
from decimal import Decimal
from typing import Iterable, Optional

from siteledger.domain import entities as domain
from siteledger.utils.amount_parser import quantize_amount
from siteledger.database.models import (
    Payee as ORMPayee,
    Client as ORMClient,
    Project as ORMProject,
    EntityAlias as ORMEntityAlias,
    CategoryMapping as ORMCategoryMapping,
    ImportBatch as ORMImportBatch,
    Expense as ORMExpense,
    Revenue as ORMRevenue,
)


def alias_to_domain(orm_alias: ORMEntityAlias) -> domain.EntityAlias:
    """Convert SQLAlchemy EntityAlias model to domain EntityAlias entity."""
    return domain.EntityAlias(
        id=orm_alias.id,
        entity_type=domain.EntityType(orm_alias.entity_type),
        entity_id=orm_alias.entity_id,
        alias=orm_alias.alias,
        match_type=domain.AliasMatchType(orm_alias.match_type),
        is_active=orm_alias.is_active,
    )


def payee_to_domain(orm_payee: ORMPayee, aliases: Iterable[ORMEntityAlias] = ()) -> domain.Payee:
    """Convert SQLAlchemy Payee model to domain Payee entity."""
    return domain.Payee(
        id=orm_payee.id,
        display_name=orm_payee.display_name,
        aliases=tuple(alias_to_domain(a) for a in aliases),
    )


def client_to_domain(orm_client: ORMClient, aliases: Iterable[ORMEntityAlias] = ()) -> domain.Client:
    """Convert SQLAlchemy Client model to domain Client entity."""
    return domain.Client(
        id=orm_client.id,
        display_name=orm_client.display_name,
        company_name=orm_client.company_name,
        aliases=tuple(alias_to_domain(a) for a in aliases),
    )


def project_to_domain(orm_project: ORMProject, aliases: Iterable[ORMEntityAlias] = ()) -> domain.Project:
    """Convert SQLAlchemy Project model to domain Project entity."""
    return domain.Project(
        id=orm_project.id,
        number=orm_project.number,
        name=orm_project.name or "",
        aliases=tuple(alias_to_domain(a) for a in aliases),
    )


def category_mapping_to_domain(orm_mapping: ORMCategoryMapping) -> domain.CategoryMapping:
    """Convert SQLAlchemy CategoryMapping model to domain CategoryMapping entity."""
    return domain.CategoryMapping(
        id=orm_mapping.id,
        account_path=orm_mapping.account_path,
        category=domain.AccountCategory(orm_mapping.category),
        is_active=orm_mapping.is_active,
        created_at=orm_mapping.created_at,
    )


def import_batch_to_domain(orm_batch: ORMImportBatch) -> domain.ImportBatch:
    """Convert SQLAlchemy ImportBatch model to domain ImportBatch entity."""
    match_log = json.loads(orm_batch.match_log) if orm_batch.match_log else []
    return domain.ImportBatch(
        id=orm_batch.id,
        file_name=orm_batch.file_name,
        created_at=orm_batch.created_at,
        imported_count=orm_batch.imported_count,
        duplicate_count=orm_batch.duplicate_count,
        error_count=orm_batch.error_count,
        status=domain.BatchStatus(orm_batch.status),
        match_log=tuple(match_log),
    )


def expense_to_history(orm_expense: ORMExpense, payee_name: Optional[str]) -> domain.HistoricalRecord:
    """Convert SQLAlchemy Expense model to a history record."""
    return domain.HistoricalRecord(
        id=orm_expense.id,
        track=domain.Track.EXPENSE,
        date=orm_expense.date,
        amount=Decimal(orm_expense.amount),
        description=orm_expense.description,
        source_name=orm_expense.source_name,
        entity_name=payee_name,
        batch_id=orm_expense.batch_id,
    )


def revenue_to_history(orm_revenue: ORMRevenue, client_name: Optional[str]) -> domain.HistoricalRecord:
    """Convert SQLAlchemy Revenue model to a history record."""
    return domain.HistoricalRecord(
        id=orm_revenue.id,
        track=domain.Track.REVENUE,
        date=orm_revenue.date,
        amount=Decimal(orm_revenue.amount),
        description=orm_revenue.description,
        source_name=orm_revenue.source_name,
        entity_name=client_name,
        invoice_number=orm_revenue.invoice_number,
        batch_id=orm_revenue.batch_id,
    )


def expense_to_domain(orm_expense: ORMExpense) -> domain.CommittedRow:
    """Convert SQLAlchemy Expense model to domain CommittedRow entity."""
    return domain.CommittedRow(
        id=orm_expense.id,
        track=domain.Track.EXPENSE,
        batch_id=orm_expense.batch_id,
        date=orm_expense.date,
        amount=Decimal(orm_expense.amount),
        category=domain.AccountCategory(orm_expense.category),
        kind=domain.TransactionKind(orm_expense.kind),
        description=orm_expense.description,
        source_name=orm_expense.source_name,
        account_path=orm_expense.account_path,
        entity_id=orm_expense.payee_id,
        project_id=orm_expense.project_id,
    )


def revenue_to_domain(orm_revenue: ORMRevenue) -> domain.CommittedRow:
    """Convert SQLAlchemy Revenue model to domain CommittedRow entity."""
    return domain.CommittedRow(
        id=orm_revenue.id,
        track=domain.Track.REVENUE,
        batch_id=orm_revenue.batch_id,
        date=orm_revenue.date,
        amount=Decimal(orm_revenue.amount),
        category=domain.AccountCategory(orm_revenue.category),
        kind=domain.TransactionKind(orm_revenue.kind),
        description=orm_revenue.description,
        source_name=orm_revenue.source_name,
        account_path=orm_revenue.account_path,
        entity_id=orm_revenue.client_id,
        project_id=orm_revenue.project_id,
        invoice_number=orm_revenue.invoice_number,
    )


def pending_to_orm(row: domain.PendingRow, batch_id: str) -> ORMExpense | ORMRevenue:
    """Build the ORM object for a resolved row tagged with its batch."""
    common = dict(
        batch_id=batch_id,
        project_id=row.project_id,
        date=row.date,
        amount=quantize_amount(row.amount) if row.amount is not None else None,
        category=row.category.value,
        kind=row.kind.value,
        description=row.description,
        source_name=row.source_name,
        account_path=row.account_path,
        account_name=row.account_name,
    )
    if row.track is domain.Track.REVENUE:
        return ORMRevenue(client_id=row.entity_id, invoice_number=row.invoice_number, **common)
    return ORMExpense(payee_id=row.entity_id, **common)
