"""Export import commands."""

import click
from siteledger.cli.error_handling import handle_domain_error
from siteledger.domain.errors import DomainError
from siteledger.domain.importer import ImportPreview, TransactionImportService, total_amount


def _parse_assignment(value: str) -> tuple[tuple[str, str], int]:
    """Parse 'TYPE:SOURCE TEXT=ID' into an override entry."""
    target, sep, entity_id = value.rpartition("=")
    entity_type, colon, source_text = target.partition(":")
    if not sep or not colon or not source_text.strip():
        raise click.BadParameter(f"Expected TYPE:NAME=ID, got '{value}'", param_hint="--assign")
    try:
        return (entity_type.strip().lower(), source_text.strip()), int(entity_id)
    except ValueError:
        raise click.BadParameter(f"Entity ID must be a number in '{value}'", param_hint="--assign")


def _print_preview(preview: ImportPreview) -> None:
    click.echo(f"\nPreview of {preview.file_name}:")
    click.echo(f"  New rows: {len(preview.unique_rows)} (total {total_amount(preview.unique_rows):.2f})")
    click.echo(f"  In-file duplicates: {len(preview.in_file_duplicates)}")
    click.echo(f"  Already imported: {len(preview.history_duplicates)}")
    if preview.reimported:
        click.echo(f"  Re-imported on request: {len(preview.reimported)}")
    click.echo(f"  Errors: {preview.error_count}")

    for duplicate in preview.in_file_duplicates:
        click.echo(f"    Row {duplicate.row.row_number}: {duplicate.reason}")
    for duplicate in preview.history_duplicates:
        click.echo(f"    Row {duplicate.row.row_number}: already imported [{duplicate.key}]")
    for error in preview.errors:
        click.echo(f"    {error}", err=True)

    if preview.unresolved_entities:
        click.echo("\nUnresolved names:")
        for item in preview.unresolved_entities:
            click.echo(
                f"  {item.entity_type.value:8s} {item.source_text:30s} "
                f"{item.count:3d} rows  {item.total_amount:10.2f}"
            )
            for candidate in item.suggestions:
                click.echo(
                    f"      suggestion: {candidate.entity_name} (ID: {candidate.entity_id}, "
                    f"{candidate.confidence:.0f}%)"
                )

    if preview.unmapped_categories:
        click.echo("\nUnmapped accounts:")
        for item in preview.unmapped_categories:
            suggestion = item.suggested_category.value if item.suggested_category else "-"
            click.echo(
                f"  {item.account_path:40s} {item.count:3d} rows  {item.total_amount:10.2f}  "
                f"suggested: {suggestion}"
            )

    stats = preview.mapping_stats
    click.echo(
        f"\nAccount mapping: {stats.get('exact', 0)} exact, {stats.get('prefix', 0)} by prefix, "
        f"{stats.get('unmapped', 0)} unmapped, {stats.get('no_account', 0)} without an account"
    )
    for label, result in (("Expenses", preview.reconciliation), ("Revenue", preview.revenue_reconciliation)):
        if result is None:
            continue
        status = "aligned" if result.is_aligned else "MISMATCH"
        click.echo(
            f"Reconciliation ({label}): existing {result.existing_total:.2f}, "
            f"duplicates {result.duplicate_total:.2f}, difference {result.difference:.2f} [{status}]"
        )


@click.group("import")
def import_group():
    """Import accounting export files."""
    pass


@import_group.command("preview")
@click.argument("csv_file", type=click.Path(exists=True))
@click.option("--reimport", "reimport_keys", multiple=True, help="Duplicate key to import again anyway")
@click.pass_context
def preview_import(ctx, csv_file: str, reimport_keys: tuple[str, ...]):
    """Show what importing a file would do, without writing anything."""
    db = ctx.obj["db"]
    service = TransactionImportService(db)

    try:
        preview = service.preview_csv(csv_file, force_keys=set(reimport_keys))
    except (DomainError, FileNotFoundError) as e:
        handle_domain_error(ctx, e)
        return
    _print_preview(preview)


@import_group.command("commit")
@click.argument("csv_file", type=click.Path(exists=True))
@click.option(
    "--override-reconciliation",
    is_flag=True,
    help="Commit even if duplicate totals do not reconcile",
)
@click.option("--reimport", "reimport_keys", multiple=True, help="Duplicate key to import again anyway")
@click.option(
    "--assign",
    "assignments",
    multiple=True,
    help="Assign an unresolved name, e.g. 'payee:Home Depot #123=4'",
)
@click.pass_context
def commit_import(
    ctx,
    csv_file: str,
    override_reconciliation: bool,
    reimport_keys: tuple[str, ...],
    assignments: tuple[str, ...],
):
    """Import a file as one batch.

    Examples:
        siteledger import commit export.csv
        siteledger import commit export.csv --assign "payee:HD Supply=3"
        siteledger import commit export.csv --override-reconciliation
    """
    db = ctx.obj["db"]
    service = TransactionImportService(db)
    overrides = dict(_parse_assignment(value) for value in assignments)

    try:
        preview = service.preview_csv(csv_file, force_keys=set(reimport_keys))
        _print_preview(preview)
        result = service.commit(
            preview,
            override_reconciliation=override_reconciliation,
            entity_overrides=overrides,
        )
    except (DomainError, FileNotFoundError) as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"\nImport complete:")
    click.echo(f"  Batch: {result.batch_id}")
    click.echo(f"  Imported: {result.imported_count} rows")
    click.echo(f"  Skipped: {result.duplicate_count} duplicates")
    if result.error_count:
        click.echo(f"  Errors: {result.error_count}")


def register_commands(cli):
    """Register import commands with main CLI."""
    cli.add_command(import_group, name="import")
