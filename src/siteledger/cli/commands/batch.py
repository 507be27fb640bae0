"""Import batch audit commands."""

import click
from siteledger.cli.error_handling import handle_domain_error
from siteledger.domain.batch import BatchService
from siteledger.domain.errors import DomainError


@click.group()
def batch_group():
    """Inspect and roll back import batches."""
    pass


@batch_group.command("list")
@click.pass_context
def list_batches(ctx):
    """List import batches, newest first."""
    db = ctx.obj["db"]
    service = BatchService(db)

    batches = service.list_batches()
    if not batches:
        click.echo("No import batches found.")
        return

    click.echo("\nImport batches:")
    click.echo("-" * 100)
    for batch in batches:
        click.echo(
            f"{batch.id} | {batch.created_at:%Y-%m-%d %H:%M} | {batch.file_name:25s} | "
            f"imported {batch.imported_count:4d} | duplicates {batch.duplicate_count:4d} | "
            f"{batch.status.value}"
        )


@batch_group.command("show")
@click.argument("batch_id")
@click.option("--log", "show_log", is_flag=True, help="Show the match log")
@click.pass_context
def show_batch(ctx, batch_id: str, show_log: bool):
    """Show a batch and the rows it imported."""
    db = ctx.obj["db"]
    service = BatchService(db)

    try:
        batch = service.get_batch(batch_id)
        rows = service.list_batch_rows(batch_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"\nBatch {batch.id} ({batch.status.value})")
    click.echo(f"  File: {batch.file_name}")
    click.echo(f"  Imported: {batch.imported_count}  Duplicates: {batch.duplicate_count}  Errors: {batch.error_count}")
    for row in rows:
        click.echo(
            f"  {row.track.value:7s} {row.date} {row.amount:>10.2f}  {row.category.value:15s} "
            f"{row.source_name or '':25s} {row.description or ''}"
        )
    if show_log:
        click.echo("\nMatch log:")
        for entry in batch.match_log:
            click.echo(
                f"  {entry['entity_type']:8s} {entry['source_text']:30s} -> "
                f"{entry['matched_entity_name'] or '-'} ({entry['decision']}, {entry['confidence']:.0f})"
            )


@batch_group.command("rollback")
@click.argument("batch_id")
@click.pass_context
def rollback_batch(ctx, batch_id: str):
    """Delete every row a batch imported."""
    db = ctx.obj["db"]
    service = BatchService(db)

    try:
        result = service.rollback_batch(batch_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Rolled back batch {batch_id}: {result.rows_reverted} rows reverted")


@batch_group.command("sweep")
@click.argument("batch_id")
@click.pass_context
def sweep_batch(ctx, batch_id: str):
    """Remove rows of a batch that another batch already imported."""
    db = ctx.obj["db"]
    service = BatchService(db)

    try:
        removed = service.sweep_duplicates(batch_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Removed {removed} duplicate rows from batch {batch_id}")


@batch_group.command("backfill-names")
@click.pass_context
def backfill_names(ctx):
    """Store source names for rows imported before they were kept."""
    db = ctx.obj["db"]
    service = BatchService(db)

    updated = service.backfill_source_names()
    click.echo(f"Backfilled source names for {updated} rows")


def register_commands(cli):
    """Register batch commands with main CLI."""
    cli.add_command(batch_group, name="batch")
