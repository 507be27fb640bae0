"""Account category mapping commands."""

import click
from siteledger.cli.error_handling import handle_domain_error
from siteledger.domain.categories import CategoryMappingService
from siteledger.domain.entities import AccountCategory
from siteledger.domain.errors import DomainError

CATEGORY_CHOICES = [c.value for c in AccountCategory]


@click.group()
def mapping_group():
    """Manage account-to-category mappings."""
    pass


@mapping_group.command("list")
@click.option("--all", "include_inactive", is_flag=True, help="Include inactive mappings")
@click.pass_context
def list_mappings(ctx, include_inactive: bool):
    """List category mappings."""
    db = ctx.obj["db"]
    service = CategoryMappingService(db)

    mappings = service.list_mappings(include_inactive=include_inactive)
    if not mappings:
        click.echo("No category mappings found.")
        return

    click.echo("\nCategory mappings:")
    click.echo("-" * 70)
    for m in mappings:
        flag = "" if m.is_active else "  (inactive)"
        click.echo(f"{m.account_path:45s} -> {m.category.value}{flag}")


@mapping_group.command("set")
@click.argument("account_path")
@click.argument("category", type=click.Choice(CATEGORY_CHOICES, case_sensitive=False))
@click.pass_context
def set_mapping(ctx, account_path: str, category: str):
    """Map an account path (and its sub-accounts) to a category.

    Examples:
        siteledger mapping set "Cost of Goods Sold:Dumpster Rental" materials
        siteledger mapping set "Job Expenses" materials
    """
    db = ctx.obj["db"]
    service = CategoryMappingService(db)

    try:
        mapping_id = service.resolve_unmapped(account_path, category.lower())
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Mapped '{account_path}' to {category.lower()} (ID: {mapping_id})")


@mapping_group.command("deactivate")
@click.argument("account_path")
@click.pass_context
def deactivate_mapping(ctx, account_path: str):
    """Stop applying a mapping to future imports."""
    db = ctx.obj["db"]
    service = CategoryMappingService(db)

    try:
        service.deactivate(account_path)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Deactivated mapping for '{account_path}'")


@mapping_group.command("seed")
@click.pass_context
def seed_mappings(ctx):
    """Create the default mappings that do not exist yet."""
    db = ctx.obj["db"]
    service = CategoryMappingService(db)

    created = service.seed_defaults()
    click.echo(f"Created {created} default mappings")


def register_commands(cli):
    """Register mapping commands with main CLI."""
    cli.add_command(mapping_group, name="mapping")
