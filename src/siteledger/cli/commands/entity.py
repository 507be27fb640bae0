"""Payee, client and project commands."""

import click
from siteledger.cli.error_handling import handle_domain_error
from siteledger.domain.entities import AliasMatchType, EntityType
from siteledger.domain.entity import EntityService
from siteledger.domain.errors import DomainError


@click.group()
def entity_group():
    """Manage payees, clients, projects and their aliases."""
    pass


@entity_group.command("add-payee")
@click.argument("name")
@click.pass_context
def add_payee(ctx, name: str):
    """Create a payee (worker or vendor)."""
    db = ctx.obj["db"]
    service = EntityService(db)

    try:
        payee_id = service.create_payee(name)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Created payee '{name}' (ID: {payee_id})")


@entity_group.command("add-client")
@click.argument("name")
@click.option("--company", help="Company name, also used for matching")
@click.pass_context
def add_client(ctx, name: str, company: str | None):
    """Create a client."""
    db = ctx.obj["db"]
    service = EntityService(db)

    try:
        client_id = service.create_client(name, company_name=company)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Created client '{name}' (ID: {client_id})")


@entity_group.command("add-project")
@click.argument("number")
@click.option("--name", default="", help="Project name")
@click.pass_context
def add_project(ctx, number: str, name: str):
    """Create a project or work order."""
    db = ctx.obj["db"]
    service = EntityService(db)

    try:
        project_id = service.create_project(number, name=name)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Created project '{number}' (ID: {project_id})")


@entity_group.command("add-alias")
@click.argument("entity_type", type=click.Choice(["payee", "client", "project"]))
@click.argument("entity_id", type=int)
@click.argument("alias")
@click.option(
    "--match",
    "match_type",
    type=click.Choice([m.value for m in AliasMatchType]),
    default=AliasMatchType.EXACT.value,
    help="How the alias is compared with export text",
)
@click.pass_context
def add_alias(ctx, entity_type: str, entity_id: int, alias: str, match_type: str):
    """Add an alias for a payee, client or project.

    Examples:
        siteledger entity add-alias payee 3 "HOME DEPOT"
        siteledger entity add-alias payee 3 "HD" --match starts_with
    """
    db = ctx.obj["db"]
    service = EntityService(db)

    try:
        alias_id = service.add_alias(entity_type, entity_id, alias, match_type)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Added alias '{alias}' for {entity_type} {entity_id} (ID: {alias_id})")


@entity_group.command("list")
@click.argument("entity_type", type=click.Choice(["payee", "client", "project"]))
@click.pass_context
def list_entities(ctx, entity_type: str):
    """List payees, clients or projects."""
    db = ctx.obj["db"]
    service = EntityService(db)

    kind = EntityType(entity_type)
    if kind is EntityType.PAYEE:
        records = [(p.id, p.display_name, p.aliases) for p in service.list_payees()]
    elif kind is EntityType.CLIENT:
        records = [(c.id, c.display_name, c.aliases) for c in service.list_clients()]
    else:
        records = [(p.id, f"{p.number} {p.name}".strip(), p.aliases) for p in service.list_projects()]

    if not records:
        click.echo(f"No {entity_type}s found.")
        return

    click.echo(f"\n{entity_type.capitalize()}s:")
    click.echo("-" * 60)
    for record_id, name, aliases in records:
        alias_text = ", ".join(a.alias for a in aliases)
        suffix = f" | Aliases: {alias_text}" if alias_text else ""
        click.echo(f"ID: {record_id:3d} | {name}{suffix}")


def register_commands(cli):
    """Register entity commands with main CLI."""
    cli.add_command(entity_group, name="entity")
