"""Main CLI entry point."""

import logging

import click
from siteledger.database.factories import create_sqlite_database

# Import and register all commands at module level
from siteledger.cli.commands import (
    batch,
    entity,
    import_cmd,
    mapping,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides SITELEDGER_DB_PATH environment variable)",
    envvar="SITELEDGER_DB_PATH",
)
@click.option("--verbose", "-v", count=True, help="Show pipeline logs (-vv for match decisions)")
@click.pass_context
def cli(ctx, db_path: str | None, verbose: int):
    """Siteledger - Transaction import and reconciliation.

    Import accounting exports into the construction ledger without
    double-counting, matching names to payees, clients and projects and
    mapping accounts to job-cost categories.
    """
    ctx.ensure_object(dict)

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG if verbose > 1 else logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db


# Register all commands
import_cmd.register_commands(cli)
batch.register_commands(cli)
mapping.register_commands(cli)
entity.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
