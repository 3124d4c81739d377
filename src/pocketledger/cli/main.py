"""Main CLI entry point."""

import click

from pocketledger.database.factories import create_sqlite_database
from pocketledger.settings import (
    DB_PATH_ENV,
    DEFAULT_LOG_LEVEL,
    LOG_LEVEL_ENV,
    OWNER_ENV,
    configure_logging,
)

from pocketledger.cli.commands import (
    account,
    add,
    transaction,
    reconcile,
    loan,
    category,
    init_categories,
    summary,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help=f"Path to database file (overrides {DB_PATH_ENV} environment variable)",
    envvar=DB_PATH_ENV,
)
@click.option(
    "--owner",
    help=f"Ledger owner (overrides {OWNER_ENV} environment variable)",
    envvar=OWNER_ENV,
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=DEFAULT_LOG_LEVEL,
    show_default=True,
    envvar=LOG_LEVEL_ENV,
    help="Logging verbosity",
)
@click.pass_context
def cli(ctx, db_path: str | None, owner: str | None, log_level: str):
    """Pocketledger - personal finance ledger.

    Record expenses, income, transfers, split payments and loans against
    accounts, then reconcile accounts against bank statements.
    """
    ctx.ensure_object(dict)
    configure_logging(log_level)

    # Open the store only when actually running a command (not for --help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path, owner_id=owner)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


account.register_commands(cli)
add.register_commands(cli)
transaction.register_commands(cli)
reconcile.register_commands(cli)
loan.register_commands(cli)
category.register_commands(cli)
init_categories.register_commands(cli)
summary.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
