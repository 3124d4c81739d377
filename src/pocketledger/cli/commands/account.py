"""Account management commands."""

from datetime import UTC, datetime, time

import click

from pocketledger.cli.error_handling import domain_errors
from pocketledger.cli.parsing import format_amount, parse_amount_or_exit, parse_date_or_exit
from pocketledger.domain.account import AccountService
from pocketledger.domain.entities import AccountType


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option(
    "--type",
    "account_type",
    type=click.Choice([t.value for t in AccountType], case_sensitive=False),
    default=AccountType.BANK.value,
    show_default=True,
    help="Account type; decides the group it is listed under",
)
@click.option("--starting-balance", default="0", help="Opening balance (or opening value)")
@click.option("--icon", help="Display icon")
@click.pass_context
def create_account(ctx, name: str, account_type: str, starting_balance: str, icon: str | None):
    """Create a new account.

    Examples:
        pocketledger account create "Cash" --type cash --starting-balance 1000000
        pocketledger account create "Stocks" --type investment
    """
    service = AccountService(ctx.obj["db"])
    balance = parse_amount_or_exit(ctx, starting_balance, "starting balance")
    with domain_errors(ctx):
        account_id = service.create_account(
            name, account_type.lower(), starting_balance=balance, icon=icon
        )
        click.echo(f"Created account '{name.strip()}' (ID: {account_id})")


@account_group.command("seed")
@click.pass_context
def seed_accounts(ctx):
    """Create the default accounts of a new ledger."""
    service = AccountService(ctx.obj["db"])
    created = service.seed_default_accounts()
    click.echo(f"Created {len(created)} account(s).")


@account_group.command("list")
@click.option("--all", "include_archived", is_flag=True, help="Include archived accounts")
@click.pass_context
def list_accounts(ctx, include_archived: bool):
    """List accounts grouped by SPENDING, SAVINGS and INVESTMENTS."""
    service = AccountService(ctx.obj["db"])
    groups = service.grouped_accounts(include_archived=include_archived)
    if not groups:
        click.echo("No accounts found.")
        return

    for group, members in groups:
        total = sum(value for _, value in members)
        click.echo(f"\n{group.value} ({format_amount(total)})")
        click.echo("-" * 60)
        for acc, value in members:
            archived = " [archived]" if not acc.is_active else ""
            click.echo(f"{acc.name:25s} {acc.type.value:12s} {format_amount(value):>18s}{archived}")


@account_group.command("show")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def show_account(ctx, account: str):
    """Show balances of an account, or the value history of a market-value account."""
    service = AccountService(ctx.obj["db"])
    with domain_errors(ctx):
        acc = service.get_account(account)
        click.echo(f"{acc.name} ({acc.type.value}, {acc.group.value})")
        if acc.is_market_value:
            replay = service.value_history(acc.name)
            click.echo(f"Current value: {format_amount(replay.current_value)}")
            for point in replay.points:
                click.echo(
                    f"  {point.timestamp:%Y-%m-%d %H:%M}  {point.source:17s} "
                    f"{format_amount(point.amount):>15s} -> {format_amount(point.running_value)}"
                )
        else:
            balances = service.get_balances(acc.name)
            click.echo(f"Working balance:   {format_amount(balances.working_balance)}")
            click.echo(f"Cleared balance:   {format_amount(balances.cleared_balance)}")
            click.echo(f"Uncleared balance: {format_amount(balances.uncleared_balance)}")
        if acc.last_reconcile_date is not None:
            click.echo(
                f"Last reconciled {acc.last_reconcile_date:%Y-%m-%d %H:%M} "
                f"at {format_amount(acc.last_reconcile_balance)}"
            )


@account_group.command("rename")
@click.argument("account", metavar="ACCOUNT")
@click.argument("new_name", metavar="NEW_NAME")
@click.pass_context
def rename_account(ctx, account: str, new_name: str) -> None:
    """Rename an account and update its transactions.

    Examples:
        pocketledger account rename "Bank" "Checking"
    """
    service = AccountService(ctx.obj["db"])
    with domain_errors(ctx):
        count = service.rename_account(account, new_name)
        click.echo(f"Renamed account to '{new_name}' ({count} transaction(s) updated)")


@account_group.command("archive")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def archive_account(ctx, account: str) -> None:
    """Archive an account. Its transactions are kept."""
    with domain_errors(ctx):
        AccountService(ctx.obj["db"]).archive_account(account)
        click.echo(f"Archived account '{account}'")


@account_group.command("unarchive")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def unarchive_account(ctx, account: str) -> None:
    """Restore an archived account."""
    with domain_errors(ctx):
        AccountService(ctx.obj["db"]).unarchive_account(account)
        click.echo(f"Restored account '{account}'")


@account_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.option("--force", is_flag=True, help="Also delete the account's transactions")
@click.pass_context
def delete_account(ctx, account: str, force: bool) -> None:
    """Delete an account.

    An account with transactions can only be deleted with --force, which
    deletes the transactions too. Consider archiving instead.
    """
    with domain_errors(ctx):
        count = AccountService(ctx.obj["db"]).delete_account(account, force=force)
        suffix = f" and {count} transaction(s)" if count else ""
        click.echo(f"Deleted account '{account}'{suffix}")


@account_group.command("reorder")
@click.argument("accounts", nargs=-1, required=True, metavar="ACCOUNT...")
@click.pass_context
def reorder_accounts(ctx, accounts: tuple[str, ...]) -> None:
    """Set the display order of accounts (first listed comes first)."""
    with domain_errors(ctx):
        AccountService(ctx.obj["db"]).reorder_accounts(accounts)
        click.echo(f"Reordered {len(accounts)} account(s)")


@account_group.command("set-starting-balance")
@click.argument("account", metavar="ACCOUNT")
@click.argument("amount")
@click.pass_context
def set_starting_balance(ctx, account: str, amount: str) -> None:
    """Change the opening balance of an account."""
    value = parse_amount_or_exit(ctx, amount)
    with domain_errors(ctx):
        AccountService(ctx.obj["db"]).set_starting_balance(account, value)
        click.echo(f"Starting balance of '{account}' set to {format_amount(value)}")


@account_group.command("update-value")
@click.argument("account", metavar="ACCOUNT")
@click.argument("value")
@click.option("--date", "on", help="Date of the valuation (defaults to now)")
@click.pass_context
def update_value(ctx, account: str, value: str, on: str | None) -> None:
    """Record the current market value of an investment-type account."""
    new_value = parse_amount_or_exit(ctx, value, "value")
    at = None
    if on:
        at = datetime.combine(parse_date_or_exit(ctx, on), time.min, tzinfo=UTC)
    with domain_errors(ctx):
        update = AccountService(ctx.obj["db"]).update_value(account, new_value, at=at)
        click.echo(
            f"Value of '{account}' updated from {format_amount(update.previous_value)} "
            f"to {format_amount(update.value)}"
        )


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
