"""Transaction management commands."""

import click

from pocketledger.cli.error_handling import domain_errors
from pocketledger.cli.parsing import (
    format_amount,
    parse_amount_or_exit,
    parse_date_or_exit,
    period_choice,
    resolve_cli_date_range,
)
from pocketledger.domain.entities import (
    ClearStatus,
    Entry,
    EntryKind,
    SplitEntry,
    TransferEntry,
)
from pocketledger.domain.ordering import group_entries_by_date
from pocketledger.domain.reconciliation import ReconciliationService
from pocketledger.domain.transaction import TransactionService

_STATUS_MARKS = {
    ClearStatus.UNCLEARED: " ",
    ClearStatus.CLEARED: "c",
    ClearStatus.RECONCILED: "R",
}


def describe_entry(entry: Entry) -> str:
    """One-line description of an entry."""
    if isinstance(entry, TransferEntry):
        label = f"{entry.from_account} -> {entry.to_account}"
        amount = entry.amount
    elif isinstance(entry, SplitEntry):
        names = [line.loan if line.is_loan else line.category for line in entry.splits]
        label = f"{entry.account} | split: {', '.join(str(n) for n in names)}"
        amount = entry.total_amount
    else:
        detail = getattr(entry, "category", None) or getattr(entry, "loan", None) or entry.kind.value
        label = f"{entry.account} | {detail}"
        amount = entry.amount
    payee = getattr(entry, "payee", None)
    if payee:
        label += f" | {payee}"
    if entry.memo:
        label += f" ({entry.memo})"
    return f"[{_STATUS_MARKS[entry.clear_status]}] {format_amount(amount):>14s}  {label}"


@click.group()
def transaction_group():
    """Manage transactions."""
    pass


@transaction_group.command("list")
@click.option("--account", help="Only transactions touching this account")
@click.option("--category", help="Only transactions in this category")
@click.option(
    "--kind",
    type=click.Choice([k.value for k in EntryKind], case_sensitive=False),
    help="Only transactions of this kind",
)
@click.option(
    "--status",
    type=click.Choice([s.value for s in ClearStatus], case_sensitive=False),
    help="Only transactions with this clear status",
)
@click.option("--start-date", help="Start date (inclusive)")
@click.option("--end-date", help="End date (inclusive)")
@click.option("--period", type=period_choice, help="Named period instead of explicit dates")
@click.option("--ids", "show_ids", is_flag=True, help="Show transaction IDs")
@click.pass_context
def list_transactions(ctx, account, category, kind, status, start_date, end_date, period, show_ids):
    """List transactions, newest first, grouped by date."""
    service = TransactionService(ctx.obj["db"])
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )
    with domain_errors(ctx):
        entries = service.list_entries(
            account=account,
            start_date=start,
            end_date=end,
            category=category,
            kind=kind.lower() if kind else None,
            clear_status=status.lower() if status else None,
        )
    if not entries:
        click.echo("No transactions found.")
        return
    for day, members in group_entries_by_date(entries):
        click.echo(f"\n{day.isoformat()}")
        for entry in members:
            prefix = f"{entry.id}  " if show_ids else ""
            click.echo(f"  {prefix}{describe_entry(entry)}")


@transaction_group.command("update")
@click.argument("entry_id")
@click.option("--date", "on", help="New date")
@click.option("--amount", help="New amount")
@click.option("--category", help="New category")
@click.option("--payee", help="New payee")
@click.option("--memo", help="New memo")
@click.option("--account", help="New account")
@click.pass_context
def update_transaction(ctx, entry_id, on, amount, category, payee, memo, account):
    """Update fields of a transaction. Reconciled transactions are locked."""
    service = TransactionService(ctx.obj["db"])
    changes = {}
    if on is not None:
        changes["date"] = parse_date_or_exit(ctx, on)
    if amount is not None:
        value = parse_amount_or_exit(ctx, amount)
        entry = service.get_entry(entry_id)
        changes["total_amount" if isinstance(entry, SplitEntry) else "amount"] = value
    for key, value in (("category", category), ("payee", payee), ("memo", memo), ("account", account)):
        if value is not None:
            changes[key] = value or None
    if not changes:
        click.echo("Nothing to update.")
        return
    with domain_errors(ctx):
        service.update_entry(entry_id, **changes)
        click.echo(f"Updated transaction {entry_id}")


@transaction_group.command("delete")
@click.argument("entry_ids", nargs=-1, required=True)
@click.pass_context
def delete_transactions(ctx, entry_ids):
    """Delete one or more transactions."""
    with domain_errors(ctx):
        count = TransactionService(ctx.obj["db"]).bulk_delete(entry_ids)
        click.echo(f"Deleted {count} transaction(s)")


@transaction_group.command("duplicate")
@click.argument("entry_ids", nargs=-1, required=True)
@click.option("--date", "on", help="Date for the copies (defaults to the originals' dates)")
@click.pass_context
def duplicate_transactions(ctx, entry_ids, on):
    """Copy one or more transactions as new uncleared transactions."""
    day = parse_date_or_exit(ctx, on) if on else None
    with domain_errors(ctx):
        created = TransactionService(ctx.obj["db"]).bulk_duplicate(entry_ids, on=day)
        click.echo(f"Created {len(created)} transaction(s)")


@transaction_group.command("clear")
@click.argument("entry_id")
@click.pass_context
def toggle_clear(ctx, entry_id):
    """Toggle a transaction between uncleared and cleared."""
    with domain_errors(ctx):
        status = ReconciliationService(ctx.obj["db"]).toggle_clear(entry_id)
        click.echo(f"Transaction {entry_id} is now {status.value}")


@transaction_group.command("payees")
@click.pass_context
def list_payees(ctx):
    """List known payees with their most recent category."""
    suggestions = TransactionService(ctx.obj["db"]).payee_suggestions()
    if not suggestions:
        click.echo("No payees found.")
        return
    for payee, category in sorted(suggestions.items()):
        click.echo(f"{payee:30s} {category}")


def register_commands(cli):
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group, name="transaction")
