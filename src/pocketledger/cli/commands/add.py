"""Add transaction commands."""

from decimal import Decimal

import click

from pocketledger.cli.error_handling import domain_errors
from pocketledger.cli.parsing import parse_amount_or_exit, parse_date_or_exit
from pocketledger.domain.entities import CategoryType, ClearStatus, SplitLine
from pocketledger.domain.transaction import TransactionService

_date_option = click.option(
    "--date",
    "on",
    default="today",
    show_default=True,
    help="Transaction date (YYYY-MM-DD or relative like 'today', 'yesterday')",
)
_cleared_option = click.option("--cleared", is_flag=True, help="Mark the transaction as cleared")
_memo_option = click.option("--memo", help="Memo")


def _status(cleared: bool) -> ClearStatus:
    return ClearStatus.CLEARED if cleared else ClearStatus.UNCLEARED


def _parse_line(ctx, value: str, is_loan: bool) -> SplitLine:
    """Parse a NAME=AMOUNT split line."""
    name, sep, amount = value.rpartition("=")
    if not sep or not name.strip():
        click.echo(f"Error: Invalid split line '{value}' (expected NAME=AMOUNT)", err=True)
        ctx.exit(1)
    parsed = parse_amount_or_exit(ctx, amount, f"amount in '{value}'")
    if is_loan:
        return SplitLine(amount=parsed, is_loan=True, loan=name.strip())
    return SplitLine(amount=parsed, category=name.strip())


@click.group("add")
def add_group():
    """Add a transaction."""
    pass


@add_group.command("expense")
@click.option("--account", required=True, help="Account name or ID")
@click.option("--amount", required=True, help="Amount spent (sign is ignored)")
@click.option("--category", required=True, help="Expense category")
@click.option("--payee", help="Payee")
@_date_option
@_memo_option
@_cleared_option
@click.pass_context
def add_expense(ctx, account, amount, category, payee, on, memo, cleared):
    """Record money spent from an account.

    Examples:
        pocketledger add expense --account Cash --amount 50000 --category Food
    """
    service = TransactionService(ctx.obj["db"])
    value = parse_amount_or_exit(ctx, amount)
    day = parse_date_or_exit(ctx, on)
    with domain_errors(ctx):
        entry_id = service.add_expense(
            account, value, category, day, payee=payee, memo=memo, clear_status=_status(cleared)
        )
        click.echo(f"Added expense (ID: {entry_id})")


@add_group.command("income")
@click.option("--account", required=True, help="Account name or ID")
@click.option("--amount", required=True, help="Amount received")
@click.option("--category", required=True, help="Income category")
@click.option("--payee", help="Payer")
@_date_option
@_memo_option
@_cleared_option
@click.pass_context
def add_income(ctx, account, amount, category, payee, on, memo, cleared):
    """Record money received into an account."""
    service = TransactionService(ctx.obj["db"])
    value = parse_amount_or_exit(ctx, amount)
    day = parse_date_or_exit(ctx, on)
    with domain_errors(ctx):
        entry_id = service.add_income(
            account, value, category, day, payee=payee, memo=memo, clear_status=_status(cleared)
        )
        click.echo(f"Added income (ID: {entry_id})")


@add_group.command("transfer")
@click.option("--from", "from_account", required=True, help="Source account")
@click.option("--to", "to_account", required=True, help="Destination account")
@click.option("--amount", required=True, help="Amount moved")
@_date_option
@_memo_option
@_cleared_option
@click.pass_context
def add_transfer(ctx, from_account, to_account, amount, on, memo, cleared):
    """Move money between two accounts.

    Examples:
        pocketledger add transfer --from Cash --to Bank --amount 100000
    """
    service = TransactionService(ctx.obj["db"])
    value = parse_amount_or_exit(ctx, amount)
    day = parse_date_or_exit(ctx, on)
    with domain_errors(ctx):
        entry_id = service.add_transfer(
            from_account, to_account, value, day, memo=memo, clear_status=_status(cleared)
        )
        click.echo(f"Added transfer (ID: {entry_id})")


@add_group.command("split")
@click.option("--account", required=True, help="Account name or ID")
@click.option("--total", help="Total amount (defaults to the sum of the lines)")
@click.option(
    "--type",
    "split_type",
    type=click.Choice([t.value for t in CategoryType], case_sensitive=False),
    default=CategoryType.EXPENSE.value,
    show_default=True,
)
@click.option("--line", "lines", multiple=True, help="Category line as CATEGORY=AMOUNT")
@click.option("--loan-line", "loan_lines", multiple=True, help="Loan line as LOAN=AMOUNT")
@click.option("--payee", help="Payee")
@_date_option
@_memo_option
@_cleared_option
@click.pass_context
def add_split(ctx, account, total, split_type, lines, loan_lines, payee, on, memo, cleared):
    """Record one payment divided across categories and loans.

    Examples:
        pocketledger add split --account Cash --total 300000 \\
            --line Food=100000 --line Transport=200000
        pocketledger add split --account Cash --line Food=80000 --loan-line Alice=40000
    """
    service = TransactionService(ctx.obj["db"])
    splits = [_parse_line(ctx, line, is_loan=False) for line in lines]
    splits += [_parse_line(ctx, line, is_loan=True) for line in loan_lines]
    total_amount: Decimal | None = parse_amount_or_exit(ctx, total, "total") if total else None
    day = parse_date_or_exit(ctx, on)
    with domain_errors(ctx):
        entry_id = service.add_split(
            account,
            splits,
            day,
            split_type=split_type.lower(),
            total_amount=total_amount,
            payee=payee,
            memo=memo,
            clear_status=_status(cleared),
        )
        click.echo(f"Added split transaction with {len(splits)} line(s) (ID: {entry_id})")


@add_group.command("gain")
@click.option("--account", required=True, help="Investment-type account")
@click.option("--amount", required=True, help="Change in value (negative for a loss)")
@_date_option
@_memo_option
@_cleared_option
@click.pass_context
def add_gain(ctx, account, amount, on, memo, cleared):
    """Record an unrealized gain or loss on an investment-type account."""
    service = TransactionService(ctx.obj["db"])
    value = parse_amount_or_exit(ctx, amount)
    day = parse_date_or_exit(ctx, on)
    with domain_errors(ctx):
        entry_id = service.add_unrealized_gain(
            account, value, day, memo=memo, clear_status=_status(cleared)
        )
        click.echo(f"Added unrealized gain (ID: {entry_id})")


def register_commands(cli):
    """Register add commands with main CLI."""
    cli.add_command(add_group)
