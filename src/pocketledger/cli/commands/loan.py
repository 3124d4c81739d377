"""Loan commands."""

import click

from pocketledger.cli.error_handling import domain_errors
from pocketledger.cli.parsing import format_amount, parse_amount_or_exit, parse_date_or_exit
from pocketledger.domain.entities import LoanDirection, LoanType
from pocketledger.domain.loan import LoanService


@click.group()
def loan_group():
    """View and record loans."""
    pass


@loan_group.command("list")
@click.pass_context
def list_loans(ctx):
    """List loans with their outstanding balances."""
    overview = LoanService(ctx.obj["db"]).list_loans()
    if not overview.borrowed and not overview.lent:
        click.echo("No loans found.")
        return

    click.echo(f"Net position: {format_amount(overview.net_position)}")
    click.echo(f"\nBorrowed ({format_amount(overview.total_borrowed)})")
    for loan in overview.borrowed:
        click.echo(
            f"  {loan.name:25s} {format_amount(loan.balance):>15s}  "
            f"paid back {format_amount(loan.paid_back)}"
        )
    click.echo(f"\nLent ({format_amount(overview.total_lent)})")
    for loan in overview.lent:
        click.echo(
            f"  {loan.name:25s} {format_amount(loan.balance):>15s}  "
            f"received {format_amount(loan.received)}"
        )


@loan_group.command("show")
@click.argument("name")
@click.pass_context
def show_loan(ctx, name: str):
    """Show the transactions of a loan."""
    with domain_errors(ctx):
        loan = LoanService(ctx.obj["db"]).get_loan(name)
    click.echo(f"{loan.name} ({loan.loan_type.value}) balance {format_amount(loan.balance)}")
    for row in loan.transactions:
        part = " [split]" if row.is_split_part else ""
        memo = f" ({row.memo})" if row.memo else ""
        click.echo(
            f"  {row.date.isoformat()} {format_amount(row.amount):>15s}  {row.account}{memo}{part}"
        )


@loan_group.command("add")
@click.argument("name")
@click.option("--account", required=True, help="Account the money moves through")
@click.option("--amount", required=True, help="Amount")
@click.option(
    "--direction",
    type=click.Choice([d.value for d in LoanDirection], case_sensitive=False),
    required=True,
    help="'in' when money comes into the account, 'out' when it leaves",
)
@click.option(
    "--type",
    "loan_type",
    type=click.Choice([t.value for t in LoanType], case_sensitive=False),
    help="borrow or lend (defaults to the loan's existing type)",
)
@click.option("--date", "on", default="today", show_default=True, help="Transaction date")
@click.option("--payee", help="Counterparty")
@click.option("--memo", help="Memo")
@click.pass_context
def add_loan(ctx, name, account, amount, direction, loan_type, on, payee, memo):
    """Record money borrowed, lent or paid back.

    Examples:
        pocketledger loan add "Alice" --account Cash --amount 500000 --direction in
        pocketledger loan add "Alice" --account Cash --amount 200000 --direction out
    """
    value = parse_amount_or_exit(ctx, amount)
    day = parse_date_or_exit(ctx, on)
    with domain_errors(ctx):
        entry_id = LoanService(ctx.obj["db"]).add_loan_entry(
            name,
            account,
            value,
            direction.lower(),
            day,
            loan_type=loan_type.lower() if loan_type else None,
            payee=payee,
            memo=memo,
        )
        click.echo(f"Added loan transaction (ID: {entry_id})")


def register_commands(cli):
    """Register loan commands with main CLI."""
    cli.add_command(loan_group, name="loan")
