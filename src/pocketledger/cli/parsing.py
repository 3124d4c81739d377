"""CLI helpers for parsing dates, months and amounts."""

from datetime import date
from decimal import Decimal

import click

from pocketledger.utils.amount_parser import parse_amount
from pocketledger.utils.date_parser import PERIODS, get_date_range, parse_date, parse_month


def parse_date_or_exit(ctx: click.Context, value: str, label: str = "date") -> date:
    try:
        return parse_date(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


def parse_amount_or_exit(ctx: click.Context, value: str, label: str = "amount") -> Decimal:
    try:
        return parse_amount(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


def parse_month_or_exit(ctx: click.Context, value: str) -> tuple[int, int]:
    try:
        return parse_month(value)
    except ValueError as e:
        click.echo(f"Error: Invalid month: {e}", err=True)
        ctx.exit(1)


def resolve_cli_date_range(
    ctx: click.Context,
    *,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    today: date | None = None,
) -> tuple[date | None, date | None]:
    """Resolve a date range from --period or explicit --start-date/--end-date.

    Exits with an error when both forms are given or a value cannot be parsed.
    """
    if period and (start_date or end_date):
        click.echo(
            "Error: --period cannot be combined with --start-date or --end-date.",
            err=True,
        )
        ctx.exit(1)

    if period:
        try:
            return get_date_range(period, today=today)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)

    start = parse_date_or_exit(ctx, start_date, "start date") if start_date else None
    end = parse_date_or_exit(ctx, end_date, "end date") if end_date else None
    if start is not None and end is not None and start > end:
        click.echo("Error: Start date must not be after end date.", err=True)
        ctx.exit(1)
    return start, end


period_choice = click.Choice(list(PERIODS), case_sensitive=False)


def format_amount(amount: Decimal | None) -> str:
    """Format an amount with thousands separators, dropping a zero fraction."""
    if amount is None:
        return "-"
    if amount == amount.to_integral_value():
        return f"{amount:,.0f}"
    return f"{amount:,.2f}"
