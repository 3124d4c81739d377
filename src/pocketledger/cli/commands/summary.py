"""Summary commands."""

import click

from pocketledger.cli.parsing import format_amount, parse_month_or_exit
from pocketledger.domain.summary import DEFAULT_TOP_N, SummaryService


@click.command("summary")
@click.option("--month", default="this month", show_default=True, help="Month (YYYY-MM, 'this month', 'last month')")
@click.option("--top", "top_n", type=click.IntRange(min=1), default=DEFAULT_TOP_N, show_default=True, help="Categories shown before 'Others'")
@click.option("--all-categories", is_flag=True, help="List every category instead of the top ones")
@click.pass_context
def summary(ctx, month: str, top_n: int, all_categories: bool):
    """Show income and expenses of a month.

    Loan transactions and transfers are not counted.

    Examples:
        pocketledger summary --month 2024-05
        pocketledger summary --month "last month" --all-categories
    """
    year, month_number = parse_month_or_exit(ctx, month)
    report = SummaryService(ctx.obj["db"]).monthly_report(year, month_number, top_n=top_n)

    click.echo(f"\nSummary for {year:04d}-{month_number:02d}")
    click.echo("-" * 50)
    click.echo(f"{'Income':30s} {format_amount(report.income):>18s}")
    click.echo(f"{'Expense':30s} {format_amount(report.expense):>18s}")
    click.echo(f"{'Net':30s} {format_amount(report.net):>18s}")

    if report.expense == 0:
        click.echo("\nNo expenses in this month.")
        return

    click.echo("\nExpenses by category")
    click.echo("-" * 50)
    rows = report.categories if all_categories else report.chart
    for share in rows:
        click.echo(f"{share.name:30s} {format_amount(share.amount):>12s} {share.percent:>6}%")

    click.echo(
        f"\nNeeds {format_amount(report.need)} | Wants {format_amount(report.want)}"
        f" | Unclassified {format_amount(report.unclassified)}"
    )


def register_commands(cli):
    """Register summary command with main CLI."""
    cli.add_command(summary)
