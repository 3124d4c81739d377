"""Category management commands."""

import click

from pocketledger.cli.error_handling import domain_errors
from pocketledger.cli.parsing import format_amount, parse_month_or_exit
from pocketledger.domain.category import CategoryService
from pocketledger.domain.entities import CategoryType, SpendingType

_type_choice = click.Choice([t.value for t in CategoryType], case_sensitive=False)


@click.group()
def category_group():
    """Manage categories."""
    pass


@category_group.command("list")
@click.option("--type", "category_type", type=_type_choice, help="Only this category type")
@click.pass_context
def list_categories(ctx, category_type: str | None):
    """List categories by group."""
    service = CategoryService(ctx.obj["db"])
    groups = service.grouped_categories(category_type.lower() if category_type else None)
    if not groups:
        click.echo("No categories found. Run 'init-categories' to create default categories.")
        return

    for group, members in groups:
        click.echo(f"\n{group or '(no group)'}")
        for cat in members:
            spending = f" [{cat.spending_type.value}]" if cat.spending_type else ""
            click.echo(f"  {cat.name} ({cat.type.value}){spending}")


@category_group.command("create")
@click.argument("name")
@click.option("--group", required=True, help="Group to list the category under")
@click.option("--type", "category_type", type=_type_choice, default="expense", show_default=True)
@click.option(
    "--spending-type",
    type=click.Choice([s.value for s in SpendingType], case_sensitive=False),
    help="need or want (expense categories only)",
)
@click.pass_context
def create_category(ctx, name: str, group: str, category_type: str, spending_type: str | None):
    """Create a new category."""
    with domain_errors(ctx):
        category_id = CategoryService(ctx.obj["db"]).create_category(
            name,
            category_type.lower(),
            group,
            spending_type=spending_type.lower() if spending_type else None,
        )
        click.echo(f"Created category '{name}' in '{group}' (ID: {category_id})")


@category_group.command("rename")
@click.argument("name")
@click.argument("new_name")
@click.option("--type", "category_type", type=_type_choice, help="Category type when names are shared")
@click.pass_context
def rename_category(ctx, name: str, new_name: str, category_type: str | None):
    """Rename a category and update its transactions."""
    with domain_errors(ctx):
        count = CategoryService(ctx.obj["db"]).rename_category(
            name, new_name, category_type.lower() if category_type else None
        )
        click.echo(f"Renamed category to '{new_name}' ({count} transaction(s) updated)")


@category_group.command("set-spending-type")
@click.argument("name")
@click.argument("spending_type", type=click.Choice(["need", "want", "none"], case_sensitive=False))
@click.pass_context
def set_spending_type(ctx, name: str, spending_type: str):
    """Classify an expense category as need or want."""
    value = None if spending_type.lower() == "none" else spending_type.lower()
    with domain_errors(ctx):
        CategoryService(ctx.obj["db"]).set_spending_type(name, value)
        click.echo(f"Updated '{name}'")


@category_group.command("delete")
@click.argument("name")
@click.option("--type", "category_type", type=_type_choice, help="Category type when names are shared")
@click.pass_context
def delete_category(ctx, name: str, category_type: str | None):
    """Delete a category. Transactions keep the category name."""
    with domain_errors(ctx):
        CategoryService(ctx.obj["db"]).delete_category(
            name, category_type.lower() if category_type else None
        )
        click.echo(f"Deleted category '{name}'")


@category_group.command("rename-group")
@click.argument("group")
@click.argument("new_group")
@click.pass_context
def rename_group(ctx, group: str, new_group: str):
    """Rename a category group."""
    with domain_errors(ctx):
        count = CategoryService(ctx.obj["db"]).rename_group(group, new_group)
        click.echo(f"Moved {count} categor{'y' if count == 1 else 'ies'} to '{new_group}'")


@category_group.command("delete-group")
@click.argument("group")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_group(ctx, group: str, yes: bool):
    """Delete every category of a group."""
    if not yes and not click.confirm(f"Delete all categories in '{group}'?", default=False):
        click.echo("Cancelled.")
        return
    with domain_errors(ctx):
        count = CategoryService(ctx.obj["db"]).delete_group(group)
        click.echo(f"Deleted {count} categor{'y' if count == 1 else 'ies'}")


@category_group.command("reorder")
@click.argument("names", nargs=-1, required=True)
@click.option("--type", "category_type", type=_type_choice, help="Category type when names are shared")
@click.pass_context
def reorder_categories(ctx, names: tuple[str, ...], category_type: str | None):
    """Set the display order of categories (first listed comes first)."""
    with domain_errors(ctx):
        CategoryService(ctx.obj["db"]).reorder_categories(
            names, category_type.lower() if category_type else None
        )
        click.echo(f"Reordered {len(names)} categor{'y' if len(names) == 1 else 'ies'}")


@category_group.command("totals")
@click.option("--month", default="this month", show_default=True, help="Month (YYYY-MM)")
@click.pass_context
def category_totals(ctx, month: str):
    """Show the signed total of each category for a month."""
    year, month_number = parse_month_or_exit(ctx, month)
    totals = CategoryService(ctx.obj["db"]).monthly_totals(year, month_number)
    if not totals:
        click.echo("No categorized transactions in this month.")
        return
    for name, total in sorted(totals.items(), key=lambda item: item[1]):
        click.echo(f"{name:30s} {format_amount(total):>15s}")


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
