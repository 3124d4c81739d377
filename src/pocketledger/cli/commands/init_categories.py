"""Initialize default categories."""

import click

from pocketledger.domain.category import CategoryService
from pocketledger.domain.errors import ConflictError

# (name, type, group, spending type)
INITIAL_CATEGORIES = [
    ("Salary", "income", "Income", None),
    ("Bonus", "income", "Income", None),
    ("Interest", "income", "Income", None),
    ("Other Income", "income", "Income", None),
    ("Groceries", "expense", "Food & Dining", "need"),
    ("Restaurants", "expense", "Food & Dining", "want"),
    ("Coffee & Snacks", "expense", "Food & Dining", "want"),
    ("Fuel", "expense", "Transportation", "need"),
    ("Taxi", "expense", "Transportation", "want"),
    ("Parking", "expense", "Transportation", "need"),
    ("Rent", "expense", "Housing", "need"),
    ("Electricity", "expense", "Bills & Utilities", "need"),
    ("Water", "expense", "Bills & Utilities", "need"),
    ("Internet", "expense", "Bills & Utilities", "need"),
    ("Phone", "expense", "Bills & Utilities", "need"),
    ("Clothing", "expense", "Shopping", "want"),
    ("Electronics", "expense", "Shopping", "want"),
    ("Movies", "expense", "Entertainment", "want"),
    ("Travel", "expense", "Entertainment", "want"),
    ("Pharmacy", "expense", "Health", "need"),
    ("Doctor", "expense", "Health", "need"),
    ("Gifts", "expense", "Other", "want"),
    ("Other", "expense", "Other", None),
]


@click.command("init-categories")
@click.option("--force", is_flag=True, help="Add defaults even if categories already exist")
@click.pass_context
def init_categories(ctx, force: bool):
    """Initialize the ledger with default categories."""
    service = CategoryService(ctx.obj["db"])

    if service.list_categories() and not force:
        click.echo("Categories already exist. Use --force to add missing defaults.")
        return

    created = 0
    skipped = 0
    for name, category_type, group, spending_type in INITIAL_CATEGORIES:
        try:
            service.create_category(name, category_type, group, spending_type=spending_type)
            created += 1
        except ConflictError:
            skipped += 1

    click.echo(f"Created {created} categories.")
    if skipped:
        click.echo(f"Skipped {skipped} existing categories.")


def register_commands(cli):
    """Register init-categories command with main CLI."""
    cli.add_command(init_categories)
