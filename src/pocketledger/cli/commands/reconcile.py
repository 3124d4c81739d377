"""Reconciliation commands."""

import click

from pocketledger.cli.error_handling import domain_errors
from pocketledger.cli.parsing import format_amount, parse_amount_or_exit
from pocketledger.domain.entities import MismatchWarning, NoOpOutcome
from pocketledger.domain.reconciliation import ReconciliationService


def _echo_result(result) -> None:
    if isinstance(result, NoOpOutcome):
        click.echo(result.reason)
        return
    click.echo(
        f"Reconciled {len(result.entry_ids)} transaction(s) of '{result.account}' "
        f"at {format_amount(result.balance)}"
    )
    if result.value_update_count:
        click.echo(f"Locked {result.value_update_count} value update(s)")


@click.group()
def reconcile_group():
    """Reconcile accounts against bank statements."""
    pass


@reconcile_group.command("quick")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def quick_reconcile(ctx, account: str):
    """Lock every cleared transaction at the current cleared balance."""
    with domain_errors(ctx):
        _echo_result(ReconciliationService(ctx.obj["db"]).quick_reconcile(account))


@reconcile_group.command("manual")
@click.argument("account", metavar="ACCOUNT")
@click.option("--statement-balance", required=True, help="Balance shown on the bank statement")
@click.option("--force", is_flag=True, help="Reconcile even if the balances differ")
@click.pass_context
def manual_reconcile(ctx, account: str, statement_balance: str, force: bool):
    """Reconcile cleared transactions against a statement balance.

    Examples:
        pocketledger reconcile manual Bank --statement-balance 950000
        pocketledger reconcile manual Bank --statement-balance 950000 --force
    """
    balance = parse_amount_or_exit(ctx, statement_balance, "statement balance")
    with domain_errors(ctx):
        result = ReconciliationService(ctx.obj["db"]).manual_reconcile(
            account, balance, force=force
        )
    if isinstance(result, MismatchWarning):
        click.echo(
            f"Warning: cleared total {format_amount(result.cleared_total)} differs from "
            f"statement balance {format_amount(result.statement_balance)} "
            f"by {format_amount(result.diff)}.",
            err=True,
        )
        click.echo("Nothing was changed. Re-run with --force to reconcile anyway.", err=True)
        ctx.exit(1)
    _echo_result(result)


@reconcile_group.command("undo")
@click.argument("account", metavar="ACCOUNT")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def undo_reconcile(ctx, account: str, yes: bool):
    """Unlock the transactions of the last reconciliation."""

    def confirm(plan) -> bool:
        if yes:
            return True
        return click.confirm(
            f"Unlock {len(plan.entry_ids)} transaction(s) of '{plan.account.name}'?",
            default=False,
        )

    with domain_errors(ctx):
        result = ReconciliationService(ctx.obj["db"]).unreconcile(account, confirm=confirm)
    if isinstance(result, NoOpOutcome):
        click.echo(result.reason)
        return
    click.echo(f"Unlocked {len(result.entry_ids)} transaction(s) of '{result.account}'")


@reconcile_group.command("toggle-value")
@click.argument("account", metavar="ACCOUNT")
@click.argument("index", type=int)
@click.pass_context
def toggle_value(ctx, account: str, index: int):
    """Toggle the clear status of a recorded value update (0 = oldest)."""
    with domain_errors(ctx):
        status = ReconciliationService(ctx.obj["db"]).toggle_value_clear(account, index)
        click.echo(f"Value update {index} of '{account}' is now {status.value}")


@reconcile_group.command("reset")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def reset_reconciled(ctx, yes: bool):
    """Reset every reconciled transaction back to cleared."""
    if not yes and not click.confirm("Reset all reconciled transactions to cleared?", default=False):
        click.echo("Cancelled.")
        return
    with domain_errors(ctx):
        count = ReconciliationService(ctx.obj["db"]).reset_reconciled()
    click.echo(f"Reset {count} transaction(s)")


def register_commands(cli):
    """Register reconciliation commands with main CLI."""
    cli.add_command(reconcile_group, name="reconcile")
