"""CLI error handling helpers."""

from contextlib import contextmanager
from typing import Iterator

import click

from pocketledger.domain.errors import DomainError, PersistenceError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    if isinstance(error, PersistenceError):
        click.echo(f"Error: nothing was saved. {error}", err=True)
    else:
        click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


@contextmanager
def domain_errors(ctx: click.Context) -> Iterator[None]:
    """Turn domain errors raised inside the block into a CLI failure."""
    try:
        yield
    except ValueError as e:
        handle_domain_error(ctx, e)
