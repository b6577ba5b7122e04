"""Periodic moderation sweeps, meant to be run from cron.

    python -m trust_engine.sweeps            # both sweeps
    python -m trust_engine.sweeps appeals    # deny appeals past the deadline
    python -m trust_engine.sweeps bans       # lift expired bans
"""

from __future__ import annotations

import logging

import click

from trust_engine.core.config import settings
from trust_engine.db.session import SessionLocal
from trust_engine.services.engine import build_sql_engine

logger = logging.getLogger(__name__)


def _run(appeals: bool, bans: bool) -> None:
    db = SessionLocal()
    try:
        engine = build_sql_engine(db)
        if appeals:
            denied = engine.appeals.sweep_expired()
            click.echo(f"appeals denied: {len(denied)}")
        if bans:
            lifted = engine.ledger.sweep_expired_bans()
            click.echo(f"bans lifted: {len(lifted)}")
    finally:
        db.close()


@click.group(invoke_without_command=True)
@click.pass_context
def main(ctx: click.Context) -> None:
    """Run moderation sweeps. With no subcommand, runs all of them."""
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    if ctx.invoked_subcommand is None:
        _run(appeals=True, bans=True)


@main.command()
def appeals() -> None:
    """Deny pending appeals past the review deadline."""
    _run(appeals=True, bans=False)


@main.command()
def bans() -> None:
    """Write system UNBAN entries for expired bans."""
    _run(appeals=False, bans=True)


if __name__ == "__main__":
    main()
