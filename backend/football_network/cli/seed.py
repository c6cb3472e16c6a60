"""Flask CLI commands for deterministic development database seeding."""

from __future__ import annotations

import logging

import click
from flask import current_app
from flask.cli import with_appcontext

from football_network.core.extensions import db
from football_network.seeds import seed_data

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    """Raise logging verbosity for seed modules when requested."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.getLogger("football_network.seeds").setLevel(level)
    logging.getLogger(seed_data.__name__).setLevel(level)
    LOGGER.setLevel(level)


def _echo_summary(summary: dict[str, dict[str, int]]) -> None:
    """Pretty-print a tabular summary of seed results."""
    click.echo("Seed summary:")
    if not summary:
        click.echo("  (no changes)")
        return
    width = max(len(name) for name in summary)
    for table, counters in sorted(summary.items()):
        created = counters.get("created", 0)
        existing = counters.get("existing", 0)
        click.echo(f"  {table.ljust(width)}  created={created:>2}  existing={existing:>2}")


def _echo_accounts() -> None:
    """List the fixture accounts with their roles."""
    accounts = seed_data.seeded_accounts(db)
    if not accounts:
        return
    click.echo("Accounts:")
    width = max(len(username) for username, _ in accounts)
    for username, role in accounts:
        click.echo(f"  {username.ljust(width)}  role={role.value}")


#: Environments where ``seed fresh`` may drop the schema.
FRESH_ALLOWED_ENVS = frozenset({"development", "testing"})


def _ensure_development() -> None:
    """Abort destructive commands outside development and test runs."""
    config = current_app.config
    app_env = str(config.get("APP_ENV", "")).lower()
    if app_env in FRESH_ALLOWED_ENVS or config.get("DEBUG") or config.get("TESTING"):
        return
    raise click.UsageError(
        f"'flask seed fresh' only runs in development or testing (APP_ENV={app_env or 'unset'})."
    )


admin_password_option = click.option(
    "--admin-password",
    envvar="SEED_ADMIN_PASSWORD",
    default=None,
    help=f"Password for the '{seed_data.ADMIN_USERNAME}' account (also resets an existing one).",
)


@click.group("seed")
@click.option("--verbose", is_flag=True, help="Enable verbose logging for seeding.")
@click.pass_context
def seed_cli(ctx: click.Context, verbose: bool) -> None:
    """Collection of database seeding commands."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _configure_logging(verbose)


@seed_cli.command("run")
@admin_password_option
@click.pass_context
@with_appcontext
def run_command(ctx: click.Context, admin_password: str | None) -> None:
    """Populate the database with idempotent development fixtures."""
    verbose = bool(ctx.obj.get("verbose", False))
    try:
        summary = seed_data.run_all(db, verbose=verbose, admin_password=admin_password)
    except Exception as exc:  # pragma: no cover - CLI safeguard
        db.session.rollback()
        raise click.ClickException(f"Seeding failed: {exc}") from exc
    _echo_summary(summary)
    _echo_accounts()


@seed_cli.command("fresh")
@click.option("--yes", is_flag=True, help="Skip the destructive confirmation prompt.")
@admin_password_option
@click.pass_context
@with_appcontext
def fresh_command(ctx: click.Context, yes: bool, admin_password: str | None) -> None:
    """Drop all tables, recreate the schema, and seed development data."""
    _ensure_development()
    if not yes:
        click.confirm(
            "This will DROP all application tables and recreate them. Continue?",
            abort=True,
        )
    verbose = bool(ctx.obj.get("verbose", False))
    LOGGER.info("Dropping database schema...")
    db.session.remove()
    db.drop_all()
    LOGGER.info("Recreating database schema...")
    db.create_all()
    try:
        summary = seed_data.run_all(db, verbose=verbose, admin_password=admin_password)
    except Exception as exc:  # pragma: no cover - CLI safeguard
        db.session.rollback()
        raise click.ClickException(f"Fresh seed failed: {exc}") from exc
    _echo_summary(summary)
    _echo_accounts()
