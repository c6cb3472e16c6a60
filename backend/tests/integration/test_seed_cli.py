"""Tests for the ``flask seed`` command group."""

from __future__ import annotations

from sqlalchemy import select

from football_network.models.role import Role
from football_network.models.user import User


def test_seed_run_is_idempotent(app, session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["seed", "run"])
    second = runner.invoke(args=["seed", "run"])

    assert first.exit_code == 0, first.output
    assert "created= 4" in first.output
    assert "existing= 4" in second.output

    admin = session.execute(select(User).filter_by(username="admin")).scalar_one()
    assert admin.role is Role.SUPER_ADMIN
    assert admin.email == "admin@polishfootballnetwork.com"


def test_seed_run_lists_accounts_with_roles(app, session):
    result = app.test_cli_runner().invoke(args=["seed", "run"])

    assert result.exit_code == 0, result.output
    assert "Accounts:" in result.output
    assert "role=SuperAdmin" in result.output
    assert "role=Moderator" in result.output
    assert "ola.fan" in result.output


def test_admin_password_option_sets_and_resets_admin(app, session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["seed", "run", "--admin-password", "First-Secret-1"])
    assert first.exit_code == 0, first.output
    admin = session.execute(select(User).filter_by(username="admin")).scalar_one()
    assert admin.verify_password("First-Secret-1")
    assert not admin.verify_password("admin123")

    second = runner.invoke(args=["seed", "run"], env={"SEED_ADMIN_PASSWORD": "Second-Secret-2"})
    assert second.exit_code == 0, second.output
    session.expire_all()
    admin = session.execute(select(User).filter_by(username="admin")).scalar_one()
    assert admin.verify_password("Second-Secret-2")


def test_fresh_is_refused_outside_development(app, session, monkeypatch):
    monkeypatch.setitem(app.config, "APP_ENV", "production")
    monkeypatch.setitem(app.config, "TESTING", False)
    monkeypatch.setitem(app.config, "DEBUG", False)

    result = app.test_cli_runner().invoke(args=["seed", "fresh", "--yes"])

    assert result.exit_code != 0
    assert "only runs in development or testing" in result.output
