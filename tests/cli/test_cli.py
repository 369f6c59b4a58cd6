"""Tests for the developer CLI."""

from datetime import date

from typer.testing import CliRunner

from fitplan.cli import app
from fitplan.plans import authoring

runner = CliRunner()


def test_check_db_succeeds():
    result = runner.invoke(app, ["check-db"])

    assert result.exit_code == 0
    assert "connection OK" in result.output


def test_today_prints_resolved_day(subscribed_user):
    result = runner.invoke(app, ["today", "--user-id", subscribed_user, "--date", "2024-01-01"])

    assert result.exit_code == 0
    assert "Upper A" in result.output


def test_week_without_subscription_exits_non_zero():
    result = runner.invoke(app, ["week", "--user-id", "nobody"])

    assert result.exit_code == 1
    assert "No subscription" in result.output


def test_week_table_marks_pinned_days(subscribed_user, session_templates):
    authoring.pin_daily_program(subscribed_user, date(2024, 1, 2), session_template_id=session_templates["lower"].id)

    result = runner.invoke(app, ["week", "--user-id", subscribed_user, "--week", "1"])

    assert result.exit_code == 0
    assert "Lower A" in result.output
    assert "yes" in result.output


def test_history_without_record():
    result = runner.invoke(app, ["history", "--user-id", "u1", "--exercise-id", "ex-bench"])

    assert result.exit_code == 0
    assert "No history yet" in result.output
