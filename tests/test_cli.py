from __future__ import annotations

import logging

import click
import pytest
from click.testing import CliRunner

from gymdesk import cli as cli_module
from gymdesk.cli import cli


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.setenv("GYMDESK_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("GYMDESK_DATABASE_URL", raising=False)
    monkeypatch.setenv("GYMDESK_DEV_MODE", "false")
    yield CliRunner()
    root = logging.getLogger("gymdesk")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


def test_init_db_creates_database(runner, tmp_path):
    result = runner.invoke(cli, ["init-db"])

    assert result.exit_code == 0, result.output
    assert "Database ready" in result.output
    assert (tmp_path / "gymdesk.db").exists()


def test_generate_billing_then_mark_overdue(runner):
    result = runner.invoke(
        cli,
        ["generate-billing", "1", "--value", "150", "--discount", "20", "--months", "3",
         "--start", "2024-01-31"],
    )

    assert result.exit_code == 0, result.output
    lines = result.output.strip().splitlines()
    assert len(lines) == 3
    assert lines[0].startswith("2024-01-31")
    assert "130.00" in lines[0]
    assert lines[1].startswith("2024-02-29")
    assert lines[2].endswith("Mensalidade 3/3")

    result = runner.invoke(cli, ["mark-overdue", "--today", "2024-03-01"])
    assert result.exit_code == 0, result.output
    assert "2 payment(s) marked overdue." in result.output


def test_generate_billing_with_zero_months(runner):
    result = runner.invoke(cli, ["generate-billing", "1", "--value", "150", "--months", "0"])

    assert result.exit_code == 0
    assert "Nothing generated" in result.output


def test_reports_print_all_buckets(runner):
    result = runner.invoke(cli, ["financial-report", "--year", "2024"])
    assert result.exit_code == 0, result.output
    assert len(result.output.strip().splitlines()) == 12

    result = runner.invoke(cli, ["attendance-report"])
    assert result.exit_code == 0, result.output
    assert result.output.splitlines()[0].startswith("Dom")


def test_run_scheduler_sweeps_and_stops_on_interrupt(runner, monkeypatch):
    monkeypatch.delenv("GYMDESK_OVERDUE_CHECK_HOUR", raising=False)
    runner.invoke(
        cli,
        ["generate-billing", "1", "--value", "100", "--months", "2", "--start", "2024-01-10"],
    )
    seen = {}

    def interrupt():
        app = click.get_current_context().obj
        seen["app"] = app
        seen["jobs"] = app.scheduler.job_ids()
        raise KeyboardInterrupt

    monkeypatch.setattr(cli_module, "_wait_for_interrupt", interrupt)

    result = runner.invoke(cli, ["run-scheduler", "--run-now"])

    assert result.exit_code == 0, result.output
    assert "Scheduler running (overdue sweep at 01:00)" in result.output
    assert result.output.strip().endswith("Stopping scheduler.")
    assert seen["jobs"] == ["mark_overdue_payments"]
    assert not seen["app"].scheduler.running

    result = runner.invoke(cli, ["mark-overdue"])
    assert "0 payment(s) marked overdue." in result.output
