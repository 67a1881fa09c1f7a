"""Command-line maintenance commands for GymDesk."""

from __future__ import annotations

import time
from datetime import datetime

import click

from .config import BaseConfig
from .context import create_app_context
from .logging_config import setup_logging


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """GymDesk maintenance commands."""

    config = BaseConfig()
    setup_logging(config)
    ctx.obj = create_app_context(config)
    ctx.call_on_close(ctx.obj.close)


@cli.command("init-db")
@click.pass_obj
def init_db(app) -> None:
    """Create the database schema."""

    click.echo(f"Database ready: {app.config.DATABASE_URL}")


@cli.command("generate-billing")
@click.argument("student_id", type=int)
@click.option("--value", "plan_value", type=float, required=True, help="Plan price per month")
@click.option("--discount", "plan_discount", type=float, default=0.0, show_default=True)
@click.option("--months", "duration_months", type=int, required=True, help="Number of installments")
@click.option("--start", "start_date", type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
@click.pass_obj
def generate_billing(app, student_id, plan_value, plan_discount, duration_months, start_date) -> None:
    """Replace a student's pending installments with a new schedule."""

    created = app.client.generate_billing_schedule(
        student_id,
        plan_value,
        plan_discount,
        duration_months,
        start_date.date() if start_date else None,
    )
    if not created:
        click.echo("Nothing generated (duration must be positive).")
        return
    for payment in created:
        click.echo(f"{payment.due_date.isoformat()}  {payment.amount:>10.2f}  {payment.description}")


@cli.command("mark-overdue")
@click.option("--today", type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
@click.pass_obj
def mark_overdue(app, today: datetime | None) -> None:
    """Flag pending payments past their due date as overdue."""

    count = app.client.mark_overdue_payments(today.date() if today else None)
    click.echo(f"{count} payment(s) marked overdue.")


@cli.command("financial-report")
@click.option("--year", type=int, default=lambda: datetime.now().year)
@click.pass_obj
def financial_report(app, year: int) -> None:
    """Print settled revenue per month."""

    for row in app.client.get_financial_report(year):
        click.echo(f"{row.name}  {row.students:>4}  {row.revenue:>10.2f}")


@cli.command("attendance-report")
@click.pass_obj
def attendance_report(app) -> None:
    """Print presences per weekday."""

    for row in app.client.get_attendance_report():
        click.echo(f"{row.name}  {row.attendance:>5}")


def _wait_for_interrupt() -> None:
    while True:
        time.sleep(1)


@cli.command("run-scheduler")
@click.option("--run-now", is_flag=True, help="Run the overdue sweep once before waiting")
@click.pass_obj
def run_scheduler(app, run_now: bool) -> None:
    """Run the nightly overdue sweep until interrupted."""

    scheduler = app.start_scheduler()
    if run_now:
        scheduler.run_overdue_sweep()
    click.echo(
        f"Scheduler running (overdue sweep at {app.config.OVERDUE_CHECK_HOUR:02d}:00). "
        "Press Ctrl+C to stop."
    )
    try:
        _wait_for_interrupt()
    except KeyboardInterrupt:
        click.echo("Stopping scheduler.")


if __name__ == "__main__":  # pragma: no cover
    cli()
