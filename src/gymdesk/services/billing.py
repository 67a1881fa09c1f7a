"""Monthly billing schedules generated when a plan is assigned."""

from __future__ import annotations

import calendar
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from ..domain.gateway import RemoteDataGateway
from ..logging_config import get_logger
from ..models.payment import PaymentStatus

logger = get_logger(__name__)

PAYMENTS = "payments"
CENTS = Decimal("0.01")


def add_months(value: date, months: int) -> date:
    """Return ``value`` shifted by whole calendar months.

    The day is clamped to the last day of the target month, so Jan 31 + 1
    month is Feb 28/29.
    """

    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _as_date(value: date | datetime | None, today: date | None) -> date:
    if value is None:
        return today or date.today()
    if isinstance(value, datetime):
        return value.date()
    return value


def _monthly_amount(plan_value: Optional[float], plan_discount: Optional[float]) -> float:
    """Value minus discount, rounded half-up to cents."""
    amount = Decimal(str(plan_value or 0)) - Decimal(str(plan_discount or 0))
    # Adding 0.0 turns a rounded -0.0 into 0.0.
    return float(amount.quantize(CENTS, rounding=ROUND_HALF_UP)) + 0.0


def installment_description(index: int, total: int) -> str:
    return f"Mensalidade {index}/{total}"


def build_billing_schedule(
    *,
    student_id: Any,
    plan_value: Optional[float],
    plan_discount: Optional[float],
    duration_months: int,
    start_date: date,
) -> list[dict[str, Any]]:
    """Return the payment rows for a plan, one per month starting at ``start_date``.

    Every row charges ``plan_value - plan_discount``; missing values count
    as zero. Nothing is returned for a non-positive duration.
    """

    if duration_months <= 0:
        return []
    amount = _monthly_amount(plan_value, plan_discount)
    return [
        {
            "student_id": student_id,
            "amount": amount,
            "status": PaymentStatus.PENDING.value,
            "due_date": add_months(start_date, i),
            "description": installment_description(i + 1, duration_months),
            "installment_number": i + 1,
            "total_installments": duration_months,
        }
        for i in range(duration_months)
    ]


def plan_assignment_changed(previous_plan_id: Any, new_plan_id: Any) -> bool:
    """True when a plan id is being set that differs from the stored one.

    Callers pass plain ids read before the write. Only the plan identifier is
    compared: editing the price of an already assigned plan does not count as
    a new assignment, so existing pending installments keep their old amount.
    """

    return new_plan_id is not None and new_plan_id != previous_plan_id


def generate_billing_schedule(
    gateway: RemoteDataGateway,
    *,
    student_id: Any,
    plan_value: Optional[float],
    plan_discount: Optional[float],
    duration_months: Optional[int],
    start_date: date | datetime | None = None,
    today: date | None = None,
) -> list[Any]:
    """Replace a student's pending installments with a fresh schedule.

    PENDING payments of the student are deleted and the new batch inserted
    inside one gateway transaction; PAID and OVERDUE payments are left
    alone. If the deletion fails the error propagates and nothing is
    inserted. A non-positive duration is a no-op.
    """

    duration = int(duration_months or 0)
    if duration <= 0:
        logger.info("Skipping billing schedule with no duration", extra={"student_id": student_id})
        return []

    rows = build_billing_schedule(
        student_id=student_id,
        plan_value=plan_value,
        plan_discount=plan_discount,
        duration_months=duration,
        start_date=_as_date(start_date, today),
    )
    with gateway.transaction():
        removed = gateway.delete_where(
            PAYMENTS, {"student_id": student_id, "status": PaymentStatus.PENDING.value}
        )
        created = gateway.insert_many_records(PAYMENTS, rows)

    logger.info(
        "Billing schedule generated",
        extra={
            "student_id": student_id,
            "installments": len(created),
            "replaced_pending": removed,
            "first_due": rows[0]["due_date"].isoformat(),
        },
    )
    return created


__all__ = [
    "add_months",
    "build_billing_schedule",
    "generate_billing_schedule",
    "installment_description",
    "plan_assignment_changed",
]
