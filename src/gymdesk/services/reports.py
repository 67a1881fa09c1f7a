"""Dashboard aggregations over payments, classes and attendance."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

from ..models.attendance import AttendanceRecord
from ..models.class_session import ClassSession
from ..models.payment import Payment, PaymentStatus

MONTH_NAMES = ["Jan", "Fev", "Mar", "Abr", "Mai", "Jun", "Jul", "Ago", "Set", "Out", "Nov", "Dez"]
# Sunday first, matching the studio's weekly calendar.
WEEKDAY_NAMES = ["Domingo", "Segunda", "Terça", "Quarta", "Quinta", "Sexta", "Sábado"]


@dataclass(slots=True)
class MonthlyRevenue:
    """Settled revenue for one calendar month."""

    name: str
    students: int = 0
    revenue: float = 0.0


@dataclass(slots=True)
class WeekdayAttendance:
    name: str
    attendance: int = 0


@dataclass(slots=True)
class AttendanceStats:
    percentage: int
    total_classes: int
    present_count: int


def _round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def financial_report(*, payments: Iterable[Payment], year: int) -> list[MonthlyRevenue]:
    """Sum PAID payments per due month of ``year``.

    ``students`` counts paid installments, not distinct students.
    """

    months = [MonthlyRevenue(name=name) for name in MONTH_NAMES]
    for payment in payments:
        if payment.status != PaymentStatus.PAID.value or payment.due_date.year != year:
            continue
        bucket = months[payment.due_date.month - 1]
        bucket.revenue = round(bucket.revenue + float(payment.amount), 2)
        bucket.students += 1
    return months


def attendance_report(*, records: Iterable[AttendanceRecord]) -> list[WeekdayAttendance]:
    """Count presences per weekday, labelled with three-letter names."""

    counts = [0] * 7
    for record in records:
        if not record.is_present:
            continue
        # date.weekday() is Monday=0; shift to Sunday=0.
        counts[(record.date.weekday() + 1) % 7] += 1
    return [
        WeekdayAttendance(name=name[:3], attendance=count)
        for name, count in zip(WEEKDAY_NAMES, counts)
    ]


def attendance_stats(
    *,
    classes: Iterable[ClassSession],
    records: Iterable[AttendanceRecord],
    student_id: Any,
) -> AttendanceStats:
    """Presence count against the number of classes the student is enrolled in.

    A student enrolled nowhere reports 100%.
    """

    total = sum(1 for cls in classes if student_id in (cls.enrolled_student_ids or []))
    present = sum(1 for r in records if r.student_id == student_id and r.is_present)
    percentage = _round_half_up(present / total * 100) if total > 0 else 100
    return AttendanceStats(percentage=percentage, total_classes=total, present_count=present)


def payment_totals(payments: Iterable[Payment]) -> dict[str, float]:
    """Return amount totals keyed by lower-case payment status."""

    totals = {status.value.lower(): 0.0 for status in PaymentStatus}
    for payment in payments:
        key = getattr(payment.status, "value", payment.status).lower()
        if key in totals:
            totals[key] = round(totals[key] + float(payment.amount), 2)
    return totals


__all__ = [
    "AttendanceStats",
    "MonthlyRevenue",
    "WeekdayAttendance",
    "attendance_report",
    "attendance_stats",
    "financial_report",
    "payment_totals",
]
