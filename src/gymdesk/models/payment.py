"""Monthly fees and one-off charges owed by students."""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel


class PaymentStatus(str, Enum):
    PAID = "PAID"
    PENDING = "PENDING"
    OVERDUE = "OVERDUE"


class Payment(SQLModel, table=True):
    """A single charge; generated schedules fill the installment columns."""

    __tablename__: ClassVar[str] = "payments"

    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: int = Field(foreign_key="users.id", nullable=False, index=True)
    amount: float = Field(nullable=False)
    discount: Optional[float] = Field(default=None)
    status: str = Field(default=PaymentStatus.PENDING.value, nullable=False, max_length=16, index=True)
    due_date: date = Field(nullable=False, index=True)
    description: str = Field(default="", max_length=255)
    installment_number: Optional[int] = Field(default=None)
    total_installments: Optional[int] = Field(default=None)
