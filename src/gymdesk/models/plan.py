"""Catalogue of plans a student can be enrolled in."""

from __future__ import annotations

from enum import Enum
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel


class PlanType(str, Enum):
    MENSAL = "MENSAL"
    TRIMESTRAL = "TRIMESTRAL"
    SEMESTRAL = "SEMESTRAL"
    KIDS = "KIDS"
    AVULSO = "AVULSO"


class Plan(SQLModel, table=True):
    """A priced membership offer with a fixed number of monthly installments."""

    __tablename__: ClassVar[str] = "plans"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(nullable=False, max_length=80)
    plan_type: str = Field(default=PlanType.MENSAL.value, nullable=False, max_length=16)
    frequency: Optional[str] = Field(default=None, max_length=32)
    price: float = Field(nullable=False)
    duration_months: int = Field(default=1, nullable=False)
    is_active: bool = Field(default=True, nullable=False)
    display_order: int = Field(default=0, nullable=False)
