"""Studio members, staff and their assigned plan."""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel


class UserRole(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    TRAINER = "TRAINER"
    STUDENT = "STUDENT"


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"


class User(SQLModel, table=True):
    """Anyone with an account at the studio.

    The ``plan_*`` columns are a snapshot of the plan assigned to a student:
    ``plan_value`` holds the plan's original price and ``plan_discount`` the
    fixed monthly discount granted on top of it.
    """

    __tablename__: ClassVar[str] = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(nullable=False, max_length=120, index=True)
    email: str = Field(nullable=False, unique=True, index=True, max_length=255)
    role: str = Field(default=UserRole.STUDENT.value, nullable=False, max_length=16, index=True)
    status: str = Field(default=UserStatus.ACTIVE.value, nullable=False, max_length=16)
    phone_number: Optional[str] = Field(default=None, max_length=32)
    avatar_url: Optional[str] = Field(default=None, max_length=500)
    join_date: date = Field(default_factory=date.today, nullable=False)
    profile_completed: bool = Field(default=False, nullable=False)

    plan_id: Optional[int] = Field(default=None, foreign_key="plans.id")
    plan_value: Optional[float] = Field(default=None)
    plan_discount: Optional[float] = Field(default=None)
    plan_duration: Optional[int] = Field(default=None)
    plan_start_date: Optional[date] = Field(default=None)
    suspended_at: Optional[date] = Field(default=None)
