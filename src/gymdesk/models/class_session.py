"""Weekly classes with their enrollment and waitlist."""

from __future__ import annotations

from enum import Enum
from typing import ClassVar, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class ClassType(str, Enum):
    FUNCTIONAL = "FUNCTIONAL"
    RUNNING = "RUNNING"


class ClassSession(SQLModel, table=True):
    """A recurring class slot.

    Enrollment lists are stored inline as JSON arrays of user ids; assign a
    new list instead of mutating in place so the change is flushed.
    """

    __tablename__: ClassVar[str] = "classes"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(nullable=False, max_length=120)
    description: str = Field(default="", max_length=500)
    day_of_week: str = Field(nullable=False, max_length=16, index=True)
    start_time: str = Field(nullable=False, max_length=5)
    duration_minutes: int = Field(default=60, nullable=False)
    instructor: str = Field(default="", max_length=120)
    max_capacity: int = Field(default=20, nullable=False)
    type: str = Field(default=ClassType.FUNCTIONAL.value, nullable=False, max_length=16)
    wod: str = Field(default="", max_length=500)
    is_cancelled: bool = Field(default=False, nullable=False)
    enrolled_student_ids: list[int] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    waitlist_student_ids: list[int] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
