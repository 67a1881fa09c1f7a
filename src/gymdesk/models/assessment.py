"""Physical assessments recorded by trainers."""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel


class AssessmentStatus(str, Enum):
    DONE = "DONE"
    SCHEDULED = "SCHEDULED"


class Assessment(SQLModel, table=True):
    """Body composition snapshot for a student."""

    __tablename__: ClassVar[str] = "assessments"

    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: int = Field(foreign_key="users.id", nullable=False, index=True)
    date: dt.date = Field(nullable=False, index=True)
    status: str = Field(default=AssessmentStatus.SCHEDULED.value, nullable=False, max_length=16)
    notes: str = Field(default="", max_length=1000)
    weight: Optional[float] = Field(default=None)
    height: Optional[float] = Field(default=None)
    body_fat_percentage: Optional[float] = Field(default=None)
