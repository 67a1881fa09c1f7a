"""Per-day presence records for a class."""

from __future__ import annotations

import datetime as dt
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel


class AttendanceRecord(SQLModel, table=True):
    __tablename__: ClassVar[str] = "attendance"

    id: Optional[int] = Field(default=None, primary_key=True)
    class_id: int = Field(foreign_key="classes.id", nullable=False, index=True)
    student_id: int = Field(foreign_key="users.id", nullable=False, index=True)
    date: dt.date = Field(nullable=False, index=True)
    is_present: bool = Field(default=True, nullable=False)
