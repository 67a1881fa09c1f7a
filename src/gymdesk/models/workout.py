"""Workouts a trainer prescribes to a group of students."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class PersonalizedWorkout(SQLModel, table=True):
    """A workout sheet shared with the students listed in ``student_ids``."""

    __tablename__: ClassVar[str] = "personalized_workouts"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(nullable=False, max_length=120)
    description: str = Field(default="", max_length=2000)
    video_url: Optional[str] = Field(default=None, max_length=500)
    instructor_name: str = Field(default="", max_length=120)
    created_at: datetime = Field(default_factory=datetime.now, nullable=False, index=True)
    student_ids: list[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
