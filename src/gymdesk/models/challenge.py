"""Studio-wide running challenge."""

from __future__ import annotations

from datetime import date
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel


class Challenge(SQLModel, table=True):
    __tablename__: ClassVar[str] = "challenges"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(nullable=False, max_length=120)
    description: str = Field(default="", max_length=1000)
    target_value: float = Field(nullable=False)
    unit: str = Field(default="km", max_length=16)
    start_date: date = Field(nullable=False)
    end_date: date = Field(nullable=False)
