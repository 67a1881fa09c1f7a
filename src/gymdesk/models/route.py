"""Running routes published for the studio's outdoor group."""

from __future__ import annotations

from enum import Enum
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel


class RouteDifficulty(str, Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class Route(SQLModel, table=True):
    __tablename__: ClassVar[str] = "routes"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(nullable=False, max_length=120, index=True)
    distance_km: float = Field(default=0.0, nullable=False)
    description: str = Field(default="", max_length=1000)
    map_link: str = Field(default="", max_length=500)
    difficulty: str = Field(default=RouteDifficulty.MEDIUM.value, nullable=False, max_length=8)
    elevation_gain: float = Field(default=0.0, nullable=False)
