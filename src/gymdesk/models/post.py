"""Social feed posts."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class Post(SQLModel, table=True):
    """A photo post; ``likes`` holds the ids of the users who liked it."""

    __tablename__: ClassVar[str] = "posts"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", nullable=False, index=True)
    image_url: str = Field(default="", max_length=500)
    caption: str = Field(default="", max_length=2000)
    timestamp: datetime = Field(default_factory=datetime.now, nullable=False, index=True)
    likes: list[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
