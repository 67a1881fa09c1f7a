"""Engine, schema and session plumbing for the studio store."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, ContextManager, Iterator

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from ..config import BaseConfig

SessionFactory = Callable[[], ContextManager[Session]]


def create_db_engine(config: BaseConfig) -> Engine:
    """Build the engine for ``config.DATABASE_URL`` with its driver options."""
    return create_engine(config.DATABASE_URL, **config.sqlalchemy_engine_options())


def init_database(engine: Engine) -> None:
    """Create missing tables; existing ones are left untouched."""
    from .. import models  # noqa: F401  (registers the tables)

    SQLModel.metadata.create_all(engine)


def create_session_factory(engine: Engine) -> SessionFactory:
    """Return a callable producing committing session scopes on ``engine``.

    A scope commits when its block exits normally and rolls back when it
    raises. Records loaded in a scope stay readable after it closes
    (``expire_on_commit=False``) because the gateway hands them to callers.
    The engine is exposed as ``factory.engine``.
    """

    @contextmanager
    def factory() -> Iterator[Session]:
        with Session(engine, expire_on_commit=False) as session, session.begin():
            yield session

    factory.engine = engine  # type: ignore[attr-defined]
    return factory


def bootstrap_database(config: BaseConfig | None = None) -> tuple[Engine, SessionFactory]:
    """Engine plus session factory, with the schema already in place."""

    engine = create_db_engine(config or BaseConfig())
    init_database(engine)
    return engine, create_session_factory(engine)
