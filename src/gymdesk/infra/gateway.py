"""SQLModel implementation of the remote data gateway."""

from __future__ import annotations

import operator
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional, Sequence

from sqlmodel import Session, SQLModel, select

from ..domain.gateway import ChangeEvent
from ..logging_config import get_logger
from ..models import COLLECTIONS
from .realtime import SessionEventChannel

logger = get_logger(__name__)

_LOOKUPS: dict[str, Callable[[Any, Any], Any]] = {
    "eq": operator.eq,
    "ne": operator.ne,
    "lt": operator.lt,
    "lte": operator.le,
    "gt": operator.gt,
    "gte": operator.ge,
    "in": lambda column, value: column.in_([_plain(v) for v in value]),
}


def _plain(value: Any) -> Any:
    """Unwrap enum members so the driver only sees primitive values."""

    return value.value if isinstance(value, Enum) else value


class SQLModelGateway:
    """Collection-scoped CRUD over SQLModel tables.

    Every call runs in its own committed session unless it happens inside
    ``transaction()``, in which case all calls on the current thread share one
    session and commit together.
    """

    def __init__(
        self,
        session_factory: Callable[[], Any],
        *,
        engine=None,
        collections: Optional[Mapping[str, type[SQLModel]]] = None,
    ):
        self.session_factory = session_factory
        self.engine = engine if engine is not None else getattr(session_factory, "engine", None)
        self.collections = dict(collections or COLLECTIONS)
        self._local = threading.local()

    # ------------------------------------------------------------------ helpers

    def model_for(self, name: str) -> type[SQLModel]:
        """Return the table model backing collection ``name``."""
        try:
            return self.collections[name]
        except KeyError:
            raise ValueError(f"Unknown collection: {name}") from None

    @staticmethod
    def _columns(model: type[SQLModel]) -> set[str]:
        return set(model.__table__.columns.keys())  # type: ignore[attr-defined]

    def _check_fields(self, model: type[SQLModel], fields: Mapping[str, Any]) -> dict[str, Any]:
        unknown = set(fields) - self._columns(model)
        if unknown:
            raise ValueError(f"Unknown fields for {model.__tablename__}: {sorted(unknown)}")
        return {key: _plain(value) for key, value in fields.items()}

    def _where(self, model: type[SQLModel], filters: Optional[Mapping[str, Any]]) -> list[Any]:
        clauses = []
        columns = self._columns(model)
        for key, value in (filters or {}).items():
            field, _, lookup = key.partition("__")
            lookup = lookup or "eq"
            if field not in columns:
                raise ValueError(f"Unknown filter field for {model.__tablename__}: {field}")
            if lookup not in _LOOKUPS:
                raise ValueError(f"Unsupported filter lookup: {lookup}")
            column = getattr(model, field)
            if value is None and lookup in ("eq", "ne"):
                clauses.append(column.is_(None) if lookup == "eq" else column.is_not(None))
            else:
                clauses.append(_LOOKUPS[lookup](column, _plain(value)))
        return clauses

    def _ordering(self, model: type[SQLModel], order_by: Optional[Sequence[str]]) -> list[Any]:
        ordering = []
        columns = self._columns(model)
        for term in order_by or ():
            field = term.lstrip("-")
            if field not in columns:
                raise ValueError(f"Unknown order field for {model.__tablename__}: {field}")
            column = getattr(model, field)
            ordering.append(column.desc() if term.startswith("-") else column)
        return ordering

    @contextmanager
    def _session(self) -> Iterator[Session]:
        active = getattr(self._local, "session", None)
        if active is not None:
            yield active
            return
        with self.session_factory() as session:
            yield session

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Share one session across the calls made in this block.

        Nested blocks join the outermost transaction.
        """
        if getattr(self._local, "session", None) is not None:
            yield
            return
        with self.session_factory() as session:
            self._local.session = session
            try:
                yield
            finally:
                self._local.session = None

    # --------------------------------------------------------------------- reads

    def read_collection(
        self,
        name: str,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[Sequence[str]] = None,
    ) -> list[Any]:
        """Return the records of ``name`` matching ``filters``."""
        model = self.model_for(name)
        statement = select(model)
        clauses = self._where(model, filters)
        if clauses:
            statement = statement.where(*clauses)
        ordering = self._ordering(model, order_by)
        if ordering:
            statement = statement.order_by(*ordering)
        with self._session() as session:
            return list(session.exec(statement).all())

    def get_record(self, name: str, record_id: Any) -> Optional[Any]:
        """Return a record by primary key, or None."""
        model = self.model_for(name)
        with self._session() as session:
            return session.get(model, record_id)

    # -------------------------------------------------------------------- writes

    def insert_record(self, name: str, fields: Mapping[str, Any]) -> Any:
        model = self.model_for(name)
        record = model(**self._check_fields(model, fields))
        with self._session() as session:
            session.add(record)
            session.flush()
            session.refresh(record)
        return record

    def insert_many_records(self, name: str, rows: Iterable[Mapping[str, Any]]) -> list[Any]:
        """Insert a batch in a single transaction."""
        model = self.model_for(name)
        records = [model(**self._check_fields(model, row)) for row in rows]
        if not records:
            return []
        with self._session() as session:
            session.add_all(records)
            session.flush()
            for record in records:
                session.refresh(record)
        return records

    def update_record(self, name: str, record_id: Any, fields: Mapping[str, Any]) -> Any:
        model = self.model_for(name)
        changes = self._check_fields(model, fields)
        changes.pop("id", None)
        with self._session() as session:
            record = session.get(model, record_id)
            if record is None:
                raise LookupError(f"{name} record {record_id} not found")
            for key, value in changes.items():
                setattr(record, key, value)
            session.add(record)
            session.flush()
            session.refresh(record)
        return record

    def delete_record(self, name: str, record_id: Any) -> None:
        model = self.model_for(name)
        with self._session() as session:
            record = session.get(model, record_id)
            if record is None:
                raise LookupError(f"{name} record {record_id} not found")
            session.delete(record)
            session.flush()

    def delete_where(self, name: str, filters: Mapping[str, Any]) -> int:
        """Delete rows matching ``filters`` and return how many were removed.

        Rows are loaded and deleted through the ORM so the realtime channel
        sees each deletion.
        """
        if not filters:
            raise ValueError("delete_where requires at least one filter")
        model = self.model_for(name)
        statement = select(model).where(*self._where(model, filters))
        with self._session() as session:
            records = list(session.exec(statement).all())
            for record in records:
                session.delete(record)
            session.flush()
        return len(records)

    # ------------------------------------------------------------------ realtime

    def subscribe_to_changes(self, on_event: Callable[[ChangeEvent], None]) -> SessionEventChannel:
        if self.engine is None:
            raise RuntimeError("Gateway has no engine; realtime changes unavailable")
        channel = SessionEventChannel(self.engine, on_event, self.collections)
        channel.open()
        return channel

    def unsubscribe(self, handle: SessionEventChannel) -> None:
        handle.close()


__all__ = ["SQLModelGateway"]
