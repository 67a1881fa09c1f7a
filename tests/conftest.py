"""Pytest configuration and shared fixtures for GymDesk tests.

Database fixtures give every test its own temporary SQLite file; the fake
gateway lets cache, bus and billing tests run without a database at all.
"""

from __future__ import annotations

import tempfile
from contextlib import contextmanager
from datetime import date
from itertools import count
from pathlib import Path
from types import SimpleNamespace

import pytest
from sqlmodel import SQLModel, create_engine

import gymdesk.models  # noqa: F401  # register tables with SQLModel metadata
from gymdesk.domain.gateway import ChangeAction, ChangeEvent
from gymdesk.infra.database import create_session_factory
from gymdesk.infra.gateway import SQLModelGateway
from gymdesk.services.data_client import DataClient


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: SQLModel engine with all tables created
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(
        f"sqlite:///{db_path}", echo=False, connect_args={"check_same_thread": False}
    )
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Committing session factory, same shape as the application's."""
    return create_session_factory(db_engine)


@pytest.fixture
def gateway(session_factory, db_engine) -> SQLModelGateway:
    return SQLModelGateway(session_factory, engine=db_engine)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client(gateway):
    """An opened DataClient over the test database."""
    data_client = DataClient(gateway).open()
    yield data_client
    data_client.close()


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def user_factory(gateway):
    """Factory for persisted users (students unless told otherwise)."""

    seq = count(1)

    def _create_user(name: str | None = None, role: str = "STUDENT", **fields):
        n = next(seq)
        payload = {
            "name": name or f"Student {n}",
            "email": fields.pop("email", f"student{n}@studio.test"),
            "role": role,
            **fields,
        }
        return gateway.insert_record("users", payload)

    return _create_user


@pytest.fixture
def plan_factory(gateway):
    def _create_plan(
        title: str = "Plano Anual",
        price: float = 150.0,
        duration_months: int = 12,
        plan_type: str = "MENSAL",
    ):
        return gateway.insert_record(
            "plans",
            {
                "title": title,
                "price": price,
                "duration_months": duration_months,
                "plan_type": plan_type,
            },
        )

    return _create_plan


@pytest.fixture
def payment_factory(gateway):
    def _create_payment(
        student_id: int,
        amount: float = 150.0,
        status: str = "PENDING",
        due_date: date = date(2024, 1, 10),
        description: str = "Mensalidade",
    ):
        return gateway.insert_record(
            "payments",
            {
                "student_id": student_id,
                "amount": amount,
                "status": status,
                "due_date": due_date,
                "description": description,
            },
        )

    return _create_payment


@pytest.fixture
def class_factory(gateway):
    def _create_class(
        title: str = "Funcional 07h",
        day_of_week: str = "Segunda",
        start_time: str = "07:00",
        max_capacity: int = 10,
        **fields,
    ):
        return gateway.insert_record(
            "classes",
            {
                "title": title,
                "day_of_week": day_of_week,
                "start_time": start_time,
                "max_capacity": max_capacity,
                **fields,
            },
        )

    return _create_class


# =============================================================================
# Fakes
# =============================================================================


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeChannel:
    def __init__(self, on_event) -> None:
        self.on_event = on_event
        self.is_open = True


class FakeGateway:
    """In-memory gateway recording every call it receives.

    Records are SimpleNamespace objects; filters support equality only.
    """

    def __init__(self) -> None:
        self.tables: dict[str, list[SimpleNamespace]] = {}
        self.calls: list[tuple] = []
        self.channels: list[FakeChannel] = []
        self.unsubscribed: list[FakeChannel] = []
        self.read_error: Exception | None = None
        self.delete_error: Exception | None = None
        self.subscribe_error: Exception | None = None
        self._ids = count(1)

    # CRUD ---------------------------------------------------------------
    def _matches(self, record, filters) -> bool:
        return all(getattr(record, key, None) == value for key, value in (filters or {}).items())

    def seed(self, name: str, **fields) -> SimpleNamespace:
        record = SimpleNamespace(id=next(self._ids), **fields)
        self.tables.setdefault(name, []).append(record)
        return record

    def read_collection(self, name, filters=None, order_by=None):
        self.calls.append(("read", name, dict(filters or {})))
        if self.read_error is not None:
            raise self.read_error
        return [r for r in self.tables.get(name, []) if self._matches(r, filters)]

    def get_record(self, name, record_id):
        self.calls.append(("get", name, record_id))
        return next((r for r in self.tables.get(name, []) if r.id == record_id), None)

    def insert_record(self, name, fields):
        self.calls.append(("insert", name))
        return self.seed(name, **fields)

    def insert_many_records(self, name, rows):
        rows = list(rows)
        self.calls.append(("insert_many", name, len(rows)))
        return [self.seed(name, **row) for row in rows]

    def update_record(self, name, record_id, fields):
        self.calls.append(("update", name, record_id))
        for record in self.tables.get(name, []):
            if record.id == record_id:
                for key, value in fields.items():
                    setattr(record, key, value)
                return record
        raise LookupError(record_id)

    def delete_record(self, name, record_id):
        self.calls.append(("delete", name, record_id))
        self.tables[name] = [r for r in self.tables.get(name, []) if r.id != record_id]

    def delete_where(self, name, filters):
        self.calls.append(("delete_where", name, dict(filters)))
        if self.delete_error is not None:
            raise self.delete_error
        before = self.tables.get(name, [])
        self.tables[name] = [r for r in before if not self._matches(r, filters)]
        return len(before) - len(self.tables[name])

    @contextmanager
    def transaction(self):
        self.calls.append(("transaction",))
        yield

    # Realtime -----------------------------------------------------------
    def subscribe_to_changes(self, on_event):
        if self.subscribe_error is not None:
            raise self.subscribe_error
        channel = FakeChannel(on_event)
        self.channels.append(channel)
        return channel

    def unsubscribe(self, handle):
        handle.is_open = False
        self.unsubscribed.append(handle)

    def emit(self, collection: str, action: ChangeAction = ChangeAction.UPDATE, record_id=None):
        """Push a change to every open channel, as the remote store would."""
        for channel in self.channels:
            if channel.is_open:
                channel.on_event(ChangeEvent(collection, action, record_id))

    def count_calls(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()
