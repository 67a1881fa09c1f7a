from __future__ import annotations

from datetime import date

import pytest

from gymdesk.domain.gateway import ChangeAction, ChangeEvent
from gymdesk.models import Payment, PaymentStatus


def test_insert_and_read_round_trip(gateway, user_factory):
    created = user_factory("Ana", email="ana@studio.test", phone_number="555-0101")

    rows = gateway.read_collection("users")

    assert created.id is not None
    assert [(u.id, u.name, u.phone_number) for u in rows] == [(created.id, "Ana", "555-0101")]


def test_filters_and_ordering(gateway, user_factory, payment_factory):
    student = user_factory()
    payment_factory(student.id, amount=50.0, due_date=date(2024, 3, 1))
    payment_factory(student.id, amount=70.0, due_date=date(2024, 1, 1), status="PAID")
    payment_factory(student.id, amount=60.0, due_date=date(2024, 2, 1))

    pending = gateway.read_collection(
        "payments", {"status": PaymentStatus.PENDING}, order_by=["due_date"]
    )
    newest_first = gateway.read_collection("payments", order_by=["-due_date"])
    ranged = gateway.read_collection(
        "payments", {"due_date__gte": date(2024, 2, 1), "amount__lt": 60.0}
    )
    either = gateway.read_collection("payments", {"amount__in": [50.0, 70.0]})

    assert [p.amount for p in pending] == [60.0, 50.0]
    assert [p.amount for p in newest_first] == [50.0, 60.0, 70.0]
    assert [p.amount for p in ranged] == [50.0]
    assert sorted(p.amount for p in either) == [50.0, 70.0]


def test_none_filter_matches_null(gateway, user_factory):
    user_factory("With phone", phone_number="1")
    user_factory("No phone")

    rows = gateway.read_collection("users", {"phone_number": None})
    others = gateway.read_collection("users", {"phone_number__ne": None})

    assert [u.name for u in rows] == ["No phone"]
    assert [u.name for u in others] == ["With phone"]


def test_unknown_collection_and_fields_rejected(gateway):
    with pytest.raises(ValueError, match="Unknown collection"):
        gateway.read_collection("invoices")
    with pytest.raises(ValueError):
        gateway.read_collection("users", {"nickname": "x"})
    with pytest.raises(ValueError):
        gateway.read_collection("users", {"name__like": "x"})
    with pytest.raises(ValueError):
        gateway.read_collection("users", order_by=["-nickname"])
    with pytest.raises(ValueError):
        gateway.insert_record("users", {"name": "x", "email": "x@x", "nickname": "x"})


def test_update_and_delete_missing_record_raise_lookup_error(gateway):
    with pytest.raises(LookupError):
        gateway.update_record("users", 999, {"name": "ghost"})
    with pytest.raises(LookupError):
        gateway.delete_record("users", 999)


def test_update_record_changes_fields(gateway, class_factory):
    cls = class_factory()

    updated = gateway.update_record("classes", cls.id, {"enrolled_student_ids": [4, 5], "id": 77})

    assert updated.id == cls.id
    assert gateway.get_record("classes", cls.id).enrolled_student_ids == [4, 5]


def test_delete_where_counts_and_requires_filters(gateway, user_factory, payment_factory):
    student = user_factory()
    payment_factory(student.id)
    payment_factory(student.id)
    payment_factory(student.id, status="PAID")

    removed = gateway.delete_where("payments", {"student_id": student.id, "status": "PENDING"})

    assert removed == 2
    assert [p.status for p in gateway.read_collection("payments")] == ["PAID"]
    with pytest.raises(ValueError):
        gateway.delete_where("payments", {})


def test_insert_many_records_empty_batch(gateway):
    assert gateway.insert_many_records("payments", []) == []


def test_transaction_rolls_back_every_write(gateway, user_factory, payment_factory):
    student = user_factory()
    payment_factory(student.id)

    with pytest.raises(RuntimeError):
        with gateway.transaction():
            gateway.delete_where("payments", {"student_id": student.id})
            gateway.insert_record(
                "payments",
                {"student_id": student.id, "amount": 1.0, "due_date": date(2024, 1, 1)},
            )
            raise RuntimeError("abort")

    rows = gateway.read_collection("payments")
    assert [r.amount for r in rows] == [150.0]


def test_nested_transactions_share_outer_session(gateway, user_factory):
    student = user_factory()

    with gateway.transaction():
        with gateway.transaction():
            gateway.insert_record(
                "payments",
                {"student_id": student.id, "amount": 10.0, "due_date": date(2024, 1, 1)},
            )
        # Visible to the outer block before commit.
        assert len(gateway.read_collection("payments")) == 1

    assert len(gateway.read_collection("payments")) == 1


def test_subscribe_reports_committed_changes(gateway, user_factory):
    events: list[ChangeEvent] = []
    handle = gateway.subscribe_to_changes(events.append)
    try:
        user = user_factory("Bia")
        gateway.update_record("users", user.id, {"name": "Beatriz"})
        gateway.delete_record("users", user.id)
    finally:
        gateway.unsubscribe(handle)

    assert events == [
        ChangeEvent("users", ChangeAction.INSERT, user.id),
        ChangeEvent("users", ChangeAction.UPDATE, user.id),
        ChangeEvent("users", ChangeAction.DELETE, user.id),
    ]
    assert not handle.is_open


def test_transaction_events_delivered_after_commit_only(gateway, user_factory):
    student = user_factory()
    events: list[ChangeEvent] = []
    handle = gateway.subscribe_to_changes(events.append)
    try:
        with gateway.transaction():
            gateway.insert_record(
                "payments",
                {"student_id": student.id, "amount": 1.0, "due_date": date(2024, 1, 1)},
            )
            assert events == []
        assert [(e.collection, e.action) for e in events] == [("payments", ChangeAction.INSERT)]

        events.clear()
        with pytest.raises(RuntimeError):
            with gateway.transaction():
                gateway.delete_where("payments", {"student_id": student.id})
                raise RuntimeError("abort")
        assert events == []
    finally:
        gateway.unsubscribe(handle)


def test_closed_channel_stops_reporting(gateway, user_factory):
    events = []
    handle = gateway.subscribe_to_changes(events.append)
    gateway.unsubscribe(handle)
    gateway.unsubscribe(handle)

    user_factory()

    assert events == []


def test_failing_consumer_does_not_fail_the_write(gateway, user_factory):
    def broken(_event):
        raise RuntimeError("consumer crashed")

    handle = gateway.subscribe_to_changes(broken)
    try:
        user = user_factory()
    finally:
        gateway.unsubscribe(handle)

    assert gateway.get_record("users", user.id) is not None


def test_channel_ignores_other_engines(gateway, db_engine, tmp_path):
    from sqlmodel import SQLModel, create_engine

    from gymdesk.infra.database import create_session_factory
    from gymdesk.infra.gateway import SQLModelGateway

    other_engine = create_engine(f"sqlite:///{tmp_path / 'other.db'}")
    SQLModel.metadata.create_all(other_engine)
    other = SQLModelGateway(create_session_factory(other_engine))

    events = []
    handle = gateway.subscribe_to_changes(events.append)
    try:
        other.insert_record("plans", {"title": "Trimestral", "price": 400.0})
    finally:
        gateway.unsubscribe(handle)
        other_engine.dispose()

    assert events == []


def test_subscribe_without_engine_raises(session_factory):
    from gymdesk.infra.gateway import SQLModelGateway

    bare = SQLModelGateway(lambda: session_factory())
    with pytest.raises(RuntimeError):
        bare.subscribe_to_changes(lambda _e: None)


def test_records_are_model_instances(gateway, user_factory, payment_factory):
    student = user_factory()
    payment_factory(student.id)

    (payment,) = gateway.read_collection("payments", {"student_id": student.id})

    assert isinstance(payment, Payment)
    assert payment.due_date == date(2024, 1, 10)
