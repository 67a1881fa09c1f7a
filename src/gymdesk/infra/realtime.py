"""Realtime change channel built on SQLAlchemy session events."""

from __future__ import annotations

from typing import Callable, Mapping

from sqlalchemy import event
from sqlmodel import Session

from ..domain.gateway import ChangeAction, ChangeEvent
from ..logging_config import get_logger

logger = get_logger(__name__)


class SessionEventChannel:
    """Push channel reporting committed changes made through one engine.

    Changed rows are collected on ``after_flush`` and delivered only once the
    surrounding transaction commits; a rollback discards them. Sessions bound
    to other engines are ignored, so several channels can coexist in one
    process.
    """

    def __init__(
        self,
        engine,
        on_event: Callable[[ChangeEvent], None],
        collections: Mapping[str, type],
    ) -> None:
        self._engine = engine
        self._on_event = on_event
        self._tables = {
            getattr(model, "__tablename__", name): name for name, model in collections.items()
        }
        self._info_key = f"gymdesk.pending_changes.{id(self)}"
        self._is_open = False
        # event.remove() needs the exact callables that were registered.
        self._hooks = (
            ("after_flush", self._collect),
            ("after_commit", self._deliver),
            ("after_rollback", self._discard),
        )

    @property
    def is_open(self) -> bool:
        return self._is_open

    def open(self) -> None:
        if self._is_open:
            return
        for name, fn in self._hooks:
            event.listen(Session, name, fn)
        self._is_open = True
        logger.info("Realtime channel opened", extra={"collections": sorted(self._tables.values())})

    def close(self) -> None:
        if not self._is_open:
            return
        for name, fn in self._hooks:
            if event.contains(Session, name, fn):
                event.remove(Session, name, fn)
        self._is_open = False
        logger.info("Realtime channel closed")

    def _owns(self, session: Session) -> bool:
        return session.bind is self._engine

    def _collect(self, session: Session, flush_context) -> None:
        if not self._owns(session):
            return
        pending = session.info.setdefault(self._info_key, [])
        for action, objects in (
            (ChangeAction.INSERT, session.new),
            (ChangeAction.UPDATE, session.dirty),
            (ChangeAction.DELETE, session.deleted),
        ):
            for obj in objects:
                collection = self._tables.get(getattr(type(obj), "__tablename__", None))
                if collection is None:
                    continue
                if action is ChangeAction.UPDATE and not session.is_modified(obj):
                    continue
                pending.append(ChangeEvent(collection, action, getattr(obj, "id", None)))

    def _deliver(self, session: Session) -> None:
        if not self._owns(session):
            return
        for change in session.info.pop(self._info_key, None) or ():
            # The write already committed; a failing consumer must not surface
            # as a failed commit to the writer.
            try:
                self._on_event(change)
            except Exception:
                logger.exception(
                    "Change consumer failed",
                    extra={"collection": change.collection, "action": change.action.value},
                )

    def _discard(self, session: Session) -> None:
        if self._owns(session):
            session.info.pop(self._info_key, None)


__all__ = ["SessionEventChannel"]
