"""Shared realtime subscription that keeps the result cache honest."""

from __future__ import annotations

import itertools
import threading
from typing import Callable, Optional

from ..domain.gateway import ChangeEvent, ChannelHandle, RemoteDataGateway
from ..logging_config import get_logger
from .cache import ResultCache

logger = get_logger(__name__)

ChangeListener = Callable[[str], None]


class ChangeNotificationBus:
    """Fan a single realtime channel out to any number of listeners.

    The channel is opened by the first ``subscribe`` and torn down when the
    last listener leaves; at most one channel exists at a time. Every change
    event clears the whole cache before listeners run, then each listener is
    called with the changed collection name. Listener order is unspecified.
    """

    def __init__(self, gateway: RemoteDataGateway, cache: ResultCache) -> None:
        self._gateway = gateway
        self._cache = cache
        self._listeners: dict[int, ChangeListener] = {}
        self._tokens = itertools.count(1)
        self._channel: Optional[ChannelHandle] = None
        self._lock = threading.RLock()

    @property
    def is_active(self) -> bool:
        with self._lock:
            return self._channel is not None

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register ``listener`` and return a function that removes it.

        The returned function may be called any number of times.
        """
        with self._lock:
            if self._channel is None:
                # Opening may raise; the listener is only kept once it succeeds.
                self._channel = self._gateway.subscribe_to_changes(self._handle_event)
                logger.info("Change channel opened")
            token = next(self._tokens)
            self._listeners[token] = listener

        def unsubscribe() -> None:
            self._remove(token)

        return unsubscribe

    def _remove(self, token: int) -> None:
        with self._lock:
            if self._listeners.pop(token, None) is None:
                return
            if not self._listeners:
                self._teardown()

    def _teardown(self) -> None:
        channel, self._channel = self._channel, None
        if channel is not None:
            self._gateway.unsubscribe(channel)
            logger.info("Change channel closed")

    def close(self) -> None:
        """Drop every listener and close the channel."""
        with self._lock:
            self._listeners.clear()
            self._teardown()

    def _handle_event(self, event: ChangeEvent) -> None:
        self._cache.invalidate_all()
        with self._lock:
            listeners = list(self._listeners.values())
        for listener in listeners:
            try:
                listener(event.collection)
            except Exception:
                logger.exception(
                    "Change listener failed",
                    extra={"collection": event.collection, "action": event.action.value},
                )


__all__ = ["ChangeListener", "ChangeNotificationBus"]
