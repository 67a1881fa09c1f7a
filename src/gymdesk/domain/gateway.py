"""Remote data gateway protocol."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import (
    Any,
    Callable,
    ContextManager,
    Iterable,
    Mapping,
    Optional,
    Protocol,
    Sequence,
)


class ChangeAction(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A committed change to one record of a collection."""

    collection: str
    action: ChangeAction
    record_id: Any = None


class ChannelHandle(Protocol):
    """Opaque handle returned by ``subscribe_to_changes``."""

    @property
    def is_open(self) -> bool:  # pragma: no cover - interface
        ...


class RemoteDataGateway(Protocol):
    """Typed CRUD access to named collections plus change notification.

    Errors raised by the underlying store propagate unchanged.
    """

    def read_collection(
        self,
        name: str,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[Sequence[str]] = None,
    ) -> list[Any]:
        """Return every record of ``name`` matching ``filters``."""
        ...

    def get_record(self, name: str, record_id: Any) -> Optional[Any]:
        """Return one record by id, or None."""
        ...

    def insert_record(self, name: str, fields: Mapping[str, Any]) -> Any:
        """Insert one record and return it with its id."""
        ...

    def insert_many_records(self, name: str, rows: Iterable[Mapping[str, Any]]) -> list[Any]:
        """Insert a batch of records as one operation."""
        ...

    def update_record(self, name: str, record_id: Any, fields: Mapping[str, Any]) -> Any:
        """Apply ``fields`` to an existing record and return it."""
        ...

    def delete_record(self, name: str, record_id: Any) -> None:
        """Delete one record by id."""
        ...

    def delete_where(self, name: str, filters: Mapping[str, Any]) -> int:
        """Delete every record matching ``filters``; return how many went."""
        ...

    def transaction(self) -> ContextManager[None]:
        """Group the calls made inside the block into one atomic unit."""
        ...

    def subscribe_to_changes(self, on_event: Callable[[ChangeEvent], None]) -> ChannelHandle:
        """Open a realtime channel delivering committed changes."""
        ...

    def unsubscribe(self, handle: ChannelHandle) -> None:
        """Tear down a channel opened by ``subscribe_to_changes``."""
        ...
