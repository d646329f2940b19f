from __future__ import annotations

from typing import Any, ContextManager, Iterator, Mapping, Protocol

from ..core.errors import ConnectorError


class RecordCursor(Protocol):
    """Forward-only, non-restartable sequence of pre-serialized JSON records."""

    def __iter__(self) -> Iterator[str]:
        ...

    def close(self) -> None:
        ...


class DocumentSource(Protocol):
    """Protocol for sources able to stream a filtered collection.

    ``open_cursor`` returns a context manager so callers release the
    server-side cursor exactly once on every exit path.
    """

    name: str

    def open_cursor(
        self,
        collection: str,
        filter: Mapping[str, Any],
        *,
        batch_size: int,
    ) -> ContextManager[RecordCursor]:
        ...


__all__ = ["ConnectorError", "RecordCursor", "DocumentSource"]
