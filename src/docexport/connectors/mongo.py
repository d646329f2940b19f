from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Optional

from bson import json_util
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from .base import ConnectorError

_log = logging.getLogger(__name__)


class _MongoRecordCursor:
    """Wrap a pymongo cursor, rendering each document as relaxed extended JSON."""

    def __init__(self, cursor) -> None:
        self._cursor = cursor
        self._closed = False

    def __iter__(self) -> Iterator[str]:
        try:
            for doc in self._cursor:
                yield json_util.dumps(doc)
        except PyMongoError as e:
            raise ConnectorError(f"Cursor iteration failed: {e}") from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._cursor.close()


class MongoSource:
    def __init__(
        self,
        *,
        uri: str,
        database: str,
        name: str = "mongo",
        app_name: Optional[str] = None,
        server_selection_timeout_ms: int = 30000,
        client: Any = None,
    ) -> None:
        if not database:
            raise ConnectorError("MongoSource requires a database name")
        self.name = name
        self.uri = uri
        self.database = database
        self.app_name = app_name
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self._client = client

    @classmethod
    def from_config(cls, cfg) -> "MongoSource":
        return cls(
            uri=cfg.uri,
            database=cfg.database,
            app_name=cfg.app_name,
            server_selection_timeout_ms=cfg.server_selection_timeout_ms,
        )

    def _mongo(self):
        if self._client is not None:
            return self._client
        kwargs: dict[str, Any] = {"serverSelectionTimeoutMS": self.server_selection_timeout_ms}
        if self.app_name:
            kwargs["appname"] = self.app_name
        self._client = MongoClient(self.uri, **kwargs)
        return self._client

    @contextmanager
    def open_cursor(
        self,
        collection: str,
        filter: Mapping[str, Any],
        *,
        batch_size: int,
    ) -> Iterator[_MongoRecordCursor]:
        try:
            coll = self._mongo()[self.database][collection]
            raw = coll.find(dict(filter or {})).batch_size(batch_size)
        except PyMongoError as e:
            raise ConnectorError(f"Failed to query collection {collection!r}: {e}") from e
        cursor = _MongoRecordCursor(raw)
        _log.debug("Opened cursor on %s.%s (batch_size=%d)", self.database, collection, batch_size)
        try:
            yield cursor
        finally:
            cursor.close()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None


__all__ = ["MongoSource"]
