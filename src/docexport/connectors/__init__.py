from __future__ import annotations

from .base import ConnectorError, DocumentSource, RecordCursor


def build_source(cfg) -> DocumentSource:
    from .mongo import MongoSource

    return MongoSource.from_config(cfg)


__all__ = ["ConnectorError", "DocumentSource", "RecordCursor", "build_source"]
