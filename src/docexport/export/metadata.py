from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional

from bson import json_util

from ..core.ids import utc_now_iso

EXPORT_FORMAT = "json-array"


def filter_text(filter: Optional[Mapping[str, Any]]) -> str:
    """Render a structured filter for object metadata (``{}`` when empty)."""
    if not filter:
        return "{}"
    return json_util.dumps(dict(filter))


def build_metadata(
    collection: str,
    wrapper_key: Optional[str],
    filter: Optional[str],
    batch_size: int,
    compressed: bool,
    upload_type: str,
    *,
    export_time: Optional[datetime] = None,
) -> dict[str, str]:
    return {
        "collection": collection,
        "datawrapperKey": wrapper_key or "",
        "exportTime": utc_now_iso(export_time),
        "filter": filter or "{}",
        "batchSize": str(batch_size),
        "compressed": "true" if compressed else "false",
        "uploadType": upload_type,
        "format": EXPORT_FORMAT,
    }


__all__ = ["EXPORT_FORMAT", "build_metadata", "filter_text"]
