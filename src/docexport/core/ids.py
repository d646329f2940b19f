from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso(now: Optional[datetime] = None) -> str:
    value = now or utc_now()
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def timestamp_slug(now: Optional[datetime] = None) -> str:
    """Filesystem/key friendly timestamp, e.g. ``2024-05-01_13-45-10``."""

    return (now or utc_now()).strftime("%Y-%m-%d_%H-%M-%S")


def default_object_key(
    collection: str,
    *,
    compressed: bool,
    prefix: str | None = None,
    now: Optional[datetime] = None,
) -> str:
    ext = ".json.gz" if compressed else ".json"
    key = f"exports/{collection}/{collection}_{timestamp_slug(now)}{ext}"
    return join_key(prefix, key)


def join_key(prefix: str | None, key: str) -> str:
    prefix = (prefix or "").strip("/")
    key = key.lstrip("/")
    return f"{prefix}/{key}" if prefix else key


__all__ = ["utc_now", "utc_now_iso", "timestamp_slug", "default_object_key", "join_key"]
