from __future__ import annotations

from typing import Any

from .base import GZIP_ENCODING, JSON_CONTENT_TYPE, CompletedPart, ObjectStore, UploadError


def build_store(cfg: Any, *, session: Any = None) -> ObjectStore:
    from .s3 import S3ObjectStore

    return S3ObjectStore.from_config(cfg.s3, cfg.upload, session=session)


__all__ = [
    "GZIP_ENCODING",
    "JSON_CONTENT_TYPE",
    "CompletedPart",
    "ObjectStore",
    "UploadError",
    "build_store",
]
