from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping, Optional

from ..connectors.base import DocumentSource
from ..core.errors import ConfigError, ExportError
from ..core.ids import default_object_key, join_key, utc_now
from ..exporters.base import GZIP_ENCODING, JSON_CONTENT_TYPE, ObjectStore
from ..observability.logging import get_logger
from .buffer import StreamingBuffer
from .metadata import build_metadata, filter_text
from .multipart import MultipartUploadCoordinator
from .planner import UploadPlan, plan_upload
from .serializer import DocumentSerializer

PROGRESS_EVERY = 50_000


@dataclass(frozen=True)
class ExportRequest:
    """One export: what to read, where to write it, and how to encode it."""

    collection: str
    key: str
    filter: Mapping[str, Any] = field(default_factory=dict)
    wrapper_key: Optional[str] = None
    batch_size: int = 1000
    compress: bool = False
    include_metadata: bool = True

    def __post_init__(self) -> None:
        if not self.collection or not self.collection.strip():
            raise ConfigError("collection name is required")
        if not self.key or not self.key.strip():
            raise ConfigError("destination key is required")
        if self.batch_size <= 0:
            raise ConfigError(f"batch size must be positive, got {self.batch_size}")
        if self.wrapper_key is not None and not self.wrapper_key.strip():
            object.__setattr__(self, "wrapper_key", None)
        object.__setattr__(self, "filter", MappingProxyType(dict(self.filter or {})))

    @classmethod
    def from_settings(cls, settings, *, now: Optional[datetime] = None) -> "ExportRequest":
        if not settings.collection:
            raise ConfigError("collection name is required")
        if settings.key:
            key = join_key(settings.prefix, settings.key)
        else:
            key = default_object_key(settings.collection, compressed=settings.compression, prefix=settings.prefix, now=now)
        return cls(
            collection=settings.collection,
            key=key,
            filter=settings.filter,
            wrapper_key=settings.datawrapper_key,
            batch_size=settings.batch_size,
            compress=settings.compression,
            include_metadata=settings.include_metadata,
        )

    def describe(self) -> dict[str, Any]:
        return {
            "collection": self.collection,
            "key": self.key,
            "filter": filter_text(self.filter),
            "wrapper_key": self.wrapper_key,
            "batch_size": self.batch_size,
            "compress": self.compress,
            "include_metadata": self.include_metadata,
        }


@dataclass(frozen=True)
class ExportOutcome:
    records: int
    payload_bytes: int
    parts: int
    upload_type: str
    key: str
    uri: str
    duration_ms: float


def _stream_payload(request: ExportRequest, source: DocumentSource, progress_every: int) -> tuple[int, bytes]:
    log = get_logger()
    serializer = DocumentSerializer(request.wrapper_key)
    count = 0
    with StreamingBuffer(compress=request.compress) as buffer:
        buffer.write(serializer.opening())
        with source.open_cursor(request.collection, request.filter, batch_size=request.batch_size) as cursor:
            for record in cursor:
                buffer.write(serializer.fragment(record, first=count == 0))
                count += 1
                if count % progress_every == 0:
                    log.progress(count, buffer.size())
        buffer.write(serializer.closing())
        payload = buffer.extract_and_close()
    return count, payload


def _upload(
    request: ExportRequest,
    store: ObjectStore,
    plan: UploadPlan,
    payload: bytes,
    coordinator: Optional[MultipartUploadCoordinator],
    started_at: datetime,
) -> None:
    metadata = None
    if request.include_metadata:
        metadata = build_metadata(
            request.collection,
            request.wrapper_key,
            filter_text(request.filter),
            request.batch_size,
            request.compress,
            plan.upload_type,
            export_time=started_at,
        )
    if coordinator is not None:
        coordinator.run(plan.parts, payload, compressed=request.compress, metadata=metadata)
        return
    store.put(
        request.key,
        payload,
        content_type=JSON_CONTENT_TYPE,
        content_encoding=GZIP_ENCODING if request.compress else None,
        metadata=metadata,
    )


def export_collection(
    request: ExportRequest,
    source: DocumentSource,
    store: ObjectStore,
    *,
    max_workers: int = 1,
    progress_every: int = PROGRESS_EVERY,
) -> ExportOutcome:
    """Export ``request.collection`` to ``request.key`` and return what was stored.

    The object becomes visible only once the put or the multipart completion
    succeeds. Every failure is raised as :class:`ExportError` chained to its
    cause, after any in-flight multipart upload has been aborted.
    """
    log = get_logger()
    started_at = utc_now()
    start = time.monotonic()
    uri = store.uri(request.key)
    coordinator: Optional[MultipartUploadCoordinator] = None
    try:
        with log.operation("export", collection=request.collection, key=request.key):
            records, payload = _stream_payload(request, source, progress_every)
            plan = plan_upload(len(payload))
            log.info(
                f"Serialized {records} records into {len(payload)} bytes; uploading as {plan.upload_type}",
                records=records,
                payload_bytes=len(payload),
                upload_type=plan.upload_type,
                parts=len(plan),
            )
            if plan.is_multipart:
                coordinator = MultipartUploadCoordinator(store, request.key, max_workers=max_workers)
            _upload(request, store, plan, payload, coordinator, started_at)
    except Exception as e:
        if coordinator is not None:
            coordinator.abort()
        raise ExportError(f"Export of collection {request.collection!r} to {uri} failed: {e}") from e

    outcome = ExportOutcome(
        records=records,
        payload_bytes=len(payload),
        parts=len(plan),
        upload_type=plan.upload_type,
        key=request.key,
        uri=uri,
        duration_ms=(time.monotonic() - start) * 1000,
    )
    log.export_summary(outcome.records, outcome.payload_bytes, outcome.parts, outcome.upload_type, uri=uri)
    return outcome


__all__ = [
    "PROGRESS_EVERY",
    "ExportRequest",
    "ExportOutcome",
    "export_collection",
]
