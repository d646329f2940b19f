from __future__ import annotations

import enum
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional

from ..core.errors import UploadError, UploadStateError
from ..exporters.base import GZIP_ENCODING, JSON_CONTENT_TYPE, CompletedPart, ObjectStore
from .planner import PartSpec

_log = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIATED = "initiated"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class UploadSession:
    key: str
    upload_id: Optional[str] = None
    parts: List[CompletedPart] = field(default_factory=list)
    state: SessionState = SessionState.UNINITIALIZED

    @property
    def terminated(self) -> bool:
        return self.state in (SessionState.COMPLETED, SessionState.ABORTED)

    def record(self, part: CompletedPart) -> None:
        self.parts.append(part)

    def ordered_parts(self) -> List[CompletedPart]:
        return sorted(self.parts, key=lambda p: p.part_number)


class MultipartUploadCoordinator:
    """Drive create -> upload-part* -> complete against an :class:`ObjectStore`.

    Any failure after the upload id is issued aborts the session once; abort
    failures are logged and the original error propagates. ``max_workers`` > 1
    uploads parts concurrently; completion always lists parts by number.
    """

    def __init__(self, store: ObjectStore, key: str, *, max_workers: int = 1) -> None:
        self.store = store
        self.session = UploadSession(key=key)
        self.max_workers = max(1, int(max_workers))

    @property
    def state(self) -> SessionState:
        return self.session.state

    def _require(self, *allowed: SessionState) -> None:
        if self.session.state not in allowed:
            raise UploadStateError(
                f"multipart session for {self.session.key!r} is {self.session.state.value}; "
                f"expected {' or '.join(s.value for s in allowed)}"
            )

    def initiate(self, *, compressed: bool = False, metadata: Optional[Mapping[str, str]] = None) -> str:
        self._require(SessionState.UNINITIALIZED)
        upload_id = self.store.initiate(
            self.session.key,
            content_type=JSON_CONTENT_TYPE,
            content_encoding=GZIP_ENCODING if compressed else None,
            metadata=metadata,
        )
        self.session.upload_id = upload_id
        self.session.state = SessionState.INITIATED
        _log.info("Initiated multipart upload %s for key %s", upload_id, self.session.key)
        return upload_id

    def _send(self, spec: PartSpec, data: bytes) -> CompletedPart:
        if len(data) != spec.length:
            raise UploadError(
                f"part {spec.part_number} has {len(data)} bytes, planned {spec.length}",
                part_number=spec.part_number,
            )
        etag = self.store.upload_part(self.session.upload_id, self.session.key, spec.part_number, data)
        _log.debug("Uploaded part %d (%d bytes) etag=%s", spec.part_number, spec.length, etag)
        return CompletedPart(part_number=spec.part_number, etag=etag)

    def _send_slice(self, spec: PartSpec, payload: bytes) -> CompletedPart:
        return self._send(spec, spec.slice(payload))

    def upload_part(self, spec: PartSpec, data: bytes) -> CompletedPart:
        self._require(SessionState.INITIATED, SessionState.UPLOADING)
        expected = len(self.session.parts) + 1
        if spec.part_number != expected:
            raise UploadStateError(f"expected part {expected}, got part {spec.part_number}")
        self.session.state = SessionState.UPLOADING
        part = self._send(spec, data)
        self.session.record(part)
        _log.info("Uploaded part %d (size: %d bytes)", spec.part_number, spec.length)
        return part

    def upload_parts(self, parts: Iterable[PartSpec], payload: bytes) -> List[CompletedPart]:
        specs = list(parts)
        if self.max_workers == 1 or len(specs) <= 1:
            return [self.upload_part(spec, spec.slice(payload)) for spec in specs]

        self._require(SessionState.INITIATED, SessionState.UPLOADING)
        expected = list(range(len(self.session.parts) + 1, len(self.session.parts) + len(specs) + 1))
        if [s.part_number for s in specs] != expected:
            raise UploadStateError(f"part numbers must be {expected[0]}..{expected[-1]} with no gaps")
        self.session.state = SessionState.UPLOADING
        with ThreadPoolExecutor(max_workers=self.max_workers) as ex:
            # Slices are taken in the worker so only in-flight parts are copied.
            futures = {ex.submit(self._send_slice, spec, payload): spec for spec in specs}
            try:
                for fut in as_completed(futures):
                    part = fut.result()
                    self.session.record(part)
                    _log.info("Uploaded part %d (size: %d bytes)", part.part_number, futures[fut].length)
            except BaseException:
                for pending in futures:
                    pending.cancel()
                raise
        return self.session.ordered_parts()

    def complete(self) -> None:
        self._require(SessionState.UPLOADING)
        parts = self.session.ordered_parts()
        self.store.complete(self.session.upload_id, self.session.key, parts)
        self.session.state = SessionState.COMPLETED
        _log.info("Completed multipart upload %s with %d parts", self.session.upload_id, len(parts))

    def abort(self) -> bool:
        """Best-effort abort. Returns True when the backend accepted the abort."""
        if self.session.terminated or self.session.upload_id is None:
            return False
        upload_id = self.session.upload_id
        self.session.state = SessionState.ABORTED
        try:
            self.store.abort(upload_id, self.session.key)
        except Exception:
            _log.exception("Failed to abort multipart upload: %s", upload_id)
            return False
        _log.info("Aborted multipart upload: %s", upload_id)
        return True

    def run(
        self,
        parts: Iterable[PartSpec],
        payload: bytes,
        *,
        compressed: bool = False,
        metadata: Optional[Mapping[str, str]] = None,
    ) -> List[CompletedPart]:
        """Upload ``payload`` as ``parts`` with all-or-nothing semantics."""
        specs = list(parts)
        if not specs:
            raise UploadStateError(f"multipart upload for {self.session.key!r} needs at least one part")
        self.initiate(compressed=compressed, metadata=metadata)
        try:
            self.upload_parts(specs, payload)
            self.complete()
        except BaseException:
            self.abort()
            raise
        return self.session.ordered_parts()


__all__ = [
    "SessionState",
    "UploadSession",
    "MultipartUploadCoordinator",
]
