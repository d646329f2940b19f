from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Protocol, Sequence

from ..core.errors import UploadError

JSON_CONTENT_TYPE = "application/json"
GZIP_ENCODING = "gzip"


@dataclass(frozen=True)
class CompletedPart:
    """A part accepted by the backend; ``etag`` is required again at completion."""

    part_number: int
    etag: str


class ObjectStore(Protocol):
    """Storage operations consumed by the upload engine."""

    def initiate(
        self,
        key: str,
        *,
        content_type: str,
        content_encoding: Optional[str] = None,
        metadata: Optional[Mapping[str, str]] = None,
    ) -> str:
        ...

    def upload_part(self, upload_id: str, key: str, part_number: int, data: bytes) -> str:
        ...

    def complete(self, upload_id: str, key: str, parts: Sequence[CompletedPart]) -> None:
        ...

    def abort(self, upload_id: str, key: str) -> None:
        ...

    def put(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str,
        content_encoding: Optional[str] = None,
        metadata: Optional[Mapping[str, str]] = None,
    ) -> None:
        ...

    def uri(self, key: str) -> str:
        ...


__all__ = [
    "JSON_CONTENT_TYPE",
    "GZIP_ENCODING",
    "CompletedPart",
    "ObjectStore",
    "UploadError",
]
