from __future__ import annotations

import json
from typing import Optional


class DocumentSerializer:
    """Turn pre-serialized records into the byte fragments of one JSON document.

    With a wrapper key ``k`` the stream is ``{"k":[`` + comma-joined records +
    ``]}``. Without one, records are concatenated with no separators.
    """

    def __init__(self, wrapper_key: Optional[str] = None, *, encoding: str = "utf-8") -> None:
        self.wrapper_key = wrapper_key or None
        self.encoding = encoding

    @property
    def wrapped(self) -> bool:
        return self.wrapper_key is not None

    def opening(self) -> bytes:
        if not self.wrapped:
            return b""
        return ("{" + json.dumps(self.wrapper_key, ensure_ascii=False) + ":[").encode(self.encoding)

    def fragment(self, record: str | bytes, *, first: bool) -> bytes:
        data = record if isinstance(record, bytes) else record.encode(self.encoding)
        if self.wrapped and not first:
            return b"," + data
        return data

    def closing(self) -> bytes:
        return b"]}" if self.wrapped else b""


def serialize_records(records, wrapper_key: Optional[str] = None) -> bytes:
    """Serialize a whole record sequence in one go."""
    serializer = DocumentSerializer(wrapper_key)
    out = [serializer.opening()]
    for i, record in enumerate(records):
        out.append(serializer.fragment(record, first=i == 0))
    out.append(serializer.closing())
    return b"".join(out)


__all__ = ["DocumentSerializer", "serialize_records"]
