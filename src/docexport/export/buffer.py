from __future__ import annotations

import gzip
import io
from typing import Optional


class StreamingBuffer:
    """In-memory byte sink with an optional gzip transform.

    ``size()`` reports bytes physically held by the sink, i.e. compressed bytes
    when compression is on. ``extract_and_reset()`` finishes the current gzip
    member and starts a new one, so each extracted chunk decodes on its own.
    ``extract_and_close()`` finishes the stream and releases the sink for good.
    """

    def __init__(self, *, compress: bool = False, compresslevel: int = 6) -> None:
        self.compress = compress
        self.compresslevel = compresslevel
        self._sink: Optional[io.BytesIO] = None
        self._gzip: Optional[gzip.GzipFile] = None
        self._closed = False
        self._open_frame()

    def _open_frame(self) -> None:
        # The gzip member is started on the first non-empty write so an
        # untouched frame holds no header bytes and size() stays 0.
        self._sink = io.BytesIO()
        self._gzip = None

    def _start_member(self) -> None:
        # mtime=0 keeps output deterministic for identical input.
        self._gzip = gzip.GzipFile(fileobj=self._sink, mode="wb", compresslevel=self.compresslevel, mtime=0)

    def _finish_frame(self) -> bytes:
        if self._closed or self._sink is None:
            raise ValueError("StreamingBuffer is closed")
        if self.compress:
            # An empty frame still yields a valid (empty) gzip member.
            if self._gzip is None:
                self._start_member()
            self._gzip.close()  # writes the gzip trailer; leaves the sink open
            self._gzip = None
        return self._sink.getvalue()

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data: bytes) -> int:
        if self._closed or self._sink is None:
            raise ValueError("write to closed StreamingBuffer")
        if not data:
            return 0
        if self.compress:
            if self._gzip is None:
                self._start_member()
            return self._gzip.write(data)
        return self._sink.write(data)

    def size(self) -> int:
        if self._sink is None:
            return 0
        return self._sink.tell()

    def extract_and_reset(self) -> bytes:
        data = self._finish_frame()
        self._sink.close()
        self._open_frame()
        return data

    def extract_and_close(self) -> bytes:
        data = self._finish_frame()
        self.close()
        return data

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._gzip is not None:
            self._gzip.close()
            self._gzip = None
        if self._sink is not None:
            self._sink.close()
            self._sink = None

    def __enter__(self) -> "StreamingBuffer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["StreamingBuffer"]
