from __future__ import annotations

from typing import Optional


class DocExportError(Exception):
    """Base exception for docexport."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ConfigError(DocExportError):
    pass


class AuthError(DocExportError):
    pass


class ConnectorError(DocExportError):
    """Raised when the document source fails to open or iterate a cursor."""


class UploadError(DocExportError):
    def __init__(self, message: str, *, part_number: Optional[int] = None) -> None:
        super().__init__(message)
        self.part_number = part_number


class UploadStateError(UploadError):
    """Raised when a multipart session is driven out of order."""


class ExportError(DocExportError):
    pass


EXIT_CODES: dict[type[DocExportError], int] = {
    DocExportError: 1,
    ConfigError: 2,
    AuthError: 3,
    ConnectorError: 4,
    UploadError: 5,
    UploadStateError: 5,
    ExportError: 7,
}


def get_exit_code(exc: BaseException) -> int:
    # An ExportError wrapping a categorised failure reports the cause's code.
    if isinstance(exc, ExportError) and isinstance(exc.__cause__, DocExportError):
        exc = exc.__cause__
    for cls in exc.__class__.__mro__:
        if cls in EXIT_CODES:
            return EXIT_CODES[cls]  # type: ignore[index]
    return 1


__all__ = [
    "DocExportError",
    "ConfigError",
    "AuthError",
    "ConnectorError",
    "UploadError",
    "UploadStateError",
    "ExportError",
    "EXIT_CODES",
    "get_exit_code",
]
