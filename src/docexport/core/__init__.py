from .errors import (
    DocExportError,
    ConfigError,
    AuthError,
    ConnectorError,
    UploadError,
    UploadStateError,
    ExportError,
    EXIT_CODES,
    get_exit_code,
)
from .retry import retry_call, default_predicate

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
    "retry_call",
    "default_predicate",
]
