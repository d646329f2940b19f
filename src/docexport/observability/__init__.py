"""Observability helpers for docexport."""

from .logging import (
    ExportLogger,
    get_logger,
    set_verbose,
    log_config_fingerprint,
    redact,
)

__all__ = [
    "ExportLogger",
    "get_logger",
    "set_verbose",
    "log_config_fingerprint",
    "redact",
]
