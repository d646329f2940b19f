"""Structured logging for docexport operations."""

import json
import logging
import re
import time
from contextlib import contextmanager
from typing import Any, Dict, Optional

# Configure the root logger for docexport
logger = logging.getLogger("docexport")
logger.setLevel(logging.INFO)

# Prevent duplicate handlers
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


class ExportLogger:
    """Structured logger for export runs with secret redaction."""

    def __init__(self, name: str = "docexport", verbose: bool = False):
        self.logger = logging.getLogger(name)
        if verbose:
            self.logger.setLevel(logging.DEBUG)
        else:
            self.logger.setLevel(logging.INFO)

        # Quoted patterns first to avoid partial matches
        self.secret_patterns = [
            r'(?i)(secret[_-]?access[_-]?key|session[_-]?token|password|token|secret)\s*=\s*"([^"]+)"',
            r'(?i)(secret[_-]?access[_-]?key|session[_-]?token|password|token|secret)\s*:\s*"([^"]+)"',
            r'(?i)(secret[_-]?access[_-]?key|session[_-]?token|password|token|secret)\s*=\s*([^\s]+)',
            r'(?i)(secret[_-]?access[_-]?key|session[_-]?token|password|token|secret)\s*:\s*([^\s]+)',
            r'mongodb(\+srv)?://[^:/\s]+:[^@\s]+@',
        ]

        self.secret_keys = [
            'secret', 'password', 'token', 'secret_access_key',
            'session_token', 'aws_secret_access_key', 'aws_session_token',
        ]

    def _redact_secrets(self, message: str) -> str:
        """Replace the whole message when it carries a secret."""
        for pattern in self.secret_patterns:
            if re.search(pattern, message, flags=re.IGNORECASE):
                return "[REDACTED: Contains secrets]"
        return message

    def _redact_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively redact secrets from a dictionary."""
        redacted: Dict[str, Any] = {}
        for key, value in data.items():
            if isinstance(value, str):
                if any(secret_key in key.lower() for secret_key in self.secret_keys):
                    redacted[key] = "[REDACTED]" if value else value
                elif any(re.search(pattern, value, flags=re.IGNORECASE) for pattern in self.secret_patterns):
                    redacted[key] = "[REDACTED]"
                else:
                    redacted[key] = value
            elif isinstance(value, dict):
                redacted[key] = self._redact_dict(value)
            elif isinstance(value, list):
                redacted[key] = [
                    "[REDACTED]" if isinstance(item, str) and any(re.search(pattern, item, flags=re.IGNORECASE) for pattern in self.secret_patterns) else item
                    for item in value
                ]
            else:
                redacted[key] = value
        return redacted

    def _log_structured(self, level: int, message: str, **kwargs: Any) -> None:
        safe_message = self._redact_secrets(message)

        log_entry: Dict[str, Any] = {
            "message": safe_message,
            "timestamp": time.time(),
            "level": logging.getLevelName(level),
        }

        if kwargs:
            log_entry["context"] = self._redact_dict(kwargs)

        self.logger.log(level, json.dumps(log_entry, default=str))

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log_structured(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log_structured(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log_structured(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log_structured(logging.ERROR, message, **kwargs)

    @contextmanager
    def operation(self, operation_name: str, **context: Any):
        """Context manager for logging operation start/stop."""
        start_time = time.time()
        self.info(f"Starting {operation_name}", operation=operation_name, **context)

        try:
            yield self
        except Exception as e:
            duration = time.time() - start_time
            self.error(
                f"Operation {operation_name} failed",
                operation=operation_name,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=duration * 1000,
                **context
            )
            raise
        else:
            duration = time.time() - start_time
            self.info(
                f"Completed {operation_name}",
                operation=operation_name,
                duration_ms=duration * 1000,
                **context
            )

    def config_fingerprint(self, config: Dict[str, Any]) -> None:
        """Log the effective configuration with secrets redacted."""
        self.info("Configuration loaded", config_fingerprint=self._redact_dict(config))

    def progress(self, records: int, bytes_buffered: int) -> None:
        self.info(
            f"Processed {records} records",
            records=records,
            bytes_buffered=bytes_buffered,
        )

    def export_summary(self, records: int, payload_bytes: int, parts: int, upload_type: str, **details: Any) -> None:
        self.info(
            f"Export complete: {records} records, {payload_bytes} bytes in {parts} part(s)",
            records=records,
            payload_bytes=payload_bytes,
            parts=parts,
            upload_type=upload_type,
            **details
        )


# Global logger instance
_export_logger: Optional[ExportLogger] = None


def get_logger(name: str = "docexport", verbose: bool = False) -> ExportLogger:
    """Get or create the global docexport logger."""
    global _export_logger
    if _export_logger is None:
        _export_logger = ExportLogger(name, verbose)
    return _export_logger


def set_verbose(verbose: bool) -> None:
    """Set verbose logging mode."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.getLogger("docexport").setLevel(level)
    get_logger().logger.setLevel(level)


def log_config_fingerprint(config: Dict[str, Any]) -> None:
    get_logger().config_fingerprint(config)


def redact(data: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``data`` with secret-looking values replaced."""
    return get_logger()._redact_dict(data)
