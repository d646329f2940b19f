from __future__ import annotations

import logging
import random
import time
from typing import Any, Callable, Optional


RetryPredicate = Callable[[BaseException], bool]

_log = logging.getLogger(__name__)


def _call_label(func: Callable[..., Any]) -> str:
    name = getattr(func, "__name__", "")
    if name:
        return name
    cls = getattr(func, "__class__", None)
    if cls and getattr(cls, "__name__", None):
        return cls.__name__
    return "call"


def _status_of(exc: BaseException) -> Optional[int]:
    status = getattr(exc, "status_code", None)
    if status is not None:
        return status
    response = getattr(exc, "response", None)
    if isinstance(response, dict):
        # botocore ClientError carries the HTTP status under ResponseMetadata.
        status = response.get("status_code") or response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        if status is None:
            code = response.get("Error", {}).get("Code")
            if code in {"SlowDown", "Throttling", "ThrottlingException", "RequestTimeout"}:
                return 503
    return status


def default_predicate(exc: BaseException) -> bool:
    status = _status_of(exc)
    return status in {429} or (isinstance(status, int) and 500 <= status < 600)


def retry_call(
    func: Callable[..., Any],
    *,
    args: tuple[Any, ...] = (),
    kwargs: Optional[dict[str, Any]] = None,
    should_retry: Optional[RetryPredicate] = None,
    max_attempts: int = 5,
    base_delay: float = 0.2,
    max_delay: float = 5.0,
    max_elapsed: float = 30.0,
    sleep: Callable[[float], None] = time.sleep,
    now: Callable[[], float] = time.monotonic,
) -> Any:
    """Retry ``func`` with decorrelated jitter until success or limits exceeded."""

    predicate = should_retry or default_predicate
    attempts = 0
    start = now()
    delay = base_delay
    last_exc: Optional[BaseException] = None
    func_label = _call_label(func)
    while attempts < max_attempts:
        try:
            return func(*args, **(kwargs or {}))
        except Exception as exc:
            last_exc = exc
            attempts += 1
            if not predicate(exc):
                raise
            elapsed = now() - start
            if attempts >= max_attempts or elapsed >= max_elapsed:
                raise
            max_window = max(base_delay, delay * 3)
            delay = min(max_delay, random.uniform(base_delay, max_window))
            if elapsed + delay > max_elapsed:
                raise
            _log.debug("Retrying %s after %.2fs (attempt %d): %s", func_label, delay, attempts, exc)
            sleep(delay)
    if last_exc is not None:
        raise last_exc
    return func(*args, **(kwargs or {}))


__all__ = ["retry_call", "default_predicate"]
