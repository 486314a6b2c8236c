"""
Error Classification  -  Vendor Failures → Tagged, Retry-Aware Errors
══════════════════════════════════════════════════════════════════════

Every outbound call (Unstructured.io, embedding vendors) funnels its
failures through ``classify_error()``. The retry loop only ever looks at the
resulting ``ClassifiedError``; it never inspects raw exceptions itself.

Inspection order:
  1. Structured HTTP status
       httpx.HTTPStatusError          → exc.response.status_code
       openai.APIStatusError & co.    → exc.status_code
  2. Transport exception types
       httpx.TimeoutException / TimeoutError      → timeout
       httpx.ConnectError / ConnectionError / DNS → network_error
  3. Message substrings (opaque SDK errors that only carry text)

Status precedence:
  401 / 403 → 413 → 422 → 429 → 5xx → timeout → refused / not found → unknown

Retry policy:
  Retryable:     quota_exceeded, server_error, timeout, network_error
  Non-retryable: authentication_error (401, 403), file_too_large, invalid_format
  unknown:       retryable only when a numeric status >= 500 is known
"""

from __future__ import annotations

import asyncio
import logging
import re
import socket
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any

import httpx

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Taxonomy
# ---------------------------------------------------------------------------

class ErrorType(str, Enum):
    AUTHENTICATION_ERROR = "authentication_error"
    FILE_TOO_LARGE       = "file_too_large"
    INVALID_FORMAT       = "invalid_format"
    QUOTA_EXCEEDED       = "quota_exceeded"
    SERVER_ERROR         = "server_error"
    TIMEOUT              = "timeout"
    NETWORK_ERROR        = "network_error"
    UNKNOWN              = "unknown"


RETRYABLE_ERROR_TYPES: frozenset[ErrorType] = frozenset({
    ErrorType.QUOTA_EXCEEDED,
    ErrorType.SERVER_ERROR,
    ErrorType.TIMEOUT,
    ErrorType.NETWORK_ERROR,
})


@dataclass
class ClassifiedError:
    """
    One classified failure.

    type      : closed ErrorType tag
    message   : human-readable summary
    retryable : whether another attempt can change the outcome
    code      : HTTP status or transport error code, as a string
    details   : structured extras, e.g. {"retry_after": 5.0}
    timestamp : when the failure was classified (UTC)
    """
    type:      ErrorType
    message:   str
    retryable: bool
    code:      str | None = None
    details:   dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def retry_after(self) -> float | None:
        """Server-specified delay in seconds, if the response carried one."""
        value = self.details.get("retry_after")
        return float(value) if value is not None else None


class ProviderRequestError(RuntimeError):
    """
    Final, unrecoverable failure of an outbound request.

    Raised once the retry budget is exhausted or the failure is not
    retryable. Always chained to the root-cause exception.
    """

    def __init__(self, service: str, error: ClassifiedError, attempts: int) -> None:
        super().__init__(f"{service} failed: {error.message}")
        self.service  = service
        self.error    = error
        self.attempts = attempts


# ---------------------------------------------------------------------------
# Status table
# ---------------------------------------------------------------------------

_SERVER_ERROR_STATUSES = (500, 502, 503, 504)

_STATUS_RULES: dict[int, tuple[ErrorType, str]] = {
    401: (ErrorType.AUTHENTICATION_ERROR, "Invalid API key or authentication failed"),
    403: (ErrorType.AUTHENTICATION_ERROR, "Invalid API key or authentication failed"),
    413: (ErrorType.FILE_TOO_LARGE,       "File size exceeds API limits"),
    422: (ErrorType.INVALID_FORMAT,       "Unsupported file format or corrupted file"),
    429: (ErrorType.QUOTA_EXCEEDED,       "API rate limit or quota exceeded"),
    **{
        status: (ErrorType.SERVER_ERROR, "Server error, retrying may help")
        for status in _SERVER_ERROR_STATUSES
    },
}

# Exception class-name suffixes for SDKs that wrap httpx (openai, voyage, ...)
_TIMEOUT_NAME_SUFFIXES = ("TimeoutError", "Timeout")
_NETWORK_NAME_SUFFIXES = ("APIConnectionError", "ConnectError")

_TIMEOUT_TOKENS = ("econnaborted", "timeout", "timed out")
_NETWORK_TOKENS = ("econnrefused", "enotfound")

_STATUS_IN_TEXT = re.compile(r"(?<!\d)([1-5]\d\d)(?!\d)")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def classify_error(exc: BaseException) -> ClassifiedError:
    """Map a raw transport / HTTP / SDK failure to a ClassifiedError."""
    status = _extract_status(exc)
    if status is not None:
        return _classify_status(status, exc)

    if _is_timeout(exc):
        return _build(ErrorType.TIMEOUT, "Request timeout", code=_transport_code(exc, "ECONNABORTED"))

    if _is_network_failure(exc):
        return _build(ErrorType.NETWORK_ERROR, "Network connection failed", code=_transport_code(exc, "ECONNREFUSED"))

    return _classify_message(str(exc) or type(exc).__name__)


def is_retryable(exc: BaseException) -> bool:
    return classify_error(exc).retryable


# ---------------------------------------------------------------------------
# Structured inspection
# ---------------------------------------------------------------------------

def _extract_status(exc: BaseException) -> int | None:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code

    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status

    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


def _classify_status(status: int, exc: BaseException) -> ClassifiedError:
    details: dict[str, Any] = {}
    retry_after = _parse_retry_after(_response_headers(exc))
    if retry_after is not None:
        details["retry_after"] = retry_after

    rule = _STATUS_RULES.get(status)
    if rule is not None:
        error_type, message = rule
        return _build(error_type, message, code=str(status), details=details)

    return ClassifiedError(
        type=ErrorType.UNKNOWN,
        message=_response_message(exc),
        code=str(status),
        retryable=status >= 500,
        details=details,
    )


def _is_timeout(exc: BaseException) -> bool:
    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
        return True
    return type(exc).__name__.endswith(_TIMEOUT_NAME_SUFFIXES)


def _is_network_failure(exc: BaseException) -> bool:
    if isinstance(exc, (httpx.ConnectError, ConnectionError, socket.gaierror)):
        return True
    return type(exc).__name__.endswith(_NETWORK_NAME_SUFFIXES)


def _transport_code(exc: BaseException, default: str) -> str:
    if isinstance(exc, socket.gaierror):
        return "ENOTFOUND"
    return default


def _response_headers(exc: BaseException) -> Any:
    response = getattr(exc, "response", None)
    return getattr(response, "headers", None)


def _response_message(exc: BaseException) -> str:
    """Prefer the vendor's JSON ``message`` / ``detail`` over the exception text."""
    response = getattr(exc, "response", None)
    if response is not None:
        try:
            body = response.json()
        except Exception:   # body is not JSON, or was never read
            body = None
        if isinstance(body, dict):
            for key in ("message", "detail", "error"):
                value = body.get(key)
                if isinstance(value, str) and value:
                    return value
    return str(exc) or type(exc).__name__


def _parse_retry_after(headers: Any) -> float | None:
    """
    Parse a Retry-After header.

    Accepts delta-seconds ("5", "2.5") or an HTTP date. Past dates yield 0.
    """
    if not headers:
        return None
    try:
        raw = headers.get("retry-after")
    except AttributeError:
        return None
    if raw is None:
        return None

    raw = str(raw).strip()
    try:
        return max(float(raw), 0.0)
    except ValueError:
        pass

    try:
        when = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        logger.debug("Ignoring unparseable Retry-After header: %r", raw)
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max((when - datetime.now(timezone.utc)).total_seconds(), 0.0)


# ---------------------------------------------------------------------------
# Message fallback
# ---------------------------------------------------------------------------

def _classify_message(message: str) -> ClassifiedError:
    for status in (401, 403, 413, 422, 429, *_SERVER_ERROR_STATUSES):
        if str(status) in message:
            error_type, summary = _STATUS_RULES[status]
            return _build(error_type, summary, code=str(status))

    lowered = message.lower()
    if any(token in lowered for token in _TIMEOUT_TOKENS):
        return _build(ErrorType.TIMEOUT, "Request timeout", code="ECONNABORTED")

    for token in _NETWORK_TOKENS:
        if token in lowered:
            return _build(ErrorType.NETWORK_ERROR, "Network connection failed", code=token.upper())

    match = _STATUS_IN_TEXT.search(message)
    status = int(match.group(1)) if match else None
    return ClassifiedError(
        type=ErrorType.UNKNOWN,
        message=message,
        code=str(status) if status is not None else None,
        retryable=status is not None and status >= 500,
    )


def _build(
    error_type: ErrorType,
    message:    str,
    code:       str | None = None,
    details:    dict[str, Any] | None = None,
) -> ClassifiedError:
    return ClassifiedError(
        type=error_type,
        message=message,
        code=code,
        retryable=error_type in RETRYABLE_ERROR_TYPES,
        details=details or {},
    )
