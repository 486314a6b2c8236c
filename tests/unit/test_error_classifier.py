"""
Unit Tests  -  classify_error
═════════════════════════════

Coverage targets:
  ✅ Message fallback: 401 / 403 / 413 / 422 / 429 / 5xx tags and retryability
  ✅ Message fallback: timeout and connection tokens
  ✅ Precedence when a message mentions several codes
  ✅ unknown is retryable only with a numeric status >= 500
  ✅ httpx.HTTPStatusError classified by status, Retry-After parsed
  ✅ SDK errors exposing status_code (openai style)
  ✅ Transport exception types: timeouts, refused connections, DNS
  ✅ ProviderRequestError message names service and cause
"""

from __future__ import annotations

import asyncio
import socket

import httpx
import pytest

from knowledge_providers.core.errors import (
    ClassifiedError,
    ErrorType,
    ProviderRequestError,
    classify_error,
    is_retryable,
)


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def _status_error(status: int, headers: dict | None = None, json: dict | None = None) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://api.unstructuredapp.io/general/v0/general")
    response = httpx.Response(status, headers=headers, json=json, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


class _SdkStatusError(Exception):
    """Shape of openai.APIStatusError: message text plus an int status_code."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


# ─────────────────────────────────────────────────────────────────────────────
# Message fallback
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.unit
class TestMessageClassification:

    def test_401_is_authentication_error_and_not_retryable(self):
        error = classify_error(RuntimeError("Request failed with status code 401"))
        assert error.type == ErrorType.AUTHENTICATION_ERROR
        assert error.retryable is False
        assert error.code == "401"
        assert error.message == "Invalid API key or authentication failed"

    def test_403_message_is_authentication_error(self):
        error = classify_error(RuntimeError("Request failed with status code 403"))
        assert error.type == ErrorType.AUTHENTICATION_ERROR
        assert error.retryable is False

    def test_429_is_quota_exceeded_and_retryable(self):
        error = classify_error(RuntimeError("Request failed with status code 429"))
        assert error.type == ErrorType.QUOTA_EXCEEDED
        assert error.retryable is True

    @pytest.mark.parametrize("status,expected", [
        ("413", ErrorType.FILE_TOO_LARGE),
        ("422", ErrorType.INVALID_FORMAT),
    ])
    def test_client_errors_are_not_retryable(self, status, expected):
        error = classify_error(RuntimeError(f"status code {status}"))
        assert error.type == expected
        assert error.retryable is False

    @pytest.mark.parametrize("status", ["500", "502", "503", "504"])
    def test_5xx_is_server_error_and_retryable(self, status):
        error = classify_error(RuntimeError(f"Request failed with status code {status}"))
        assert error.type == ErrorType.SERVER_ERROR
        assert error.retryable is True
        assert error.code == status

    @pytest.mark.parametrize("message", [
        "ECONNABORTED",
        "timeout of 30000ms exceeded",
        "socket timed out",
    ])
    def test_timeout_tokens(self, message):
        error = classify_error(RuntimeError(message))
        assert error.type == ErrorType.TIMEOUT
        assert error.retryable is True

    def test_connection_refused(self):
        error = classify_error(RuntimeError("connect ECONNREFUSED 127.0.0.1:8000"))
        assert error.type == ErrorType.NETWORK_ERROR
        assert error.code == "ECONNREFUSED"
        assert error.retryable is True

    def test_host_not_found(self):
        error = classify_error(RuntimeError("getaddrinfo ENOTFOUND api.unstructuredapp.io"))
        assert error.type == ErrorType.NETWORK_ERROR
        assert error.code == "ENOTFOUND"

    def test_authentication_wins_over_quota(self):
        error = classify_error(RuntimeError("got 401 after an earlier 429"))
        assert error.type == ErrorType.AUTHENTICATION_ERROR

    def test_status_wins_over_timeout_token(self):
        error = classify_error(RuntimeError("504 gateway timeout"))
        assert error.type == ErrorType.SERVER_ERROR

    def test_unrecognised_message_is_unknown_and_not_retryable(self):
        error = classify_error(ValueError("something odd happened"))
        assert error.type == ErrorType.UNKNOWN
        assert error.retryable is False
        assert error.code is None
        assert error.message == "something odd happened"

    def test_unknown_with_5xx_status_is_retryable(self):
        error = classify_error(RuntimeError("status 507 insufficient storage"))
        assert error.type == ErrorType.UNKNOWN
        assert error.code == "507"
        assert error.retryable is True

    def test_unknown_with_4xx_status_is_not_retryable(self):
        error = classify_error(RuntimeError("status 418 teapot"))
        assert error.type == ErrorType.UNKNOWN
        assert error.retryable is False

    def test_empty_message_uses_exception_name(self):
        error = classify_error(KeyError())
        assert error.type == ErrorType.UNKNOWN
        assert error.message


# ─────────────────────────────────────────────────────────────────────────────
# Structured inspection
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.unit
class TestStructuredClassification:

    def test_http_status_error_uses_status_code(self):
        error = classify_error(_status_error(401))
        assert error.type == ErrorType.AUTHENTICATION_ERROR
        assert error.code == "401"

    def test_forbidden_is_authentication_error(self):
        error = classify_error(_status_error(403, json={"message": "Forbidden"}))
        assert error.type == ErrorType.AUTHENTICATION_ERROR
        assert error.code == "403"
        assert error.retryable is False

    def test_retry_after_seconds_header_is_parsed(self):
        error = classify_error(_status_error(429, headers={"Retry-After": "5"}))
        assert error.type == ErrorType.QUOTA_EXCEEDED
        assert error.retry_after == 5.0
        assert error.details == {"retry_after": 5.0}

    def test_retry_after_in_the_past_is_zero(self):
        error = classify_error(_status_error(429, headers={"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"}))
        assert error.retry_after == 0.0

    def test_garbage_retry_after_is_ignored(self):
        error = classify_error(_status_error(503, headers={"Retry-After": "soon"}))
        assert error.type == ErrorType.SERVER_ERROR
        assert error.retry_after is None

    def test_unmapped_4xx_uses_vendor_message(self):
        error = classify_error(_status_error(404, json={"detail": "Not Found"}))
        assert error.type == ErrorType.UNKNOWN
        assert error.code == "404"
        assert error.message == "Not Found"
        assert error.retryable is False

    def test_unmapped_5xx_is_retryable(self):
        error = classify_error(_status_error(501))
        assert error.type == ErrorType.UNKNOWN
        assert error.retryable is True

    def test_sdk_status_code_attribute(self):
        error = classify_error(_SdkStatusError("Error code: 429", status_code=429))
        assert error.type == ErrorType.QUOTA_EXCEEDED

    def test_structured_status_beats_message(self):
        # status attribute says 422 even though the text mentions 500
        error = classify_error(_SdkStatusError("upstream returned 500", status_code=422))
        assert error.type == ErrorType.INVALID_FORMAT
        assert error.retryable is False

    @pytest.mark.parametrize("exc", [
        httpx.ReadTimeout("read timed out"),
        httpx.ConnectTimeout("connect timed out"),
        asyncio.TimeoutError(),
        TimeoutError(),
    ])
    def test_timeout_exceptions(self, exc):
        error = classify_error(exc)
        assert error.type == ErrorType.TIMEOUT
        assert error.code == "ECONNABORTED"
        assert error.retryable is True

    def test_connect_error(self):
        error = classify_error(httpx.ConnectError("All connection attempts failed"))
        assert error.type == ErrorType.NETWORK_ERROR
        assert error.retryable is True

    def test_connection_refused_error(self):
        error = classify_error(ConnectionRefusedError(111, "Connection refused"))
        assert error.type == ErrorType.NETWORK_ERROR
        assert error.code == "ECONNREFUSED"

    def test_dns_failure(self):
        error = classify_error(socket.gaierror(-2, "Name or service not known"))
        assert error.type == ErrorType.NETWORK_ERROR
        assert error.code == "ENOTFOUND"

    def test_is_retryable_shortcut(self):
        assert is_retryable(_status_error(503)) is True
        assert is_retryable(_status_error(413)) is False


# ─────────────────────────────────────────────────────────────────────────────
# Error values
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.unit
class TestErrorValues:

    def test_timestamp_is_utc(self):
        error = classify_error(RuntimeError("500"))
        assert error.timestamp.tzinfo is not None

    def test_retry_after_absent_by_default(self):
        error = ClassifiedError(type=ErrorType.SERVER_ERROR, message="x", retryable=True)
        assert error.retry_after is None

    def test_provider_request_error_message(self):
        cause = classify_error(RuntimeError("status code 429"))
        err = ProviderRequestError("Unstructured.io processing", cause, attempts=4)
        assert str(err) == "Unstructured.io processing failed: API rate limit or quota exceeded"
        assert err.error is cause
        assert err.attempts == 4
