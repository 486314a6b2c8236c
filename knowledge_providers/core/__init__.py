"""
Shared plumbing for every outbound provider call.

Modules
───────
  config.py      pydantic-settings Settings (env / .env)
  logging.py     process-level logging setup for entry points
  errors.py      ErrorType taxonomy, ClassifiedError, classify_error()
  retry.py       bounded retry loop with retry-after aware backoff
  rate_limit.py  one-in-flight, N-per-minute request gate
"""

from knowledge_providers.core.errors import (
    ClassifiedError,
    ErrorType,
    ProviderRequestError,
    classify_error,
)
from knowledge_providers.core.rate_limit import RequestRateLimiter
from knowledge_providers.core.retry import compute_backoff, run_with_retry

__all__ = [
    "ClassifiedError",
    "ErrorType",
    "ProviderRequestError",
    "classify_error",
    "RequestRateLimiter",
    "compute_backoff",
    "run_with_retry",
]
