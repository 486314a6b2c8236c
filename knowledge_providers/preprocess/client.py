"""
Unstructured.io Partition API Client
════════════════════════════════════

Thin async adapter over the vendor's REST contract:

  POST {endpoint}/general/v0/general     multipart: files + partition options
  GET  {endpoint}/general/v0/general/docs  reachability probe
  GET  {endpoint}/health                   health probe

Every partition request passes through two gates:

  RequestRateLimiter  one document in flight, 10/min hosted, 100/min self-hosted
  run_with_retry      classify → retry retryable failures with backoff

The limiter wraps the whole retry loop: a document keeps its turn through
its retries and backoff sleeps, so concurrent callers never interleave.
Each attempt is bounded by timeout_ms in total (asyncio.wait_for), on top
of httpx's per-phase connect / read / write timeouts.

Callers receive either the complete element list or a ProviderRequestError;
partial results are never returned.
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Any

import httpx

from knowledge_providers.core.config import Settings, settings as default_settings
from knowledge_providers.core.errors import classify_error
from knowledge_providers.core.rate_limit import RequestRateLimiter
from knowledge_providers.core.retry import run_with_retry
from knowledge_providers.preprocess.transform import transform_response
from knowledge_providers.preprocess.types import (
    HealthStatus,
    ProcessedElement,
    ProcessingParams,
    UnstructuredConfig,
)

logger = logging.getLogger(__name__)

PARTITION_PATH = "/general/v0/general"
DOCS_PATH      = "/general/v0/general/docs"
HEALTH_PATH    = "/health"
API_KEY_HEADER = "unstructured-api-key"

SERVICE_NAME = "Unstructured.io processing"

_MIME_TYPES: dict[str, str] = {
    "pdf":  "application/pdf",
    "doc":  "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls":  "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt":  "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "txt":  "text/plain",
    "rtf":  "application/rtf",
    "html": "text/html",
    "htm":  "text/html",
    "csv":  "text/csv",
    "xml":  "application/xml",
    "json": "application/json",
    "md":   "text/markdown",
    "odt":  "application/vnd.oasis.opendocument.text",
    "ods":  "application/vnd.oasis.opendocument.spreadsheet",
    "odp":  "application/vnd.oasis.opendocument.presentation",
}

DEFAULT_MIME_TYPE = "application/octet-stream"


def get_mime_type(file_name: str) -> str:
    """MIME type from the file extension; octet-stream when unknown."""
    if "." not in file_name:
        return DEFAULT_MIME_TYPE
    extension = file_name.rsplit(".", 1)[-1].lower()
    return _MIME_TYPES.get(extension, DEFAULT_MIME_TYPE)


def _form_value(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class UnstructuredApiClient:
    """
    Usage::

        async with UnstructuredApiClient(UnstructuredConfig.from_settings(settings)) as client:
            elements = await client.process_document(pdf_bytes, "report.pdf", ProcessingParams())

    The client owns its rate limiter: two coroutines sharing one client are
    serialised; two clients do not coordinate.
    """

    def __init__(
        self,
        config:       UnstructuredConfig,
        *,
        settings:     Settings | None = None,
        http_client:  httpx.AsyncClient | None = None,
        rate_limiter: RequestRateLimiter | None = None,
    ) -> None:
        self._config = config
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=config.api_endpoint,
            timeout=httpx.Timeout(config.timeout_seconds or None),
            headers={API_KEY_HEADER: config.api_key} if config.api_key else {},
        )
        self._rate_limiter = rate_limiter or RequestRateLimiter.for_deployment(
            config.deployment_type, settings or default_settings,
        )

        logger.info(
            "UnstructuredApiClient initialized | deployment=%s endpoint=%s mode=%s rate=%d/min",
            config.deployment_type.value, config.api_endpoint,
            config.processing_mode.value, self._rate_limiter.max_rate,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()

    async def __aenter__(self) -> UnstructuredApiClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Partitioning
    # ------------------------------------------------------------------

    async def process_document(
        self,
        file_bytes: bytes,
        file_name:  str,
        params:     ProcessingParams,
    ) -> list[ProcessedElement]:
        """
        Partition one document into elements.

        Raises:
            ProviderRequestError: non-retryable failure, or retries exhausted.
        """
        t0 = time.monotonic()
        logger.info(
            "Processing document | file=%s size_bytes=%d strategy=%s max_attempts=%d",
            file_name, len(file_bytes), _form_value(params.strategy), self._config.max_retries + 1,
        )

        async def _attempt() -> list[ProcessedElement]:
            return await asyncio.wait_for(
                self._post_partition(file_bytes, file_name, params),
                timeout=self._config.timeout_seconds or None,
            )

        elements = await self._rate_limiter.schedule(
            run_with_retry,
            _attempt,
            max_retries=self._config.max_retries,
            service=SERVICE_NAME,
            operation_name=file_name,
        )

        logger.info(
            "Document processing completed | file=%s elements=%d elapsed_ms=%.0f",
            file_name, len(elements), (time.monotonic() - t0) * 1000,
        )
        return elements

    async def _post_partition(
        self,
        file_bytes: bytes,
        file_name:  str,
        params:     ProcessingParams,
    ) -> list[ProcessedElement]:
        """Single POST; raises on any transport or non-2xx failure."""
        files = {"files": (file_name, file_bytes, get_mime_type(file_name))}
        response = await self._http.post(PARTITION_PATH, data=self.build_form_data(params), files=files)
        response.raise_for_status()
        return transform_response(response.json())

    @staticmethod
    def build_form_data(params: ProcessingParams) -> dict[str, Any]:
        """Multipart form fields for the partition endpoint (file part excluded)."""
        data: dict[str, Any] = {
            "strategy":          _form_value(params.strategy),
            "chunking_strategy": _form_value(params.chunking_strategy),
            "output_format":     "application/json",
        }

        flags = {
            "include_page_breaks":       params.include_page_breaks,
            "extract_images":            params.extract_images,
            "extract_tables":            params.extract_tables,
            "coordinates":               params.coordinates,
            "pdf_infer_table_structure": params.pdf_infer_table_structure,
        }
        data.update({name: "true" for name, enabled in flags.items() if enabled})

        if params.languages:
            # one form field per language, as the API expects
            data["languages"] = list(params.languages)

        chunking = {
            "max_characters":        params.max_characters,
            "combine_under_n_chars": params.combine_under_n_chars,
            "new_after_n_chars":     params.new_after_n_chars,
            "overlap":               params.overlap,
            "overlap_all":           params.overlap_all,
        }
        data.update({name: _form_value(value) for name, value in chunking.items() if value is not None})

        return data

    # ------------------------------------------------------------------
    # Probes
    # ------------------------------------------------------------------

    async def test_connection(self) -> bool:
        """True when the API docs endpoint answers 200."""
        try:
            response = await self._http.get(DOCS_PATH)
        except httpx.HTTPError as exc:
            logger.error("Connection test failed | endpoint=%s error=%s", self._config.api_endpoint, exc)
            return False
        return response.status_code == 200

    async def get_health_status(self) -> HealthStatus:
        try:
            response = await self._http.get(HEALTH_PATH)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            error = classify_error(exc)
            logger.warning("Health check failed | type=%s message=%s", error.type.value, error.message)
            return HealthStatus(healthy=False, message=error.message)
        return HealthStatus(healthy=response.status_code == 200)
