"""
Embedding provider base classes.

Every provider implements one coroutine, ``_create_embeddings(inputs)``,
for a single vendor call. The base class owns batching and runs each batch
through the shared retry loop, so all vendors get the same classification
and backoff policy.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

from knowledge_providers.core.errors import ClassifiedError, ErrorType, classify_error
from knowledge_providers.core.retry import run_with_retry

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_RETRIES     = 2       # 3 attempts in total


@dataclass
class EmbeddingApiClient:
    """Which vendor and model to call, and how to reach it."""
    provider: str
    model:    str
    api_key:  str = ""
    base_url: str = ""


class EmbeddingResponseError(ValueError):
    """The vendor answered 2xx but the payload is not a usable embedding list."""


class BaseEmbeddings(ABC):
    """
    Provider-agnostic embedding interface.

    embed_documents / embed_query return plain ``list[float]`` vectors, in
    input order. Either every input is embedded or the call raises
    ProviderRequestError; there are no partial results.
    """

    provider_name: str = "embedding"
    default_batch_size: int = 10

    def __init__(
        self,
        model:       str,
        *,
        dimensions:  int | None = None,
        batch_size:  int | None = None,
        timeout:     float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        self.model       = model
        self.dimensions  = dimensions
        self.batch_size  = batch_size or self.default_batch_size
        self.timeout     = timeout
        self.max_retries = max_retries
        self._probed_dimensions: int | None = None

    @property
    def service_name(self) -> str:
        return f"{self.provider_name} embedding"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        t0 = time.monotonic()
        batches = [texts[i : i + self.batch_size] for i in range(0, len(texts), self.batch_size)]
        logger.info(
            "%s | documents=%d batches=%d model=%s",
            self.service_name, len(texts), len(batches), self.model,
        )

        vectors: list[list[float]] = []
        for batch_idx, batch in enumerate(batches, start=1):
            logger.debug("%s | batch %d/%d size=%d", self.service_name, batch_idx, len(batches), len(batch))
            vectors.extend(await self._embed_batch(batch, f"batch {batch_idx}/{len(batches)}"))

        logger.info(
            "%s done | vectors=%d elapsed_ms=%.0f",
            self.service_name, len(vectors), (time.monotonic() - t0) * 1000,
        )
        return vectors

    async def embed_query(self, text: str) -> list[float]:
        vectors = await self._embed_batch([text], "query", query=True)
        return vectors[0]

    async def get_dimensions(self) -> int:
        """Configured dimensions, else the model default, else a probe call."""
        if self.dimensions:
            return self.dimensions
        default = self.default_dimensions()
        if default:
            return default
        if self._probed_dimensions is None:
            self._probed_dimensions = len(await self.embed_query("dimension probe"))
        return self._probed_dimensions

    def default_dimensions(self) -> int | None:
        return None

    async def aclose(self) -> None:
        """Release network resources; subclasses owning clients override."""

    # ------------------------------------------------------------------
    # Vendor call
    # ------------------------------------------------------------------

    @abstractmethod
    async def _create_embeddings(self, inputs: list[str], *, query: bool = False) -> list[list[float]]:
        """One vendor request for ``inputs``. Must raise on any failure."""

    async def _embed_batch(self, inputs: list[str], label: str, *, query: bool = False) -> list[list[float]]:
        async def _attempt() -> list[list[float]]:
            vectors = await self._create_embeddings(inputs, query=query)
            if len(vectors) != len(inputs):
                raise EmbeddingResponseError(
                    f"Invalid response format: expected {len(inputs)} embeddings, got {len(vectors)}"
                )
            return vectors

        return await run_with_retry(
            _attempt,
            max_retries=self.max_retries,
            service=self.service_name,
            operation_name=label,
            classify=_classify_embedding_error,
        )


def _classify_embedding_error(exc: BaseException) -> ClassifiedError:
    # malformed 2xx payloads will not improve on retry
    if isinstance(exc, EmbeddingResponseError):
        return ClassifiedError(type=ErrorType.UNKNOWN, message=str(exc), retryable=False)
    return classify_error(exc)


class HttpEmbeddings(BaseEmbeddings):
    """Base for vendors called over plain JSON-over-HTTPS with httpx."""

    def __init__(
        self,
        model:       str,
        *,
        api_key:     str = "",
        base_url:    str,
        http_client: httpx.AsyncClient | None = None,
        **kwargs:    Any,
    ) -> None:
        super().__init__(model, **kwargs)
        self.api_key  = api_key
        self.base_url = base_url.rstrip("/")
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _post_json(self, path: str, body: dict[str, Any]) -> Any:
        url = f"{self.base_url}{path}"
        t_api = time.monotonic()
        response = await self._http.post(url, json=body, headers=self._headers())
        if response.is_error:
            logger.error(
                "%s API error | status=%d body=%s",
                self.service_name, response.status_code, response.text[:500],
            )
        response.raise_for_status()
        logger.debug(
            "%s API success | inputs=%d api_ms=%.0f",
            self.service_name, len(body.get("input", [])), (time.monotonic() - t_api) * 1000,
        )
        return response.json()

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()


def parse_data_embeddings(payload: Any) -> list[list[float]]:
    """
    Extract vectors from an OpenAI-style ``{"data": [{"embedding", "index"}]}``
    body, ordered by ``index`` when present.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
        raise EmbeddingResponseError("Invalid response format: missing data array")

    items = payload["data"]
    for item in items:
        if not isinstance(item, dict) or not isinstance(item.get("embedding"), list):
            raise EmbeddingResponseError("Invalid response format: missing embedding array")

    if all(isinstance(item.get("index"), int) for item in items):
        items = sorted(items, key=lambda item: item["index"])
    return [item["embedding"] for item in items]
