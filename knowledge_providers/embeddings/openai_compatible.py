"""
OpenAI-compatible embeddings (OpenAI, Azure OpenAI ``/openai/v1``, and any
gateway that speaks the ``/embeddings`` contract).

Model defaults:
  text-embedding-3-small  → 1536 dims  (``dimensions`` can shorten it)
  text-embedding-3-large  → 3072 dims
  text-embedding-ada-002  → 1536 dims  (fixed)

Retries are owned by run_with_retry; the SDK's own retry loop is disabled
so a failure is never retried twice over.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from openai import AsyncOpenAI

from knowledge_providers.embeddings.base import BaseEmbeddings

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"

_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}

# Approximate tokens per character, used when the response carries no usage
CHARS_PER_TOKEN_EST = 4


class OpenAIEmbeddings(BaseEmbeddings):
    provider_name = "OpenAI"
    default_batch_size = 10

    def __init__(
        self,
        model:    str,
        *,
        api_key:  str = "",
        base_url: str = "",
        client:   AsyncOpenAI | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(model, **kwargs)
        self.base_url = base_url or DEFAULT_BASE_URL
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=0,
        )

    def default_dimensions(self) -> int | None:
        return _MODEL_DIMENSIONS.get(self.model)

    async def _create_embeddings(self, inputs: list[str], *, query: bool = False) -> list[list[float]]:
        request: dict[str, Any] = {
            "model":           self.model,
            "input":           inputs,
            "encoding_format": "float",
        }
        # dimensions is only accepted by text-embedding-3-* and compatible models
        if self.dimensions:
            request["dimensions"] = self.dimensions

        t_api = time.monotonic()
        response = await self._client.embeddings.create(**request)
        api_ms = (time.monotonic() - t_api) * 1000

        tokens_used = response.usage.total_tokens if response.usage else sum(
            len(t) // CHARS_PER_TOKEN_EST for t in inputs
        )
        logger.debug(
            "OpenAI embeddings | size=%d tokens=%d api_ms=%.0f base_url=%s",
            len(inputs), tokens_used, api_ms, self.base_url,
        )

        data = sorted(response.data, key=lambda item: item.index)
        return [item.embedding for item in data]

    async def aclose(self) -> None:
        await self._client.close()
