"""
Mistral AI embeddings over the REST API.

Request body differs from OpenAI's: the dimension knob is
``output_dimension`` and ``output_dtype`` is pinned to "float" so vectors
look the same as every other provider's.

422 (bad model / dimension) and 401 (bad key) fail immediately; everything
retryable gets 3 attempts in total with 1 s / 2 s backoff.
"""

from __future__ import annotations

import logging
from typing import Any

from knowledge_providers.embeddings.base import HttpEmbeddings, parse_data_embeddings

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.mistral.ai/v1"


class MistralEmbeddings(HttpEmbeddings):
    provider_name = "Mistral"
    default_batch_size = 32

    def __init__(self, model: str, *, base_url: str = "", **kwargs: Any) -> None:
        super().__init__(model, base_url=base_url or DEFAULT_BASE_URL, **kwargs)
        logger.info("Initialized MistralEmbeddings | model=%s dimensions=%s", self.model, self.dimensions)

    def default_dimensions(self) -> int | None:
        if self.model == "codestral-embed":
            return 1536
        return 1024   # mistral-embed

    async def _create_embeddings(self, inputs: list[str], *, query: bool = False) -> list[list[float]]:
        body: dict[str, Any] = {
            "model":        self.model,
            "input":        inputs,
            "output_dtype": "float",
        }
        if self.dimensions:
            body["output_dimension"] = self.dimensions

        payload = await self._post_json("/embeddings", body)
        if isinstance(payload, dict) and payload.get("usage"):
            logger.debug("Mistral usage | %s", payload["usage"])
        return parse_data_embeddings(payload)
