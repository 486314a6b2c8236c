"""
Voyage AI embeddings over the REST API.

Voyage distinguishes retrieval queries from stored documents through
``input_type``; embed_query sends "query", embed_documents "document".
"""

from __future__ import annotations

from typing import Any

from knowledge_providers.embeddings.base import HttpEmbeddings, parse_data_embeddings

DEFAULT_BASE_URL = "https://api.voyageai.com/v1"


class VoyageEmbeddings(HttpEmbeddings):
    provider_name = "Voyage AI"
    default_batch_size = 8

    def __init__(self, model: str, *, base_url: str = "", **kwargs: Any) -> None:
        super().__init__(model, base_url=base_url or DEFAULT_BASE_URL, **kwargs)

    async def _create_embeddings(self, inputs: list[str], *, query: bool = False) -> list[list[float]]:
        body: dict[str, Any] = {
            "model":      self.model,
            "input":      inputs,
            "input_type": "query" if query else "document",
        }
        if self.dimensions:
            body["output_dimension"] = self.dimensions
        return parse_data_embeddings(await self._post_json("/embeddings", body))
