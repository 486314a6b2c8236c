"""
Ollama embeddings via the native ``/api/embed`` endpoint.

Users often paste the OpenAI-compatible URL (``http://host:11434/v1/``);
the ``v1/`` segment is stripped so the native API is reached instead.
"""

from __future__ import annotations

from typing import Any

from knowledge_providers.embeddings.base import EmbeddingResponseError, HttpEmbeddings

DEFAULT_BASE_URL = "http://localhost:11434"


def normalize_base_url(base_url: str) -> str:
    url = (base_url or DEFAULT_BASE_URL).replace("v1/", "").rstrip("/")
    if url.endswith("/v1"):
        url = url[: -len("/v1")]
    return url


class OllamaEmbeddings(HttpEmbeddings):
    provider_name = "Ollama"
    default_batch_size = 10

    def __init__(self, model: str, *, base_url: str = "", **kwargs: Any) -> None:
        super().__init__(model, base_url=normalize_base_url(base_url), **kwargs)

    async def _create_embeddings(self, inputs: list[str], *, query: bool = False) -> list[list[float]]:
        payload = await self._post_json("/api/embed", {"model": self.model, "input": inputs})
        embeddings = payload.get("embeddings") if isinstance(payload, dict) else None
        if not isinstance(embeddings, list) or not all(isinstance(v, list) for v in embeddings):
            raise EmbeddingResponseError("Invalid response format: missing embeddings array")
        return embeddings
