"""
Embedding provider selection.

  voyageai  → VoyageEmbeddings   (batch 8)
  mistral   → MistralEmbeddings  (batch 32)
  ollama    → OllamaEmbeddings   (native /api/embed)
  anything else → OpenAIEmbeddings (OpenAI, Azure OpenAI /openai/v1, gateways; batch 10)

Adding a provider: implement BaseEmbeddings._create_embeddings and add a
branch to EmbeddingsFactory.create().
"""

from __future__ import annotations

import logging

from knowledge_providers.core.config import Settings, settings as default_settings
from knowledge_providers.embeddings.base import BaseEmbeddings, EmbeddingApiClient
from knowledge_providers.embeddings.mistral import MistralEmbeddings
from knowledge_providers.embeddings.ollama import OllamaEmbeddings
from knowledge_providers.embeddings.openai_compatible import OpenAIEmbeddings
from knowledge_providers.embeddings.voyage import VoyageEmbeddings

logger = logging.getLogger(__name__)


class EmbeddingsFactory:

    @staticmethod
    def create(
        api_client: EmbeddingApiClient,
        dimensions: int | None = None,
        *,
        settings:   Settings | None = None,
    ) -> BaseEmbeddings:
        cfg = settings or default_settings
        provider = api_client.provider.lower()
        common = {
            "dimensions":  dimensions,
            "timeout":     cfg.embedding_timeout_ms / 1000,
            "max_retries": cfg.embedding_max_retries,
        }

        logger.info(
            "Creating embeddings | provider=%s model=%s base_url=%s dimensions=%s",
            provider, api_client.model, api_client.base_url, dimensions,
        )

        if provider == "voyageai":
            return VoyageEmbeddings(
                api_client.model, api_key=api_client.api_key, base_url=api_client.base_url, **common,
            )

        if provider == "mistral":
            return MistralEmbeddings(
                api_client.model, api_key=api_client.api_key, base_url=api_client.base_url, **common,
            )

        if provider == "ollama":
            return OllamaEmbeddings(api_client.model, base_url=api_client.base_url, **common)

        return OpenAIEmbeddings(
            api_client.model, api_key=api_client.api_key, base_url=api_client.base_url, **common,
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> BaseEmbeddings:
        cfg = settings or default_settings
        return cls.create(
            EmbeddingApiClient(
                provider=cfg.embedding_provider,
                model=cfg.embedding_model,
                api_key=cfg.embedding_api_key,
                base_url=cfg.embedding_base_url,
            ),
            dimensions=cfg.embedding_dimensions,
            settings=cfg,
        )
