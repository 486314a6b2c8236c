"""
Embedding Providers

One async interface over several vendor APIs:

    from knowledge_providers.embeddings import EmbeddingApiClient, EmbeddingsFactory

    embeddings = EmbeddingsFactory.create(
        EmbeddingApiClient(provider="mistral", model="mistral-embed", api_key=key),
    )
    vectors = await embeddings.embed_documents(["first chunk", "second chunk"])
    query   = await embeddings.embed_query("what changed in Q4?")
"""

from knowledge_providers.embeddings.base import (
    BaseEmbeddings,
    EmbeddingApiClient,
    EmbeddingResponseError,
)
from knowledge_providers.embeddings.factory import EmbeddingsFactory
from knowledge_providers.embeddings.mistral import MistralEmbeddings
from knowledge_providers.embeddings.ollama import OllamaEmbeddings
from knowledge_providers.embeddings.openai_compatible import OpenAIEmbeddings
from knowledge_providers.embeddings.voyage import VoyageEmbeddings

__all__ = [
    "BaseEmbeddings",
    "EmbeddingApiClient",
    "EmbeddingResponseError",
    "EmbeddingsFactory",
    "MistralEmbeddings",
    "OllamaEmbeddings",
    "OpenAIEmbeddings",
    "VoyageEmbeddings",
]
