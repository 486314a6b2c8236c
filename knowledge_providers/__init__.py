"""
knowledge_providers  -  vendor adapters for a RAG knowledge base.

Packages
────────
  core         settings, logging setup, error classification, retry, rate limiting
  preprocess   Unstructured.io document partitioning and chunking
  embeddings   OpenAI-compatible, Mistral, Voyage AI and Ollama embeddings
"""

from knowledge_providers.core import (
    ClassifiedError,
    ErrorType,
    ProviderRequestError,
    RequestRateLimiter,
    classify_error,
)
from knowledge_providers.embeddings import BaseEmbeddings, EmbeddingApiClient, EmbeddingsFactory
from knowledge_providers.preprocess import (
    ProcessedElement,
    ProcessingParams,
    UnstructuredApiClient,
    UnstructuredPreprocessProvider,
)

__version__ = "0.1.0"

__all__ = [
    "ClassifiedError",
    "ErrorType",
    "ProviderRequestError",
    "RequestRateLimiter",
    "classify_error",
    "BaseEmbeddings",
    "EmbeddingApiClient",
    "EmbeddingsFactory",
    "ProcessedElement",
    "ProcessingParams",
    "UnstructuredApiClient",
    "UnstructuredPreprocessProvider",
]
