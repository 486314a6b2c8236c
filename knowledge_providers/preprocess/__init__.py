"""
Document Preprocessing Package
══════════════════════════════

Partition documents with Unstructured.io and turn the returned elements
into text chunks for the knowledge base.

Modules
───────
  types.py      request / response dataclasses and enums
  transform.py  vendor element JSON → ProcessedElement (never raises)
  client.py     rate-limited, retrying async API client
  provider.py   file → partition → chunk → Markdown output
"""

from knowledge_providers.preprocess.client import UnstructuredApiClient, get_mime_type
from knowledge_providers.preprocess.provider import PreprocessError, UnstructuredPreprocessProvider
from knowledge_providers.preprocess.transform import map_coordinates, map_element_type, transform_response
from knowledge_providers.preprocess.types import (
    BoundingBox,
    ChunkingStrategy,
    DeploymentType,
    ElementType,
    FileMetadata,
    HealthStatus,
    PreprocessProviderConfig,
    ProcessedElement,
    ProcessingMode,
    ProcessingParams,
    TextChunk,
    UnstructuredConfig,
)

__all__ = [
    "UnstructuredApiClient",
    "get_mime_type",
    "PreprocessError",
    "UnstructuredPreprocessProvider",
    "map_coordinates",
    "map_element_type",
    "transform_response",
    "BoundingBox",
    "ChunkingStrategy",
    "DeploymentType",
    "ElementType",
    "FileMetadata",
    "HealthStatus",
    "PreprocessProviderConfig",
    "ProcessedElement",
    "ProcessingMode",
    "ProcessingParams",
    "TextChunk",
    "UnstructuredConfig",
]
