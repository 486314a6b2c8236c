"""
Shared data types for Unstructured.io preprocessing.

All request/response values are created per call and discarded once the
caller has consumed them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from knowledge_providers.core.config import Settings


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ElementType(str, Enum):
    TEXT           = "text"
    TITLE          = "title"
    HEADER         = "header"
    FOOTER         = "footer"
    TABLE          = "table"
    IMAGE          = "image"
    LIST_ITEM      = "list_item"
    NARRATIVE_TEXT = "narrative_text"
    FORMULA        = "formula"


class DeploymentType(str, Enum):
    HOSTED      = "hosted"
    SELF_HOSTED = "self-hosted"


class ProcessingMode(str, Enum):
    FAST   = "fast"
    HI_RES = "hi_res"
    AUTO   = "auto"


class ChunkingStrategy(str, Enum):
    BY_TITLE      = "by_title"
    BY_PAGE       = "by_page"
    BY_SIMILARITY = "by_similarity"
    BASIC         = "basic"


class OutputFormat(str, Enum):
    TEXT     = "text"
    MARKDOWN = "markdown"
    JSON     = "json"


# ---------------------------------------------------------------------------
# Request / response values
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProcessingParams:
    """
    One partitioning request.

    strategy                 : layout strategy sent to the API
    chunking_strategy        : server-side chunking strategy name
    include_page_breaks      : emit PageBreak elements
    coordinates              : return element coordinates
    pdf_infer_table_structure: return table HTML for PDFs
    extract_tables / extract_images : optional extraction flags
    languages                : OCR language hints, e.g. ("eng", "spa")
    max_characters .. overlap_all   : server-side chunking knobs
    """
    strategy:                  ProcessingMode = ProcessingMode.FAST
    chunking_strategy:         str  = ChunkingStrategy.BY_TITLE.value
    include_page_breaks:       bool = False
    coordinates:               bool = False
    pdf_infer_table_structure: bool = False
    extract_tables:            bool = False
    extract_images:            bool = False
    languages:                 tuple[str, ...] = ()
    max_characters:            int | None = None
    combine_under_n_chars:     int | None = None
    new_after_n_chars:         int | None = None
    overlap:                   int | None = None
    overlap_all:               bool | None = None


@dataclass
class BoundingBox:
    """Rectangle in page coordinates. (x1, y1) top-left, (x2, y2) bottom-right."""
    x1:   float
    y1:   float
    x2:   float
    y2:   float
    page: int = 1


@dataclass
class ProcessedElement:
    """
    One extracted unit of document content.

    confidence is always 1.0: the API does not report per-element confidence.
    """
    id:          str
    type:        ElementType
    text:        str
    coordinates: BoundingBox | None = None
    page_number: int | None = None
    confidence:  float = 1.0
    metadata:    dict[str, Any] = field(default_factory=dict)


@dataclass
class TextChunk:
    text:     str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class HealthStatus:
    healthy: bool
    message: str | None = None


@dataclass
class FileMetadata:
    """A file known to the knowledge base. ``ext`` includes the dot (".pdf")."""
    id:         str
    name:       str
    path:       str
    ext:        str
    size:       int
    created_at: str = ""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class PreprocessProviderConfig:
    """Generic, user-facing provider settings as stored by the knowledge base."""
    id:       str = "unstructured"
    name:     str = "Unstructured.io"
    api_host: str = ""
    api_key:  str = ""
    quota:    int | None = None
    options:  dict[str, Any] = field(default_factory=dict)


@dataclass
class UnstructuredConfig:
    deployment_type:   DeploymentType   = DeploymentType.HOSTED
    api_endpoint:      str              = "https://api.unstructuredapp.io"
    api_key:           str              = ""
    processing_mode:   ProcessingMode   = ProcessingMode.FAST
    chunking_strategy: ChunkingStrategy = ChunkingStrategy.BY_TITLE
    output_format:     OutputFormat     = OutputFormat.TEXT
    max_retries:       int              = 3
    timeout_ms:        int              = 30_000
    name:              str              = "Unstructured.io"
    # Chunking
    max_characters:        int | None  = None
    combine_under_n_chars: int | None  = None
    new_after_n_chars:     int | None  = None
    overlap:               int | None  = None
    overlap_all:           bool | None = None
    # Extraction
    languages:                 tuple[str, ...] = ()
    coordinates:               bool = False
    include_page_breaks:       bool = False
    pdf_infer_table_structure: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> UnstructuredConfig:
        return cls(
            deployment_type=DeploymentType(settings.unstructured_deployment_type),
            api_endpoint=settings.unstructured_api_endpoint,
            api_key=settings.unstructured_api_key,
            processing_mode=ProcessingMode(settings.unstructured_processing_mode),
            chunking_strategy=ChunkingStrategy(settings.unstructured_chunking_strategy),
            output_format=OutputFormat(settings.unstructured_output_format),
            max_retries=settings.unstructured_max_retries,
            timeout_ms=settings.unstructured_timeout_ms,
        )

    @classmethod
    def from_provider(cls, provider: PreprocessProviderConfig) -> UnstructuredConfig:
        """Translate generic provider settings, filling the documented defaults."""
        opts = provider.options or {}
        return cls(
            name=provider.name or "Unstructured.io",
            deployment_type=DeploymentType(opts.get("deployment_type") or DeploymentType.HOSTED),
            api_endpoint=provider.api_host or "https://api.unstructuredapp.io",
            api_key=provider.api_key or "",
            processing_mode=ProcessingMode(opts.get("processing_mode") or ProcessingMode.FAST),
            chunking_strategy=ChunkingStrategy(opts.get("chunking_strategy") or ChunkingStrategy.BY_TITLE),
            output_format=OutputFormat(opts.get("output_format") or OutputFormat.TEXT),
            max_retries=_option(opts, "max_retries", 3),
            timeout_ms=_option(opts, "timeout_ms", 30_000),
            max_characters=opts.get("max_characters"),
            combine_under_n_chars=opts.get("combine_under_n_chars"),
            new_after_n_chars=opts.get("new_after_n_chars"),
            overlap=opts.get("overlap"),
            overlap_all=opts.get("overlap_all"),
            languages=tuple(opts.get("languages") or ()),
            coordinates=bool(opts.get("coordinates", False)),
            include_page_breaks=bool(opts.get("include_page_breaks", False)),
            pdf_infer_table_structure=bool(opts.get("pdf_infer_table_structure", False)),
        )

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


def _option(opts: dict[str, Any], key: str, default: Any) -> Any:
    """Option value, or ``default`` when unset; an explicit 0 is kept."""
    value = opts.get(key)
    return default if value is None else value
