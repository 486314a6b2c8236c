"""
Unstructured.io Preprocess Provider
═══════════════════════════════════

Turns a knowledge-base file into a Markdown file of text chunks:

  validate config → already processed? → read file → partition (API)
      → chunk elements → write <storage_dir>/<file_id>/<stem>.md

Progress is reported to an optional async callback at 10 / 30 / 70 / 90 / 100.

Chunking strategies (client-side, applied to the returned elements):
  basic          one chunk containing every non-empty element
  by_title       a new chunk starts at every title / header element
  by_page        one chunk per page number (elements without a page → 1)
  by_similarity  not implemented yet; uses by_title
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Awaitable, Callable

from knowledge_providers.core.config import Settings, settings as default_settings
from knowledge_providers.preprocess.client import UnstructuredApiClient
from knowledge_providers.preprocess.types import (
    ChunkingStrategy,
    DeploymentType,
    ElementType,
    FileMetadata,
    PreprocessProviderConfig,
    ProcessedElement,
    ProcessingParams,
    TextChunk,
    UnstructuredConfig,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int], Awaitable[None]]

_HEADING_TYPES = (ElementType.TITLE, ElementType.HEADER)


class PreprocessError(RuntimeError):
    """Raised by parse_file for any failure, wrapping the root cause."""


class UnstructuredPreprocessProvider:
    """
    Usage::

        provider = UnstructuredPreprocessProvider(
            PreprocessProviderConfig(api_key="...", options={"chunking_strategy": "by_page"}),
        )
        processed_file, quota = await provider.parse_file(source_id, file)
    """

    def __init__(
        self,
        provider:    PreprocessProviderConfig,
        *,
        settings:    Settings | None = None,
        storage_dir: str | Path | None = None,
        client:      UnstructuredApiClient | None = None,
        progress_cb: ProgressCallback | None = None,
    ) -> None:
        cfg = settings or default_settings
        self._provider    = provider
        self._config      = UnstructuredConfig.from_provider(provider)
        self._storage_dir = Path(storage_dir or cfg.preprocess_storage_dir)
        self._default_quota = cfg.preprocess_default_quota
        self._client      = client or UnstructuredApiClient(self._config, settings=cfg)
        self._progress_cb = progress_cb

        logger.info(
            "UnstructuredPreprocessProvider initialized | deployment=%s mode=%s chunking=%s",
            self._config.deployment_type.value,
            self._config.processing_mode.value,
            self._config.chunking_strategy.value,
        )

    @property
    def config(self) -> UnstructuredConfig:
        return self._config

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    async def parse_file(self, source_id: str, file: FileMetadata) -> tuple[FileMetadata, int | None]:
        """
        Process ``file`` and return (processed_file, quota).

        Quota is None; it is reported separately through check_quota().

        Raises:
            PreprocessError: on invalid configuration or any processing failure.
        """
        try:
            logger.info("Unstructured processing started | source=%s file=%s", source_id, file.path)

            if not self.validate_config():
                raise ValueError("Invalid Unstructured.io configuration")

            existing = self._find_processed(file)
            if existing is not None:
                logger.info("File already processed | file=%s output=%s", file.path, existing.path)
                return existing, None

            await self._report_progress(source_id, 10)
            file_bytes = await _run_blocking(Path(file.path).read_bytes)
            params = self.build_processing_params()

            await self._report_progress(source_id, 30)
            elements = await self._client.process_document(file_bytes, file.name, params)

            await self._report_progress(source_id, 70)
            chunks = self.create_text_chunks(elements, file)
            content = "\n\n".join(chunk.text for chunk in chunks)

            await self._report_progress(source_id, 90)
            output_path = await _run_blocking(self._write_output, file, content)
            processed = _file_metadata_for(file, output_path)

            await self._report_progress(source_id, 100)
            logger.info(
                "Unstructured processing completed | file=%s elements=%d chunks=%d output_bytes=%d",
                file.path, len(elements), len(chunks), processed.size,
            )
            return processed, None

        except Exception as exc:
            logger.error("Unstructured processing failed | file=%s error=%s", file.path, exc)
            raise PreprocessError(f"Unstructured.io processing failed: {exc}") from exc

    async def check_quota(self) -> int:
        # TODO: query the account's remaining page quota once the API exposes it
        return self._provider.quota or self._default_quota

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def validate_config(self) -> bool:
        cfg = self._config
        if not cfg.api_endpoint or not cfg.api_endpoint.startswith("http"):
            logger.error("Invalid API endpoint | endpoint=%r", cfg.api_endpoint)
            return False
        if cfg.deployment_type == DeploymentType.HOSTED and not cfg.api_key:
            logger.error("API key required for hosted deployment")
            return False
        return True

    def build_processing_params(self) -> ProcessingParams:
        cfg = self._config
        return ProcessingParams(
            strategy=cfg.processing_mode,
            chunking_strategy=cfg.chunking_strategy.value,
            include_page_breaks=True,
            coordinates=cfg.coordinates,
            pdf_infer_table_structure=True,
            extract_tables=True,
            extract_images=False,
            languages=cfg.languages,
            max_characters=cfg.max_characters,
            combine_under_n_chars=cfg.combine_under_n_chars,
            new_after_n_chars=cfg.new_after_n_chars,
            overlap=cfg.overlap,
            overlap_all=cfg.overlap_all,
        )

    # ------------------------------------------------------------------
    # Chunking
    # ------------------------------------------------------------------

    def create_text_chunks(self, elements: list[ProcessedElement], file: FileMetadata) -> list[TextChunk]:
        strategy = self._config.chunking_strategy
        if strategy == ChunkingStrategy.BY_TITLE:
            return chunk_by_title(elements, file)
        if strategy == ChunkingStrategy.BY_PAGE:
            return chunk_by_page(elements, file)
        if strategy == ChunkingStrategy.BY_SIMILARITY:
            logger.info("Similarity-based chunking not yet implemented, falling back to by_title")
            return chunk_by_title(elements, file)
        return chunk_basic(elements, file)

    # ------------------------------------------------------------------
    # Output files
    # ------------------------------------------------------------------

    def _output_path(self, file: FileMetadata) -> Path:
        return self._storage_dir / file.id / f"{_stem(file)}.md"

    def _find_processed(self, file: FileMetadata) -> FileMetadata | None:
        path = self._output_path(file)
        if not path.is_file():
            return None
        return _file_metadata_for(file, path)

    def _write_output(self, file: FileMetadata, content: str) -> Path:
        path = self._output_path(file)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    async def _report_progress(self, source_id: str, percent: int) -> None:
        if self._progress_cb is not None:
            await self._progress_cb(source_id, percent)


# ---------------------------------------------------------------------------
# Chunkers
# ---------------------------------------------------------------------------

def _has_text(element: ProcessedElement) -> bool:
    return bool(element.text and element.text.strip())


def chunk_basic(elements: list[ProcessedElement], file: FileMetadata) -> list[TextChunk]:
    text_elements = [el for el in elements if _has_text(el)]
    return [TextChunk(
        text="\n\n".join(el.text for el in text_elements),
        metadata={
            "file_name":         file.name,
            "chunking_strategy": ChunkingStrategy.BASIC.value,
            "element_count":     len(text_elements),
        },
    )]


def chunk_by_title(elements: list[ProcessedElement], file: FileMetadata) -> list[TextChunk]:
    chunks: list[TextChunk] = []
    current: list[str] = []
    title = ""

    def _flush() -> None:
        if current:
            chunks.append(TextChunk(
                text="\n\n".join(current),
                metadata={
                    "file_name":         file.name,
                    "chunking_strategy": ChunkingStrategy.BY_TITLE.value,
                    "title":             title,
                    "element_count":     len(current),
                },
            ))

    for element in elements:
        if element.type in _HEADING_TYPES:
            _flush()
            title = element.text
            current = [element.text]
        elif _has_text(element):
            current.append(element.text)
    _flush()

    return chunks or chunk_basic(elements, file)


def chunk_by_page(elements: list[ProcessedElement], file: FileMetadata) -> list[TextChunk]:
    pages: dict[int, list[ProcessedElement]] = {}
    for element in elements:
        page_elements = pages.setdefault(element.page_number or 1, [])
        if _has_text(element):
            page_elements.append(element)

    chunks = [
        TextChunk(
            text="\n\n".join(el.text for el in page_elements),
            metadata={
                "file_name":         file.name,
                "chunking_strategy": ChunkingStrategy.BY_PAGE.value,
                "page_number":       page_number,
                "element_count":     len(page_elements),
            },
        )
        for page_number, page_elements in pages.items()
    ]
    return chunks or chunk_basic(elements, file)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _run_blocking(func, *args):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func, *args)


def _stem(file: FileMetadata) -> str:
    if file.ext and file.name.endswith(file.ext):
        return file.name[: -len(file.ext)]
    return Path(file.name).stem


def _file_metadata_for(source: FileMetadata, output_path: Path) -> FileMetadata:
    stat = output_path.stat()
    return FileMetadata(
        id=source.id,
        name=f"{_stem(source)}.md",
        path=str(output_path),
        ext=".md",
        size=stat.st_size,
        created_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
    )
