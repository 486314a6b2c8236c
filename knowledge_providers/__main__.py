"""
Command-line entry point.

  python -m knowledge_providers health
  python -m knowledge_providers process ./report.pdf
  python -m knowledge_providers embed "first text" "second text"

Configuration comes from the environment / .env (see core/config.py).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import uuid
from pathlib import Path

from knowledge_providers.core.config import settings
from knowledge_providers.core.errors import ProviderRequestError
from knowledge_providers.core.logging import configure_logging
from knowledge_providers.embeddings import EmbeddingsFactory
from knowledge_providers.preprocess import (
    FileMetadata,
    PreprocessError,
    PreprocessProviderConfig,
    UnstructuredApiClient,
    UnstructuredConfig,
    UnstructuredPreprocessProvider,
)

logger = logging.getLogger("knowledge_providers.cli")


async def _health() -> int:
    async with UnstructuredApiClient(UnstructuredConfig.from_settings(settings)) as client:
        status = await client.get_health_status()
        reachable = await client.test_connection()
    print(json.dumps({"healthy": status.healthy, "message": status.message, "reachable": reachable}))
    return 0 if status.healthy else 1


async def _process(path: Path) -> int:
    provider_config = PreprocessProviderConfig(
        api_host=settings.unstructured_api_endpoint,
        api_key=settings.unstructured_api_key,
        options={
            "deployment_type":   settings.unstructured_deployment_type,
            "processing_mode":   settings.unstructured_processing_mode,
            "chunking_strategy": settings.unstructured_chunking_strategy,
            "output_format":     settings.unstructured_output_format,
            "max_retries":       settings.unstructured_max_retries,
            "timeout_ms":        settings.unstructured_timeout_ms,
        },
    )
    file = FileMetadata(
        id=str(uuid.uuid5(uuid.NAMESPACE_URL, path.resolve().as_uri())),
        name=path.name,
        path=str(path),
        ext=path.suffix,
        size=path.stat().st_size,
    )

    async def _progress(source_id: str, percent: int) -> None:
        logger.info("Progress | source=%s percent=%d", source_id, percent)

    provider = UnstructuredPreprocessProvider(provider_config, progress_cb=_progress)
    try:
        processed, _ = await provider.parse_file(file.id, file)
    except PreprocessError as exc:
        logger.error("%s", exc)
        return 1
    print(processed.path)
    return 0


async def _embed(texts: list[str]) -> int:
    embeddings = EmbeddingsFactory.from_settings(settings)
    try:
        vectors = await embeddings.embed_documents(texts)
    except ProviderRequestError as exc:
        logger.error("%s", exc)
        return 1
    finally:
        await embeddings.aclose()
    for text, vector in zip(texts, vectors):
        print(json.dumps({"text": text, "dimensions": len(vector), "head": vector[:5]}))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="knowledge_providers", description="Knowledge-base provider tools")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("health", help="Check the Unstructured.io endpoint")

    process = sub.add_parser("process", help="Partition and chunk a document")
    process.add_argument("file", type=Path)

    embed = sub.add_parser("embed", help="Embed one or more texts with the configured provider")
    embed.add_argument("texts", nargs="+")

    args = parser.parse_args(argv)
    configure_logging(settings)

    if args.command == "health":
        return asyncio.run(_health())
    if args.command == "process":
        return asyncio.run(_process(args.file))
    return asyncio.run(_embed(args.texts))


if __name__ == "__main__":
    sys.exit(main())
