"""
Root conftest.py  -  shared fixtures for all unit tests

Fixture overview:
  no_sleep                   : patches the retry loop's sleep, records requested delays
  sample_pdf_bytes           : minimal valid PDF payload
  make_unstructured_client   : UnstructuredApiClient over httpx.MockTransport
  make_http_client           : bare httpx.AsyncClient over httpx.MockTransport
  storage_dir                : temporary preprocess output directory

Environment strategy:
  - No test talks to a real vendor API; every HTTP call goes through
    httpx.MockTransport or a mocked SDK client.
  - Backoff sleeps are patched out, so retry tests run instantly and can
    assert the exact delays requested.

How to run:
  pytest                 # all tests
  pytest -m unit         # unit tests only
"""

from __future__ import annotations

import os
from typing import Callable
from unittest.mock import AsyncMock, patch

import httpx
import pytest

# ─────────────────────────────────────────────────────────────────────────────
# Patch settings BEFORE any package imports so modules read test config
# ─────────────────────────────────────────────────────────────────────────────

os.environ.setdefault("UNSTRUCTURED_API_ENDPOINT",    "https://api.unstructuredapp.io")
os.environ.setdefault("UNSTRUCTURED_API_KEY",         "test-unstructured-key")
os.environ.setdefault("UNSTRUCTURED_DEPLOYMENT_TYPE", "hosted")
os.environ.setdefault("EMBEDDING_PROVIDER",           "openai")
os.environ.setdefault("EMBEDDING_API_KEY",            "sk-test-key")
os.environ.setdefault("OPENAI_API_KEY",               "sk-test-key")
os.environ.setdefault("APP_ENV",                      "development")
os.environ.setdefault("DEBUG",                        "true")

from knowledge_providers.core.rate_limit import RequestRateLimiter  # noqa: E402
from knowledge_providers.preprocess.client import API_KEY_HEADER, UnstructuredApiClient  # noqa: E402
from knowledge_providers.preprocess.types import UnstructuredConfig  # noqa: E402

TEST_UNSTRUCTURED_KEY = "test-unstructured-key"

Handler = Callable[[httpx.Request], httpx.Response]


# ─────────────────────────────────────────────────────────────────────────────
# Retry sleep
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def no_sleep():
    """Replace the backoff sleep with an AsyncMock; await_args hold the delays."""
    with patch("knowledge_providers.core.retry._sleep", new_callable=AsyncMock) as sleep:
        yield sleep


def requested_delays(sleep: AsyncMock) -> list[float]:
    return [c.args[0] for c in sleep.await_args_list]


# ─────────────────────────────────────────────────────────────────────────────
# Payloads
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """Minimal valid PDF (1 blank page), enough for multipart uploads."""
    return (
        b"%PDF-1.4\n1 0 obj<</Type/Catalog/Pages 2 0 R>>endobj\n"
        b"2 0 obj<</Type/Pages/Kids[3 0 R]/Count 1>>endobj\n"
        b"3 0 obj<</Type/Page/MediaBox[0 0 612 792]>>endobj\n"
        b"xref\n0 4\n0000000000 65535 f\n"
        b"trailer<</Size 4/Root 1 0 R>>\nstartxref\n9\n%%EOF"
    )


@pytest.fixture
def sample_elements_payload() -> list[dict]:
    """Partition API response for a two-page document."""
    return [
        {
            "type": "Title",
            "element_id": "e-title",
            "text": "Quarterly Report",
            "metadata": {"page_number": 1, "filename": "report.pdf"},
            "coordinates": {"points": [[10, 10], [200, 10], [200, 40], [10, 40]]},
        },
        {
            "type": "NarrativeText",
            "element_id": "e-body",
            "text": "Revenue grew 12% year over year.",
            "metadata": {"page_number": 1},
        },
        {
            "type": "ListItem",
            "text": "Headcount is flat.",
            "metadata": {"page_number": 2},
        },
    ]


# ─────────────────────────────────────────────────────────────────────────────
# HTTP clients over httpx.MockTransport
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
async def make_http_client():
    """Factory: httpx.AsyncClient whose requests are answered by ``handler``."""
    clients: list[httpx.AsyncClient] = []

    def _build(handler: Handler, **kwargs) -> httpx.AsyncClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler), **kwargs)
        clients.append(client)
        return client

    yield _build

    for client in clients:
        await client.aclose()


@pytest.fixture
def make_unstructured_client(make_http_client):
    """Factory: UnstructuredApiClient with a mocked transport and a permissive limiter."""
    def _build(handler: Handler, **config_overrides) -> UnstructuredApiClient:
        config_overrides.setdefault("api_key", TEST_UNSTRUCTURED_KEY)
        config = UnstructuredConfig(**config_overrides)
        http = make_http_client(
            handler,
            base_url=config.api_endpoint,
            headers={API_KEY_HEADER: config.api_key},
        )
        return UnstructuredApiClient(
            config,
            http_client=http,
            rate_limiter=RequestRateLimiter(max_rate=1000),
        )
    return _build


# ─────────────────────────────────────────────────────────────────────────────
# Filesystem
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def storage_dir(tmp_path):
    path = tmp_path / "preprocess"
    path.mkdir()
    return path
