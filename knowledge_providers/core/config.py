"""
Application configuration via environment variables (12-factor).
Pydantic BaseSettings validates and coerces all values at startup.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # ------------------------------------------------------------------
    # Unstructured.io document partitioning
    # ------------------------------------------------------------------
    unstructured_api_endpoint:      str = "https://api.unstructuredapp.io"
    unstructured_api_key:           str = ""        # required for hosted deployments
    unstructured_deployment_type:   str = "hosted"  # "hosted" | "self-hosted"
    unstructured_processing_mode:   str = "fast"    # "fast" | "hi_res" | "auto"
    unstructured_chunking_strategy: str = "by_title"
    unstructured_output_format:     str = "text"
    unstructured_max_retries:       int = 3
    unstructured_timeout_ms:        int = 30_000

    # Requests per 60 s window; concurrency is always 1
    unstructured_hosted_rate_per_minute:      int = 10
    unstructured_self_hosted_rate_per_minute: int = 100

    # ------------------------------------------------------------------
    # Preprocessed output
    # ------------------------------------------------------------------
    preprocess_storage_dir:   str = "./data/preprocess"
    preprocess_default_quota: int = 1000

    # ------------------------------------------------------------------
    # Embeddings
    # ------------------------------------------------------------------
    embedding_provider:    str = "openai"   # openai | azure-openai | mistral | voyageai | ollama
    embedding_model:       str = "text-embedding-3-small"
    embedding_api_key:     str = ""
    embedding_base_url:    str = "https://api.openai.com/v1"
    embedding_dimensions:  int | None = None
    embedding_timeout_ms:  int = 30_000
    embedding_max_retries: int = 2           # 3 attempts in total

    # ------------------------------------------------------------------
    # Application
    # ------------------------------------------------------------------
    app_env: str = "development"   # development | staging | production
    debug: bool = False

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
