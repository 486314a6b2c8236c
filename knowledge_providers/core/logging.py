"""
Process-level logging setup.

Library modules only call ``logging.getLogger(__name__)``; entry points call
``configure_logging()`` once before doing any work.
"""

from __future__ import annotations

import logging

from knowledge_providers.core.config import Settings, settings as default_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Third-party loggers that are noisy at DEBUG
_QUIET_LOGGERS = ("httpx", "httpcore", "openai")


def configure_logging(settings: Settings | None = None) -> None:
    cfg = settings or default_settings
    logging.basicConfig(
        level=logging.DEBUG if cfg.debug else logging.INFO,
        format=LOG_FORMAT,
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
