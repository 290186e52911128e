from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """User-visible toast surface."""

    def error(self, text: str) -> None: ...

    def info(self, text: str) -> None: ...


class LoggingNotifier:
    """Fallback notifier for headless clients."""

    def error(self, text: str) -> None:
        logger.error("toast: %s", text)

    def info(self, text: str) -> None:
        logger.info("toast: %s", text)
