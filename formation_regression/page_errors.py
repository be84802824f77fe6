"""Collect unexpected console and page errors raised by the application under test."""

from __future__ import annotations

from typing import Iterable

import structlog
from playwright.async_api import ConsoleMessage, Error, Page

logger = structlog.get_logger(__name__)


class PageErrorCollector:
    """Counts non-ignorable errors; reset at the start of every scenario."""

    def __init__(self, ignorable: Iterable[str] = ()):
        self.ignorable = [s for s in ignorable if s]
        self.errors: list[str] = []

    def attach(self, page: Page) -> None:
        page.on("console", self._on_console)
        page.on("pageerror", self._on_page_error)

    def is_ignorable(self, message: str) -> bool:
        return any(pattern in message for pattern in self.ignorable)

    def add(self, message: str) -> None:
        if self.is_ignorable(message):
            return
        self.errors.append(message)
        logger.debug("Page error captured", error=message[:500])

    def reset(self) -> None:
        self.errors.clear()

    @property
    def count(self) -> int:
        return len(self.errors)

    def _on_console(self, msg: ConsoleMessage) -> None:
        if msg.type == "error":
            self.add(msg.text)

    def _on_page_error(self, error: Error) -> None:
        self.add(error.message)
