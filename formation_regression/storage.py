"""Read and write the live board's movements in browser localStorage."""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any, Callable

import structlog
from playwright.async_api import Page

from .config import RegressionConfig
from .fixtures import storage_envelope

logger = structlog.get_logger(__name__)

GET_ITEM_JS = "(key) => window.localStorage.getItem(key)"
SET_ITEM_JS = "([key, value]) => window.localStorage.setItem(key, value)"
REMOVE_ITEM_JS = "(key) => window.localStorage.removeItem(key)"

Movements = list[dict[str, Any]]


class MovementStore:
    """Storage I/O for one page. Callers reload the page to make the app pick changes up."""

    def __init__(self, page: Page, config: RegressionConfig):
        self.page = page
        self.config = config

    async def write_envelope(self, envelope: dict[str, Any]) -> None:
        """Store a raw envelope as-is, malformed movements included."""
        await self.page.evaluate(
            SET_ITEM_JS, [self.config.movements_storage_key, json.dumps(envelope)]
        )

    async def seed(self, movements: Movements) -> None:
        envelope = storage_envelope(movements, version=self.config.storage_version)
        await self.write_envelope(envelope)
        await self.page.evaluate(REMOVE_ITEM_JS, self.config.bookings_storage_key)
        logger.debug("Seeded movements", count=len(movements))

    async def clear(self) -> None:
        await self.page.evaluate(REMOVE_ITEM_JS, self.config.movements_storage_key)
        await self.page.evaluate(REMOVE_ITEM_JS, self.config.bookings_storage_key)

    async def movements(self) -> Movements:
        """Return stored movements; missing or unparseable storage reads as empty."""
        raw = await self.page.evaluate(GET_ITEM_JS, self.config.movements_storage_key)
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Stored movements are not valid JSON", key=self.config.movements_storage_key)
            return []
        if not isinstance(data, dict):
            return []
        movements = data.get("movements") or []
        return movements if isinstance(movements, list) else []

    async def find(self, callsign_code: str, exclude_id: Any = None) -> dict[str, Any] | None:
        return find_movement(await self.movements(), callsign_code, exclude_id=exclude_id)

    async def wait_for(
        self,
        predicate: Callable[[Movements], bool],
        timeout_ms: int | None = None,
        poll_ms: int = 100,
    ) -> Movements:
        """Poll storage until ``predicate`` holds; return the last snapshot either way."""
        if timeout_ms is None:
            timeout_ms = self.config.storage_wait_timeout_ms
        deadline = time.monotonic() + timeout_ms / 1000.0
        while True:
            snapshot = await self.movements()
            if predicate(snapshot):
                return snapshot
            if time.monotonic() >= deadline:
                logger.debug("Storage condition not met before timeout", timeout_ms=timeout_ms)
                return snapshot
            await asyncio.sleep(poll_ms / 1000.0)


def find_movement(movements: Movements, callsign_code: str, exclude_id: Any = None) -> dict[str, Any] | None:
    for mv in movements:
        if not isinstance(mv, dict):
            continue
        if exclude_id is not None and mv.get("id") == exclude_id:
            continue
        if mv.get("callsignCode") == callsign_code:
            return mv
    return None


def formation_elements(movement: dict[str, Any] | None) -> list[dict[str, Any]]:
    """Elements of a movement's formation, or ``[]`` when there is none."""
    if not movement:
        return []
    formation = movement.get("formation")
    if not isinstance(formation, dict):
        return []
    elements = formation.get("elements")
    return elements if isinstance(elements, list) else []
