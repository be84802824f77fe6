"""Drives the live board through one Playwright page for the duration of a suite."""

from __future__ import annotations

from typing import Any

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from .browser import is_browser_infra_error
from .config import RegressionConfig
from .evidence import EvidenceRecorder
from .fixtures import today
from .page_errors import PageErrorCollector
from .storage import MovementStore

logger = structlog.get_logger(__name__)

LIVE_BODY = "#liveBody"
FORMATION_BADGE = ".badge-formation"

# Element row inputs in the New/Edit flight modals, keyed by movement field name.
ELEMENT_INPUT_ATTRS = {
    "callsign": "data-el-callsign",
    "reg": "data-el-reg",
    "type": "data-el-type",
    "wtc": "data-el-wtc",
    "depAd": "data-el-dep-ad",
    "arrAd": "data-el-arr-ad",
}

SET_COUNT_JS = """([id, value]) => {
  const inp = document.getElementById(id);
  if (!inp) return false;
  inp.value = value;
  inp.dispatchEvent(new Event('input', { bubbles: true }));
  return true;
}"""


class AppSession:
    """One page on the live board plus the storage, error and evidence helpers bound to it."""

    def __init__(
        self,
        page: Page,
        config: RegressionConfig,
        evidence: EvidenceRecorder,
        errors: PageErrorCollector,
    ):
        self.page = page
        self.config = config
        self.evidence = evidence
        self.errors = errors
        self.store = MovementStore(page, config)

    async def open(self) -> None:
        logger.info("Opening live board", url=self.config.app_url)
        await self.page.goto(
            self.config.app_url,
            wait_until="domcontentloaded",
            timeout=self.config.navigation_timeout_ms,
        )
        await self.wait_for_app()

    async def wait_for_app(self) -> None:
        await self.page.wait_for_selector(LIVE_BODY, timeout=self.config.app_ready_timeout_ms)
        await self.page.wait_for_timeout(self.config.app_ready_delay_ms)

    async def reload(self) -> None:
        await self.page.reload(wait_until="domcontentloaded")
        await self.wait_for_app()

    async def seed(self, movements: list[dict[str, Any]]) -> None:
        await self.store.seed(movements)
        await self.reload()

    async def clear(self) -> None:
        await self.store.clear()
        await self.reload()

    async def settle(self, kind: str = "short") -> None:
        delays = {
            "short": self.config.settle_short_ms,
            "panel": self.config.settle_panel_ms,
            "save": self.config.settle_save_ms,
        }
        await self.page.wait_for_timeout(delays[kind])

    async def screenshot(self, label: str) -> str:
        return await self.evidence.screenshot(self.page, label)

    # Live board

    async def badge_count(self) -> int:
        return await self.page.locator(FORMATION_BADGE).count()

    async def badge_text(self) -> str:
        """Text of the first formation badge, ``""`` when no badge is rendered."""
        return await text_or_empty(self.page.locator(FORMATION_BADGE))

    async def expand_first_strip(self) -> None:
        await self.page.locator(".js-toggle-details").first.click()
        await self.settle("panel")

    async def open_strip_menu_item(self, item_selector: str) -> bool:
        """Open the first strip's edit dropdown and click an item; False if either is missing."""
        timeout = self.config.optional_control_timeout_ms
        try:
            await self.page.locator(".js-edit-dropdown").first.click(timeout=timeout)
            await self.settle("short")
            await self.page.locator(item_selector).first.click(timeout=timeout)
        except PlaywrightError as exc:
            if is_browser_infra_error(exc):
                raise
            logger.info("Strip menu item not reached", item=item_selector, error=str(exc).splitlines()[0])
            return False
        return True

    async def save_formation_element(
        self,
        index: int,
        status: str | None = None,
        dep_actual: str | None = None,
        arr_actual: str | None = None,
    ) -> None:
        """Edit one row of the expanded formation table and press its Save button."""
        if status is not None:
            await self.page.locator(".fmn-el-select").nth(index).select_option(status)
        if dep_actual is not None:
            await self.page.locator(".fmn-el-dep").nth(index).fill(dep_actual)
        if arr_actual is not None:
            await self.page.locator(".fmn-el-arr").nth(index).fill(arr_actual)
        # The row re-renders on blur; a dispatched click saves without moving focus.
        await self.page.locator(".fmn-el-save").nth(index).dispatch_event("click")

    # Modals

    async def remove_formation_in_edit_modal(self) -> bool:
        """Drop the formation from the open Edit modal and save; False if no control allowed it."""
        page = self.page
        timeout = self.config.optional_control_timeout_ms
        try:
            if not await page.locator("#editFormationSection").is_visible():
                await page.locator('button.modal-expander[data-target="editFormationSection"]').click(timeout=timeout)
                await self.settle("short")
            await page.locator(".js-remove-formation").click(timeout=timeout)
            await self.settle("short")
        except PlaywrightError as exc:
            if is_browser_infra_error(exc):
                raise
            # No remove control: a count below two also drops the formation.
            await self.set_formation_count("editFormationCount", 1)
        try:
            await page.locator(".js-save-edit").click(timeout=timeout)
        except PlaywrightError as exc:
            if is_browser_infra_error(exc):
                raise
            logger.info("Edit modal save not reached", error=str(exc).splitlines()[0])
            return False
        await self.settle("save")
        return True

    async def save_duplicate(self) -> bool:
        try:
            await self.page.locator(".js-save-dup").click(timeout=self.config.optional_control_timeout_ms)
        except PlaywrightError as exc:
            if is_browser_infra_error(exc):
                raise
            logger.info("Duplicate save not reached", error=str(exc).splitlines()[0])
            return False
        await self.settle("save")
        return True

    async def open_new_departure(
        self,
        callsign: str,
        reg: str,
        dep_planned: str,
        arr_planned: str,
        egow_code: str,
        aircraft_type: str | None = None,
    ) -> None:
        await self.page.click("#btnNewDep")
        await self.page.wait_for_selector("#newCallsignCode", timeout=self.config.modal_timeout_ms)
        await self.page.fill("#newCallsignCode", callsign)
        await self.page.fill("#newReg", reg)
        if aircraft_type is not None:
            await self.page.fill("#newType", aircraft_type)
        await self.page.fill("#newDepPlanned", dep_planned)
        await self.page.fill("#newArrPlanned", arr_planned)
        await self.page.fill("#newEgowCode", egow_code)
        await self.page.fill("#newDOF", today())

    async def open_new_local(self, callsign: str, start: str, end: str) -> None:
        await self.page.click("#btnNewLoc")
        await self.page.wait_for_selector("#newLocCallsignCode", timeout=self.config.modal_timeout_ms)
        await self.page.fill("#newLocCallsignCode", callsign)
        await self.page.fill("#newLocStart", start)
        await self.page.fill("#newLocEnd", end)

    async def save_new_local(self, complete: bool = False) -> None:
        """Press Save (or Save & Complete) in the New Local Flight modal."""
        await self.page.click(".js-save-complete-loc" if complete else ".js-save-loc")
        await self.settle("save")

    async def expand_formation_section(self, section_id: str, count_input_id: str) -> None:
        await self.page.click(f'button.modal-expander[data-target="{section_id}"]')
        await self.page.wait_for_selector(
            f"#{count_input_id}", state="visible", timeout=self.config.modal_timeout_ms
        )

    async def set_formation_count(self, input_id: str, count: int) -> bool:
        """Set the count input and fire ``input`` so the modal rebuilds its element rows."""
        found = await self.page.evaluate(SET_COUNT_JS, [input_id, str(count)])
        await self.settle("short")
        return bool(found)

    async def fill_element(self, index: int, **fields: str) -> None:
        for name, value in fields.items():
            await self.page.fill(f'[{ELEMENT_INPUT_ATTRS[name]}="{index}"]', value)

    async def save_new_flight(self) -> None:
        await self.page.click(".js-save-flight")
        await self.settle("save")

    async def close_modal(self) -> None:
        try:
            await self.page.locator(".js-close-modal").first.click(
                timeout=self.config.optional_control_timeout_ms
            )
        except PlaywrightError as exc:
            if is_browser_infra_error(exc):
                raise
        await self.settle("short")


async def text_or_empty(locator: Locator) -> str:
    if await locator.count() == 0:
        return ""
    return (await locator.first.text_content()) or ""
