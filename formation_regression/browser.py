from __future__ import annotations

import os
from pathlib import Path

import structlog
from playwright.async_api import Browser, BrowserContext, Playwright, Route

from .config import RegressionConfig

logger = structlog.get_logger(__name__)

CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-gpu",
    "--disable-extensions",
    "--no-first-run",
    "--no-default-browser-check",
    # Avoid renderer crashes when /dev/shm is tiny.
    "--disable-dev-shm-usage",
]

STUB_SCRIPT_BODY = "// stub"

SYSTEM_CHROMIUM_PATHS = (
    "/usr/bin/chromium",
    "/usr/bin/chromium-browser",
    "/usr/bin/google-chrome",
    "/usr/bin/google-chrome-stable",
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
)


def find_chromium_executable() -> str | None:
    """``$CHROMIUM_PATH``, else a system Chromium; ``None`` lets Playwright use its bundled build."""
    candidates = (os.getenv("CHROMIUM_PATH"), *SYSTEM_CHROMIUM_PATHS)
    return next((path for path in candidates if path and Path(path).exists()), None)


# Lower-cased message fragments Playwright uses when the browser side is gone.
BROWSER_GONE_MARKERS = (
    "target page, context or browser has been closed",
    "browser has been closed",
    "page crashed",
    "target crashed",
    "connection closed while reading from the driver",
    "connection closed while writing to the driver",
    "pipe closed by peer",
)


def is_browser_infra_error(exc: BaseException) -> bool:
    """True when the browser itself went away, as opposed to the live board misbehaving."""
    if type(exc).__name__ == "TargetClosedError":
        return True
    message = str(exc).lower()
    return any(marker in message for marker in BROWSER_GONE_MARKERS)


async def launch_browser(p: Playwright, config: RegressionConfig) -> Browser:
    chromium_path = find_chromium_executable()
    logger.info("Launching chromium", executable=chromium_path or "bundled", headless=config.browser_headless)
    return await p.chromium.launch(
        headless=config.browser_headless,
        executable_path=chromium_path,
        args=list(CHROMIUM_ARGS),
    )


async def _fulfill_stub(route: Route) -> None:
    await route.fulfill(status=200, content_type="application/javascript", body=STUB_SCRIPT_BODY)


async def stub_external_scripts(context: BrowserContext, patterns: list[str]) -> None:
    """Answer CDN scripts locally so runs work without network access."""
    for pattern in patterns:
        await context.route(pattern, _fulfill_stub)
