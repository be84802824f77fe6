from __future__ import annotations

from pathlib import Path

import pytest
from playwright.async_api import Error as PlaywrightError

from formation_regression import browser
from formation_regression.browser import find_chromium_executable, is_browser_infra_error


class TargetClosedError(Exception):
    pass


@pytest.mark.parametrize(
    "exc",
    [
        PlaywrightError("Target page, context or browser has been closed"),
        PlaywrightError("Page crashed"),
        RuntimeError("Connection closed while reading from the driver"),
        TargetClosedError(""),
    ],
)
def test_dead_browser_is_infra(exc: BaseException) -> None:
    assert is_browser_infra_error(exc) is True


@pytest.mark.parametrize(
    "exc",
    [
        PlaywrightError("Timeout 3000ms exceeded."),
        PlaywrightError('locator.click: Error: strict mode violation: ".js-save-edit" resolved to 2 elements'),
        KeyError("formation"),
    ],
)
def test_app_failures_are_not_infra(exc: BaseException) -> None:
    assert is_browser_infra_error(exc) is False


def test_chromium_path_from_env_wins(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    exe = tmp_path / "chromium"
    exe.write_text("", encoding="utf-8")
    monkeypatch.setenv("CHROMIUM_PATH", str(exe))
    assert find_chromium_executable() == str(exe)


def test_no_chromium_falls_back_to_bundled(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHROMIUM_PATH", str(tmp_path / "missing"))
    monkeypatch.setattr(browser, "SYSTEM_CHROMIUM_PATHS", ())
    assert find_chromium_executable() is None
