from __future__ import annotations

from typing import Any

import pytest

from formation_regression.config import RegressionConfig
from formation_regression.storage import GET_ITEM_JS, REMOVE_ITEM_JS, SET_ITEM_JS


class FakeStoragePage:
    """Just enough of a Playwright page to back MovementStore with a dict."""

    def __init__(self) -> None:
        self.local_storage: dict[str, str] = {}

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        if script == GET_ITEM_JS:
            return self.local_storage.get(arg)
        if script == SET_ITEM_JS:
            key, value = arg
            self.local_storage[key] = value
            return None
        if script == REMOVE_ITEM_JS:
            self.local_storage.pop(arg, None)
            return None
        raise AssertionError(f"unexpected script: {script}")


@pytest.fixture()
def fake_page() -> FakeStoragePage:
    return FakeStoragePage()


@pytest.fixture()
def config(tmp_path) -> RegressionConfig:
    return RegressionConfig(evidence_directory=str(tmp_path / "evidence"), storage_wait_timeout_ms=300)
