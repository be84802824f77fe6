"""Pass conditions of storage-driven formation scenarios, against a scripted app."""

from __future__ import annotations

import copy
from typing import Any, Callable

import pytest

from formation_regression.fixtures import ACTIVE, COMPLETED, PLANNED
from formation_regression.page_errors import PageErrorCollector
from formation_regression.scenarios import formation_v1
from formation_regression.storage import MovementStore

WTC_ORDER = {"L": 1, "M": 2, "H": 3}
ELEMENT_FIELDS = {"status": "status", "dep_actual": "depActual", "arr_actual": "arrActual"}


def _heaviest(wtcs: list[str]) -> str:
    return max(wtcs, key=lambda w: WTC_ORDER.get(w, 0), default="")


def save_and_recompute(movement: dict[str, Any], index: int, changes: dict[str, str]) -> None:
    formation = movement["formation"]
    formation["elements"][index].update({ELEMENT_FIELDS[k]: v for k, v in changes.items()})
    elements = formation["elements"]
    formation["wtcCurrent"] = _heaviest([el["wtc"] for el in elements if el["status"] == ACTIVE])
    formation["wtcMax"] = _heaviest([el["wtc"] for el in elements])


def drop_formation(movements: list[dict[str, Any]]) -> list[dict[str, Any]]:
    for mv in movements:
        mv["formation"] = None
    return movements


def reset_duplicate(source: dict[str, Any]) -> dict[str, Any]:
    dup = copy.deepcopy(source)
    dup["id"] = source["id"] + 1
    for el in dup["formation"]["elements"]:
        el.update(status=PLANNED, depActual="", arrActual="")
    return dup


class _ScriptedApp:
    """Stands in for AppSession; storage changes play what the live board would do."""

    def __init__(
        self,
        page,
        config,
        normalize: bool = True,
        badge: str = "",
        on_save: Callable[[dict, int, dict], None] = save_and_recompute,
        on_remove: Callable[[list], list] = drop_formation,
        duplicate: Callable[[dict], dict] = reset_duplicate,
    ) -> None:
        self.page = page
        self.config = config
        self.store = MovementStore(page, config)
        self.errors = PageErrorCollector()
        self.normalize = normalize
        self.badge = badge
        self.on_save = on_save
        self.on_remove = on_remove
        self.duplicate = duplicate
        self.reloads = 0
        self.menu_items: list[str] = []

    async def seed(self, movements) -> None:
        await self.store.seed(movements)
        await self.reload()

    async def reload(self) -> None:
        self.reloads += 1
        if not self.normalize:
            return
        movements = await self.store.movements()
        for mv in movements:
            formation = mv.get("formation")
            if isinstance(formation, dict):
                mv["formation"] = {
                    "label": formation.get("label") or "Formation",
                    "wtcCurrent": formation.get("wtcCurrent") or "",
                    "wtcMax": formation.get("wtcMax") or "",
                    "elements": formation.get("elements") or [],
                }
        await self.store.seed(movements)

    async def settle(self, kind: str = "short") -> None:
        pass

    async def screenshot(self, label: str) -> str:
        return f"{label}.png"

    async def badge_text(self) -> str:
        return self.badge

    async def badge_count(self) -> int:
        movements = await self.store.movements()
        return sum(1 for mv in movements if isinstance(mv.get("formation"), dict))

    async def expand_first_strip(self) -> None:
        pass

    async def open_strip_menu_item(self, item_selector: str) -> bool:
        self.menu_items.append(item_selector)
        return True

    async def save_formation_element(self, index: int, **changes: str) -> None:
        movements = await self.store.movements()
        self.on_save(movements[0], index, changes)
        await self.store.seed(movements)

    async def remove_formation_in_edit_modal(self) -> bool:
        await self.store.seed(self.on_remove(await self.store.movements()))
        return True

    async def save_duplicate(self) -> bool:
        movements = await self.store.movements()
        movements.append(self.duplicate(movements[0]))
        await self.store.seed(movements)
        return True


@pytest.mark.asyncio
async def test_f10_passes_when_app_normalizes(fake_page, config) -> None:
    app = _ScriptedApp(fake_page, config)

    check = await formation_v1.malformed_formation_is_normalized(app)

    assert check.passed is True
    assert check.note == 'label="Formation" elemLen=0'
    assert check.refs == ["F10_normalized.png"]
    assert app.reloads == 1


@pytest.mark.asyncio
async def test_f10_fails_when_malformed_formation_survives(fake_page, config) -> None:
    app = _ScriptedApp(fake_page, config, normalize=False)

    check = await formation_v1.malformed_formation_is_normalized(app)

    assert check.passed is False
    assert check.note == 'label="None" elemLen=None'


@pytest.mark.asyncio
async def test_f3_seeds_cnnct_and_reads_badge(fake_page, config) -> None:
    app = _ScriptedApp(fake_page, config, badge="F×3")

    check = await formation_v1.seeded_formation_renders_badge(app)

    assert check.passed is True
    movements = await app.store.movements()
    assert movements[0]["callsignCode"] == "CNNCT"
    assert len(movements[0]["formation"]["elements"]) == 3


@pytest.mark.asyncio
async def test_f3_fails_on_wrong_count(fake_page, config) -> None:
    app = _ScriptedApp(fake_page, config, badge="F×2")

    check = await formation_v1.seeded_formation_renders_badge(app)

    assert check.passed is False
    assert check.note == 'badge="F×2"'


@pytest.mark.asyncio
async def test_f5_inline_save_touches_only_that_element(fake_page, config) -> None:
    app = _ScriptedApp(fake_page, config)

    check = await formation_v1.element_inline_save_persists(app)

    assert check.passed is True
    assert check.note == "status=ACTIVE dep=13:20 othersUnchanged=True"


@pytest.mark.asyncio
async def test_f5_fails_when_another_element_changes(fake_page, config) -> None:
    def save_leaking_into_lead(movement, index, changes):
        save_and_recompute(movement, index, changes)
        movement["formation"]["elements"][0]["status"] = COMPLETED

    app = _ScriptedApp(fake_page, config, on_save=save_leaking_into_lead)

    check = await formation_v1.element_inline_save_persists(app)

    assert check.passed is False
    assert "othersUnchanged=False" in check.note


@pytest.mark.asyncio
async def test_f6_wtc_rollup_after_lead_completes(fake_page, config) -> None:
    app = _ScriptedApp(fake_page, config)

    check = await formation_v1.wtc_recomputes_after_completion(app)

    assert check.passed is True
    assert check.note == "wtcCurrent=L wtcMax=M"


@pytest.mark.asyncio
async def test_f6_fails_without_recompute(fake_page, config) -> None:
    def save_only(movement, index, changes):
        movement["formation"]["elements"][index].update({ELEMENT_FIELDS[k]: v for k, v in changes.items()})

    app = _ScriptedApp(fake_page, config, on_save=save_only)

    check = await formation_v1.wtc_recomputes_after_completion(app)

    assert check.passed is False
    assert check.note == "wtcCurrent=M wtcMax=M"


@pytest.mark.asyncio
async def test_f8_formation_nulled_on_surviving_movement(fake_page, config) -> None:
    app = _ScriptedApp(fake_page, config)

    check = await formation_v1.remove_formation_via_edit_modal(app)

    assert check.passed is True
    assert check.note == "removed=True formationNull=True badge=0"
    assert app.menu_items == [".js-edit-details"]


@pytest.mark.asyncio
async def test_f8_fails_when_movement_is_deleted(fake_page, config) -> None:
    app = _ScriptedApp(fake_page, config, on_remove=lambda movements: [])

    check = await formation_v1.remove_formation_via_edit_modal(app)

    assert check.passed is False
    assert "formationNull=False" in check.note


@pytest.mark.asyncio
async def test_f9_duplicate_resets_every_element(fake_page, config) -> None:
    app = _ScriptedApp(fake_page, config)

    check = await formation_v1.duplicate_resets_formation_elements(app)

    assert check.passed is True
    assert check.note == "dupId=2 elStatuses=['PLANNED', 'PLANNED', 'PLANNED'] sameShape=True"


def _still_active(source):
    dup = reset_duplicate(source)
    dup["formation"]["elements"][1].update(status=ACTIVE, depActual="13:15")
    return dup


def _changed_reg(source):
    dup = reset_duplicate(source)
    dup["formation"]["elements"][2]["reg"] = "ZZ499"
    return dup


def _two_elements(source):
    dup = reset_duplicate(source)
    del dup["formation"]["elements"][2]
    return dup


@pytest.mark.asyncio
@pytest.mark.parametrize("duplicate", [_still_active, _changed_reg, _two_elements])
async def test_f9_fails_on_imperfect_duplicate(fake_page, config, duplicate) -> None:
    app = _ScriptedApp(fake_page, config, duplicate=duplicate)

    check = await formation_v1.duplicate_resets_formation_elements(app)

    assert check.passed is False
