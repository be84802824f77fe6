"""LOC strip formation scenarios against a scripted New Local Flight modal."""

from __future__ import annotations

import re

import pytest

from formation_regression.fixtures import COMPLETED, PLANNED
from formation_regression.scenarios import FORMATION_LOC, formation_loc
from formation_regression.storage import MovementStore

ICAO = re.compile(r"^[A-Z]{4}$")


class _LocModalApp:
    """Plays the New Local Flight modal: validates rows and writes the strip to storage."""

    def __init__(self, page, config, validate=True, cascade=True, explicit_null=True) -> None:
        self.store = MovementStore(page, config)
        self.validate = validate
        self.cascade = cascade
        self.explicit_null = explicit_null
        self.modal: dict | None = None
        self.next_id = 1

    async def clear(self) -> None:
        await self.store.clear()

    async def screenshot(self, label: str) -> str:
        return f"{label}.png"

    async def badge_count(self) -> int:
        movements = await self.store.movements()
        return sum(1 for mv in movements if isinstance(mv.get("formation"), dict))

    async def open_new_local(self, callsign: str, start: str, end: str) -> None:
        self.modal = {"callsign": callsign, "start": start, "end": end, "count": 0, "rows": {}}

    async def expand_formation_section(self, section_id: str, count_input_id: str) -> None:
        assert section_id == "newLocFormationSection"
        self.modal["count"] = 2

    async def set_formation_count(self, input_id: str, count: int) -> bool:
        assert input_id == "newLocFormationCount"
        self.modal["count"] = count
        return True

    async def fill_element(self, index: int, **fields: str) -> None:
        self.modal["rows"].setdefault(index, {}).update(fields)

    async def close_modal(self) -> None:
        self.modal = None

    def _valid(self, row: dict) -> bool:
        if row.get("wtc", "L") not in ("L", "M", "H"):
            return False
        return all(ICAO.match(row[ad]) for ad in ("depAd", "arrAd") if row.get(ad))

    async def save_new_local(self, complete: bool = False) -> None:
        modal = self.modal
        rows = [modal["rows"].get(i, {}) for i in range(modal["count"])]
        if self.validate and not all(self._valid(row) for row in rows):
            return

        status = COMPLETED if complete else PLANNED
        element_status = status if self.cascade else PLANNED
        movement = {"id": self.next_id, "callsignCode": modal["callsign"], "status": status}
        if len(rows) >= 2:
            movement["formation"] = {
                "label": f"{modal['callsign']} flight of {len(rows)}",
                "elements": [
                    {
                        "callsign": row.get("callsign", f"{modal['callsign']} {i + 1}"),
                        "wtc": row.get("wtc", "L"),
                        "depAd": row.get("depAd", ""),
                        "arrAd": row.get("arrAd", ""),
                        "status": element_status,
                    }
                    for i, row in enumerate(rows)
                ],
            }
        elif self.explicit_null:
            movement["formation"] = None

        self.next_id += 1
        await self.store.seed([*await self.store.movements(), movement])
        self.modal = None


@pytest.mark.asyncio
async def test_every_loc_scenario_passes_against_conforming_modal(fake_page, config) -> None:
    app = _LocModalApp(fake_page, config)

    checks = {scenario.id: await scenario.func(app) for scenario in FORMATION_LOC.scenarios}

    assert {sid: check.passed for sid, check in checks.items()} == {f"H{i}": True for i in range(1, 7)}
    assert checks["H1"].note == "badge=1 elements=2"
    assert checks["H2"].note == "el0.depAd=EGCC el1.arrAd=EGLL"
    assert checks["H3"].note == "movement=absent (correct)"
    assert checks["H5"].note == "formation=null badge=0"
    assert checks["H6"].refs == ["H6_loc_save_complete_cascade.png"]


@pytest.mark.asyncio
async def test_unvalidated_rows_fail_h3_and_h4(fake_page, config) -> None:
    app = _LocModalApp(fake_page, config, validate=False)

    wtc = await formation_loc.local_invalid_wtc_blocks_save(app)
    icao = await formation_loc.local_invalid_icao_blocks_save(app)

    assert wtc.passed is False
    assert icao.passed is False
    assert icao.note == "movement=present (wrong)"


@pytest.mark.asyncio
async def test_missing_formation_key_is_not_null(fake_page, config) -> None:
    app = _LocModalApp(fake_page, config, explicit_null=False)

    check = await formation_loc.local_unexpanded_section_has_no_formation(app)

    assert check.passed is False
    assert check.note == "formation=undefined badge=0"


@pytest.mark.asyncio
async def test_save_complete_without_element_cascade_fails(fake_page, config) -> None:
    app = _LocModalApp(fake_page, config, cascade=False)

    check = await formation_loc.local_save_complete_cascades(app)

    assert check.passed is False
    assert check.note == "masterStatus=COMPLETED elementStatuses=['PLANNED', 'PLANNED', 'PLANNED']"
