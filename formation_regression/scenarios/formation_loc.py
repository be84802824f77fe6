"""Formation parity on LOC strips created from the New Local Flight modal."""

from __future__ import annotations

import json

from ..fixtures import COMPLETED
from ..session import AppSession
from ..storage import Movements, find_movement, formation_elements
from .base import Check, Suite

SUITE = Suite(
    name="formation-loc",
    title="Formations v1.1 LOC Parity",
    screenshot_prefix="S6",
    results_file="formation_loc_results.json",
)

LOC_START = "10:00"
LOC_END = "11:00"


def _element_count(movements: Movements, callsign_code: str) -> int | None:
    movement = find_movement(movements, callsign_code)
    if movement is None or not isinstance(movement.get("formation"), dict):
        return None
    return len(formation_elements(movement))


async def _new_local_with_formation(session: AppSession, callsign: str, count: int) -> None:
    await session.open_new_local(callsign, LOC_START, LOC_END)
    await session.expand_formation_section("newLocFormationSection", "newLocFormationCount")
    await session.set_formation_count("newLocFormationCount", count)


async def _rejected(session: AppSession, callsign: str, label: str) -> Check:
    await session.save_new_local()
    shot = await session.screenshot(label)
    movement = await session.store.find(callsign)
    await session.close_modal()

    state = "absent (correct)" if movement is None else "present (wrong)"
    return Check(movement is None, f"movement={state}", [shot])


@SUITE.scenario("H1", "LOC strip with formation → badge F×2")
async def local_formation_renders_badge(session: AppSession) -> Check:
    await session.clear()
    await _new_local_with_formation(session, "ALPHA", 2)
    await session.save_new_local()

    movements = await session.store.wait_for(lambda mvs: _element_count(mvs, "ALPHA") == 2)
    shot = await session.screenshot("H1_loc_badge")
    badges = await session.badge_count()

    elements = _element_count(movements, "ALPHA")
    return Check(badges > 0 and elements == 2, f"badge={badges} elements={elements}", [shot])


@SUITE.scenario("H2", "depAd/arrAd per element persist on LOC strip")
async def local_element_aerodromes_persist(session: AppSession) -> Check:
    await session.clear()
    await _new_local_with_formation(session, "BRAVO", 2)
    await session.fill_element(0, depAd="EGCC")
    await session.fill_element(1, arrAd="EGLL")
    await session.save_new_local()

    movements = await session.store.wait_for(lambda mvs: _element_count(mvs, "BRAVO") == 2)
    shot = await session.screenshot("H2_loc_dep_arr_ad")

    elements = formation_elements(find_movement(movements, "BRAVO"))
    dep_ad = elements[0].get("depAd") if elements else None
    arr_ad = elements[1].get("arrAd") if len(elements) > 1 else None
    passed = dep_ad == "EGCC" and arr_ad == "EGLL"
    return Check(passed, f"el0.depAd={dep_ad} el1.arrAd={arr_ad}", [shot])


@SUITE.scenario("H3", "Invalid WTC blocks LOC modal save")
async def local_invalid_wtc_blocks_save(session: AppSession) -> Check:
    await session.clear()
    await _new_local_with_formation(session, "CHARLIE", 2)
    await session.fill_element(0, wtc="X")
    return await _rejected(session, "CHARLIE", "H3_loc_invalid_wtc")


@SUITE.scenario("H4", "Invalid ICAO code blocks LOC modal save")
async def local_invalid_icao_blocks_save(session: AppSession) -> Check:
    await session.clear()
    await _new_local_with_formation(session, "DELTA", 2)
    await session.fill_element(0, depAd="EGO")
    return await _rejected(session, "DELTA", "H4_loc_invalid_icao")


@SUITE.scenario("H5", "LOC strip without formation section opened → formation=null, no badge")
async def local_unexpanded_section_has_no_formation(session: AppSession) -> Check:
    await session.clear()
    # The count input defaults to 2 but its rows are never rendered.
    await session.open_new_local("ECHO", LOC_START, LOC_END)
    await session.save_new_local()

    movements = await session.store.wait_for(lambda mvs: find_movement(mvs, "ECHO") is not None)
    shot = await session.screenshot("H5_loc_no_formation")
    badges = await session.badge_count()

    movement = find_movement(movements, "ECHO")
    # An absent key is not the same as an explicit null.
    formation_null = movement is not None and "formation" in movement and movement["formation"] is None
    formation = json.dumps(movement.get("formation")) if movement and "formation" in movement else "undefined"
    return Check(formation_null and badges == 0, f"formation={formation} badge={badges}", [shot])


@SUITE.scenario("H6", "Save-and-Complete LOC: all elements cascaded to COMPLETED")
async def local_save_complete_cascades(session: AppSession) -> Check:
    await session.clear()
    await _new_local_with_formation(session, "FOXTROT", 3)
    await session.save_new_local(complete=True)

    def cascaded(mvs: Movements) -> bool:
        movement = find_movement(mvs, "FOXTROT")
        elements = formation_elements(movement)
        return (
            bool(elements)
            and all(el.get("status") == COMPLETED for el in elements)
            and movement.get("status") == COMPLETED
        )

    movements = await session.store.wait_for(cascaded)
    shot = await session.screenshot("H6_loc_save_complete_cascade")

    movement = find_movement(movements, "FOXTROT")
    statuses = [el.get("status") for el in formation_elements(movement)]
    master = (movement or {}).get("status")
    return Check(cascaded(movements), f"masterStatus={master} elementStatuses={statuses}", [shot])
