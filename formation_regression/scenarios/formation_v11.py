"""Formation v1.1 regression: per-element aerodromes, validation, status cascades, count limits."""

from __future__ import annotations

from playwright.async_api import Error as PlaywrightError

from ..browser import is_browser_infra_error
from ..fixtures import ACTIVE, CANCELLED, COMPLETED, PLANNED, v11_formation, v11_strip
from ..session import AppSession, text_or_empty
from ..storage import Movements, find_movement, formation_elements
from .base import Check, Suite

SUITE = Suite(
    name="formation-v11",
    title="Formations v1.1 Regression",
    screenshot_prefix="S5",
    results_file="formation_v11_results.json",
)

WRAP_TOAST_JS = """() => {
  const orig = window.showToast;
  window.showToast = (msg, type) => {
    window.__captureToast(msg + '|' + type);
    if (orig) orig(msg, type);
  };
}"""


def _el(movements: Movements, callsign_code: str, index: int) -> dict:
    elements = formation_elements(find_movement(movements, callsign_code))
    return elements[index] if index < len(elements) else {}


def _all_status(elements: list[dict], status: str) -> bool:
    return bool(elements) and all(el.get("status") == status for el in elements)


async def _new_departure_with_formation(session: AppSession, count: int, **departure) -> None:
    await session.open_new_departure(**departure)
    await session.expand_formation_section("newFormationSection", "newFormationCount")
    await session.set_formation_count("newFormationCount", count)


@SUITE.scenario("G1", "depAd/arrAd/callsign inputs present (count=2)")
async def modal_rows_have_aerodrome_inputs(session: AppSession) -> Check:
    await session.clear()
    await _new_departure_with_formation(
        session, 2,
        callsign="TEST", reg="G-TEST", dep_planned="10:00", arr_planned="10:30", egow_code="BC",
    )

    page = session.page
    dep_ad = await page.locator("[data-el-dep-ad]").count()
    arr_ad = await page.locator("[data-el-arr-ad]").count()
    callsigns = await page.locator("[data-el-callsign]").count()
    shot = await session.screenshot("G1_modal_inputs")
    await session.close_modal()

    passed = dep_ad == 2 and arr_ad == 2 and callsigns == 2
    return Check(passed, f"depAdInputs={dep_ad} arrAdInputs={arr_ad} callsignInputs={callsigns}", [shot])


@SUITE.scenario("G2", "depAd/arrAd persist after New Flight modal save")
async def modal_aerodromes_persist(session: AppSession) -> Check:
    await session.clear()
    await _new_departure_with_formation(
        session, 2,
        callsign="CNNCT", reg="ZZ400", aircraft_type="EH10",
        dep_planned="13:00", arr_planned="14:00", egow_code="BM",
    )
    await session.fill_element(0, depAd="EGOW", arrAd="EGOS", wtc="M")
    await session.fill_element(1, arrAd="EGOM", wtc="L")
    await session.save_new_flight()

    movements = await session.store.wait_for(lambda mvs: _el(mvs, "CNNCT", 1).get("arrAd") == "EGOM")
    shot = await session.screenshot("G2_after_save")

    el0 = _el(movements, "CNNCT", 0)
    el1 = _el(movements, "CNNCT", 1)
    passed = (
        el0.get("depAd") == "EGOW" and el0.get("arrAd") == "EGOS"
        and el1.get("depAd") == "" and el1.get("arrAd") == "EGOM"
    )
    note = (
        f'el0.depAd={el0.get("depAd")} el0.arrAd={el0.get("arrAd")} '
        f'el1.depAd="{el1.get("depAd")}" el1.arrAd={el1.get("arrAd")}'
    )
    return Check(passed, note, [shot])


@SUITE.scenario("G3", "depAd persists after inline panel save")
async def inline_aerodrome_edit_persists(session: AppSession) -> Check:
    await session.seed([v11_strip()])
    await session.expand_first_strip()

    page = session.page
    # Two aerodrome inputs per row (dep, arr): index 2 is element 1's depAd.
    await page.locator(".fmn-el-ad").nth(2).fill("EGGP")
    await page.locator(".fmn-el-save").nth(1).dispatch_event("click")

    movements = await session.store.wait_for(lambda mvs: _el(mvs, "CNNCT", 1).get("depAd") == "EGGP")
    shot = await session.screenshot("G3_dep_ad_saved")

    dep_ad = _el(movements, "CNNCT", 1).get("depAd")
    return Check(dep_ad == "EGGP", f"el1.depAd={dep_ad}", [shot])


@SUITE.scenario("G4", "Empty depAd shows master fallback (EGOW)")
async def empty_aerodrome_shows_master_fallback(session: AppSession) -> Check:
    await session.seed([v11_strip()])
    await session.expand_first_strip()

    shot = await session.screenshot("G4_fallback_display")
    fallbacks = session.page.locator(".fmn-fallback")
    count = await fallbacks.count()
    text = await text_or_empty(fallbacks)
    return Check(count > 0 and "EGOW" in text, f'fallbacks={count} text="{text}"', [shot])


@SUITE.scenario("G5", "Invalid 3-char depAd rejected; element unchanged")
async def invalid_aerodrome_rejected(session: AppSession) -> Check:
    await session.seed([v11_strip()])
    await session.expand_first_strip()

    page = session.page
    toasts: list[str] = []
    await page.expose_function("__captureToast", toasts.append)
    try:
        await page.evaluate(WRAP_TOAST_JS)
    except PlaywrightError as exc:
        if is_browser_infra_error(exc):
            raise

    await page.locator(".fmn-el-ad").nth(0).fill("EGW")
    await page.locator(".fmn-el-save").nth(0).dispatch_event("click")
    await session.settle("panel")

    shot = await session.screenshot("G5_invalid_dep_ad")
    movements = await session.store.movements()
    dep_ad = _el(movements, "CNNCT", 0).get("depAd")
    return Check(dep_ad == "EGOW", f"el0.depAd={dep_ad} (should stay EGOW) toasts={toasts}", [shot])


@SUITE.scenario("G6", "Invalid WTC blocks modal save; movement not created")
async def invalid_wtc_blocks_save(session: AppSession) -> Check:
    await session.clear()
    await _new_departure_with_formation(
        session, 2,
        callsign="BADWTC", reg="ZZ999", dep_planned="09:00", arr_planned="10:00", egow_code="BC",
    )
    await session.fill_element(0, wtc="HEAVY")
    await session.fill_element(1, wtc="L")
    await session.page.click(".js-save-flight")
    await session.settle("panel")

    shot = await session.screenshot("G6_invalid_wtc")
    movement = await session.store.find("BADWTC")
    await session.close_modal()

    state = "absent (correct)" if movement is None else "PRESENT (wrong)"
    return Check(movement is None, f"movement={state}", [shot])


@SUITE.scenario("G7", "Overridden callsign persists")
async def element_callsign_override_persists(session: AppSession) -> Check:
    await session.clear()
    await _new_departure_with_formation(
        session, 2,
        callsign="FOXTROT", reg="ZZ100", aircraft_type="EH10",
        dep_planned="10:00", arr_planned="11:00", egow_code="BM",
    )
    await session.fill_element(0, callsign="FOXTROT LEAD", wtc="M")
    await session.fill_element(1, wtc="L")
    await session.save_new_flight()

    movements = await session.store.wait_for(lambda mvs: find_movement(mvs, "FOXTROT") is not None)
    shot = await session.screenshot("G7_callsign_override")

    callsign = _el(movements, "FOXTROT", 0).get("callsign")
    return Check(callsign == "FOXTROT LEAD", f'el0.callsign="{callsign}"', [shot])


@SUITE.scenario("G8", "Count=1 → formation=null")
async def single_element_means_no_formation(session: AppSession) -> Check:
    await session.clear()
    await _new_departure_with_formation(
        session, 1,
        callsign="SOLO", reg="G-SOLO", dep_planned="09:00", arr_planned="09:30", egow_code="BC",
    )
    await session.save_new_flight()

    movements = await session.store.wait_for(lambda mvs: find_movement(mvs, "SOLO") is not None)
    shot = await session.screenshot("G8_no_formation")

    movement = find_movement(movements, "SOLO")
    passed = movement is not None and movement.get("formation") is None
    formation = (movement or {}).get("formation")
    return Check(passed, f"present={movement is not None} formation={formation}", [shot])


@SUITE.scenario("G9", 'COMPLETE cascade: all elements COMPLETED, wtcCurrent=""')
async def complete_cascades_to_elements(session: AppSession) -> Check:
    await session.seed([v11_strip(status=ACTIVE, formation=v11_formation((ACTIVE, PLANNED, PLANNED)))])

    await session.page.locator(".js-complete").first.click()
    await session.settle("save")

    movements = await session.store.wait_for(
        lambda mvs: _all_status(formation_elements(find_movement(mvs, "CNNCT")), COMPLETED)
    )
    shot = await session.screenshot("G9_cascade_complete")

    movement = find_movement(movements, "CNNCT")
    elements = formation_elements(movement)
    wtc_current = ((movement or {}).get("formation") or {}).get("wtcCurrent")
    passed = _all_status(elements, COMPLETED) and wtc_current == ""
    statuses = [el.get("status") for el in elements]
    return Check(passed, f'statuses={statuses} wtcCurrent="{wtc_current}"', [shot])


@SUITE.scenario("G10", "CANCEL cascade: all elements CANCELLED")
async def cancel_cascades_to_elements(session: AppSession) -> Check:
    formation = v11_formation((ACTIVE, PLANNED, COMPLETED))
    formation["elements"][2].update(depAd="", depActual="13:15", arrActual="14:00")
    await session.seed([v11_strip(status=ACTIVE, formation=formation)])

    page = session.page
    # The cancel action asks for confirmation synchronously on click.
    page.once("dialog", lambda dialog: dialog.accept())
    await page.locator(".js-edit-dropdown").first.click()
    await session.settle("short")
    await page.locator(".js-cancel").first.click()
    await session.settle("save")

    movements = await session.store.wait_for(
        lambda mvs: _all_status(formation_elements(find_movement(mvs, "CNNCT")), CANCELLED)
    )
    shot = await session.screenshot("G10_cascade_cancel")

    elements = formation_elements(find_movement(movements, "CNNCT"))
    statuses = [el.get("status") for el in elements]
    return Check(_all_status(elements, CANCELLED), f"statuses={statuses}", [shot])


@SUITE.scenario("G11", "Produce-arrival inherits formation; elements reset to PLANNED")
async def produced_arrival_inherits_formation(session: AppSession) -> Check:
    await session.seed([v11_strip(status=ACTIVE)])

    page = session.page
    await page.locator(".js-edit-dropdown").first.click()
    await session.settle("short")
    await page.locator(".js-produce-arr").first.click()
    await session.settle("save")

    if await page.locator(".js-save-edit").count() > 0:
        await page.locator(".js-save-edit").click()
        await session.settle("save")

    def produced(mvs: Movements) -> dict | None:
        return next(
            (m for m in mvs if m.get("flightType") == "ARR" and m.get("callsignCode") == "CNNCT"),
            None,
        )

    movements = await session.store.wait_for(lambda mvs: produced(mvs) is not None)
    shot = await session.screenshot("G11_produce_arr")

    arrival = produced(movements)
    elements = formation_elements(arrival)
    has_formation = arrival is not None and arrival.get("formation") is not None
    all_reset = bool(elements) and all(
        el.get("status") == PLANNED and el.get("depActual") == "" and el.get("arrActual") == ""
        for el in elements
    )
    dep_ad_copied = bool(elements) and elements[0].get("depAd") == "EGOW"
    passed = has_formation and all_reset and dep_ad_copied
    return Check(
        passed,
        f"hasFormation={has_formation} allReset={all_reset} depAdCopied={dep_ad_copied}",
        [shot],
    )


@SUITE.scenario("G12", "Edit modal count input: min=2 max=12")
async def edit_modal_count_is_clamped(session: AppSession) -> Check:
    await session.seed([v11_strip()])

    page = session.page
    await page.locator(".js-edit-dropdown").first.click()
    await session.settle("short")
    await page.locator(".js-edit-details").first.click()
    await session.settle("save")

    shot = await session.screenshot("G12_edit_modal_attrs")
    count_input = page.locator("#editFormationCount")
    timeout = session.config.optional_control_timeout_ms
    try:
        max_attr = await count_input.get_attribute("max", timeout=timeout)
        min_attr = await count_input.get_attribute("min", timeout=timeout)
    except PlaywrightError as exc:
        if is_browser_infra_error(exc):
            raise
        max_attr = min_attr = None
    await session.close_modal()

    return Check(max_attr == "12" and min_attr == "2", f"min={min_attr} max={max_attr}", [shot])
