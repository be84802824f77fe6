"""Movement and formation fixtures seeded into the live board's storage.

Every builder returns a fresh dict so a scenario can mutate what it seeds
without leaking into the next one.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

PLANNED = "PLANNED"
ACTIVE = "ACTIVE"
COMPLETED = "COMPLETED"
CANCELLED = "CANCELLED"

# Fields an element keeps when a strip is duplicated or an arrival is produced.
ELEMENT_STATIC_FIELDS = ("callsign", "reg", "type", "wtc")
ELEMENT_STATE_FIELDS = ("status", "depActual", "arrActual")


def today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def storage_envelope(movements: list[dict[str, Any]], version: int = 3) -> dict[str, Any]:
    """Wrap movements in the versioned envelope the live board persists."""
    return {"version": version, "timestamp": utc_timestamp(), "movements": list(movements)}


def element(
    callsign: str,
    reg: str,
    aircraft_type: str,
    wtc: str,
    status: str = PLANNED,
    dep_actual: str = "",
    arr_actual: str = "",
    **extra: str,
) -> dict[str, Any]:
    el = {
        "callsign": callsign,
        "reg": reg,
        "type": aircraft_type,
        "wtc": wtc,
        "status": status,
        "depActual": dep_actual,
        "arrActual": arr_actual,
    }
    el.update(extra)
    return el


def cnnct_formation(statuses: Iterable[str] = (ACTIVE, ACTIVE, PLANNED)) -> dict[str, Any]:
    """Three-ship CNNCT formation: one EH10 (M) leading two LYNX (L)."""
    airframes = [
        ("CNNCT 1", "ZZ400", "EH10", "M"),
        ("CNNCT 2", "ZZ401", "LYNX", "L"),
        ("CNNCT 3", "ZZ402", "LYNX", "L"),
    ]
    elements = []
    for (callsign, reg, aircraft_type, wtc), status in zip(airframes, statuses):
        dep_actual = "" if status == PLANNED else "13:15"
        elements.append(element(callsign, reg, aircraft_type, wtc, status, dep_actual=dep_actual))
    return {"label": "CNNCT flight of 3", "wtcCurrent": "M", "wtcMax": "M", "elements": elements}


def _movement(**fields: Any) -> dict[str, Any]:
    mv = {
        "id": 1,
        "status": ACTIVE,
        "callsignCode": "",
        "callsignLabel": "",
        "callsignVoice": "",
        "registration": "",
        "operator": "",
        "type": "",
        "wtc": "",
        "depAd": "EGOW",
        "depName": "",
        "arrAd": "EGOS",
        "arrName": "",
        "depPlanned": "",
        "depActual": "",
        "arrPlanned": "",
        "arrActual": "",
        "dof": today(),
        "flightType": "DEP",
        "rules": "VFR",
        "isLocal": False,
        "tngCount": 0,
        "osCount": 0,
        "fisCount": 0,
        "egowCode": "",
        "egowDesc": "",
        "unitCode": "",
        "unitDesc": "",
        "captain": "",
        "pob": 1,
        "remarks": "",
        "warnings": "",
        "notes": "",
        "squawk": "",
        "route": "",
        "clearance": "",
        "formation": None,
    }
    mv.update(fields)
    return mv


def base_strip(**overrides: Any) -> dict[str, Any]:
    """Active CNNCT departure EGOW to EGOS carrying a three-ship formation."""
    fields = dict(
        id=1,
        status=ACTIVE,
        callsignCode="CNNCT",
        callsignLabel="CONNECT FLIGHT",
        registration="ZZ400",
        type="Mixed (EH10/LYNX)",
        wtc="M",
        depName="RAF Woodvale",
        arrName="RAF Shawbury",
        depPlanned="13:00",
        depActual="13:15",
        arrPlanned="14:00",
        osCount=1,
        egowCode="BM",
        pob=3,
        remarks="Formation departure to Shawbury",
        formation=cnnct_formation(),
    )
    fields.update(overrides)
    return _movement(**fields)


def malformed_strip() -> dict[str, Any]:
    """Planned BADFORM strip whose formation has a null label and no elements."""
    return _movement(
        id=50,
        status=PLANNED,
        callsignCode="BADFORM",
        depPlanned="09:00",
        arrPlanned="10:00",
        egowCode="BC",
        formation={"label": None},
    )


def v11_formation(statuses: Iterable[str] = (ACTIVE, PLANNED, PLANNED)) -> dict[str, Any]:
    """CNNCT formation with per-element aerodromes; element 1 has none set."""
    aerodromes = [("EGOW", "EGOS"), ("", ""), ("EGOM", "")]
    formation = cnnct_formation(statuses)
    for el, (dep_ad, arr_ad) in zip(formation["elements"], aerodromes):
        el["depAd"] = dep_ad
        el["arrAd"] = arr_ad
    return formation


def v11_strip(**overrides: Any) -> dict[str, Any]:
    fields = dict(
        id=1,
        status=ACTIVE,
        callsignCode="CNNCT",
        registration="ZZ400",
        type="EH10",
        wtc="M",
        depName="RAF Woodvale",
        arrName="RAF Shawbury",
        depPlanned="13:00",
        depActual="13:15",
        arrPlanned="14:00",
        egowCode="BM",
        pob=3,
        formation=v11_formation(),
    )
    fields.update(overrides)
    return _movement(**fields)
