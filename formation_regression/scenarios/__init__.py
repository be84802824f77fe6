"""Registered regression suites."""

from .base import Check, Scenario, Suite, UnknownSuiteError
from .formation_loc import SUITE as FORMATION_LOC
from .formation_v1 import SUITE as FORMATION_V1
from .formation_v11 import SUITE as FORMATION_V11

SUITES: dict[str, Suite] = {suite.name: suite for suite in (FORMATION_V1, FORMATION_V11, FORMATION_LOC)}


def get_suite(name: str) -> Suite:
    try:
        return SUITES[name]
    except KeyError:
        raise UnknownSuiteError(name) from None


__all__ = [
    "Check",
    "Scenario",
    "Suite",
    "UnknownSuiteError",
    "FORMATION_V1",
    "FORMATION_V11",
    "FORMATION_LOC",
    "SUITES",
    "get_suite",
]
