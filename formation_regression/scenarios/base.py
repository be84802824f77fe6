"""Suite and scenario registration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable

if TYPE_CHECKING:
    from ..session import AppSession


@dataclass
class Check:
    """What a scenario observed: the pass condition, a diagnostic note and screenshot refs."""

    passed: bool
    note: str = ""
    refs: list[str] = field(default_factory=list)


ScenarioFunc = Callable[["AppSession"], Awaitable[Check]]


@dataclass(frozen=True)
class Scenario:
    id: str
    title: str
    func: ScenarioFunc


class UnknownSuiteError(KeyError):
    pass


class Suite:
    """Ordered collection of scenarios sharing one page and one evidence directory."""

    def __init__(self, name: str, title: str, screenshot_prefix: str, results_file: str):
        self.name = name
        self.title = title
        self.screenshot_prefix = screenshot_prefix
        self.results_file = results_file
        self.scenarios: list[Scenario] = []

    def scenario(self, scenario_id: str, title: str) -> Callable[[ScenarioFunc], ScenarioFunc]:
        """Register a scenario; registration order is execution order."""

        def decorator(func: ScenarioFunc) -> ScenarioFunc:
            if any(s.id == scenario_id for s in self.scenarios):
                raise ValueError(f"Duplicate scenario id {scenario_id} in suite {self.name}")
            self.scenarios.append(Scenario(id=scenario_id, title=title, func=func))
            return func

        return decorator

    @property
    def ids(self) -> list[str]:
        return [s.id for s in self.scenarios]

    def __len__(self) -> int:
        return len(self.scenarios)

    def __repr__(self) -> str:
        return f"Suite({self.name!r}, scenarios={self.ids})"
