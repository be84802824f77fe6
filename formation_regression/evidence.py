"""Evidence capture: screenshots, per-scenario results and the suite report files."""

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog
from jinja2 import Environment, FileSystemLoader, select_autoescape
from playwright.async_api import Page

logger = structlog.get_logger(__name__)

PASS = "PASS"
FAIL = "FAIL"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


def screenshot_filename(prefix: str, index: int, label: str) -> str:
    return f"{prefix}_{index}_{_UNSAFE_FILENAME_CHARS.sub('_', label)}.png"


@dataclass
class ScenarioResult:
    """Outcome of one scenario as written to the results file."""

    id: str
    title: str
    status: str
    note: str = ""
    refs: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.status == PASS

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status,
            "note": self.note,
            "refs": list(self.refs),
        }


class EvidenceRecorder:
    """Collects results and screenshots for one suite run under ``directory``."""

    def __init__(self, directory: str | Path, screenshot_prefix: str):
        self.directory = Path(directory)
        self.screenshot_prefix = screenshot_prefix
        self.results: list[ScenarioResult] = []
        self._screenshot_index = 0

        self.directory.mkdir(parents=True, exist_ok=True)
        template_dir = Path(__file__).parent / "templates"
        self.jinja_env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html", "j2"]),
        )

    async def screenshot(self, page: Page, label: str) -> str:
        """Capture the viewport and return the file name relative to the evidence directory."""
        self._screenshot_index += 1
        filename = screenshot_filename(self.screenshot_prefix, self._screenshot_index, label)
        await page.screenshot(path=str(self.directory / filename))
        return filename

    def record(self, scenario_id: str, title: str, passed: bool, note: str = "", refs: list[str] | None = None) -> ScenarioResult:
        result = ScenarioResult(
            id=scenario_id,
            title=title,
            status=PASS if passed else FAIL,
            note=note,
            refs=list(refs or []),
        )
        self.results.append(result)
        logger.info("Scenario result", scenario=scenario_id, status=result.status, note=note)
        return result

    def summary(self) -> dict[str, int]:
        passed = sum(1 for r in self.results if r.passed)
        return {"total": len(self.results), "passed": passed, "failed": len(self.results) - passed}

    def write_results(self, filename: str) -> Path:
        """Write ``{summary, timestamp, results}`` as indented JSON."""
        path = self.directory / filename
        payload = {
            "summary": self.summary(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "results": [r.to_dict() for r in self.results],
        }
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info("Results written", path=str(path))
        return path

    def write_html_report(self, title: str, filename: str = "report.html") -> Path:
        template = self.jinja_env.get_template("report.html.j2")
        html = template.render(
            title=title,
            summary=self.summary(),
            results=self.results,
            generated=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
        )
        path = self.directory / filename
        path.write_text(html, encoding="utf-8")
        return path
