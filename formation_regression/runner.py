"""Suite runner driving the live board with Playwright."""

from dataclasses import dataclass
from pathlib import Path

import structlog
from playwright.async_api import Browser, Playwright, async_playwright

from .browser import is_browser_infra_error, launch_browser, stub_external_scripts
from .config import RegressionConfig, get_config
from .evidence import EvidenceRecorder, ScenarioResult
from .page_errors import PageErrorCollector
from .scenarios.base import Check, Suite
from .session import AppSession

logger = structlog.get_logger(__name__)


@dataclass
class SuiteReport:
    """Results of one suite plus where its evidence was written."""

    suite_name: str
    title: str
    results: list[ScenarioResult]
    results_path: Path | None = None
    report_path: Path | None = None

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed(self) -> int:
        return len(self.results) - self.passed

    @property
    def success(self) -> bool:
        return self.failed == 0


class SuiteRunner:
    """Runs regression suites against one application instance."""

    def __init__(self, config: RegressionConfig | None = None):
        self.config = config or get_config()
        self.playwright: Playwright | None = None
        self.browser: Browser | None = None

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.stop()

    async def start(self):
        """Launch the browser."""
        logger.info("Starting suite runner", app_url=self.config.app_url)
        self.playwright = await async_playwright().start()
        self.browser = await launch_browser(self.playwright, self.config)

    async def stop(self):
        """Cleanup browser resources."""
        logger.info("Stopping suite runner")
        if self.browser:
            await self.browser.close()
        if self.playwright:
            await self.playwright.stop()

    async def run_suite(self, suite: Suite) -> SuiteReport:
        """Run every scenario of ``suite`` on a fresh page and write its evidence."""
        evidence = EvidenceRecorder(
            Path(self.config.evidence_directory) / suite.name, suite.screenshot_prefix
        )
        errors = PageErrorCollector(self.config.ignorable_error_substrings)

        logger.info("Running suite", suite=suite.name, scenario_count=len(suite))

        context = await self.browser.new_context(
            viewport={"width": self.config.viewport_width, "height": self.config.viewport_height}
        )
        try:
            await stub_external_scripts(context, self.config.stubbed_scripts)
            page = await context.new_page()
            page.set_default_timeout(self.config.action_timeout_ms)
            errors.attach(page)

            session = AppSession(page, self.config, evidence, errors)
            await session.open()
            await self.run_scenarios(suite, session)
        finally:
            await context.close()

        report = SuiteReport(
            suite_name=suite.name,
            title=suite.title,
            results=list(evidence.results),
            results_path=evidence.write_results(suite.results_file),
            report_path=evidence.write_html_report(suite.title),
        )
        logger.info(
            "Suite completed",
            suite=suite.name,
            total=len(report.results),
            passed=report.passed,
            failed=report.failed,
        )
        return report

    async def run_scenarios(self, suite: Suite, session: AppSession) -> list[ScenarioResult]:
        """Run scenarios in order, recording exactly one result for each."""
        for index, scenario in enumerate(suite.scenarios):
            session.errors.reset()
            logger.info("Running scenario", scenario=scenario.id, title=scenario.title)

            try:
                check = await scenario.func(session)
            except Exception as e:
                if is_browser_infra_error(e):
                    logger.error("Browser unavailable, aborting suite", scenario=scenario.id, error=str(e))
                    session.evidence.record(
                        scenario.id, scenario.title, False, f"{type(e).__name__}: browser unavailable"
                    )
                    for remaining in suite.scenarios[index + 1:]:
                        session.evidence.record(
                            remaining.id, remaining.title, False, "not run: browser unavailable"
                        )
                    break

                logger.error("Scenario raised", scenario=scenario.id, error=str(e))
                check = Check(False, f"{type(e).__name__}: {_first_line(e)}")
                try:
                    check.refs.append(await session.screenshot(f"{scenario.id}_error"))
                except Exception as shot_error:
                    logger.warning("Error screenshot failed", scenario=scenario.id, error=str(shot_error))

            error_count = session.errors.count
            note = f"{check.note} errors={error_count}".strip()
            if error_count:
                note += f' firstError="{session.errors.errors[0][:200]}"'
            session.evidence.record(
                scenario.id,
                scenario.title,
                check.passed and error_count == 0,
                note,
                check.refs,
            )

        return session.evidence.results


def _first_line(exc: BaseException) -> str:
    text = str(exc).strip()
    return text.splitlines()[0] if text else ""
