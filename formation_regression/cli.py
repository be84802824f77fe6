"""Command line entry point: run regression suites and exit non-zero on any failure."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import sys
from typing import Sequence

import structlog

from .app_server import StaticAppServer
from .config import RegressionConfig, load_config
from .runner import SuiteReport, SuiteRunner
from .scenarios import SUITES, Suite

logger = structlog.get_logger(__name__)

ALL_SUITES = "all"


def configure_logging(level: str) -> None:
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper(), logging.INFO)),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="formation-regression",
        description="Run formation UI regression suites against the FDMS live board.",
    )
    ap.add_argument("--suite", default="formation-v1", choices=[*SUITES, ALL_SUITES])
    ap.add_argument("--config", default=None, help="YAML config file (default: $REGRESSION_CONFIG)")
    ap.add_argument("--app-url", default=None)
    ap.add_argument("--evidence-dir", default=None)
    ap.add_argument("--serve", metavar="DIR", default=None, help="Serve DIR as the app at --app-url")
    ap.add_argument("--headed", action="store_true", help="Show the browser window")
    ap.add_argument("--list", action="store_true", help="List suites and scenarios, then exit")
    return ap


def apply_overrides(config: RegressionConfig, args: argparse.Namespace) -> RegressionConfig:
    update = {}
    if args.app_url:
        update["app_url"] = args.app_url
    if args.evidence_dir:
        update["evidence_directory"] = args.evidence_dir
    if args.headed:
        update["browser_headless"] = False
    return config.model_copy(update=update) if update else config


def select_suites(name: str) -> list[Suite]:
    if name == ALL_SUITES:
        return list(SUITES.values())
    return [SUITES[name]]


def exit_code(reports: Sequence[SuiteReport]) -> int:
    return 0 if all(r.success for r in reports) else 1


def print_summary(reports: Sequence[SuiteReport]) -> None:
    for report in reports:
        total = len(report.results)
        print("\n" + "=" * 50)
        print(f"{report.title.upper()}: {report.passed}/{total} PASS, {report.failed} FAIL")
        print("=" * 50)
        for r in report.results:
            refs = f" [{', '.join(r.refs)}]" if r.refs else ""
            print(f"  {r.status}: {r.id} — {r.title}{refs}")
            if not r.passed and r.note:
                print(f"        {r.note}")
        if report.results_path:
            print(f"\nEvidence: {report.results_path}")


def list_suites() -> None:
    for suite in SUITES.values():
        print(f"{suite.name}: {suite.title}")
        for scenario in suite.scenarios:
            print(f"  {scenario.id:<4} {scenario.title}")


async def run_suites(suites: Sequence[Suite], config: RegressionConfig) -> list[SuiteReport]:
    reports = []
    async with SuiteRunner(config) as runner:
        for suite in suites:
            reports.append(await runner.run_suite(suite))
    return reports


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.list:
        list_suites()
        return 0

    config = apply_overrides(load_config(args.config), args)
    configure_logging(config.log_level)
    suites = select_suites(args.suite)
    logger.info("Starting regression run", suites=[s.name for s in suites], app_url=config.app_url)

    server = StaticAppServer.for_url(args.serve, config.app_url) if args.serve else contextlib.nullcontext()
    try:
        with server:
            reports = asyncio.run(run_suites(suites, config))
    except KeyboardInterrupt:
        return 130

    print_summary(reports)
    rc = exit_code(reports)
    if rc:
        failed = sum(r.failed for r in reports)
        print(f"\nFAIL: {failed} scenario(s) failed", file=sys.stderr)
    else:
        print("\nAll scenarios passed.")
    return rc
