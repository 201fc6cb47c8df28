# app/workers/feed_order_worker.py
"""
Feed Order Check Worker

Opens the Hacker News "newest" feed in a headless browser, collects the first
N stories across pages and checks that they run from newest to oldest.

Always writes a JSON report and prints a summary; exits 1 on any failure.
"""

from __future__ import annotations

import argparse
import asyncio
from datetime import datetime, timezone
from pathlib import Path
import sys
from typing import List, Optional

# Path setup
THIS_FILE = Path(__file__).resolve()
APP_DIR = THIS_FILE.parent.parent
PROJECT_DIR = APP_DIR.parent

if str(PROJECT_DIR) not in sys.path:
    sys.path.insert(0, str(PROJECT_DIR))

from app.config import settings
from app.core.logging import configure_logging, get_logger
from app.core.request_id import with_run_id
from app.models.feed_items import ValidationOutcome
from app.models.feed_report import Report
from services import report_builder
from services.feed_page_service import FeedPageService
from services.validation_pipeline import ValidationPipeline

configure_logging(service_name="worker", level=settings.LOG_LEVEL)
logger = get_logger()
logger = logger.bind(worker="feed_order_check")


def write_json_report(report: Report, path: str) -> bool:
    """Pretty-printed JSON; failures are logged, never raised."""
    try:
        Path(path).write_text(report.model_dump_json(indent=2), encoding="utf-8")
    except OSError as exc:
        logger.warning("report_write_failed", path=path, error=str(exc))
        return False
    logger.info("report_written", path=path)
    return True


def format_summary(report: Report) -> str:
    line = "=" * 70
    meta = report.meta
    out: List[str] = [
        "",
        line,
        "FEED ORDER CHECK SUMMARY",
        line,
        f"Status: {'PASS' if report.passed else 'FAIL'}",
        f"Items Validated: {meta.actual_count}/{meta.expected_count}",
        f"Pages Visited: {meta.pages_visited}",
        f"Execution Time: {meta.duration_seconds:.2f}s",
    ]
    if meta.fatal_error:
        out.append(f"Fatal Error: {meta.fatal_error}")

    stats = report.statistics
    if stats is not None:
        out.append(f"Time Span: {stats.time_span_hours:.2f} hours")
        out.append(f"Newest: {stats.newest_timestamp}")
        out.append(f"Oldest: {stats.oldest_timestamp}")
        if stats.unparsable_count > 0:
            out.append(f"Unparsable timestamps: {stats.unparsable_count}")

    if report.validation.problem_count > 0:
        out.append("")
        out.append(f"Problems Found: {report.validation.problem_count}")
        for i, problem in enumerate(report.validation.problems, start=1):
            out.append(f"  {i}. {problem}")
    out.append(line)
    return "\n".join(out)


async def run_once(
    *,
    feed_url: Optional[str] = None,
    target: Optional[int] = None,
    max_pages: Optional[int] = None,
    report_path: Optional[str] = None,
    headless: Optional[bool] = None,
) -> Report:
    """Run one full check and persist its report."""
    if target is None:
        target = settings.TARGET_COUNT
    if max_pages is None:
        max_pages = settings.MAX_PAGES
    report_path = report_path or settings.REPORT_PATH

    with with_run_id() as run_id:
        logger.info("feed_order_check_started", target=target, run_id=run_id)

        started_at = datetime.now(timezone.utc)
        report: Optional[Report] = None
        browser_error: Optional[str] = None
        try:
            async with FeedPageService.from_settings(
                settings, feed_url=feed_url, headless=headless
            ) as feed:
                pipeline = ValidationPipeline(
                    feed.read_current_page_items,
                    feed.advance_to_next_page,
                    max_pages=max_pages,
                    nav_retry_attempts=settings.NAV_RETRY_ATTEMPTS,
                    nav_retry_delay_s=settings.NAV_RETRY_DELAY_S,
                    start_page_opener=feed.open_start_page,
                )
                report = await pipeline.run(target)

                if report.meta.fatal_error:
                    await feed.capture_screenshot(settings.ERROR_SCREENSHOT_PATH)
                elif not report.validation.passed:
                    await feed.capture_screenshot(settings.FAILURE_SCREENSHOT_PATH)
        except Exception as exc:
            browser_error = f"{type(exc).__name__}: {exc}"
            logger.error(
                "feed_browser_failed",
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )
        if report is None:
            # Browser never got as far as a pipeline run; still record the attempt.
            report = report_builder.build(
                [],
                ValidationOutcome(passed=False),
                started_at,
                datetime.now(timezone.utc),
                expected_count=target,
                fatal_error=browser_error,
                run_id=run_id,
            )

        write_json_report(report, report_path)
        logger.info(
            "feed_order_check_complete",
            passed=report.passed,
            validated=report.meta.actual_count,
            expected=report.meta.expected_count,
            problem_count=report.validation.problem_count,
        )

    return report


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Check that a 'newest' feed is sorted newest to oldest")
    parser.add_argument("--url", default=None, help=f"Feed start page (default: {settings.FEED_URL})")
    parser.add_argument("--target", type=int, default=None, help=f"Items to validate (default: {settings.TARGET_COUNT})")
    parser.add_argument("--max-pages", type=int, default=None, help=f"Pagination safety bound (default: {settings.MAX_PAGES})")
    parser.add_argument("--report", default=None, help=f"JSON report path (default: {settings.REPORT_PATH})")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")

    args = parser.parse_args(argv)

    report = asyncio.run(
        run_once(
            feed_url=args.url,
            target=args.target,
            max_pages=args.max_pages,
            report_path=args.report,
            headless=False if args.headed else None,
        )
    )

    print(format_summary(report))
    return 0 if report.passed else 1


if __name__ == "__main__":
    sys.exit(main())
