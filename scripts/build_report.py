"""Build the weekly training record workbook from the Moodle classbooks.

Logs in (or reuses the saved session), scrapes the attendance overview and
every Lernfeld course classbook, and writes one sheet per calendar week.

Run with: python scripts/build_report.py
Debug:    python scripts/build_report.py --headed
One course only: python scripts/build_report.py --test-mode
Force login:     python scripts/build_report.py --fresh-login
Other file:      python scripts/build_report.py --output data/Reports.xlsx

Exit codes:
  0 = success (report written, or nothing to write)
  1 = error (login, attendance page, course list or unsupported page format)
"""

import argparse
import asyncio
import os
import sys

from dotenv import load_dotenv
from playwright.async_api import async_playwright

load_dotenv()

# Add project root to path for src imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.portfolio.config import get_config  # noqa: E402
from src.portfolio.errors import ScrapingError  # noqa: E402
from src.portfolio.logging import get_logger, setup_logging  # noqa: E402
from src.portfolio.pipeline import collect_weeks  # noqa: E402
from src.portfolio.report import write_report  # noqa: E402
from src.portfolio.session import PageFetcher, SessionManager  # noqa: E402
from src.portfolio.utils import configure_page_for_scraping  # noqa: E402

log = get_logger(__name__)


def _parse_args() -> argparse.Namespace:
    """Parse CLI arguments using argparse."""
    parser = argparse.ArgumentParser(
        description="Build the weekly training record workbook from Moodle classbooks.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--headed",
        action="store_true",
        help="Launch browser in headed mode (visible window).",
    )
    parser.add_argument(
        "--test-mode",
        action="store_true",
        help="Only scrape the first course (overrides TEST_MODE).",
    )
    parser.add_argument(
        "--fresh-login",
        action="store_true",
        help="Discard the saved session and log in again.",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Report file path. Default: OUTPUT_FILE (Reports.xlsx).",
    )
    return parser.parse_args()


async def main(args: argparse.Namespace) -> None:
    config = get_config()
    setup_logging(json_output=config.log_json, log_level=config.log_level)

    if args.test_mode:
        config.test_mode = True
    output_path = args.output or config.output_file

    log.info("build_report_started", base_url=config.base_url, test_mode=config.test_mode)

    session = SessionManager(
        config.base_url,
        state_dir=config.state_dir,
        max_session_age_hours=config.max_session_age_hours,
    )
    if args.fresh_login:
        session.clear_session()

    async with async_playwright() as pw:
        browser = await pw.chromium.launch(headless=not args.headed)
        try:
            context = await session.create_authenticated_context(browser)
            page = await context.new_page()
            await configure_page_for_scraping(page)

            await session.ensure_authenticated(
                context, page, config.moodle_user, config.moodle_pass
            )

            fetcher = PageFetcher(context.request)
            buckets = await collect_weeks(fetcher.fetch_text, config)

            # Keep the refreshed session cookies for the next run
            await session.save_session(context)
        finally:
            await browser.close()

    write_report(buckets, config, output_path)
    log.info("build_report_done", weeks=len(buckets))


if __name__ == "__main__":
    args = _parse_args()
    try:
        asyncio.run(main(args))
    except ScrapingError as e:
        log.error("build_report_failed", error=str(e), type=type(e).__name__)
        sys.exit(1)
