"""Scrape attendance and classbooks, then bucket the entries into weeks."""

from src.portfolio.config import PortfolioConfig
from src.portfolio.logging import get_logger
from src.portfolio.models import WeekBucket
from src.portfolio.pages.attendance import scrape_attendance
from src.portfolio.pages.classbook import FetchText
from src.portfolio.pages.courses import scrape_courses
from src.portfolio.weeks import reconcile_and_bucket

log = get_logger(__name__)


async def collect_weeks(fetch_text: FetchText, config: PortfolioConfig) -> list[WeekBucket]:
    """Run every scraping stage and return the week buckets to render.

    Raises:
        TransportError: If the attendance page or course list can't be fetched.
        StructureError: If the attendance page has no table.
        DateParseError: If a classbook date is malformed.
    """
    attendances = await scrape_attendance(fetch_text, config.base_url)
    courses = await scrape_courses(fetch_text, config)

    entries = [entry for course in courses for entry in course.classbook.entries]
    log.info("entries_collected", courses=len(courses), entries=len(entries))

    return reconcile_and_bucket(entries, attendances)
