"""Dashboard course list - finds the Lernfeld courses of the trainee.

  {base_url}/
    [data-courseid]
      .card-title -> "LF05 Software zur Verwaltung von Daten anpassen 80UE"

Only cards whose title starts with "LF" and has at least two words are kept.
The first word is the Lernfeld code, the last one the duration.
"""

import asyncio

from bs4 import BeautifulSoup

from src.portfolio.config import PortfolioConfig
from src.portfolio.errors import ScrapingError
from src.portfolio.logging import get_logger
from src.portfolio.models import Course
from src.portfolio.pages.classbook import ClassbookPage, FetchText

log = get_logger(__name__)

COURSE_PATH = "/course/view.php?id="
COURSE_ID_SELECTOR = "[data-courseid]"
COURSE_NAME_SELECTOR = ".card-title"
LERNFELD_PREFIX = "LF"


def generate_course_link(base_url: str, course_id: str) -> str:
    return f"{base_url.rstrip('/')}{COURSE_PATH}{course_id}"


def extract_courses(body: str, base_url: str) -> list[Course]:
    """Extract the Lernfeld courses from the dashboard page."""
    document = BeautifulSoup(body, "html.parser")
    courses: list[Course] = []

    for element in document.select(COURSE_ID_SELECTOR):
        course_id = element.get("data-courseid")
        name_element = element.select_one(COURSE_NAME_SELECTOR)
        if not course_id or name_element is None:
            continue

        parts = name_element.get_text().split()
        if len(parts) < 2 or not parts[0].startswith(LERNFELD_PREFIX):
            continue

        course = Course(
            id=str(course_id),
            name=" ".join(parts[1:-1]),
            link=generate_course_link(base_url, str(course_id)),
            lernfeld=parts[0],
            duration=parts[-1],
        )
        log.debug(
            "course_found",
            id=course.id,
            name=course.name,
            lernfeld=course.lernfeld,
            duration=course.duration,
            link=course.link,
        )
        courses.append(course)

    return courses


async def scrape_courses(fetch_text: FetchText, config: PortfolioConfig) -> list[Course]:
    """Scrape the course list and resolve every course's classbook.

    Classbooks are resolved with at most config.max_concurrent_tasks courses in
    flight, each one waiting config.request_delay_ms first. A course whose
    classbook can't be resolved keeps its empty classbook.

    Raises:
        TransportError: If the dashboard cannot be fetched.
    """
    base_url = config.base_url.rstrip("/")
    body = await fetch_text(f"{base_url}/")
    courses = extract_courses(body, base_url)

    if config.test_mode:
        log.info("test_mode", reason="only scraping the first course")
        courses = courses[:1]

    classbook_page = ClassbookPage(fetch_text, base_url)
    semaphore = asyncio.Semaphore(config.max_concurrent_tasks)

    async def _resolve(course: Course) -> Course:
        async with semaphore:
            await asyncio.sleep(config.request_delay_ms / 1000)
            try:
                course.classbook = await classbook_page.scrape(course.link)
            except ScrapingError as e:
                log.error(
                    "classbook_scrape_failed",
                    course_id=course.id,
                    lernfeld=course.lernfeld,
                    error=str(e),
                )
        return course

    resolved = await asyncio.gather(*(_resolve(course) for course in courses))

    log.info(
        "courses_scraped",
        courses=len(resolved),
        entries=sum(len(course.classbook.entries) for course in resolved),
    )
    return list(resolved)
