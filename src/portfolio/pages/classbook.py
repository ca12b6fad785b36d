"""Classbook pages - extracts taught sessions from the Moodle attendance module.

A course page lists its classbook as a list item:

  li.list-group-item[data-key]  (text "Klassenbuch")
    a[href] -> classbook module page

The classbook module page links to the attendance module
({base_url}/mod/attendance/view.php?id=...). With &view=5 ("all sessions")
that page renders every session as one table row:

  table.generaltable.attwidth.boxaligncenter
    tbody tr
      td.datecol.cell.c0  -> "Mon, 02.10.23 08:00 - 16:30"
      td.desccol.cell.c1  -> free-form notes: <p>, <ul><li>, <strong>, <h2>, <br>
"""

import asyncio
from collections.abc import Awaitable, Callable

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from src.portfolio.errors import ScrapingError, StructureError
from src.portfolio.logging import get_logger
from src.portfolio.models import DEFAULT_TIME_RANGE, ActivitySet, Classbook, ClassbookEntry
from src.portfolio.normalize import normalize

log = get_logger(__name__)

FetchText = Callable[[str], Awaitable[str]]

CLASSBOOK_LABEL = "Klassenbuch"
LIST_GROUP_ITEM = "li.list-group-item"
ATTENDANCE_VIEW_PATH = "/mod/attendance/view.php?id="
ALL_SESSIONS_VIEW = "&view=5"

ROW_SELECTOR = "table.generaltable.attwidth.boxaligncenter tbody tr"
DATE_AND_TIME_SELECTOR = "td.datecol.cell.c0"
DESCRIPTION_SELECTOR = "td.desccol.cell.c1"

# Text between <br>s of these elements is normalized
NORMALIZED_SELECTORS = ("p", "li", "td.desccol.cell.c1", "p > span")
# Text of these elements is taken as-is
VERBATIM_SELECTORS = ("td > strong", "td > h2", "td ul li span")

LATEST_END_TIME = "16:30"


def parse_date_and_time(text: str) -> tuple[str, str, str]:
    """Split "Mon, 02.10.23 08:00 - 16:30" into weekday, date and time range.

    The time range is empty when the cell carries no times.

    Raises:
        StructureError: If the text has no comma after the weekday.
    """
    parts = text.split(",")
    if len(parts) < 2:
        raise StructureError(f"Unexpected date cell: {text!r}")

    weekday = parts[0].strip()
    tokens = parts[1].split()
    date = tokens[0] if tokens else ""

    time = ""
    if len(tokens) >= 4:
        time = f"{tokens[1]} - {tokens[3]}"

    return weekday, date, time


def limit_time_range(time: str) -> str:
    """Default an empty range and clamp the end time to 16:30.

    Times are zero-padded HH:MM, so string comparison orders them.
    """
    if not time:
        return DEFAULT_TIME_RANGE

    split_time = time.split(" - ")
    if len(split_time) == 2:
        start_time = split_time[0].strip()
        end_time = split_time[1].strip()
        if end_time > LATEST_END_TIME:
            return f"{start_time} - {LATEST_END_TIME}"

    return time


def _select_text(row: Tag, selector: str) -> str:
    element = row.select_one(selector)
    if element is None:
        raise StructureError(f"Element not found for selector {selector!r}")
    return element.get_text().strip()


def _text_fragments(element: Tag) -> list[str]:
    """Direct text nodes of an element, i.e. the pieces between <br>s and children."""
    return [
        str(child)
        for child in element.children
        if isinstance(child, NavigableString)
        and not isinstance(child, PreformattedString)
    ]


def extract_activities(row: Tag) -> ActivitySet:
    """Collect the deduplicated activity labels of one classbook row."""
    activities = ActivitySet()

    for selector in NORMALIZED_SELECTORS:
        for element in row.select(selector):
            for fragment in _text_fragments(element):
                activities.add(normalize(fragment).strip())

    for selector in VERBATIM_SELECTORS:
        for element in row.select(selector):
            activities.add(element.get_text().strip())

    return activities


def extract_entries(document: BeautifulSoup) -> list[ClassbookEntry]:
    """Extract all classbook entries of an attendance module page.

    Raises:
        StructureError: If a row lacks its date or description cell.
    """
    entries: list[ClassbookEntry] = []

    for row in document.select(ROW_SELECTOR):
        date_and_time = _select_text(row, DATE_AND_TIME_SELECTOR)
        description = _select_text(row, DESCRIPTION_SELECTOR)

        weekday, date, time = parse_date_and_time(date_and_time)
        activities = extract_activities(row)
        time = limit_time_range(time)

        for activity in activities:
            log.debug(
                "classbook_activity",
                weekday=weekday,
                date=date,
                time=time,
                activity=activity,
            )

        entries.append(
            ClassbookEntry(
                weekday=weekday,
                date=date,
                time=time,
                description=description,
                activities=activities,
            )
        )

    return entries


def extract_classbook_links(body: str) -> list[Classbook]:
    """Find the "Klassenbuch" list items of a course page.

    Returns:
        Classbooks with id and link set, not yet fetched.

    Raises:
        StructureError: If a classbook item lacks its link or data-key.
    """
    document = BeautifulSoup(body, "html.parser")
    classbooks: list[Classbook] = []

    for item in document.select(LIST_GROUP_ITEM):
        if item.get_text().strip() != CLASSBOOK_LABEL:
            continue

        anchor = item.select_one("a")
        if anchor is None:
            raise StructureError("No a element found in li.list-group-item")

        link = anchor.get("href")
        if not link:
            raise StructureError("Classbook href not found")

        key = item.get("data-key")
        if not key:
            raise StructureError("Classbook data-key not found")

        classbooks.append(Classbook(id=str(key), link=str(link)))

    return classbooks


def extract_direct_link(body: str, base_url: str) -> str | None:
    """Find the attendance module link on a classbook page.

    Returns:
        The link switched to the all-sessions view, or None if the page has none.
    """
    document = BeautifulSoup(body, "html.parser")
    anchor = document.select_one(f'a[href^="{base_url}{ATTENDANCE_VIEW_PATH}"]')
    if anchor is None:
        return None
    return f"{anchor['href']}{ALL_SESSIONS_VIEW}"


async def fetch_all(links: list[str], fetch_text: FetchText) -> list[ClassbookEntry]:
    """Fetch and extract every link concurrently.

    A link that fails to download or parse contributes no entries; the rest
    are concatenated in completion order.
    """

    async def _fetch_and_extract(link: str) -> list[ClassbookEntry] | None:
        try:
            body = await fetch_text(link)
            return extract_entries(BeautifulSoup(body, "html.parser"))
        except ScrapingError as e:
            log.warning(
                "classbook_link_failed",
                link=link,
                error=str(e),
                type=type(e).__name__,
            )
            return None

    entries: list[ClassbookEntry] = []
    for next_done in asyncio.as_completed([_fetch_and_extract(link) for link in links]):
        result = await next_done
        if result is not None:
            entries.extend(result)

    return entries


class ClassbookPage:
    """Resolves a course page to its classbook entries."""

    def __init__(self, fetch_text: FetchText, base_url: str) -> None:
        self.fetch_text = fetch_text
        self.base_url = base_url.rstrip("/")

    async def resolve(self, classbook: Classbook) -> Classbook:
        """Follow a classbook link to the attendance module and extract its entries.

        Raises:
            TransportError: If the classbook page cannot be fetched.
            StructureError: If the page has no attendance module link.
        """
        body = await self.fetch_text(classbook.link)
        direct_link = extract_direct_link(body, self.base_url)
        if direct_link is None:
            raise StructureError(f"Direct link not found on {classbook.link}")

        entries = await fetch_all([direct_link], self.fetch_text)

        log.debug(
            "classbook_resolved",
            id=classbook.id,
            link=classbook.link,
            direct_link=direct_link,
            entries=len(entries),
        )
        return Classbook(
            id=classbook.id,
            link=classbook.link,
            direct_link=direct_link,
            entries=entries,
        )

    async def scrape(self, course_link: str) -> Classbook:
        """Scrape the classbook of a course page.

        When a course lists several classbooks, the first one to resolve wins.

        Raises:
            TransportError: If the course page cannot be fetched.
            StructureError: If no classbook is listed or none could be resolved.
        """
        body = await self.fetch_text(course_link)
        candidates = extract_classbook_links(body)
        if not candidates:
            raise StructureError(f"No classbook link found on {course_link}")

        async def _try_resolve(candidate: Classbook) -> Classbook | None:
            try:
                return await self.resolve(candidate)
            except ScrapingError as e:
                log.warning(
                    "classbook_extract_failed",
                    link=candidate.link,
                    error=str(e),
                    type=type(e).__name__,
                )
                return None

        resolved: list[Classbook] = []
        for next_done in asyncio.as_completed([_try_resolve(c) for c in candidates]):
            classbook = await next_done
            if classbook is not None:
                resolved.append(classbook)

        if not resolved:
            raise StructureError(f"No classbook processed for {course_link}")
        return resolved[0]
