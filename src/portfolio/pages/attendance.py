"""Attendance overview page - the trainee's recorded presence per day.

  {base_url}/local/anmeldung/anwesenheit.php?page=1
    .table
      tr (header)
      tr -> td[0] ... td[1] date "02.10.2023", td[2] from "08:00", td[3] to "16:30"

A day without a readable from/to time was not attended; those days are
reported as health-related absence.
"""

from datetime import datetime, time

from bs4 import BeautifulSoup

from src.portfolio.errors import StructureError
from src.portfolio.logging import get_logger
from src.portfolio.models import AttendanceRecord
from src.portfolio.pages.classbook import FetchText

log = get_logger(__name__)

ATTENDANCE_PATH = "/local/anmeldung/anwesenheit.php?page=1"
TABLE_SELECTOR = ".table"

DAY_START = time(0, 0, 0)
DAY_END = time(23, 59, 59)


def _parse_time(value: str) -> time | None:
    try:
        return datetime.strptime(value, "%H:%M").time()
    except ValueError:
        return None


def is_attendance_valid(record: AttendanceRecord) -> bool:
    """A record is valid when both times parse and lie in order within the day."""
    from_time = _parse_time(record.from_time)
    to_time = _parse_time(record.to_time)

    if from_time is None or to_time is None:
        log.info(
            "attendance_time_unparsable",
            date=record.date,
            from_time=record.from_time,
            to_time=record.to_time,
        )
        return False

    return DAY_START <= from_time <= to_time <= DAY_END


def extract_attendance(body: str) -> list[AttendanceRecord]:
    """Extract attendance records from the overview page.

    Raises:
        StructureError: If the table is missing or a row has too few cells.
    """
    document = BeautifulSoup(body, "html.parser")
    table = document.select_one(TABLE_SELECTOR)
    if table is None:
        raise StructureError("Attendance table not found")

    records: list[AttendanceRecord] = []
    # First row is the header
    for row in table.select("tr")[1:]:
        cells = row.select("td")
        if len(cells) < 4:
            raise StructureError(f"Attendance row has {len(cells)} cells, expected 4")

        record = AttendanceRecord(
            date=cells[1].get_text().strip(),
            from_time=cells[2].get_text().strip(),
            to_time=cells[3].get_text().strip(),
        )
        records.append(record)

        log.debug(
            "attendance_record",
            date=record.date,
            from_time=record.from_time,
            to_time=record.to_time,
        )

    return records


async def scrape_attendance(fetch_text: FetchText, base_url: str) -> list[AttendanceRecord]:
    """Fetch and extract the attendance overview.

    Raises:
        TransportError: If the page cannot be fetched.
        StructureError: If the page has no attendance table.
    """
    url = f"{base_url.rstrip('/')}{ATTENDANCE_PATH}"
    body = await fetch_text(url)
    records = extract_attendance(body)
    log.info("attendance_scraped", records=len(records))
    return records
