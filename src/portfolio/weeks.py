"""Reconcile classbook entries with attendance and split them into weeks."""

from src.portfolio.logging import get_logger
from src.portfolio.models import AttendanceRecord, ClassbookEntry, WeekBucket
from src.portfolio.pages.attendance import is_attendance_valid

log = get_logger(__name__)

HEALTH_REASON_ABSENCE = "Keine Teilnahme am Unterricht aus gesundheitlichen Gründen"


def sort_entries(entries: list[ClassbookEntry]) -> list[ClassbookEntry]:
    """Sort by date, then weekday label.

    Raises:
        DateParseError: If any entry date is not dd.mm.yy.
    """
    return sorted(entries, key=lambda entry: (entry.parsed_date(), entry.weekday))


def apply_attendance(
    entry: ClassbookEntry, attendances: list[AttendanceRecord]
) -> None:
    """Replace the activities of a day with invalid attendance by the absence label."""
    entry_date = entry.parsed_date()
    attendance = next(
        (a for a in attendances if a.parsed_date() == entry_date), None
    )
    if attendance is None or is_attendance_valid(attendance):
        return

    log.debug(
        "invalid_attendance",
        date=entry.date,
        from_time=attendance.from_time,
        to_time=attendance.to_time,
    )
    entry.activities.clear()
    entry.activities.add(HEALTH_REASON_ABSENCE)


def reconcile_and_bucket(
    entries: list[ClassbookEntry], attendances: list[AttendanceRecord]
) -> list[WeekBucket]:
    """Sort entries, apply attendance and group them into ISO-week buckets.

    A new bucket starts whenever the ISO week number differs from the previous
    entry's. No entries means no buckets.

    Raises:
        DateParseError: If any entry date is not dd.mm.yy.
    """
    buckets: list[WeekBucket] = []
    current: list[ClassbookEntry] = []
    last_week: int | None = None

    for entry in sort_entries(entries):
        apply_attendance(entry, attendances)
        week = entry.parsed_date().isocalendar()[1]

        if current and week != last_week:
            buckets.append(WeekBucket(week=last_week, entries=current))
            current = []

        current.append(entry)
        last_week = week

    if current:
        buckets.append(WeekBucket(week=last_week, entries=current))

    log.info("entries_bucketed", entries=len(entries), weeks=len(buckets))
    return buckets
