"""Pydantic models for classbook and attendance data.

All data structures use Pydantic v2 for validation, serialization, and type safety.
"""

from collections.abc import Iterable, Iterator
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.portfolio.errors import DateParseError

ENTRY_DATE_FORMAT = "%d.%m.%y"
ATTENDANCE_DATE_FORMAT = "%d.%m.%Y"
DEFAULT_TIME_RANGE = "08:00 - 16:30"


class ActivitySet:
    """Insertion-ordered set of activity labels.

    Empty strings are ignored and duplicates (exact text) keep their first
    position.
    """

    def __init__(self, items: Iterable[str] = ()) -> None:
        self._items: dict[str, None] = {}
        self.extend(items)

    def add(self, item: str) -> None:
        if item and item not in self._items:
            self._items[item] = None

    def extend(self, items: Iterable[str]) -> None:
        for item in items:
            self.add(item)

    def clear(self) -> None:
        self._items.clear()

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item: object) -> bool:
        return item in self._items

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ActivitySet):
            return list(self) == list(other)
        if isinstance(other, (list, tuple)):
            return list(self) == list(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"ActivitySet({list(self)!r})"


class ClassbookEntry(BaseModel):
    """One taught session from a course classbook.

    Built from a row of table.generaltable.attwidth.boxaligncenter on the
    attendance module page (view=5).
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    weekday: str  # "Mon", "Tue", ... from the date column
    date: str  # "02.10.23" (day.month.two-digit year)
    time: str = DEFAULT_TIME_RANGE  # "08:00 - 16:30"
    description: str = ""  # Full text of td.desccol
    activities: ActivitySet = Field(default_factory=ActivitySet)

    @field_validator("activities", mode="before")
    @classmethod
    def _coerce_activities(cls, value: object) -> ActivitySet:
        if isinstance(value, ActivitySet):
            return value
        return ActivitySet(value)  # type: ignore[arg-type]

    def parsed_date(self) -> date:
        """Parse the entry date.

        Raises:
            DateParseError: If the date is not in dd.mm.yy format.
        """
        try:
            return datetime.strptime(self.date, ENTRY_DATE_FORMAT).date()
        except ValueError as e:
            raise DateParseError(self.date) from e


class AttendanceRecord(BaseModel):
    """One row of the attendance overview (/local/anmeldung/anwesenheit.php)."""

    model_config = ConfigDict(frozen=True)

    date: str  # "02.10.2023"
    from_time: str  # "08:00"
    to_time: str  # "16:30"

    def parsed_date(self) -> date | None:
        """Parse the record date, or None if it is not dd.mm.yyyy."""
        try:
            return datetime.strptime(self.date, ATTENDANCE_DATE_FORMAT).date()
        except ValueError:
            return None


class Classbook(BaseModel):
    """A course classbook. Empty until it has been fetched."""

    id: str = ""  # data-key of the "Klassenbuch" list item
    link: str = ""  # Link of the "Klassenbuch" list item
    direct_link: str = ""  # Attendance module view with &view=5
    entries: list[ClassbookEntry] = Field(default_factory=list)


class Course(BaseModel):
    """A Lernfeld course from the dashboard.

    Card titles look like "LF05 Software zur Verwaltung von Daten anpassen 80UE".
    """

    id: str  # data-courseid
    name: str  # "Software zur Verwaltung von Daten anpassen"
    link: str  # {base_url}/course/view.php?id={id}
    lernfeld: str  # "LF05"
    duration: str  # "80UE"
    classbook: Classbook = Field(default_factory=Classbook)


class WeekBucket(BaseModel):
    """Consecutive classbook entries that share one ISO week number."""

    week: int
    entries: list[ClassbookEntry]

    @property
    def start_date(self) -> str:
        return self.entries[0].date

    @property
    def end_date(self) -> str:
        return self.entries[-1].date

    @property
    def date_range(self) -> str:
        return f"{self.start_date} - {self.end_date}"
