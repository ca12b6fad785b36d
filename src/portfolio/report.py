"""Training record ("Ausbildungsnachweis") workbook rendering.

Each week bucket becomes one sheet with a fixed 10-column layout (A-J):

  row 0       title, week number, date range
  row 1       training location, instructor
  row 2       column captions (Tag / Betriebliche Tätigkeiten... / Stunden)
  rows 3-57   one 11-row block per weekday Mon-Fri:
                col 0 rotated day name, cols 1-8 activities,
                col 9 hours on the block's last row
  row 58      weekly hours total
  rows 59-62  signature block

Coordinates in this module are zero-based (row, col); openpyxl is one-based.
Only text and numbers depend on the data, never the geometry.
"""

from dataclasses import dataclass, replace
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from src.portfolio.config import PortfolioConfig
from src.portfolio.errors import LayoutError
from src.portfolio.logging import get_logger
from src.portfolio.models import ActivitySet, ClassbookEntry, WeekBucket

log = get_logger(__name__)

FONT_NAME = "Arial"
FONT_SIZE_SMALL = 8.0
FONT_SIZE_LARGE = 10.0

THIN = "thin"
MEDIUM = "medium"

COLUMN_WIDTHS = (2.83, 4.33, 17.5, 2.5, 17.5, 0.55, 17.5, 0.64, 22.17, 7.33)
LAST_COL = len(COLUMN_WIDTHS) - 1
HOURS_COL = 9

TITLE_ROW_HEIGHT = (1, 23.25)
BODY_ROWS = range(3, 59)
BODY_ROW_HEIGHT = 13.0
RIGHT_EDGE_ROWS = range(1, 62)

DAY = "Tag"
OPERATIONAL_TASKS = "Betriebliche Tätigkeiten, Unterweisungen, Berufsschulunterricht"
HOURS = "Stunden"
WEEK_HOURS = "Wochenstunden"
SIGNATURE = "Unterschrift:"
TRAINING_RECORD = "Ausbildungsnachweis"
NR = "Nr."
WEEK_FROM_TO = "Woche vom bis"
TRAINING_LOCATION = "Ort der Ausbildung:"
INSTRUCTOR = "Ausbilder:"

WEEK_HOURS_FORMULA = "=SUM(J14:J58)"
FULL_DAY_HOURS = 8
NO_HOURS = 0

Span = tuple[int, int, int, int]  # start_row, start_col, end_row, end_col


@dataclass(frozen=True)
class WeekdaySlot:
    """Where one weekday lives on the sheet."""

    label: str
    label_span: Span
    activity_span: Span
    hour_row: int


WEEKDAY_LAYOUT: dict[str, WeekdaySlot] = {
    "Mon": WeekdaySlot("Montag", (3, 0, 13, 0), (3, 1, 13, 8), 13),
    "Tue": WeekdaySlot("Dienstag", (14, 0, 24, 0), (14, 1, 24, 8), 24),
    "Wed": WeekdaySlot("Mittwoch", (25, 0, 35, 0), (25, 1, 35, 8), 35),
    "Thu": WeekdaySlot("Donnerstag", (36, 0, 46, 0), (36, 1, 46, 8), 46),
    "Fri": WeekdaySlot("Freitag", (47, 0, 57, 0), (47, 1, 57, 8), 57),
}

CAPTIONS: tuple[tuple[int, str], ...] = (
    (2, "Auszubildener"),
    (4, "Ausbilder"),
    (6, "Gesetzlicher Vertreter"),
    (8, "Sonstige Sichtvermerke"),
)


@dataclass(frozen=True)
class CellStyle:
    font_size: float | None = None
    font_name: str = FONT_NAME
    bold: bool = False
    horizontal: str | None = None
    vertical: str | None = "center"
    top: str | None = None
    bottom: str | None = None
    left: str | None = None
    right: str | None = None
    wrap: bool = False
    rotation: int = 0

    def apply(self, cell) -> None:
        cell.font = Font(name=self.font_name, size=self.font_size, bold=self.bold)
        cell.alignment = Alignment(
            horizontal=self.horizontal,
            vertical=self.vertical,
            wrap_text=self.wrap,
            text_rotation=self.rotation,
        )
        cell.border = Border(
            top=Side(style=self.top),
            bottom=Side(style=self.bottom),
            left=Side(style=self.left),
            right=Side(style=self.right),
        )


def _boxed(font_size: float, right: str) -> CellStyle:
    """Centered caption with thin borders and the given right border."""
    return CellStyle(
        font_size=font_size,
        horizontal="center",
        top=THIN,
        bottom=THIN,
        left=THIN,
        right=right,
    )


ACTIVITY_STYLE = CellStyle(
    font_size=FONT_SIZE_LARGE,
    horizontal="left",
    top=THIN,
    bottom=THIN,
    left=THIN,
    right=THIN,
    wrap=True,
)
HOURS_STYLE = CellStyle(
    font_size=FONT_SIZE_LARGE,
    horizontal="center",
    vertical=None,
    bottom=THIN,
    right=MEDIUM,
)
SUMMARY_STYLE = CellStyle(horizontal="center", vertical=None)
RIGHT_EDGE_STYLE = CellStyle(right=MEDIUM)
INFO_STYLE = CellStyle(font_size=FONT_SIZE_LARGE)


@dataclass(frozen=True)
class Cell:
    """A header band cell; spans when start and end differ."""

    start_row: int
    start_col: int
    end_row: int
    end_col: int
    text: str
    font_size: float
    bold: bool = False
    border_top: str | None = MEDIUM

    @property
    def span(self) -> Span:
        return (self.start_row, self.start_col, self.end_row, self.end_col)

    def style(self) -> CellStyle:
        return CellStyle(
            font_size=self.font_size,
            bold=self.bold,
            top=self.border_top,
            bottom=THIN,
            left=MEDIUM if self.start_col == 0 else None,
            right=MEDIUM if self.end_col == LAST_COL else None,
        )


class SheetWriter:
    """Writes values onto a worksheet, each cell at most once."""

    def __init__(self, worksheet: Worksheet) -> None:
        self.worksheet = worksheet
        self._written: set[tuple[int, int]] = set()

    def _claim(self, span: Span) -> None:
        start_row, start_col, end_row, end_col = span
        cells = {
            (row, col)
            for row in range(start_row, end_row + 1)
            for col in range(start_col, end_col + 1)
        }
        taken = cells & self._written
        if taken:
            raise LayoutError(
                f"Cells {sorted(taken)} already written on sheet {self.worksheet.title!r}"
            )
        self._written |= cells

    def style(self, row: int, col: int, style: CellStyle) -> None:
        """Format a blank cell; a later write may still fill it."""
        style.apply(self.worksheet.cell(row=row + 1, column=col + 1))

    def write(self, row: int, col: int, value: str | int, style: CellStyle) -> None:
        self.merge((row, col, row, col), value, style)

    def merge(self, span: Span, value: str | int, style: CellStyle) -> None:
        self._claim(span)
        start_row, start_col, end_row, end_col = span

        self.worksheet.cell(row=start_row + 1, column=start_col + 1, value=value)
        if span[:2] != span[2:]:
            self.worksheet.merge_cells(
                start_row=start_row + 1,
                start_column=start_col + 1,
                end_row=end_row + 1,
                end_column=end_col + 1,
            )

        # Borders of a merged range are drawn from its edge cells
        for row in range(start_row, end_row + 1):
            for col in range(start_col, end_col + 1):
                style.apply(self.worksheet.cell(row=row + 1, column=col + 1))


def join_activities(activities: ActivitySet) -> str:
    """Join activities with ", ", or a space after questions and exclamations."""
    text = "".join(
        f"{activity} " if activity.endswith(("?", "!")) else f"{activity}, "
        for activity in activities
    )
    while text.endswith(", "):
        text = text[:-2]
    return text


def hours_for(entry: ClassbookEntry | None, zero_hour_keywords: list[str]) -> int:
    """Hours credited for a day: none without an entry or with a zero-hour keyword."""
    if entry is None:
        return NO_HOURS
    if any(
        keyword in activity
        for activity in entry.activities
        for keyword in zero_hour_keywords
    ):
        return NO_HOURS
    return FULL_DAY_HOURS


def entries_by_weekday(entries: list[ClassbookEntry]) -> dict[str, ClassbookEntry]:
    """Map weekday labels to entries; a later entry replaces an earlier one."""
    return {entry.weekday: entry for entry in entries}


def first_entries_by_weekday(
    entries: list[ClassbookEntry],
) -> dict[str, ClassbookEntry]:
    """Map weekday labels to the first entry of that weekday.

    Hours are credited from this entry while the activity text comes from
    entries_by_weekday, so a holiday listed first zeroes the whole day.
    """
    first: dict[str, ClassbookEntry] = {}
    for entry in entries:
        first.setdefault(entry.weekday, entry)
    return first


def _setup_page(worksheet: Worksheet) -> None:
    worksheet.sheet_view.showGridLines = False
    worksheet.print_options.gridLines = False
    worksheet.page_setup.scale = 100
    worksheet.page_setup.pageOrder = "overThenDown"
    worksheet.sheet_properties.pageSetUpPr.fitToPage = True
    worksheet.page_setup.fitToWidth = 1
    worksheet.page_setup.fitToHeight = 1

    for index, width in enumerate(COLUMN_WIDTHS):
        worksheet.column_dimensions[get_column_letter(index + 1)].width = width

    row, height = TITLE_ROW_HEIGHT
    worksheet.row_dimensions[row + 1].height = height
    for row in BODY_ROWS:
        worksheet.row_dimensions[row + 1].height = BODY_ROW_HEIGHT


def _write_title(writer: SheetWriter, week_index: int, date_range: str) -> None:
    cells = (
        Cell(0, 0, 0, 2, TRAINING_RECORD, 13.0, bold=True),
        Cell(0, 3, 0, 3, NR, 11.0),
        Cell(0, 4, 0, 4, str(week_index + 1), 10.0),
        Cell(0, 5, 0, 5, "", 10.0),
        Cell(0, 6, 0, 6, WEEK_FROM_TO, 11.0),
        Cell(0, 7, 0, 7, "", 10.0),
        Cell(0, 8, 0, 8, date_range, 10.0),
        Cell(0, 9, 0, 9, "", 10.0),
    )
    for cell in cells:
        writer.merge(cell.span, cell.text, cell.style())


def _write_company(writer: SheetWriter, config: PortfolioConfig) -> None:
    writer.merge(
        (1, 0, 1, 3),
        TRAINING_LOCATION,
        CellStyle(font_size=11.0, left=MEDIUM),
    )
    writer.write(1, 4, config.location, INFO_STYLE)
    writer.write(1, 6, INSTRUCTOR, INFO_STYLE)
    writer.write(1, 8, config.educator_name, INFO_STYLE)


def _write_day_header(writer: SheetWriter) -> None:
    for slot in WEEKDAY_LAYOUT.values():
        writer.merge(
            slot.label_span,
            slot.label,
            replace(_boxed(FONT_SIZE_SMALL, THIN), left=MEDIUM, rotation=90),
        )

    writer.write(2, 0, DAY, replace(_boxed(FONT_SIZE_LARGE, THIN), left=MEDIUM))
    writer.merge((2, 1, 2, 8), OPERATIONAL_TASKS, _boxed(FONT_SIZE_LARGE, THIN))
    writer.write(2, HOURS_COL, HOURS, _boxed(FONT_SIZE_LARGE, MEDIUM))


def _write_activities(writer: SheetWriter, by_weekday: dict[str, ClassbookEntry]) -> None:
    for weekday, slot in WEEKDAY_LAYOUT.items():
        entry = by_weekday.get(weekday)
        text = join_activities(entry.activities) if entry else ""
        writer.merge(slot.activity_span, text, ACTIVITY_STYLE)


def _write_hours(
    writer: SheetWriter,
    by_weekday: dict[str, ClassbookEntry],
    zero_hour_keywords: list[str],
) -> None:
    for weekday, slot in WEEKDAY_LAYOUT.items():
        hours = hours_for(by_weekday.get(weekday), zero_hour_keywords)
        writer.write(slot.hour_row, HOURS_COL, hours, HOURS_STYLE)


def _write_summary(writer: SheetWriter, config: PortfolioConfig) -> None:
    framed = replace(SUMMARY_STYLE, top=MEDIUM, bottom=MEDIUM)

    writer.merge((58, 0, 58, 7), "", replace(framed, left=MEDIUM))
    writer.write(58, 8, WEEK_HOURS, replace(framed, font_size=FONT_SIZE_LARGE, right=THIN))
    writer.write(
        58,
        HOURS_COL,
        WEEK_HOURS_FORMULA,
        replace(framed, font_size=FONT_SIZE_LARGE, left=THIN, right=MEDIUM),
    )

    writer.merge(
        (59, 0, 62, 1),
        SIGNATURE,
        replace(framed, font_size=FONT_SIZE_SMALL, vertical="center", left=MEDIUM),
    )
    writer.write(
        60,
        2,
        config.signature,
        replace(
            SUMMARY_STYLE,
            font_name=config.signature_font_name,
            font_size=float(config.signature_font_size),
            bottom=THIN,
        ),
    )

    caption = replace(SUMMARY_STYLE, font_size=FONT_SIZE_SMALL, vertical="bottom", top=THIN)
    for col, text in CAPTIONS:
        writer.write(61, col, text, caption)

    closing = replace(SUMMARY_STYLE, bottom=MEDIUM)
    writer.merge((62, 2, 62, 8), "", replace(closing, font_size=FONT_SIZE_SMALL, vertical="bottom"))
    writer.write(62, HOURS_COL, "", replace(closing, right=MEDIUM))


def render_week(
    bucket: WeekBucket,
    week_index: int,
    workbook: Workbook,
    config: PortfolioConfig,
) -> Worksheet:
    """Append the sheet for one week bucket to the workbook.

    Args:
        bucket: Entries of one ISO week, in date order.
        week_index: Zero-based position of the week in the report.
        workbook: Workbook the sheet is added to.
        config: Source of location, instructor, signature and zero-hour keywords.

    Returns:
        The new worksheet, titled with the bucket's date range.
    """
    worksheet = workbook.create_sheet(title=bucket.date_range)
    writer = SheetWriter(worksheet)

    _setup_page(worksheet)
    for row in RIGHT_EDGE_ROWS:
        writer.style(row, HOURS_COL, RIGHT_EDGE_STYLE)

    by_weekday = entries_by_weekday(bucket.entries)

    _write_title(writer, week_index, bucket.date_range)
    _write_company(writer, config)
    _write_day_header(writer)
    _write_activities(writer, by_weekday)
    _write_hours(
        writer, first_entries_by_weekday(bucket.entries), config.zero_hour_keywords
    )
    _write_summary(writer, config)

    log.debug(
        "week_rendered",
        sheet=worksheet.title,
        week=bucket.week,
        entries=len(bucket.entries),
    )
    return worksheet


def build_report(buckets: list[WeekBucket], config: PortfolioConfig) -> Workbook:
    """Render every week bucket, in order, into a new workbook."""
    workbook = Workbook()
    workbook.remove(workbook.active)

    for week_index, bucket in enumerate(buckets):
        render_week(bucket, week_index, workbook, config)

    return workbook


def write_report(
    buckets: list[WeekBucket], config: PortfolioConfig, path: str | Path
) -> Path | None:
    """Build the report and save it once, replacing any previous file.

    With no weeks to write, a report left by an earlier run is deleted so
    the file never describes a different run.

    Returns:
        The written path, or None when there were no weeks to write.
    """
    output = Path(path)
    if not buckets:
        if output.exists():
            output.unlink()
            log.info("stale_report_removed", path=str(output))
        log.info("report_skipped", reason="no_entries")
        return None

    workbook = build_report(buckets, config)
    workbook.save(output)
    log.info("report_written", path=str(output), weeks=len(buckets))
    return output
