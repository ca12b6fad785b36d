"""Tests for the weekly training record sheets."""

import pytest
from openpyxl import Workbook, load_workbook

from src.portfolio.errors import LayoutError
from src.portfolio.models import ActivitySet, ClassbookEntry, WeekBucket
from src.portfolio.report import (
    SheetWriter,
    CellStyle,
    build_report,
    hours_for,
    join_activities,
    render_week,
    write_report,
)
from src.portfolio.weeks import HEALTH_REASON_ABSENCE


def _entry(weekday: str, date: str, *activities: str) -> ClassbookEntry:
    return ClassbookEntry(weekday=weekday, date=date, activities=list(activities))


@pytest.fixture
def bucket():
    return WeekBucket(
        week=40,
        entries=[
            _entry("Mon", "02.10.23", "SQL Grundlagen", "Joins"),
            _entry("Tue", "03.10.23", "Was ist ein View?", "Views"),
        ],
    )


class TestJoinActivities:

    @pytest.mark.parametrize("activities,expected", [
        (["SQL", "Joins"], "SQL, Joins"),
        (["Was ist SQL?", "Joins"], "Was ist SQL? Joins"),
        (["Joins", "Fertig!"], "Joins, Fertig! "),
        (["SQL"], "SQL"),
        ([], ""),
    ])
    def test_separators(self, activities, expected):
        assert join_activities(ActivitySet(activities)) == expected


class TestHoursFor:

    def test_holiday(self, config):
        entry = _entry("Tue", "03.10.23", "Feiertag: Tag der Deutschen Einheit")
        assert hours_for(entry, config.zero_hour_keywords) == 0

    def test_health_absence(self, config):
        entry = _entry("Mon", "02.10.23", HEALTH_REASON_ABSENCE)
        assert hours_for(entry, config.zero_hour_keywords) == 0

    def test_ordinary_day(self, config):
        entry = _entry("Mon", "02.10.23", "SQL Grundlagen")
        assert hours_for(entry, config.zero_hour_keywords) == 8

    def test_no_entry(self, config):
        assert hours_for(None, config.zero_hour_keywords) == 0


class TestRenderWeek:

    def test_one_sheet_titled_by_date_range(self, bucket, config):
        workbook = Workbook()
        workbook.remove(workbook.active)

        worksheet = render_week(bucket, 0, workbook, config)

        assert workbook.sheetnames == ["02.10.23 - 03.10.23"]
        assert worksheet["A1"].value == "Ausbildungsnachweis"
        assert worksheet["A1"].font.bold is True
        assert worksheet["A1"].border.top.style == "medium"
        assert worksheet["D1"].value == "Nr."
        assert worksheet["E1"].value == "1"
        assert worksheet["G1"].value == "Woche vom bis"
        assert worksheet["I1"].value == "02.10.23 - 03.10.23"

    def test_weekday_activities_and_hours(self, bucket, config):
        workbook = Workbook()
        worksheet = render_week(bucket, 0, workbook, config)

        assert worksheet["B4"].value == "SQL Grundlagen, Joins"
        assert worksheet["B15"].value == "Was ist ein View? Views"
        assert worksheet["B26"].value == ""
        assert worksheet["B37"].value == ""
        assert worksheet["B48"].value == ""
        hours = [worksheet[ref].value for ref in ("J14", "J25", "J36", "J47", "J58")]
        assert hours == [8, 8, 0, 0, 0]

    def test_fixed_geometry(self, bucket, config):
        workbook = Workbook()
        worksheet = render_week(bucket, 2, workbook, config)
        merged = {str(cell_range) for cell_range in worksheet.merged_cells.ranges}

        assert {"A1:C1", "A2:D2", "B3:I3", "A59:H59", "A60:B63", "C63:I63"} <= merged
        assert {"A4:A14", "A15:A25", "A26:A36", "A37:A47", "A48:A58"} <= merged
        assert {"B4:I14", "B15:I25", "B26:I36", "B37:I47", "B48:I58"} <= merged
        assert worksheet["A4"].value == "Montag"
        assert worksheet["A48"].value == "Freitag"
        assert worksheet["A4"].alignment.text_rotation == 90
        assert worksheet["E1"].value == "3"
        assert worksheet.column_dimensions["I"].width == 22.17
        assert worksheet.row_dimensions[2].height == 23.25
        assert worksheet.row_dimensions[30].height == 13.0
        assert worksheet.sheet_view.showGridLines is False

    def test_summary_band(self, bucket, config):
        workbook = Workbook()
        worksheet = render_week(bucket, 0, workbook, config)

        assert worksheet["I59"].value == "Wochenstunden"
        assert worksheet["J59"].value == "=SUM(J14:J58)"
        assert worksheet["A60"].value == "Unterschrift:"
        assert worksheet["C61"].value == "Max Muster"
        assert worksheet["C61"].font.name == "Segoe Script"
        assert worksheet["C61"].font.size == 12
        captions = [worksheet[ref].value for ref in ("C62", "E62", "G62", "I62")]
        assert captions == [
            "Auszubildener",
            "Ausbilder",
            "Gesetzlicher Vertreter",
            "Sonstige Sichtvermerke",
        ]

    def test_company_fields(self, bucket, config):
        workbook = Workbook()
        worksheet = render_week(bucket, 0, workbook, config)

        assert worksheet["A2"].value == "Ort der Ausbildung:"
        assert worksheet["E2"].value == "Berlin"
        assert worksheet["G2"].value == "Ausbilder:"
        assert worksheet["I2"].value == "Erika Mustermann"
        assert worksheet["J3"].value == "Stunden"

    def test_right_edge_border(self, bucket, config):
        workbook = Workbook()
        worksheet = render_week(bucket, 0, workbook, config)

        assert worksheet["J5"].border.right.style == "medium"
        assert worksheet["J5"].value is None

    def test_repeated_weekday_hours_from_first_entry(self, config):
        workbook = Workbook()
        bucket = WeekBucket(
            week=40,
            entries=[
                _entry("Mon", "02.10.23", "Feiertag"),
                _entry("Mon", "02.10.23", "SQL"),
                _entry("Tue", "03.10.23", "Views"),
                _entry("Tue", "03.10.23", "Feiertag"),
            ],
        )

        worksheet = render_week(bucket, 0, workbook, config)

        assert worksheet["B4"].value == "SQL"
        assert worksheet["J14"].value == 0
        assert worksheet["B15"].value == "Feiertag"
        assert worksheet["J25"].value == 8


class TestSheetWriter:

    def test_cells_are_write_once(self):
        worksheet = Workbook().active
        writer = SheetWriter(worksheet)
        writer.merge((0, 0, 1, 1), "Block", CellStyle())

        with pytest.raises(LayoutError):
            writer.write(1, 1, "again", CellStyle())


class TestBuildReport:

    def test_sheet_per_bucket_in_order(self, bucket, config):
        later = WeekBucket(week=41, entries=[_entry("Mon", "09.10.23", "Trigger")])

        workbook = build_report([bucket, later], config)

        assert workbook.sheetnames == ["02.10.23 - 03.10.23", "09.10.23 - 09.10.23"]
        assert workbook["09.10.23 - 09.10.23"]["E1"].value == "2"

    def test_write_report_overwrites_file(self, bucket, config, tmp_path):
        path = tmp_path / "Reports.xlsx"
        path.write_bytes(b"old")

        written = write_report([bucket], config, path)

        assert written == path
        assert load_workbook(path).sheetnames == ["02.10.23 - 03.10.23"]

    def test_no_weeks_no_file(self, config, tmp_path):
        path = tmp_path / "Reports.xlsx"

        assert write_report([], config, path) is None
        assert not path.exists()

    def test_no_weeks_removes_stale_report(self, config, tmp_path):
        path = tmp_path / "Reports.xlsx"
        path.write_bytes(b"old")

        assert write_report([], config, path) is None
        assert not path.exists()
