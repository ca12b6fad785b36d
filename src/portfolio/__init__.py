"""Moodle classbook scraper and weekly training record builder.

Scrapes the classbooks and attendance of a Moodle learning platform and
renders them as one "Ausbildungsnachweis" sheet per calendar week.
"""

from src.portfolio.models import AttendanceRecord, ClassbookEntry, Course, WeekBucket
from src.portfolio.normalize import normalize
from src.portfolio.report import build_report, render_week, write_report
from src.portfolio.weeks import reconcile_and_bucket

__all__ = [
    "AttendanceRecord",
    "ClassbookEntry",
    "Course",
    "WeekBucket",
    "normalize",
    "build_report",
    "render_week",
    "write_report",
    "reconcile_and_bucket",
]
