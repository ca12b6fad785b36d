"""
Pytest configuration and shared fixtures.
"""

import pytest

from src.portfolio.config import PortfolioConfig
from src.portfolio.errors import TransportError

BASE_URL = "https://moodle.test"


class FakeFetcher:
    """In-memory stand-in for PageFetcher.fetch_text.

    Unknown URLs fail like a 404 response.
    """

    def __init__(self, pages: dict[str, str]) -> None:
        self.pages = pages
        self.requested: list[str] = []

    async def fetch_text(self, url: str) -> str:
        self.requested.append(url)
        if url not in self.pages:
            raise TransportError(url, "Not Found", status=404)
        return self.pages[url]


def sessions_page(*rows: tuple[str, str]) -> str:
    """Attendance module page (view=5) with one table row per (date cell, description html)."""
    body = "".join(
        f'<tr><td class="datecol cell c0">{date_cell}</td>'
        f'<td class="desccol cell c1">{description}</td></tr>'
        for date_cell, description in rows
    )
    return (
        "<html><body>"
        '<table class="generaltable attwidth boxaligncenter">'
        "<thead><tr><th>Datum</th><th>Beschreibung</th></tr></thead>"
        f"<tbody>{body}</tbody>"
        "</table></body></html>"
    )


def attendance_page(*rows: tuple[str, str, str]) -> str:
    """Attendance overview with one row per (date, from, to)."""
    body = "".join(
        f"<tr><td>Mo</td><td>{date}</td><td>{from_time}</td><td>{to_time}</td></tr>"
        for date, from_time, to_time in rows
    )
    return (
        '<html><body><table class="table">'
        "<tr><th>Tag</th><th>Datum</th><th>Von</th><th>Bis</th></tr>"
        f"{body}</table></body></html>"
    )


def course_page(key: str, link: str) -> str:
    return (
        '<html><body><ul class="list-group">'
        '<li class="list-group-item" data-key="1"><a href="/forum">Forum</a></li>'
        f'<li class="list-group-item" data-key="{key}"><a href="{link}">Klassenbuch</a></li>'
        "</ul></body></html>"
    )


def classbook_page(attendance_id: str) -> str:
    return (
        "<html><body>"
        f'<a href="{BASE_URL}/mod/attendance/view.php?id={attendance_id}">Anwesenheit</a>'
        "</body></html>"
    )


def dashboard_page(*cards: tuple[str, str]) -> str:
    body = "".join(
        f'<div class="card" data-courseid="{course_id}">'
        f'<div class="card-title">{title}</div></div>'
        for course_id, title in cards
    )
    return f"<html><body>{body}</body></html>"


@pytest.fixture
def config():
    """Configuration without delays and with printable company fields."""
    return PortfolioConfig(
        base_url=BASE_URL,
        educator_name="Erika Mustermann",
        location="Berlin",
        signature="Max Muster",
        signature_font_name="Segoe Script",
        signature_font_size=12,
        request_delay_ms=0,
        test_mode=False,
    )
