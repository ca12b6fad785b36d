"""Tests for session state handling and the page fetcher."""

import os
import time

import pytest
from playwright.async_api import Error as PlaywrightError

from src.portfolio.errors import TransportError
from src.portfolio.pages.classbook import fetch_all
from src.portfolio.session import PageFetcher, SessionManager, decode_body, strip_h5
from tests.conftest import sessions_page


class FakeResponse:

    def __init__(
        self,
        content: str | bytes,
        status: int = 200,
        status_text: str = "OK",
        content_type: str = "text/html; charset=utf-8",
    ) -> None:
        self.content = content.encode("utf-8") if isinstance(content, str) else content
        self.status = status
        self.status_text = status_text
        self.headers = {"content-type": content_type}

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    async def body(self) -> bytes:
        return self.content


class FakeRequestContext:
    """Stands in for BrowserContext.request."""

    def __init__(self, responses: dict[str, FakeResponse]) -> None:
        self.responses = responses

    async def get(self, url: str, timeout: float | None = None) -> FakeResponse:
        if url not in self.responses:
            raise PlaywrightError("net::ERR_NAME_NOT_RESOLVED")
        return self.responses[url]


def test_strip_h5():
    body = '<div><h5 class="card-title">Block</h5><p>SQL</p><H5>Mehr</H5></div>'
    assert strip_h5(body) == "<div><p>SQL</p></div>"


class TestDecodeBody:

    @pytest.mark.parametrize("content,content_type,expected", [
        ("Grüße".encode("utf-8"), "text/html; charset=utf-8", "Grüße"),
        ("Grüße".encode("latin-1"), "text/html; charset=ISO-8859-1", "Grüße"),
        ("Grüße".encode("latin-1"), 'text/html; charset="iso-8859-1"', "Grüße"),
        ("Grüße".encode("latin-1"), "text/html", "Gr\ufffd\ufffde"),
        ("Grüße".encode("utf-8"), "text/html; charset=nonsense", "Grüße"),
        (b"SQL", "", "SQL"),
    ])
    def test_charsets(self, content, content_type, expected):
        assert decode_body(content, content_type) == expected


class TestPageFetcher:

    @pytest.mark.asyncio
    async def test_success_strips_headings(self):
        fetcher = PageFetcher(FakeRequestContext({
            "https://moodle.test/": FakeResponse("<h5>Kurse</h5><p>LF05</p>"),
        }))

        assert await fetcher.fetch_text("https://moodle.test/") == "<p>LF05</p>"

    @pytest.mark.asyncio
    async def test_undeclared_latin1_body_is_decoded_leniently(self):
        fetcher = PageFetcher(FakeRequestContext({
            "https://moodle.test/": FakeResponse(
                "<p>Grüße</p>".encode("latin-1"), content_type="text/html"
            ),
        }))

        assert await fetcher.fetch_text("https://moodle.test/") == "<p>Gr\ufffd\ufffde</p>"

    @pytest.mark.asyncio
    async def test_latin1_page_does_not_fail_the_batch(self):
        good = sessions_page(("Mon, 02.10.23", "<p>SQL</p>"))
        bad = sessions_page(("Tue, 03.10.23", "<p>Grüße</p>"))
        fetcher = PageFetcher(FakeRequestContext({
            "https://moodle.test/good": FakeResponse(good),
            "https://moodle.test/bad": FakeResponse(
                bad.encode("latin-1"), content_type="text/html"
            ),
        }))

        entries = await fetch_all(
            ["https://moodle.test/good", "https://moodle.test/bad"], fetcher.fetch_text
        )

        assert sorted(e.date for e in entries) == ["02.10.23", "03.10.23"]

    @pytest.mark.asyncio
    async def test_error_status(self):
        fetcher = PageFetcher(FakeRequestContext({
            "https://moodle.test/": FakeResponse("", status=503, status_text="Service Unavailable"),
        }))

        with pytest.raises(TransportError) as excinfo:
            await fetcher.fetch_text("https://moodle.test/")
        assert excinfo.value.status == 503

    @pytest.mark.asyncio
    async def test_network_error(self):
        fetcher = PageFetcher(FakeRequestContext({}))

        with pytest.raises(TransportError):
            await fetcher.fetch_text("https://moodle.test/")


class TestSessionManager:

    def test_missing_state_is_invalid(self, tmp_path):
        manager = SessionManager("https://moodle.test", state_dir=str(tmp_path))
        assert manager.is_session_valid() is False

    def test_fresh_state_is_valid(self, tmp_path):
        manager = SessionManager("https://moodle.test", state_dir=str(tmp_path))
        manager.state_file.write_text("{}")
        assert manager.is_session_valid() is True

    def test_expired_state_is_invalid(self, tmp_path):
        manager = SessionManager(
            "https://moodle.test", state_dir=str(tmp_path), max_session_age_hours=1
        )
        manager.state_file.write_text("{}")
        two_hours_ago = time.time() - 2 * 3600
        os.utime(manager.state_file, (two_hours_ago, two_hours_ago))
        assert manager.is_session_valid() is False

    def test_clear_session(self, tmp_path):
        manager = SessionManager("https://moodle.test", state_dir=str(tmp_path))
        manager.state_file.write_text("{}")
        manager.clear_session()
        assert not manager.state_file.exists()
        assert manager.is_session_valid() is False
