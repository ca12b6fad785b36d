"""Playwright session management for Moodle authentication.

SessionManager persists the browser storage state (MoodleSession cookie)
between runs so the login form is only submitted when the saved session has
expired. PageFetcher reuses that session for plain page downloads through the
browser context's request API.
"""

import codecs
import re
from datetime import datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING

from playwright.async_api import Error as PlaywrightError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from src.portfolio.errors import AuthenticationError, TransientError, TransportError
from src.portfolio.logging import get_logger

if TYPE_CHECKING:
    from playwright.async_api import APIRequestContext, Browser, BrowserContext, Page

logger = get_logger(__name__)

LOGIN_PATH = "/login/index.php"
DASHBOARD_PATH = "/my/"

USERNAME_SELECTOR = "#username"
PASSWORD_SELECTOR = "#password"
SUBMIT_SELECTOR = "#loginbtn"
LOGIN_ERROR_SELECTOR = "div.alert.alert-danger"
USER_MENU_SELECTOR = ".usermenu, #user-menu-toggle"

# Moodle renders block titles as <h5>; they would otherwise leak into the
# classbook paragraphs. DOTALL is not set: only single-line headings go.
_H5_PATTERN = re.compile(r"<h5[^>]*>(.*?)</h5>", re.IGNORECASE)

_CHARSET_PATTERN = re.compile(r"charset=\"?([\w.:-]+)", re.IGNORECASE)
DEFAULT_ENCODING = "utf-8"


def strip_h5(body: str) -> str:
    """Remove <h5> elements from an HTML body."""
    return _H5_PATTERN.sub("", body)


def decode_body(content: bytes, content_type: str = "") -> str:
    """Decode a response body with the declared charset, UTF-8 otherwise.

    Undecodable bytes become U+FFFD instead of failing the page.
    """
    match = _CHARSET_PATTERN.search(content_type)
    encoding = match.group(1) if match else DEFAULT_ENCODING
    try:
        codecs.lookup(encoding)
    except LookupError:
        logger.debug("unknown_charset", charset=encoding)
        encoding = DEFAULT_ENCODING
    return content.decode(encoding, errors="replace")


class SessionManager:
    """Manages Playwright authentication state persistence and validation."""

    def __init__(
        self,
        base_url: str,
        state_dir: str = "data/state",
        max_session_age_hours: int = 24,
    ) -> None:
        """Initialize SessionManager.

        Args:
            base_url: Moodle base URL.
            state_dir: Directory to store session state files.
            max_session_age_hours: Maximum age of session before considering expired.
        """
        self.base_url = base_url.rstrip("/")
        self.state_dir = Path(state_dir)
        self.state_file = self.state_dir / "moodle_session.json"
        self.max_session_age_hours = max_session_age_hours

        self.state_dir.mkdir(parents=True, exist_ok=True)

        logger.info(
            "session_manager_initialized",
            state_file=str(self.state_file),
            max_age_hours=max_session_age_hours,
        )

    def is_session_valid(self) -> bool:
        """Check if a saved session exists and is still fresh.

        Returns:
            True if session file exists and is younger than max_session_age_hours.
        """
        if not self.state_file.exists():
            logger.debug("session_check", result="missing", reason="file_not_found")
            return False

        file_mtime = datetime.fromtimestamp(self.state_file.stat().st_mtime)
        age = datetime.now() - file_mtime
        max_age = timedelta(hours=self.max_session_age_hours)

        if age > max_age:
            logger.info(
                "session_check",
                result="expired",
                age_hours=age.total_seconds() / 3600,
                max_hours=self.max_session_age_hours,
            )
            return False

        logger.debug(
            "session_check",
            result="valid",
            age_hours=age.total_seconds() / 3600,
        )
        return True

    async def save_session(self, context: "BrowserContext") -> None:
        """Save browser context storage state to disk."""
        await context.storage_state(path=str(self.state_file))
        logger.info("session_saved", path=str(self.state_file))

    async def create_authenticated_context(
        self, browser: "Browser"
    ) -> "BrowserContext":
        """Create browser context, restoring session if valid."""
        if self.is_session_valid():
            context = await browser.new_context(storage_state=str(self.state_file))
            logger.info(
                "context_created", type="restored", state_file=str(self.state_file)
            )
        else:
            context = await browser.new_context()
            logger.info("context_created", type="fresh", reason="no_valid_session")

        return context

    async def check_page_authenticated(self, page: "Page") -> bool:
        """Check if the current page belongs to a logged-in session.

        Returns False on the login page or when the user menu is missing.
        """
        if LOGIN_PATH in page.url:
            logger.debug("auth_check", result="not_authenticated", reason="login_page")
            return False

        user_element = await page.query_selector(USER_MENU_SELECTOR)
        if user_element:
            logger.debug("auth_check", result="authenticated")
            return True

        logger.debug(
            "auth_check",
            result="not_authenticated",
            reason="indicator_not_found",
            selector=USER_MENU_SELECTOR,
        )
        return False

    async def ensure_authenticated(
        self, context: "BrowserContext", page: "Page", username: str, password: str
    ) -> None:
        """Reuse the restored session, or log in and persist the new one."""
        await page.goto(f"{self.base_url}{DASHBOARD_PATH}", wait_until="networkidle")
        if await self.check_page_authenticated(page):
            logger.info("session_reused")
            return

        if not username or not password:
            raise AuthenticationError("No valid session and no credentials configured")

        await self.authenticate(page, username, password)
        await self.save_session(context)

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_fixed(5),
        retry=retry_if_exception_type(TransientError),
    )
    async def authenticate(self, page: "Page", username: str, password: str) -> None:
        """Submit the Moodle login form and verify success.

        Retries on TransientError but fails fast on AuthenticationError.

        Raises:
            AuthenticationError: If Moodle rejects the credentials.
            TransientError: If network/temporary issues prevent authentication.
        """
        login_url = f"{self.base_url}{LOGIN_PATH}"
        logger.info("authentication_started", url=login_url)

        try:
            await page.goto(login_url, wait_until="networkidle", timeout=30000)

            # The form carries the hidden logintoken input itself
            await page.fill(USERNAME_SELECTOR, username)
            await page.fill(PASSWORD_SELECTOR, password)
            await page.click(SUBMIT_SELECTOR)
            await page.wait_for_load_state("networkidle", timeout=30000)

            if await page.query_selector(LOGIN_ERROR_SELECTOR):
                logger.error("authentication_failed", reason="invalid_login_details")
                raise AuthenticationError("Invalid login details")

            if not await self.check_page_authenticated(page):
                logger.error("authentication_failed", reason="verification_failed")
                raise AuthenticationError(
                    "Authentication verification failed - may be invalid credentials"
                )

            logger.info("authentication_succeeded")

        except AuthenticationError:
            raise
        except PlaywrightError as e:
            logger.warning("authentication_error", error=str(e), type=type(e).__name__)
            raise TransientError(f"Authentication failed: {e}") from e

    def clear_session(self) -> None:
        """Delete saved session state file."""
        if self.state_file.exists():
            self.state_file.unlink()
            logger.info("session_cleared", path=str(self.state_file))
        else:
            logger.debug("session_clear_skipped", reason="file_not_found")


class PageFetcher:
    """Downloads pages with the cookies of an authenticated browser context."""

    def __init__(self, request: "APIRequestContext", timeout_ms: int = 30000) -> None:
        self.request = request
        self.timeout_ms = timeout_ms

    async def fetch_text(self, url: str) -> str:
        """Fetch a page and return its decoded body with <h5> elements removed.

        Raises:
            TransportError: On network errors or non-success status codes.
        """
        try:
            response = await self.request.get(url, timeout=self.timeout_ms)
            if not response.ok:
                logger.warning(
                    "fetch_error_response",
                    url=url,
                    status=response.status,
                    status_text=response.status_text,
                )
                raise TransportError(url, response.status_text, status=response.status)
            body = decode_body(
                await response.body(), response.headers.get("content-type", "")
            )
        except PlaywrightError as e:
            logger.warning("fetch_network_error", url=url, error=str(e))
            raise TransportError(url, str(e)) from e

        logger.debug("page_fetched", url=url, length=len(body))
        return strip_h5(body)
