"""Shared browser utilities for resource blocking and read-only guardrails."""

from playwright.async_api import Page, Route

from src.portfolio.logging import get_logger

log = get_logger(__name__)

BLOCKED_RESOURCE_TYPES: frozenset[str] = frozenset(
    {"image", "stylesheet", "font", "media"}
)

# Mutating methods, aborted in read-only mode
_BLOCKED_METHODS: frozenset[str] = frozenset({"POST", "PUT", "DELETE", "PATCH"})

# The login form is the only POST the report builder ever needs.
WHITELISTED_POST_PATHS: frozenset[str] = frozenset({"/login/index.php"})


async def configure_page_for_scraping(page: Page, *, read_only: bool = True) -> None:
    """Set up a Playwright page for the login round trip.

    Blocks images, stylesheets, fonts and media, and in read-only mode any
    mutating request except the login form submission.

    Args:
        page: Playwright Page instance.
        read_only: If True, also block POST/PUT/DELETE/PATCH requests.
    """

    async def _block_resources(route: Route) -> None:
        request = route.request

        if read_only and request.method in _BLOCKED_METHODS:
            if any(path in request.url for path in WHITELISTED_POST_PATHS):
                await route.continue_()
                return
            log.warning(
                "blocked_mutating_request",
                method=request.method,
                url=request.url,
            )
            await route.abort("blockedbyclient")
            return

        if request.resource_type in BLOCKED_RESOURCE_TYPES:
            await route.abort()
        else:
            await route.continue_()

    await page.route("**/*", _block_resources)
    page.set_default_timeout(30000)
    page.set_default_navigation_timeout(30000)
