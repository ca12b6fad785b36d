"""Error hierarchy for scraping and report building.

Transient failures (network errors, non-success responses) are separated from
permanent ones (page structure changed, unparsable dates) so callers can decide
what to isolate and what to abort on. Only login is retried with tenacity:

    @retry(retry=retry_if_exception_type(TransientError), stop=stop_after_attempt(2))
    async def authenticate(page, username, password):
        ...
"""


class ScrapingError(Exception):
    """Base exception for all portfolio errors."""

    pass


class TransientError(ScrapingError):
    """Temporary failure that may succeed on a later run.

    Examples: network timeouts, 503 Service Unavailable.
    """

    pass


class TransportError(TransientError):
    """Network error or non-success HTTP status while fetching a page.

    Per-link fetches drop the link; top-level fetches abort the run.
    """

    def __init__(self, url: str, reason: str, status: int | None = None) -> None:
        self.url = url
        self.reason = reason
        self.status = status
        detail = f"HTTP {status}" if status is not None else reason
        super().__init__(f"Failed to fetch {url}: {detail}")


class PermanentError(ScrapingError):
    """Failure that won't succeed on retry."""

    pass


class StructureError(PermanentError):
    """An expected HTML element or attribute is missing.

    Raised when the platform serves a page layout the selectors don't know.
    """

    pass


class DateParseError(PermanentError):
    """A classbook date could not be parsed.

    Dates come straight from the page structure, so this means an unsupported
    page format and is always fatal.
    """

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Failed to parse date: {value!r}")


class AuthenticationError(PermanentError):
    """Login rejected or session invalid - needs new credentials."""

    pass


class LayoutError(PermanentError):
    """A report cell was written twice on the same sheet."""

    pass
