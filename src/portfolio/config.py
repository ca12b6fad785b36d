"""Portfolio configuration loaded from environment variables.

Covers the Moodle account, the training company shown on every sheet, the
signature block and the scraping knobs.
"""

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_ZERO_HOUR_KEYWORDS = [
    "Kein Unterricht",
    "Feiertag",
    "FREI",
    "Frei",
    "Unterrichtsfrei",
    "Keine Teilnahme am Unterricht aus gesundheitlichen Gründen",
]


class PortfolioConfig(BaseSettings):
    """Portfolio configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # Moodle account (login form on /login/index.php)
    moodle_user: str = Field(
        default="",
        description="Moodle username",
    )
    moodle_pass: str = Field(
        default="",
        description="Moodle password",
    )

    # Company
    educator_name: str = Field(
        default="",
        description="Instructor name printed next to 'Ausbilder:'",
    )
    location: str = Field(
        default="",
        description="Training location printed next to 'Ort der Ausbildung:'",
    )

    # Signature
    signature: str = Field(
        default="",
        description="Signature text written above the trainee caption",
    )
    signature_font_name: str = Field(
        default="Arial",
        description="Font used for the signature text",
    )
    signature_font_size: int = Field(
        default=10,
        description="Font size used for the signature text",
    )

    # Website
    base_url: str = Field(
        default="https://lernplattform.gfn.de",
        description="Moodle base URL without trailing slash",
    )

    # Options
    test_mode: bool = Field(
        default=False,
        description="Only scrape the first course",
    )
    output_file: str = Field(
        default="Reports.xlsx",
        description="Report file, overwritten on every run",
    )
    max_concurrent_tasks: int = Field(
        default=100,
        description="Maximum number of courses resolved at the same time",
    )
    request_delay_ms: int = Field(
        default=100,
        description="Delay before each course classbook fetch",
    )
    zero_hour_keywords: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ZERO_HOUR_KEYWORDS),
        description="Activity phrases that force a day's hours to zero",
    )

    # Paths
    state_dir: str = Field(
        default="data/state",
        description="Directory for Playwright session state",
    )

    # Session settings
    max_session_age_hours: int = Field(
        default=24,
        description="Maximum age of Playwright session before re-authentication",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Singleton pattern
_config: PortfolioConfig | None = None


def get_config() -> PortfolioConfig:
    """Get the portfolio configuration singleton.

    Returns:
        PortfolioConfig: Portfolio configuration instance
    """
    global _config
    if _config is None:
        _config = PortfolioConfig()
    return _config
