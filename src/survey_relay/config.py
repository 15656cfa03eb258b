import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SITE_NAME = "顧客滿意度調查"
ALLOWED_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _load_log_level() -> str:
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    if log_level not in ALLOWED_LOG_LEVELS:
        raise ValueError(
            f"LOG_LEVEL must be one of {ALLOWED_LOG_LEVELS}, not '{log_level}'"
        )
    return log_level


def _load_http_timeout() -> int:
    http_timeout_seconds = int(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))
    if http_timeout_seconds <= 0:
        raise ValueError("HTTP_TIMEOUT_SECONDS must be a positive integer.")
    return http_timeout_seconds


def _require(name: str) -> str:
    # Empty strings count as missing, same as an unset variable.
    value = os.environ.get(name, "")
    if not value:
        raise KeyError(name)
    return value


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Configuration for the email variant, loaded from environment variables."""

    # --- Required Variables ---
    brevo_api_key: str
    to_email: str
    from_email: str

    # --- Optional Variables with Defaults ---
    site_name: str
    log_level: str
    http_timeout_seconds: int

    @classmethod
    def load_from_env(cls) -> "AppConfig":
        """
        Loads configuration from environment variables, performing validation and type casting.
        Fails fast with a ConfigurationError if anything is invalid.
        """
        try:
            brevo_api_key = _require("BREVO_API_KEY")
            to_email = _require("TO_EMAIL")
            from_email = _require("FROM_EMAIL")

            site_name = os.getenv("SITE_NAME") or DEFAULT_SITE_NAME
            log_level = _load_log_level()
            http_timeout_seconds = _load_http_timeout()

        except KeyError as e:
            raise ConfigurationError(
                "Missing environment variables. Please configure BREVO_API_KEY, TO_EMAIL, FROM_EMAIL.",
                context={"missing": e.args[0]},
            ) from e
        except (ValueError, TypeError) as e:
            raise ConfigurationError(
                f"Invalid value for an environment variable: {e}"
            ) from e

        return cls(
            brevo_api_key=brevo_api_key,
            to_email=to_email,
            from_email=from_email,
            site_name=site_name,
            log_level=log_level,
            http_timeout_seconds=http_timeout_seconds,
        )


@dataclass(frozen=True, slots=True)
class SheetsConfig:
    """Configuration for the spreadsheet variant."""

    spreadsheet_id: str
    sheet_name: str
    credentials_file: str
    log_level: str

    @property
    def append_range(self) -> str:
        return f"{self.sheet_name}!A1"

    @classmethod
    def load_from_env(cls) -> "SheetsConfig":
        try:
            spreadsheet_id = _require("SPREADSHEET_ID")
            sheet_name = os.getenv("SHEET_NAME") or "Sheet1"
            credentials_file = os.getenv("GOOGLE_CREDENTIALS_FILE") or "credentials.json"
            log_level = _load_log_level()

            if not os.path.isfile(credentials_file):
                raise ValueError(
                    f"GOOGLE_CREDENTIALS_FILE does not point to a file: '{credentials_file}'"
                )

        except KeyError as e:
            raise ConfigurationError(
                f"Missing required environment variable: {e.args[0]}"
            ) from e
        except (ValueError, TypeError) as e:
            raise ConfigurationError(
                f"Invalid value for an environment variable: {e}"
            ) from e

        return cls(
            spreadsheet_id=spreadsheet_id,
            sheet_name=sheet_name,
            credentials_file=credentials_file,
            log_level=log_level,
        )


# --- Singleton Factory Functions (Lazy-loaded and Cached) ---
@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """
    Loads the email configuration from environment variables.
    The result is cached using lru_cache, so the environment is only read once
    on the first successful call. A failed load is not cached.
    """
    logger.info("Loading application configuration from environment...")
    return AppConfig.load_from_env()


@lru_cache(maxsize=1)
def get_sheets_config() -> SheetsConfig:
    """Loads and caches the spreadsheet configuration."""
    logger.info("Loading spreadsheet configuration from environment...")
    return SheetsConfig.load_from_env()
