import logging
from typing import Annotated, Literal

from croniter import croniter
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


logger = logging.getLogger(__name__)

LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class CustomSettings(BaseSettings):
    """Reconciler settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    feed_sources: Annotated[list[str] | None, NoDecode] = None
    feed_dir: str | None = None
    feed_glob: str = "*.xml"
    channels_file: str = "channels.csv"
    output_dir: str = "."
    preferred_title_lang: str = "en"
    identity_scope: Literal["channel", "run"] = "channel"

    feed_parse_timeout_sec: int = 600  # XML parsing timeout, 0 disables timeout
    download_timeout_sec: float = 120.0
    download_max_retries: int = 3
    download_backoff_factor: float = 2.0
    download_max_concurrency: int = 4

    reconcile_cron: str = "0 3 * * *"  # Daily at 3 AM
    reconcile_misfire_grace_sec: int = 3600  # Allow 1 hour to run missed jobs

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("feed_sources", mode="before")
    @classmethod
    def parse_feed_sources(cls, value):
        """Parse comma-separated locations or list."""
        if value is None:
            return []
        if isinstance(value, str):
            if not value.strip():
                return []
            return [location.strip() for location in value.split(",") if location.strip()]
        if isinstance(value, (list, tuple)):
            return [str(location).strip() for location in value if str(location).strip()]
        return []

    @field_validator("feed_sources", mode="after")
    @classmethod
    def validate_feed_sources(cls, value):
        """Feed sources are HTTP/HTTPS URLs or local paths."""
        if not value:
            return value

        for location in value:
            if "://" in location and not location.lower().startswith(("http://", "https://")):
                raise ValueError(f"Feed source URL must be HTTP/HTTPS: {location}")
        return value

    @field_validator("feed_dir")
    @classmethod
    def normalize_feed_dir(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @field_validator("feed_glob", "channels_file", "output_dir")
    @classmethod
    def validate_not_blank(cls, value: str, info) -> str:
        """Paths and patterns must not be empty."""
        if not value.strip():
            raise ValueError(f"{info.field_name} must not be empty")
        return value.strip()

    @field_validator("preferred_title_lang")
    @classmethod
    def normalize_language(cls, value: str) -> str:
        """Language tags are compared case-insensitively."""
        return value.strip().lower()

    @field_validator("feed_parse_timeout_sec")
    @classmethod
    def validate_non_negative(cls, value: int, info) -> int:
        if value < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return value

    @field_validator(
        "download_timeout_sec",
        "download_max_retries",
        "download_max_concurrency",
        "reconcile_misfire_grace_sec",
    )
    @classmethod
    def validate_positive(cls, value, info):
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("download_backoff_factor")
    @classmethod
    def validate_backoff_factor(cls, value: float) -> float:
        """Ensure the backoff multiplier is at least 1."""
        if value < 1:
            raise ValueError("download_backoff_factor must be >= 1")
        return value

    @field_validator("reconcile_cron")
    @classmethod
    def validate_cron_expression(cls, value: str) -> str:
        """Validate cron expression is valid."""
        try:
            croniter(value)
            return value
        except (ValueError, KeyError) as exc:
            raise ValueError(f"Invalid cron expression '{value}': {exc}") from exc

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(LOG_LEVELS)}")
        return normalized

    @model_validator(mode="after")
    def validate_feed_configuration(self):
        """Validate cross-field configuration."""
        if not self.feed_sources and not self.feed_dir:
            logger.warning(
                "No feed sources or feed directory configured - runs will fail until one is given"
            )
        return self

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  Feed Sources: %s configured", len(self.feed_sources or []))
        logger.info("  Feed Directory: %s (%s)", self.feed_dir or "not set", self.feed_glob)
        logger.info("  Channels File: %s", self.channels_file)
        logger.info("  Output Directory: %s", self.output_dir)
        logger.info("  Preferred Title Language: %s", self.preferred_title_lang or "none")
        logger.info("  Identity Scope: %s", self.identity_scope)
        logger.info(
            "  Parse Timeout: %s seconds",
            self.feed_parse_timeout_sec or "disabled",
        )
        logger.info(
            "  Download: timeout=%.1fs retries=%s backoff=%.1f concurrency=%s",
            self.download_timeout_sec,
            self.download_max_retries,
            self.download_backoff_factor,
            self.download_max_concurrency,
        )
        logger.info("  Reconcile Schedule: %s", self.reconcile_cron)
        logger.info("  Reconcile Misfire Grace: %ss", self.reconcile_misfire_grace_sec)


def setup_logging(level: str = "INFO") -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
