"""
Centralized configuration management with validation.

All environment variables are loaded and validated here.
This ensures the engine's policy defaults are consistent everywhere.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from datetime import datetime, time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from dotenv import load_dotenv

load_dotenv()


KNOWN_SCORING_PROFILES = ("lifestyle", "high-performance", "moderate", "custom")
KNOWN_DAY_NAMES = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")


class Settings(BaseSettings):
    """Application settings with validation."""

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")  # json or text

    # Environment
    ENVIRONMENT: str = Field(default="development")

    # Scoring policy
    # Used only when neither the client nor the form has thresholds configured.
    CHECKIN_DEFAULT_SCORING_PROFILE: str = Field(default="lifestyle")

    # Recurring window policy
    CHECKIN_DEFAULT_START_DAY: str = Field(default="friday")
    CHECKIN_DEFAULT_START_TIME: str = Field(default="10:00")
    # IANA zone used to turn instants into calendar days.
    CHECKIN_TIMEZONE: str = Field(default="UTC")

    # Progress statistics
    CHECKIN_CONSISTENCY_BAND: int = Field(default=10, ge=0, le=100)
    CHECKIN_TREND_STABLE_BAND: int = Field(default=5, ge=0, le=100)
    CHECKIN_SCORE_HISTORY_LIMIT: int = Field(default=12, ge=1)


def parse_default_start_time(value: str) -> time:
    """
    Parse CHECKIN_DEFAULT_START_TIME ("HH:MM" or "HH:MM:SS", 24h).

    Raises:
        ValueError: naming the setting when the value is not a time of day
    """
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            parsed = datetime.strptime(value.strip(), fmt)
        except ValueError:
            continue
        return time(parsed.hour, parsed.minute)
    raise ValueError(f"CHECKIN_DEFAULT_START_TIME is not an HH:MM time: {value!r}")


def validate_engine_config(
    scoring_profile: str,
    start_day: str,
    start_time: str,
    timezone: str,
) -> None:
    """
    Fail fast on policy values the engine cannot fall back from sensibly.

    Raises:
        ValueError: describing the first offending setting
    """
    if scoring_profile not in KNOWN_SCORING_PROFILES:
        raise ValueError(
            f"CHECKIN_DEFAULT_SCORING_PROFILE must be one of {', '.join(KNOWN_SCORING_PROFILES)}; "
            f"got {scoring_profile!r}"
        )
    if start_day.strip().lower() not in KNOWN_DAY_NAMES:
        raise ValueError(f"CHECKIN_DEFAULT_START_DAY is not a day name: {start_day!r}")
    parse_default_start_time(start_time)
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"CHECKIN_TIMEZONE is not a known timezone: {timezone!r}") from e


# Global settings instance
settings = Settings()
