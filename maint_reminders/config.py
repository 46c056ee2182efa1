from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache
from typing import List

from maint_reminders.services.business_calendar import covers_every_day
from maint_reminders.services.interval_classifier import IntervalTier


DEFAULT_INTERVAL_TIERS = [
    IntervalTier(threshold_days=90, interval_days=180, label="low"),
    IntervalTier(threshold_days=30, interval_days=90, label="medium"),
    IntervalTier(threshold_days=0, interval_days=30, label="high"),
]

# Fixed-date national holidays (month-day, year independent)
DEFAULT_HOLIDAYS = [
    "01-01",
    "03-24",
    "04-02",
    "05-01",
    "05-25",
    "06-20",
    "07-09",
    "12-08",
    "12-25",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "postgresql+asyncpg://localhost:5432/maint_reminders"

    @field_validator('DATABASE_URL', mode='before')
    @classmethod
    def convert_database_url(cls, v: str) -> str:
        """Convert postgresql:// to postgresql+asyncpg:// for async support."""
        if v and v.startswith('postgresql://'):
            return v.replace('postgresql://', 'postgresql+asyncpg://', 1)
        return v

    # Reminder scheduling
    INTERVAL_TIERS: List[IntervalTier] = DEFAULT_INTERVAL_TIERS
    DEFAULT_INTERVAL_DAYS: int | None = None
    HOLIDAYS: List[str] = DEFAULT_HOLIDAYS

    @field_validator('INTERVAL_TIERS')
    @classmethod
    def validate_interval_tiers(cls, v: List[IntervalTier]) -> List[IntervalTier]:
        """Tiers must be strictly descending by threshold and end in a catch-all."""
        if not v:
            raise ValueError("INTERVAL_TIERS must contain at least one tier")
        for previous, current in zip(v, v[1:]):
            if current.threshold_days >= previous.threshold_days:
                raise ValueError("INTERVAL_TIERS thresholds must be strictly decreasing")
        if v[-1].threshold_days != 0:
            raise ValueError("The last interval tier must have threshold_days = 0")
        if any(tier.interval_days <= 0 for tier in v):
            raise ValueError("interval_days must be positive for every tier")
        return v

    @field_validator('DEFAULT_INTERVAL_DAYS')
    @classmethod
    def validate_default_interval(cls, v: int | None) -> int | None:
        if v is not None and v <= 0:
            raise ValueError("DEFAULT_INTERVAL_DAYS must be positive")
        return v

    @field_validator('HOLIDAYS')
    @classmethod
    def validate_holidays(cls, v: List[str]) -> List[str]:
        """Holidays are MM-DD strings; the date must exist in a leap year."""
        parsed = [parse_holiday(value) for value in v]
        if covers_every_day(parsed):
            raise ValueError("HOLIDAYS must leave at least one business day")
        return v

    # Scheduler
    SCHEDULER_ENABLED: bool = True
    REMINDER_CRON: str = "0 9 * * *"
    SCAN_CONCURRENCY: int = 4

    # Notification content
    REMINDER_DATE_FORMAT: str = "%d/%m/%Y"
    REMINDER_MESSAGE_TEMPLATE: str = (
        "Hi {name}! Your vehicle {plate} is due for its next service on {date}. "
        "Reply to this message to book an appointment."
    )

    # Twilio
    TWILIO_ACCOUNT_SID: str | None = None
    TWILIO_AUTH_TOKEN: str | None = None
    TWILIO_PHONE_NUMBER: str | None = None
    TWILIO_CHANNEL: str = "whatsapp"  # whatsapp or sms

    @field_validator('TWILIO_CHANNEL')
    @classmethod
    def validate_channel(cls, v: str) -> str:
        v = v.lower()
        if v not in ("whatsapp", "sms"):
            raise ValueError("TWILIO_CHANNEL must be 'whatsapp' or 'sms'")
        return v

    # CORS
    FRONTEND_URL: str = "http://localhost:5173"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    DOCS_ENABLED: bool = True

    @property
    def sqlalchemy_echo(self) -> bool:
        """Never echo SQL outside development."""
        return self.DEBUG and self.ENVIRONMENT == "development"

    @property
    def holiday_set(self) -> frozenset:
        return frozenset(parse_holiday(value) for value in self.HOLIDAYS)

    class Config:
        env_file = ".env"
        case_sensitive = True


def parse_holiday(value: str) -> tuple[int, int]:
    """Parse an "MM-DD" holiday into a (month, day) pair."""
    try:
        month_str, day_str = value.strip().split("-")
        month, day = int(month_str), int(day_str)
    except ValueError:
        raise ValueError(f"Invalid holiday {value!r}, expected MM-DD")
    days_in_month = [31, 29, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31]
    if not 1 <= month <= 12 or not 1 <= day <= days_in_month[month - 1]:
        raise ValueError(f"Invalid holiday {value!r}, no such calendar day")
    return month, day


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
