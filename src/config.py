import re
from functools import lru_cache
from typing import Any, Optional

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CASHBACK_INTERVAL_MS = 5 * 60 * 1000
DEFAULT_EXPIRE_INTERVAL_MS = 5 * 60 * 1000
DEFAULT_PUSH_INTERVAL_MS = 3 * 60 * 1000

_LEADING_INT = re.compile(r"\s*(\d+)")


def resolve_interval_ms(raw: Optional[str], default_ms: int) -> int:
    """Resolve an interval setting to milliseconds.

    Only the leading digits count, so "1.5" reads as 1 and "30s" as 30.
    Values below 1000 are taken as seconds. Blank, unparseable or
    non-positive values fall back to ``default_ms``.
    """
    if raw is None:
        return default_ms
    match = _LEADING_INT.match(str(raw))
    if match is None:
        return default_ms
    parsed = int(match.group(1))
    if parsed <= 0:
        return default_ms
    return parsed * 1000 if parsed < 1000 else parsed


def resolve_flag(raw: Any, default: bool) -> bool:
    """Only "true" (any case) enables a flag; any other value disables it."""
    if raw is None or str(raw).strip() == "":
        return default
    return str(raw).strip().lower() == "true"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    environment: str = "development"  # "development" or "production"

    # Database
    database_url: str = "sqlite:///./data/poppik.db"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False

    # Cashback scheduler
    cashback_scheduler_enabled: bool = True
    cashback_scheduler_interval_ms: str = ""
    cashback_batch_size: int = 200

    # Offer / contest expiry scheduler
    expire_scheduler_enabled: bool = True
    expire_scheduler_interval_ms: str = ""

    # Push scheduler
    push_scheduler_enabled: bool = False
    push_scheduler_interval_ms: str = ""
    vapid_public_key: str = ""
    vapid_private_key: str = ""
    vapid_subject: str = "mailto:support@poppik.in"

    # Admin
    admin_api_key: str = ""

    @field_validator(
        "cashback_scheduler_enabled",
        "expire_scheduler_enabled",
        "push_scheduler_enabled",
        mode="before",
    )
    @classmethod
    def _parse_enabled_flag(cls, value: Any, info: ValidationInfo) -> bool:
        return resolve_flag(value, cls.model_fields[info.field_name].default)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cashback_interval_ms(self) -> int:
        return resolve_interval_ms(
            self.cashback_scheduler_interval_ms, DEFAULT_CASHBACK_INTERVAL_MS
        )

    @property
    def expire_interval_ms(self) -> int:
        return resolve_interval_ms(
            self.expire_scheduler_interval_ms, DEFAULT_EXPIRE_INTERVAL_MS
        )

    @property
    def push_interval_ms(self) -> int:
        return resolve_interval_ms(
            self.push_scheduler_interval_ms, DEFAULT_PUSH_INTERVAL_MS
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
