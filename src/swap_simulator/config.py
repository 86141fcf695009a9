from __future__ import annotations

from decimal import Decimal
from functools import cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_balances() -> dict[str, Decimal]:
    return {"ETH": Decimal("10"), "USD": Decimal("1000")}


class AppSettings(BaseSettings):
    price_feed_url: str = "https://interview.switcheo.com/prices.json"
    token_icons_listing_url: str = "https://api.github.com/repos/Switcheo/token-icons/contents/tokens"
    token_icons_base_url: str = "https://raw.githubusercontent.com/Switcheo/token-icons/main/tokens"

    http_timeout_seconds: float = 10.0
    http_retry_attempts: int = 5
    http_retry_backoff_seconds: float = 1

    settlement_delay_seconds: float = Field(default=2.0, ge=0)
    settlement_timeout_seconds: float = Field(default=30.0, gt=0)

    initial_balances: dict[str, Decimal] = Field(default_factory=_default_balances)
    preferred_source_currency: str = "ETH"
    preferred_target_currency: str = "USD"
    display_digits: int = Field(default=10, gt=0)

    model_config = SettingsConfigDict(env_prefix="SWAP_", env_file=".env", env_file_encoding="utf-8", extra="ignore")


@cache
def config() -> AppSettings:
    return AppSettings()
