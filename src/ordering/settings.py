"""Runtime settings for ordering and payment reconciliation.

Values are read from the environment (and an optional ``.env`` file). Field
aliases keep the variable names the storefront deployment already uses, e.g.
``BANKING_API_URL`` or ``BANKING_WEBHOOK_SECRET``.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class OrderingSettings(BaseSettings):
    """Tunables for order pricing, payment windows and the reconciliation drivers."""

    # Pricing
    currency: str = Field(default="VND", alias="ORDERING_CURRENCY")
    tax_rate: float = Field(default=0.10, ge=0.0, alias="ORDERING_TAX_RATE")
    free_shipping_threshold: float = Field(default=500_000, ge=0.0, alias="ORDERING_FREE_SHIPPING_THRESHOLD")
    flat_shipping_fee: float = Field(default=30_000, ge=0.0, alias="ORDERING_FLAT_SHIPPING_FEE")

    # Bank transfer
    reservation_window_minutes: int = Field(default=20, ge=1, alias="ORDERING_RESERVATION_WINDOW_MINUTES")
    bank_code: str = Field(default="MB", alias="BANK_CODE")
    bank_account_number: str = Field(default="0000000000", alias="BANK_ACCOUNT_NUMBER")
    bank_account_name: str = Field(default="STOREFRONT", alias="BANK_ACCOUNT_NAME")
    payment_reference_prefix: str = Field(default="DH", alias="ORDERING_PAYMENT_REFERENCE_PREFIX")
    amount_policy: Literal["at_least", "exact"] = Field(default="at_least", alias="ORDERING_AMOUNT_POLICY")

    # Webhook
    webhook_secret: str | None = Field(default=None, alias="BANKING_WEBHOOK_SECRET")
    webhook_secrets: dict[str, str] = Field(default_factory=dict, alias="BANKING_WEBHOOK_SECRETS")

    # Bank feed (polling fallback)
    bank_feed_url: str | None = Field(default=None, alias="BANKING_API_URL")
    bank_feed_token: str | None = Field(default=None, alias="BANKING_API_TOKEN")
    bank_feed_timeout_seconds: float = Field(default=60.0, gt=0, alias="BANKING_API_TIMEOUT_SECONDS")

    # Scheduler
    poll_enabled: bool = Field(default=True, alias="ORDERING_POLL_ENABLED")
    poll_interval_seconds: float = Field(default=300.0, gt=0, alias="ORDERING_POLL_INTERVAL_SECONDS")
    poll_window_minutes: int = Field(default=30, ge=1, alias="ORDERING_POLL_WINDOW_MINUTES")
    sweep_enabled: bool = Field(default=True, alias="ORDERING_SWEEP_ENABLED")
    sweep_interval_seconds: float = Field(default=600.0, gt=0, alias="ORDERING_SWEEP_INTERVAL_SECONDS")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    def webhook_secret_for(self, bank: str) -> str | None:
        """Shared secret for a bank's webhook, falling back to the global one."""
        return self.webhook_secrets.get(bank.upper()) or self.webhook_secret


@lru_cache
def get_settings() -> OrderingSettings:
    return OrderingSettings()


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    get_settings.cache_clear()
