from __future__ import annotations

from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ADMIN_API_KEY = "bakery-admin-dev-key"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="BAKERY_", extra="ignore")

    app_name: str = "Sugar Mama Cookie Co Orders"
    env: str = "dev"
    log_level: str = "INFO"

    database_url: str = "sqlite+pysqlite:///./bakery.db"

    # Seed values for the pricing singleton; the stored record wins once it exists.
    default_base_price: Decimal = Decimal("3.50")
    default_discount_tiers: list[dict] = Field(
        default_factory=lambda: [
            {"min_quantity": 12, "discount_fraction": "0.10"},
            {"min_quantity": 24, "discount_fraction": "0.20"},
            {"min_quantity": 50, "discount_fraction": "0.30"},
        ]
    )

    order_number_prefix: str = "QU"
    display_timezone: str = "Australia/Melbourne"
    currency_symbol: str = "$"

    # Notification backend: log | resend
    notification_backend: str = "log"
    notification_max_workers: int = 4
    operator_email: str = "hello@sugarmamacookieco.com.au"
    resend_api_key: str | None = None
    resend_base_url: str = "https://api.resend.com"
    resend_from_email: str = "Sugar Mama Cookie Co <orders@sugarmamacookieco.com.au>"
    resend_timeout_seconds: int = 15

    auth_enabled: bool = True
    admin_api_key: str = DEFAULT_ADMIN_API_KEY
    admin_actor_id: str = "admin-001"

    def model_post_init(self, __context) -> None:
        if self.env.lower() == "dev":
            return

        insecure_items: list[str] = []
        if self.admin_api_key == DEFAULT_ADMIN_API_KEY:
            insecure_items.append("BAKERY_ADMIN_API_KEY")
        if self.notification_backend == "resend" and not self.resend_api_key:
            insecure_items.append("BAKERY_RESEND_API_KEY")

        if insecure_items:
            raise ValueError(
                "missing or insecure default settings are not allowed outside dev mode; set env vars: "
                + ", ".join(sorted(insecure_items))
            )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
