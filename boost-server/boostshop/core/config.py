"""Application configuration using pydantic settings with structured sections."""

from decimal import Decimal
from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

FACEBOOK_LINK_PATTERN = r"^https?://(www\.)?(facebook|fb)\.com/.+"


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False


class DatabaseSettings(BaseModel):
    url: str = Field(default="sqlite+aiosqlite:///./boostshop.db", alias="url")
    echo: bool = False
    pool_size: Optional[int] = None
    max_overflow: Optional[int] = None


class SecuritySettings(BaseModel):
    secret_key: str = Field(default="change-me", min_length=8)
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class ProviderSettings(BaseModel):
    """Upstream SMM panel connection."""

    base_url: str = "https://smmvaly.com/api/v2"
    api_key: str = Field(default="", repr=False)
    timeout_seconds: float = 5.0
    connect_retries: int = 3
    status_retries: int = 3
    retry_backoff_seconds: float = 0.5
    supports_idempotency_key: bool = False


class CatalogServiceSettings(BaseModel):
    key: str
    provider_service_id: str
    name: str
    rate_per_thousand: Decimal
    min_quantity: int = 1000
    max_quantity: int = 100000
    link_pattern: str = FACEBOOK_LINK_PATTERN


class DiscountTierSettings(BaseModel):
    min_quantity: int
    percent: Decimal


def _default_services() -> list[CatalogServiceSettings]:
    return [
        CatalogServiceSettings(
            key="page-likes", provider_service_id="1977", name="Facebook Page Likes",
            rate_per_thousand=Decimal("2.50"), max_quantity=100000,
        ),
        CatalogServiceSettings(
            key="page-followers", provider_service_id="1775", name="Facebook Page Followers",
            rate_per_thousand=Decimal("3.00"), max_quantity=50000,
        ),
        CatalogServiceSettings(
            key="profile-followers", provider_service_id="55", name="Facebook Profile Followers",
            rate_per_thousand=Decimal("3.50"), max_quantity=25000,
        ),
        CatalogServiceSettings(
            key="post-likes", provider_service_id="221", name="Facebook Post Likes",
            rate_per_thousand=Decimal("2.00"), max_quantity=50000,
        ),
        CatalogServiceSettings(
            key="post-reactions", provider_service_id="1779", name="Facebook Post Reactions",
            rate_per_thousand=Decimal("2.80"), max_quantity=30000,
        ),
        CatalogServiceSettings(
            key="video-views", provider_service_id="254", name="Facebook Video Views",
            rate_per_thousand=Decimal("1.50"), max_quantity=100000,
        ),
    ]


def _default_tiers() -> list[DiscountTierSettings]:
    return [
        DiscountTierSettings(min_quantity=20000, percent=Decimal("50")),
        DiscountTierSettings(min_quantity=10000, percent=Decimal("30")),
        DiscountTierSettings(min_quantity=5000, percent=Decimal("20")),
    ]


class CatalogSettings(BaseModel):
    currency: str = "USD"
    markup: Decimal = Decimal("5")
    services: list[CatalogServiceSettings] = Field(default_factory=_default_services)
    discount_tiers: list[DiscountTierSettings] = Field(default_factory=_default_tiers)


class PaymentSettings(BaseModel):
    paypal_base_url: str = "https://api-m.sandbox.paypal.com"
    paypal_client_id: str = ""
    paypal_client_secret: str = Field(default="", repr=False)
    paypal_timeout_seconds: float = 10.0
    gcash_number: str = ""
    gcash_exchange_rate: Decimal = Decimal("60")
    first_deposit_bonus_percent: Decimal = Decimal("25")
    min_deposit: Decimal = Decimal("1.00")
    max_deposit: Decimal = Decimal("1000.00")


class ReconciliationSettings(BaseModel):
    enabled: bool = True
    interval_seconds: float = 60.0
    max_submit_attempts: int = 3
    stale_submission_seconds: float = 300.0
    batch_size: int = 100


class Settings(BaseSettings):
    """Top-level application settings with nested sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    project_name: str = "Boost Storefront"
    api_prefix: str = "/api"

    server: ServerSettings = ServerSettings()
    database: DatabaseSettings = DatabaseSettings()
    security: SecuritySettings = SecuritySettings()
    logging: LoggingSettings = LoggingSettings()
    provider: ProviderSettings = ProviderSettings()
    catalog: CatalogSettings = CatalogSettings()
    payments: PaymentSettings = PaymentSettings()
    reconciliation: ReconciliationSettings = ReconciliationSettings()

    @property
    def database_url(self) -> str:
        return self.database.url

    @property
    def host(self) -> str:
        return self.server.host

    @property
    def port(self) -> int:
        return self.server.port


@lru_cache()
def get_settings() -> Settings:
    return Settings()
