from decimal import Decimal
from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    app_name: str = "marketcart"
    app_version: str = "0.1.0"
    environment: str = "local"

    api_base_url: str = "http://localhost:8000"
    api_prefix: str = "/api"
    api_token: SecretStr | None = None
    api_client_id: str = ""
    api_client_secret: str = ""
    api_timeout_seconds: float = 10.0

    storage_dir: str = ".marketcart"
    cart_storage_key: str = "cart-storage"
    cart_persist_transient_flags: bool = False
    cart_serialize_mutations: bool = False

    checkout_shipping_cost_per_seller: Decimal = Decimal("15000")
    currency_symbol: str = "Rp"

    log_json: bool = False
    sentry_dsn: str | None = None
    sentry_traces_sample_rate: float = 0.0
    sentry_enable_logs: bool = False
    sentry_log_level: str = "error"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
