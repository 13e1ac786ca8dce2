from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_env: str = Field(default="dev", alias="APP_ENV")
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8000, alias="APP_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    internal_api_token: str = Field(
        default="dev_internal_token_change_me",
        alias="INTERNAL_API_TOKEN",
    )
    internal_api_allowlist: str = Field(
        default="127.0.0.1/32,::1/128",
        alias="INTERNAL_API_ALLOWLIST",
    )
    internal_api_trusted_proxies: str = Field(default="", alias="INTERNAL_API_TRUSTED_PROXIES")

    storage_backend: str = Field(default="memory", alias="STORAGE_BACKEND")
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")
    storage_namespace: str = Field(default="@digitox", alias="STORAGE_NAMESPACE")

    promo_default_validity_days: int = Field(default=30, ge=0, alias="PROMO_DEFAULT_VALIDITY_DAYS")
    promo_auto_initialize: bool = Field(default=True, alias="PROMO_AUTO_INITIALIZE")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
