"""Application configuration loading via Pydantic settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings


_STAGING_API = "https://staging-api.offramp.local"
_PRODUCTION_API = "https://api.offramp.local"


class Settings(BaseSettings):
    """Runtime configuration sourced from environment variables."""

    secret_key_salt: str = Field(..., alias="SECRET_KEY_SALT")
    env: Literal["dev", "prod"] = Field(default="dev", alias="OFFRAMP_ENV")
    transfer_api_base: str = Field(default=_STAGING_API, alias="TRANSFER_API_BASE")
    transfer_api_token: str | None = Field(default=None, alias="TRANSFER_API_TOKEN")
    transfer_api_timeout: float = Field(default=10.0, gt=0, alias="TRANSFER_API_TIMEOUT")
    transfer_currency: str = Field(default="USDT", alias="TRANSFER_CURRENCY")
    deposit_network: str = Field(default="TRC20", alias="DEPOSIT_NETWORK")
    request_rate_limit_per_minute: int = Field(default=60, alias="REQUEST_RATE_LIMIT_PER_MINUTE")
    wizard_ttl_seconds: float = Field(default=1800.0, gt=0, alias="WIZARD_TTL_SECONDS")
    wizard_max_sessions: int = Field(default=1000, ge=1, alias="WIZARD_MAX_SESSIONS")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def model_post_init(self, __context: Any) -> None:  # pragma: no cover - simple field mutation
        """Point at the production API when running in prod without an explicit base."""

        if self.env == "prod" and "transfer_api_base" not in self.model_fields_set:
            self.transfer_api_base = _PRODUCTION_API


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()  # type: ignore[call-arg]
