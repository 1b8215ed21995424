"""Application configuration utilities."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .services.errors import err_config

COUNTRY_ANCHOR = "5802ID"


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Root logger level")
    json_logs: bool = Field(default=True, description="Enable JSON formatted logs")


class QRISConfig(BaseModel):
    """Immutable merchant configuration handed to the payload builder."""

    model_config = ConfigDict(frozen=True)

    merchant_id: str = ""
    api_key: str = ""
    base_qr_string: str
    auth_token: str = ""
    auth_username: str = ""

    @model_validator(mode="after")
    def check_required(self) -> "QRISConfig":
        has_merchant_key = bool(self.merchant_id and self.api_key)
        has_token = bool(self.auth_token and self.auth_username)
        if not self.base_qr_string or not (has_merchant_key or has_token):
            raise err_config("merchant_id and api_key (or auth_token and auth_username) and base_qr_string must be filled")
        if COUNTRY_ANCHOR not in self.base_qr_string:
            raise err_config("Invalid base_qr_string format")
        return self


class Settings(BaseSettings):
    """Central application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="QRISPAY_",
        env_file=(Path(__file__).resolve().parent.parent / ".env"),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        populate_by_name=True,
    )

    app_name: str = Field(default="qrispay")
    environment: Literal["development", "staging", "production"] = Field(default="development")
    service_api_key: str = Field(default="dev-secret-key")
    merchant_id: str = Field(default="")
    api_key: str = Field(default="")
    base_qr_string: str = Field(default="")
    auth_token: str = Field(default="")
    auth_username: str = Field(default="")
    gateway_variant: Literal["merchant_key", "mutasi_token"] = Field(
        default="mutasi_token",
        validation_alias=AliasChoices("QRISPAY_GATEWAY", "QRISPAY_GATEWAY_VARIANT", "gateway_variant"),
    )
    gateway_url: str = Field(default="https://ftvpn.me/api/mutasi")
    request_timeout: float = Field(default=10.0, gt=0)
    poll_interval: float = Field(default=5.0, gt=0)
    recency_window_minutes: int = Field(default=5, ge=1, le=1440)
    timestamp_format: str | None = Field(default=None, description="strptime format overriding the adapter default")
    gateway_timezone: str = Field(default="Asia/Jakarta", description="Zone for gateway timestamps without an offset")
    qr_size: int = Field(default=256, ge=64, le=2048)
    database_url: str = Field(default="sqlite+aiosqlite:///./qrispay.db")
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def qris_config(self) -> QRISConfig:
        """Build the immutable merchant configuration, failing fast when incomplete."""

        return QRISConfig(
            merchant_id=self.merchant_id,
            api_key=self.api_key,
            base_qr_string=self.base_qr_string,
            auth_token=self.auth_token,
            auth_username=self.auth_username,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return memoized application settings."""

    return Settings()


settings = get_settings()
