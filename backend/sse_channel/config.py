"""Channel options and service configuration with environment variable support."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .cors import CorsPolicy

DEFAULT_HISTORY_SIZE = 500
DEFAULT_PING_INTERVAL = 20_000


def positive_int(value: Any, default: int | None = None) -> int | None:
    """Coerce *value* to a positive int, falling back to *default*."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, float) and not value.is_integer():
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


class ChannelOptions(BaseModel):
    """Options accepted by :class:`~sse_channel.channel.SseChannel`.

    Both the wire-style names (``historySize``, ``retryTimeout``, ...) and the
    Python names are accepted. Malformed values fall back to the defaults.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        arbitrary_types_allowed=True,
    )

    history_size: int = Field(default=DEFAULT_HISTORY_SIZE, alias="historySize")
    history: list[Any] = Field(default_factory=list)
    retry_timeout: int | None = Field(default=None, alias="retryTimeout")
    ping_interval: int = Field(default=DEFAULT_PING_INTERVAL, alias="pingInterval")
    json_encode: bool = Field(default=False, alias="jsonEncode")
    cors: CorsPolicy = Field(default_factory=CorsPolicy.disabled)

    @field_validator("history_size", mode="before")
    @classmethod
    def normalize_history_size(cls, value: Any) -> int:
        return positive_int(value, DEFAULT_HISTORY_SIZE)

    @field_validator("history", mode="before")
    @classmethod
    def normalize_history(cls, value: Any) -> list[Any]:
        if isinstance(value, (list, tuple)):
            return list(value)
        return []

    @field_validator("retry_timeout", mode="before")
    @classmethod
    def normalize_retry_timeout(cls, value: Any) -> int | None:
        return positive_int(value)

    @field_validator("ping_interval", mode="before")
    @classmethod
    def normalize_ping_interval(cls, value: Any) -> int:
        return positive_int(value, DEFAULT_PING_INTERVAL)

    @field_validator("json_encode", mode="before")
    @classmethod
    def normalize_json_encode(cls, value: Any) -> bool:
        return bool(value)

    @field_validator("cors", mode="before")
    @classmethod
    def normalize_cors(cls, value: Any) -> CorsPolicy:
        return CorsPolicy.from_option(value)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SSE_", env_file=".env", extra="ignore")

    host: str = "127.0.0.1"
    port: int = 6775
    log_level: str = "INFO"

    # Origins allowed to open the sysinfo stream cross-origin ("*" for any)
    cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173"

    # Defaults for the sysinfo demo channel
    history_size: int = 300
    retry_timeout: int = 250
    ping_interval: int = DEFAULT_PING_INTERVAL

    # Data provider intervals in seconds
    sysinfo_interval: float = 0.25
    provider_interval: float = 1.0

    @property
    def origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)-22s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
log = logging.getLogger("sse_channel")
