# dragonfly2imgproxy/config.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dragonfly2imgproxy.errors import ConfigError

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_DEFAULT_EXEMPT_PATHS = "/healthz,/metrics"


def _csv_to_list(value: str) -> List[str]:
    items = [part.strip() for part in value.split(",")]
    return [item for item in items if item]


@dataclass(frozen=True)
class DragonflyConfig:
    """Process-wide rewrite configuration, shared read-only by every request."""

    secret: str
    url_prefix: str = ""

    def __post_init__(self) -> None:
        if not self.secret:
            raise ConfigError("DragonflySecret required")

    def __repr__(self) -> str:
        return f"DragonflyConfig(secret='***', url_prefix={self.url_prefix!r})"


class Settings(BaseSettings):
    """Environment driven settings; every variable carries the DRAGONFLY_ prefix."""

    model_config = SettingsConfigDict(env_prefix="DRAGONFLY_", extra="ignore")

    # --- Core ---
    secret: str = Field(default="", repr=False)
    url_prefix: str = Field(default="", description="Prepended to every fetched path")

    # --- Upstream imgproxy ---
    imgproxy_url: str = Field(default="http://127.0.0.1:8080")
    upstream_timeout_s: float = Field(default=30.0, gt=0)
    upstream_max_connections: int = Field(default=200, ge=1)
    upstream_max_keepalive: int = Field(default=100, ge=0)

    # --- Error mapping ---
    # False keeps the fail-closed 500 for every failure.
    client_error_status: bool = False

    # --- Routing ---
    exempt_paths: str = Field(default=_DEFAULT_EXEMPT_PATHS)

    # --- Logging / metrics ---
    log_json: bool = True
    log_level: LogLevel = "INFO"
    metrics_enabled: bool = True

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("imgproxy_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def exempt_path_list(self) -> List[str]:
        return _csv_to_list(self.exempt_paths)

    def to_config(self) -> DragonflyConfig:
        return DragonflyConfig(secret=self.secret, url_prefix=self.url_prefix)


def load_settings() -> Settings:
    return Settings()
