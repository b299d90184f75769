"""Typed configuration models for ODX client runtime settings."""

from __future__ import annotations

from pathlib import Path
from typing import Literal
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "odx" / "odx.yaml"
DEFAULT_GATEWAY_URL = "https://gateway.odxproxy.io/"
DEFAULT_TIMEOUT_SECONDS = 60.0


class LoggingSettings(BaseModel):
    """Structured logging configuration shared by ODX client processes."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_output: bool = False
    service: str = "odx-client"
    environment: str = "dev"


class GatewaySettings(BaseModel):
    """Header names agreed with the gateway deployment."""

    api_key_header: str = "X-Api-Key"
    proxy_key_header: str = "X-Proxy-Key"


class ConnectionSettings(BaseModel):
    """Backend instance and gateway credentials supplied by the operator.

    Blank values mean "not configured yet"; format checks apply only to values
    that are present.
    """

    model_config = ConfigDict(coerce_numbers_to_str=True)

    endpoint_url: str = ""
    user_id: int | None = None
    database: str = ""
    api_key: str = ""
    proxy_api_key: str = ""
    gateway_url: str = DEFAULT_GATEWAY_URL
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    selected_company_ids: tuple[int, ...] = ()
    timezone: str = "UTC"

    @field_validator("endpoint_url", "gateway_url")
    @classmethod
    def _require_absolute_http_url(cls, value: str) -> str:
        """Reject values that are not absolute ``http``/``https`` URLs."""
        value = value.strip()
        if value == "":
            return value
        if not is_valid_url(value):
            raise ValueError(f"{value!r} is not an absolute http(s) URL")
        return value

    @field_validator("user_id", mode="before")
    @classmethod
    def _parse_user_id(cls, value: object) -> object:
        """Accept integer user ids given as text; blank means unset."""
        if isinstance(value, str):
            stripped = value.strip()
            if stripped == "":
                return None
            try:
                return int(stripped)
            except ValueError as exc:
                raise ValueError(f"user id must be an integer, got {value!r}") from exc
        return value

    @field_validator("selected_company_ids", mode="before")
    @classmethod
    def _parse_company_ids(cls, value: object) -> object:
        """Accept a list, a single id, or a comma separated string of ids."""
        if value is None:
            return ()
        if isinstance(value, int) and not isinstance(value, bool):
            return (value,)
        if isinstance(value, str):
            return parse_company_ids(value)
        return value

    @property
    def missing_fields(self) -> tuple[str, ...]:
        """Return the names of required connection values that are blank."""
        required = {
            "endpoint_url": self.endpoint_url,
            "user_id": self.user_id,
            "database": self.database,
            "api_key": self.api_key,
            "proxy_api_key": self.proxy_api_key,
            "gateway_url": self.gateway_url,
        }
        return tuple(name for name, value in required.items() if value in (None, ""))


class OdxSettings(BaseSettings):
    """Root runtime settings.

    Constructing ``OdxSettings()`` directly reads ``ODX_`` environment
    variables; ``load_settings`` additionally applies the YAML file and CLI
    overrides in the documented precedence order.
    """

    model_config = SettingsConfigDict(
        env_prefix="ODX_",
        env_nested_delimiter="__",
        extra="ignore",
        nested_model_default_partial_update=True,
    )

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    connection: ConnectionSettings = Field(default_factory=ConnectionSettings)


def is_valid_url(value: str) -> bool:
    """Return True when ``value`` is an absolute ``http``/``https`` URL."""
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return parts.scheme in {"http", "https"} and bool(parts.hostname)


def parse_company_ids(raw: str) -> tuple[int, ...]:
    """Parse ``"1, 2,x,3"`` into ``(1, 2, 3)``; non-integer items are dropped."""
    ids: list[int] = []
    for item in raw.split(","):
        try:
            company_id = int(item.strip())
        except ValueError:
            continue
        if company_id not in ids:
            ids.append(company_id)
    return tuple(ids)
