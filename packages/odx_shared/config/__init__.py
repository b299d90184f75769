"""Public API for shared ODX client configuration utilities."""

from .loader import load_config, load_settings
from .models import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_GATEWAY_URL,
    DEFAULT_TIMEOUT_SECONDS,
    ConnectionSettings,
    GatewaySettings,
    LoggingSettings,
    OdxSettings,
    is_valid_url,
    parse_company_ids,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_GATEWAY_URL",
    "DEFAULT_TIMEOUT_SECONDS",
    "ConnectionSettings",
    "GatewaySettings",
    "LoggingSettings",
    "OdxSettings",
    "is_valid_url",
    "load_config",
    "load_settings",
    "parse_company_ids",
]
