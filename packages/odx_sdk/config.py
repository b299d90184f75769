"""Runtime configuration primitives for ODX client instances."""

from __future__ import annotations

from dataclasses import dataclass

from packages.odx_sdk.errors import OdxConfigurationError
from packages.odx_shared.config import DEFAULT_TIMEOUT_SECONDS, ConnectionSettings


@dataclass(frozen=True, slots=True)
class ClientConfiguration:
    """Backend instance, credentials, and gateway for one configured client.

    Values are treated as opaque; format validation is the job of whoever
    builds the configuration (see ``ConnectionSettings``).
    """

    endpoint_url: str
    user_id: int
    database: str
    api_key: str
    proxy_api_key: str
    gateway_url: str
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    def __repr__(self) -> str:
        """Return a representation that never includes credentials."""
        return (
            f"ClientConfiguration(endpoint_url={self.endpoint_url!r}, "
            f"user_id={self.user_id!r}, database={self.database!r}, "
            f"gateway_url={self.gateway_url!r}, "
            f"timeout_seconds={self.timeout_seconds!r})"
        )

    @classmethod
    def from_settings(cls, settings: ConnectionSettings) -> ClientConfiguration:
        """Build one configuration from complete connection settings."""
        missing = settings.missing_fields
        user_id = settings.user_id
        if missing or user_id is None:
            raise OdxConfigurationError(
                message=f"connection settings incomplete: missing {', '.join(missing)}",
                missing=missing,
            )
        return cls(
            endpoint_url=settings.endpoint_url,
            user_id=user_id,
            database=settings.database,
            api_key=settings.api_key,
            proxy_api_key=settings.proxy_api_key,
            gateway_url=settings.gateway_url,
            timeout_seconds=settings.timeout_seconds,
        )
