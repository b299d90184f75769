"""Gateway transport: one HTTPS POST per envelope."""

from __future__ import annotations

from typing import Protocol

import httpx

from packages.odx_sdk.config import ClientConfiguration
from packages.odx_sdk.envelope import RequestEnvelope
from packages.odx_sdk.errors import OdxTransportError, TransportErrorKind
from packages.odx_shared.logging import get_logger

_LOGGER = get_logger(__name__)
_BODY_SNIPPET_CHARS = 200


class Transport(Protocol):
    """Sends one envelope and returns the raw reply body."""

    async def send(
        self, envelope: RequestEnvelope, configuration: ClientConfiguration
    ) -> bytes:
        """Perform exactly one attempt; raise ``OdxTransportError`` on failure."""


class HttpTransport:
    """httpx-backed transport posting JSON envelopes to the gateway.

    Non-2xx replies with a JSON body are returned as-is so the decoder can
    classify the backend's ``error`` member; other non-2xx replies are
    transport failures of kind ``status``. Every send is exactly one attempt;
    retry policy belongs to callers.
    """

    def __init__(
        self,
        *,
        api_key_header: str = "X-Api-Key",
        proxy_key_header: str = "X-Proxy-Key",
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key_header = api_key_header
        self._proxy_key_header = proxy_key_header
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            transport=transport, follow_redirects=False
        )

    async def aclose(self) -> None:
        """Release pooled connections when this transport created the client."""
        if self._owns_client:
            await self._client.aclose()

    async def send(
        self, envelope: RequestEnvelope, configuration: ClientConfiguration
    ) -> bytes:
        """POST one envelope to the configured gateway and return the body."""
        operation = _operation_label(envelope)
        headers = {
            self._api_key_header: configuration.api_key,
            self._proxy_key_header: configuration.proxy_api_key,
            "Accept": "application/json",
        }
        try:
            response = await self._client.post(
                configuration.gateway_url,
                json=envelope.to_wire(configuration),
                headers=headers,
                timeout=configuration.timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            raise OdxTransportError(
                message=(
                    f"{operation} timed out after {configuration.timeout_seconds}s "
                    f"({_target(exc, configuration.gateway_url)})"
                ),
                operation=operation,
                kind=TransportErrorKind.TIMEOUT,
                retryable=True,
                cause=exc,
            ) from exc
        except httpx.RequestError as exc:
            raise OdxTransportError(
                message=(
                    f"{operation} network failure "
                    f"({_target(exc, configuration.gateway_url)}): {exc}"
                ),
                operation=operation,
                kind=TransportErrorKind.NETWORK,
                retryable=True,
                cause=exc,
            ) from exc

        if response.is_error and not _is_json(response):
            status = response.status_code
            raise OdxTransportError(
                message=(
                    f"{operation} gateway answered HTTP {status}: "
                    f"{_snippet(response)}"
                ),
                operation=operation,
                kind=TransportErrorKind.STATUS,
                retryable=status >= 500 or status == 429,
                status_code=status,
            )

        _LOGGER.debug(
            "Gateway reply received (status=%s, bytes=%s)",
            response.status_code,
            len(response.content),
        )
        return response.content


def _operation_label(envelope: RequestEnvelope) -> str:
    """Return ``model.operation`` (or ``model.function``) for messages."""
    verb = envelope.function_name or envelope.operation.value
    return f"{envelope.model}.{verb}"


def _target(exc: httpx.RequestError, fallback_url: str) -> str:
    """Return ``METHOD url`` of the failed request, if httpx attached one."""
    try:
        request = exc.request
    except RuntimeError:
        return f"POST {fallback_url}"
    return f"{request.method} {request.url}"


def _is_json(response: httpx.Response) -> bool:
    """Return True when the reply declares a JSON body."""
    content_type = response.headers.get("content-type", "")
    return content_type.split(";", 1)[0].strip().lower().endswith("json")


def _snippet(response: httpx.Response) -> str:
    """Return the start of a non-JSON reply body for error messages."""
    try:
        text = response.text
    except UnicodeDecodeError:
        return f"<{len(response.content)} bytes>"
    text = " ".join(text.split())
    if len(text) > _BODY_SNIPPET_CHARS:
        return f"{text[:_BODY_SNIPPET_CHARS]}..."
    return text or "<empty body>"
