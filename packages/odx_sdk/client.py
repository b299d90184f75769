"""Asynchronous ODX gateway client for typed backend calls."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Mapping, Sequence
from typing import Any, TypeVar

from packages.odx_sdk.config import ClientConfiguration
from packages.odx_sdk.envelope import (
    KeywordRequest,
    Operation,
    RequestEnvelope,
    build_request,
)
from packages.odx_sdk.errors import (
    OdxConfigurationError,
    OdxTransportError,
    TransportErrorKind,
)
from packages.odx_sdk.response import decode_response
from packages.odx_sdk.transport import HttpTransport, Transport
from packages.odx_sdk.values import AbsentPolicy, encode_values
from packages.odx_shared.config import OdxSettings
from packages.odx_shared.logging import fields, get_logger, log_context, rpc_instrumented

T = TypeVar("T")

COMPONENT_ID = "odx_proxy_client"

_LOGGER = get_logger(__name__)
_ID_FIELDS = ("model", "function_name")


class ConfigurationHolder:
    """Lock-guarded reference to one immutable ``ClientConfiguration``.

    Writers swap the whole value; readers take one snapshot per call, so a
    call never observes a mixture of old and new fields.
    """

    def __init__(self, configuration: ClientConfiguration | None = None) -> None:
        self._lock = threading.Lock()
        self._configuration = configuration

    def replace(self, configuration: ClientConfiguration | None) -> None:
        """Swap the held configuration (``None`` means unconfigured)."""
        with self._lock:
            self._configuration = configuration

    def current(self) -> ClientConfiguration | None:
        """Return the held configuration, or ``None`` when unconfigured."""
        with self._lock:
            return self._configuration

    def snapshot(self) -> ClientConfiguration:
        """Return the held configuration or raise when unconfigured."""
        configuration = self.current()
        if configuration is None:
            raise OdxConfigurationError(
                message="ODX client is not configured; call configure() first"
            )
        return configuration


class OdxProxyClient:
    """Typed client exposing the backend verbs over one gateway transport.

    Every verb is a thin wrapper over ``_execute``: build the envelope, send it
    once through the transport, decode the reply against the caller's shape.
    Server rejections are raised as ``OdxServerError`` subclasses.

    Known limitation: callers abandoning an awaited verb do not cancel the
    network attempt, which runs until it completes or its timeout expires.
    """

    def __init__(
        self,
        *,
        transport: Transport | None = None,
        configuration: ClientConfiguration | None = None,
        owns_transport: bool | None = None,
    ) -> None:
        """Create one client, optionally pre-configured and with an injected transport."""
        self._owns_transport = transport is None if owns_transport is None else owns_transport
        self._transport: Transport = HttpTransport() if transport is None else transport
        self._holder = ConfigurationHolder(configuration)
        self._in_flight: set[asyncio.Future[bytes]] = set()

    @classmethod
    def from_settings(cls, settings: OdxSettings) -> OdxProxyClient:
        """Create one configured client using gateway and connection settings."""
        configuration = ClientConfiguration.from_settings(settings.connection)
        client = cls(
            transport=HttpTransport(
                api_key_header=settings.gateway.api_key_header,
                proxy_key_header=settings.gateway.proxy_key_header,
            ),
            owns_transport=True,
        )
        client.configure(configuration)
        return client

    async def aclose(self) -> None:
        """Close the transport when this client created it."""
        close = getattr(self._transport, "aclose", None)
        if self._owns_transport and callable(close):
            await close()

    async def __aenter__(self) -> OdxProxyClient:
        """Enter async context manager scope."""
        return self

    async def __aexit__(self, *_: object) -> None:
        """Exit async context manager scope and close transport resources."""
        await self.aclose()

    def configure(self, configuration: ClientConfiguration) -> None:
        """Replace the client configuration atomically."""
        self._holder.replace(configuration)
        _LOGGER.info(
            "ODX client configured (gateway=%s, endpoint=%s, user_id=%s, timeout=%ss)",
            configuration.gateway_url,
            configuration.endpoint_url,
            configuration.user_id,
            configuration.timeout_seconds,
        )

    def reset(self) -> None:
        """Return the client to the unconfigured state."""
        self._holder.replace(None)

    @property
    def is_configured(self) -> bool:
        """Return ``True`` once ``configure`` has succeeded."""
        return self._holder.current() is not None

    @property
    def configuration(self) -> ClientConfiguration | None:
        """Return the current configuration snapshot, if any."""
        return self._holder.current()

    @rpc_instrumented(component_id=COMPONENT_ID, id_fields=_ID_FIELDS, logger=_LOGGER)
    async def search_read(
        self,
        model: str,
        params: Sequence[Any] = (),
        keyword: KeywordRequest | None = None,
        *,
        shape: type[T] = Any,
    ) -> T:
        """Search records matching a domain filter and read their fields."""
        return await self._execute(Operation.SEARCH_READ, model, params, keyword, shape)

    @rpc_instrumented(component_id=COMPONENT_ID, id_fields=_ID_FIELDS, logger=_LOGGER)
    async def read(
        self,
        model: str,
        params: Sequence[Any] = (),
        keyword: KeywordRequest | None = None,
        *,
        shape: type[T] = Any,
    ) -> T:
        """Read fields of records given by id."""
        return await self._execute(Operation.READ, model, params, keyword, shape)

    @rpc_instrumented(component_id=COMPONENT_ID, id_fields=_ID_FIELDS, logger=_LOGGER)
    async def write(
        self,
        model: str,
        params: Sequence[Any] = (),
        keyword: KeywordRequest | None = None,
        *,
        shape: type[T] = bool,
    ) -> T:
        """Update records; ``params`` is ``[ids, values]``."""
        return await self._execute(Operation.WRITE, model, params, keyword, shape)

    @rpc_instrumented(component_id=COMPONENT_ID, id_fields=_ID_FIELDS, logger=_LOGGER)
    async def create(
        self,
        model: str,
        params: Sequence[Any] = (),
        keyword: KeywordRequest | None = None,
        *,
        shape: type[T] = Any,
    ) -> T:
        """Create records; ``params`` is ``[values]`` or ``[[values, ...]]``."""
        return await self._execute(Operation.CREATE, model, params, keyword, shape)

    @rpc_instrumented(component_id=COMPONENT_ID, id_fields=_ID_FIELDS, logger=_LOGGER)
    async def call_method(
        self,
        model: str,
        function_name: str,
        params: Sequence[Any] = (),
        keyword: KeywordRequest | None = None,
        *,
        shape: type[T] = Any,
    ) -> T:
        """Call one public model method by name."""
        return await self._execute(
            Operation.CALL_METHOD,
            model,
            params,
            keyword,
            shape,
            function_name=function_name,
        )

    async def write_values(
        self,
        model: str,
        ids: Sequence[int],
        values: Mapping[str, Any],
        keyword: KeywordRequest | None = None,
        *,
        absent: AbsentPolicy = AbsentPolicy.FALSE,
    ) -> bool:
        """Write one value mapping to ``ids``; absent values follow ``absent``."""
        return await self.write(
            model,
            [list(ids), encode_values(values, absent=absent)],
            keyword,
            shape=bool,
        )

    async def create_values(
        self,
        model: str,
        values: Sequence[Mapping[str, Any]],
        keyword: KeywordRequest | None = None,
        *,
        absent: AbsentPolicy = AbsentPolicy.FALSE,
    ) -> list[int]:
        """Create one record per value mapping and return the new ids."""
        return await self.create(
            model,
            [[encode_values(item, absent=absent) for item in values]],
            keyword,
            shape=list[int],
        )

    async def _execute(
        self,
        operation: Operation,
        model: str,
        params: Sequence[Any],
        keyword: KeywordRequest | None,
        shape: Any,
        *,
        function_name: str | None = None,
    ) -> Any:
        """Build, send, and decode one call against a configuration snapshot."""
        configuration = self._holder.snapshot()
        envelope = build_request(
            model, operation, params, keyword, function_name=function_name
        )
        label = f"{model}.{function_name or operation.value}"
        with log_context(
            {fields.REQUEST_ID: envelope.request_id, fields.OPERATION: operation.value}
        ):
            body = await self._send(envelope, configuration, label)
            response = decode_response(body, shape, operation=label)
        return response.unwrap()

    async def _send(
        self,
        envelope: RequestEnvelope,
        configuration: ClientConfiguration,
        label: str,
    ) -> bytes:
        """Run one transport attempt bounded by the snapshot's timeout."""
        attempt = asyncio.ensure_future(self._transport.send(envelope, configuration))
        self._in_flight.add(attempt)
        attempt.add_done_callback(self._settle)
        try:
            return await asyncio.wait_for(
                asyncio.shield(attempt), timeout=configuration.timeout_seconds
            )
        except asyncio.TimeoutError as exc:
            raise OdxTransportError(
                message=f"{label} timed out after {configuration.timeout_seconds}s",
                operation=label,
                kind=TransportErrorKind.TIMEOUT,
                retryable=True,
            ) from exc

    def _settle(self, attempt: asyncio.Future[bytes]) -> None:
        """Forget one finished attempt and consume an unobserved failure."""
        self._in_flight.discard(attempt)
        if attempt.cancelled():
            return
        error = attempt.exception()
        if error is not None:
            _LOGGER.debug("Transport attempt finished with %s", type(error).__name__)
