"""Request envelope construction for ODX gateway calls.

One builder serves every verb; the verb only contributes its ``Operation``
tag (and, for ``call_method``, the function name). Envelopes are immutable
and carry everything the transport needs except credentials, which come from
the per-call configuration snapshot.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import uuid4

from packages.odx_sdk.config import ClientConfiguration
from packages.odx_sdk.errors import OdxEnvelopeError
from packages.odx_shared.config import ConnectionSettings


def _unique(items: Iterable[Any]) -> tuple[Any, ...]:
    """Return ``items`` without duplicates, keeping first-seen order."""
    return tuple(dict.fromkeys(items))


class Operation(str, Enum):
    """Closed set of backend operations the gateway brokers."""

    SEARCH_READ = "search_read"
    READ = "read"
    WRITE = "write"
    CREATE = "create"
    CALL_METHOD = "call_method"


@dataclass(frozen=True, slots=True)
class ExecutionContext:
    """Per-call backend context (company scoping and timezone).

    ``allowed_company_ids`` restricts which companies' rows the backend makes
    visible; ``default_company_id`` is the company new records belong to.
    """

    allowed_company_ids: tuple[int, ...] = ()
    default_company_id: int = 0
    tz: str = "UTC"

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "allowed_company_ids", _unique(self.allowed_company_ids)
        )

    @classmethod
    def from_settings(cls, settings: ConnectionSettings) -> ExecutionContext:
        """Scope calls to the operator's selected companies and timezone.

        The first selected company becomes the default company.
        """
        companies = tuple(settings.selected_company_ids)
        return cls(
            allowed_company_ids=companies,
            default_company_id=companies[0] if companies else 0,
            tz=settings.timezone,
        )

    def to_wire(self) -> dict[str, Any]:
        """Return the backend ``context`` mapping."""
        return {
            "allowed_company_ids": list(self.allowed_company_ids),
            "default_company_id": self.default_company_id,
            "tz": self.tz,
        }


DEFAULT_CONTEXT = ExecutionContext()
"""Context used when a caller supplies none.

No allowed companies, company ``0`` and UTC: the backend then applies the
user's own default company scoping, which may hide rows from other companies.
"""


@dataclass(frozen=True, slots=True)
class KeywordRequest:
    """Non-positional call options: projection, ordering, paging, context.

    ``None`` means "not sent"; the backend then applies its own default.
    """

    fields: tuple[str, ...] | None = None
    order: str | None = None
    limit: int | None = None
    offset: int | None = None
    context: ExecutionContext = DEFAULT_CONTEXT

    def __post_init__(self) -> None:
        if self.fields is not None:
            object.__setattr__(self, "fields", _unique(self.fields))
        if self.limit is not None and self.limit <= 0:
            raise OdxEnvelopeError(message=f"limit must be positive, got {self.limit}")
        if self.offset is not None and self.offset < 0:
            raise OdxEnvelopeError(
                message=f"offset must not be negative, got {self.offset}"
            )
        if self.context is None:
            object.__setattr__(self, "context", DEFAULT_CONTEXT)

    def to_wire(self) -> dict[str, Any]:
        """Return the keyword block with unset options left out."""
        block: dict[str, Any] = {}
        if self.fields is not None:
            block["fields"] = list(self.fields)
        if self.order is not None:
            block["order"] = self.order
        if self.limit is not None:
            block["limit"] = self.limit
        if self.offset is not None:
            block["offset"] = self.offset
        block["context"] = self.context.to_wire()
        return block


@dataclass(frozen=True, slots=True)
class RequestEnvelope:
    """One outbound call, fully described and ready to serialize."""

    model: str
    operation: Operation
    params: tuple[Any, ...]
    keyword: KeywordRequest
    function_name: str | None = None
    request_id: str = field(default_factory=lambda: uuid4().hex)

    def to_wire(self, configuration: ClientConfiguration) -> dict[str, Any]:
        """Return the JSON request body for one gateway call."""
        return {
            "id": self.request_id,
            "model": self.model,
            "method": self.operation.value,
            "fn_name": self.function_name,
            "params": [*self.params, self.keyword.to_wire()],
            "instance": {
                "url": configuration.endpoint_url,
                "user_id": configuration.user_id,
                "db": configuration.database,
            },
        }


def build_request(
    model: str,
    operation: Operation | str,
    params: Sequence[Any] = (),
    keyword: KeywordRequest | None = None,
    *,
    function_name: str | None = None,
) -> RequestEnvelope:
    """Assemble one request envelope, failing fast on contract violations."""
    if model.strip() == "":
        raise OdxEnvelopeError(message="model is required")
    try:
        resolved = Operation(operation)
    except ValueError as exc:
        raise OdxEnvelopeError(message=f"unknown operation {operation!r}") from exc

    if resolved is Operation.CALL_METHOD:
        if function_name is None or function_name.strip() == "":
            raise OdxEnvelopeError(message="call_method requires a function name")
    elif function_name is not None:
        raise OdxEnvelopeError(
            message=f"function name is only valid for call_method, not {resolved.value}"
        )

    if isinstance(params, (str, bytes)):
        raise OdxEnvelopeError(message="params must be a sequence of values")

    return RequestEnvelope(
        model=model,
        operation=resolved,
        params=tuple(params),
        keyword=KeywordRequest() if keyword is None else keyword,
        function_name=function_name,
    )
