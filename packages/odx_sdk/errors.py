"""Error models and failure classification for ODX client calls.

Every failure a verb can produce is one of four distinguishable kinds:
configuration (no client configured), transport (the request never completed
at the network layer), server (the backend understood and rejected the call),
and decode (the reply does not match the expected contract).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping


class TransportErrorKind(str, Enum):
    """Network-layer failure kinds."""

    TIMEOUT = "timeout"
    NETWORK = "network"
    STATUS = "status"


class DecodeErrorKind(str, Enum):
    """Reply interpretation failure kinds."""

    MALFORMED = "malformed"
    SHAPE_MISMATCH = "shape_mismatch"


@dataclass(frozen=True, slots=True)
class ServerErrorDetail:
    """One backend-reported error from a reply's ``error`` member."""

    code: int
    message: str
    data: Mapping[str, Any] | None = None

    @property
    def name(self) -> str:
        """Return the backend exception name (``data.name``) when present."""
        if self.data is None:
            return ""
        return str(self.data.get("name", ""))

    @property
    def detail_message(self) -> str:
        """Return the user-facing message from ``data`` or the top-level one."""
        if self.data is not None:
            message = self.data.get("message")
            if isinstance(message, str) and message.strip() != "":
                return message
        return self.message


@dataclass(frozen=True)
class OdxSdkError(Exception):
    """Base error type for ODX client failures."""

    message: str

    def __str__(self) -> str:
        """Return human-readable error message."""
        return self.message


@dataclass(frozen=True)
class OdxConfigurationError(OdxSdkError):
    """A verb was invoked before the client was configured."""

    missing: tuple[str, ...] = ()


@dataclass(frozen=True)
class OdxTransportError(OdxSdkError):
    """The request could not complete at the network layer."""

    operation: str
    kind: TransportErrorKind
    retryable: bool = False
    status_code: int | None = None
    cause: BaseException | None = None


@dataclass(frozen=True)
class OdxServerError(OdxSdkError):
    """The backend understood the request and explicitly rejected it."""

    operation: str
    detail: ServerErrorDetail

    @property
    def code(self) -> int:
        """Return the backend error code."""
        return self.detail.code


@dataclass(frozen=True)
class OdxAccessError(OdxServerError):
    """Access-denied rejection (permissions, record rules, bad credentials)."""


@dataclass(frozen=True)
class OdxValidationError(OdxServerError):
    """Validation or user-facing business-rule rejection."""


@dataclass(frozen=True)
class OdxNotFoundError(OdxServerError):
    """The targeted records or method do not exist."""


@dataclass(frozen=True)
class OdxDecodeError(OdxSdkError):
    """The reply could not be interpreted against the expected contract."""

    operation: str
    kind: DecodeErrorKind
    expected: str = ""
    got: str = ""
    details: tuple[Mapping[str, Any], ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class OdxEnvelopeError(OdxSdkError, ValueError):
    """A request envelope violates its build-time contract."""


def server_error_for(*, operation: str, detail: ServerErrorDetail) -> OdxServerError:
    """Return the most specific ``OdxServerError`` subclass for one detail."""
    error_type = _ERROR_NAME_TO_TYPE.get(_short_name(detail.name))
    if error_type is None:
        error_type = _ERROR_CODE_TO_TYPE.get(detail.code, OdxServerError)
    return error_type(
        message=f"{operation} rejected ({detail.code}): {detail.detail_message}",
        operation=operation,
        detail=detail,
    )


def json_kind(value: object) -> str:
    """Return the JSON node kind name of one decoded value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def _short_name(name: str) -> str:
    """Return the final dotted segment of a backend exception name."""
    return name.rsplit(".", 1)[-1]


_ERROR_NAME_TO_TYPE: dict[str, type[OdxServerError]] = {
    "AccessError": OdxAccessError,
    "AccessDenied": OdxAccessError,
    "ValidationError": OdxValidationError,
    "UserError": OdxValidationError,
    "MissingError": OdxNotFoundError,
}

_ERROR_CODE_TO_TYPE: dict[int, type[OdxServerError]] = {
    401: OdxAccessError,
    403: OdxAccessError,
    404: OdxNotFoundError,
    422: OdxValidationError,
}
