"""Reply decoding and classification for ODX gateway calls."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter, ValidationError

from packages.odx_sdk.errors import (
    DecodeErrorKind,
    OdxDecodeError,
    ServerErrorDetail,
    json_kind,
    server_error_for,
)

T = TypeVar("T")

_ENVELOPE_EXPECTATION = "exactly one of result or error"


@dataclass(frozen=True, slots=True)
class ServerResponse(Generic[T]):
    """One decoded reply: either a typed ``result`` or a server ``error``."""

    result: T | None = None
    error: ServerErrorDetail | None = None
    operation: str = ""

    @property
    def ok(self) -> bool:
        """Return ``True`` when the backend accepted the call."""
        return self.error is None

    def unwrap(self) -> T:
        """Return the result, raising the typed server error for rejections."""
        if self.error is not None:
            raise server_error_for(operation=self.operation, detail=self.error)
        return self.result  # type: ignore[return-value]


def decode_response(
    body: bytes | str, shape: Any, *, operation: str = ""
) -> ServerResponse[Any]:
    """Parse one reply body and validate its result against ``shape``.

    ``shape`` is any type pydantic can validate (a record class, ``bool``,
    ``list[int]``, ``list[Product]``, ...). Validation is strict, so only
    ``OptionalValue`` fields accept the backend's ``false`` placeholder.
    """
    try:
        document = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise OdxDecodeError(
            message=f"{operation} reply is not valid JSON: {exc}",
            operation=operation,
            kind=DecodeErrorKind.MALFORMED,
            expected="JSON object",
            got="unparsable bytes",
        ) from exc

    if not isinstance(document, dict):
        raise OdxDecodeError(
            message=f"{operation} reply is not a JSON object",
            operation=operation,
            kind=DecodeErrorKind.MALFORMED,
            expected="JSON object",
            got=json_kind(document),
        )

    has_result = "result" in document
    has_error = "error" in document
    if has_result == has_error:
        present = sorted(key for key in ("result", "error") if key in document)
        raise OdxDecodeError(
            message=f"{operation} reply must carry {_ENVELOPE_EXPECTATION}",
            operation=operation,
            kind=DecodeErrorKind.SHAPE_MISMATCH,
            expected=_ENVELOPE_EXPECTATION,
            got=" and ".join(present) if present else "neither",
        )

    if has_error:
        return ServerResponse(
            error=_decode_error(document["error"], operation=operation),
            operation=operation,
        )
    return ServerResponse(
        result=decode_result(document["result"], shape, operation=operation),
        operation=operation,
    )


def decode_result(value: object, shape: Any, *, operation: str = "") -> Any:
    """Validate one already-parsed ``result`` node against ``shape``."""
    try:
        return _adapter(shape).validate_python(value, strict=True)
    except ValidationError as exc:
        errors = exc.errors(include_url=False)
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        got = json_kind(first.get("input"))
        raise OdxDecodeError(
            message=(
                f"{operation} result does not match {_shape_name(shape)}"
                f"{f' at {location}' if location else ''}: "
                f"{first.get('msg', 'invalid value')} (got {got})"
            ),
            operation=operation,
            kind=DecodeErrorKind.SHAPE_MISMATCH,
            expected=_shape_name(shape),
            got=got,
            details=tuple(_plain_error(item) for item in errors),
        ) from exc


def _decode_error(value: object, *, operation: str) -> ServerErrorDetail:
    """Decode the ``error`` member into a ``ServerErrorDetail``."""
    if not isinstance(value, Mapping):
        raise _error_shape(operation, json_kind(value))
    code = value.get("code")
    message = value.get("message")
    data = value.get("data")
    if isinstance(code, bool) or not isinstance(code, int):
        raise _error_shape(operation, f"code {json_kind(code)}")
    if not isinstance(message, str):
        raise _error_shape(operation, f"message {json_kind(message)}")
    if data is not None and not isinstance(data, Mapping):
        raise _error_shape(operation, f"data {json_kind(data)}")
    return ServerErrorDetail(
        code=code,
        message=message,
        data=None if data is None else dict(data),
    )


def _error_shape(operation: str, got: str) -> OdxDecodeError:
    """Return the decode error for an ``error`` member of the wrong shape."""
    expected = "error object {code: int, message: string, data?: object}"
    return OdxDecodeError(
        message=f"{operation} reply error member is malformed (got {got})",
        operation=operation,
        kind=DecodeErrorKind.SHAPE_MISMATCH,
        expected=expected,
        got=got,
    )


def _adapter(shape: Any) -> TypeAdapter[Any]:
    """Return a validator for one result shape, cached when it is hashable."""
    try:
        hash(shape)
    except TypeError:
        return TypeAdapter(shape)
    return _cached_adapter(shape)


@lru_cache(maxsize=256)
def _cached_adapter(shape: Any) -> TypeAdapter[Any]:
    """Return a cached validator for one hashable result shape."""
    return TypeAdapter(shape)


def _shape_name(shape: Any) -> str:
    """Return a readable name for one result shape."""
    if hasattr(shape, "__metadata__"):
        shape = shape.__origin__
    name = getattr(shape, "__name__", None)
    if isinstance(name, str) and not getattr(shape, "__args__", None):
        return name
    return str(shape).replace("typing.", "")


def _plain_error(item: Mapping[str, Any]) -> dict[str, Any]:
    """Return one pydantic error entry reduced to JSON-friendly members."""
    return {
        "loc": list(item.get("loc", ())),
        "msg": str(item.get("msg", "")),
        "type": str(item.get("type", "")),
        "got": json_kind(item.get("input")),
    }
