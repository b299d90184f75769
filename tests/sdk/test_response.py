"""Unit tests for gateway reply decoding and classification."""

from __future__ import annotations

import json

import pytest

from packages.odx_sdk.errors import (
    DecodeErrorKind,
    OdxAccessError,
    OdxDecodeError,
    OdxNotFoundError,
    OdxServerError,
    OdxValidationError,
)
from packages.odx_sdk.response import decode_response
from packages.odx_sdk.values import OdxRecord, OptionalValue


class _Product(OdxRecord):
    id: int
    name: str
    barcode: OptionalValue[str] = None


def _body(document: object) -> bytes:
    return json.dumps(document).encode("utf-8")


def test_result_decodes_with_false_as_absent() -> None:
    """A product whose barcode is ``false`` should decode with no barcode."""
    response = decode_response(
        _body({"result": [{"id": 1, "name": "Widget", "barcode": False}]}),
        list[_Product],
        operation="product.product.search_read",
    )

    assert response.ok is True
    assert response.error is None
    products = response.unwrap()
    assert products == [_Product(id=1, name="Widget", barcode=None)]


def test_error_reply_has_error_and_no_result() -> None:
    """A backend rejection populates only the error member."""
    response = decode_response(
        _body({"error": {"code": 403, "message": "Access denied"}}),
        list[_Product],
        operation="product.product.search_read",
    )

    assert response.ok is False
    assert response.result is None
    assert response.error is not None
    assert response.error.code == 403
    assert response.error.message == "Access denied"

    with pytest.raises(OdxAccessError) as exc_info:
        response.unwrap()
    assert exc_info.value.code == 403
    assert exc_info.value.operation == "product.product.search_read"


@pytest.mark.parametrize(
    ("data", "expected"),
    [
        ({"name": "odoo.exceptions.AccessError"}, OdxAccessError),
        ({"name": "odoo.exceptions.ValidationError"}, OdxValidationError),
        ({"name": "odoo.exceptions.UserError"}, OdxValidationError),
        ({"name": "odoo.exceptions.MissingError"}, OdxNotFoundError),
        ({"name": "builtins.KeyError"}, OdxServerError),
        (None, OdxServerError),
    ],
)
def test_error_names_map_to_specific_server_errors(
    data: dict[str, str] | None, expected: type[OdxServerError]
) -> None:
    """The backend exception name selects the server error subclass."""
    error: dict[str, object] = {"code": 200, "message": "Odoo Server Error"}
    if data is not None:
        error["data"] = data

    response = decode_response(_body({"error": error}), bool, operation="x.write")

    with pytest.raises(OdxServerError) as exc_info:
        response.unwrap()
    assert type(exc_info.value) is expected


def test_server_error_message_prefers_data_message() -> None:
    """The user-facing ``data.message`` is used when present."""
    response = decode_response(
        _body(
            {
                "error": {
                    "code": 200,
                    "message": "Odoo Server Error",
                    "data": {
                        "name": "odoo.exceptions.UserError",
                        "message": "Barcode already assigned",
                    },
                }
            }
        ),
        list[int],
        operation="product.template.create",
    )

    with pytest.raises(OdxValidationError) as exc_info:
        response.unwrap()
    assert "Barcode already assigned" in str(exc_info.value)


@pytest.mark.parametrize("body", [b"<html>bad gateway</html>", b"", b"\xff\xfe"])
def test_unparsable_body_is_malformed(body: bytes) -> None:
    """Bytes that are not JSON are a malformed reply."""
    with pytest.raises(OdxDecodeError) as exc_info:
        decode_response(body, bool, operation="x.write")

    assert exc_info.value.kind is DecodeErrorKind.MALFORMED


def test_non_object_reply_is_malformed() -> None:
    """A JSON array at the top level is not a reply envelope."""
    with pytest.raises(OdxDecodeError) as exc_info:
        decode_response(b"[1, 2]", bool)

    assert exc_info.value.kind is DecodeErrorKind.MALFORMED
    assert exc_info.value.got == "array"


@pytest.mark.parametrize(
    ("document", "got"),
    [
        ({"result": True, "error": {"code": 1, "message": "m"}}, "error and result"),
        ({"jsonrpc": "2.0"}, "neither"),
    ],
)
def test_reply_must_carry_exactly_one_member(document: object, got: str) -> None:
    """Both or neither of result and error is a protocol violation."""
    with pytest.raises(OdxDecodeError) as exc_info:
        decode_response(_body(document), bool)

    error = exc_info.value
    assert error.kind is DecodeErrorKind.SHAPE_MISMATCH
    assert error.expected == "exactly one of result or error"
    assert error.got == got


@pytest.mark.parametrize(
    "member",
    [
        "denied",
        {"message": "no code"},
        {"code": True, "message": "bool code"},
        {"code": 403, "message": False},
        {"code": 403, "message": "m", "data": "text"},
    ],
)
def test_malformed_error_member_is_shape_mismatch(member: object) -> None:
    """An error member without integer code and string message is rejected."""
    with pytest.raises(OdxDecodeError) as exc_info:
        decode_response(_body({"error": member}), bool)

    assert exc_info.value.kind is DecodeErrorKind.SHAPE_MISMATCH


def test_result_shape_mismatch_reports_expected_and_got() -> None:
    """A result of the wrong kind names the expected shape and the JSON kind."""
    with pytest.raises(OdxDecodeError) as exc_info:
        decode_response(_body({"result": "yes"}), bool, operation="x.write")

    error = exc_info.value
    assert error.kind is DecodeErrorKind.SHAPE_MISMATCH
    assert error.expected == "bool"
    assert error.got == "string"
    assert error.operation == "x.write"


def test_null_result_decodes_for_optional_shape() -> None:
    """A ``null`` result is valid when the caller's shape allows it."""
    response = decode_response(_body({"result": None}), bool | None)

    assert response.ok is True
    assert response.unwrap() is None
