"""Unit tests for the typed warehouse call helpers."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from packages.odx_sdk.calls import (
    PRODUCT_FIELDS,
    Picking,
    Product,
    archive_product,
    confirm_receiving,
    create_product_template,
    fetch_products,
    fetch_stock_moves,
    find_receipts,
    list_companies,
    validate_picking,
)
from packages.odx_sdk.client import OdxProxyClient
from packages.odx_sdk.config import ClientConfiguration
from packages.odx_sdk.envelope import ExecutionContext, RequestEnvelope


class _FakeTransport:
    def __init__(self, *results: object) -> None:
        self.sent: list[dict[str, Any]] = []
        self._results = list(results)

    async def send(
        self, envelope: RequestEnvelope, configuration: ClientConfiguration
    ) -> bytes:
        self.sent.append(envelope.to_wire(configuration))
        return json.dumps({"result": self._results.pop(0)}).encode("utf-8")


def _client(transport: _FakeTransport) -> OdxProxyClient:
    return OdxProxyClient(
        transport=transport,
        configuration=ClientConfiguration(
            endpoint_url="https://erp.example.test",
            user_id=2,
            database="warehouse",
            api_key="erp-key",
            proxy_api_key="proxy-key",
            gateway_url="https://gateway.example.test/",
            timeout_seconds=5.0,
        ),
    )


def _product_row(**overrides: object) -> dict[str, object]:
    row: dict[str, object] = {
        "id": 11,
        "name": "Widget",
        "type": "consu",
        "active": True,
        "barcode": False,
        "qty_available": 4.0,
        "incoming_qty": 0.0,
        "outgoing_qty": 1.0,
        "product_tag_ids": [],
        "product_tmpl_id": [21, "Widget"],
        "image_256": False,
    }
    row.update(overrides)
    return row


def _picking(**overrides: object) -> Picking:
    values: dict[str, object] = {
        "id": 5,
        "name": "WH/IN/00005",
        "state": "assigned",
        "move_ids": [31, 32],
    }
    values.update(overrides)
    return Picking.model_validate(values)


def test_fetch_products_pages_active_products() -> None:
    """Products are requested with the catalog projection and decoded."""
    transport = _FakeTransport([_product_row()])

    products = asyncio.run(
        fetch_products(
            _client(transport),
            offset=80,
            context=ExecutionContext(allowed_company_ids=(1,), default_company_id=1),
        )
    )

    body = transport.sent[0]
    keyword = body["params"][-1]
    assert body["model"] == "product.product"
    assert body["method"] == "search_read"
    assert body["params"][0] == [["active", "=", True]]
    assert keyword["fields"] == list(PRODUCT_FIELDS)
    assert keyword["order"] == "default_code asc"
    assert keyword["limit"] == 80
    assert keyword["offset"] == 80
    assert keyword["context"]["allowed_company_ids"] == [1]

    product = products[0]
    assert product.barcode is None
    assert product.image_256 is None
    assert product.product_tmpl_id is not None
    assert product.product_tmpl_id.id == 21
    assert product.is_service is False


def test_find_receipts_matches_name_or_origin() -> None:
    """Receipt search ORs name and origin and keeps ready incoming transfers."""
    transport = _FakeTransport(
        [
            {
                "id": 5,
                "name": "WH/IN/00005",
                "state": "assigned",
                "move_ids": [31],
                "move_line_ids": [],
                "origin": False,
                "partner_id": [9, "Wood Corner"],
            }
        ]
    )

    pickings = asyncio.run(find_receipts(_client(transport), "P00012"))

    domain = transport.sent[0]["params"][0]
    assert domain == [
        "|",
        ["name", "ilike", "P00012"],
        ["origin", "ilike", "P00012"],
        ["state", "=", "assigned"],
        ["picking_type_id.code", "in", ["incoming", "internal"]],
    ]
    assert pickings[0].origin is None
    assert pickings[0].partner_id is not None
    assert pickings[0].partner_id.label == "Wood Corner"


def test_fetch_stock_moves_skips_call_without_ids() -> None:
    """No move ids means no backend call."""
    transport = _FakeTransport()

    assert asyncio.run(fetch_stock_moves(_client(transport), [])) == []
    assert transport.sent == []


def test_confirm_receiving_skips_edited_receipts() -> None:
    """A receipt with a partially received move is not validated."""
    transport = _FakeTransport(
        [
            {
                "id": 31,
                "product_id": [11, "Widget"],
                "product_tmpl_id": [21, "Widget"],
                "quantity": 2.0,
                "product_uom_qty": 5.0,
            }
        ]
    )

    assert asyncio.run(confirm_receiving(_client(transport), _picking(move_ids=[31]))) is False
    assert [body["method"] for body in transport.sent] == ["read"]


def test_confirm_receiving_validates_complete_receipts() -> None:
    """A fully received receipt is validated through button_validate."""
    transport = _FakeTransport(
        [
            {
                "id": 31,
                "product_id": [11, "Widget"],
                "product_tmpl_id": [21, "Widget"],
                "quantity": 5.0,
                "product_uom_qty": 5.0,
            }
        ],
        True,
    )

    assert asyncio.run(confirm_receiving(_client(transport), _picking(move_ids=[31]))) is True
    validate = transport.sent[1]
    assert validate["method"] == "call_method"
    assert validate["fn_name"] == "button_validate"
    assert validate["params"][0] == [5]


def test_validate_picking_reports_wizard_actions_as_incomplete() -> None:
    """An action mapping reply means the backend needs another step."""
    transport = _FakeTransport({"type": "ir.actions.act_window", "res_model": "stock.backorder.confirmation"})

    assert asyncio.run(validate_picking(_client(transport), 5)) is False


def test_archive_product_writes_inactive_template() -> None:
    """Archiving writes ``active = false`` on the product's template in UTC."""
    transport = _FakeTransport(True)
    product = Product.model_validate(_product_row())

    assert asyncio.run(archive_product(_client(transport), product)) is True
    body = transport.sent[0]
    assert body["model"] == "product.template"
    assert body["method"] == "write"
    assert body["params"][:2] == [[21], {"active": False}]
    assert body["params"][-1]["context"]["tz"] == "UTC"


def test_archive_product_without_template_does_nothing() -> None:
    """Products without a template reference cannot be archived."""
    transport = _FakeTransport()
    product = Product.model_validate(_product_row(product_tmpl_id=False))

    assert asyncio.run(archive_product(_client(transport), product)) is False
    assert transport.sent == []


def test_create_product_template_sends_blanks_as_false() -> None:
    """Blank barcode and description are cleared with ``false``."""
    transport = _FakeTransport([42])

    ids = asyncio.run(
        create_product_template(_client(transport), "Gadget", barcode=" ", description="")
    )

    assert ids == [42]
    body = transport.sent[0]
    assert body["method"] == "create"
    assert body["params"][0] == [{"name": "Gadget", "barcode": False, "description": False}]


def test_create_product_template_requires_name() -> None:
    """A blank product name is rejected before any call."""
    transport = _FakeTransport()

    with pytest.raises(ValueError):
        asyncio.run(create_product_template(_client(transport), "  "))
    assert transport.sent == []


def test_list_companies_flags_selected_ones() -> None:
    """Companies in the selection are flagged, others are not."""
    transport = _FakeTransport(
        [{"id": 1, "name": "My Company"}, {"id": 2, "name": "Branch"}]
    )

    companies = asyncio.run(list_companies(_client(transport), selected_ids=[2]))

    assert [(company.name, company.selected) for company in companies] == [
        ("My Company", False),
        ("Branch", True),
    ]
    assert transport.sent[0]["params"][0] == []
