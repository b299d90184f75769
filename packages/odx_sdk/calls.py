"""Typed warehouse calls built on ``OdxProxyClient``.

These helpers hold the field projections and domain filters the warehouse
front-end uses: product catalog browsing, stock receiving, product archive
and creation, and company selection.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from packages.odx_sdk.client import OdxProxyClient
from packages.odx_sdk.envelope import ExecutionContext, KeywordRequest
from packages.odx_sdk.values import (
    OdxRecord,
    OptionalValue,
    Relation,
    RelationPair,
    false_if_blank,
)
from packages.odx_shared.logging import get_logger

_LOGGER = get_logger(__name__)

PAGE_SIZE = 80
UTC_CONTEXT = ExecutionContext(tz="UTC")

PRODUCT_FIELDS = (
    "id",
    "name",
    "qty_available",
    "incoming_qty",
    "outgoing_qty",
    "product_tmpl_id",
    "image_256",
    "barcode",
    "product_tag_ids",
    "active",
    "type",
)
PICKING_FIELDS = (
    "id",
    "name",
    "partner_id",
    "move_ids",
    "move_line_ids",
    "origin",
    "state",
)
MOVE_FIELDS = ("id", "product_id", "product_tmpl_id", "product_uom_qty", "quantity")
COMPANY_FIELDS = ("id", "name")


class Product(OdxRecord):
    """One ``product.product`` row as shown in the catalog."""

    id: int
    name: str
    type: str
    active: bool
    barcode: OptionalValue[str] = None
    qty_available: OptionalValue[float] = None
    incoming_qty: OptionalValue[float] = None
    outgoing_qty: OptionalValue[float] = None
    product_tag_ids: OptionalValue[list[int]] = None
    product_tmpl_id: Relation = None
    image_256: OptionalValue[str] = None

    @property
    def is_service(self) -> bool:
        """Return True for services, which carry no stock quantities."""
        return self.type == "service"


class Picking(OdxRecord):
    """One ``stock.picking`` (transfer) awaiting reception."""

    id: int
    name: str
    state: str
    move_ids: list[int]
    move_line_ids: list[int] = []
    origin: OptionalValue[str] = None
    partner_id: Relation = None


class StockMove(OdxRecord):
    """One ``stock.move`` line of a picking."""

    id: int
    product_id: RelationPair
    product_tmpl_id: RelationPair
    quantity: float
    product_uom_qty: float

    @property
    def is_complete(self) -> bool:
        """Return True when the done quantity equals the demanded quantity."""
        return self.quantity == self.product_uom_qty


class Company(OdxRecord):
    """One ``res.company`` the operator may scope calls to."""

    id: int
    name: str
    selected: bool = False


async def fetch_products(
    client: OdxProxyClient,
    *,
    offset: int = 0,
    limit: int = PAGE_SIZE,
    context: ExecutionContext | None = None,
) -> list[Product]:
    """Return one page of active products ordered by internal reference."""
    return await client.search_read(
        "product.product",
        [[["active", "=", True]]],
        KeywordRequest(
            fields=PRODUCT_FIELDS,
            order="default_code asc",
            limit=limit,
            offset=offset,
            context=context,
        ),
        shape=list[Product],
    )


async def find_receipts(
    client: OdxProxyClient,
    search: str,
    *,
    limit: int = PAGE_SIZE,
    context: ExecutionContext | None = None,
) -> list[Picking]:
    """Return ready incoming/internal pickings whose name or origin matches."""
    domain: list[Any] = [
        "|",
        ["name", "ilike", search],
        ["origin", "ilike", search],
        ["state", "=", "assigned"],
        ["picking_type_id.code", "in", ["incoming", "internal"]],
    ]
    return await client.search_read(
        "stock.picking",
        [domain],
        KeywordRequest(
            fields=PICKING_FIELDS,
            order="name asc",
            limit=limit,
            offset=0,
            context=context,
        ),
        shape=list[Picking],
    )


async def fetch_stock_moves(
    client: OdxProxyClient,
    move_ids: Iterable[int],
    *,
    context: ExecutionContext | None = None,
) -> list[StockMove]:
    """Return the stock moves with the given ids."""
    ids = list(move_ids)
    if not ids:
        return []
    return await client.read(
        "stock.move",
        [ids],
        KeywordRequest(fields=MOVE_FIELDS, context=context),
        shape=list[StockMove],
    )


async def validate_picking(
    client: OdxProxyClient,
    picking_id: int,
    *,
    context: ExecutionContext | None = None,
) -> bool:
    """Validate one picking; return True only when the backend completed it.

    The backend answers with an action mapping instead of ``true`` when it
    needs an extra wizard step (backorder, immediate transfer).
    """
    result = await client.call_method(
        "stock.picking",
        "button_validate",
        [[picking_id]],
        KeywordRequest(context=context),
        shape=bool | dict[str, Any] | None,
    )
    return result is True


async def confirm_receiving(
    client: OdxProxyClient,
    picking: Picking,
    *,
    context: ExecutionContext | None = None,
) -> bool:
    """Validate a receipt when every move was received in full.

    Receipts with edited quantities are left untouched and ``False`` is
    returned.
    """
    moves = await fetch_stock_moves(client, picking.move_ids, context=context)
    edited = [move.id for move in moves if not move.is_complete]
    if edited:
        _LOGGER.info(
            "Receipt %s has edited quantities on moves %s; validation skipped",
            picking.name,
            edited,
        )
        return False
    return await validate_picking(client, picking.id, context=context)


async def archive_product_template(
    client: OdxProxyClient,
    template_id: int,
    *,
    context: ExecutionContext | None = None,
) -> bool:
    """Archive one product template (and therefore its variants)."""
    return await client.write_values(
        "product.template",
        [template_id],
        {"active": False},
        KeywordRequest(context=UTC_CONTEXT if context is None else context),
    )


async def archive_product(
    client: OdxProxyClient,
    product: Product,
    *,
    context: ExecutionContext | None = None,
) -> bool:
    """Archive the template behind one product; False when it has none."""
    if product.product_tmpl_id is None:
        return False
    return await archive_product_template(
        client, product.product_tmpl_id.id, context=context
    )


async def create_product_template(
    client: OdxProxyClient,
    name: str,
    *,
    barcode: str = "",
    description: str = "",
    context: ExecutionContext | None = None,
) -> list[int]:
    """Create one product template; blank barcode/description are sent as false."""
    if name.strip() == "":
        raise ValueError("product name is required")
    return await client.create_values(
        "product.template",
        [
            {
                "name": name,
                "barcode": false_if_blank(barcode),
                "description": false_if_blank(description),
            }
        ],
        KeywordRequest(context=UTC_CONTEXT if context is None else context),
    )


async def list_companies(
    client: OdxProxyClient,
    *,
    selected_ids: Sequence[int] = (),
    context: ExecutionContext | None = None,
) -> list[Company]:
    """Return every company visible to the user, flagging the selected ones."""
    companies = await client.search_read(
        "res.company",
        [[]],
        KeywordRequest(fields=COMPANY_FIELDS, context=context),
        shape=list[Company],
    )
    chosen = set(selected_ids)
    return [
        company.model_copy(update={"selected": company.id in chosen})
        for company in companies
    ]
