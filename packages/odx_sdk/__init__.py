"""Public ODX client SDK interface for warehouse callers."""

from packages.odx_sdk.calls import (
    Company,
    Picking,
    Product,
    StockMove,
    archive_product,
    archive_product_template,
    confirm_receiving,
    create_product_template,
    fetch_products,
    fetch_stock_moves,
    find_receipts,
    list_companies,
    validate_picking,
)
from packages.odx_sdk.client import ConfigurationHolder, OdxProxyClient
from packages.odx_sdk.config import ClientConfiguration
from packages.odx_sdk.envelope import (
    DEFAULT_CONTEXT,
    ExecutionContext,
    KeywordRequest,
    Operation,
    RequestEnvelope,
    build_request,
)
from packages.odx_sdk.errors import (
    DecodeErrorKind,
    OdxAccessError,
    OdxConfigurationError,
    OdxDecodeError,
    OdxEnvelopeError,
    OdxNotFoundError,
    OdxSdkError,
    OdxServerError,
    OdxTransportError,
    OdxValidationError,
    ServerErrorDetail,
    TransportErrorKind,
)
from packages.odx_sdk.response import ServerResponse, decode_response
from packages.odx_sdk.transport import HttpTransport, Transport
from packages.odx_sdk.values import (
    AbsentPolicy,
    OdxRecord,
    OptionalValue,
    Relation,
    RelationPair,
    RelationReference,
    encode_values,
)

__all__ = [
    "AbsentPolicy",
    "ClientConfiguration",
    "Company",
    "ConfigurationHolder",
    "DEFAULT_CONTEXT",
    "DecodeErrorKind",
    "ExecutionContext",
    "HttpTransport",
    "KeywordRequest",
    "OdxAccessError",
    "OdxConfigurationError",
    "OdxDecodeError",
    "OdxEnvelopeError",
    "OdxNotFoundError",
    "OdxProxyClient",
    "OdxRecord",
    "OdxSdkError",
    "OdxServerError",
    "OdxTransportError",
    "OdxValidationError",
    "Operation",
    "OptionalValue",
    "Picking",
    "Product",
    "Relation",
    "RelationPair",
    "RelationReference",
    "RequestEnvelope",
    "ServerErrorDetail",
    "ServerResponse",
    "StockMove",
    "Transport",
    "TransportErrorKind",
    "archive_product",
    "archive_product_template",
    "build_request",
    "confirm_receiving",
    "create_product_template",
    "decode_response",
    "encode_values",
    "fetch_products",
    "fetch_stock_moves",
    "find_receipts",
    "list_companies",
    "validate_picking",
]
