"""Canonical field names for ODX structured logs.

The SDK, the CLI and embedding callers attach context under these keys so log
lines from every layer can be joined on them.
"""

TIMESTAMP = "timestamp"
LEVEL = "level"
LOGGER = "logger"
MESSAGE = "message"
EVENT = "event"

# Per-call correlation.
REQUEST_ID = "request_id"
MODEL = "model"
OPERATION = "operation"
FUNCTION_NAME = "function_name"

# Verb invocation and completion.
COMPONENT_ID = "component_id"
API_NAME = "api_name"
RPC_INVOCATION_EVENT = "rpc_invocation"
RPC_COMPLETION_EVENT = "rpc_completion"
SUCCESS = "success"
DURATION_MS = "duration_ms"
ERRORS = "errors"
ERROR_KIND = "error_kind"

# Process identity.
SERVICE = "service"
ENVIRONMENT = "environment"
