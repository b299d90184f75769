"""Public logging API for the ODX client packages.

This package wraps Python's ``logging`` module with a single configurable
handler and task-local structured context.
"""

from .config import configure_logging, get_logger
from .context import bind_context, clear_context, get_context, log_context
from .instrumentation import RpcCall, error_kind, rpc_instrumented

__all__ = [
    "bind_context",
    "clear_context",
    "configure_logging",
    "error_kind",
    "get_context",
    "get_logger",
    "log_context",
    "RpcCall",
    "rpc_instrumented",
]
