"""Invocation logging for client verbs.

``rpc_instrumented`` wraps one verb so every call logs ``RPC invocation`` when
it starts and ``RPC completion`` when it ends. Both records carry the
component, the verb name and the values of selected arguments; completion adds
success, duration and, on failure, the error and its kind. Plain and
``async`` callables are supported.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from functools import wraps
from time import perf_counter
from typing import Any, Callable

from . import fields
from .context import log_context


@dataclass
class RpcCall:
    """One instrumented call in progress."""

    logger: logging.Logger
    component_id: str
    api_name: str
    references: dict[str, str]
    started: float = field(default_factory=perf_counter)

    def begin(self) -> None:
        """Log the invocation record."""
        with log_context({**self._fields(), fields.EVENT: fields.RPC_INVOCATION_EVENT}):
            self.logger.info("RPC invocation")

    def end(self, error: BaseException | None = None) -> None:
        """Log the completion record, at warning level for failures."""
        payload = {
            **self._fields(),
            fields.EVENT: fields.RPC_COMPLETION_EVENT,
            fields.SUCCESS: error is None,
            fields.DURATION_MS: round((perf_counter() - self.started) * 1000.0, 3),
        }
        if error is not None:
            payload[fields.ERRORS] = f"{type(error).__name__}: {error}"
            payload[fields.ERROR_KIND] = error_kind(error)
        with log_context(payload):
            if error is None:
                self.logger.info("RPC completion")
            else:
                self.logger.warning("RPC completion")

    def _fields(self) -> dict[str, object]:
        return {
            fields.COMPONENT_ID: self.component_id,
            fields.API_NAME: self.api_name,
            **self.references,
        }


def rpc_instrumented(
    *,
    component_id: str,
    logger: logging.Logger,
    api_name: str | None = None,
    id_fields: tuple[str, ...] = (),
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorate one verb with invocation and completion logging.

    ``id_fields`` names call arguments (positional or keyword) whose values are
    attached to both records and stay bound while the verb runs.
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        name = api_name or func.__name__
        signature = inspect.signature(func)

        def _start(args: tuple[Any, ...], kwargs: dict[str, Any]) -> RpcCall:
            call = RpcCall(
                logger=logger,
                component_id=component_id,
                api_name=name,
                references=_references(signature, id_fields, args, kwargs),
            )
            call.begin()
            return call

        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                call = _start(args, kwargs)
                with log_context(call.references):
                    try:
                        result = await func(*args, **kwargs)
                    except Exception as exc:
                        call.end(exc)
                        raise
                call.end()
                return result

            return async_wrapper

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            call = _start(args, kwargs)
            with log_context(call.references):
                try:
                    result = func(*args, **kwargs)
                except Exception as exc:
                    call.end(exc)
                    raise
            call.end()
            return result

        return wrapper

    return decorator


def error_kind(exc: BaseException) -> str:
    """Return the typed ``kind`` of an SDK error, else the class name."""
    kind = getattr(exc, "kind", None)
    value = getattr(kind, "value", kind)
    if value in (None, ""):
        return type(exc).__name__
    return str(value)


def _references(
    signature: inspect.Signature,
    id_fields: tuple[str, ...],
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> dict[str, str]:
    """Return string values for selected call arguments that are present."""
    if not id_fields:
        return {}
    try:
        bound = signature.bind_partial(*args, **kwargs)
    except TypeError:
        return {}
    return {
        name: str(bound.arguments[name])
        for name in id_fields
        if bound.arguments.get(name) not in (None, "")
    }
