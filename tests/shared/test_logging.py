"""Unit tests for structured logging context, setup and verb instrumentation."""

from __future__ import annotations

import asyncio
import io
import json
import logging
from collections.abc import Iterator

import pytest

from packages.odx_shared.config import LoggingSettings
from packages.odx_shared.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_context,
    log_context,
    rpc_instrumented,
)
from packages.odx_shared.logging import fields
from packages.odx_shared.logging.config import ContextFilter, PlainFormatter


class _ContextCapture(logging.Handler):
    """Handler keeping each record's message, level and bound context."""

    def __init__(self) -> None:
        super().__init__()
        self.entries: list[tuple[str, int, dict[str, str]]] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.entries.append((record.getMessage(), record.levelno, get_context()))


@pytest.fixture
def capture() -> Iterator[_ContextCapture]:
    handler = _ContextCapture()
    logger = logging.getLogger("odx.test.instrumented")
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    yield handler
    logger.removeHandler(handler)


@pytest.fixture
def root_handler_cleanup() -> Iterator[None]:
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in before:
            root.removeHandler(handler)
    root.setLevel(level)


def test_log_context_binds_and_restores() -> None:
    """Fields bound in a block disappear when the block exits."""
    bind_context(service="odx-client", ignored=None)

    with log_context({fields.REQUEST_ID: "abc", fields.MODEL: "res.partner"}):
        assert get_context() == {
            "service": "odx-client",
            "request_id": "abc",
            "model": "res.partner",
        }

    assert get_context() == {"service": "odx-client"}
    clear_context("service")
    assert get_context() == {}


def test_log_context_is_task_local() -> None:
    """Concurrent tasks never see each other's bound fields."""

    async def _task(request_id: str) -> dict[str, str]:
        with log_context({fields.REQUEST_ID: request_id}):
            await asyncio.sleep(0)
            return get_context()

    async def _run() -> list[dict[str, str]]:
        return list(await asyncio.gather(_task("one"), _task("two")))

    assert asyncio.run(_run()) == [{"request_id": "one"}, {"request_id": "two"}]


def test_frozen_errors_propagate_through_log_context() -> None:
    """Frozen dataclass errors leave a bound block unchanged."""
    from packages.odx_sdk.errors import DecodeErrorKind, OdxDecodeError

    error = OdxDecodeError(
        message="bad reply", operation="x.read", kind=DecodeErrorKind.MALFORMED
    )

    with pytest.raises(OdxDecodeError) as exc_info:
        with log_context({fields.REQUEST_ID: "abc"}):
            raise error

    assert exc_info.value is error
    assert fields.REQUEST_ID not in get_context()


def test_json_output_carries_context_and_masks_secrets(root_handler_cleanup: None) -> None:
    """JSON lines include bound context and never the configured secrets."""
    stream = io.StringIO()
    configure_logging(
        LoggingSettings(level="INFO", json_output=True, service="odx-cli"),
        secrets=("erp-key", ""),
        stream=stream,
    )
    logger = logging.getLogger("odx.test.json")

    with log_context({fields.REQUEST_ID: "abc", "note": "uses erp-key"}):
        logger.info("sending with key %s", "erp-key")

    payload = json.loads(stream.getvalue().splitlines()[-1])
    assert payload[fields.MESSAGE] == "sending with key ***"
    assert payload[fields.LEVEL] == "INFO"
    assert payload[fields.REQUEST_ID] == "abc"
    assert payload[fields.SERVICE] == "odx-cli"
    assert payload["note"] == "uses ***"


def test_configure_logging_replaces_only_its_own_handler(
    root_handler_cleanup: None,
) -> None:
    """Repeated setup never duplicates output or removes foreign handlers."""
    foreign = logging.NullHandler()
    root = logging.getLogger()
    root.addHandler(foreign)
    try:
        first = configure_logging(stream=io.StringIO())
        second = configure_logging(stream=io.StringIO())

        assert first not in root.handlers
        assert second in root.handlers
        assert foreign in root.handlers
    finally:
        root.removeHandler(foreign)


def test_plain_formatter_appends_sorted_context() -> None:
    """Plain output appends ``key=value`` pairs in key order."""
    record = logging.LogRecord(
        "odx.test", logging.INFO, __file__, 1, "RPC invocation", None, None
    )
    with log_context({fields.OPERATION: "read", fields.MODEL: "res.partner"}):
        ContextFilter().filter(record)

    text = PlainFormatter().format(record)

    assert text.endswith("RPC invocation model=res.partner operation=read")


def test_rpc_instrumented_logs_async_success_with_references(
    capture: _ContextCapture,
) -> None:
    """Async verbs log invocation and completion with selected arguments."""
    logger = logging.getLogger("odx.test.instrumented")

    @rpc_instrumented(component_id="odx_test", id_fields=("model",), logger=logger)
    async def read(model: str, ids: list[int]) -> list[int]:
        assert get_context()["model"] == model
        return ids

    assert asyncio.run(read("res.partner", ids=[1])) == [1]

    (start, start_level, start_ctx), (end, end_level, end_ctx) = capture.entries
    assert (start, start_level) == ("RPC invocation", logging.INFO)
    assert start_ctx[fields.API_NAME] == "read"
    assert start_ctx[fields.COMPONENT_ID] == "odx_test"
    assert start_ctx["model"] == "res.partner"
    assert (end, end_level) == ("RPC completion", logging.INFO)
    assert end_ctx[fields.SUCCESS] == "True"
    assert fields.ERRORS not in end_ctx


def test_rpc_instrumented_logs_failure_kind(capture: _ContextCapture) -> None:
    """Failures log a warning with the error's ``kind`` and are re-raised."""
    logger = logging.getLogger("odx.test.instrumented")

    class _Kind:
        value = "timeout"

    class _Failure(Exception):
        kind = _Kind()

    @rpc_instrumented(component_id="odx_test", logger=logger)
    def call() -> None:
        raise _Failure("late")

    with pytest.raises(_Failure):
        call()

    message, level, context = capture.entries[-1]
    assert (message, level) == ("RPC completion", logging.WARNING)
    assert context[fields.SUCCESS] == "False"
    assert context[fields.ERROR_KIND] == "timeout"
    assert context[fields.ERRORS] == "_Failure: late"
