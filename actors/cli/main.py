"""Diagnostic ODX command-line interface implemented with Typer."""

from __future__ import annotations

import asyncio
import dataclasses
import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable

import typer
from packages.odx_sdk import (
    ExecutionContext,
    KeywordRequest,
    OdxConfigurationError,
    OdxDecodeError,
    OdxProxyClient,
    OdxServerError,
    OdxTransportError,
    fetch_products,
    find_receipts,
    list_companies,
)
from packages.odx_shared.config import DEFAULT_CONFIG_PATH, OdxSettings, load_settings
from packages.odx_shared.logging import configure_logging

SUCCESS_EXIT_CODE = 0
CONFIGURATION_ERROR_EXIT_CODE = 2
SERVER_ERROR_EXIT_CODE = 3
TRANSPORT_ERROR_EXIT_CODE = 4
DECODE_ERROR_EXIT_CODE = 5


@dataclass(frozen=True)
class CliConfig:
    """Global CLI runtime options propagated to SDK calls."""

    config_path: Path
    timeout: float | None
    as_json: bool
    log_level: str | None


def _serialize(value: Any) -> Any:
    """Convert result objects to JSON-serializable structures."""

    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Path):
        return str(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _serialize(dataclasses.asdict(value))
    if isinstance(value, dict):
        return {str(key): _serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_serialize(item) for item in value]
    if hasattr(value, "model_dump"):
        return _serialize(value.model_dump(mode="python"))
    return str(value)


def _emit_output(result: Any, as_json: bool) -> None:
    """Render command output in requested format."""

    data = _serialize(result)
    if as_json:
        typer.echo(json.dumps(data, sort_keys=True, separators=(",", ":")))
        return
    rendered = _render_human(data)
    if rendered is not None:
        typer.echo(rendered)
        return
    if data is None:
        typer.echo("ok")
        return
    typer.echo(str(data))


def _emit_error(exc: Exception, as_json: bool) -> None:
    """Render mapped SDK errors to stderr."""

    if as_json:
        payload: dict[str, Any] = {"error": str(exc), "type": type(exc).__name__}
        kind = getattr(exc, "kind", None)
        if kind is not None:
            payload["kind"] = getattr(kind, "value", str(kind))
        typer.echo(json.dumps(payload, sort_keys=True), err=True)
        return
    typer.echo(f"error: {exc}", err=True)


def _render_human(data: Any) -> str | None:
    """Return human-oriented rendering for recognized response shapes."""
    if isinstance(data, list):
        if _looks_like_products(data):
            return _render_products(data)
        if _looks_like_pickings(data):
            return _render_pickings(data)
        if _looks_like_companies(data):
            return _render_companies(data)
    if isinstance(data, (dict, list)):
        return json.dumps(data, indent=2, sort_keys=True)
    return None


def _looks_like_products(items: list[Any]) -> bool:
    """Return True for product catalog payloads."""
    return len(items) > 0 and all(
        isinstance(item, dict) and "qty_available" in item for item in items
    )


def _looks_like_pickings(items: list[Any]) -> bool:
    """Return True for picking search payloads."""
    return len(items) > 0 and all(
        isinstance(item, dict) and "move_ids" in item for item in items
    )


def _looks_like_companies(items: list[Any]) -> bool:
    """Return True for company list payloads."""
    return len(items) > 0 and all(
        isinstance(item, dict) and "selected" in item for item in items
    )


def _render_products(items: list[dict[str, Any]]) -> str:
    """Render products as one line each with available quantity."""
    return "\n".join(
        f"- {item.get('name', '<unnamed>')} (avail: {_quantity(item.get('qty_available'))})"
        for item in items
    )


def _render_pickings(items: list[dict[str, Any]]) -> str:
    """Render pickings with origin and partner."""
    lines: list[str] = []
    for item in items:
        partner = item.get("partner_id")
        partner_name = partner.get("label") if isinstance(partner, dict) else None
        origin = item.get("origin") or ""
        line = f"- {item.get('name', '<unknown>')} [{item.get('state', '')}]"
        detail = " - ".join(part for part in (origin, partner_name or "") if part)
        if detail:
            line = f"{line} {detail}"
        lines.append(line)
    return "\n".join(lines)


def _render_companies(items: list[dict[str, Any]]) -> str:
    """Render companies with a marker on selected ones."""
    return "\n".join(
        f"{'*' if item.get('selected') else '-'} {item.get('name', '')} (id {item.get('id')})"
        for item in items
    )


def _quantity(value: Any) -> str:
    """Format one optional quantity with two decimals, ``-`` when absent."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:.2f}"
    return "-"


def _load(cfg: CliConfig) -> OdxSettings:
    """Load settings and apply CLI overrides."""
    overrides: dict[str, Any] = {}
    if cfg.timeout is not None:
        overrides["connection"] = {"timeout_seconds": cfg.timeout}
    if cfg.log_level is not None:
        overrides["logging"] = {"level": cfg.log_level.upper()}
    return load_settings(cli_params=overrides, config_path=cfg.config_path)


def _run_command(
    cfg: CliConfig,
    invoke: Callable[[OdxProxyClient, OdxSettings], Awaitable[Any]],
) -> None:
    """Execute one SDK call and map outputs/errors to process semantics."""

    async def _call() -> Any:
        settings = _load(cfg)
        configure_logging(
            settings.logging,
            secrets=(settings.connection.api_key, settings.connection.proxy_api_key),
        )
        async with OdxProxyClient.from_settings(settings) as client:
            return await invoke(client, settings)

    try:
        result = asyncio.run(_call())
    except (OdxConfigurationError, ValueError) as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=CONFIGURATION_ERROR_EXIT_CODE) from exc
    except OdxServerError as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=SERVER_ERROR_EXIT_CODE) from exc
    except OdxTransportError as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=TRANSPORT_ERROR_EXIT_CODE) from exc
    except OdxDecodeError as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=DECODE_ERROR_EXIT_CODE) from exc

    _emit_output(result, cfg.as_json)
    raise typer.Exit(code=SUCCESS_EXIT_CODE)


def _require_config(ctx: typer.Context) -> CliConfig:
    """Return required CLI config from Typer context."""

    config = ctx.obj
    if not isinstance(config, CliConfig):
        raise RuntimeError("CLI configuration not initialized")
    return config


app = typer.Typer(no_args_is_help=True, help="ODX gateway command-line interface")


@app.callback()
def main(
    ctx: typer.Context,
    config: Path = typer.Option(
        DEFAULT_CONFIG_PATH,
        "--config",
        envvar="ODX_CONFIG_PATH",
        help="YAML settings file",
    ),
    timeout: float | None = typer.Option(
        None,
        min=0.001,
        help="Request timeout in seconds (overrides settings)",
    ),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON output"),
    log_level: str | None = typer.Option(None, help="Log level override"),
) -> None:
    """Store global options for all commands."""

    ctx.obj = CliConfig(
        config_path=config,
        timeout=timeout,
        as_json=as_json,
        log_level=log_level,
    )


@app.command("products")
def products_command(
    ctx: typer.Context,
    offset: int = typer.Option(0, min=0, help="Page offset"),
    limit: int = typer.Option(80, min=1, help="Page size"),
) -> None:
    """List active products."""
    cfg = _require_config(ctx)
    _run_command(
        cfg,
        lambda client, settings: fetch_products(
            client,
            offset=offset,
            limit=limit,
            context=ExecutionContext.from_settings(settings.connection),
        ),
    )


@app.command("receipts")
def receipts_command(
    ctx: typer.Context,
    search: str = typer.Argument(..., help="Any PO or picking number"),
) -> None:
    """Search ready receipts by name or origin."""
    cfg = _require_config(ctx)
    _run_command(
        cfg,
        lambda client, settings: find_receipts(
            client,
            search,
            context=ExecutionContext.from_settings(settings.connection),
        ),
    )


@app.command("companies")
def companies_command(ctx: typer.Context) -> None:
    """List companies, marking the ones selected in settings."""
    cfg = _require_config(ctx)
    _run_command(
        cfg,
        lambda client, settings: list_companies(
            client,
            selected_ids=settings.connection.selected_company_ids,
            context=ExecutionContext(tz=settings.connection.timezone),
        ),
    )


@app.command("call")
def call_command(
    ctx: typer.Context,
    model: str = typer.Argument(..., help="Backend model, e.g. stock.picking"),
    function_name: str = typer.Argument(..., help="Public model method"),
    ids: list[int] = typer.Argument(None, help="Record ids passed as first argument"),
) -> None:
    """Call one model method on a set of records."""
    cfg = _require_config(ctx)
    _run_command(
        cfg,
        lambda client, settings: client.call_method(
            model,
            function_name,
            [list(ids or [])],
            KeywordRequest(
                context=ExecutionContext.from_settings(settings.connection)
            ),
        ),
    )


if __name__ == "__main__":
    app()
