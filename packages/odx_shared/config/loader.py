"""Settings loading: YAML file, then ``ODX_`` environment, then CLI overrides.

Later layers win key by key. Nested keys in the environment are joined with
``__``, so ``ODX_CONNECTION__USER_ID=7`` sets ``connection.user_id``.
Environment values that are JSON literals (numbers, booleans, lists) are taken
as such; everything else stays text.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .models import DEFAULT_CONFIG_PATH, OdxSettings


def load_settings(
    *,
    cli_params: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    config_path: str | Path | None = None,
    env_prefix: str = "ODX_",
) -> OdxSettings:
    """Return validated settings after layering file, environment and CLI values."""
    return OdxSettings.model_validate(
        load_config(
            cli_params=cli_params,
            environ=environ,
            config_path=config_path,
            env_prefix=env_prefix,
        )
    )


def load_config(
    *,
    cli_params: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    config_path: str | Path | None = None,
    env_prefix: str = "ODX_",
) -> dict[str, Any]:
    """Return the merged raw mapping before validation."""
    layers = (
        read_config_file(DEFAULT_CONFIG_PATH if config_path is None else Path(config_path)),
        env_overrides(os.environ if environ is None else environ, prefix=env_prefix),
        cli_params or {},
    )
    merged: dict[str, Any] = {}
    for layer in layers:
        merged = deep_merge(merged, layer)
    return merged


def read_config_file(path: Path) -> dict[str, Any]:
    """Return the YAML mapping stored at ``path``; a missing file is empty."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"{path} is not valid YAML: {exc}") from exc
    if document is None:
        return {}
    if not isinstance(document, Mapping):
        raise ValueError(f"{path} must hold a mapping at the top level")
    return deep_merge({}, document)


def env_overrides(environ: Mapping[str, str], *, prefix: str) -> dict[str, Any]:
    """Return the nested mapping described by ``prefix``-ed variables."""
    overrides: dict[str, Any] = {}
    for key, raw in environ.items():
        if not key.startswith(prefix):
            continue
        path = [part.strip().lower() for part in key[len(prefix) :].split("__")]
        path = [part for part in path if part]
        if not path:
            continue
        node = overrides
        for part in path[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[path[-1]] = _parse_literal(raw)
    return overrides


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``base`` updated by ``override``, merging nested mappings."""
    merged = {str(key): value for key, value in base.items()}
    for key, value in override.items():
        current = merged.get(str(key))
        if isinstance(value, Mapping):
            value = deep_merge(current if isinstance(current, Mapping) else {}, value)
        merged[str(key)] = value
    return merged


def _parse_literal(raw: str) -> Any:
    """Return ``raw`` decoded as JSON when it is a JSON literal, else the text."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw
