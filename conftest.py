"""Pytest configuration for the ODX client test suite."""

from __future__ import annotations

import os

import pytest

from packages.odx_shared.logging import clear_context


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop operator ``ODX_`` variables and bound log fields between tests."""
    for key in list(os.environ):
        if key.startswith("ODX_"):
            monkeypatch.delenv(key, raising=False)
    clear_context()
