"""Test configuration: src/ on the import path, isolated settings env."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

SETTINGS_ENV_VARS = (
    "RPC_URLS",
    "NETWORK_STATUS_URL",
    "NETWORK_POLL_INTERVAL",
    "GAS_BUFFER_MULTIPLIER",
    "CHAIN_ID",
)


def _ensure_src_on_path() -> None:
    src_path = Path(__file__).resolve().parents[1] / "src"
    src_value = str(src_path)
    if src_value not in sys.path:
        sys.path.insert(0, src_value)


_ensure_src_on_path()


@pytest.fixture
def clean_env(monkeypatch):
    """Drop settings env vars so config falls back to its defaults."""
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
