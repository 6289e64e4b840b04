import importlib
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

_ENV_LOADED = False

DEFAULT_NETWORK_STATUS_URL = "https://api.infura.io/v1/status/metamask"
DEFAULT_NETWORK_POLL_INTERVAL = 300.0
DEFAULT_GAS_BUFFER_MULTIPLIER = 1.5


def _load_env() -> None:
    global _ENV_LOADED
    if _ENV_LOADED:
        return
    try:
        dotenv = importlib.import_module("dotenv")
    except Exception as exc:  # pragma: no cover - defensive
        raise SystemExit(
            "python-dotenv is required (pip install -e .)"
        ) from exc
    env_path = Path(__file__).resolve().parents[1] / ".env"
    dotenv.load_dotenv(dotenv_path=env_path)
    _ENV_LOADED = True


def get_env(
    name: str, default: str | None = None, required: bool = False
) -> str | None:
    _load_env()
    value = os.environ.get(name, default)
    if required and (value is None or value == ""):
        raise SystemExit(f"{name} env var is required")
    return value


@dataclass(frozen=True)
class Settings:
    rpc_urls: list[str]
    network_status_url: str
    network_poll_interval: float
    gas_buffer_multiplier: float
    chain_id: Optional[int]


def load_settings() -> Settings:
    rpc_urls = [
        url.strip() for url in (get_env("RPC_URLS") or "").split(",") if url.strip()
    ]
    chain_id_raw = get_env("CHAIN_ID")
    return Settings(
        rpc_urls=rpc_urls,
        network_status_url=get_env("NETWORK_STATUS_URL", DEFAULT_NETWORK_STATUS_URL)
        or DEFAULT_NETWORK_STATUS_URL,
        network_poll_interval=_positive_float(
            "NETWORK_POLL_INTERVAL", DEFAULT_NETWORK_POLL_INTERVAL
        ),
        gas_buffer_multiplier=_positive_float(
            "GAS_BUFFER_MULTIPLIER", DEFAULT_GAS_BUFFER_MULTIPLIER
        ),
        chain_id=_to_int("CHAIN_ID", chain_id_raw) if chain_id_raw else None,
    )


def _positive_float(name: str, default: float) -> float:
    raw = get_env(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise SystemExit(f"{name} must be a number, got {raw!r}") from exc
    if not math.isfinite(value) or value <= 0:
        raise SystemExit(f"{name} must be a positive finite number")
    return value


def _to_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError as exc:
        raise SystemExit(f"{name} must be a decimal integer, got {raw!r}") from exc
