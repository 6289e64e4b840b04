"""CLI entrypoint for transaction preparation helpers."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import requests

import config
from chain.network_status import NetworkStatusMonitor
from chain.tx_utils import add_gas_buffer, build_transaction, sufficient_balance
from core.errors import ChainError


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Transaction preparation CLI")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    balance = subparsers.add_parser(
        "sufficient-balance", help="Check a tx against an account balance"
    )
    balance.add_argument("--tx", required=True, help="Path to transaction JSON file")
    balance.add_argument("--balance", required=True, help="Balance as 0x hex")

    build_tx = subparsers.add_parser(
        "build-transaction", help="Normalize transaction params from JSON file"
    )
    build_tx.add_argument("--tx", required=True, help="Path to transaction JSON file")

    gas = subparsers.add_parser(
        "add-gas-buffer", help="Buffer a gas estimate under the block gas limit"
    )
    gas.add_argument("estimate", help="Estimated gas as 0x hex")
    gas.add_argument("block_gas_limit", help="Block gas limit as 0x hex")
    gas.add_argument(
        "--multiplier",
        type=float,
        default=None,
        help="Buffer multiplier (default: GAS_BUFFER_MULTIPLIER or 1.5)",
    )

    subparsers.add_parser("network-status", help="Check network status once")
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    try:
        if args.command == "sufficient-balance":
            tx = _load_json_object(args.tx)
            ok = sufficient_balance(tx, args.balance)
            print("sufficient" if ok else "insufficient")
            if not ok:
                sys.exit(1)
            return

        if args.command == "build-transaction":
            tx = build_transaction(_load_json_object(args.tx))
            payload = tx.to_dict()
            payload["signingHash"] = f"0x{tx.signing_hash().hex()}"
            print(json.dumps(payload, separators=(",", ":"), sort_keys=True))
            return

        if args.command == "add-gas-buffer":
            multiplier = args.multiplier
            if multiplier is None:
                multiplier = config.load_settings().gas_buffer_multiplier
            print(add_gas_buffer(args.estimate, args.block_gas_limit, multiplier))
            return

        if args.command == "network-status":
            settings = config.load_settings()
            monitor = NetworkStatusMonitor(status_url=settings.network_status_url)
            print(json.dumps(monitor.check_network_status(), sort_keys=True))
            return
    except (ChainError, ValueError, requests.RequestException) as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(2)


def _load_json_value(path: str) -> object:
    try:
        payload = Path(path).read_text(encoding="utf-8")
        data = json.loads(payload)
    except FileNotFoundError as exc:
        raise ValueError(f"JSON file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}") from exc
    return data


def _load_json_object(path: str) -> dict:
    data = _load_json_value(path)
    if not isinstance(data, dict):
        raise ValueError(f"JSON in {path} must be an object")
    return data


if __name__ == "__main__":
    main()
