"""
Prepare a transaction against a live node.

Fetches the sender balance, a naive gas estimate and the latest block gas
limit, then runs normalize -> balance check -> gas buffer and prints the
resulting transaction. Nothing is signed or sent.

Usage (from repo root, with RPC_URLS set in .env):

    python scripts/prepare_live.py tx.json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

# Ensure src/ is on sys.path
ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

import requests  # noqa: E402

from chain import (  # noqa: E402
    ChainClient,
    ChainError,
    NetworkStatusMonitor,
    RpcChainConfig,
    TxUtils,
    build_transaction,
)
from config import load_settings  # noqa: E402

logger = logging.getLogger("prepare_live")


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("tx", help="Path to transaction params JSON")
    parser.add_argument(
        "--skip-status", action="store_true", help="Do not consult network status"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = load_settings()
    if not settings.rpc_urls:
        print("RPC_URLS env var is required", file=sys.stderr)
        return 2

    params = json.loads(Path(args.tx).read_text(encoding="utf-8"))
    if "from" not in params:
        print("tx params need a 'from' address", file=sys.stderr)
        return 2

    if not args.skip_status:
        monitor = NetworkStatusMonitor(
            status_url=settings.network_status_url,
            poll_interval=settings.network_poll_interval,
        )
        try:
            monitor.check_network_status()
        except (requests.RequestException, ChainError) as exc:
            logger.warning("network status unavailable: %s", exc)
        if not monitor.is_network_healthy():
            logger.warning(
                "network status is %s, live values may be stale", monitor.get_status()
            )

    client = ChainClient(settings.rpc_urls)
    provider = RpcChainConfig(client, chain_id=settings.chain_id)
    utils = TxUtils(provider, buffer_multiplier=settings.gas_buffer_multiplier)

    try:
        draft = build_transaction(params)
        balance = client.get_balance(params["from"])
        estimate = client.estimate_gas(draft)
        tx = utils.prepare_transaction(draft, balance=balance, estimated_gas=estimate)
    except ChainError as exc:
        print(f"{type(exc).__name__}: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(tx.to_dict(), indent=2, sort_keys=True))
    print(f"signing hash: 0x{tx.signing_hash().hex()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
