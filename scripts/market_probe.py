# flake8: noqa E402
# Run via uv so project deps are loaded, e.g.:
# uv run scripts/market_probe.py --vs-currency eur --per-page 5
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

# Ensure the src directory is importable when the script is invoked via uv/python directly.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from config import config
from services.market_client import MarketClient


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch a live top-markets page without writing anything.")
    parser.add_argument("--vs-currency", help="Reference currency (default: configured ingestor currency).")
    parser.add_argument("--per-page", type=int, default=10, help="Page size (default: 10).")
    parser.add_argument("--page", type=int, default=1, help="Page number, starting at 1.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()

    client = MarketClient(config().ingestor_config())
    quotes = client.top_markets(args.vs_currency, per_page=args.per_page, page=args.page)
    payload: list[dict[str, Any]] = [
        {
            "id": quote.coin_id,
            "symbol": quote.symbol,
            "name": quote.name,
            "current_price": str(quote.current_price),
            "market_cap": None if quote.market_cap is None else str(quote.market_cap),
            "price_change_percentage_24h": (
                None if quote.price_change_percentage_24h is None else str(quote.price_change_percentage_24h)
            ),
        }
        for quote in quotes
    ]
    print(json.dumps(payload, indent=2))


if __name__ == "__main__":
    main()
