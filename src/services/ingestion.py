from __future__ import annotations

import logging

from .market_client import MarketClient
from .market_types import RecordOutcome
from .price_recorder import PriceRecorder

logger = logging.getLogger(__name__)


def ingest_once(
    client: MarketClient,
    recorder: PriceRecorder,
    *,
    vs_currency: str | None = None,
    per_page: int = 10,
    page: int = 1,
) -> RecordOutcome | None:
    """Fetch one page of top markets and record it. Returns ``None`` when nothing was fetched."""
    quotes = client.top_markets(vs_currency, per_page=per_page, page=page)
    if not quotes:
        logger.info("No markets returned, skipping write")
        return None
    return recorder.record(quotes)


__all__ = ["ingest_once"]
