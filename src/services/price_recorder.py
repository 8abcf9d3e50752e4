from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Sequence

from config import IngestorConfig
from db.repositories import PriceRepository
from domain.prices import PriceRecord

from .market_types import MarketQuote, RecordOutcome

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def minute_bucket(moment: datetime) -> datetime:
    return moment.replace(second=0, microsecond=0)


class PriceRecorder:
    """Persists one batch of quotes under a single minute bucket."""

    def __init__(
        self,
        repository: PriceRepository,
        config: IngestorConfig,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not config.source:
            msg = "source must be provided"
            raise ValueError(msg)
        self.repository = repository
        self.source = config.source
        self._clock = clock

    def record(self, quotes: Sequence[MarketQuote]) -> RecordOutcome:
        if not quotes:
            msg = "quotes must not be empty; skip recording when nothing was fetched"
            raise ValueError(msg)

        now = self._clock().astimezone(timezone.utc)
        bucket = minute_bucket(now)
        records = [
            PriceRecord(
                source=self.source,
                symbol=quote.symbol,
                coin_id=quote.coin_id,
                name=quote.name,
                price=quote.current_price,
                market_cap=quote.market_cap,
                pct_change_24h=quote.price_change_percentage_24h,
                ts=now,
                ts_bucket=bucket,
            )
            for quote in quotes
        ]

        inserted = self.repository.insert_ignoring_duplicates(records)
        outcome = RecordOutcome(inserted=inserted, skipped=len(records) - inserted)
        logger.info(
            "Recorded prices source=%s bucket=%s inserted=%d skipped=%d",
            self.source,
            bucket.isoformat(),
            outcome.inserted,
            outcome.skipped,
        )
        return outcome


__all__ = ["PriceRecorder", "minute_bucket"]
