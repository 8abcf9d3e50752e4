from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, model_validator


class PriceRecord(BaseModel):
    """A persisted price row. ``ts_bucket`` is ``ts`` truncated to the minute."""

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    source: str
    symbol: str
    coin_id: str
    name: str
    price: Decimal
    market_cap: Decimal | None = None
    pct_change_24h: Decimal | None = None
    ts: datetime
    ts_bucket: datetime

    @model_validator(mode="after")
    def _validate_bucket(self) -> PriceRecord:
        if self.ts_bucket.second or self.ts_bucket.microsecond:
            raise ValueError("ts_bucket must be truncated to the minute")
        return self
