from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class MarketQuote:
    """One asset's market snapshot as returned by the markets listing."""

    coin_id: str
    symbol: str
    name: str
    current_price: Decimal
    market_cap: Decimal | None
    price_change_percentage_24h: Decimal | None


@dataclass(frozen=True)
class RecordOutcome:
    inserted: int
    skipped: int

    @property
    def total(self) -> int:
        return self.inserted + self.skipped


__all__ = ["MarketQuote", "RecordOutcome"]
