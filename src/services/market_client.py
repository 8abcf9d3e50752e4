from __future__ import annotations

import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

import requests
from requests import Response

from config import IngestorConfig

from .market_types import MarketQuote
from .retry import RetryDeadlineExceeded, RetryPolicy, call_with_retry

logger = logging.getLogger(__name__)

MARKETS_PATH = "/coins/markets"


class MarketDataError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, payload: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class MarketDataTimeoutError(MarketDataError):
    pass


def is_transient_failure(exc: BaseException) -> bool:
    if isinstance(exc, requests.HTTPError):
        return getattr(exc.response, "status_code", None) == 429
    return isinstance(exc, (requests.ConnectionError, requests.Timeout))


DEFAULT_RETRY_POLICY = RetryPolicy(max_retries=3, base_delay=2.0, multiplier=2.0, retry_on=is_transient_failure)


class MarketClient:
    """Client for a CoinGecko-style ``/coins/markets`` listing."""

    def __init__(
        self,
        config: IngestorConfig,
        *,
        session: requests.Session | None = None,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not config.base_url:
            msg = "base_url must be provided"
            raise ValueError(msg)
        if config.timeout_seconds <= 0:
            msg = "timeout_seconds must be > 0"
            raise ValueError(msg)

        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self.retry_policy = retry_policy
        self._session = session or requests.Session()
        self._sleep = sleep
        self._clock = clock

        self._headers = {"Accept": "application/json"}
        if config.api_key and config.api_key.strip():
            self._headers[config.api_key_header] = config.api_key

    def top_markets(self, vs_currency: str | None = None, per_page: int = 10, page: int = 1) -> list[MarketQuote]:
        """Return one page of markets ordered by descending 24h volume."""
        if per_page <= 0:
            msg = "per_page must be > 0"
            raise ValueError(msg)
        if page <= 0:
            msg = "page must be > 0"
            raise ValueError(msg)

        params = {
            "vs_currency": vs_currency or self.config.vs_currency,
            "order": "volume_desc",
            "per_page": per_page,
            "page": page,
            "price_change_percentage": "24h",
        }
        payload = self._request("GET", MARKETS_PATH, params=params)
        if not isinstance(payload, list):
            raise MarketDataError("Markets endpoint returned unexpected payload type", payload=payload)

        quotes = [self._parse_market_entry(entry) for entry in payload]
        logger.info(
            "Fetched %d markets vs_currency=%s per_page=%d page=%d", len(quotes), params["vs_currency"], per_page, page
        )
        return quotes

    def _request(self, method: str, path: str, *, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"

        def attempt(remaining: float) -> Response:
            response = self._session.request(
                method,
                url,
                params=params,
                timeout=remaining,
                headers=self._headers,
            )
            response.raise_for_status()
            return response

        try:
            response = call_with_retry(
                attempt,
                self.retry_policy,
                deadline=self.config.timeout_seconds,
                sleep=self._sleep,
                clock=self._clock,
            )
        except RetryDeadlineExceeded as exc:
            cause = exc.__cause__
            status_code = getattr(getattr(cause, "response", None), "status_code", None)
            raise MarketDataTimeoutError(
                f"Markets request exceeded {self.config.timeout_seconds:g}s", status_code=status_code
            ) from exc
        except requests.HTTPError as exc:
            resp = exc.response
            status_code = getattr(resp, "status_code", None)
            raise MarketDataError(
                "Markets request failed", status_code=status_code, payload=self._extract_error(resp)
            ) from exc
        except requests.RequestException as exc:
            status_code = getattr(getattr(exc, "response", None), "status_code", None)
            raise MarketDataError("Markets request failed", status_code=status_code) from exc

        try:
            return response.json()
        except ValueError as exc:
            raise MarketDataError("Markets endpoint returned invalid JSON", payload=response.text) from exc

    def _parse_market_entry(self, entry: Any) -> MarketQuote:
        if not isinstance(entry, dict):
            raise MarketDataError("Markets entry is not an object", payload=entry)

        coin_id = entry.get("id")
        symbol = entry.get("symbol")
        name = entry.get("name")
        if not coin_id or not symbol or not name:
            raise MarketDataError("Markets entry missing id, symbol or name", payload=entry)

        current_price = self._to_decimal(entry.get("current_price"), entry)
        if current_price is None:
            raise MarketDataError(f"Markets entry {coin_id} has no current_price", payload=entry)

        return MarketQuote(
            coin_id=str(coin_id),
            symbol=str(symbol),
            name=str(name),
            current_price=current_price,
            market_cap=self._to_decimal(entry.get("market_cap"), entry),
            price_change_percentage_24h=self._to_decimal(entry.get("price_change_percentage_24h"), entry),
        )

    @staticmethod
    def _to_decimal(value: Any, entry: dict[str, Any]) -> Decimal | None:
        if value is None:
            return None
        if isinstance(value, bool):
            raise MarketDataError("Markets entry contains non-numeric value", payload=entry)
        try:
            result = Decimal(str(value))
        except InvalidOperation as exc:
            raise MarketDataError("Markets entry contains non-numeric value", payload=entry) from exc
        if not result.is_finite():
            raise MarketDataError("Markets entry contains non-finite value", payload=entry)
        return result

    @staticmethod
    def _extract_error(response: Response | None) -> Any:
        if response is None:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text


__all__ = ["DEFAULT_RETRY_POLICY", "MarketClient", "MarketDataError", "MarketDataTimeoutError", "is_transient_failure"]
