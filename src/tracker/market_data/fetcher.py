"""Windowed daily OHLCV fetch from CoinMarketCap.

One request per currency and run. The requested window is the analysis
period plus ``window_size - 1`` leading days, which exist only to seed the
trailing average.

CRITICAL implementation notes:
- Quotes are nested as data.quotes[].quote.USD (the convert currency)
- Series is returned NEWEST FIRST; downstream code walks it backwards
- Prices are parsed via str() into Decimal, never kept as float
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation

import httpx

from tracker.config import MarketDataSettings
from tracker.exceptions import DataShapeError, TransportError
from tracker.logging import get_logger
from tracker.models import Currency, RawPricePoint

logger = get_logger(__name__)


class SeriesFetcher:
    """Fetches a currency's daily price series.

    Args:
        client: Shared async HTTP client (owned by the caller).
        settings: Endpoint and quote currency.
        window_size: Moving average window; sets the lookback and the
            minimum acceptable series length.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: MarketDataSettings,
        window_size: int,
    ) -> None:
        self._client = client
        self._settings = settings
        self._window_size = window_size

    @property
    def lookback_days(self) -> int:
        return self._window_size - 1

    async def fetch(
        self,
        currency: Currency,
        days: int,
        end_date: date | None = None,
    ) -> list[RawPricePoint]:
        """Fetch ``days`` reportable days plus the averaging lookback.

        Returns:
            Price points ordered newest first.

        Raises:
            TransportError: On network failure or non-200 status.
            DataShapeError: On a malformed payload or a series shorter
                than the averaging window.
        """
        params = {
            "id": currency.cmc_id,
            "convert": self._settings.convert,
            "count": str(days + self.lookback_days),
        }
        if end_date is not None:
            params["time_end"] = end_date.isoformat()

        try:
            response = await self._client.get(self._settings.base_url, params=params)
        except httpx.HTTPError as e:
            raise TransportError(f"market data request failed for {currency.name}: {e}") from e

        if response.status_code != 200:
            raise TransportError(
                f"market data status error for {currency.name}: "
                f"{response.status_code} {response.reason_phrase}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise DataShapeError(f"market data for {currency.name} is not JSON") from e

        points = parse_quotes(payload, self._settings.convert)

        if len(points) < self._window_size:
            raise DataShapeError(
                f"not enough data points for {currency.name}: "
                f"{len(points)} < {self._window_size}"
            )

        logger.info(
            "price_series_fetched",
            currency=currency.name,
            points=len(points),
            newest=points[0].date.isoformat(),
            oldest=points[-1].date.isoformat(),
        )
        return points


def parse_quotes(payload: dict, convert: str = "USD") -> list[RawPricePoint]:
    """Turn a historical OHLCV payload into price points, newest first.

    Raises:
        DataShapeError: If the payload does not have the expected structure.
    """
    try:
        quotes = payload["data"]["quotes"]
        points = [_parse_quote(q["quote"][convert]) for q in quotes]
    except (KeyError, TypeError, ValueError, InvalidOperation) as e:
        raise DataShapeError(f"malformed market data payload: {e!r}") from e

    points.sort(key=lambda p: p.date, reverse=True)
    return points


def _parse_quote(quote: dict) -> RawPricePoint:
    timestamp = datetime.fromisoformat(quote["timestamp"])
    return RawPricePoint(
        date=timestamp.date(),
        open=Decimal(str(quote["open"])),
        high=Decimal(str(quote["high"])),
        low=Decimal(str(quote["low"])),
        close=Decimal(str(quote["close"])),
        volume=Decimal(str(quote["volume"])),
        market_cap=int(Decimal(str(quote.get("market_cap") or 0))),
    )
