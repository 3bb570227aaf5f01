"""Read-through exchange rate lookup with bounded walk-back.

Central banks do not publish on weekends and holidays. When a day has no
rate, the converter retries with the previous calendar day until a rate is
found or the retry budget runs out. The resolved rate is memoised under
the day that was ORIGINALLY requested, so a Saturday keeps resolving to
Friday's rate without further I/O for the rest of the run.
"""

from datetime import date, timedelta
from decimal import Decimal

from tracker.exceptions import RateUnavailableError
from tracker.logging import get_logger
from tracker.rates.cache import ExchangeRateCache
from tracker.rates.source import RateSource

logger = get_logger(__name__)

DEFAULT_MAX_RETRIES = 20


class RateConverter:
    """Resolves the conversion rate for a day.

    Usage:
        converter = RateConverter(BankOfIsraelRateSource(client, settings), ExchangeRateCache())
        rate = await converter.get_rate(date(2024, 1, 6))
    """

    def __init__(
        self,
        source: RateSource,
        cache: ExchangeRateCache,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self._source = source
        self._cache = cache
        self._max_retries = max_retries

    async def get_rate(self, day: date) -> Decimal:
        """Return the rate for ``day``, walking back over gaps.

        Raises:
            RateUnavailableError: If none of the last ``max_retries`` days has a rate.
            TransportError: If the source cannot be reached.
            DataShapeError: If the source answers in an unexpected format.
        """
        cached = self._cache.get(day)
        if cached is not None:
            return cached

        for attempt in range(self._max_retries):
            candidate = day - timedelta(days=attempt)
            rate = await self._source.fetch_rate(candidate)
            if rate is not None and rate > 0:
                if attempt > 0:
                    logger.debug(
                        "rate_resolved_from_earlier_day",
                        requested=day.isoformat(),
                        resolved=candidate.isoformat(),
                        days_back=attempt,
                    )
                self._cache.put(day, rate)
                return rate

        logger.error(
            "rate_walk_back_exhausted",
            requested=day.isoformat(),
            attempts=self._max_retries,
        )
        raise RateUnavailableError(day, self._max_retries)
