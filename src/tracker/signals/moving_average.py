"""Causal trailing moving average over daily closes.

Walks a newest-first price series from oldest to newest, keeping the last
``window_size`` valid closes in a ring buffer. A close of zero or less is
missing data: it neither enters the buffer nor counts towards the number
of days seen. Each day also gets its conversion rate, so the output is a
complete EnrichedRecord per input day.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections import deque
from collections.abc import Sequence
from decimal import Decimal

from tracker.config import AverageThreshold
from tracker.logging import get_logger
from tracker.models import Currency, EnrichedRecord, RawPricePoint
from tracker.rates.converter import RateConverter

logger = get_logger(__name__)


class TrailingWindow:
    """Fixed-capacity ring buffer with a running sum.

    ``add`` is O(1); memory is O(capacity). ``count`` is the total number
    of values ever added, not the number currently held.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._values: deque[Decimal] = deque(maxlen=capacity)
        self._sum = Decimal("0")
        self.count = 0

    def add(self, value: Decimal) -> None:
        if len(self._values) == self._values.maxlen:
            self._sum -= self._values[0]
        self._values.append(value)
        self._sum += value
        self.count += 1

    def mean(self) -> Decimal:
        if not self._values:
            return Decimal("0")
        return self._sum / len(self._values)


def average_available(valid_closes: int, window_size: int, threshold: AverageThreshold) -> bool:
    """Whether enough valid closes have been seen to report an average."""
    if threshold is AverageThreshold.MEETS_WINDOW:
        return valid_closes >= window_size
    return valid_closes > window_size


class MovingAverageProcessor:
    """Enriches a price series with trailing averages and conversion rates.

    Args:
        converter: Rate lookup used for every day of the series.
        window_size: Number of valid closes in the trailing window.
        threshold: When the first average is reported.
    """

    def __init__(
        self,
        converter: RateConverter,
        window_size: int = 14,
        threshold: AverageThreshold = AverageThreshold.EXCEEDS_WINDOW,
    ) -> None:
        self._converter = converter
        self._window_size = window_size
        self._threshold = threshold

    async def process(
        self,
        series: Sequence[RawPricePoint],
        currency: Currency | None = None,
    ) -> list[EnrichedRecord]:
        """Build one EnrichedRecord per day, oldest to newest.

        Args:
            series: Price points ordered newest first, as fetched.
            currency: Used for log context only.

        Returns:
            Records in chronological order. Days before the average
            becomes available carry ``moving_average=None``.
        """
        window = TrailingWindow(self._window_size)
        records: list[EnrichedRecord] = []
        name = currency.name if currency is not None else None

        for point in reversed(series):
            rate = await self._converter.get_rate(point.date)

            if point.close > 0:
                window.add(point.close)

            average = None
            if average_available(window.count, self._window_size, self._threshold):
                average = window.mean()

            logger.debug(
                "processing_price_point",
                currency=name,
                date=point.date.isoformat(),
                open=str(point.open),
                high=str(point.high),
                low=str(point.low),
                close=str(point.close),
                volume=str(point.volume),
                market_cap=point.market_cap,
                conversion_rate=str(rate),
                moving_average=str(average) if average is not None else None,
            )
            records.append(
                EnrichedRecord(point=point, moving_average=average, conversion_rate=rate)
            )

        return records
