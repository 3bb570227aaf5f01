"""Run-scoped exchange rate cache.

Created once per pipeline run and passed into the RateConverter. Entries
are never evicted; the cache is bounded by the number of distinct days a
run touches.
"""

from datetime import date, datetime
from decimal import Decimal


def _day(value: date) -> date:
    """Normalise datetimes to their calendar day."""
    if isinstance(value, datetime):
        return value.date()
    return value


class ExchangeRateCache:
    """Maps a calendar day to the rate resolved for it."""

    def __init__(self) -> None:
        self._rates: dict[date, Decimal] = {}

    def get(self, day: date) -> Decimal | None:
        return self._rates.get(_day(day))

    def put(self, day: date, rate: Decimal) -> None:
        self._rates[_day(day)] = rate

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and _day(day) in self._rates

    def __len__(self) -> int:
        return len(self._rates)
