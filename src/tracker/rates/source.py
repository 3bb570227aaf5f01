"""Abstract exchange rate source interface.

The converter depends only on this interface, keeping the central-bank
wire format isolated in the concrete implementation.
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal


class RateSource(ABC):
    """Abstract base class for daily exchange rate sources."""

    @abstractmethod
    async def fetch_rate(self, day: date) -> Decimal | None:
        """Return the published rate for exactly ``day``.

        Returns None (or zero) when the source has no rate for that day,
        e.g. weekends and bank holidays.
        """
        ...
