"""Abstract accounting-system forwarding interface.

The report merger depends only on this interface; a failed forward
must raise ForwardingError so the merger can log it and carry on.
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal

from tracker.models import Currency


class ForwardingClient(ABC):
    """Abstract base class for accounting-system clients."""

    @abstractmethod
    async def forward(self, currency: Currency, exchange_rate: Decimal, currency_date: date) -> None:
        """Push one day's converted rate for ``currency``.

        Raises:
            ForwardingError: If the record was not accepted.
        """
        ...
