"""Shared data models for the crypto price tracker.

CRITICAL: All monetary values use Decimal. Never use float for prices, volumes, or rates.
Floats only appear at the spreadsheet boundary, where cells are numeric anyway.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, field_validator


class Currency(BaseModel):
    """A tracked cryptocurrency, as listed in the currency config file."""

    model_config = ConfigDict(frozen=True)

    name: str  # display name, also the report sheet title
    symbol: str  # ticker, also the accounting-system currency code
    cmc: str = ""  # CoinMarketCap slug
    cmc_id: str  # CoinMarketCap numeric id

    @field_validator("cmc_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> object:
        if isinstance(value, int):
            return str(value)
        return value


@dataclass(frozen=True)
class RawPricePoint:
    """One calendar day of market data for one currency."""

    date: date
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal
    market_cap: int = 0


@dataclass(frozen=True)
class EnrichedRecord:
    """A price point with its trailing average and converted value.

    ``moving_average`` is None until enough valid closes have accumulated.
    """

    point: RawPricePoint
    moving_average: Decimal | None
    conversion_rate: Decimal

    @property
    def date(self) -> date:
        return self.point.date

    @property
    def daily_average(self) -> Decimal:
        """Mid price of the day: (open + close) / 2."""
        return (self.point.open + self.point.close) / 2

    @property
    def converted_daily_average(self) -> Decimal:
        return self.daily_average * self.conversion_rate
