"""Exchange rate layer -- Bank of Israel lookups behind a run-scoped cache."""

from tracker.rates.bank_of_israel import BankOfIsraelRateSource
from tracker.rates.cache import ExchangeRateCache
from tracker.rates.converter import RateConverter
from tracker.rates.source import RateSource

__all__ = ["BankOfIsraelRateSource", "ExchangeRateCache", "RateConverter", "RateSource"]
