"""Market data layer -- CoinMarketCap historical quotes."""

from tracker.market_data.fetcher import SeriesFetcher, parse_quotes

__all__ = ["SeriesFetcher", "parse_quotes"]
