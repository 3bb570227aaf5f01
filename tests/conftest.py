"""Shared test fixtures for the crypto price tracker."""

from collections.abc import Callable
from datetime import date, timedelta
from decimal import Decimal

import pytest

from tracker.config import AppSettings, AverageSettings, PriorityConfig, RateSettings
from tracker.models import Currency, EnrichedRecord, RawPricePoint


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults (no forwarding)."""
    return AppSettings(
        log_level="DEBUG",
        rates=RateSettings(max_retries=20),
        average=AverageSettings(window_size=14),
        priority=PriorityConfig(endpoint=""),
    )


@pytest.fixture
def bitcoin() -> Currency:
    return Currency(name="Bitcoin", symbol="BTC", cmc="bitcoin", cmc_id="1")


@pytest.fixture
def make_point() -> Callable[..., RawPricePoint]:
    """Factory for a price point; every price defaults to ``close``."""

    def _make(day: date, close: str | Decimal = "100", open_: str | None = None) -> RawPricePoint:
        close_d = Decimal(str(close))
        return RawPricePoint(
            date=day,
            open=Decimal(open_) if open_ is not None else close_d,
            high=close_d,
            low=close_d,
            close=close_d,
            volume=Decimal("1000"),
            market_cap=5_000_000,
        )

    return _make


@pytest.fixture
def make_series(make_point) -> Callable[..., list[RawPricePoint]]:
    """Factory for a newest-first series from chronological closes."""

    def _make(start: date, closes: list) -> list[RawPricePoint]:
        points = [
            make_point(start + timedelta(days=i), close) for i, close in enumerate(closes)
        ]
        return list(reversed(points))

    return _make


@pytest.fixture
def make_records(make_point) -> Callable[..., list[EnrichedRecord]]:
    """Factory for chronological enriched records covering ``start``..``end``."""

    def _make(start: date, end: date, rate: str = "3.5") -> list[EnrichedRecord]:
        records = []
        day = start
        while day <= end:
            records.append(
                EnrichedRecord(
                    point=make_point(day, "100"),
                    moving_average=Decimal("100"),
                    conversion_rate=Decimal(rate),
                )
            )
            day += timedelta(days=1)
        return records

    return _make
