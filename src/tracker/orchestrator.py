"""Pipeline orchestrator -- fetch, enrich and merge each configured currency.

Currencies are processed strictly one after another. Each iteration:
  1. FETCH: windowed price series (newest first) from the market data source
  2. PROCESS: trailing average + conversion rate per day, oldest to newest
  3. MERGE: append days missing from the report, forward them if enabled

Failure policy:
  - RateUnavailableError and PersistenceError always abort the run. The
    rate series and the workbooks are shared by every currency, so the
    next currency would fail the same way.
  - TransportError and DataShapeError abort the run by default. With
    ``isolate_failures`` they are logged and the next currency proceeds.
"""

from collections.abc import Sequence
from datetime import date

from tracker.exceptions import DataShapeError, TransportError
from tracker.logging import get_logger
from tracker.market_data.fetcher import SeriesFetcher
from tracker.models import Currency
from tracker.report.merger import ReportMerger
from tracker.signals.moving_average import MovingAverageProcessor

logger = get_logger(__name__)


class PipelineOrchestrator:
    """Runs the ingestion pipeline for a list of currencies.

    Args:
        fetcher: Market data fetcher.
        processor: Moving average / conversion processor.
        merger: Report merger.
        days: Reportable days to fetch per currency.
        end_date: Last day of the window; None means the source's latest day.
        isolate_failures: Continue with the next currency on fetch/data errors.
    """

    def __init__(
        self,
        fetcher: SeriesFetcher,
        processor: MovingAverageProcessor,
        merger: ReportMerger,
        days: int,
        end_date: date | None = None,
        isolate_failures: bool = False,
    ) -> None:
        self._fetcher = fetcher
        self._processor = processor
        self._merger = merger
        self._days = days
        self._end_date = end_date
        self._isolate_failures = isolate_failures

    async def process_currency(self, currency: Currency) -> int:
        """Fetch, process and merge a single currency. Returns rows appended."""
        logger.info("processing_currency", currency=currency.name, days=self._days)

        series = await self._fetcher.fetch(currency, self._days, self._end_date)
        records = await self._processor.process(series, currency)
        return await self._merger.merge(currency, records)

    async def run(self, currencies: Sequence[Currency]) -> int:
        """Process every currency in order. Returns total rows appended."""
        total = 0
        failed: list[str] = []

        for currency in currencies:
            try:
                total += await self.process_currency(currency)
            except (TransportError, DataShapeError) as e:
                if not self._isolate_failures:
                    raise
                failed.append(currency.name)
                logger.error(
                    "currency_failed",
                    currency=currency.name,
                    error_type=type(e).__name__,
                    error=str(e),
                )

        logger.info(
            "pipeline_finished",
            currencies=len(currencies),
            rows_appended=total,
            failed=failed,
        )
        return total
