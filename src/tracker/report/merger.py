"""Idempotent merge of enriched records into the report.

Existing rows are indexed by their first-column date key once per merge.
Records whose key is already present are skipped, so re-running the
pipeline over an overlapping window appends nothing twice. New rows are
appended in ascending date order.

Forwarding to the accounting system and persisting the row are two
independent side effects: a forwarding failure is logged and the row is
still written; a persistence failure aborts the merge.
"""

from collections.abc import Sequence

from tracker.accounting.client import ForwardingClient
from tracker.exceptions import ForwardingError
from tracker.logging import get_logger
from tracker.models import Currency, EnrichedRecord
from tracker.report.workbook import DATE_FORMAT, Report

logger = get_logger(__name__)


class ReportMerger:
    """Appends new days to the primary report and the optional delta report.

    Args:
        report: Primary, long-lived report.
        delta_report: Per-run report receiving only this run's new rows.
        forwarder: Accounting-system client; None disables forwarding.
    """

    def __init__(
        self,
        report: Report,
        delta_report: Report | None = None,
        forwarder: ForwardingClient | None = None,
    ) -> None:
        self._report = report
        self._delta_report = delta_report
        self._forwarder = forwarder

    async def merge(self, currency: Currency, records: Sequence[EnrichedRecord]) -> int:
        """Write the records not yet in the report.

        Args:
            currency: Currency whose sheet receives the rows.
            records: Enriched records in chronological order.

        Returns:
            Number of rows appended to the primary report.

        Raises:
            PersistenceError: If a workbook cannot be saved.
        """
        sheet = self._report.currency_sheet(currency)
        delta_sheet = None
        existing = sheet.date_keys()

        # Detect newest to oldest, then commit oldest to newest.
        pending: list[EnrichedRecord] = []
        for record in reversed(records):
            key = record.date.strftime(DATE_FORMAT)
            if key in existing:
                logger.debug("skipping_existing_row", currency=currency.name, date=key)
                continue
            pending.append(record)

        appended = 0
        for record in reversed(pending):
            key = record.date.strftime(DATE_FORMAT)
            if key in existing:
                continue  # same day twice in one batch

            if self._forwarder is not None:
                await self._forward(currency, record)

            sheet.add_record(record)
            if self._delta_report is not None:
                if delta_sheet is None:
                    delta_sheet = self._delta_report.currency_sheet(currency)
                delta_sheet.add_record(record)

            existing.add(key)
            appended += 1

        logger.info(
            "report_merged",
            currency=currency.name,
            received=len(records),
            appended=appended,
            skipped=len(records) - appended,
        )
        return appended

    async def _forward(self, currency: Currency, record: EnrichedRecord) -> None:
        try:
            await self._forwarder.forward(
                currency, record.converted_daily_average, record.date
            )
        except ForwardingError as e:
            logger.warning(
                "forwarding_failed",
                currency=currency.name,
                date=record.date.isoformat(),
                error=str(e),
            )
