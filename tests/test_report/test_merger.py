"""Tests for the idempotent report merge.

Reports are real openpyxl workbooks under tmp_path; the forwarder is a mock.
"""

from datetime import date
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from openpyxl import load_workbook

from tracker.accounting.client import ForwardingClient
from tracker.exceptions import ForwardingError, PersistenceError
from tracker.models import Currency
from tracker.report.merger import ReportMerger
from tracker.report.workbook import Report


@pytest.fixture
def report(tmp_path: Path) -> Report:
    return Report.open(tmp_path / "Crypto-HistoricalPrice.xlsx")


@pytest.fixture
def delta_report(tmp_path: Path) -> Report:
    return Report.open(tmp_path / "2024-01-03_2024-01-07.xlsx")


@pytest.fixture
def forwarder() -> AsyncMock:
    return AsyncMock(spec=ForwardingClient)


def _first_column(path: Path, sheet: str) -> list[str]:
    worksheet = load_workbook(path)[sheet]
    return [row[0] for row in worksheet.iter_rows(min_row=2, values_only=True)]


class TestReportMerger:
    @pytest.mark.asyncio
    async def test_appends_in_ascending_order(
        self, report: Report, bitcoin: Currency, make_records
    ) -> None:
        merger = ReportMerger(report)
        appended = await merger.merge(bitcoin, make_records(date(2024, 1, 1), date(2024, 1, 3)))

        assert appended == 3
        assert _first_column(report.path, "Bitcoin") == ["2024-01-01", "2024-01-02", "2024-01-03"]

    @pytest.mark.asyncio
    async def test_overlapping_batch_appends_only_new_days(
        self, report: Report, bitcoin: Currency, make_records
    ) -> None:
        merger = ReportMerger(report)
        await merger.merge(bitcoin, make_records(date(2024, 1, 1), date(2024, 1, 5)))

        appended = await merger.merge(bitcoin, make_records(date(2024, 1, 3), date(2024, 1, 7)))

        assert appended == 2
        assert _first_column(report.path, "Bitcoin") == [
            "2024-01-01",
            "2024-01-02",
            "2024-01-03",
            "2024-01-04",
            "2024-01-05",
            "2024-01-06",
            "2024-01-07",
        ]

    @pytest.mark.asyncio
    async def test_second_merge_is_idempotent(
        self, report: Report, bitcoin: Currency, make_records
    ) -> None:
        records = make_records(date(2024, 1, 1), date(2024, 1, 4))
        merger = ReportMerger(report)

        assert await merger.merge(bitcoin, records) == 4
        assert await merger.merge(bitcoin, records) == 0
        assert len(_first_column(report.path, "Bitcoin")) == 4

    @pytest.mark.asyncio
    async def test_idempotent_across_reopen(
        self, report: Report, bitcoin: Currency, make_records
    ) -> None:
        records = make_records(date(2024, 1, 1), date(2024, 1, 2))
        await ReportMerger(report).merge(bitcoin, records)

        reopened = Report.open(report.path)
        assert await ReportMerger(reopened).merge(bitcoin, records) == 0

    @pytest.mark.asyncio
    async def test_duplicate_day_in_batch_written_once(
        self, report: Report, bitcoin: Currency, make_records
    ) -> None:
        records = make_records(date(2024, 1, 1), date(2024, 1, 1)) * 2
        assert await ReportMerger(report).merge(bitcoin, records) == 1

    @pytest.mark.asyncio
    async def test_delta_report_gets_only_new_rows(
        self, report: Report, delta_report: Report, bitcoin: Currency, make_records
    ) -> None:
        await ReportMerger(report).merge(bitcoin, make_records(date(2024, 1, 1), date(2024, 1, 5)))

        merger = ReportMerger(report, delta_report)
        await merger.merge(bitcoin, make_records(date(2024, 1, 3), date(2024, 1, 7)))

        assert _first_column(delta_report.path, "Bitcoin") == ["2024-01-06", "2024-01-07"]

    @pytest.mark.asyncio
    async def test_delta_file_not_created_when_nothing_is_new(
        self, report: Report, tmp_path: Path, bitcoin: Currency, make_records
    ) -> None:
        records = make_records(date(2024, 1, 1), date(2024, 1, 3))
        await ReportMerger(report).merge(bitcoin, records)
        delta_path = tmp_path / "2024-01-01_2024-01-03.xlsx"

        merger = ReportMerger(report, Report.open(delta_path, deferred=True))

        assert await merger.merge(bitcoin, records) == 0
        assert not delta_path.exists()

    @pytest.mark.asyncio
    async def test_forwards_each_new_row(
        self, report: Report, bitcoin: Currency, forwarder: AsyncMock, make_records
    ) -> None:
        await ReportMerger(report).merge(bitcoin, make_records(date(2024, 1, 1), date(2024, 1, 1)))

        merger = ReportMerger(report, forwarder=forwarder)
        await merger.merge(bitcoin, make_records(date(2024, 1, 1), date(2024, 1, 2), rate="3.5"))

        forwarder.forward.assert_awaited_once_with(bitcoin, Decimal("350.0"), date(2024, 1, 2))

    @pytest.mark.asyncio
    async def test_forwarding_failure_does_not_block_persistence(
        self, report: Report, bitcoin: Currency, forwarder: AsyncMock, make_records
    ) -> None:
        forwarder.forward.side_effect = ForwardingError("priority down")
        merger = ReportMerger(report, forwarder=forwarder)

        appended = await merger.merge(bitcoin, make_records(date(2024, 1, 1), date(2024, 1, 3)))

        assert appended == 3
        assert forwarder.forward.await_count == 3
        assert len(_first_column(report.path, "Bitcoin")) == 3

    @pytest.mark.asyncio
    async def test_persistence_failure_aborts(
        self, bitcoin: Currency, make_records
    ) -> None:
        sheet = MagicMock()
        sheet.date_keys.return_value = set()
        sheet.add_record.side_effect = PersistenceError("disk full")
        report = MagicMock(spec=Report)
        report.currency_sheet.return_value = sheet

        with pytest.raises(PersistenceError):
            await ReportMerger(report).merge(bitcoin, make_records(date(2024, 1, 1), date(2024, 1, 3)))
        assert sheet.add_record.call_count == 1
