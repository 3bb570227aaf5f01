"""Spreadsheet report backed by openpyxl.

One workbook holds one sheet per currency. Row 1 is the header; every
following row is one day, and its first cell (ISO date string) is the
row key used for duplicate detection. Rows are only ever appended.

The workbook is saved after every structural change so a failed run
leaves all rows written so far on disk.
"""

import zipfile
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path

from openpyxl import Workbook, load_workbook
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from tracker.exceptions import PersistenceError
from tracker.logging import get_logger
from tracker.models import Currency, EnrichedRecord

logger = get_logger(__name__)

IMPORTER_VERSION = "1.0.0"

#: Row key format (first column).
DATE_FORMAT = "%Y-%m-%d"
#: Date format expected by the accounting system import.
PRIORITY_DATE_FORMAT = "%d/%m/%y"

LONG_NUM_FORMAT = "#,##0"
LONG_COLUMN_WIDTH = 20

_DEFAULT_SHEET = "Sheet"


@dataclass(frozen=True)
class Header:
    """Column meta-data."""

    name: str
    wide: bool = False


def build_headers(window_size: int) -> list[Header]:
    return [
        Header("Date"),
        Header("Open"),
        Header("High"),
        Header("Low"),
        Header("Close"),
        Header("Volume", wide=True),
        Header("Market Cap", wide=True),
        Header("Daily Average"),
        Header(f"{window_size} Days Average"),
        Header("Year"),
        Header("Month"),
        Header("Day"),
        Header("Average USD"),
        Header("Dollar rate"),
        Header("Date"),
        Header("Average ILS"),
        Header("Importer version"),
    ]


def delta_report_path(directory: Path, start: date, end: date) -> Path:
    """Name of the per-run workbook: ``<start>.xlsx`` or ``<start>_<end>.xlsx``."""
    name = start.strftime(DATE_FORMAT)
    if start != end:
        name += "_" + end.strftime(DATE_FORMAT)
    return directory / f"{name}.xlsx"


def format_row(record: EnrichedRecord) -> list:
    """Cell values for one report row, in header order."""
    point = record.point
    daily_average = float(record.daily_average)
    average = float(record.moving_average) if record.moving_average is not None else 0
    return [
        point.date.strftime(DATE_FORMAT),
        float(point.open),
        float(point.high),
        float(point.low),
        float(point.close),
        float(point.volume),
        point.market_cap,
        daily_average,
        average,
        f"{point.date.year:02d}",
        f"{point.date.month:02d}",
        f"{point.date.day:02d}",
        daily_average,
        float(record.conversion_rate),
        point.date.strftime(PRIORITY_DATE_FORMAT),
        float(record.converted_daily_average),
        IMPORTER_VERSION,
    ]


class Report:
    """Opens or creates a report workbook.

    A deferred report touches the disk only when its first sheet is
    requested, so a run that appends nothing leaves no file behind.

    Usage:
        report = Report.open(Path("Crypto-HistoricalPrice.xlsx"), window_size=14)
        sheet = report.currency_sheet(currency)
        sheet.add_record(record)
    """

    def __init__(self, path: Path, window_size: int, workbook: Workbook | None = None) -> None:
        self._path = path
        self._headers = build_headers(window_size)
        self._workbook = workbook

    @classmethod
    def open(cls, path: Path, window_size: int = 14, deferred: bool = False) -> "Report":
        """Load ``path`` if it exists, otherwise create and save an empty workbook.

        With ``deferred`` set, loading or creating waits for the first
        ``currency_sheet`` call.

        Raises:
            PersistenceError: If the file exists but cannot be read, or cannot be created.
        """
        report = cls(path, window_size)
        if not deferred:
            report._ensure_workbook()
        return report

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_open(self) -> bool:
        return self._workbook is not None

    @property
    def sheet_names(self) -> list[str]:
        return self._ensure_workbook().sheetnames

    def save(self) -> None:
        try:
            self._ensure_workbook().save(self._path)
        except OSError as e:
            raise PersistenceError(f"cannot save report {self._path}: {e}") from e

    def currency_sheet(self, currency: Currency) -> "CurrencySheet":
        """Return the sheet for ``currency``, adding it with a header row if missing."""
        workbook = self._ensure_workbook()
        if currency.name in workbook.sheetnames:
            return CurrencySheet(workbook[currency.name], self)

        worksheet = workbook.create_sheet(title=currency.name)
        self._drop_placeholder_sheet()

        worksheet.append([header.name for header in self._headers])
        for index, header in enumerate(self._headers, start=1):
            if header.wide:
                worksheet.column_dimensions[get_column_letter(index)].width = LONG_COLUMN_WIDTH

        self.save()
        logger.info("currency_sheet_added", path=str(self._path), currency=currency.name)
        return CurrencySheet(worksheet, self)

    def _ensure_workbook(self) -> Workbook:
        if self._workbook is not None:
            return self._workbook

        if self._path.exists():
            try:
                self._workbook = load_workbook(self._path)
            except (OSError, ValueError, KeyError, zipfile.BadZipFile, InvalidFileException) as e:
                raise PersistenceError(f"cannot open report {self._path}: {e}") from e
            logger.debug("report_opened", path=str(self._path), sheets=self._workbook.sheetnames)
        else:
            self._workbook = Workbook()
            logger.info("report_created", path=str(self._path))
            self.save()
        return self._workbook

    def _drop_placeholder_sheet(self) -> None:
        """Remove openpyxl's default empty sheet once a real one exists."""
        workbook = self._ensure_workbook()
        if _DEFAULT_SHEET not in workbook.sheetnames:
            return
        placeholder = workbook[_DEFAULT_SHEET]
        if placeholder.max_row == 1 and placeholder["A1"].value is None:
            workbook.remove(placeholder)


class CurrencySheet:
    """Access to one currency's rows inside a Report."""

    def __init__(self, worksheet: Worksheet, report: Report) -> None:
        self._worksheet = worksheet
        self._report = report

    @property
    def title(self) -> str:
        return self._worksheet.title

    def date_keys(self) -> set[str]:
        """First-column values of all data rows (the header is skipped)."""
        keys: set[str] = set()
        for (value,) in self._worksheet.iter_rows(min_row=2, max_col=1, values_only=True):
            if value is None:
                continue
            if isinstance(value, (date, datetime)):
                value = value.strftime(DATE_FORMAT)
            keys.add(str(value))
        return keys

    def row_count(self) -> int:
        """Number of data rows, header excluded."""
        return max(self._worksheet.max_row - 1, 0)

    def add_record(self, record: EnrichedRecord) -> None:
        """Append one row and save the workbook.

        Raises:
            PersistenceError: If the workbook cannot be saved.
        """
        self._worksheet.append(format_row(record))
        row = self._worksheet.max_row
        for column in (6, 7):  # Volume, Market Cap
            self._worksheet.cell(row=row, column=column).number_format = LONG_NUM_FORMAT
        self._report.save()
