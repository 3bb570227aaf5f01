"""Report layer -- openpyxl workbooks and the idempotent merge step."""

from tracker.report.merger import ReportMerger
from tracker.report.workbook import CurrencySheet, Report, delta_report_path

__all__ = ["CurrencySheet", "Report", "ReportMerger", "delta_report_path"]
