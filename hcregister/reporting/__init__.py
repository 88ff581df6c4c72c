"""Reporting: spreadsheet export, dashboard roll-ups, display formatting."""

from hcregister.reporting.dashboard import DashboardSummary, batch_stats, summarize
from hcregister.reporting.excel_export import (
    build_workbook,
    export_filename,
    export_records_xlsx,
    safe_sheet_name,
)
from hcregister.reporting.formatting import format_currency

__all__ = [
    "DashboardSummary",
    "batch_stats",
    "build_workbook",
    "export_filename",
    "export_records_xlsx",
    "format_currency",
    "safe_sheet_name",
    "summarize",
]
