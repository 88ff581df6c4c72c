"""Unit tests for the Excel export."""

from __future__ import annotations

from datetime import datetime

import pytest
from openpyxl import load_workbook

from hcregister.boq.aggregator import recompute
from hcregister.exceptions import ExportError
from hcregister.models import HouseConnectionRecord
from hcregister.reporting.excel_export import (
    build_workbook,
    export_filename,
    export_records_xlsx,
    safe_sheet_name,
)


class TestSafeSheetName:
    def test_forbidden_characters_replaced(self):
        assert safe_sheet_name("HC/01:[a]*?\\", set()) == "HC_01__a____"

    def test_truncated(self):
        assert len(safe_sheet_name("X" * 40, set())) == 31

    def test_duplicates_suffixed(self):
        used: set[str] = set()
        assert safe_sheet_name("HC-1", used) == "HC-1"
        assert safe_sheet_name("hc-1", used) == "hc-1 (2)"
        long_name = "Y" * 31
        assert safe_sheet_name(long_name, used) == long_name
        assert safe_sheet_name(long_name, used) == "Y" * 27 + " (2)"


class TestBuildWorkbook:
    def test_sheets(self, sample_records, master):
        wb = build_workbook(sample_records, master)
        assert wb.sheetnames == ["Master Register", "HC-001", "HC-002", "rec3"]

    def test_master_register_rows(self, sample_records, master):
        records = [recompute(r, master) for r in sample_records]
        ws = build_workbook(records, master)["Master Register"]

        assert ws.cell(row=1, column=1).value == "List"
        assert ws.cell(row=1, column=12).value == "Feasibility"
        assert ws.cell(row=2, column=2).value == "HC-001"
        assert ws.cell(row=2, column=6).value == 200.0
        assert ws.cell(row=3, column=12).value == "Not Feasible"
        assert ws.max_row == 4

    def test_record_sheet_layout(self, sample_records, master):
        record = recompute(sample_records[0], master)
        ws = build_workbook([record], master)["HC-001"]

        assert ws["B1"].value == "HC-001"
        assert ws["F1"].value == "Ramdin Anil"
        assert ws["B2"].value == "12 Royal Road, Curepipe"
        assert ws.cell(row=4, column=1).value == "Bill Ref"

        # one row per master row, in order
        bills = [ws.cell(row=5 + i, column=1).value for i in range(len(master))]
        assert bills == [row.bill for row in master]

        item_row = 5 + [row.bill for row in master].index("A1.1")
        assert ws.cell(row=item_row, column=4).value == 100.0
        assert ws.cell(row=item_row, column=5).value == 2.0
        assert ws.cell(row=item_row, column=6).value == 200.0

        totals_row = 5 + len(master)
        assert ws.cell(row=totals_row, column=1).value == "WORKSHEET TOTALS (MUR):"
        assert ws.cell(row=totals_row, column=6).value == 200.0
        assert ws.cell(row=totals_row, column=12).value == 0.0

    def test_empty_selection_is_error(self, master):
        with pytest.raises(ExportError):
            build_workbook([], master)


class TestExportRecordsXlsx:
    def test_selected_ids_only(self, sample_records, master):
        output = export_records_xlsx(sample_records, master, selected_ids=["rec2"])
        wb = load_workbook(output)
        assert wb.sheetnames == ["Master Register", "HC-002"]

    def test_unknown_ids_is_empty_selection(self, sample_records, master):
        with pytest.raises(ExportError):
            export_records_xlsx(sample_records, master, selected_ids=["nope"])

    def test_duplicate_references_get_unique_sheets(self, master):
        records = [HouseConnectionRecord(reference="HC-1"), HouseConnectionRecord(reference="HC-1")]
        wb = load_workbook(export_records_xlsx(records, master))
        assert wb.sheetnames == ["Master Register", "HC-1", "HC-1 (2)"]


def test_export_filename():
    assert export_filename(datetime(2024, 1, 31)) == "HC_Framework_Full_Export_2024-01-31.xlsx"
