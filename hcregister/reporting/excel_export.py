"""Excel export of the register.

Generates one workbook with:
- "Master Register": one summary row per selected record
- one worksheet per record with the full BOQ schedule (label rows for
  sections, groups, subsections and notes; quantity and amount per column
  for items) and a totals row
"""
from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from datetime import datetime
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from hcregister.boq.aggregator import line_amounts
from hcregister.config import ExportConfig, get_config
from hcregister.exceptions import ExportError
from hcregister.models import BOQ_COLUMNS, BOQMasterItem, HouseConnectionRecord, RowKind

_INVALID_SHEET_CHARS = re.compile(r"[:\\/?*\[\]]")
CURRENCY_FORMAT = "#,##0.00"

HEADER_FILL = PatternFill(start_color="1E293B", end_color="1E293B", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
SECTION_FILL = PatternFill(start_color="F1F5F9", end_color="F1F5F9", fill_type="solid")
SUBSECTION_FILL = PatternFill(start_color="F8FAFC", end_color="F8FAFC", fill_type="solid")
LABEL_FONT = Font(bold=True, color="475569")
_thin = Side(style="thin")
HEADER_BORDER = Border(left=_thin, right=_thin, top=_thin, bottom=_thin)

MASTER_HEADERS = [
    ("List", 10),
    ("Reference", 16),
    ("Surname", 20),
    ("Name", 20),
    ("Address", 35),
    ("Estimate (MUR)", 16),
    ("Over (MUR)", 16),
    ("Claimed (MUR)", 16),
    ("Certified (MUR)", 16),
    ("Status of Works", 16),
    ("Overbudget Status", 18),
    ("Feasibility", 14),
]

SCHEDULE_HEADERS = [
    ("Bill Ref", 10),
    ("Description", 45),
    ("Unit", 8),
    ("Rate", 12),
    ("Est Qty", 10),
    ("Est Amt", 14),
    ("Over Qty", 10),
    ("Over Amt", 14),
    ("Claim Qty", 10),
    ("Claim Amt", 14),
    ("Cert Qty", 10),
    ("Cert Amt", 14),
]


def export_filename(now: datetime | None = None) -> str:
    return f"HC_Framework_Full_Export_{(now or datetime.now()).strftime('%Y-%m-%d')}.xlsx"


def safe_sheet_name(name: str, used: set[str], max_length: int = 31) -> str:
    """Excel-safe, unique (case-insensitive) worksheet title.

    Forbidden characters become ``_``; the title is truncated to
    ``max_length`` and suffixed `` (2)``, `` (3)``... on collision.
    """
    base = _INVALID_SHEET_CHARS.sub("_", name).strip() or "Sheet"
    title = base[:max_length]
    n = 2
    while title.lower() in used:
        suffix = f" ({n})"
        title = base[: max_length - len(suffix)] + suffix
        n += 1
    used.add(title.lower())
    return title


def _write_header(ws: Worksheet, row: int, headers: list[tuple[str, int]]) -> None:
    for col, (header, width) in enumerate(headers, 1):
        cell = ws.cell(row=row, column=col, value=header)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = HEADER_BORDER
        cell.alignment = Alignment(horizontal="center", vertical="center")
        ws.column_dimensions[get_column_letter(col)].width = width


def _create_master_sheet(ws: Worksheet, records: Sequence[HouseConnectionRecord]) -> None:
    _write_header(ws, 1, MASTER_HEADERS)
    ws.freeze_panes = "A2"

    for row, r in enumerate(records, 2):
        values = [
            r.list_no,
            r.reference,
            r.surname,
            r.name,
            r.address,
            r.totals.est,
            r.totals.over,
            r.totals.claim,
            r.totals.cert,
            r.works_status.value,
            r.overbudget_status.value,
            r.feasible.value,
        ]
        for col, value in enumerate(values, 1):
            cell = ws.cell(row=row, column=col, value=value)
            if 6 <= col <= 9:
                cell.number_format = CURRENCY_FORMAT


def _label_row(ws: Worksheet, row: int, item: BOQMasterItem) -> None:
    ws.cell(row=row, column=1, value=item.bill)
    ws.cell(row=row, column=2, value=item.desc)
    ws.merge_cells(start_row=row, start_column=2, end_row=row, end_column=len(SCHEDULE_HEADERS))

    if item.kind in (RowKind.SECTION, RowKind.GROUP):
        font, fill = Font(bold=True, size=12, color="0F172A"), SECTION_FILL
    elif item.kind == RowKind.SUBSECTION:
        font, fill = Font(bold=True, size=10, color="334155"), SUBSECTION_FILL
    else:
        font, fill = Font(italic=True, size=10, color="64748B"), None

    for col in (1, 2):
        cell = ws.cell(row=row, column=col)
        cell.font = font
        if fill is not None:
            cell.fill = fill


def _create_record_sheet(
    ws: Worksheet,
    record: HouseConnectionRecord,
    master: Iterable[BOQMasterItem],
) -> None:
    ws["A1"] = "REFERENCE:"
    ws["A1"].font = LABEL_FONT
    ws["B1"] = record.reference
    ws["B1"].font = Font(bold=True)
    ws["E1"] = "OWNER:"
    ws["E1"].font = LABEL_FONT
    ws["F1"] = f"{record.surname} {record.name}".strip()
    ws["F1"].font = Font(bold=True)
    ws.merge_cells("F1:H1")

    ws["A2"] = "ADDRESS:"
    ws["A2"].font = LABEL_FONT
    ws["B2"] = ", ".join(part for part in (record.address, record.location) if part)
    ws["B2"].font = Font(bold=True)
    ws.merge_cells("B2:F2")

    _write_header(ws, 4, SCHEDULE_HEADERS)
    ws.freeze_panes = "A5"

    row = 4
    for item in master:
        row += 1
        if item.kind != RowKind.ITEM:
            _label_row(ws, row, item)
            continue

        values = record.item(item.bill)
        amounts = line_amounts(values, item)
        ws.cell(row=row, column=1, value=item.bill)
        ws.cell(row=row, column=2, value=item.desc)
        ws.cell(row=row, column=3, value=item.unit)
        rate = ws.cell(row=row, column=4, value=item.rate or 0)
        rate.number_format = CURRENCY_FORMAT
        for i, column in enumerate(BOQ_COLUMNS):
            ws.cell(row=row, column=5 + 2 * i, value=values.value(column))
            amount = ws.cell(row=row, column=6 + 2 * i, value=amounts[column])
            amount.number_format = CURRENCY_FORMAT

    row += 1
    label = ws.cell(row=row, column=1, value="WORKSHEET TOTALS (MUR):")
    label.font = LABEL_FONT
    label.alignment = Alignment(horizontal="right")
    ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=5)
    for i, column in enumerate(BOQ_COLUMNS):
        cell = ws.cell(row=row, column=6 + 2 * i, value=record.totals.get(column))
        cell.number_format = CURRENCY_FORMAT
        cell.font = Font(bold=True)


def build_workbook(
    records: Sequence[HouseConnectionRecord],
    master: Sequence[BOQMasterItem],
    config: ExportConfig | None = None,
) -> Workbook:
    """Workbook with the master register sheet and one sheet per record.

    Raises:
        ExportError: If no records are given
    """
    if not records:
        raise ExportError("Select at least one record")
    config = config or get_config().export

    wb = Workbook()
    if "Sheet" in wb.sheetnames:
        wb.remove(wb["Sheet"])

    used = {config.master_sheet_name.lower()}
    _create_master_sheet(wb.create_sheet(config.master_sheet_name), records)
    for record in records:
        title = safe_sheet_name(record.reference or record.id, used, config.sheet_name_max_length)
        _create_record_sheet(wb.create_sheet(title), record, master)
    return wb


def export_records_xlsx(
    records: Sequence[HouseConnectionRecord],
    master: Sequence[BOQMasterItem],
    selected_ids: Iterable[str] | None = None,
    config: ExportConfig | None = None,
) -> BytesIO:
    """Export the selected records (all when ``selected_ids`` is None).

    Returns:
        BytesIO containing the .xlsx workbook
    """
    if selected_ids is not None:
        wanted = set(selected_ids)
        records = [r for r in records if r.id in wanted]

    wb = build_workbook(records, master, config)
    output = BytesIO()
    wb.save(output)
    output.seek(0)
    return output
