"""Spreadsheet download of the shared register."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from hcregister.boq.master import MasterSchedule
from hcregister.db.connection import get_db
from hcregister.reporting.excel_export import export_filename, export_records_xlsx
from hcregister.web.dependencies import get_master_schedule, load_shared_state

router = APIRouter(prefix="/api/export", tags=["Export"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/xlsx")
async def export_xlsx(
    ids: list[str] | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    master: MasterSchedule = Depends(get_master_schedule),
):
    """Excel workbook of the selected records (all when no ``ids`` given).

    An empty selection raises ExportError, answered as 400.
    """
    state = await load_shared_state(db)
    records = state.records if state is not None else []
    output = export_records_xlsx(records, master, selected_ids=ids)

    return StreamingResponse(
        output,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )
