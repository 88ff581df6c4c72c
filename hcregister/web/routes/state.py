"""Shared-state document routes.

GET returns the last saved ``{records, activities}`` document, or ``{}``
before anything was saved. POST replaces it wholesale (last write wins).
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from hcregister.db.connection import get_db
from hcregister.db.models import SharedStateModel
from hcregister.models import SharedState
from hcregister.web.dependencies import SHARED_STATE_ID, load_shared_state

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/state", tags=["State"])


@router.get("")
async def get_state(db: AsyncSession = Depends(get_db)):
    state = await load_shared_state(db)
    if state is None:
        return {}
    return state.to_wire()


@router.post("")
async def save_state(
    state: SharedState,
    db: AsyncSession = Depends(get_db),
    x_user: str | None = Header(default=None),
):
    """Replace the shared document."""
    row = await db.get(SharedStateModel, SHARED_STATE_ID)
    if row is None:
        row = SharedStateModel(id=SHARED_STATE_ID, document={})
        db.add(row)
    row.document = state.to_wire()
    row.saved_by = x_user
    await db.commit()

    logger.info(
        "shared_state_saved",
        records=len(state.records),
        activities=len(state.activities),
        saved_by=x_user,
    )
    return {"status": "ok", "records": len(state.records), "activities": len(state.activities)}
