"""Shared dependencies for HC Register web routes."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from hcregister.boq.master import MasterSchedule, get_master
from hcregister.db.models import SharedStateModel
from hcregister.models import SharedState

SHARED_STATE_ID = 1


def get_master_schedule() -> MasterSchedule:
    return get_master()


async def load_shared_state(db: AsyncSession) -> SharedState | None:
    """The stored shared document, or None before the first save."""
    row = await db.get(SharedStateModel, SHARED_STATE_ID)
    if row is None:
        return None
    return SharedState.model_validate(row.document)
