"""Register mutations.

Each operation takes the current record list and returns a ``Mutation``:
the complete new record list plus the activity entry describing it. The
sync session commits mutations (store, local cache, broadcast); nothing here
touches shared state.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any, Literal

from hcregister.boq.aggregator import set_quantity
from hcregister.boq.expression import Evaluation
from hcregister.exceptions import DerivedFieldError, RecordNotFound
from hcregister.models import (
    BOQColumn,
    BOQMasterItem,
    FileData,
    HouseConnectionRecord,
    utc_now_iso,
)

FileKind = Literal["photos", "drawings"]

# Derived or identity fields that plain field edits may not touch
_PROTECTED_FIELDS = {"id", "boq", "totals"}


@dataclass
class Mutation:
    records: list[HouseConnectionRecord]
    action: str | None = None
    target_ref: str | None = None
    evaluation: Evaluation | None = None

    @property
    def changed(self) -> bool:
        return self.action is not None


def _stamp(record: HouseConnectionRecord, by: str | None, **changes: Any) -> HouseConnectionRecord:
    if by:
        changes.update(last_modified_by=by, last_modified_at=utc_now_iso())
    return record.model_copy(update=changes)


def _find(records: Sequence[HouseConnectionRecord], record_id: str) -> HouseConnectionRecord:
    for record in records:
        if record.id == record_id:
            return record
    raise RecordNotFound(record_id)


def _replace(
    records: Sequence[HouseConnectionRecord], updated: HouseConnectionRecord
) -> list[HouseConnectionRecord]:
    return [updated if r.id == updated.id else r for r in records]


def new_record(
    records: Sequence[HouseConnectionRecord],
    list_no: str | None = None,
    by: str | None = None,
    today: date | None = None,
) -> Mutation:
    """Prepend a blank record to ``list_no`` (default "New List")."""
    list_name = list_no or "New List"
    record = HouseConnectionRecord(
        list_no=list_name,
        survey_date=(today or date.today()).isoformat(),
    )
    if by:
        record = _stamp(record, by)
    return Mutation(
        records=[record, *records],
        action="created new record in list",
        target_ref=list_name,
    )


def update_field(
    records: Sequence[HouseConnectionRecord],
    record_id: str,
    field: str,
    value: Any,
    by: str | None = None,
) -> Mutation:
    """Set one plain field of a record.

    Raises:
        RecordNotFound: Unknown id
        DerivedFieldError: ``boq``/``totals``/``id`` edits
        ValueError: Unknown field or invalid value
    """
    if field in _PROTECTED_FIELDS:
        raise DerivedFieldError(f"Field {field!r} cannot be edited directly")
    if field not in HouseConnectionRecord.model_fields:
        raise ValueError(f"Unknown record field: {field!r}")

    record = _find(records, record_id)
    data = record.model_dump()
    data[field] = value
    validated = HouseConnectionRecord.model_validate(data)
    updated = _stamp(record, by, **{field: getattr(validated, field)})

    return Mutation(
        records=_replace(records, updated),
        action=f"modified {HouseConnectionRecord.model_fields[field].alias or field} of",
        target_ref=record.reference or record_id,
    )


def attach_files(
    records: Sequence[HouseConnectionRecord],
    record_id: str,
    kind: FileKind,
    files: Iterable[FileData],
    by: str | None = None,
) -> Mutation:
    """Append photo or drawing metadata to a record."""
    if kind not in ("photos", "drawings"):
        raise ValueError(f"Unknown attachment kind: {kind!r}")
    new_files = list(files)
    record = _find(records, record_id)
    if not new_files:
        return Mutation(records=list(records))

    updated = _stamp(record, by, **{kind: [*getattr(record, kind), *new_files]})
    return Mutation(
        records=_replace(records, updated),
        action=f"uploaded {kind} for",
        target_ref=record.reference or record_id,
    )


def delete_record(
    records: Sequence[HouseConnectionRecord],
    record_id: str,
    confirm: Callable[[str], bool],
) -> Mutation:
    """Remove a record once ``confirm`` agrees. Irreversible."""
    record = _find(records, record_id)
    label = record.reference or "this line"
    if not confirm(f"Are you sure you want to PERMANENTLY delete record {label}?"):
        return Mutation(records=list(records))
    return Mutation(
        records=[r for r in records if r.id != record_id],
        action="permanently deleted record",
        target_ref=record.reference or record_id,
    )


def enter_quantity(
    records: Sequence[HouseConnectionRecord],
    record_id: str,
    bill: str,
    column: BOQColumn,
    expr: str,
    master: Iterable[BOQMasterItem],
    by: str | None = None,
) -> Mutation:
    """Store a quantity expression and recompute the record's totals.

    The mutation carries the evaluation so the caller can flag invalid
    text; the stored value only changes when it evaluated.
    """
    record = _find(records, record_id)
    updated, evaluation = set_quantity(record, bill, column, expr, master)
    if by:
        updated = _stamp(updated, by)
    return Mutation(
        records=_replace(records, updated),
        action=f"adjusted {column} qty for {bill} on",
        target_ref=record.reference or record_id,
        evaluation=evaluation,
    )


def add_records(
    records: Sequence[HouseConnectionRecord],
    new_records: Sequence[HouseConnectionRecord],
    source: str,
) -> Mutation:
    """Prepend a batch of new records (bulk upload)."""
    return Mutation(
        records=[*new_records, *records],
        action=f"bulk uploaded {len(new_records)} records",
        target_ref=source,
    )
