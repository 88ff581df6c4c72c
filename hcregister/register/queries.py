"""Read-only views over the register: search filters and selections."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from hcregister.models import (
    ActivityLog,
    BOQMasterItem,
    FeasibilityStatus,
    HouseConnectionRecord,
)

ALL = "All"


def _contains(value: str | None, term: str) -> bool:
    return term in (value or "").lower()


def filter_records(
    records: Iterable[HouseConnectionRecord],
    search: str = "",
    list_no: str = ALL,
    feasibility: FeasibilityStatus | str = ALL,
) -> list[HouseConnectionRecord]:
    """Case-insensitive search over reference, surname and address,
    narrowed to one list and/or feasibility status ("All" disables a filter).
    """
    term = (search or "").lower()
    wanted_feasibility = None if feasibility == ALL else FeasibilityStatus(feasibility)
    return [
        r
        for r in records
        if (_contains(r.reference, term) or _contains(r.surname, term) or _contains(r.address, term))
        and (list_no == ALL or r.list_no == list_no)
        and (wanted_feasibility is None or r.feasible == wanted_feasibility)
    ]


def list_names(records: Iterable[HouseConnectionRecord]) -> list[str]:
    """Distinct batch names, sorted; blank list numbers read as "Unknown"."""
    return sorted({r.list_no or "Unknown" for r in records})


def boq_candidates(records: Iterable[HouseConnectionRecord]) -> list[HouseConnectionRecord]:
    """Records that can be opened in the BOQ editor (those with a reference)."""
    return [r for r in records if r.reference]


def filter_master(
    master: Iterable[BOQMasterItem],
    section: str,
    term: str = "",
) -> list[BOQMasterItem]:
    """Master rows of one section whose description or bill code matches."""
    needle = (term or "").lower()
    return [
        row
        for row in master
        if row.section == section and (needle in row.desc.lower() or needle in row.bill.lower())
    ]


def search_activities(logs: Sequence[ActivityLog], term: str = "") -> list[ActivityLog]:
    needle = (term or "").lower()
    return [
        log
        for log in logs
        if _contains(log.user, needle) or _contains(log.action, needle) or _contains(log.target_ref, needle)
    ]
