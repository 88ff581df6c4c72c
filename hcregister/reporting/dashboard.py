"""Dashboard roll-ups over the register.

Per-batch operational counts and amounts, grand totals, and the financial
position by status of works and by overbudget status.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from hcregister.models import BOQColumn, HouseConnectionRecord, OverbudgetStatus, WorksStatus
from hcregister.register.queries import list_names


@dataclass
class BatchStats:
    """Operational status of one list (batch)."""

    name: str
    total: int = 0
    surveyed: int = 0
    feasible: int = 0
    drawings: int = 0
    estimated: int = 0
    est_amount: float = 0.0
    over_amount: float = 0.0
    claim_amount: float = 0.0
    cert_amount: float = 0.0

    def add(self, record: HouseConnectionRecord) -> None:
        self.total += 1
        self.surveyed += bool(record.survey_date)
        self.feasible += record.feasible.value == "Feasible"
        self.drawings += bool(record.drawings)
        self.estimated += record.totals.est > 0
        self.est_amount += record.totals.est
        self.over_amount += record.totals.over
        self.claim_amount += record.totals.claim
        self.cert_amount += record.totals.cert

    def merge(self, other: BatchStats) -> None:
        for name in (
            "total",
            "surveyed",
            "feasible",
            "drawings",
            "estimated",
            "est_amount",
            "over_amount",
            "claim_amount",
            "cert_amount",
        ):
            setattr(self, name, getattr(self, name) + getattr(other, name))


@dataclass
class StatusAmount:
    label: str
    column: BOQColumn  # which total the amount is taken from
    count: int = 0
    amount: float = 0.0


@dataclass
class DashboardSummary:
    batches: list[BatchStats]
    grand_total: BatchStats
    works: list[StatusAmount] = field(default_factory=list)
    overbudget: list[StatusAmount] = field(default_factory=list)


# Each works status is valued on the total that matters at that stage
WORKS_STATUS_COLUMNS: list[tuple[WorksStatus, BOQColumn]] = [
    (WorksStatus.NOT_STARTED, "est"),
    (WorksStatus.ONGOING, "est"),
    (WorksStatus.COMPLETED, "claim"),
    (WorksStatus.CERTIFIED, "cert"),
]

# "Claimed" records appear in neither summary
OVERBUDGET_STATUS_COLUMNS: list[tuple[OverbudgetStatus, BOQColumn]] = [
    (OverbudgetStatus.NOT_STARTED, "over"),
    (OverbudgetStatus.ONGOING, "over"),
    (OverbudgetStatus.COMPLETED, "over"),
    (OverbudgetStatus.PAID, "over"),
]


def _status_amounts(records, attr: str, statuses) -> list[StatusAmount]:
    rows = []
    for status, column in statuses:
        matching = [r for r in records if getattr(r, attr) == status]
        rows.append(
            StatusAmount(
                label=status.value,
                column=column,
                count=len(matching),
                amount=sum(r.totals.get(column) for r in matching),
            )
        )
    return rows


def batch_stats(records: Sequence[HouseConnectionRecord]) -> list[BatchStats]:
    """One BatchStats per list, sorted by list name."""
    stats = {name: BatchStats(name=name) for name in list_names(records)}
    for record in records:
        stats[record.list_no or "Unknown"].add(record)
    return list(stats.values())


def summarize(records: Sequence[HouseConnectionRecord]) -> DashboardSummary:
    batches = batch_stats(records)
    grand = BatchStats(name="Grand Total")
    for batch in batches:
        grand.merge(batch)

    return DashboardSummary(
        batches=batches,
        grand_total=grand,
        works=_status_amounts(records, "works_status", WORKS_STATUS_COLUMNS),
        overbudget=_status_amounts(records, "overbudget_status", OVERBUDGET_STATUS_COLUMNS),
    )
