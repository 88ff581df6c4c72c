"""BOQ financial aggregation.

A record's ``totals`` is a cache derived from its ``boq`` map and the master
rate table. It is always fully recomputed, never patched incrementally, so it
cannot drift from the stored quantity values.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from hcregister.boq.expression import Evaluation, evaluate_expression
from hcregister.models import (
    BOQ_COLUMNS,
    BOQColumn,
    BOQItemValues,
    BOQMasterItem,
    HouseConnectionRecord,
    Totals,
)


def compute_totals(
    boq: Mapping[str, BOQItemValues],
    master: Iterable[BOQMasterItem],
) -> Totals:
    """Sum value × rate per column over billable master rows.

    Section, group, subsection and note rows, rows without a rate, and bill
    codes the record has no entry for contribute nothing.
    """
    sums = dict.fromkeys(BOQ_COLUMNS, 0.0)
    for row in master:
        if not row.is_billable:
            continue
        values = boq.get(row.bill)
        if values is None:
            continue
        for column in BOQ_COLUMNS:
            sums[column] += values.value(column) * row.rate
    return Totals(**sums)


def line_amounts(values: BOQItemValues, row: BOQMasterItem) -> dict[BOQColumn, float]:
    """Per-column amount for one master row (zero for non-billable rows)."""
    rate = row.rate if row.is_billable else 0.0
    return {column: values.value(column) * rate for column in BOQ_COLUMNS}


def set_quantity(
    record: HouseConnectionRecord,
    bill: str,
    column: BOQColumn,
    expr: str,
    master: Iterable[BOQMasterItem],
) -> tuple[HouseConnectionRecord, Evaluation]:
    """Store a quantity expression for one bill item and column.

    The expression text is always stored. The numeric value is replaced only
    when the expression evaluates; otherwise the previous value stays.
    Totals are recomputed from scratch.

    Returns:
        (updated copy of the record, evaluation of ``expr``)
    """
    if column not in BOQ_COLUMNS:
        raise ValueError(f"Unknown BOQ column: {column!r}")

    evaluation = evaluate_expression(expr)
    current = record.item(bill)
    changes = {f"{column}_expr": expr}
    if evaluation.ok:
        changes[f"{column}_val"] = evaluation.value

    boq = dict(record.boq)
    boq[bill] = current.model_copy(update=changes)

    updated = record.model_copy(
        update={"boq": boq, "totals": compute_totals(boq, master)}
    )
    return updated, evaluation


def recompute(record: HouseConnectionRecord, master: Iterable[BOQMasterItem]) -> HouseConnectionRecord:
    """Copy of ``record`` with totals rebuilt from its boq map."""
    return record.model_copy(update={"totals": compute_totals(record.boq, master)})
