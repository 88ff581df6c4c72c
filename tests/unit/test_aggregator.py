"""Unit tests for BOQ totals aggregation."""

from __future__ import annotations

import pytest

from hcregister.boq.aggregator import compute_totals, line_amounts, recompute, set_quantity
from hcregister.models import BOQItemValues, BOQMasterItem, HouseConnectionRecord, RowKind


class TestComputeTotals:
    def test_empty_boq_is_zero(self, master):
        totals = compute_totals({}, master)
        assert (totals.est, totals.over, totals.claim, totals.cert) == (0.0, 0.0, 0.0, 0.0)

    def test_sum_of_value_times_rate(self, master):
        boq = {
            "A1.1": BOQItemValues(est_val=2, over_val=1, claim_val=2, cert_val=1.5),
            "B1.1": BOQItemValues(est_val=10),
        }
        totals = compute_totals(boq, master)
        assert totals.est == pytest.approx(2 * 100 + 10 * 50)
        assert totals.over == pytest.approx(100)
        assert totals.claim == pytest.approx(200)
        assert totals.cert == pytest.approx(150)

    def test_rows_without_rate_or_non_items_ignored(self, master):
        boq = {
            "B1.2": BOQItemValues(est_val=5),  # provisional sum, no rate
            "A1": BOQItemValues(est_val=5),  # group row
            "ZZ9": BOQItemValues(est_val=5),  # not in master
        }
        assert compute_totals(boq, master).est == 0.0

    def test_idempotent(self, master):
        boq = {"A1.2": BOQItemValues(est_val=3)}
        assert compute_totals(boq, master) == compute_totals(boq, master)


class TestSetQuantity:
    def test_valid_expression_updates_value_and_totals(self, master):
        record = HouseConnectionRecord(reference="HC-1")
        updated, evaluation = set_quantity(record, "A1.1", "est", "3x4", master)

        assert evaluation.ok
        assert updated.boq["A1.1"].est_expr == "3x4"
        assert updated.boq["A1.1"].est_val == 12.0
        assert updated.totals.est == 1200.0
        assert record.boq == {}  # original untouched

    def test_invalid_expression_keeps_previous_value(self, master):
        record = HouseConnectionRecord(reference="HC-1")
        record, _ = set_quantity(record, "A1.1", "claim", "5", master)
        updated, evaluation = set_quantity(record, "A1.1", "claim", "5+", master)

        assert not evaluation.ok
        assert updated.boq["A1.1"].claim_expr == "5+"
        assert updated.boq["A1.1"].claim_val == 5.0
        assert updated.totals.claim == 500.0

    def test_other_columns_untouched(self, master):
        record = HouseConnectionRecord(boq={"A1.1": BOQItemValues(est_expr="1", est_val=1)})
        updated, _ = set_quantity(record, "A1.1", "cert", "2", master)
        assert updated.boq["A1.1"].est_val == 1
        assert updated.totals.est == 100.0
        assert updated.totals.cert == 200.0

    def test_unknown_column(self, master):
        with pytest.raises(ValueError, match="Unknown BOQ column"):
            set_quantity(HouseConnectionRecord(), "A1.1", "total", "1", master)


def test_line_amounts(master):
    amounts = line_amounts(BOQItemValues(est_val=2, over_val=1), master.get("A1.2"))
    assert amounts == {"est": 20.0, "over": 10.0, "claim": 0.0, "cert": 0.0}


def test_line_amounts_zero_for_label_rows():
    label = BOQMasterItem(section="A", bill="A1", desc="Excavation", rate=100.0, kind=RowKind.GROUP)
    amounts = line_amounts(BOQItemValues(est_val=2), label)
    assert amounts == {"est": 0.0, "over": 0.0, "claim": 0.0, "cert": 0.0}


def test_recompute_repairs_stale_totals(master, sample_records):
    stale = sample_records[0]
    assert stale.totals.est == 0.0
    assert recompute(stale, master).totals.est == 200.0
