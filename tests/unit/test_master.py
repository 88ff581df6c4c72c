"""Unit tests for the BOQ master schedule loader."""

from __future__ import annotations

import pytest

from hcregister.boq.master import load_master, parse_master
from hcregister.config import AppConfig
from hcregister.models import RowKind


class TestParseMaster:
    def test_rows_keep_order_and_kinds(self, master):
        assert [row.bill for row in master][:3] == ["A", "A1", "A1.1"]
        assert master.get("A1").kind == RowKind.GROUP
        assert master.get("A1.N").kind == RowKind.NOTE

    def test_rate_string(self, master):
        assert master.get("A1.1").rate_str == "100.00"
        assert master.get("B1.2").rate is None
        assert master.get("B1.2").rate_str == "PS"

    def test_billable(self, master):
        assert master.get("A1.1").is_billable
        assert not master.get("B1.2").is_billable
        assert not master.get("A").is_billable

    def test_sections(self, master):
        assert master.sections == ["A", "B"]
        assert {row.bill for row in master.section("B")} == {"B", "B1.a", "B1.1", "B1.2"}

    def test_items_excludes_label_rows(self, master):
        assert {row.bill for row in master.items()} == {"A1.1", "A1.2", "B1.1", "B1.2"}

    def test_duplicate_bill_rejected(self):
        data = [{"section": "A", "rows": [{"bill": "A1.1", "desc": "x"}, {"bill": "A1.1", "desc": "y"}]}]
        with pytest.raises(ValueError, match="Duplicate"):
            parse_master(data)

    def test_bad_structure_rejected(self):
        with pytest.raises(ValueError):
            parse_master({"section": "A"})


class TestPackagedSchedule:
    def test_packaged_schedule_loads(self):
        schedule = load_master(AppConfig().master_schedule_path)
        assert schedule.sections == ["A", "B", "C", "D"]
        assert len(schedule.items()) > 20

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_master(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("- section: [unclosed\n")
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_master(path)
