"""BOQ master schedule loader.

Loads the static bill-of-quantities schedule (bill codes, descriptions,
units, rates and row kinds) from YAML. The schedule is reference data: it
is read once and never edited at runtime.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

import yaml

from hcregister.config import get_config
from hcregister.models import BOQMasterItem, RowKind

logger = logging.getLogger(__name__)


class MasterSchedule(Sequence[BOQMasterItem]):
    """Ordered, immutable list of master rows with lookup by bill code."""

    def __init__(self, rows: list[BOQMasterItem]):
        self._rows = tuple(rows)
        self._by_bill = {row.bill: row for row in self._rows}

    def __getitem__(self, index):
        return self._rows[index]

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[BOQMasterItem]:
        return iter(self._rows)

    def get(self, bill: str) -> BOQMasterItem | None:
        return self._by_bill.get(bill)

    def items(self) -> list[BOQMasterItem]:
        """Billable rows only."""
        return [row for row in self._rows if row.kind == RowKind.ITEM]

    def section(self, code: str) -> list[BOQMasterItem]:
        return [row for row in self._rows if row.section == code]

    @property
    def sections(self) -> list[str]:
        return list(dict.fromkeys(row.section for row in self._rows))


def _rate_str(rate: float | None) -> str:
    return f"{rate:,.2f}" if rate is not None else ""


def parse_master(data: Any, source: str = "<memory>") -> MasterSchedule:
    """Build a MasterSchedule from the YAML structure.

    Raises:
        ValueError: If the structure is not a list of sections with rows,
            or a bill code appears twice
    """
    if not isinstance(data, list):
        raise ValueError(f"Expected list of sections in {source}, got {type(data).__name__}")

    rows: list[BOQMasterItem] = []
    seen: set[str] = set()
    for idx, section in enumerate(data):
        if not isinstance(section, dict) or "section" not in section:
            raise ValueError(f"Section at index {idx} in {source} has no 'section' code")
        code = str(section["section"])
        for raw in section.get("rows") or []:
            rate = raw.get("rate")
            row = BOQMasterItem(
                section=code,
                bill=str(raw["bill"]),
                desc=raw.get("desc", ""),
                unit=raw.get("unit", ""),
                rate=float(rate) if rate is not None else None,
                rate_str=raw.get("rate_str") or _rate_str(rate),
                kind=RowKind(raw.get("kind", "item")),
            )
            if row.bill in seen:
                raise ValueError(f"Duplicate bill code {row.bill!r} in {source}")
            seen.add(row.bill)
            rows.append(row)

    return MasterSchedule(rows)


def load_master(path: Path) -> MasterSchedule:
    """Load the master schedule from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the YAML is malformed
    """
    if not path.exists():
        raise FileNotFoundError(f"BOQ master schedule not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    schedule = parse_master(data, source=str(path))
    logger.info(f"Loaded {len(schedule)} BOQ master rows ({len(schedule.items())} items) from {path}")
    return schedule


_master: MasterSchedule | None = None


def get_master() -> MasterSchedule:
    """Get the configured master schedule (loaded once)."""
    global _master
    if _master is None:
        _master = load_master(get_config().master_schedule_path)
    return _master
