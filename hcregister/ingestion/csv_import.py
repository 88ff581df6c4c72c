"""CSV bulk import of house connection records.

Headers are matched case-insensitively and a few aliases are accepted:

    list | listno          -> list_no (unless a target batch is given)
    reference | ref        -> reference
    surname                -> surname
    name | firstname       -> name
    phone | mobile         -> phone1
    address                -> address
    location | city        -> location

Every row becomes a fresh record with a new id, no survey date and default
statuses. Unknown columns are ignored.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path

import pandas as pd

from hcregister.models import HouseConnectionRecord

logger = logging.getLogger(__name__)

DEFAULT_LIST = "Uploaded"

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "list_no": ("list", "listno"),
    "reference": ("reference", "ref"),
    "surname": ("surname",),
    "name": ("name", "firstname"),
    "phone1": ("phone", "mobile"),
    "address": ("address",),
    "location": ("location", "city"),
}


def _first(row: dict[str, str], aliases: tuple[str, ...]) -> str:
    for alias in aliases:
        value = (row.get(alias) or "").strip()
        if value:
            return value
    return ""


def _read_frame(text: str) -> pd.DataFrame:
    """Read CSV text with fields matched to the header by position.

    Lines with more fields than the header (trailing commas, stray extra
    cells) are cut to the header width; short lines are padded with "".
    """
    try:
        width = len(pd.read_csv(io.StringIO(text), nrows=0).columns)
    except pd.errors.EmptyDataError:
        return pd.DataFrame()

    df = pd.read_csv(
        io.StringIO(text),
        dtype=str,
        keep_default_na=False,
        skipinitialspace=True,
        index_col=False,
        engine="python",
        on_bad_lines=lambda fields: fields[:width],
    )
    df = df.fillna("")
    df.columns = [str(c).strip().lower() for c in df.columns]
    return df


def _to_records(df: pd.DataFrame, target_list: str | None) -> list[HouseConnectionRecord]:
    records = []
    for row in df.to_dict(orient="records"):
        if not any(str(v).strip() for v in row.values()):
            continue
        fields = {name: _first(row, aliases) for name, aliases in FIELD_ALIASES.items()}
        fields["list_no"] = target_list or fields["list_no"] or DEFAULT_LIST
        records.append(HouseConnectionRecord(**fields))
    return records


def parse_records_csv(text: str, target_list: str | None = None) -> list[HouseConnectionRecord]:
    """Parse CSV text into new records (empty when there are no data rows)."""
    return _to_records(_read_frame(text), target_list)


def read_records_csv(path: Path, target_list: str | None = None) -> list[HouseConnectionRecord]:
    """Read a CSV file into new records.

    Raises:
        FileNotFoundError: If the file doesn't exist
    """
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")
    records = _to_records(_read_frame(path.read_text(encoding="utf-8-sig")), target_list)
    logger.info(f"Read {len(records)} records from {path}")
    return records
