"""Portable backup files (.hcf).

A backup is a JSON document ``{version, timestamp, exportedBy, records,
logs}``. Importing merges records by id into the current collection:
incoming records overwrite same-id records in place, new ids are appended,
local-only records are kept. Imported logs go in front of the current logs
and the list is capped. Importing the same file twice yields the same
record set as importing it once.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import datetime

from pydantic import ValidationError

from hcregister.exceptions import BackupImportError
from hcregister.models import ActivityLog, BackupFile, HouseConnectionRecord
from hcregister.store.record_store import DEFAULT_LOG_LIMIT, prepend_logs

BACKUP_EXTENSION = ".hcf"


def build_backup(
    records: Sequence[HouseConnectionRecord],
    logs: Sequence[ActivityLog],
    exported_by: str,
    version: str = "2.5",
) -> BackupFile:
    return BackupFile(version=version, exported_by=exported_by, records=list(records), logs=list(logs))


def dumps_backup(backup: BackupFile) -> str:
    return backup.model_dump_json(by_alias=True, exclude_none=True)


def backup_filename(now: datetime | None = None) -> str:
    return f"HC_Framework_Backup_{(now or datetime.now()).strftime('%Y-%m-%d')}{BACKUP_EXTENSION}"


def parse_backup(text: str | bytes) -> BackupFile:
    """Parse a backup document.

    Raises:
        BackupImportError: If the text is not JSON or has no records list
    """
    try:
        data = json.loads(text)
    except (ValueError, TypeError) as e:
        raise BackupImportError(f"Backup is not valid JSON: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("records"), list):
        raise BackupImportError("Backup has no records list")

    data.setdefault("version", "unknown")
    data.setdefault("exportedBy", "unknown")
    data["logs"] = data.get("logs") or []

    try:
        return BackupFile.model_validate(data)
    except ValidationError as e:
        raise BackupImportError(f"Backup content is invalid: {e.error_count()} errors") from e


def merge_records(
    current: Sequence[HouseConnectionRecord],
    incoming: Sequence[HouseConnectionRecord],
) -> list[HouseConnectionRecord]:
    """Merge by id; incoming wins, order of first appearance is kept."""
    merged = {record.id: record for record in current}
    for record in incoming:
        merged[record.id] = record
    return list(merged.values())


def merge_logs(
    imported: Sequence[ActivityLog],
    current: Sequence[ActivityLog],
    limit: int = DEFAULT_LOG_LIMIT,
) -> list[ActivityLog]:
    return prepend_logs(imported, current, limit)
