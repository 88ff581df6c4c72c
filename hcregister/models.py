"""HC Register Pydantic models for type-safe data validation.

Field names are snake_case in Python and camelCase on the wire, so records
round-trip unchanged through the local cache, the backend document and
backup files.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def new_id() -> str:
    """Short random identifier for records and log entries."""
    return uuid4().hex[:9]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class WireModel(BaseModel):
    """Base for models serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class FeasibilityStatus(str, Enum):
    FEASIBLE = "Feasible"
    NOT_FEASIBLE = "Not Feasible"
    LOW_LYING = "Low Lying"


class WorksStatus(str, Enum):
    NOT_STARTED = "Not Started"
    ONGOING = "Ongoing"
    COMPLETED = "Completed"
    CLAIMED = "Claimed"
    CERTIFIED = "Certified"


class OverbudgetStatus(str, Enum):
    NOT_STARTED = "Not Started"
    ONGOING = "Ongoing"
    COMPLETED = "Completed"
    CLAIMED = "Claimed"
    PAID = "Paid"


class RowKind(str, Enum):
    """Master schedule row kinds. Only ITEM rows carry billable quantities."""

    SECTION = "section"
    GROUP = "group"
    SUBSECTION = "subsection"
    ITEM = "item"
    NOTE = "note"


BOQColumn = Literal["est", "over", "claim", "cert"]
BOQ_COLUMNS: tuple[BOQColumn, ...] = ("est", "over", "claim", "cert")


class FileData(WireModel):
    """Attached photo or drawing (inline data URL)."""

    name: str
    data_url: str
    mime_type: str = "application/octet-stream"


class BOQItemValues(WireModel):
    """Expression text and last successfully evaluated value per column."""

    est_expr: str = ""
    est_val: float = 0.0
    over_expr: str = ""
    over_val: float = 0.0
    claim_expr: str = ""
    claim_val: float = 0.0
    cert_expr: str = ""
    cert_val: float = 0.0

    def expr(self, column: BOQColumn) -> str:
        return getattr(self, f"{column}_expr")

    def value(self, column: BOQColumn) -> float:
        return getattr(self, f"{column}_val") or 0.0


class Totals(WireModel):
    est: float = 0.0
    over: float = 0.0
    claim: float = 0.0
    cert: float = 0.0

    def get(self, column: BOQColumn) -> float:
        return getattr(self, column)


class HouseConnectionRecord(WireModel):
    """One house connection request and its BOQ schedule."""

    id: str = Field(default_factory=new_id)
    list_no: str = ""
    reference: str = ""
    surname: str = ""
    name: str = ""
    phone1: str = ""
    phone2: str = ""
    address: str = ""
    location: str = ""
    survey_date: str = ""
    feasible: FeasibilityStatus = FeasibilityStatus.FEASIBLE
    works_status: WorksStatus = WorksStatus.NOT_STARTED
    overbudget_status: OverbudgetStatus = OverbudgetStatus.NOT_STARTED
    reason: str = ""
    photos: list[FileData] = Field(default_factory=list)
    drawings: list[FileData] = Field(default_factory=list)
    boq: dict[str, BOQItemValues] = Field(default_factory=dict)
    totals: Totals = Field(default_factory=Totals)
    last_modified_by: str | None = None
    last_modified_at: str | None = None

    @field_validator("works_status", "overbudget_status", mode="before")
    @classmethod
    def empty_status_to_default(cls, v):
        # older payloads leave the status columns blank
        if v in (None, ""):
            return "Not Started"
        return v

    def item(self, bill: str) -> BOQItemValues:
        """Stored values for a bill code; all-zero when absent."""
        return self.boq.get(bill) or BOQItemValues()


class BOQMasterItem(BaseModel):
    """Static bill-of-quantities row (immutable at runtime)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    section: str
    bill: str
    desc: str
    unit: str = ""
    rate: float | None = None
    rate_str: str = Field(default="", alias="rateStr")
    kind: RowKind = RowKind.ITEM

    @property
    def is_billable(self) -> bool:
        return self.kind == RowKind.ITEM and bool(self.rate)


class User(WireModel):
    username: str
    role: Literal["Admin", "Engineer", "Surveyor"] = "Engineer"

    @classmethod
    def mock_login(cls, username: str) -> User:
        """Accept any credentials; admins are recognised by name."""
        role = "Admin" if "admin" in username.lower() else "Engineer"
        return cls(username=username, role=role)


class ActivityLog(WireModel):
    id: str = Field(default_factory=new_id)
    user: str
    action: str
    timestamp: str = Field(default_factory=utc_now_iso)
    target_ref: str | None = None


class SharedState(WireModel):
    """Whole-collection payload exchanged with the backend and other views."""

    records: list[HouseConnectionRecord] = Field(default_factory=list)
    activities: list[ActivityLog] = Field(default_factory=list)


class BackupFile(WireModel):
    """Portable backup document (.hcf)."""

    version: str
    timestamp: str = Field(default_factory=utc_now_iso)
    exported_by: str
    records: list[HouseConnectionRecord] = Field(default_factory=list)
    logs: list[ActivityLog] = Field(default_factory=list)
