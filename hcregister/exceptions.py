"""Typed errors raised by the register core and translated at the edges."""

from __future__ import annotations


class HCRegisterError(Exception):
    """Base class for all register errors."""


class RecordNotFound(HCRegisterError):
    """No record with the requested id."""

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Record not found: {record_id}")


class DerivedFieldError(HCRegisterError):
    """Attempt to edit a derived field (boq/totals) directly."""


class BackendError(HCRegisterError):
    """Remote shared-state endpoint failed or answered non-2xx."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class BackupImportError(HCRegisterError):
    """Backup file could not be parsed; nothing was imported."""


class ExportError(HCRegisterError):
    """Spreadsheet export could not be produced."""


class SessionStateError(HCRegisterError):
    """Operation not allowed in the session's current state."""


class ExpressionError(HCRegisterError, ValueError):
    """Quantity expression could not be evaluated."""

    def __init__(self, expr: str):
        self.expr = expr
        super().__init__(f"Invalid quantity expression: {expr!r}")
