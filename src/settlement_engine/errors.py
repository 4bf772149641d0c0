"""Error taxonomy shared by the engine services."""

from __future__ import annotations

from typing import Any
from uuid import UUID


class EngineError(Exception):
    """Base class for errors reported synchronously to the caller."""

    code = "ENGINE_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class Forbidden(EngineError):
    """Actor lacks the capability required for the tenant."""

    code = "FORBIDDEN"


class NotFound(EngineError):
    """Tenant, project, employee, invoice or entry is absent from the tenant scope."""

    code = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: UUID | str | None = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        msg = f"{entity_type} not found"
        if entity_id is not None:
            msg = f"{entity_type} {entity_id} not found"
        super().__init__(msg, {"entity_type": entity_type, "entity_id": str(entity_id)})


class ValidationError(EngineError):
    """Request is well-formed but violates a business rule."""

    code = "VALIDATION_ERROR"


class PartialSettlement(EngineError):
    """Invoice exists but its lines could not be written.

    No time entry was marked billed; the caller can repair or re-run the
    settlement using ``invoice_id``.
    """

    code = "PARTIAL_SETTLEMENT"

    def __init__(
        self,
        invoice_id: UUID,
        cause: BaseException | None = None,
        lines_written: int = 0,
    ):
        self.invoice_id = invoice_id
        self.cause = cause
        self.lines_written = lines_written
        msg = f"Invoice {invoice_id} created but invoice lines could not be written"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(
            msg,
            {
                "invoice_id": str(invoice_id),
                "lines_written": lines_written,
                "error": str(cause) if cause is not None else None,
            },
        )


class SchemaMismatchError(EngineError):
    """Live database lacks columns the engine requires."""

    code = "SCHEMA_MISMATCH"

    def __init__(self, missing: dict[str, list[str]], schema_version: int):
        self.missing = missing
        self.schema_version = schema_version
        parts = [f"{table}({', '.join(cols)})" for table, cols in sorted(missing.items())]
        super().__init__(
            f"Database does not satisfy schema v{schema_version}; missing {'; '.join(parts)}",
            {"missing": missing, "schema_version": schema_version},
        )
