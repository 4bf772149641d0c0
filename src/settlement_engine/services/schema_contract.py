"""Versioned column contract between the engine and its database.

The engine declares the columns it requires and the columns it can live
without. The live database is inspected once; a missing required column
fails fast with SchemaMismatchError, a missing optional column is dropped
from writes and deferred from reads. There is no per-request probing of
write shapes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import defer

from settlement_engine.errors import SchemaMismatchError

logger = logging.getLogger(__name__)

# v1: base tables; v2: approval columns on time_entry; v3: billed flag + invoice_line.time_entry_id
SCHEMA_VERSION = 3

REQUIRED_COLUMNS: dict[str, frozenset[str]] = {
    "tenant": frozenset({"tenant_id", "name", "status"}),
    "project": frozenset({"project_id", "tenant_id", "name", "hourly_rate", "status"}),
    "employee": frozenset(
        {
            "employee_id",
            "tenant_id",
            "full_name",
            "personal_number",
            "email",
            "role",
            "employment_type",
            "hourly_rate",
            "status",
            "created_at",
        }
    ),
    "time_entry": frozenset(
        {
            "time_entry_id",
            "tenant_id",
            "employee_id",
            "project_id",
            "work_date",
            "start_time",
            "end_time",
            "premium_category",
            "hours_total",
            "description",
            "approval_status",
            "billed",
            "created_at",
        }
    ),
    "invoice": frozenset({"invoice_id", "tenant_id", "project_id", "amount", "status", "created_at"}),
    "invoice_line": frozenset(
        {
            "invoice_line_id",
            "invoice_id",
            "time_entry_id",
            "sort_order",
            "description",
            "quantity",
            "unit_rate",
            "amount",
            "created_at",
        }
    ),
}

OPTIONAL_COLUMNS: dict[str, frozenset[str]] = {
    "time_entry": frozenset({"approved_at", "approved_by", "break_minutes", "amount"}),
    "invoice": frozenset({"customer_name", "issue_date"}),
    "invoice_line": frozenset({"unit", "tenant_id"}),
}


@dataclass(frozen=True)
class SchemaReport:
    """Outcome of verifying the live database against the contract."""

    schema_version: int = SCHEMA_VERSION
    missing_optional: dict[str, frozenset[str]] = field(default_factory=dict)

    def has(self, table: str, column: str) -> bool:
        return column not in self.missing_optional.get(table, frozenset())

    def writable(self, table: str, values: dict[str, Any]) -> dict[str, Any]:
        """Drop optional columns the live table does not have."""
        missing = self.missing_optional.get(table)
        if not missing:
            return values
        return {key: value for key, value in values.items() if key not in missing}

    def deferred(self, model: Any) -> list[Any]:
        """Loader options excluding absent optional columns from a SELECT."""
        missing = self.missing_optional.get(model.__tablename__, frozenset())
        return [defer(getattr(model, column)) for column in sorted(missing)]


FULL_SCHEMA = SchemaReport()


class SchemaContract:
    """Verifies the live database against the declared columns."""

    def __init__(
        self,
        required: dict[str, frozenset[str]] | None = None,
        optional: dict[str, frozenset[str]] | None = None,
        schema_version: int = SCHEMA_VERSION,
    ):
        self.required = required if required is not None else REQUIRED_COLUMNS
        self.optional = optional if optional is not None else OPTIONAL_COLUMNS
        self.schema_version = schema_version

    def _live_columns(self, sync_conn: Any) -> dict[str, set[str] | None]:
        inspector = inspect(sync_conn)
        tables = set(self.required) | set(self.optional)
        live: dict[str, set[str] | None] = {}
        for table in sorted(tables):
            if not inspector.has_table(table):
                live[table] = None
                continue
            live[table] = {column["name"] for column in inspector.get_columns(table)}
        return live

    def evaluate(self, live: dict[str, set[str] | None]) -> SchemaReport:
        """Compare inspected columns with the contract."""
        missing_required: dict[str, list[str]] = {}
        missing_optional: dict[str, frozenset[str]] = {}

        for table, columns in self.required.items():
            present = live.get(table)
            if present is None:
                missing_required[table] = sorted(columns)
                continue
            absent = columns - present
            if absent:
                missing_required[table] = sorted(absent)

        if missing_required:
            raise SchemaMismatchError(missing_required, self.schema_version)

        for table, columns in self.optional.items():
            present = live.get(table) or set()
            absent = frozenset(columns - present)
            if absent:
                missing_optional[table] = absent

        if missing_optional:
            logger.warning(
                "Optional columns absent; they will be omitted from writes: %s",
                {table: sorted(cols) for table, cols in missing_optional.items()},
            )
        return SchemaReport(self.schema_version, missing_optional)

    async def verify(self, session: AsyncSession) -> SchemaReport:
        """Inspect the database behind ``session`` and evaluate the contract."""
        conn = await session.connection()
        live = await conn.run_sync(self._live_columns)
        return self.evaluate(live)
