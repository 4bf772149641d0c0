"""Settlement of approved time entries onto customer invoices."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Sequence
from uuid import UUID

from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from settlement_engine.calculators.line_builder import InvoiceLineBuilder
from settlement_engine.calculators.pay_calculator import round_to_cents
from settlement_engine.calculators.types import InvoiceLineCandidate
from settlement_engine.config import Settings, get_settings
from settlement_engine.errors import NotFound, PartialSettlement, ValidationError
from settlement_engine.models import Invoice, InvoiceLine, Project, TimeEntry
from settlement_engine.services.audit import AuditRecorder
from settlement_engine.services.authorization import AuthorizationService
from settlement_engine.services.schema_contract import FULL_SCHEMA, SchemaReport
from settlement_engine.services.state_machine import ApprovalStateMachine

logger = logging.getLogger(__name__)

CONSUMABLE = ApprovalStateMachine.consumable_values()
# Paid and cancelled invoices are closed to new lines
OPEN_INVOICE_STATUSES = frozenset({"draft", "sent"})
ALREADY_SETTLED = "ALREADY_SETTLED"


@dataclass
class SettlementWarning:
    """Non-fatal condition reported alongside a successful settlement."""

    code: str
    message: str
    time_entry_id: UUID | None = None


@dataclass
class SettlementResult:
    """Lines written by one settlement call."""

    invoice_id: UUID
    rate: Decimal
    lines: list[InvoiceLineCandidate] = field(default_factory=list)
    total_amount: Decimal = Decimal("0.00")
    invoice_total: Decimal = Decimal("0.00")
    warnings: list[SettlementWarning] = field(default_factory=list)
    attempts: int = 0

    @property
    def settled_entry_ids(self) -> list[UUID]:
        return [line.time_entry_id for line in self.lines if line.time_entry_id is not None]

    @property
    def count(self) -> int:
        return len(self.lines)


@dataclass
class SettlementPreview:
    """Unbilled work a settlement of the project would pick up right now."""

    project_id: UUID
    project_name: str
    customer_name: str | None
    rate: Decimal
    entries: list[TimeEntry] = field(default_factory=list)
    total_hours: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0.00")

    @property
    def count(self) -> int:
        return len(self.entries)


class _ClaimConflict(Exception):
    """Fewer entries were claimed than selected."""

    def __init__(self, expected: int, claimed: int):
        self.expected = expected
        self.claimed = claimed
        super().__init__(f"Claimed {claimed} of {expected} selected time entries")


class SettlementEngine:
    """Converts approved, unbilled time entries of a project into invoice lines.

    Lines are inserted and entries claimed inside one savepoint. The claim is
    a conditional ``UPDATE ... WHERE billed = false``; if it claims fewer rows
    than were selected, or the unique constraint on
    ``invoice_line.time_entry_id`` fires, a concurrent settlement got there
    first. The savepoint is rolled back, the entries taken elsewhere are
    reported as ``ALREADY_SETTLED`` warnings and the remaining set is
    selected again.
    """

    def __init__(
        self,
        session: AsyncSession,
        schema: SchemaReport | None = None,
        settings: Settings | None = None,
    ):
        self.session = session
        self.schema = schema or FULL_SCHEMA
        self.settings = settings or get_settings()
        self.auth = AuthorizationService(session)
        self.audit = AuditRecorder(session)

    async def settle(
        self,
        tenant_id: UUID,
        project_id: UUID,
        invoice_id: UUID,
        actor_id: UUID,
    ) -> SettlementResult:
        """Settle every approved, unbilled entry of ``project_id`` onto ``invoice_id``.

        Zero entries is a valid outcome. Re-running after a failure picks up
        exactly the entries still unbilled.

        Raises:
            NotFound: tenant, project or invoice absent from the tenant
            Forbidden: actor is not an administrator of the tenant
            ValidationError: invoice belongs to a different project or is closed
            PartialSettlement: the invoice exists but its lines were not written
        """
        await self.auth.require_tenant(tenant_id)
        await self.auth.require_admin(tenant_id, actor_id)
        project = await self._require_project(tenant_id, project_id)

        invoice = await self.session.scalar(
            select(Invoice)
            .options(*self.schema.deferred(Invoice))
            .where(
                Invoice.invoice_id == invoice_id,
                Invoice.tenant_id == tenant_id,
            )
        )
        if invoice is None:
            raise NotFound("Invoice", invoice_id)
        if invoice.project_id is not None and invoice.project_id != project_id:
            raise ValidationError(
                "Invoice belongs to a different project",
                {"invoice_id": str(invoice_id), "project_id": str(project_id)},
            )
        if invoice.status not in OPEN_INVOICE_STATUSES:
            raise ValidationError(
                f"Invoice is {invoice.status} and cannot take new lines",
                {"invoice_id": str(invoice_id), "status": invoice.status},
            )

        rate = self.project_rate(project)
        stored_amount = invoice.amount
        result = SettlementResult(invoice_id=invoice_id, rate=rate)

        for attempt in range(1, self.settings.settlement_max_attempts + 1):
            result.attempts = attempt
            entries = await self._select_unbilled(tenant_id, project_id)
            if not entries:
                break

            first_sort_order = await self._next_sort_order(invoice_id)
            lines = InvoiceLineBuilder.build_lines(entries, rate, first_sort_order)
            entry_ids = [entry.time_entry_id for entry in entries]

            try:
                async with self.session.begin_nested():
                    await self._insert_lines(tenant_id, invoice_id, lines)
                    await self._claim_entries(tenant_id, entry_ids)
            except (IntegrityError, _ClaimConflict) as exc:
                taken = await self._already_billed(tenant_id, entry_ids)
                if not taken:
                    logger.exception("Settlement of invoice %s failed writing lines", invoice_id)
                    raise PartialSettlement(invoice_id, exc) from exc
                logger.warning(
                    "Invoice %s: %d entries settled concurrently, retrying with remaining set",
                    invoice_id,
                    len(taken),
                )
                result.warnings.extend(
                    SettlementWarning(
                        code=ALREADY_SETTLED,
                        message="Time entry was settled by another invoice",
                        time_entry_id=entry_id,
                    )
                    for entry_id in taken
                )
                continue
            except SQLAlchemyError as exc:
                logger.exception("Settlement of invoice %s failed writing lines", invoice_id)
                raise PartialSettlement(invoice_id, exc) from exc

            result.lines = lines
            break
        else:
            # Attempts exhausted; only an error if unbilled work is still left
            if await self._select_unbilled(tenant_id, project_id):
                raise PartialSettlement(
                    invoice_id,
                    RuntimeError(
                        f"Entries kept changing after "
                        f"{self.settings.settlement_max_attempts} attempts"
                    ),
                )

        result.total_amount = InvoiceLineBuilder.calculate_total(result.lines)
        result.invoice_total = round_to_cents(Decimal(str(stored_amount or 0)))

        if result.lines:
            result.invoice_total = await self._reconcile_invoice_total(
                tenant_id, invoice_id, stored_amount
            )
            self.audit.record(
                tenant_id=tenant_id,
                entity_type="invoice",
                entity_id=invoice_id,
                action="settled",
                actor_id=actor_id,
                details={
                    "project_id": project_id,
                    "line_count": len(result.lines),
                    "total_amount": result.total_amount,
                    "rate": rate,
                    "time_entry_ids": result.settled_entry_ids,
                },
            )

        logger.info(
            "Settled %d time entries onto invoice %s (project %s): %s",
            result.count,
            invoice_id,
            project_id,
            result.total_amount,
        )
        return result

    async def preview(
        self,
        tenant_id: UUID,
        project_id: UUID,
        actor_id: UUID | None = None,
    ) -> SettlementPreview:
        """Approved, unbilled entries of a project and what they would bill.

        Reads the same set, in the same order and at the same rate, that
        ``settle`` would consume. Nothing is written. Any active member of
        the tenant may look.

        Raises:
            NotFound: tenant or project absent from the tenant
            Forbidden: actor is not an active member of the tenant
        """
        await self.auth.require_tenant(tenant_id)
        await self.auth.get_actor(tenant_id, actor_id)
        project = await self._require_project(tenant_id, project_id)

        rate = self.project_rate(project)
        entries = list(await self._select_unbilled(tenant_id, project_id))
        lines = InvoiceLineBuilder.build_lines(entries, rate)

        return SettlementPreview(
            project_id=project_id,
            project_name=project.name,
            customer_name=project.customer_name,
            rate=rate,
            entries=entries,
            total_hours=sum((Decimal(str(e.hours_total)) for e in entries), Decimal("0")),
            total_amount=InvoiceLineBuilder.calculate_total(lines),
        )

    async def _require_project(self, tenant_id: UUID, project_id: UUID) -> Project:
        project = await self.session.scalar(
            select(Project).where(
                Project.project_id == project_id,
                Project.tenant_id == tenant_id,
            )
        )
        if project is None:
            raise NotFound("Project", project_id)
        return project

    def project_rate(self, project: Project) -> Decimal:
        """Project billing rate, or the configured default when unset."""
        if project.hourly_rate is not None:
            return Decimal(project.hourly_rate)
        return self.settings.default_project_rate

    async def _select_unbilled(self, tenant_id: UUID, project_id: UUID) -> Sequence[TimeEntry]:
        result = await self.session.scalars(
            select(TimeEntry)
            .options(*self.schema.deferred(TimeEntry))
            .where(
                TimeEntry.tenant_id == tenant_id,
                TimeEntry.project_id == project_id,
                TimeEntry.approval_status.in_(CONSUMABLE),
                TimeEntry.billed == False,  # noqa: E712
            )
            .order_by(
                TimeEntry.work_date,
                TimeEntry.start_time.asc().nulls_last(),
                TimeEntry.created_at,
                TimeEntry.time_entry_id,
            )
        )
        return result.all()

    async def _next_sort_order(self, invoice_id: UUID) -> int:
        current = await self.session.scalar(
            select(func.max(InvoiceLine.sort_order)).where(InvoiceLine.invoice_id == invoice_id)
        )
        return 0 if current is None else current + 1

    async def _insert_lines(
        self,
        tenant_id: UUID,
        invoice_id: UUID,
        lines: list[InvoiceLineCandidate],
    ) -> None:
        rows = [
            self.schema.writable("invoice_line", line.to_values(invoice_id, tenant_id))
            for line in lines
        ]
        await self.session.execute(insert(InvoiceLine), rows)

    async def _claim_entries(self, tenant_id: UUID, entry_ids: list[UUID]) -> None:
        """Mark entries billed, only where still approved and unbilled."""
        result = await self.session.execute(
            update(TimeEntry)
            .where(
                TimeEntry.tenant_id == tenant_id,
                TimeEntry.time_entry_id.in_(entry_ids),
                TimeEntry.approval_status.in_(CONSUMABLE),
                TimeEntry.billed == False,  # noqa: E712
            )
            .values(billed=True)
        )
        if result.rowcount != len(entry_ids):
            raise _ClaimConflict(len(entry_ids), result.rowcount)

    async def _already_billed(self, tenant_id: UUID, entry_ids: list[UUID]) -> list[UUID]:
        result = await self.session.scalars(
            select(TimeEntry.time_entry_id).where(
                TimeEntry.tenant_id == tenant_id,
                TimeEntry.time_entry_id.in_(entry_ids),
                TimeEntry.billed == True,  # noqa: E712
            )
        )
        return list(result.all())

    async def _reconcile_invoice_total(
        self,
        tenant_id: UUID,
        invoice_id: UUID,
        stored: Decimal | None,
    ) -> Decimal:
        """Make the stored invoice amount equal the sum of its lines."""
        line_sum = await self.session.scalar(
            select(func.coalesce(func.sum(InvoiceLine.amount), 0)).where(
                InvoiceLine.invoice_id == invoice_id
            )
        )
        total = round_to_cents(Decimal(str(line_sum)))
        if stored is None or Decimal(str(stored)) != total:
            logger.info(
                "Invoice %s amount %s replaced by computed total %s",
                invoice_id,
                stored,
                total,
            )
            await self.session.execute(
                update(Invoice)
                .where(
                    Invoice.invoice_id == invoice_id,
                    Invoice.tenant_id == tenant_id,
                )
                .values(amount=total)
            )
        return total
