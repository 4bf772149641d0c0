"""Settlement engine services."""

from settlement_engine.services.approval_service import ApprovalResult, ApprovalService
from settlement_engine.services.export_service import (
    ExportService,
    InvoiceExportRow,
    PayrollExportRow,
)
from settlement_engine.services.payroll_service import PayrollAggregator
from settlement_engine.services.schema_contract import SchemaContract, SchemaReport
from settlement_engine.services.settlement_service import (
    SettlementEngine,
    SettlementPreview,
    SettlementResult,
    SettlementWarning,
)
from settlement_engine.services.state_machine import (
    ApprovalStateMachine,
    ApprovalStatus,
)
from settlement_engine.services.submission_service import SubmissionService

__all__ = [
    "ApprovalResult",
    "ApprovalService",
    "ApprovalStateMachine",
    "ApprovalStatus",
    "ExportService",
    "InvoiceExportRow",
    "PayrollAggregator",
    "PayrollExportRow",
    "SchemaContract",
    "SchemaReport",
    "SettlementEngine",
    "SettlementPreview",
    "SettlementResult",
    "SettlementWarning",
    "SubmissionService",
]
