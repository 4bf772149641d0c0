"""Time entry approval state machine with transition validation."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Mapping

logger = logging.getLogger(__name__)


class ApprovalStatus(str, Enum):
    """Time entry approval status values."""

    PENDING = "pending"
    APPROVED = "approved"


class ApprovalStateMachine:
    """State machine for time entry approval.

    Allowed transitions:
    - pending → approved

    ``approved`` is terminal; there is no rejection or un-approval.
    Approving an already approved entry is a no-op, not an error.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        ApprovalStatus.PENDING: [ApprovalStatus.APPROVED],
        ApprovalStatus.APPROVED: [],  # Terminal state
    }

    INITIAL_STATUS = ApprovalStatus.PENDING

    # Statuses eligible for settlement and payroll aggregation
    CONSUMABLE = {ApprovalStatus.APPROVED}

    # Fields a submission request may not set; approval is a privileged side channel
    PROTECTED_FIELDS = frozenset(
        {
            "approval_status",
            "approved_at",
            "approved_by",
            "billed",
            "is_billed",
            "status",
            "invoice_id",
            "time_entry_id",
            "tenant_id",
        }
    )

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def is_noop(cls, from_status: str, to_status: str) -> bool:
        """Re-approving an approved entry succeeds without side effects."""
        return from_status == to_status == ApprovalStatus.APPROVED

    @classmethod
    def transition_sources(cls, to_status: str) -> list[str]:
        """Statuses an entry may move to ``to_status`` from, as column values."""
        return [
            ApprovalStatus(status).value
            for status in cls.VALID_TRANSITIONS
            if cls.can_transition(status, to_status)
        ]

    @classmethod
    def consumable_values(cls) -> list[str]:
        """Statuses whose entries may be billed or paid, as column values."""
        return sorted(status.value for status in cls.CONSUMABLE)

    @classmethod
    def sanitize_submission(cls, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Strip approval and settlement fields from a creation request."""
        stripped = sorted(key for key in payload if key in cls.PROTECTED_FIELDS)
        if stripped:
            logger.debug("Ignoring protected fields on submission: %s", stripped)
        return {key: value for key, value in payload.items() if key not in cls.PROTECTED_FIELDS}
