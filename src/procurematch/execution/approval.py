"""
Approval decisions — operator transitions on a matching result.

Approving or rejecting never edits the result in place: each decision returns
a copy in the new terminal state with one more audit entry. Terminal results
(approved-with-variance, rejected) accept no further decisions.
"""

from __future__ import annotations

import logging
from datetime import datetime

from procurematch.exceptions import InvalidTransitionError
from procurematch.models.matching import (
    AuditAction,
    InvoiceMatchingResult,
    MatchingAuditEntry,
    MatchStatus,
)

logger = logging.getLogger("procurematch.execution.approval")


def _check_open(result: InvoiceMatchingResult, decision: str) -> None:
    if result.is_terminal:
        raise InvalidTransitionError(
            f"Cannot {decision} match {result.id}: already {result.match_status.value}"
        )


def approve(
    result: InvoiceMatchingResult,
    actor_id: str,
    actor_name: str | None = None,
    notes: str | None = None,
) -> InvoiceMatchingResult:
    """Accept the invoice with whatever variance was found.

    Raises:
        InvalidTransitionError: if the result was already approved or rejected.
    """
    _check_open(result, "approve")
    now = datetime.now()
    entry = MatchingAuditEntry(
        timestamp=now,
        action=AuditAction.APPROVED,
        performed_by=actor_id,
        performed_by_name=actor_name,
        details=notes or "Approved with variance",
    )
    logger.info(
        "Match %s for invoice %s approved by %s (was %s, %s level)",
        result.id,
        result.invoice_id,
        actor_id,
        result.match_status.value,
        result.approval_level.value,
    )
    return result.model_copy(
        update={
            "match_status": MatchStatus.APPROVED_WITH_VARIANCE,
            "approved_by": actor_id,
            "approved_at": now,
            "notes": notes if notes is not None else result.notes,
            "audit_trail": [*result.audit_trail, entry],
        },
        deep=True,
    )


def reject(
    result: InvoiceMatchingResult,
    actor_id: str,
    reason: str,
    actor_name: str | None = None,
) -> InvoiceMatchingResult:
    """Reject the invoice.

    Raises:
        InvalidTransitionError: if the result was already approved or rejected.
    """
    _check_open(result, "reject")
    reason = reason or "Rejected due to variance"
    now = datetime.now()
    entry = MatchingAuditEntry(
        timestamp=now,
        action=AuditAction.REJECTED,
        performed_by=actor_id,
        performed_by_name=actor_name,
        details=reason,
    )
    logger.info(
        "Match %s for invoice %s rejected by %s: %s",
        result.id,
        result.invoice_id,
        actor_id,
        reason,
    )
    return result.model_copy(
        update={
            "match_status": MatchStatus.REJECTED,
            "rejected_by": actor_id,
            "rejected_at": now,
            "rejection_reason": reason,
            "audit_trail": [*result.audit_trail, entry],
        },
        deep=True,
    )
