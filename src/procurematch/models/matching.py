"""
Matching result model — variances, recommendations, audit trail.

An ``InvoiceMatchingResult`` is created fresh on every match run. Operator
decisions (approve / reject) produce a new result with an extra audit entry;
a result is never changed in place.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class MatchingMode(str, Enum):
    """Which reconciliation convention the matcher follows."""

    THREE_WAY = "three-way"  # PO + GRN + invoice, strict price tolerance
    TWO_DOCUMENT = "two-document"  # invoice against PO, GRN optional


class VarianceField(str, Enum):
    """Line item field a variance was measured on."""

    QUANTITY = "quantity"
    PRICE = "price"
    TOTAL = "total"


class VarianceSeverity(str, Enum):
    """Tolerance classification of a single variance."""

    ACCEPTABLE = "acceptable"  # within tolerance
    ACTIONABLE = "actionable"  # above tolerance
    CRITICAL = "critical"  # above the escalation band


class MatchStatus(str, Enum):
    """Overall status of a match run."""

    FULLY_MATCHED = "fully-matched"
    VARIANCE_WITHIN_TOLERANCE = "variance-within-tolerance"
    PARTIALLY_MATCHED = "partially-matched"
    NEEDS_REVIEW = "needs-review"
    NOT_MATCHED = "not-matched"
    # Reached only through an operator decision
    APPROVED_WITH_VARIANCE = "approved-with-variance"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (MatchStatus.APPROVED_WITH_VARIANCE, MatchStatus.REJECTED)


class ApprovalLevel(str, Enum):
    """Minimum authority required to accept a match, lowest first."""

    AUTO_APPROVE = "auto-approve"
    MANAGER = "manager"
    SENIOR_MANAGER = "senior-manager"
    DIRECTOR = "director"
    CFO = "cfo"


class RecommendationType(str, Enum):
    """Suggested next action for the operator."""

    APPROVE = "approve"
    REQUEST_CLARIFICATION = "request-clarification"
    CREATE_DISPUTE = "create-dispute"
    CREATE_DEBIT_NOTE = "create-debit-note"
    CONTACT_SUPPLIER = "contact-supplier"
    REJECT = "reject"


class RecommendationPriority(str, Enum):
    """Urgency of a recommendation."""

    INFO = "info"
    WARNING = "warning"
    ACTION_REQUIRED = "action-required"
    CRITICAL = "critical"


class AuditAction(str, Enum):
    CREATED = "created"
    APPROVED = "approved"
    REJECTED = "rejected"


class MatchingVariance(BaseModel):
    """Deviation of one invoice line field from its PO/GRN reference."""

    item_id: str
    item_name: str
    field: VarianceField
    po_value: Decimal | None = None
    grn_value: Decimal | None = None
    invoice_value: Decimal
    variance: Decimal
    variance_percentage: float
    is_within_tolerance: bool
    requires_action: bool
    severity: VarianceSeverity = VarianceSeverity.ACCEPTABLE
    suggested_action: str | None = None


class MatchingRecommendation(BaseModel):
    """A suggested next action. Executing it is the caller's job."""

    type: RecommendationType
    priority: RecommendationPriority
    message: str
    action_label: str


class MatchingAuditEntry(BaseModel):
    """One immutable entry in a result's audit trail."""

    id: str = Field(default_factory=lambda: f"audit_{uuid.uuid4().hex[:12]}")
    timestamp: datetime = Field(default_factory=datetime.now)
    action: AuditAction
    performed_by: str
    performed_by_name: str | None = None
    details: str = ""


class InvoiceMatchingResult(BaseModel):
    """Outcome of reconciling one invoice against its PO and GRN(s)."""

    id: str = Field(default_factory=lambda: f"match_{uuid.uuid4().hex[:12]}")
    invoice_id: str
    purchase_order_id: str | None = None
    grn_ids: list[str] = Field(default_factory=list)
    mode: MatchingMode = MatchingMode.THREE_WAY

    match_status: MatchStatus
    overall_variance: Decimal = Decimal("0")
    variance_percentage: float = 0.0
    tolerance_threshold: float = 0.0

    items_matched: int = 0
    items_mismatched: int = 0
    items_missing: int = 0
    items_additional: int = 0

    quantity_variances: list[MatchingVariance] = Field(default_factory=list)
    price_variances: list[MatchingVariance] = Field(default_factory=list)
    total_variances: list[MatchingVariance] = Field(default_factory=list)
    recommendations: list[MatchingRecommendation] = Field(default_factory=list)

    requires_approval: bool = True
    approval_level: ApprovalLevel = ApprovalLevel.AUTO_APPROVE

    currency: str = "USD"
    exchange_rate: Decimal | None = None

    matched_by: str = "system"
    matched_at: datetime = Field(default_factory=datetime.now)
    approved_by: str | None = None
    approved_at: datetime | None = None
    rejected_by: str | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    notes: str | None = None

    audit_trail: list[MatchingAuditEntry] = Field(default_factory=list)

    @property
    def all_variances(self) -> list[MatchingVariance]:
        return [*self.quantity_variances, *self.price_variances, *self.total_variances]

    @property
    def actionable_variances(self) -> list[MatchingVariance]:
        """Variances that fall outside tolerance."""
        return [v for v in self.all_variances if v.requires_action]

    @property
    def is_terminal(self) -> bool:
        return self.match_status.is_terminal

    def has_recommendation(self, rec_type: RecommendationType) -> bool:
        return any(r.type == rec_type for r in self.recommendations)

    def to_markdown(self) -> str:
        """Export result as Markdown."""
        from procurematch.exporters.markdown import render_markdown

        return render_markdown(self)

    def to_json(self) -> str:
        """Export result as JSON (audit record)."""
        return self.model_dump_json(indent=2)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()
