"""
Tests for operator approve / reject decisions on matching results.
"""

from decimal import Decimal

import pytest

from procurematch.analyzers.three_way_matching import ThreeWayMatcher
from procurematch.exceptions import InvalidTransitionError
from procurematch.execution.approval import approve, reject
from procurematch.models.documents import GoodsReceivedNote, Invoice, LineItem, PurchaseOrder, ReceivedLineItem
from procurematch.models.matching import AuditAction, InvoiceMatchingResult, MatchStatus


def _make_result(invoiced_qty: str = "12") -> InvoiceMatchingResult:
    po = PurchaseOrder(
        id="PO-1",
        supplier_id="SUP-1",
        items=[LineItem(item_id="towels", quantity=Decimal("10"), unit_price=Decimal("10"))],
    )
    grn = GoodsReceivedNote(
        id="GRN-1",
        purchase_order_id="PO-1",
        items=[ReceivedLineItem(item_id="towels", quantity=Decimal("10"), unit_price=Decimal("10"))],
    )
    invoice = Invoice(
        id="INV-1",
        supplier_id="SUP-1",
        purchase_order_id="PO-1",
        grn_id="GRN-1",
        items=[LineItem(item_id="towels", quantity=Decimal(invoiced_qty), unit_price=Decimal("10"))],
    )
    return ThreeWayMatcher().match(invoice, [po], [grn], matched_by="u-clerk")


class TestApprove:
    def test_approve_with_variance(self) -> None:
        result = _make_result()
        approved = approve(result, "u-fm", actor_name="Finance Manager", notes="Extra towels accepted")

        assert approved.match_status == MatchStatus.APPROVED_WITH_VARIANCE
        assert approved.approved_by == "u-fm"
        assert approved.approved_at is not None
        assert approved.notes == "Extra towels accepted"
        assert approved.is_terminal

        entry = approved.audit_trail[-1]
        assert entry.action == AuditAction.APPROVED
        assert entry.performed_by == "u-fm"
        assert entry.performed_by_name == "Finance Manager"
        assert entry.details == "Extra towels accepted"

    def test_original_untouched(self) -> None:
        result = _make_result()
        approved = approve(result, "u-fm")

        assert result.match_status == MatchStatus.PARTIALLY_MATCHED
        assert result.approved_by is None
        assert len(result.audit_trail) == 1
        assert len(approved.audit_trail) == 2
        assert approved.id == result.id

    def test_default_details(self) -> None:
        approved = approve(_make_result(), "u-fm")
        assert approved.audit_trail[-1].details == "Approved with variance"

    def test_cannot_approve_twice(self) -> None:
        approved = approve(_make_result(), "u-fm")
        with pytest.raises(InvalidTransitionError):
            approve(approved, "u-cfo")


class TestReject:
    def test_reject(self) -> None:
        rejected = reject(_make_result(), "u-fm", "Quantity not delivered", actor_name="Finance Manager")

        assert rejected.match_status == MatchStatus.REJECTED
        assert rejected.rejected_by == "u-fm"
        assert rejected.rejected_at is not None
        assert rejected.rejection_reason == "Quantity not delivered"
        assert rejected.audit_trail[-1].action == AuditAction.REJECTED
        assert rejected.audit_trail[-1].details == "Quantity not delivered"

    def test_blank_reason_uses_one_default(self) -> None:
        rejected = reject(_make_result(), "u-fm", "")

        assert rejected.rejection_reason == "Rejected due to variance"
        assert rejected.audit_trail[-1].details == rejected.rejection_reason

    def test_cannot_approve_rejected(self) -> None:
        rejected = reject(_make_result(), "u-fm", "Wrong supplier")
        with pytest.raises(InvalidTransitionError):
            approve(rejected, "u-fm")

    def test_cannot_reject_approved(self) -> None:
        approved = approve(_make_result(), "u-fm")
        with pytest.raises(InvalidTransitionError):
            reject(approved, "u-fm", "Changed my mind")

    def test_clean_match_can_still_be_rejected(self) -> None:
        result = _make_result(invoiced_qty="10")
        assert result.match_status == MatchStatus.FULLY_MATCHED
        assert reject(result, "u-fm", "Duplicate invoice").match_status == MatchStatus.REJECTED


class TestMatcherDelegation:
    def test_matcher_approve_and_reject(self) -> None:
        matcher = ThreeWayMatcher()
        result = _make_result()

        assert matcher.approve(result, "u-fm").match_status == MatchStatus.APPROVED_WITH_VARIANCE
        assert matcher.reject(result, "u-fm", "Short delivery").rejection_reason == "Short delivery"
