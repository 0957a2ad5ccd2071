"""
Supplier disputes raised from matching results.

The matcher only recommends ``create-dispute``; acting on it is the caller's
job. ``build_dispute`` turns a result into a partial dispute record and
``raise_dispute`` hands it to whatever sink the application provides
(a procurement service, a key-value store, a ticket queue).
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

from procurematch.analyzers.currency import format_currency
from procurematch.models.documents import ZERO, Invoice, Supplier
from procurematch.models.matching import InvoiceMatchingResult, MatchingVariance, VarianceField

logger = logging.getLogger("procurematch.execution.disputes")

# Overall variance above which a dispute is raised with high priority
HIGH_PRIORITY_VARIANCE_PCT = 20.0


class DisputeItem(BaseModel):
    """One disputed invoice line."""

    item_id: str
    item_name: str
    issue_description: str
    ordered_quantity: Decimal | None = None
    ordered_price: Decimal | None = None
    invoiced_price: Decimal | None = None
    disputed_amount: Decimal


class DisputeRequest(BaseModel):
    """Partial supplier dispute record handed to a DisputeSink."""

    supplier_id: str
    supplier_name: str
    purchase_order_id: str | None = None
    grn_id: str | None = None
    invoice_id: str | None = None
    matching_result_id: str | None = None
    dispute_type: str = "invoice-mismatch"
    status: str = "open"
    priority: str = "medium"  # high, medium
    title: str
    description: str
    disputed_amount: Decimal
    claim_amount: Decimal
    items: list[DisputeItem] = Field(default_factory=list)
    raised_by: str
    raised_at: datetime = Field(default_factory=datetime.now)


@runtime_checkable
class DisputeSink(Protocol):
    """Anything that can accept a new supplier dispute."""

    def create_dispute(self, dispute: DisputeRequest) -> None: ...


class InMemoryDisputeSink:
    """Collects disputes in a list. Useful for tests and dry runs."""

    def __init__(self) -> None:
        self.disputes: list[DisputeRequest] = []

    def create_dispute(self, dispute: DisputeRequest) -> None:
        self.disputes.append(dispute)


def _dispute_items(result: InvoiceMatchingResult) -> list[DisputeItem]:
    by_item: dict[str, dict[VarianceField, MatchingVariance]] = {}
    for variance in result.all_variances:
        by_item.setdefault(variance.item_id, {})[variance.field] = variance

    items = []
    for item_id, fields in by_item.items():
        flagged = [v for v in fields.values() if v.requires_action]
        if not flagged:
            continue
        qty = fields.get(VarianceField.QUANTITY)
        price = fields.get(VarianceField.PRICE)
        total = fields.get(VarianceField.TOTAL)
        reference = total or flagged[0]
        expected = reference.grn_value if reference.grn_value is not None else reference.po_value
        if reference.field == VarianceField.QUANTITY:
            expected_text, actual_text = str(expected or 0), str(reference.invoice_value)
        else:
            expected_text = format_currency(expected or 0, result.currency)
            actual_text = format_currency(reference.invoice_value, result.currency)
        items.append(DisputeItem(
            item_id=item_id,
            item_name=reference.item_name,
            issue_description=(
                f"Variance: {', '.join(v.field.value for v in flagged)} - "
                f"Expected: {expected_text}, Actual: {actual_text}"
            ),
            ordered_quantity=qty.po_value if qty else None,
            ordered_price=price.po_value if price else None,
            invoiced_price=price.invoice_value if price else None,
            disputed_amount=total.variance if total else ZERO,
        ))
    return items


def build_dispute(
    result: InvoiceMatchingResult,
    invoice: Invoice,
    raised_by: str,
    supplier: Supplier | None = None,
) -> DisputeRequest:
    """Build an invoice-mismatch dispute from a matching result."""
    supplier_name = (supplier.name if supplier else None) or invoice.supplier_name or "Unknown"
    priority = "high" if result.variance_percentage > HIGH_PRIORITY_VARIANCE_PCT else "medium"

    return DisputeRequest(
        supplier_id=invoice.supplier_id,
        supplier_name=supplier_name,
        purchase_order_id=result.purchase_order_id or invoice.purchase_order_id,
        grn_id=result.grn_ids[0] if result.grn_ids else invoice.grn_id,
        invoice_id=invoice.id,
        matching_result_id=result.id,
        priority=priority,
        title=f"Invoice Mismatch - {invoice.display_number}",
        description=(
            f"Three-way matching detected {result.variance_percentage:.2f}% variance "
            f"({format_currency(result.overall_variance, result.currency)})"
        ),
        disputed_amount=result.overall_variance,
        claim_amount=result.overall_variance,
        items=_dispute_items(result),
        raised_by=raised_by,
    )


def raise_dispute(
    result: InvoiceMatchingResult,
    invoice: Invoice,
    sink: DisputeSink,
    raised_by: str,
    supplier: Supplier | None = None,
) -> DisputeRequest:
    """Build a dispute and hand it to the sink."""
    dispute = build_dispute(result, invoice, raised_by, supplier=supplier)
    sink.create_dispute(dispute)
    logger.info(
        "Raised %s priority dispute for invoice %s (%s)",
        dispute.priority,
        invoice.display_number,
        format_currency(dispute.claim_amount, result.currency),
    )
    return dispute
