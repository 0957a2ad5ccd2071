"""
Three-Way Matching — reconcile invoices against purchase orders and GRNs.

Provides:
- Purchase order / GRN lookup for an invoice
- Per-line quantity, price and total variance detection
- Tolerance classification and overall match status
- Approval-level routing and recommended next actions
- Multi-currency normalisation of the invoice into the PO currency
- Batch matching and summary statistics over a document store

The matcher is pure: it never mutates the documents it reads and every call
returns a fresh result. An invoice whose PO and GRN cannot be located is a
normal ``not-matched`` outcome, not an error.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from procurematch.analyzers.aggregator import MatchAggregator, MatchTally
from procurematch.analyzers.currency import CurrencyConverter
from procurematch.analyzers.recommendations import RecommendationGenerator
from procurematch.analyzers.tolerance import ToleranceClassifier
from procurematch.analyzers.variance import VarianceCalculator, index_by_item
from procurematch.config import MatchingConfig
from procurematch.models.documents import GoodsReceivedNote, Invoice, PurchaseOrder
from procurematch.models.matching import (
    ApprovalLevel,
    AuditAction,
    InvoiceMatchingResult,
    MatchingAuditEntry,
    MatchStatus,
)

if TYPE_CHECKING:
    from procurematch.connectors.base import BaseDocumentStore

logger = logging.getLogger("procurematch.analyzers.three_way_matching")


class ThreeWayMatcher:
    """Three-way matching engine for supplier invoices.

    Usage::

        matcher = ThreeWayMatcher(MatchingConfig.for_mode("three-way"))
        result = matcher.match(invoice, purchase_orders, grns, matched_by="u-17")

        if result.requires_approval:
            result = matcher.approve(result, actor_id="u-02", actor_name="Finance Manager")

    The configuration is validated on construction; an invalid one raises
    ``ConfigurationError`` before any invoice is matched.
    """

    def __init__(
        self,
        config: MatchingConfig | dict[str, Any] | None = None,
        converter: CurrencyConverter | None = None,
    ) -> None:
        self.config = self._validate_config(config)
        self.converter = converter or self._build_converter(self.config)

        self.classifier = ToleranceClassifier(
            self.config.tolerance,
            critical_pct=self.config.critical_variance_pct,
        )
        self.calculator = VarianceCalculator(
            self.classifier,
            epsilon_pct=self.config.variance_epsilon_pct,
            deduct_damaged=self.config.deduct_damaged_quantity,
        )
        self.aggregator = MatchAggregator(self.config)
        self.recommender = RecommendationGenerator(self.config)

    @staticmethod
    def _validate_config(config: MatchingConfig | dict[str, Any] | None) -> MatchingConfig:
        if config is None:
            return MatchingConfig()
        if isinstance(config, MatchingConfig):
            # Re-validate: fields may have been assigned after construction
            return MatchingConfig.validated(config.model_dump())
        data = dict(config)
        mode = data.pop("mode", "three-way")
        return MatchingConfig.for_mode(mode, **data)

    @staticmethod
    def _build_converter(config: MatchingConfig) -> CurrencyConverter:
        """Converter over the configured base currency and exchange rates."""
        converter = CurrencyConverter(base_currency=config.base_currency)
        for entry in config.exchange_rates:
            converter.add_rate(
                entry.from_currency,
                entry.to_currency,
                entry.rate,
                valid_from=entry.valid_from,
                valid_to=entry.valid_to,
                source=entry.source,
            )
        return converter

    # ------------------------------------------------------------------
    # Document lookup
    # ------------------------------------------------------------------

    def locate_documents(
        self,
        invoice: Invoice,
        purchase_orders: Iterable[PurchaseOrder],
        grns: Iterable[GoodsReceivedNote],
    ) -> tuple[PurchaseOrder | None, list[GoodsReceivedNote]]:
        """Find the PO and GRN(s) an invoice should be matched against.

        The PO comes from the invoice's reference, or from the referenced
        GRN. Without a GRN reference, every GRN recorded against the PO is
        used (partial deliveries).
        """
        po_by_id = {po.id: po for po in purchase_orders}
        grn_list = list(grns)
        grn_by_id = {grn.id: grn for grn in grn_list}

        po = po_by_id.get(invoice.purchase_order_id) if invoice.purchase_order_id else None
        grn = grn_by_id.get(invoice.grn_id) if invoice.grn_id else None

        if po is None and grn is not None and grn.purchase_order_id:
            po = po_by_id.get(grn.purchase_order_id)

        if grn is not None:
            receipts = [grn]
        elif po is not None:
            receipts = [g for g in grn_list if g.purchase_order_id == po.id]
        else:
            receipts = []

        return po, receipts

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def match(
        self,
        invoice: Invoice,
        purchase_orders: Iterable[PurchaseOrder] = (),
        grns: Iterable[GoodsReceivedNote] = (),
        matched_by: str = "system",
        matched_by_name: str | None = None,
    ) -> InvoiceMatchingResult:
        """Perform a three-way match for an invoice.

        Returns:
            A new InvoiceMatchingResult with variances, status, approval
            routing and recommendations.
        """
        po, receipts = self.locate_documents(invoice, purchase_orders, grns)

        if po is None and (not receipts or self.config.require_purchase_order):
            return self._not_matched(invoice, matched_by, matched_by_name)

        exchange_rate: Decimal | None = Decimal(1)
        if po is not None:
            invoice, exchange_rate = self.converter.convert_invoice(invoice, po.currency)

        po_lines = index_by_item(po.items) if po is not None else {}
        grn_lines = index_by_item(line for grn in receipts for line in grn.items)

        tally = MatchTally()
        # Repeated items on the invoice are compared as one line, but every
        # original line is counted with that line's verdict
        invoiced = index_by_item(invoice.items)
        line_counts = Counter(line.item_id for line in invoice.items)

        for item_id, line in invoiced.items():
            po_line = po_lines.get(item_id)
            grn_line = grn_lines.get(item_id)

            if po_line is None and grn_line is None:
                logger.debug("Line %s is not on the PO or GRN", item_id)
                tally.record_additional(
                    self.calculator.additional_variance(line), lines=line_counts[item_id]
                )
                continue

            line_variance = self.calculator.compare_line(line, po_line=po_line, grn_line=grn_line)
            tally.record_line(
                line_variance, self.calculator.emitted(line_variance), lines=line_counts[item_id]
            )

        # Ordered (or, without a PO, received) items that were never invoiced
        reference_lines = po_lines if po is not None else grn_lines
        for item_id, reference_line in reference_lines.items():
            if item_id not in invoiced:
                tally.record_missing(
                    self.calculator.missing_variance(reference_line, from_grn=po is None)
                )

        outcome = self.aggregator.aggregate(
            tally,
            invoice_total=invoice.total,
            po_total=po.total if po is not None else None,
        )
        recommendations = self.recommender.generate(tally, outcome.variance_percentage)

        result = InvoiceMatchingResult(
            invoice_id=invoice.id,
            purchase_order_id=po.id if po is not None else None,
            grn_ids=[grn.id for grn in receipts],
            mode=self.config.mode,
            match_status=outcome.match_status,
            overall_variance=tally.overall_variance,
            variance_percentage=outcome.variance_percentage,
            tolerance_threshold=self.config.tolerance.total_pct,
            items_matched=tally.items_matched,
            items_mismatched=tally.items_mismatched,
            items_missing=tally.items_missing,
            items_additional=tally.items_additional,
            quantity_variances=tally.quantity_variances,
            price_variances=tally.price_variances,
            total_variances=tally.total_variances,
            recommendations=recommendations,
            requires_approval=outcome.requires_approval,
            approval_level=outcome.approval_level,
            currency=invoice.currency,
            exchange_rate=exchange_rate,
            matched_by=matched_by,
            audit_trail=[MatchingAuditEntry(
                action=AuditAction.CREATED,
                performed_by=matched_by,
                performed_by_name=matched_by_name,
                details=f"Three-way matching performed with {outcome.match_status.value} status",
            )],
        )

        logger.info(
            "Matched invoice %s: %s (%.2f%% variance, approval: %s)",
            invoice.display_number,
            result.match_status.value,
            result.variance_percentage,
            result.approval_level.value,
        )
        return result

    def _not_matched(
        self,
        invoice: Invoice,
        matched_by: str,
        matched_by_name: str | None,
    ) -> InvoiceMatchingResult:
        """Result for an invoice with no locatable PO or GRN."""
        logger.info(
            "Invoice %s has no matching PO or GRN (po=%s, grn=%s)",
            invoice.display_number,
            invoice.purchase_order_id,
            invoice.grn_id,
        )
        line_count = len(invoice.items)
        return InvoiceMatchingResult(
            invoice_id=invoice.id,
            mode=self.config.mode,
            match_status=MatchStatus.NOT_MATCHED,
            overall_variance=invoice.total,
            variance_percentage=100.0,
            tolerance_threshold=self.config.tolerance.total_pct,
            items_matched=0,
            items_mismatched=line_count,
            items_additional=line_count,
            recommendations=self.recommender.not_matched(),
            requires_approval=True,
            approval_level=self.config.highest_approval_level,
            currency=invoice.currency,
            exchange_rate=None,
            matched_by=matched_by,
            audit_trail=[MatchingAuditEntry(
                action=AuditAction.CREATED,
                performed_by=matched_by,
                performed_by_name=matched_by_name,
                details="No PO or GRN found",
            )],
        )

    # ------------------------------------------------------------------
    # Operator decisions
    # ------------------------------------------------------------------

    def approve(
        self,
        result: InvoiceMatchingResult,
        actor_id: str,
        actor_name: str | None = None,
        notes: str | None = None,
    ) -> InvoiceMatchingResult:
        """Approve a match with its variances. See execution.approval.approve."""
        from procurematch.execution.approval import approve

        return approve(result, actor_id, actor_name=actor_name, notes=notes)

    def reject(
        self,
        result: InvoiceMatchingResult,
        actor_id: str,
        reason: str,
        actor_name: str | None = None,
    ) -> InvoiceMatchingResult:
        """Reject a match. See execution.approval.reject."""
        from procurematch.execution.approval import reject

        return reject(result, actor_id, reason, actor_name=actor_name)

    # ------------------------------------------------------------------
    # Document store helpers
    # ------------------------------------------------------------------

    def match_from_store(
        self,
        invoice_id: str,
        store: BaseDocumentStore,
        matched_by: str = "system",
    ) -> InvoiceMatchingResult:
        """Match one invoice held in a document store.

        Raises:
            DocumentNotFoundError: if the store has no such invoice.
        """
        invoice = store.get_invoice(invoice_id)
        return self.match(
            invoice,
            store.list_purchase_orders(),
            store.list_grns(),
            matched_by=matched_by,
        )

    def match_all(
        self,
        store: BaseDocumentStore,
        matched_by: str = "system",
    ) -> list[InvoiceMatchingResult]:
        """Match every invoice in a document store."""
        purchase_orders = store.list_purchase_orders()
        grns = store.list_grns()
        return [
            self.match(invoice, purchase_orders, grns, matched_by=matched_by)
            for invoice in store.list_invoices()
        ]


def summarize(results: Sequence[InvoiceMatchingResult]) -> dict[str, Any]:
    """Get summary of matching activity."""
    total = len(results)
    if total == 0:
        return {
            "total_matches": 0,
            "by_status": {},
            "by_approval_level": {},
            "auto_approved": 0,
            "requiring_approval": 0,
            "total_variance": 0.0,
            "match_rate": 0.0,
        }

    statuses: dict[str, int] = {}
    levels: dict[str, int] = {}
    for result in results:
        statuses[result.match_status.value] = statuses.get(result.match_status.value, 0) + 1
        levels[result.approval_level.value] = levels.get(result.approval_level.value, 0) + 1

    total_variance = sum((r.overall_variance for r in results), Decimal("0"))
    fully_matched = statuses.get(MatchStatus.FULLY_MATCHED.value, 0)

    return {
        "total_matches": total,
        "by_status": statuses,
        "by_approval_level": levels,
        "auto_approved": levels.get(ApprovalLevel.AUTO_APPROVE.value, 0),
        "requiring_approval": len([r for r in results if r.requires_approval]),
        "total_variance": float(total_variance),
        "match_rate": fully_matched / total * 100,
    }


def match_invoice(
    invoice: Invoice,
    purchase_orders: Iterable[PurchaseOrder] = (),
    grns: Iterable[GoodsReceivedNote] = (),
    config: MatchingConfig | None = None,
    matched_by: str = "system",
) -> InvoiceMatchingResult:
    """Quick one-shot match with a default or given configuration."""
    return ThreeWayMatcher(config).match(invoice, purchase_orders, grns, matched_by=matched_by)
