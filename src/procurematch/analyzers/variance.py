"""
Variance calculation — per-field deltas between invoice, PO and GRN lines.

For each invoice line the reference quantity is the GRN received quantity
when the item was received, else the PO ordered quantity. The reference
price is the PO unit price (the GRN's when no PO line exists). Percentages
are signed and relative to the reference value; a zero reference yields
±100% when the variance is nonzero and 0% otherwise.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import TypeVar

from procurematch.analyzers.tolerance import ToleranceClassifier
from procurematch.config import VARIANCE_EPSILON_PCT
from procurematch.models.documents import ZERO, LineItem, ReceivedLineItem
from procurematch.models.matching import MatchingVariance, VarianceField, VarianceSeverity

logger = logging.getLogger("procurematch.analyzers.variance")

L = TypeVar("L", bound=LineItem)


def variance_percentage(variance: Decimal, reference: Decimal) -> float:
    """Signed percentage of ``variance`` relative to ``reference``."""
    if reference == 0:
        if variance == 0:
            return 0.0
        return 100.0 if variance > 0 else -100.0
    return float(variance / abs(reference) * 100)


def index_by_item(lines: Iterable[L]) -> dict[str, L]:
    """Index lines by item_id, merging repeated items into a single line."""
    index: dict[str, L] = {}
    for line in lines:
        existing = index.get(line.item_id)
        index[line.item_id] = line if existing is None else _merge_lines(existing, line)
    return index


def _merge_lines(first: L, second: L) -> L:
    update = {
        "quantity": first.quantity + second.quantity,
        "line_total": first.line_total + second.line_total,
    }
    if isinstance(first, ReceivedLineItem) and isinstance(second, ReceivedLineItem):
        update["received_quantity"] = first.received_quantity + second.received_quantity
        update["damaged_quantity"] = first.damaged_quantity + second.damaged_quantity
    return first.model_copy(update=update)


@dataclass
class LineVariance:
    """Quantity, price and total variance of one invoice line with a reference."""

    invoice_line: LineItem
    reference_quantity: Decimal
    reference_price: Decimal
    quantity: MatchingVariance
    price: MatchingVariance
    total: MatchingVariance

    @property
    def fields(self) -> tuple[MatchingVariance, MatchingVariance, MatchingVariance]:
        return self.quantity, self.price, self.total

    @property
    def is_matched(self) -> bool:
        """A line matches only if every field is within tolerance."""
        return all(v.is_within_tolerance for v in self.fields)

    @property
    def expected_total(self) -> Decimal:
        return self.reference_quantity * self.reference_price


class VarianceCalculator:
    """Computes MatchingVariance records for invoice lines.

    Usage::

        calc = VarianceCalculator(ToleranceClassifier())
        line = calc.compare_line(invoice_line, po_line=po_line, grn_line=grn_line)
        records = calc.emitted(line)
    """

    def __init__(
        self,
        classifier: ToleranceClassifier | None = None,
        epsilon_pct: float = VARIANCE_EPSILON_PCT,
        deduct_damaged: bool = False,
    ) -> None:
        self.classifier = classifier or ToleranceClassifier()
        self.epsilon_pct = epsilon_pct
        self.deduct_damaged = deduct_damaged

    def received_quantity(self, grn_line: ReceivedLineItem) -> Decimal:
        if self.deduct_damaged:
            return grn_line.accepted_quantity
        return grn_line.received_quantity

    def reference_quantity(
        self,
        po_line: LineItem | None,
        grn_line: ReceivedLineItem | None,
    ) -> Decimal:
        if grn_line is not None:
            return self.received_quantity(grn_line)
        if po_line is not None:
            return po_line.quantity
        raise ValueError("a PO or GRN line is required to compute a reference quantity")

    def compare_line(
        self,
        invoice_line: LineItem,
        po_line: LineItem | None = None,
        grn_line: ReceivedLineItem | None = None,
    ) -> LineVariance:
        """Compute all three field variances for an invoice line.

        At least one of ``po_line`` / ``grn_line`` must be given; invoice
        lines with neither are additional items, see ``additional_variance``.
        """
        ref_qty = self.reference_quantity(po_line, grn_line)
        ref_price = po_line.unit_price if po_line is not None else grn_line.unit_price
        grn_qty = self.received_quantity(grn_line) if grn_line is not None else None
        compared_to = "received" if grn_line is not None else "ordered"

        qty_var = invoice_line.quantity - ref_qty
        quantity = self._build(
            invoice_line,
            VarianceField.QUANTITY,
            variance=qty_var,
            reference=ref_qty,
            po_value=po_line.quantity if po_line is not None else None,
            grn_value=grn_qty,
            invoice_value=invoice_line.quantity,
            above=f"Invoice quantity exceeds {compared_to} quantity",
            below=f"Invoice quantity is less than {compared_to} quantity",
        )

        price_var = invoice_line.unit_price - ref_price
        price = self._build(
            invoice_line,
            VarianceField.PRICE,
            variance=price_var,
            reference=ref_price,
            po_value=ref_price if po_line is not None else None,
            grn_value=grn_line.unit_price if grn_line is not None else None,
            invoice_value=invoice_line.unit_price,
            above="Invoice price is higher than PO price - verify with supplier",
            below="Invoice price is lower than PO price",
        )

        expected = ref_qty * ref_price
        total_var = invoice_line.line_total - expected
        total = self._build(
            invoice_line,
            VarianceField.TOTAL,
            variance=total_var,
            reference=expected,
            po_value=po_line.line_total if po_line is not None else None,
            grn_value=(grn_qty * ref_price) if grn_qty is not None else None,
            invoice_value=invoice_line.line_total,
            above="Invoice line total exceeds expected amount",
            below="Invoice line total is below expected amount",
        )

        logger.debug(
            "Line %s: qty %s%% price %s%% total %s%%",
            invoice_line.item_id,
            round(quantity.variance_percentage, 2),
            round(price.variance_percentage, 2),
            round(total.variance_percentage, 2),
        )
        return LineVariance(
            invoice_line=invoice_line,
            reference_quantity=ref_qty,
            reference_price=ref_price,
            quantity=quantity,
            price=price,
            total=total,
        )

    def _build(
        self,
        invoice_line: LineItem,
        field: VarianceField,
        *,
        variance: Decimal,
        reference: Decimal,
        po_value: Decimal | None,
        grn_value: Decimal | None,
        invoice_value: Decimal,
        above: str,
        below: str,
    ) -> MatchingVariance:
        pct = variance_percentage(variance, reference)
        verdict = self.classifier.classify(pct, field)
        if verdict.is_within_tolerance:
            suggestion = "Within tolerance"
        else:
            suggestion = above if variance > 0 else below
        return MatchingVariance(
            item_id=invoice_line.item_id,
            item_name=invoice_line.name,
            field=field,
            po_value=po_value,
            grn_value=grn_value,
            invoice_value=invoice_value,
            variance=variance,
            variance_percentage=pct,
            is_within_tolerance=verdict.is_within_tolerance,
            requires_action=verdict.requires_action,
            severity=verdict.severity,
            suggested_action=suggestion,
        )

    def emitted(self, line: LineVariance) -> list[MatchingVariance]:
        """Field variances worth reporting; exact matches produce none."""
        return [v for v in line.fields if abs(v.variance_percentage) > self.epsilon_pct]

    def additional_variance(self, invoice_line: LineItem) -> MatchingVariance:
        """Variance for an invoiced item absent from both PO and GRN."""
        return MatchingVariance(
            item_id=invoice_line.item_id,
            item_name=invoice_line.name,
            field=VarianceField.TOTAL,
            invoice_value=invoice_line.line_total,
            variance=invoice_line.line_total,
            variance_percentage=100.0,
            is_within_tolerance=False,
            requires_action=True,
            severity=VarianceSeverity.CRITICAL,
            suggested_action="Item not found in PO or GRN - verify or create dispute",
        )

    def missing_variance(self, reference_line: LineItem, from_grn: bool = False) -> MatchingVariance:
        """Variance for an ordered (or received) item that was never invoiced."""
        source = "GRN" if from_grn else "PO"
        if from_grn and isinstance(reference_line, ReceivedLineItem):
            amount = self.received_quantity(reference_line) * reference_line.unit_price
        else:
            amount = reference_line.line_total
        return MatchingVariance(
            item_id=reference_line.item_id,
            item_name=reference_line.name,
            field=VarianceField.TOTAL,
            po_value=None if from_grn else amount,
            grn_value=amount if from_grn else ZERO,
            invoice_value=ZERO,
            variance=-amount,
            variance_percentage=-100.0,
            is_within_tolerance=False,
            requires_action=True,
            severity=VarianceSeverity.CRITICAL,
            suggested_action=f"Item in {source} but missing from invoice",
        )
