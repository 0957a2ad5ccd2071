"""Tests for building and raising supplier disputes."""

from decimal import Decimal

from procurematch.analyzers.three_way_matching import ThreeWayMatcher
from procurematch.execution.disputes import (
    DisputeSink,
    InMemoryDisputeSink,
    build_dispute,
    raise_dispute,
)
from procurematch.models.documents import (
    GoodsReceivedNote,
    Invoice,
    LineItem,
    PurchaseOrder,
    ReceivedLineItem,
    Supplier,
)


def _make_documents(*invoice_lines: LineItem) -> tuple[Invoice, PurchaseOrder, GoodsReceivedNote]:
    po = PurchaseOrder(
        id="PO-1",
        supplier_id="SUP-1",
        items=[LineItem(item_id="towels", name="Bath towel", quantity=Decimal("10"), unit_price=Decimal("10"))],
    )
    grn = GoodsReceivedNote(
        id="GRN-1",
        purchase_order_id="PO-1",
        items=[ReceivedLineItem(item_id="towels", name="Bath towel", quantity=Decimal("10"), unit_price=Decimal("10"))],
    )
    invoice = Invoice(
        id="INV-1",
        invoice_number="INV-1001",
        supplier_id="SUP-1",
        supplier_name="Linen Supply Co",
        purchase_order_id="PO-1",
        grn_id="GRN-1",
        items=list(invoice_lines),
    )
    return invoice, po, grn


def _towels(qty: str) -> LineItem:
    return LineItem(item_id="towels", name="Bath towel", quantity=Decimal(qty), unit_price=Decimal("10"))


class TestBuildDispute:
    def test_dispute_from_quantity_variance(self) -> None:
        invoice, po, grn = _make_documents(_towels("12"))
        result = ThreeWayMatcher().match(invoice, [po], [grn])

        dispute = build_dispute(result, invoice, raised_by="u-fm")

        assert dispute.supplier_id == "SUP-1"
        assert dispute.supplier_name == "Linen Supply Co"
        assert dispute.purchase_order_id == "PO-1"
        assert dispute.grn_id == "GRN-1"
        assert dispute.matching_result_id == result.id
        assert dispute.title == "Invoice Mismatch - INV-1001"
        assert dispute.dispute_type == "invoice-mismatch"
        assert dispute.priority == "medium"
        assert dispute.disputed_amount == Decimal("20")
        assert dispute.claim_amount == Decimal("20")
        assert "16.67%" in dispute.description

        assert len(dispute.items) == 1
        item = dispute.items[0]
        assert item.item_id == "towels"
        assert item.ordered_quantity == Decimal("10")
        assert item.ordered_price is None
        assert item.disputed_amount == Decimal("20")
        assert "Expected: $100.00" in item.issue_description

    def test_high_priority_above_twenty_percent(self) -> None:
        minibar = LineItem(item_id="minibar", quantity=Decimal("4"), unit_price=Decimal("10"))
        invoice, po, grn = _make_documents(_towels("10"), minibar)
        result = ThreeWayMatcher().match(invoice, [po], [grn])

        dispute = build_dispute(result, invoice, raised_by="u-fm")

        assert result.variance_percentage > 20
        assert dispute.priority == "high"
        assert [i.item_id for i in dispute.items] == ["minibar"]

    def test_price_variance_within_total_tolerance(self) -> None:
        overpriced = LineItem(item_id="towels", name="Bath towel", quantity=Decimal("10"), unit_price=Decimal("10.40"))
        invoice, po, grn = _make_documents(overpriced)
        result = ThreeWayMatcher().match(invoice, [po], [grn])

        dispute = build_dispute(result, invoice, raised_by="u-fm")

        assert result.total_variances[0].is_within_tolerance
        assert len(dispute.items) == 1
        item = dispute.items[0]
        assert item.item_id == "towels"
        assert item.ordered_price == Decimal("10")
        assert item.invoiced_price == Decimal("10.40")
        assert item.disputed_amount == Decimal("4.00")
        assert item.issue_description.startswith("Variance: price - ")

    def test_supplier_record_name_preferred(self) -> None:
        invoice, po, grn = _make_documents(_towels("12"))
        result = ThreeWayMatcher().match(invoice, [po], [grn])
        supplier = Supplier(id="SUP-1", name="Linen Supply Company Ltd")

        dispute = build_dispute(result, invoice, raised_by="u-fm", supplier=supplier)

        assert dispute.supplier_name == "Linen Supply Company Ltd"


class TestRaiseDispute:
    def test_sink_receives_dispute(self) -> None:
        invoice, po, grn = _make_documents(_towels("12"))
        result = ThreeWayMatcher().match(invoice, [po], [grn])
        sink = InMemoryDisputeSink()

        dispute = raise_dispute(result, invoice, sink, raised_by="u-fm")

        assert isinstance(sink, DisputeSink)
        assert sink.disputes == [dispute]
        assert dispute.raised_by == "u-fm"
