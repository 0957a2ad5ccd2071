"""
Procurement document models — purchase orders, goods received notes, invoices.

These are the read-only inputs of the matcher. Every document carries a list
of line items keyed by the inventory ``item_id`` shared across all three
document types.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, model_validator

ZERO = Decimal("0")


class PurchaseOrderStatus(str, Enum):
    """Lifecycle of a purchase order (driven outside the matcher)."""

    DRAFT = "draft"
    ORDERED = "ordered"
    PARTIALLY_RECEIVED = "partially-received"
    RECEIVED = "received"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class LineItem(BaseModel):
    """A line on a PO, GRN or invoice.

    ``line_total`` defaults to ``quantity * unit_price``. A supplied total is
    kept as-is, so small rounding drift from the source document survives.
    """

    id: str = ""
    item_id: str = Field(description="Inventory item identifier shared across documents")
    name: str = ""
    quantity: Decimal
    unit_price: Decimal
    line_total: Decimal | None = None
    unit: str = "each"

    @model_validator(mode="after")
    def fill_line_total(self) -> LineItem:
        if self.line_total is None:
            self.line_total = self.quantity * self.unit_price
        if not self.id:
            self.id = self.item_id
        return self


class ReceivedLineItem(LineItem):
    """A GRN line: what physically arrived against an ordered line."""

    received_quantity: Decimal | None = None
    damaged_quantity: Decimal = ZERO
    batch_number: str | None = None
    expiry_date: date | None = None
    quality_status: str | None = None  # passed, failed, pending, ...

    @model_validator(mode="after")
    def fill_received_quantity(self) -> ReceivedLineItem:
        if self.received_quantity is None:
            self.received_quantity = self.quantity
        return self

    @property
    def accepted_quantity(self) -> Decimal:
        """Received quantity net of damaged units."""
        return self.received_quantity - self.damaged_quantity


def _sum_lines(items: list[LineItem]) -> Decimal:
    return sum((item.line_total for item in items), ZERO)


class PurchaseOrder(BaseModel):
    """A commitment to buy items from a supplier."""

    id: str
    po_number: str | None = None
    supplier_id: str
    supplier_name: str | None = None
    items: list[LineItem] = Field(default_factory=list)
    total: Decimal | None = None
    currency: str = "USD"
    status: PurchaseOrderStatus = PurchaseOrderStatus.ORDERED
    created_at: datetime | None = None

    @model_validator(mode="after")
    def fill_total(self) -> PurchaseOrder:
        if self.total is None:
            self.total = _sum_lines(self.items)
        return self

    @property
    def item_count(self) -> int:
        return len(self.items)


class GoodsReceivedNote(BaseModel):
    """Record of goods physically received against a purchase order."""

    id: str
    purchase_order_id: str | None = None
    items: list[ReceivedLineItem] = Field(default_factory=list)
    received_at: datetime | None = None
    received_by: str | None = None

    @property
    def total_received(self) -> Decimal:
        """Value of received goods at the GRN's unit prices."""
        return sum(
            (item.received_quantity * item.unit_price for item in self.items),
            ZERO,
        )


class Invoice(BaseModel):
    """A supplier invoice, optionally linked to a PO and/or GRN."""

    id: str
    invoice_number: str | None = None
    supplier_id: str
    supplier_name: str | None = None
    purchase_order_id: str | None = None
    grn_id: str | None = None
    items: list[LineItem] = Field(default_factory=list)
    total: Decimal | None = None
    currency: str = "USD"
    invoice_date: date | None = None
    due_date: date | None = None

    @model_validator(mode="after")
    def fill_total(self) -> Invoice:
        if self.total is None:
            self.total = _sum_lines(self.items)
        return self

    @property
    def subtotal(self) -> Decimal:
        """Sum of line totals (excludes tax and shipping folded into ``total``)."""
        return _sum_lines(self.items)

    @property
    def display_number(self) -> str:
        return self.invoice_number or self.id


class Supplier(BaseModel):
    """A supplier as known to the document store."""

    id: str
    name: str
    email: str | None = None
