"""
In-memory document store.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from procurematch.connectors.base import BaseDocumentStore
from procurematch.exceptions import DocumentNotFoundError
from procurematch.models.documents import GoodsReceivedNote, Invoice, PurchaseOrder, Supplier


class InMemoryDocumentStore(BaseDocumentStore):
    """Documents held in dicts keyed by id, in insertion order.

    Usage::

        store = InMemoryDocumentStore()
        store.add_purchase_order(po)
        store.add_grn(grn)
        store.add_invoice(invoice)
    """

    name = "memory"

    def __init__(
        self,
        purchase_orders: Iterable[PurchaseOrder] = (),
        grns: Iterable[GoodsReceivedNote] = (),
        invoices: Iterable[Invoice] = (),
        suppliers: Iterable[Supplier] = (),
    ) -> None:
        self.purchase_orders: dict[str, PurchaseOrder] = {}
        self.grns: dict[str, GoodsReceivedNote] = {}
        self.invoices: dict[str, Invoice] = {}
        self.suppliers: dict[str, Supplier] = {}

        for po in purchase_orders:
            self.add_purchase_order(po)
        for grn in grns:
            self.add_grn(grn)
        for invoice in invoices:
            self.add_invoice(invoice)
        for supplier in suppliers:
            self.add_supplier(supplier)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InMemoryDocumentStore:
        """Build a store from raw ``purchase_orders``/``grns``/``invoices``/``suppliers`` lists."""
        return cls(
            purchase_orders=[PurchaseOrder.model_validate(r) for r in data.get("purchase_orders") or []],
            grns=[GoodsReceivedNote.model_validate(r) for r in data.get("grns") or []],
            invoices=[Invoice.model_validate(r) for r in data.get("invoices") or []],
            suppliers=[Supplier.model_validate(r) for r in data.get("suppliers") or []],
        )

    def add_purchase_order(self, po: PurchaseOrder) -> None:
        self.purchase_orders[po.id] = po

    def add_grn(self, grn: GoodsReceivedNote) -> None:
        self.grns[grn.id] = grn

    def add_invoice(self, invoice: Invoice) -> None:
        self.invoices[invoice.id] = invoice

    def add_supplier(self, supplier: Supplier) -> None:
        self.suppliers[supplier.id] = supplier

    def list_purchase_orders(self) -> list[PurchaseOrder]:
        return list(self.purchase_orders.values())

    def list_grns(self) -> list[GoodsReceivedNote]:
        return list(self.grns.values())

    def list_invoices(self) -> list[Invoice]:
        return list(self.invoices.values())

    def list_suppliers(self) -> list[Supplier]:
        return list(self.suppliers.values())

    def find_purchase_order(self, po_id: str | None) -> PurchaseOrder | None:
        return self.purchase_orders.get(po_id) if po_id else None

    def find_grn(self, grn_id: str | None) -> GoodsReceivedNote | None:
        return self.grns.get(grn_id) if grn_id else None

    def find_supplier(self, supplier_id: str | None) -> Supplier | None:
        return self.suppliers.get(supplier_id) if supplier_id else None

    def get_invoice(self, invoice_id: str) -> Invoice:
        try:
            return self.invoices[invoice_id]
        except KeyError:
            raise DocumentNotFoundError(f"Invoice not found: {invoice_id}") from None
