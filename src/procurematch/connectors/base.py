"""
Base document store — read access to procurement documents by id.

Stores are the bridge between the matcher and wherever the back office keeps
its purchase orders, GRNs, invoices and suppliers (a key-value store, a
database, a spreadsheet export). The matcher only ever reads from them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from procurematch.exceptions import DocumentNotFoundError
from procurematch.models.documents import GoodsReceivedNote, Invoice, PurchaseOrder, Supplier


class BaseDocumentStore(ABC):
    """Abstract base class for document stores.

    Subclasses implement the ``list_*`` methods; id lookups are derived
    from them and may be overridden with something faster.

    Example::

        class KVDocumentStore(BaseDocumentStore):
            name = "kv"

            def list_invoices(self) -> list[Invoice]:
                return [Invoice.model_validate(raw) for raw in kv.get("invoices", [])]
            ...
    """

    name: str = "base"

    @abstractmethod
    def list_purchase_orders(self) -> list[PurchaseOrder]: ...

    @abstractmethod
    def list_grns(self) -> list[GoodsReceivedNote]: ...

    @abstractmethod
    def list_invoices(self) -> list[Invoice]: ...

    @abstractmethod
    def list_suppliers(self) -> list[Supplier]: ...

    def find_purchase_order(self, po_id: str | None) -> PurchaseOrder | None:
        return next((po for po in self.list_purchase_orders() if po.id == po_id), None)

    def find_grn(self, grn_id: str | None) -> GoodsReceivedNote | None:
        return next((grn for grn in self.list_grns() if grn.id == grn_id), None)

    def find_supplier(self, supplier_id: str | None) -> Supplier | None:
        return next((s for s in self.list_suppliers() if s.id == supplier_id), None)

    def grns_for_purchase_order(self, po_id: str) -> list[GoodsReceivedNote]:
        return [grn for grn in self.list_grns() if grn.purchase_order_id == po_id]

    def get_invoice(self, invoice_id: str) -> Invoice:
        """Get an invoice by id.

        Raises:
            DocumentNotFoundError: if no invoice has this id.
        """
        for invoice in self.list_invoices():
            if invoice.id == invoice_id:
                return invoice
        raise DocumentNotFoundError(f"Invoice not found: {invoice_id}")
