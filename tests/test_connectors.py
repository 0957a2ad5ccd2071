"""Tests for document store connectors."""

import json
from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from procurematch.connectors import BaseDocumentStore, FileDocumentStore, InMemoryDocumentStore
from procurematch.exceptions import DocumentNotFoundError
from procurematch.models.documents import GoodsReceivedNote, Invoice, PurchaseOrder, Supplier


def _documents() -> dict:
    return {
        "purchase_orders": [
            {
                "id": "PO-1",
                "supplier_id": "SUP-1",
                "items": [{"item_id": "towels", "name": "Bath towel", "quantity": 10, "unit_price": "5.00"}],
            }
        ],
        "grns": [
            {
                "id": "GRN-1",
                "purchase_order_id": "PO-1",
                "items": [
                    {"item_id": "towels", "quantity": 10, "unit_price": "5.00", "received_quantity": 9},
                ],
            }
        ],
        "invoices": [
            {
                "id": "INV-1",
                "supplier_id": "SUP-1",
                "purchase_order_id": "PO-1",
                "grn_id": "GRN-1",
                "items": [{"item_id": "towels", "quantity": 9, "unit_price": "5.00"}],
            }
        ],
        "suppliers": [{"id": "SUP-1", "name": "Linen Supply Co"}],
    }


class TestInMemoryDocumentStore:
    def test_from_dict(self) -> None:
        store = InMemoryDocumentStore.from_dict(_documents())
        assert store.find_purchase_order("PO-1").total == Decimal("50")
        assert store.find_grn("GRN-1").items[0].received_quantity == Decimal("9")
        assert store.find_supplier("SUP-1").name == "Linen Supply Co"
        assert store.get_invoice("INV-1").total == Decimal("45")

    def test_lookups(self) -> None:
        store = InMemoryDocumentStore.from_dict(_documents())
        assert store.find_purchase_order(None) is None
        assert store.find_grn("GRN-404") is None
        assert [g.id for g in store.grns_for_purchase_order("PO-1")] == ["GRN-1"]

    def test_unknown_invoice(self) -> None:
        store = InMemoryDocumentStore()
        with pytest.raises(DocumentNotFoundError, match="INV-404"):
            store.get_invoice("INV-404")

    def test_add_documents(self) -> None:
        store = InMemoryDocumentStore()
        store.add_purchase_order(PurchaseOrder(id="PO-2", supplier_id="SUP-1"))
        store.add_grn(GoodsReceivedNote(id="GRN-2", purchase_order_id="PO-2"))
        store.add_invoice(Invoice(id="INV-2", supplier_id="SUP-1"))
        store.add_supplier(Supplier(id="SUP-1", name="Linen Supply Co"))
        assert [po.id for po in store.list_purchase_orders()] == ["PO-2"]
        assert len(store.list_grns()) == 1
        assert len(store.list_invoices()) == 1
        assert len(store.list_suppliers()) == 1


class TestBaseDocumentStore:
    def test_default_lookups_use_list_methods(self) -> None:
        docs = InMemoryDocumentStore.from_dict(_documents())

        class ListOnlyStore(BaseDocumentStore):
            name = "list-only"

            def list_purchase_orders(self) -> list[PurchaseOrder]:
                return docs.list_purchase_orders()

            def list_grns(self) -> list[GoodsReceivedNote]:
                return docs.list_grns()

            def list_invoices(self) -> list[Invoice]:
                return docs.list_invoices()

            def list_suppliers(self) -> list[Supplier]:
                return docs.list_suppliers()

        store = ListOnlyStore()
        assert store.find_purchase_order("PO-1").id == "PO-1"
        assert store.find_grn("GRN-1").id == "GRN-1"
        assert store.find_supplier("SUP-1").id == "SUP-1"
        assert store.get_invoice("INV-1").id == "INV-1"
        with pytest.raises(DocumentNotFoundError):
            store.get_invoice("INV-404")


class TestFileDocumentStore:
    def test_load_json(self, tmp_path: Path) -> None:
        path = tmp_path / "documents.json"
        path.write_text(json.dumps(_documents()))

        store = FileDocumentStore.load(path)
        assert isinstance(store, FileDocumentStore)
        assert store.get_invoice("INV-1").purchase_order_id == "PO-1"

    def test_load_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "documents.yaml"
        path.write_text(yaml.dump(_documents()))

        store = FileDocumentStore.load(str(path))
        assert len(store.list_purchase_orders()) == 1
        assert len(store.list_suppliers()) == 1

    def test_load_csv(self, tmp_path: Path) -> None:
        path = tmp_path / "documents.csv"
        path.write_text(
            "document_type,document_id,supplier_id,purchase_order_id,grn_id,item_id,name,quantity,unit_price,received_quantity\n"
            "po,PO-1,SUP-1,,,towels,Bath towel,10,5.00,\n"
            "po,PO-1,SUP-1,,,soap,Soap bar,20,2.00,\n"
            "grn,GRN-1,,PO-1,,towels,Bath towel,10,5.00,8\n"
            "invoice,INV-1,SUP-1,PO-1,GRN-1,towels,Bath towel,8,5.00,\n"
        )

        store = FileDocumentStore.load(path)

        po = store.find_purchase_order("PO-1")
        assert [line.item_id for line in po.items] == ["towels", "soap"]
        assert po.total == Decimal("90.00")
        grn = store.find_grn("GRN-1")
        assert grn.purchase_order_id == "PO-1"
        assert grn.items[0].received_quantity == Decimal("8")
        invoice = store.get_invoice("INV-1")
        assert invoice.grn_id == "GRN-1"
        assert invoice.items[0].name == "Bath towel"

    def test_csv_missing_columns(self, tmp_path: Path) -> None:
        path = tmp_path / "documents.csv"
        path.write_text("document_type,document_id,item_id\npo,PO-1,towels\n")
        with pytest.raises(ValueError, match="quantity"):
            FileDocumentStore.load(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            FileDocumentStore.load(tmp_path / "nope.json")

    def test_unsupported_type(self, tmp_path: Path) -> None:
        path = tmp_path / "documents.txt"
        path.write_text("hello")
        with pytest.raises(ValueError, match="Unsupported"):
            FileDocumentStore.load(path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "documents.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(ValueError, match="mapping"):
            FileDocumentStore.load(path)
