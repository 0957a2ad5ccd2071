"""
File connectors — load procurement documents from JSON, YAML or CSV exports.

JSON/YAML files hold four top-level lists::

    purchase_orders: [...]
    grns: [...]
    invoices: [...]
    suppliers: [...]

CSV exports are flat, one row per line item, with a ``document_type``
(``po``, ``grn`` or ``invoice``) and ``document_id`` column grouping rows
into documents.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pandas as pd
import yaml

from procurematch.connectors.memory import InMemoryDocumentStore

logger = logging.getLogger("procurematch.connectors.file")

_DOCUMENT_KEYS = {
    "po": "purchase_orders",
    "purchase_order": "purchase_orders",
    "grn": "grns",
    "invoice": "invoices",
}

_LINE_COLUMNS = (
    "item_id", "name", "quantity", "unit_price", "line_total",
    "received_quantity", "damaged_quantity", "batch_number", "quality_status",
)
_HEADER_COLUMNS = (
    "supplier_id", "supplier_name", "purchase_order_id", "grn_id",
    "invoice_number", "po_number", "currency", "total", "received_by",
)


class FileDocumentStore(InMemoryDocumentStore):
    """Document store populated from a JSON, YAML or CSV file.

    Usage::

        store = FileDocumentStore.load("documents.yaml")
        invoice = store.get_invoice("INV-1001")
    """

    name = "file"

    @classmethod
    def load(cls, file_path: str | Path) -> FileDocumentStore:
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Document file not found: {file_path}")

        suffix = path.suffix.lower()
        if suffix == ".json":
            data = json.loads(path.read_text())
        elif suffix in (".yaml", ".yml"):
            data = yaml.safe_load(path.read_text()) or {}
        elif suffix == ".csv":
            data = _read_csv(path)
        else:
            raise ValueError(f"Unsupported document file type: {path.suffix}")

        if not isinstance(data, dict):
            raise ValueError(f"{path.name} must contain a mapping of document lists")

        store = cls.from_dict(data)

        logger.info(
            "Loaded %d purchase orders, %d GRNs, %d invoices from %s",
            len(store.purchase_orders),
            len(store.grns),
            len(store.invoices),
            path.name,
        )
        return store


def _cell(row: pd.Series, column: str) -> str | None:
    value = row.get(column)
    if value is None or value == "":
        return None
    return str(value).strip()


def _read_csv(path: Path) -> dict[str, Any]:
    """Group a flat line-item CSV into document dicts."""
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df.columns = df.columns.str.strip().str.lower()

    missing = {"document_type", "document_id", "item_id", "quantity", "unit_price"} - set(df.columns)
    if missing:
        raise ValueError(f"{path.name} is missing columns: {', '.join(sorted(missing))}")

    data: dict[str, Any] = {key: [] for key in ("purchase_orders", "grns", "invoices")}
    for (doc_type, doc_id), group in df.groupby(["document_type", "document_id"], sort=False):
        key = _DOCUMENT_KEYS.get(doc_type.strip().lower())
        if key is None:
            logger.warning("Skipping rows with unknown document_type %r", doc_type)
            continue

        header = group.iloc[0]
        document: dict[str, Any] = {"id": doc_id.strip()}
        for column in _HEADER_COLUMNS:
            value = _cell(header, column)
            if value is not None:
                document[column] = value

        document["items"] = [
            {c: _cell(row, c) for c in _LINE_COLUMNS if _cell(row, c) is not None}
            for _, row in group.iterrows()
        ]
        data[key].append(document)

    return data
