"""Tests for the procurematch CLI."""

import json
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from procurematch import __version__
from procurematch.cli import app

runner = CliRunner()


@pytest.fixture
def documents(tmp_path: Path) -> Path:
    data = {
        "purchase_orders": [
            {
                "id": "PO-1",
                "supplier_id": "SUP-1",
                "items": [{"item_id": "towels", "name": "Bath towel", "quantity": 10, "unit_price": "10"}],
            }
        ],
        "grns": [
            {
                "id": "GRN-1",
                "purchase_order_id": "PO-1",
                "items": [{"item_id": "towels", "name": "Bath towel", "quantity": 10, "unit_price": "10"}],
            }
        ],
        "invoices": [
            {
                "id": "INV-1",
                "supplier_id": "SUP-1",
                "purchase_order_id": "PO-1",
                "grn_id": "GRN-1",
                "items": [{"item_id": "towels", "name": "Bath towel", "quantity": 10, "unit_price": "10"}],
            },
            {
                "id": "INV-2",
                "supplier_id": "SUP-1",
                "purchase_order_id": "PO-1",
                "grn_id": "GRN-1",
                "items": [{"item_id": "towels", "name": "Bath towel", "quantity": 12, "unit_price": "10"}],
            },
        ],
    }
    path = tmp_path / "documents.yaml"
    path.write_text(yaml.dump(data))
    return path


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PROCUREMATCH_MODE", raising=False)
    monkeypatch.delenv("PROCUREMATCH_TOTAL_TOLERANCE", raising=False)
    monkeypatch.delenv("PROCUREMATCH_BASE_CURRENCY", raising=False)


class TestCli:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_match(self, documents: Path) -> None:
        result = runner.invoke(app, ["match", "INV-1", "--documents", str(documents)])
        assert result.exit_code == 0, result.output
        assert "fully-matched" in result.output
        assert "Auto-Approve" in result.output

    def test_match_with_variance(self, documents: Path) -> None:
        result = runner.invoke(app, ["match", "INV-2", "-d", str(documents)])
        assert result.exit_code == 0, result.output
        assert "partially-matched" in result.output
        assert "Create Dispute" in result.output

    def test_match_saves_json(self, documents: Path, tmp_path: Path) -> None:
        output = tmp_path / "match.json"
        result = runner.invoke(app, ["match", "INV-2", "-d", str(documents), "-o", str(output)])
        assert result.exit_code == 0, result.output
        data = json.loads(output.read_text())
        assert data["invoice_id"] == "INV-2"
        assert data["matched_by"] == "cli"

    def test_match_converts_with_configured_rates(self, tmp_path: Path) -> None:
        line = {"item_id": "towels", "name": "Bath towel", "quantity": 10}
        data = {
            "purchase_orders": [
                {"id": "PO-1", "supplier_id": "SUP-1", "currency": "USD", "items": [{**line, "unit_price": "5.50"}]}
            ],
            "grns": [{"id": "GRN-1", "purchase_order_id": "PO-1", "items": [{**line, "unit_price": "5.50"}]}],
            "invoices": [
                {
                    "id": "INV-EUR",
                    "supplier_id": "SUP-1",
                    "purchase_order_id": "PO-1",
                    "grn_id": "GRN-1",
                    "currency": "EUR",
                    "items": [{**line, "unit_price": "5.00"}],
                }
            ],
        }
        documents = tmp_path / "documents.yaml"
        documents.write_text(yaml.dump(data))
        config = tmp_path / "procurematch.yaml"
        config.write_text(yaml.dump({"exchange_rates": [{"from_currency": "EUR", "to_currency": "USD", "rate": "1.10"}]}))
        output = tmp_path / "match.json"

        result = runner.invoke(
            app, ["match", "INV-EUR", "-d", str(documents), "-c", str(config), "-o", str(output)]
        )

        assert result.exit_code == 0, result.output
        assert "fully-matched" in result.output
        saved = json.loads(output.read_text())
        assert saved["currency"] == "USD"
        assert saved["exchange_rate"] == "1.10"

    def test_match_saves_markdown(self, documents: Path, tmp_path: Path) -> None:
        output = tmp_path / "match.md"
        result = runner.invoke(app, ["match", "INV-1", "-d", str(documents), "-o", str(output)])
        assert result.exit_code == 0, result.output
        assert "Invoice Matching" in output.read_text()

    def test_two_document_mode(self, documents: Path) -> None:
        result = runner.invoke(app, ["match", "INV-1", "-d", str(documents), "--mode", "two-document"])
        assert result.exit_code == 0, result.output
        assert "two-document" in result.output

    def test_unknown_invoice(self, documents: Path) -> None:
        result = runner.invoke(app, ["match", "INV-404", "-d", str(documents)])
        assert result.exit_code == 1
        assert "INV-404" in result.output

    def test_missing_documents_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["match", "INV-1", "-d", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_invalid_mode(self, documents: Path) -> None:
        result = runner.invoke(app, ["match", "INV-1", "-d", str(documents), "--mode", "four-way"])
        assert result.exit_code == 1
        assert "four-way" in result.output

    def test_batch(self, documents: Path) -> None:
        result = runner.invoke(app, ["batch", "--documents", str(documents)])
        assert result.exit_code == 0, result.output
        assert "Invoice Matches" in result.output
        assert "INV-1" in result.output
        assert "INV-2" in result.output
        assert "1 auto-approved" in result.output
