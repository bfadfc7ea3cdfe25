"""Tests for the monthly tax report command line script."""

import importlib.util
import json
from pathlib import Path

import pytest

SCRIPT = Path(__file__).parent.parent / "scripts" / "monthly_tax_report.py"


@pytest.fixture
def script():
    spec = importlib.util.spec_from_file_location("monthly_tax_report", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def ledger(tmp_path):
    path = tmp_path / "ledger.json"
    path.write_text(json.dumps({"holdings": [
        {
            "id": "petr4",
            "name": "Petrobras PN",
            "ticker": "PETR4",
            "assetClass": "stock",
            "operations": [
                {"id": "p1", "type": "buy", "date": "2024-01-05", "quantity": 1000, "price": 20},
                {"id": "p2", "type": "sell", "date": "2024-03-12", "quantity": 1000, "price": 25},
            ],
        },
    ]}), encoding="utf-8")
    return path


def test_report_with_exports(script, ledger, tmp_path, capsys):
    json_out = tmp_path / "out" / "2024-03.json"
    csv_out = tmp_path / "out" / "2024-03.csv"

    exit_code = script.main([
        "--ledger", str(ledger),
        "--month", "2024-03",
        "--json-out", str(json_out),
        "--csv-out", str(csv_out),
        "--validate",
    ])

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "IR Renda Variável - 2024-03" in output
    assert "codes: 6015" in output
    assert json.loads(json_out.read_text(encoding="utf-8"))["summary"]["tax_due"] == 750.0
    assert csv_out.exists()


def test_ledger_argument_is_required(script):
    with pytest.raises(SystemExit):
        script.main([])
