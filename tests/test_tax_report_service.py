"""
Tests for the monthly tax report service, the result seal and the exports.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import json
import pytest
from datetime import date, datetime
from decimal import Decimal

import pandas as pd

from parsers.ledger_models import Holding, Operation, OperationKind
from modules.tax.export import (
    BREAKDOWN_COLUMNS,
    OPERATION_COLUMNS,
    breakdown_to_dataframe,
    export_operations_csv,
    export_to_json,
    operations_to_dataframe,
)
from modules.tax.monthly import MonthlyTaxCalculator
from modules.tax.replay import compute_loss_carryforward
from services.tax_report import (
    InvalidMonthError,
    MonthlyTaxReportService,
    darf_codes_due,
    has_carried_losses,
    resolve_target_month,
)

TODAY = date(2024, 6, 15)


def op(op_id, kind, when, quantity, price):
    return Operation(
        id=op_id,
        kind=kind,
        date=when,
        quantity=Decimal(str(quantity)),
        unit_price=Decimal(str(price)),
    )


@pytest.fixture
def holdings():
    return [
        Holding(id="petr4", name="Petrobras PN", ticker="PETR4", asset_class="stock", operations=[
            op("p1", OperationKind.BUY, datetime(2024, 1, 5), 3000, "20"),
            op("p2", OperationKind.SELL, datetime(2024, 2, 10), 1250, "19.2"),
            op("p3", OperationKind.SELL, datetime(2024, 3, 12), 1250, "24"),
        ]),
        Holding(id="bova11", name="iShares Ibovespa", ticker="BOVA11", asset_class="etf", operations=[
            op("e1", OperationKind.BUY, datetime(2024, 1, 5), 100, "100"),
            op("e2", OperationKind.SELL, datetime(2024, 3, 20), 50, "120"),
        ]),
        Holding(id="cdb", name="CDB Banco X", asset_class="cdb", operations=[
            op("c1", OperationKind.BUY, datetime(2024, 1, 5), 1, "1000"),
            op("c2", OperationKind.SELL, datetime(2024, 3, 5), 1, "1100"),
        ]),
    ]


@pytest.fixture
def service(holdings):
    return MonthlyTaxReportService(holdings)


class TestResolveTargetMonth:

    def test_none_is_current_month(self):
        assert resolve_target_month(None, today=TODAY) == "2024-06"

    def test_valid_past_month(self):
        assert resolve_target_month("2023-11", today=TODAY) == "2023-11"

    @pytest.mark.parametrize("raw", ["2024-13", "2024-3", "march", "", "2024-00"])
    def test_invalid_falls_back_to_current(self, raw):
        assert resolve_target_month(raw, today=TODAY) == "2024-06"

    def test_invalid_strict_raises(self):
        with pytest.raises(InvalidMonthError):
            resolve_target_month("2024-13", today=TODAY, strict=True)

    def test_future_month_is_clamped(self):
        assert resolve_target_month("2025-01", today=TODAY) == "2024-06"


class TestMonthlyTaxReportService:

    def test_non_taxable_holdings_dropped(self, service):
        assert [h.id for h in service.holdings] == ["petr4", "bova11"]

    def test_report_replays_carried_losses(self, service):
        result = service.report("2024-03", today=TODAY)

        stock = result.by_asset_class["stock"]
        assert stock.loss_used == Decimal("1000")
        # (24 - 20) * 1250 = 5000, minus the February loss
        assert stock.swing_trade.tax == Decimal("600")
        assert result.by_asset_class["etf"].tax_due == Decimal("150")
        assert [d.operation_id for d in result.operations] == ["e2", "p3"]

    def test_report_matches_manual_replay(self, service, holdings):
        calculator = MonthlyTaxCalculator()
        losses = compute_loss_carryforward(holdings, "2024-03", calculator)
        expected = calculator.calculate(holdings, "2024-03", losses)

        result = service.report("2024-03", today=TODAY)

        assert service.seal(result) == service.seal(expected)

    def test_report_defaults_to_current_month(self, service):
        assert service.report(today=TODAY).month == "2024-06"

    def test_report_following_chains_loss_state(self, service):
        february = service.report("2024-02", today=TODAY)
        march = service.report_following(february)

        assert february.loss_state.get("stock") == Decimal("-1000")
        assert march.month == "2024-03"
        assert service.seal(march) == service.seal(service.report("2024-03", today=TODAY))

    def test_report_following_across_year_end(self, service):
        december = service.report("2023-12", today=TODAY)

        assert service.report_following(december).month == "2024-01"

    def test_seal_verification(self, service):
        result = service.report("2024-03", today=TODAY)
        seal = service.seal(result)

        assert seal.startswith("sha256:")
        assert service.verify_seal(result, seal)
        assert not service.verify_seal(service.report("2024-02", today=TODAY), seal)

    def test_darf_codes_deduplicated(self, service):
        result = service.report("2024-03", today=TODAY)

        # Stocks and ETFs share DARF 6015
        assert darf_codes_due(result) == ["6015"]

    def test_no_darf_codes_without_tax(self, service):
        result = service.report("2024-02", today=TODAY)

        assert darf_codes_due(result) == []
        assert has_carried_losses(result)


class TestExport:

    @pytest.fixture
    def result(self, service):
        return service.report("2024-03", today=TODAY)

    def test_operations_dataframe(self, result):
        df = operations_to_dataframe(result)

        assert list(df.columns) == ["operation_id", "holding_id"] + OPERATION_COLUMNS
        assert len(df) == 2
        assert df.iloc[0]["operation_id"] == "e2"
        assert df.iloc[0]["gain"] == pytest.approx(1000.0)

    def test_breakdown_dataframe(self, result):
        df = breakdown_to_dataframe(result)

        assert list(df.columns) == BREAKDOWN_COLUMNS
        assert list(df["asset_class"]) == ["stock", "etf"]
        assert df.loc[df["asset_class"] == "stock", "loss_used"].iloc[0] == pytest.approx(1000.0)

    def test_export_csv(self, result, tmp_path):
        path = export_operations_csv(result, tmp_path / "out" / "operations.csv")

        df = pd.read_csv(path)
        assert len(df) == 2
        assert set(df["trade_kind"]) == {"swing_trade"}

    def test_export_json_includes_seal(self, result, tmp_path, service):
        path = export_to_json(result, tmp_path / "result.json")

        payload = json.loads(path.read_text(encoding="utf-8"))
        assert payload["month"] == "2024-03"
        assert payload["calculation_hash"] == service.seal(result)
        assert payload["accumulated_losses"]["stock"] == 0
        assert payload["operations"][0]["date"] == "2024-03-20"
