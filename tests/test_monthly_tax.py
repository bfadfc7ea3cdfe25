"""
Unit Tests for the Monthly Tax Calculator

Exemption cliffs, carried-loss compensation, day trade taxation,
withholding and result ordering.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from core.hashing import canonical_json_dumps
from parsers.ledger_models import Holding, Operation, OperationKind
from parsers.ledger_parser import parse_holdings
from modules.tax.monthly import MonthlyTaxCalculator, calculate_month_tax
from modules.tax.results import LossState, TradeKind


def op(op_id, kind, when, quantity, price, fees="0"):
    return Operation(
        id=op_id,
        kind=kind,
        date=when,
        quantity=Decimal(str(quantity)),
        unit_price=Decimal(str(price)),
        fees=Decimal(fees),
    )


def holding(holding_id, asset_class, operations, ticker=None):
    return Holding(
        id=holding_id,
        name=holding_id.upper(),
        ticker=ticker,
        asset_class=asset_class,
        operations=operations,
    )


def single_sale(asset_class, sale_price, cost="10000"):
    """One unit bought in January, sold in March."""
    return holding("h1", asset_class, [
        op("b1", OperationKind.BUY, datetime(2024, 1, 5), 1, cost),
        op("s1", OperationKind.SELL, datetime(2024, 3, 15), 1, sale_price),
    ])


class TestStockExemption:
    """R$ 20.000 swing-trade sales limit for stocks."""

    @pytest.fixture
    def calculator(self):
        return MonthlyTaxCalculator()

    def test_sales_below_limit_are_exempt(self, calculator):
        result = calculator.calculate([single_sale("stock", "19999.99")], "2024-03", LossState.zero())

        stock = result.by_asset_class["stock"]
        assert stock.swing_trade.exempt
        assert stock.swing_trade.net == Decimal("9999.99")
        assert stock.swing_trade.tax == 0
        assert stock.tax_due == 0
        assert result.summary.tax_payable == 0
        assert not result.summary.has_tax_due

    def test_sales_at_limit_are_taxed(self, calculator):
        result = calculator.calculate([single_sale("stock", "20000")], "2024-03", LossState.zero())

        stock = result.by_asset_class["stock"]
        assert not stock.swing_trade.exempt
        assert stock.swing_trade.tax == Decimal("1500")
        assert stock.withheld == Decimal("1")
        assert result.summary.tax_due == Decimal("1500")
        assert result.summary.tax_payable == Decimal("1499")
        assert result.summary.has_tax_due

    def test_exempt_swing_loss_is_not_carried(self, calculator):
        ledger = holding("h1", "stock", [
            op("b1", OperationKind.BUY, datetime(2024, 1, 5), 100, "50"),
            op("s1", OperationKind.SELL, datetime(2024, 3, 15), 100, "40"),
        ])

        result = calculator.calculate([ledger], "2024-03", LossState.zero())

        assert result.by_asset_class["stock"].swing_trade.net == Decimal("-1000")
        assert result.loss_state.get("stock") == 0

    def test_day_trade_sales_do_not_count_for_stock_exemption(self, calculator):
        ledger = holding("h1", "stock", [
            op("b1", OperationKind.BUY, datetime(2024, 1, 5), 100, "100"),
            op("s1", OperationKind.SELL, datetime(2024, 3, 4), 100, "110"),
            op("b2", OperationKind.BUY, datetime(2024, 3, 5, 10, 0), 1000, "50"),
            op("s2", OperationKind.SELL, datetime(2024, 3, 5, 16, 0), 1000, "51"),
        ])

        result = calculator.calculate([ledger], "2024-03", LossState.zero())

        stock = result.by_asset_class["stock"]
        assert stock.swing_trade.sales == Decimal("11000")
        assert stock.swing_trade.exempt
        assert stock.day_trade.sales == Decimal("51000")
        assert stock.day_trade.net == Decimal("1000")
        assert stock.day_trade.tax == Decimal("200")

    def test_day_trade_loss_is_carried_while_swing_exempt(self, calculator):
        ledger = holding("h1", "stock", [
            op("b1", OperationKind.BUY, datetime(2024, 3, 5, 10, 0), 100, "50"),
            op("s1", OperationKind.SELL, datetime(2024, 3, 5, 16, 0), 100, "45"),
        ])

        result = calculator.calculate([ledger], "2024-03", LossState.zero())

        assert result.by_asset_class["stock"].swing_trade.exempt
        assert result.loss_state.get("stock") == Decimal("-500")


class TestCryptoExemption:
    """R$ 35.000 limit on all crypto sales of the month."""

    @staticmethod
    def crypto_ledger(sale_price):
        return holding("btc", "crypto", [
            op("b1", OperationKind.BUY, datetime(2024, 1, 10), 1, "10000"),
            op("b2", OperationKind.BUY, datetime(2024, 3, 10, 10, 0), 1, "10000"),
            op("s1", OperationKind.SELL, datetime(2024, 3, 10, 15, 0), 1, sale_price),
            op("s2", OperationKind.SELL, datetime(2024, 3, 20, 12, 0), 1, sale_price),
        ])

    def test_total_sales_below_limit(self):
        result = calculate_month_tax([self.crypto_ledger("17499.5")], "2024-03", LossState.zero())

        crypto = result.by_asset_class["crypto"]
        assert crypto.swing_trade.sales + crypto.day_trade.sales == Decimal("34999")
        assert crypto.swing_trade.exempt
        assert crypto.swing_trade.tax == 0
        # Day trades are never exempt
        assert crypto.day_trade.tax == Decimal("1124.925")
        assert crypto.withheld == 0

    def test_total_sales_above_limit(self):
        result = calculate_month_tax([self.crypto_ledger("17500.5")], "2024-03", LossState.zero())

        crypto = result.by_asset_class["crypto"]
        assert crypto.swing_trade.sales == Decimal("17500.5")
        assert not crypto.swing_trade.exempt
        assert crypto.swing_trade.tax == Decimal("1125.075")
        assert crypto.day_trade.tax == Decimal("1125.075")
        assert result.summary.tax_payable == Decimal("2250.15")


class TestLossCompensation:
    """Carried losses offset swing trade first, then day trade."""

    @pytest.fixture
    def calculator(self):
        return MonthlyTaxCalculator()

    @pytest.fixture
    def loss_then_gain(self):
        return [holding("h1", "stock", [
            op("b1", OperationKind.BUY, datetime(2024, 1, 5), 3000, "20"),
            op("s1", OperationKind.SELL, datetime(2024, 2, 10), 1250, "19.2"),
            op("s2", OperationKind.SELL, datetime(2024, 3, 12), 1250, "21.2"),
        ])]

    def test_loss_month_carries_loss(self, calculator, loss_then_gain):
        result = calculator.calculate(loss_then_gain, "2024-02", LossState.zero())

        stock = result.by_asset_class["stock"]
        assert not stock.swing_trade.exempt
        assert stock.swing_trade.net == Decimal("-1000")
        assert stock.tax_due == 0
        assert result.loss_state.get("stock") == Decimal("-1000")

    def test_gain_month_uses_carried_loss(self, calculator, loss_then_gain):
        carried = LossState.zero().with_balance("stock", Decimal("-1000"))

        result = calculator.calculate(loss_then_gain, "2024-03", carried)

        stock = result.by_asset_class["stock"]
        assert stock.swing_trade.net == Decimal("1500")
        assert stock.loss_used == Decimal("1000")
        assert stock.loss_remaining == 0
        assert stock.swing_trade.tax == Decimal("75")
        assert stock.withheld == Decimal("1.325")
        assert result.summary.tax_payable == Decimal("73.675")
        assert result.loss_state.get("stock") == 0

    def test_partial_compensation_keeps_remainder(self, calculator, loss_then_gain):
        carried = LossState.zero().with_balance("stock", Decimal("-2000"))

        result = calculator.calculate(loss_then_gain, "2024-03", carried)

        stock = result.by_asset_class["stock"]
        assert stock.loss_used == Decimal("1500")
        assert stock.tax_due == 0
        assert result.loss_state.get("stock") == Decimal("-500")

    def test_swing_first_then_day_trade(self, calculator):
        holdings = [
            holding("h1", "stock", [
                op("b1", OperationKind.BUY, datetime(2024, 1, 5), 1000, "20"),
                op("s1", OperationKind.SELL, datetime(2024, 3, 20), 1000, "20.6"),
            ]),
            holding("h2", "stock", [
                op("b2", OperationKind.BUY, datetime(2024, 3, 5, 10, 0), 100, "50"),
                op("s2", OperationKind.SELL, datetime(2024, 3, 5, 15, 0), 100, "58"),
            ]),
        ]
        carried = LossState.zero().with_balance("stock", Decimal("-1000"))

        result = calculator.calculate(holdings, "2024-03", carried)

        stock = result.by_asset_class["stock"]
        assert stock.swing_trade.tax == 0
        assert stock.day_trade.net == Decimal("800")
        assert stock.day_trade.tax == Decimal("80")
        assert stock.loss_used == Decimal("1000")
        assert stock.withheld == Decimal("59.03")
        assert result.summary.tax_payable == Decimal("20.97")

    def test_losses_stay_within_asset_class(self, calculator):
        fii = holding("f1", "fii", [
            op("b1", OperationKind.BUY, datetime(2024, 1, 5), 100, "100"),
            op("s1", OperationKind.SELL, datetime(2024, 3, 15), 100, "110"),
        ])
        carried = LossState.zero().with_balance("stock", Decimal("-5000"))

        result = calculator.calculate([fii], "2024-03", carried)

        breakdown = result.by_asset_class["fii"]
        assert breakdown.loss_used == 0
        assert breakdown.tax_due == Decimal("200")
        assert breakdown.withheld == Decimal("0.55")
        assert result.loss_state.get("stock") == Decimal("-5000")

    def test_incoming_state_is_not_modified(self, calculator, loss_then_gain):
        carried = LossState.zero().with_balance("stock", Decimal("-1000"))
        before = carried.as_dict()

        calculator.calculate(loss_then_gain, "2024-03", carried)

        assert carried.as_dict() == before

    def test_untouched_classes_pass_through(self, calculator, loss_then_gain):
        carried = LossState.zero().with_balance("crypto", Decimal("-300"))

        result = calculator.calculate(loss_then_gain, "2024-03", carried)

        assert "crypto" not in result.by_asset_class
        assert result.loss_state.get("crypto") == Decimal("-300")


class TestOperationDetails:

    @pytest.fixture
    def calculator(self):
        return MonthlyTaxCalculator()

    def test_gain_formula_includes_fees(self, calculator):
        ledger = holding("h1", "etf", [
            op("b1", OperationKind.BUY, datetime(2024, 1, 5), 10, "100", fees="5"),
            op("s1", OperationKind.SELL, datetime(2024, 3, 15), 4, "120", fees="2"),
        ], ticker="BOVA11")

        result = calculator.calculate([ledger], "2024-03", LossState.zero())

        detail = result.operations[0]
        assert detail.average_price == Decimal("100.5")
        assert detail.sale_total == Decimal("480")
        assert detail.gain == Decimal("76")
        assert detail.fees == Decimal("2")
        assert detail.ticker == "BOVA11"
        assert detail.holding_id == "h1"
        assert detail.trade_kind is TradeKind.SWING_TRADE
        assert detail.date == date(2024, 3, 15)

    def test_disposal_without_cost_basis_uses_zero(self, calculator):
        ledger = holding("h1", "etf", [
            op("s1", OperationKind.SELL, datetime(2024, 3, 15), 10, "50", fees="1"),
        ])

        result = calculator.calculate([ledger], "2024-03", LossState.zero())

        assert result.operations[0].average_price == 0
        assert result.operations[0].gain == Decimal("499")

    def test_operations_sorted_newest_first(self, calculator):
        ledger = holding("h1", "etf", [
            op("b1", OperationKind.BUY, datetime(2024, 1, 5), 100, "10"),
            op("s1", OperationKind.SELL, datetime(2024, 3, 5), 10, "11"),
            op("s2", OperationKind.SELL, datetime(2024, 3, 20), 10, "11"),
            op("s3", OperationKind.SELL, datetime(2024, 3, 10), 10, "11"),
            op("s4", OperationKind.SELL, datetime(2024, 3, 10), 10, "11"),
        ])

        result = calculator.calculate([ledger], "2024-03", LossState.zero())

        assert [d.operation_id for d in result.operations] == ["s2", "s3", "s4", "s1"]

    def test_only_target_month_disposals(self, calculator):
        ledger = holding("h1", "etf", [
            op("b1", OperationKind.BUY, datetime(2024, 1, 5), 100, "10"),
            op("s1", OperationKind.SELL, datetime(2024, 2, 29), 10, "11"),
            op("s2", OperationKind.SELL, datetime(2024, 3, 1), 10, "11"),
            op("s3", OperationKind.SELL, datetime(2024, 4, 1), 10, "11"),
        ])

        result = calculator.calculate([ledger], "2024-03", LossState.zero())

        assert [d.operation_id for d in result.operations] == ["s2"]

    def test_bucket_gains_and_losses(self, calculator):
        holdings = [
            holding("h1", "fii", [
                op("b1", OperationKind.BUY, datetime(2024, 1, 5), 10, "100"),
                op("s1", OperationKind.SELL, datetime(2024, 3, 5), 10, "90"),
            ]),
            holding("h2", "fii", [
                op("b2", OperationKind.BUY, datetime(2024, 1, 5), 10, "100"),
                op("s2", OperationKind.SELL, datetime(2024, 3, 6), 10, "130"),
            ]),
        ]

        result = calculator.calculate(holdings, "2024-03", LossState.zero())

        swing = result.by_asset_class["fii"].swing_trade
        assert swing.gains == Decimal("300")
        assert swing.losses == Decimal("-100")
        assert swing.net == Decimal("200")
        assert result.summary.net_result == Decimal("200")
        assert result.summary.total_gains == Decimal("300")
        assert result.summary.total_losses == Decimal("-100")

    def test_non_taxable_holdings_are_ignored(self, calculator):
        cdb = holding("c1", "cdb", [
            op("b1", OperationKind.BUY, datetime(2024, 1, 5), 1, "1000"),
            op("s1", OperationKind.SELL, datetime(2024, 3, 5), 1, "1100"),
        ])

        result = calculator.calculate([cdb], "2024-03", LossState.zero())

        assert result.operations == []
        assert result.by_asset_class == {}
        assert result.summary.total_sales == 0
        assert result.summary.tax_payable == 0
        assert result.loss_state == LossState.zero()

    def test_empty_month(self, calculator):
        result = calculator.calculate([single_sale("stock", "25000")], "2024-05", LossState.zero())

        assert result.operations == []
        assert result.by_asset_class == {}
        assert not result.summary.has_tax_due

    def test_withholding_can_exceed_tax_due(self, calculator):
        ledger = holding("h1", "stock", [
            op("b1", OperationKind.BUY, datetime(2024, 3, 5, 10, 0), 1000, "50"),
            op("s1", OperationKind.SELL, datetime(2024, 3, 5, 16, 0), 1000, "50.1"),
        ])

        result = calculator.calculate([ledger], "2024-03", LossState.zero())

        # 20% of R$ 100 = 20; IRRF 1% of R$ 50.100 = 501
        assert result.summary.tax_due == Decimal("20")
        assert result.summary.withheld == Decimal("501")
        assert result.summary.tax_payable == 0

    def test_same_inputs_give_identical_results(self, calculator):
        holdings = [single_sale("stock", "25000")]

        first = calculator.calculate(holdings, "2024-03", LossState.zero())
        second = calculator.calculate(holdings, "2024-03", LossState.zero())

        assert canonical_json_dumps(first.to_dict()) == canonical_json_dumps(second.to_dict())

    def test_mixed_date_only_and_utc_timestamps(self, calculator):
        holdings = parse_holdings([{
            "id": "h1",
            "name": "Petrobras PN",
            "type": "stock",
            "operations": [
                {"id": "b1", "type": "buy", "date": "2024-03-01", "quantity": 100, "price": 30},
                {"id": "s1", "type": "sell", "date": "2024-03-05T15:00:00Z", "quantity": 100, "price": 32},
            ],
        }])

        result = calculator.calculate(holdings, "2024-03", LossState.zero())

        detail = result.operations[0]
        assert detail.average_price == Decimal("30")
        assert detail.gain == Decimal("200")
        assert detail.trade_kind is TradeKind.SWING_TRADE
