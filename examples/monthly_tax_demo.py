"""
Monthly Tax Engine - Usage Example

Demonstrates carried losses across months with in-memory holdings:
a stock loss in February offsets a stock gain in March, and a same-day
crypto round trip is classified as a day trade.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from datetime import datetime
from decimal import Decimal

from parsers.ledger_models import Holding, Operation, OperationKind
from modules.tax import compute_loss_carryforward, calculate_month_tax


def main():
    """Demonstrate the monthly tax engine."""

    print("=" * 70)
    print("IR Renda Variável - Demo")
    print("=" * 70)
    print()

    holdings = [
        Holding(
            id="petr4",
            name="Petrobras PN",
            ticker="PETR4",
            asset_class="stock",
            operations=[
                Operation(id="p1", kind=OperationKind.BUY, date=datetime(2024, 1, 10),
                          quantity=Decimal("2000"), unit_price=Decimal("40"), fees=Decimal("0")),
                # February: 1000 sold at a loss of R$ 5.000, sales above R$ 20.000
                Operation(id="p2", kind=OperationKind.SELL, date=datetime(2024, 2, 15),
                          quantity=Decimal("1000"), unit_price=Decimal("35"), fees=Decimal("0")),
                # March: 1000 sold with a gain of R$ 8.000
                Operation(id="p3", kind=OperationKind.SELL, date=datetime(2024, 3, 20),
                          quantity=Decimal("1000"), unit_price=Decimal("48"), fees=Decimal("0")),
            ],
        ),
        Holding(
            id="btc",
            name="Bitcoin",
            ticker="BTC",
            asset_class="crypto",
            operations=[
                Operation(id="b1", kind=OperationKind.BUY, date=datetime(2024, 3, 5, 10, 0),
                          quantity=Decimal("0.2"), unit_price=Decimal("300000"), fees=Decimal("0")),
                Operation(id="b2", kind=OperationKind.SELL, date=datetime(2024, 3, 5, 16, 0),
                          quantity=Decimal("0.2"), unit_price=Decimal("310000"), fees=Decimal("0")),
            ],
        ),
    ]

    losses = compute_loss_carryforward(holdings, "2024-03")
    print(f"Carried losses entering 2024-03: { {k: f'{v:,.2f}' for k, v in losses.as_dict().items()} }")
    print()

    result = calculate_month_tax(holdings, "2024-03", losses)

    print("=" * 70)
    print("BREAKDOWN BY ASSET CLASS")
    print("=" * 70)
    for breakdown in result.by_asset_class.values():
        print(f"\n{breakdown.label}:")
        print(f"  Swing net:  R$ {breakdown.swing_trade.net:>12,.2f}  exempt={breakdown.swing_trade.exempt}")
        print(f"  Day net:    R$ {breakdown.day_trade.net:>12,.2f}")
        print(f"  Loss used:  R$ {breakdown.loss_used:>12,.2f}")
        print(f"  Tax due:    R$ {breakdown.tax_due:>12,.2f}")

    print()
    print("=" * 70)
    print("SUMMARY")
    print("=" * 70)
    print(f"Tax Due:      R$ {result.summary.tax_due:>12,.2f}")
    print(f"IRRF:         R$ {result.summary.withheld:>12,.2f}")
    print(f"Tax Payable:  R$ {result.summary.tax_payable:>12,.2f}")
    print()

    for detail in result.operations:
        print(f"  {detail.date} {detail.ticker:<6} {detail.trade_kind.value:<11} gain R$ {detail.gain:,.2f}")

    print()
    print("=" * 70)


if __name__ == "__main__":
    main()
