"""
Monthly Tax Result Data Models

Defines the output structures of the tax engine:
- LossState: carried-forward losses per asset class (always <= 0)
- OperationDetail: one disposal with its cost basis and gain
- TradeBucketSummary / AssetClassBreakdown: swing and day-trade sub-totals
- MonthlyTaxResult: everything computed for one month

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from modules.tax.rules import list_taxable_classes


class TradeKind(str, Enum):
    """Classification of a disposal."""
    DAY_TRADE = "day_trade"
    SWING_TRADE = "swing_trade"


@dataclass(frozen=True)
class LossState:
    """
    Accumulated unused losses per asset class.

    Key Invariant: every balance is <= 0. Zero means nothing to offset,
    negative means a loss available against future gains of the same class.
    A new state is produced by every month; states are never mutated.
    """

    balances: Dict[str, Decimal] = field(default_factory=dict)

    def __post_init__(self):
        """
        Raises:
            ValueError: If a balance is positive
        """
        for asset_class, amount in self.balances.items():
            if amount > 0:
                raise ValueError(
                    f"Carried loss for '{asset_class}' must be <= 0, got {amount}"
                )
        object.__setattr__(self, "balances", dict(self.balances))

    @classmethod
    def zero(cls) -> 'LossState':
        """State with every taxable asset class at zero."""
        return cls({asset_class: Decimal(0) for asset_class in list_taxable_classes()})

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> 'LossState':
        """
        Build a state from a plain mapping (e.g. a previous JSON result).

        Missing taxable classes are filled with zero.

        Raises:
            ValueError: If a balance is positive
        """
        balances = {asset_class: Decimal(0) for asset_class in list_taxable_classes()}
        for asset_class, amount in mapping.items():
            balances[str(asset_class).lower()] = Decimal(str(amount))
        return cls(balances)

    def get(self, asset_class: str) -> Decimal:
        return self.balances.get(asset_class, Decimal(0))

    def with_balance(self, asset_class: str, amount: Decimal) -> 'LossState':
        """Return a new state with one asset class replaced."""
        balances = dict(self.balances)
        balances[asset_class] = amount
        return LossState(balances)

    def has_losses(self) -> bool:
        return any(amount < 0 for amount in self.balances.values())

    def as_dict(self) -> Dict[str, Decimal]:
        return dict(self.balances)


@dataclass(frozen=True)
class OperationDetail:
    """A disposal inside the target month with its realized gain."""

    operation_id: str
    holding_id: str
    holding_name: str
    trade_kind: TradeKind
    asset_class: str
    date: date
    quantity: Decimal
    sale_price: Decimal
    average_price: Decimal
    sale_total: Decimal
    gain: Decimal
    fees: Decimal
    ticker: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation_id": self.operation_id,
            "holding_id": self.holding_id,
            "holding_name": self.holding_name,
            "ticker": self.ticker,
            "trade_kind": self.trade_kind.value,
            "asset_class": self.asset_class,
            "date": self.date,
            "quantity": self.quantity,
            "sale_price": self.sale_price,
            "average_price": self.average_price,
            "sale_total": self.sale_total,
            "gain": self.gain,
            "fees": self.fees,
        }


@dataclass(frozen=True)
class TradeBucketSummary:
    """Sub-totals for the swing-trade or the day-trade disposals of a class."""

    sales: Decimal
    gains: Decimal   # sum of positive gains
    losses: Decimal  # sum of negative gains (<= 0)
    net: Decimal
    tax_rate: Decimal
    tax: Decimal
    exempt: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sales": self.sales,
            "gains": self.gains,
            "losses": self.losses,
            "net": self.net,
            "exempt": self.exempt,
            "tax_rate": self.tax_rate,
            "tax": self.tax,
        }


@dataclass(frozen=True)
class AssetClassBreakdown:
    """Monthly tax computation for one asset class."""

    asset_class: str
    label: str
    darf_code: str
    swing_trade: TradeBucketSummary
    day_trade: TradeBucketSummary
    loss_used: Decimal
    loss_remaining: Decimal
    withheld: Decimal
    tax_due: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_class": self.asset_class,
            "label": self.label,
            "darf_code": self.darf_code,
            "swing_trade": self.swing_trade.to_dict(),
            "day_trade": self.day_trade.to_dict(),
            "loss_used": self.loss_used,
            "loss_remaining": self.loss_remaining,
            "withheld": self.withheld,
            "tax_due": self.tax_due,
        }


@dataclass(frozen=True)
class TaxSummary:
    total_sales: Decimal
    total_gains: Decimal
    total_losses: Decimal
    net_result: Decimal
    tax_due: Decimal
    withheld: Decimal
    tax_payable: Decimal
    has_tax_due: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_sales": self.total_sales,
            "total_gains": self.total_gains,
            "total_losses": self.total_losses,
            "net_result": self.net_result,
            "tax_due": self.tax_due,
            "withheld": self.withheld,
            "tax_payable": self.tax_payable,
            "has_tax_due": self.has_tax_due,
        }


@dataclass(frozen=True)
class MonthlyTaxResult:
    """
    Output of the monthly tax calculator.

    loss_state is the carried-loss input for the following month.
    """

    month: str
    summary: TaxSummary
    by_asset_class: Dict[str, AssetClassBreakdown]
    operations: List[OperationDetail]
    loss_state: LossState

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready structure (Decimal/date values, see core.hashing)."""
        return {
            "month": self.month,
            "summary": self.summary.to_dict(),
            "by_asset_class": {
                asset_class: breakdown.to_dict()
                for asset_class, breakdown in self.by_asset_class.items()
            },
            "operations": [detail.to_dict() for detail in self.operations],
            "accumulated_losses": self.loss_state.as_dict(),
        }
