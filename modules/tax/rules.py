"""
Asset Tax Rule Table - Renda Variável

Static per-asset-class constants for the monthly capital-gains regime:
- Swing-trade and day-trade rates
- Monthly sale-volume exemption (R$ 20.000 stocks, R$ 35.000 crypto)
- Withholding at source (IRRF) rates
- DARF payment code and display label

Which sale volume is compared against the exemption limit is part of each
rule (ExemptionBase), so the monthly calculator never branches on the
asset class itself.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Dict, List

from parsers.ledger_models import AssetClass


class ExemptionBase(str, Enum):
    """Sale volume compared against the monthly exemption limit."""
    SWING_ONLY = "swing_only"  # swing-trade sales only
    ALL_SALES = "all_sales"    # swing + day-trade sales


@dataclass(frozen=True)
class AssetTaxRule:
    """Tax constants for one asset class."""

    asset_class: str
    label: str
    darf_code: str
    swing_trade_rate: Decimal
    day_trade_rate: Decimal
    swing_trade_withholding_rate: Decimal
    day_trade_withholding_rate: Decimal
    monthly_exemption_limit: Decimal = Decimal(0)  # 0 = no exemption
    exemption_base: ExemptionBase = ExemptionBase.SWING_ONLY

    def exemption_volume(self, swing_sales: Decimal, day_sales: Decimal) -> Decimal:
        if self.exemption_base is ExemptionBase.ALL_SALES:
            return swing_sales + day_sales
        return swing_sales

    def is_swing_exempt(self, swing_sales: Decimal, day_sales: Decimal) -> bool:
        """Exempt when the relevant monthly volume is strictly below the limit."""
        if self.monthly_exemption_limit <= 0:
            return False
        return self.exemption_volume(swing_sales, day_sales) < self.monthly_exemption_limit


# Registry of taxable asset classes, in reporting order
_RULE_REGISTRY: Dict[str, AssetTaxRule] = {}

TAX_RULES = MappingProxyType(_RULE_REGISTRY)


def register_rule(rule: AssetTaxRule) -> AssetTaxRule:
    """
    Register the tax rule for an asset class.

    Usage:
        register_rule(AssetTaxRule(asset_class="bdr", ...))
    """
    _RULE_REGISTRY[rule.asset_class.lower()] = rule
    return rule


def get_rule(asset_class: str) -> AssetTaxRule:
    """
    Look up the tax rule of an asset class.

    Raises:
        ValueError: If the asset class is not taxable under this regime
    """
    key = str(asset_class).lower()

    if key not in _RULE_REGISTRY:
        available = ", ".join(_RULE_REGISTRY.keys())
        raise ValueError(
            f"Tax rule for asset class '{asset_class}' not found. "
            f"Available: {available}"
        )

    return _RULE_REGISTRY[key]


def is_taxable_class(asset_class: str) -> bool:
    return str(asset_class).lower() in _RULE_REGISTRY


def list_taxable_classes() -> List[str]:
    """Taxable asset classes in reporting order."""
    return list(_RULE_REGISTRY.keys())


register_rule(AssetTaxRule(
    asset_class=AssetClass.STOCK.value,
    label="Ações",
    darf_code="6015",
    swing_trade_rate=Decimal("0.15"),
    day_trade_rate=Decimal("0.20"),
    swing_trade_withholding_rate=Decimal("0.00005"),
    day_trade_withholding_rate=Decimal("0.01"),
    monthly_exemption_limit=Decimal("20000"),
    exemption_base=ExemptionBase.SWING_ONLY,
))

register_rule(AssetTaxRule(
    asset_class=AssetClass.FII.value,
    label="FIIs",
    darf_code="6800",
    swing_trade_rate=Decimal("0.20"),
    day_trade_rate=Decimal("0.20"),
    swing_trade_withholding_rate=Decimal("0.00005"),
    day_trade_withholding_rate=Decimal("0.01"),
))

register_rule(AssetTaxRule(
    asset_class=AssetClass.ETF.value,
    label="ETFs",
    darf_code="6015",
    swing_trade_rate=Decimal("0.15"),
    day_trade_rate=Decimal("0.20"),
    swing_trade_withholding_rate=Decimal("0.00005"),
    day_trade_withholding_rate=Decimal("0.01"),
))

register_rule(AssetTaxRule(
    asset_class=AssetClass.CRYPTO.value,
    label="Criptomoedas",
    darf_code="4600",
    swing_trade_rate=Decimal("0.15"),
    day_trade_rate=Decimal("0.15"),
    swing_trade_withholding_rate=Decimal("0"),
    day_trade_withholding_rate=Decimal("0"),
    monthly_exemption_limit=Decimal("35000"),
    exemption_base=ExemptionBase.ALL_SALES,
))
