"""
Tax Module - Renda Variável

Monthly capital-gains tax engine for stocks, FIIs, ETFs and crypto.

Features:
- Weighted average cost basis replayed from the chronological start
- Day trade / swing trade classification
- Per-asset-class exemption, rates and withholding (IRRF)
- Month-by-month carried-loss replay

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from modules.tax.rules import AssetTaxRule, ExemptionBase, TAX_RULES, get_rule, is_taxable_class
from modules.tax.results import LossState, MonthlyTaxResult, TradeKind
from modules.tax.monthly import MonthlyTaxCalculator, calculate_month_tax
from modules.tax.replay import compute_loss_carryforward

__all__ = [
    "AssetTaxRule",
    "ExemptionBase",
    "TAX_RULES",
    "get_rule",
    "is_taxable_class",
    "LossState",
    "MonthlyTaxResult",
    "TradeKind",
    "MonthlyTaxCalculator",
    "calculate_month_tax",
    "compute_loss_carryforward",
]
