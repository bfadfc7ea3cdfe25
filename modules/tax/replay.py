"""
Loss Replay Engine - Carried Losses as of a Month

The carried losses entering a month are the result of every earlier month
with a disposal. This module replays those months in order, starting from
zero, feeding each month's LossState into the next.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from functools import reduce
from typing import Iterable, List, Optional, Sequence

from parsers.ledger_models import Holding
from modules.tax.monthly import MonthlyTaxCalculator
from modules.tax.periods import month_key
from modules.tax.results import LossState
from modules.tax.rules import is_taxable_class
from utils.logging_config import setup_logger, tax_context

logger = setup_logger(__name__)


def disposal_months(holdings: Iterable[Holding], before_month: str) -> List[str]:
    """
    Distinct "YYYY-MM" months with a taxable disposal, strictly before a month.

    Returns:
        Months in ascending order
    """
    months = {
        month_key(op.date)
        for holding in holdings
        if is_taxable_class(holding.asset_class)
        for op in holding.operations
        if op.kind.is_disposal
    }
    return sorted(month for month in months if month < before_month)


def compute_loss_carryforward(
    holdings: Sequence[Holding],
    up_to_month: str,
    calculator: Optional[MonthlyTaxCalculator] = None
) -> LossState:
    """
    Replay all months before `up_to_month` (exclusive) to get carried losses.

    Args:
        holdings: Holdings with their full operation history
        up_to_month: Target month "YYYY-MM"; its own disposals are not replayed
        calculator: Monthly calculator to fold with (default: MonthlyTaxCalculator)

    Returns:
        LossState entering `up_to_month`
    """
    holdings = list(holdings)
    calculator = calculator or MonthlyTaxCalculator()
    months = disposal_months(holdings, up_to_month)

    def step(losses: LossState, month: str) -> LossState:
        return calculator.calculate(holdings, month, losses).loss_state

    losses = reduce(step, months, LossState.zero())

    logger.debug(
        f"Replayed {len(months)} month(s) before {up_to_month}",
        extra=tax_context(month=up_to_month, carried=losses.has_losses()),
    )
    return losses
