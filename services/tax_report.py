"""
Monthly Tax Report Service

Caller-side orchestration around the tax engine:
- Resolves the requested month (invalid -> current month, future -> clamped)
- Keeps only taxable holdings
- Replays carried losses, then computes the target month
- Seals results and lists the DARF codes to pay

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from datetime import date
from typing import Iterable, List, Optional

from core.hashing import calculate_sha256, verify_hash
from parsers.ledger_models import Holding
from modules.tax import settings
from modules.tax.monthly import MonthlyTaxCalculator
from modules.tax.periods import current_month, is_valid_month, next_month
from modules.tax.replay import compute_loss_carryforward
from modules.tax.results import MonthlyTaxResult
from modules.tax.rules import is_taxable_class
from utils.logging_config import setup_logger, get_perf_logger, tax_context

logger = setup_logger(__name__)


class InvalidMonthError(ValueError):
    """Raised for a malformed target month when strict parsing is requested."""
    pass


def resolve_target_month(
    requested: Optional[str] = None,
    today: Optional[date] = None,
    strict: bool = False
) -> str:
    """
    Turn a requested "YYYY-MM" into the month to compute.

    Args:
        requested: Month asked for; None means the current month
        today: Reference date (defaults to date.today())
        strict: Raise instead of falling back on a malformed month

    Returns:
        A valid month, never later than the current month

    Raises:
        InvalidMonthError: If strict and the month is malformed
    """
    current = current_month(today)

    if requested is None:
        return current

    if not is_valid_month(requested):
        if strict:
            raise InvalidMonthError(f"Invalid month '{requested}', expected YYYY-MM")
        logger.warning(f"Invalid month '{requested}', using current month {current}")
        return current

    if requested > current:
        logger.info(f"Month {requested} is in the future, clamping to {current}")
        return current

    return requested


class MonthlyTaxReportService:
    """Computes monthly tax reports for a fixed set of holdings."""

    def __init__(
        self,
        holdings: Iterable[Holding],
        calculator: Optional[MonthlyTaxCalculator] = None
    ):
        holdings = list(holdings)
        self.holdings: List[Holding] = [h for h in holdings if is_taxable_class(h.asset_class)]
        self.calculator = calculator or MonthlyTaxCalculator()

        skipped = len(holdings) - len(self.holdings)
        if skipped:
            logger.debug(f"Ignoring {skipped} non-taxable holding(s)")

    def report(
        self,
        month: Optional[str] = None,
        today: Optional[date] = None,
        strict: bool = False
    ) -> MonthlyTaxResult:
        """Replay carried losses up to the month and compute its tax."""
        target = resolve_target_month(month, today=today, strict=strict)

        with get_perf_logger(logger, f"Tax report {target}", settings.SLOW_REPLAY_THRESHOLD_MS):
            losses = compute_loss_carryforward(self.holdings, target, self.calculator)
            result = self.calculator.calculate(self.holdings, target, losses)

        logger.info(
            f"Tax report {target}: {len(result.operations)} disposals, "
            f"payable {settings.REPORT_CURRENCY} {result.summary.tax_payable:,.2f}",
            extra=tax_context(month=target, darf=",".join(darf_codes_due(result)) or None),
        )
        return result

    def report_following(self, previous: MonthlyTaxResult) -> MonthlyTaxResult:
        """Compute the month after `previous` from its carried losses, without a replay."""
        return self.calculator.calculate(
            self.holdings,
            next_month(previous.month),
            previous.loss_state
        )

    @staticmethod
    def seal(result: MonthlyTaxResult) -> str:
        """SHA256 seal of the result's canonical JSON."""
        return calculate_sha256(result.to_dict())

    @staticmethod
    def verify_seal(result: MonthlyTaxResult, expected_hash: str) -> bool:
        return verify_hash(result.to_dict(), expected_hash)


def darf_codes_due(result: MonthlyTaxResult) -> List[str]:
    """Distinct DARF codes of the asset classes with tax due, in breakdown order."""
    codes: List[str] = []
    for breakdown in result.by_asset_class.values():
        if breakdown.tax_due > 0 and breakdown.darf_code not in codes:
            codes.append(breakdown.darf_code)
    return codes


def has_carried_losses(result: MonthlyTaxResult) -> bool:
    return result.loss_state.has_losses()
