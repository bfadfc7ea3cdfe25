"""
Monthly Tax Calculator - IR sobre Renda Variável

Computes the tax of one calendar month:
1. Reconstructs the average price of every disposal in the month
2. Splits disposals into swing trade and day trade
3. Applies the monthly exemption, carried-loss compensation and rates
4. Nets withholding (IRRF) against the tax due

Pure computation: no I/O, no shared state. The incoming LossState is never
modified; the state for the next month is returned in the result.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Sequence, Tuple

from parsers.ledger_models import Holding, Operation
from modules.tax.classifier import classify_day_trades, trade_kind
from modules.tax.cost_basis import reconstruct_average_prices
from modules.tax.periods import calendar_date, month_key
from modules.tax.results import (
    AssetClassBreakdown,
    LossState,
    MonthlyTaxResult,
    OperationDetail,
    TaxSummary,
    TradeBucketSummary,
    TradeKind,
)
from modules.tax.rules import AssetTaxRule, get_rule, is_taxable_class, list_taxable_classes
from utils.logging_config import setup_logger, tax_context

logger = setup_logger(__name__)

ZERO = Decimal(0)


@dataclass(frozen=True)
class _MonthDisposal:
    operation: Operation
    holding: Holding
    average_price: Decimal


@dataclass(frozen=True)
class _BucketTotals:
    sales: Decimal
    gains: Decimal
    losses: Decimal
    net: Decimal


def _bucket_totals(details: Sequence[OperationDetail]) -> _BucketTotals:
    return _BucketTotals(
        sales=sum((d.sale_total for d in details), start=ZERO),
        gains=sum((max(ZERO, d.gain) for d in details), start=ZERO),
        losses=sum((min(ZERO, d.gain) for d in details), start=ZERO),
        net=sum((d.gain for d in details), start=ZERO),
    )


def _compensate(taxable_net: Decimal, carried_loss: Decimal) -> Tuple[Decimal, Decimal, Decimal]:
    """
    Offset a positive taxable net against a carried (negative) loss.

    Returns:
        (taxable_net, loss_used, carried_loss) after compensation
    """
    if taxable_net > 0 and carried_loss < 0:
        compensation = min(taxable_net, abs(carried_loss))
        return taxable_net - compensation, compensation, carried_loss + compensation
    return taxable_net, ZERO, carried_loss


class MonthlyTaxCalculator:
    """
    Monthly capital-gains calculator for stocks, FIIs, ETFs and crypto.

    Key Rules:
    - Swing trade and day trade are taxed separately, at the class rates
    - Exemption applies to swing-trade gains only, per AssetTaxRule
    - Carried losses offset swing trade first, then day trade
    - Losses stay within their asset class
    """

    def calculate(
        self,
        holdings: Iterable[Holding],
        month: str,
        losses: LossState
    ) -> MonthlyTaxResult:
        """
        Calculate the tax of one month.

        Args:
            holdings: Holdings with their full operation history
            month: Target month "YYYY-MM" (validated by the caller)
            losses: Carried losses entering the month

        Returns:
            MonthlyTaxResult including the LossState for the next month
        """
        disposals, all_operations = self._collect_disposals(holdings, month)

        day_trade_ids = classify_day_trades(
            [d.operation for d in disposals],
            all_operations
        )
        details = [self._build_detail(d, day_trade_ids) for d in disposals]

        loss_state = losses
        by_asset_class = {}

        for asset_class in list_taxable_classes():
            class_details = [d for d in details if d.asset_class == asset_class]
            if not class_details:
                continue

            breakdown, loss_state = self._calculate_asset_class(
                get_rule(asset_class),
                class_details,
                loss_state
            )
            by_asset_class[asset_class] = breakdown

        summary = self._summarize(list(by_asset_class.values()))

        logger.debug(
            f"Month {month}: {len(details)} disposals, "
            f"{len(day_trade_ids)} day trades, tax payable {summary.tax_payable:.2f}",
            extra=tax_context(month=month),
        )

        return MonthlyTaxResult(
            month=month,
            summary=summary,
            by_asset_class=by_asset_class,
            # Newest first; same-day disposals keep ledger order
            operations=sorted(details, key=lambda d: d.date, reverse=True),
            loss_state=loss_state,
        )

    def _collect_disposals(
        self,
        holdings: Iterable[Holding],
        month: str
    ) -> Tuple[List[_MonthDisposal], List[Operation]]:
        """Disposals of the month with their average price, plus the full taxable history."""
        disposals: List[_MonthDisposal] = []
        all_operations: List[Operation] = []

        for holding in holdings:
            if not is_taxable_class(holding.asset_class):
                logger.debug(f"Skipping non-taxable holding {holding.id} ({holding.asset_class})")
                continue

            average_prices = reconstruct_average_prices(holding.operations)

            for op in holding.operations:
                all_operations.append(op)

                if op.kind.is_disposal and month_key(op.date) == month:
                    disposals.append(_MonthDisposal(
                        operation=op,
                        holding=holding,
                        average_price=average_prices.get(op.id, ZERO),
                    ))

        return disposals, all_operations

    def _build_detail(self, disposal: _MonthDisposal, day_trade_ids) -> OperationDetail:
        op = disposal.operation
        gain = (op.unit_price - disposal.average_price) * op.quantity - op.fees

        return OperationDetail(
            operation_id=op.id,
            holding_id=disposal.holding.id,
            holding_name=disposal.holding.name,
            ticker=disposal.holding.ticker,
            trade_kind=trade_kind(op, day_trade_ids),
            asset_class=disposal.holding.asset_class,
            date=calendar_date(op.date),
            quantity=op.quantity,
            sale_price=op.unit_price,
            average_price=disposal.average_price,
            sale_total=op.quantity * op.unit_price,
            gain=gain,
            fees=op.fees,
        )

    def _calculate_asset_class(
        self,
        rule: AssetTaxRule,
        details: Sequence[OperationDetail],
        losses: LossState
    ) -> Tuple[AssetClassBreakdown, LossState]:
        swing = _bucket_totals([d for d in details if d.trade_kind is TradeKind.SWING_TRADE])
        day = _bucket_totals([d for d in details if d.trade_kind is TradeKind.DAY_TRADE])

        swing_exempt = rule.is_swing_exempt(swing.sales, day.sales)

        carried_loss = losses.get(rule.asset_class)

        # Swing trade compensates first, then day trade on what is left
        swing_taxable, swing_used, carried_loss = _compensate(
            ZERO if swing_exempt else swing.net,
            carried_loss
        )
        day_taxable, day_used, carried_loss = _compensate(day.net, carried_loss)

        # Exempt swing losses are not carried forward
        month_net_loss = (ZERO if swing_exempt else min(ZERO, swing.net)) + min(ZERO, day.net)
        if month_net_loss < 0:
            carried_loss += month_net_loss

        swing_tax = max(ZERO, swing_taxable) * rule.swing_trade_rate
        day_tax = max(ZERO, day_taxable) * rule.day_trade_rate

        withheld = (
            swing.sales * rule.swing_trade_withholding_rate
            + day.sales * rule.day_trade_withholding_rate
        )

        if swing_used or day_used:
            logger.debug(
                f"Compensated {swing_used + day_used:.2f} of carried losses, {carried_loss:.2f} left",
                extra=tax_context(asset_class=rule.asset_class),
            )

        breakdown = AssetClassBreakdown(
            asset_class=rule.asset_class,
            label=rule.label,
            darf_code=rule.darf_code,
            swing_trade=TradeBucketSummary(
                sales=swing.sales,
                gains=swing.gains,
                losses=swing.losses,
                net=swing.net,
                tax_rate=rule.swing_trade_rate,
                tax=swing_tax,
                exempt=swing_exempt,
            ),
            day_trade=TradeBucketSummary(
                sales=day.sales,
                gains=day.gains,
                losses=day.losses,
                net=day.net,
                tax_rate=rule.day_trade_rate,
                tax=day_tax,
            ),
            loss_used=swing_used + day_used,
            loss_remaining=carried_loss,
            withheld=withheld,
            tax_due=swing_tax + day_tax,
        )

        return breakdown, losses.with_balance(rule.asset_class, carried_loss)

    def _summarize(self, breakdowns: List[AssetClassBreakdown]) -> TaxSummary:
        total_sales = sum((b.swing_trade.sales + b.day_trade.sales for b in breakdowns), start=ZERO)
        total_gains = sum((b.swing_trade.gains + b.day_trade.gains for b in breakdowns), start=ZERO)
        total_losses = sum((b.swing_trade.losses + b.day_trade.losses for b in breakdowns), start=ZERO)
        tax_due = sum((b.tax_due for b in breakdowns), start=ZERO)
        withheld = sum((b.withheld for b in breakdowns), start=ZERO)

        tax_payable = max(ZERO, tax_due - withheld)

        return TaxSummary(
            total_sales=total_sales,
            total_gains=total_gains,
            total_losses=total_losses,
            net_result=total_gains + total_losses,
            tax_due=tax_due,
            withheld=withheld,
            tax_payable=tax_payable,
            has_tax_due=tax_payable > 0,
        )


def calculate_month_tax(
    holdings: Iterable[Holding],
    month: str,
    losses: LossState
) -> MonthlyTaxResult:
    """Convenience wrapper around MonthlyTaxCalculator.calculate()."""
    return MonthlyTaxCalculator().calculate(holdings, month, losses)
