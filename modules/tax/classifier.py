"""
Trade Classifier - Day Trade vs Swing Trade

A disposal is a day trade when the same holding was also acquired on the
same calendar date; every other disposal is a swing trade.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from datetime import date
from typing import Iterable, Set, Tuple

from parsers.ledger_models import Operation
from modules.tax.periods import calendar_date
from modules.tax.results import TradeKind


def acquisition_days(operations: Iterable[Operation]) -> Set[Tuple[str, date]]:
    """(holding_id, calendar date) of every acquisition in the history."""
    return {
        (op.holding_id, calendar_date(op.date))
        for op in operations
        if op.kind.is_acquisition
    }


def classify_day_trades(
    disposals: Iterable[Operation],
    all_operations: Iterable[Operation]
) -> Set[str]:
    """
    Find the disposals that are day trades.

    Args:
        disposals: Disposals under consideration (typically one month)
        all_operations: Full history used for the same-day acquisition lookup

    Returns:
        Set of operation ids classified as day trades
    """
    bought_on = acquisition_days(all_operations)

    return {
        op.id
        for op in disposals
        if (op.holding_id, calendar_date(op.date)) in bought_on
    }


def trade_kind(operation: Operation, day_trade_ids: Set[str]) -> TradeKind:
    if operation.id in day_trade_ids:
        return TradeKind.DAY_TRADE
    return TradeKind.SWING_TRADE
