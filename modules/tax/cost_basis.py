"""
Cost Basis Reconstructor - Weighted Average Price

Replays a holding's operations chronologically and records the weighted
average acquisition cost in force at each disposal (preço médio).

The replay is a fold: apply_operation(state, operation) returns a new
CostBasisState, so every step can be checked in isolation.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from parsers.ledger_models import Operation, OperationKind
from modules.tax.periods import instant
from utils.logging_config import setup_logger

logger = setup_logger(__name__)


@dataclass(frozen=True)
class CostBasisState:
    """Running position of one holding."""

    total_cost: Decimal = Decimal(0)
    total_quantity: Decimal = Decimal(0)

    @property
    def average_price(self) -> Decimal:
        """Average cost per unit including acquisition fees."""
        if self.total_quantity > 0:
            return self.total_cost / self.total_quantity
        return Decimal(0)


def sort_operations(operations: Iterable[Operation]) -> List[Operation]:
    """
    Chronological order; operations on the same instant keep ledger order.

    Naive and aware timestamps may be mixed within one holding.
    """
    return sorted(operations, key=lambda op: instant(op.date))


def apply_operation(
    state: CostBasisState,
    operation: Operation
) -> Tuple[CostBasisState, Optional[Decimal]]:
    """
    Apply one operation to the running position.

    Returns:
        (new_state, average_price) where average_price is the cost basis used
        for a disposal and None for every other kind
    """
    kind = operation.kind

    if kind in (OperationKind.BUY, OperationKind.DEPOSIT):
        cost = operation.quantity * operation.unit_price + operation.fees
        return CostBasisState(
            total_cost=state.total_cost + cost,
            total_quantity=state.total_quantity + operation.quantity,
        ), None

    if kind in (OperationKind.SELL, OperationKind.WITHDRAW):
        average_price = state.average_price

        if state.total_quantity < operation.quantity:
            logger.debug(
                f"Orphaned disposal: operation {operation.id} of holding {operation.holding_id} "
                f"on {operation.date.date()} sells {operation.quantity} with only "
                f"{state.total_quantity} available"
            )

        remaining_quantity = state.total_quantity - operation.quantity
        remaining_cost = state.total_cost - operation.quantity * average_price

        # Position closed: drop residual drift so the next buy starts clean
        if remaining_quantity <= 0:
            return CostBasisState(), average_price

        return CostBasisState(
            total_cost=remaining_cost,
            total_quantity=remaining_quantity,
        ), average_price

    if kind is OperationKind.DIVIDEND:
        return state, None

    raise ValueError(f"Unhandled operation kind: {kind}")


def reconstruct_average_prices(operations: Iterable[Operation]) -> Dict[str, Decimal]:
    """
    Replay one holding's operations and map each disposal to its average price.

    Args:
        operations: All operations of a single holding, in any order

    Returns:
        Dict of operation id -> weighted average unit cost at that disposal
    """
    state = CostBasisState()
    average_prices: Dict[str, Decimal] = {}

    for operation in sort_operations(operations):
        state, average_price = apply_operation(state, operation)
        if average_price is not None:
            average_prices[operation.id] = average_price

    return average_prices


def replay_position(operations: Iterable[Operation]) -> CostBasisState:
    """Final running position after all operations."""
    state = CostBasisState()
    for operation in sort_operations(operations):
        state, _ = apply_operation(state, operation)
    return state
