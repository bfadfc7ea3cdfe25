"""
Ledger Quality Validation Service

Checks a ledger before tax computation and reports issues that make the
result less trustworthy. Validation never blocks the engine; it explains
what the engine will silently recover from (e.g. a zero cost basis).
"""

from collections import defaultdict
from decimal import Decimal
from typing import List, Optional

from parsers.ledger_models import Holding, Operation
from modules.tax.cost_basis import sort_operations
from modules.tax.rules import is_taxable_class
from utils.logging_config import setup_logger

logger = setup_logger(__name__)

TOTAL_TOLERANCE = Decimal("0.01")


class ValidationIssue:
    """Represents a ledger quality issue."""

    SEVERITY_ERROR = "ERROR"
    SEVERITY_WARNING = "WARNING"
    SEVERITY_INFO = "INFO"

    def __init__(
        self,
        severity: str,
        category: str,
        message: str,
        holding: Optional[Holding] = None,
        operation: Optional[Operation] = None
    ):
        self.severity = severity
        self.category = category
        self.message = message
        self.holding_id = holding.id if holding else None
        self.operation_id = operation.id if operation else None
        self.operation_ref = (
            f"{operation.date.date()} - {operation.kind.value}" if operation else None
        )

    def __repr__(self):
        return f"ValidationIssue({self.severity}, {self.category}, {self.message!r})"


class LedgerValidator:
    """Validates holdings and operations ahead of the monthly tax calculation."""

    def __init__(self):
        self.issues: List[ValidationIssue] = []

    def validate_all(self, holdings: List[Holding]) -> List[ValidationIssue]:
        """Run all validation checks."""
        self.issues = []

        self.check_duplicate_operation_ids(holdings)
        self.check_non_taxable(holdings)

        for holding in holdings:
            if not is_taxable_class(holding.asset_class):
                continue
            self.check_orphaned_disposals(holding)
            self.check_zero_quantity_disposals(holding)
            self.check_totals(holding)

        if self.issues:
            logger.info(f"Ledger validation found {len(self.issues)} issue(s)")

        return self.issues

    def check_duplicate_operation_ids(self, holdings: List[Holding]):
        """Operation ids key the cost basis and day-trade lookups and must be unique."""
        seen = {}

        for holding in holdings:
            for op in holding.operations:
                if op.id in seen:
                    self.issues.append(ValidationIssue(
                        ValidationIssue.SEVERITY_ERROR,
                        "Duplicate",
                        f"Operation id {op.id} used more than once (also in holding {seen[op.id]})",
                        holding,
                        op
                    ))
                else:
                    seen[op.id] = holding.id

    def check_non_taxable(self, holdings: List[Holding]):
        for holding in holdings:
            if not is_taxable_class(holding.asset_class):
                self.issues.append(ValidationIssue(
                    ValidationIssue.SEVERITY_INFO,
                    "Not taxable",
                    f"Holding {holding.name} ({holding.asset_class}) is ignored by the tax engine",
                    holding
                ))

    def check_orphaned_disposals(self, holding: Holding):
        """Disposals larger than the running position (cost basis falls back to 0)."""
        position = Decimal(0)

        for op in sort_operations(holding.operations):
            if op.kind.is_acquisition:
                position += op.quantity
            elif op.kind.is_disposal:
                if op.quantity > position:
                    self.issues.append(ValidationIssue(
                        ValidationIssue.SEVERITY_WARNING,
                        "Orphaned disposal",
                        f"Selling {op.quantity} {holding.ticker or holding.name} with only "
                        f"{position} held; the gain will be overstated",
                        holding,
                        op
                    ))
                position = max(Decimal(0), position - op.quantity)

    def check_zero_quantity_disposals(self, holding: Holding):
        for op in holding.operations:
            if op.kind.is_disposal and op.quantity == 0:
                self.issues.append(ValidationIssue(
                    ValidationIssue.SEVERITY_WARNING,
                    "Zero quantity",
                    f"Disposal {op.id} of {holding.name} has zero quantity",
                    holding,
                    op
                ))

    def check_totals(self, holding: Holding):
        """Flag totals that disagree with quantity * price (fees allowed either way)."""
        for op in holding.operations:
            if not (op.kind.is_acquisition or op.kind.is_disposal) or op.total == 0:
                continue

            gross = op.quantity * op.unit_price
            total = abs(op.total)
            candidates = (gross, gross + op.fees, gross - op.fees)

            if all(abs(total - expected) > TOTAL_TOLERANCE for expected in candidates):
                self.issues.append(ValidationIssue(
                    ValidationIssue.SEVERITY_WARNING,
                    "Total mismatch",
                    f"Operation {op.id} total {op.total} differs from quantity * price {gross}",
                    holding,
                    op
                ))

    def get_summary(self) -> dict:
        """Issue counts by severity."""
        summary = defaultdict(int)
        for issue in self.issues:
            summary[issue.severity] += 1
        return dict(summary)
