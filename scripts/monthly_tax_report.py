"""
Monthly tax report from a ledger file.

Usage:
    python scripts/monthly_tax_report.py --ledger data/ledger.json --month 2024-03
    python scripts/monthly_tax_report.py --ledger data/ledger.csv --json-out out/2024-03.json --validate
"""
import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from modules.tax import settings
from modules.tax.export import export_operations_csv, export_to_json
from parsers.ledger_parser import load_holdings
from services.ledger_validator import LedgerValidator
from services.tax_report import MonthlyTaxReportService, darf_codes_due, has_carried_losses


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Monthly capital-gains tax (renda variável)")
    parser.add_argument("--ledger", required=True, help="Ledger file (.json or .csv)")
    parser.add_argument("--month", help="Target month YYYY-MM (default: current month)")
    parser.add_argument("--json-out", help="Write the full result as JSON")
    parser.add_argument("--csv-out", help="Write the operation details as CSV")
    parser.add_argument("--validate", action="store_true", help="Run ledger quality checks first")
    return parser.parse_args(argv)


def print_report(result, seal):
    currency = settings.REPORT_CURRENCY
    summary = result.summary

    print("=" * 70)
    print(f"IR Renda Variável - {result.month}")
    print("=" * 70)
    print(f"Total sales:     {currency} {summary.total_sales:>14,.2f}")
    print(f"Gains:           {currency} {summary.total_gains:>14,.2f}")
    print(f"Losses:          {currency} {summary.total_losses:>14,.2f}")
    print(f"Net result:      {currency} {summary.net_result:>14,.2f}")
    print(f"Tax due:         {currency} {summary.tax_due:>14,.2f}")
    print(f"Withheld (IRRF): {currency} {summary.withheld:>14,.2f}")
    print(f"Tax payable:     {currency} {summary.tax_payable:>14,.2f}")
    print()

    for breakdown in result.by_asset_class.values():
        swing, day = breakdown.swing_trade, breakdown.day_trade
        print(f"{breakdown.label} (DARF {breakdown.darf_code})")
        exempt = " [exempt]" if swing.exempt else ""
        print(f"  Swing trade: sales {swing.sales:,.2f}  net {swing.net:,.2f}  tax {swing.tax:,.2f}{exempt}")
        print(f"  Day trade:   sales {day.sales:,.2f}  net {day.net:,.2f}  tax {day.tax:,.2f}")
        print(f"  Loss used {breakdown.loss_used:,.2f}, remaining {breakdown.loss_remaining:,.2f}")
    print()

    codes = darf_codes_due(result)
    if summary.has_tax_due:
        print(f"DARF to pay: {currency} {summary.tax_payable:,.2f} (codes: {', '.join(codes)})")
    else:
        print("No tax payable this month")

    if has_carried_losses(result):
        carried = {k: f"{v:,.2f}" for k, v in result.loss_state.as_dict().items() if v < 0}
        print(f"Carried losses: {carried}")

    print(f"Calculation hash: {seal}")


def main(argv=None):
    args = parse_args(argv)

    holdings = load_holdings(args.ledger)

    if args.validate:
        issues = LedgerValidator().validate_all(holdings)
        for issue in issues:
            print(f"[{issue.severity}] {issue.category}: {issue.message}")
        if issues:
            print()

    service = MonthlyTaxReportService(holdings)
    result = service.report(args.month)

    print_report(result, service.seal(result))

    if args.json_out:
        export_to_json(result, args.json_out)
    if args.csv_out:
        export_operations_csv(result, args.csv_out)

    return 0


if __name__ == "__main__":
    sys.exit(main())
