"""
Tax Result Export

Tabular and JSON views of a MonthlyTaxResult for reports:
- Operation details as a DataFrame / CSV
- Per-asset-class breakdown as a DataFrame
- Full result as JSON with its SHA256 seal

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import json
from pathlib import Path

import pandas as pd

from core.hashing import calculate_sha256, json_default
from modules.tax.results import MonthlyTaxResult
from utils.logging_config import setup_logger, log_dataframe_info

logger = setup_logger(__name__)

OPERATION_COLUMNS = [
    "date", "holding_name", "ticker", "asset_class", "trade_kind",
    "quantity", "sale_price", "average_price", "sale_total", "fees", "gain",
]

BREAKDOWN_COLUMNS = [
    "asset_class", "label", "darf_code",
    "swing_sales", "swing_net", "swing_exempt", "swing_tax",
    "day_sales", "day_net", "day_tax",
    "loss_used", "loss_remaining", "withheld", "tax_due",
]


def operations_to_dataframe(result: MonthlyTaxResult) -> pd.DataFrame:
    """One row per disposal, newest first (same order as the result)."""
    rows = []
    for detail in result.operations:
        row = detail.to_dict()
        for column in ("quantity", "sale_price", "average_price", "sale_total", "fees", "gain"):
            row[column] = float(row[column])
        rows.append(row)

    df = pd.DataFrame(rows, columns=["operation_id", "holding_id"] + OPERATION_COLUMNS)
    log_dataframe_info(logger, df, f"Operations {result.month}")
    return df


def breakdown_to_dataframe(result: MonthlyTaxResult) -> pd.DataFrame:
    """One row per asset class with swing/day sub-totals."""
    rows = []
    for asset_class, b in result.by_asset_class.items():
        rows.append({
            "asset_class": asset_class,
            "label": b.label,
            "darf_code": b.darf_code,
            "swing_sales": float(b.swing_trade.sales),
            "swing_net": float(b.swing_trade.net),
            "swing_exempt": b.swing_trade.exempt,
            "swing_tax": float(b.swing_trade.tax),
            "day_sales": float(b.day_trade.sales),
            "day_net": float(b.day_trade.net),
            "day_tax": float(b.day_trade.tax),
            "loss_used": float(b.loss_used),
            "loss_remaining": float(b.loss_remaining),
            "withheld": float(b.withheld),
            "tax_due": float(b.tax_due),
        })

    return pd.DataFrame(rows, columns=BREAKDOWN_COLUMNS)


def export_operations_csv(result: MonthlyTaxResult, filepath: str) -> Path:
    """Write the operation details of a month to CSV."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    operations_to_dataframe(result).to_csv(path, index=False)

    logger.info(f"Exported {len(result.operations)} operations to {path}")
    return path


def export_to_json(result: MonthlyTaxResult, filepath: str) -> Path:
    """Write the full result plus its calculation hash to a JSON file."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = result.to_dict()
    payload["calculation_hash"] = calculate_sha256(result.to_dict())

    with open(path, 'w', encoding='utf-8') as f:
        json.dump(payload, f, indent=2, default=json_default, ensure_ascii=False)

    logger.info(f"Exported tax result for {result.month} to {path}")
    return path
