"""Ledger loader for JSON exports and flat CSV files of holdings and operations."""

import json
from pathlib import Path
from typing import Any, Dict, List, Union

import pandas as pd
from pydantic import ValidationError

from parsers.ledger_models import Holding
from utils.logging_config import setup_logger

logger = setup_logger(__name__)


class LedgerFormatError(ValueError):
    """Raised when a ledger file cannot be read or has the wrong shape."""
    pass


CSV_COLUMNS = [
    "holding_id", "holding_name", "ticker", "asset_class",
    "operation_id", "kind", "date", "quantity", "unit_price", "total", "fees", "notes",
]

REQUIRED_CSV_COLUMNS = {"holding_id", "operation_id", "kind", "date", "quantity", "unit_price"}


def parse_holdings(records: List[Dict[str, Any]]) -> List[Holding]:
    """
    Validate raw holding records (with nested operations) into Holdings.

    Raises:
        pydantic.ValidationError: If a record is malformed
    """
    holdings = [Holding.model_validate(record) for record in records]
    operation_count = sum(len(h.operations) for h in holdings)
    logger.debug(f"Parsed {len(holdings)} holdings with {operation_count} operations")
    return holdings


def load_holdings_from_json(source: Union[str, Path]) -> List[Holding]:
    """
    Load holdings from a JSON file.

    Accepts either a list of holdings or an object with a "holdings" list.
    """
    try:
        with open(source, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise LedgerFormatError(f"Cannot read ledger {source}: {e}") from e

    if isinstance(data, dict):
        data = data.get("holdings")

    if not isinstance(data, list):
        raise LedgerFormatError(f"Ledger {source} must contain a list of holdings")

    return parse_holdings(data)


def load_holdings_from_csv(source: Union[str, Path]) -> List[Holding]:
    """
    Load holdings from a flat CSV, one row per operation.

    Rows are grouped by holding_id; holding attributes are taken from the
    first row of each holding and operations keep file order.

    Raises:
        LedgerFormatError: If the file cannot be read, lacks required columns
            or has a row without holding_id
    """
    try:
        df = pd.read_csv(source, dtype={"holding_id": str, "operation_id": str, "ticker": str})
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise LedgerFormatError(f"Cannot read ledger {source}: {e}") from e

    df.columns = [str(c).strip().lower() for c in df.columns]

    missing = REQUIRED_CSV_COLUMNS - set(df.columns)
    if missing:
        raise LedgerFormatError(f"Ledger {source} is missing columns: {', '.join(sorted(missing))}")

    for column in CSV_COLUMNS:
        if column not in df.columns:
            df[column] = None

    # NaN -> None for optional text fields
    df = df.astype(object).where(pd.notna(df), None)

    records: Dict[str, Dict[str, Any]] = {}
    for line, row in enumerate(df.to_dict(orient="records"), start=2):
        holding_id = str(row["holding_id"]).strip() if row["holding_id"] is not None else ""
        if not holding_id:
            raise LedgerFormatError(f"Ledger {source} line {line}: holding_id is blank")

        record = records.setdefault(holding_id, {
            "id": holding_id,
            "name": row["holding_name"] or row["ticker"] or holding_id,
            "ticker": row["ticker"],
            "asset_class": row["asset_class"],
            "operations": [],
        })
        record["operations"].append({
            "id": row["operation_id"],
            "holding_id": holding_id,
            "kind": row["kind"],
            "date": row["date"],
            "quantity": row["quantity"],
            "unit_price": row["unit_price"],
            "total": row["total"],
            "fees": row["fees"],
            "notes": row["notes"],
        })

    logger.info(f"Loaded {len(df)} operations for {len(records)} holdings from {source}")
    return parse_holdings(list(records.values()))


def load_holdings(source: Union[str, Path]) -> List[Holding]:
    """Load a ledger file, choosing the format by extension."""
    suffix = Path(source).suffix.lower()

    try:
        if suffix == ".json":
            return load_holdings_from_json(source)
        if suffix == ".csv":
            return load_holdings_from_csv(source)
    except ValidationError as e:
        logger.error(f"Invalid ledger record in {source}: {e.error_count()} error(s)")
        raise

    raise LedgerFormatError(f"Unsupported ledger format '{suffix}' (expected .json or .csv)")
