"""
Hashing Module - SHA256 Audit Logic

Provides canonical JSON serialization and SHA256 hashing for sealing
monthly tax results. Two computations over the same ledger, month and
carried losses produce the same canonical JSON and therefore the same seal.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any


def json_default(o: Any):
    """JSON fallback for Decimal, dates and enums."""
    if isinstance(o, Decimal):
        return float(o)
    elif isinstance(o, (date, datetime)):
        return o.isoformat()
    elif isinstance(o, Enum):
        return o.value
    elif hasattr(o, 'to_dict'):
        return o.to_dict()
    else:
        raise TypeError(f"Object of type {type(o).__name__} is not JSON serializable")


def canonical_json_dumps(obj: Any) -> str:
    """
    Serialize object to canonical JSON string.

    Ensures deterministic serialization for hashing:
    - Keys sorted alphabetically
    - No whitespace
    - Date/Decimal conversion

    Args:
        obj: Object to serialize (dict, list, or primitive)

    Returns:
        Canonical JSON string

    Example:
        >>> canonical_json_dumps({"tax_due": Decimal("123.45"), "date": date(2024, 1, 15)})
        '{"date":"2024-01-15","tax_due":123.45}'
    """
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(',', ':'),
        default=json_default,
        ensure_ascii=True
    )


def calculate_sha256(data: Any) -> str:
    """
    Calculate SHA256 hash of data.

    Args:
        data: Data to hash (will be serialized to canonical JSON)

    Returns:
        SHA256 hex digest prefixed with 'sha256:'
    """
    json_str = canonical_json_dumps(data)
    hash_obj = hashlib.sha256(json_str.encode('utf-8'))
    return f"sha256:{hash_obj.hexdigest()}"


def verify_hash(data: Any, expected_hash: str) -> bool:
    """
    Verify that data matches expected hash.

    Args:
        data: Data to verify
        expected_hash: Expected hash (with 'sha256:' prefix)

    Returns:
        True if hash matches, False otherwise
    """
    return calculate_sha256(data) == expected_hash
