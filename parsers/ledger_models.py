"""
Ledger Input Model - Holdings and Operations

Pydantic models for the operation ledger consumed by the tax engine:
- Operation kinds (buy/sell/deposit/withdraw/dividend)
- Asset class normalization (stock, fii, etf, crypto + passthrough)
- Numeric coercion of values exported by the ledger (strings, None, floats)

Values arrive already decrypted; this module only normalizes shape and types.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import math
from enum import Enum
from decimal import Decimal, InvalidOperation
from datetime import date, datetime, time
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class OperationKindError(ValueError):
    """Raised when an operation kind cannot be normalized."""
    pass


class OperationKind(str, Enum):
    """Closed set of ledger operation kinds."""

    BUY = "buy"
    SELL = "sell"
    DEPOSIT = "deposit"    # buy synonym for some instrument types
    WITHDRAW = "withdraw"  # sell synonym for some instrument types
    DIVIDEND = "dividend"

    @property
    def is_acquisition(self) -> bool:
        return self in (OperationKind.BUY, OperationKind.DEPOSIT)

    @property
    def is_disposal(self) -> bool:
        return self in (OperationKind.SELL, OperationKind.WITHDRAW)

    @classmethod
    def normalize(cls, value: str) -> 'OperationKind':
        """Normalize operation kind from ledger/broker spellings.

        Raises:
            OperationKindError: If the kind cannot be mapped.
        """
        if isinstance(value, cls):
            return value

        kind_map = {
            "BUY": cls.BUY,
            "COMPRA": cls.BUY,
            "SELL": cls.SELL,
            "VENDA": cls.SELL,
            "DEPOSIT": cls.DEPOSIT,
            "APORTE": cls.DEPOSIT,
            "WITHDRAW": cls.WITHDRAW,
            "WITHDRAWAL": cls.WITHDRAW,
            "RESGATE": cls.WITHDRAW,
            "DIVIDEND": cls.DIVIDEND,
            "DIVIDENDO": cls.DIVIDEND,
        }

        clean_value = str(value).strip().upper().replace(" ", "").replace("-", "").replace("_", "")
        result = kind_map.get(clean_value)

        if result is None:
            raise OperationKindError(f"Unknown operation kind: '{value}'")

        return result


class AssetClass(str, Enum):
    """Asset classes with a variable-income tax regime."""

    STOCK = "stock"
    FII = "fii"
    ETF = "etf"
    CRYPTO = "crypto"

    @classmethod
    def normalize(cls, value: Any) -> str:
        """
        Normalize an asset class label.

        Known aliases map onto the taxable classes. Anything else is kept
        (lower-cased) so holdings such as fixed income survive loading and are
        skipped later by the tax engine.
        """
        if isinstance(value, cls):
            return value.value
        if not value:
            return "unknown"

        asset_map = {
            # Equities
            "stock": cls.STOCK,
            "stocks": cls.STOCK,
            "equity": cls.STOCK,
            "acao": cls.STOCK,
            "acoes": cls.STOCK,
            "ação": cls.STOCK,
            "ações": cls.STOCK,

            # Real-estate funds
            "fii": cls.FII,
            "fiis": cls.FII,
            "fund": cls.FII,
            "reit": cls.FII,
            "fundo imobiliario": cls.FII,
            "fundo imobiliário": cls.FII,

            # ETFs
            "etf": cls.ETF,
            "etfs": cls.ETF,

            # Crypto
            "crypto": cls.CRYPTO,
            "cryptocurrency": cls.CRYPTO,
            "cripto": cls.CRYPTO,
            "criptomoeda": cls.CRYPTO,
        }

        clean_value = str(value).strip().lower().replace("-", " ").replace("_", " ")
        matched = asset_map.get(clean_value)
        return matched.value if matched else clean_value


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a ledger value into Decimal.

    Missing or unparsable values become 0, mirroring how the ledger export
    treats empty numeric columns. Floats go through str() to avoid binary
    artifacts (0.1 -> Decimal("0.1")).
    """
    if value is None or isinstance(value, bool):
        return Decimal(0)
    if isinstance(value, Decimal):
        return value if value.is_finite() else Decimal(0)
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return Decimal(0)
        return Decimal(str(value))

    clean = str(value).strip().replace("R$", "").replace(" ", "")
    if not clean:
        return Decimal(0)

    if "," in clean and "." in clean:
        if clean.rfind(",") > clean.rfind("."):
            # 1.234,56
            clean = clean.replace(".", "").replace(",", ".")
        else:
            # 1,234.56
            clean = clean.replace(",", "")
    elif "," in clean:
        clean = clean.replace(",", ".")

    try:
        parsed = Decimal(clean)
    except InvalidOperation:
        return Decimal(0)

    return parsed if parsed.is_finite() else Decimal(0)


class Operation(BaseModel):
    """
    Immutable ledger fact for one holding.

    Accepts both snake_case names and the ledger's JSON spelling
    (holdingId / investmentId, type, price / unitPrice).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    holding_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("holding_id", "holdingId", "investmentId"),
    )
    kind: OperationKind = Field(validation_alias=AliasChoices("kind", "type"))
    date: datetime
    quantity: Decimal = Decimal(0)
    unit_price: Decimal = Field(
        default=Decimal(0),
        validation_alias=AliasChoices("unit_price", "unitPrice", "price"),
    )
    total: Decimal = Decimal(0)
    fees: Decimal = Decimal(0)
    notes: Optional[str] = None

    @field_validator('id', 'holding_id', mode='before')
    @classmethod
    def coerce_identifier(cls, v):
        if v is None:
            return v
        return str(v)

    @field_validator('kind', mode='before')
    @classmethod
    def parse_kind(cls, v):
        return OperationKind.normalize(v)

    @field_validator('date', mode='before')
    @classmethod
    def parse_date(cls, v):
        """Accept dates, ISO strings (with or without time) and datetimes."""
        if isinstance(v, datetime):
            return v
        if isinstance(v, date):
            return datetime.combine(v, time())
        if isinstance(v, str):
            text = v.strip()
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            return datetime.fromisoformat(text)
        return v

    @field_validator('quantity', 'unit_price', 'total', 'fees', mode='before')
    @classmethod
    def parse_decimal(cls, v):
        return to_decimal(v)

    @field_validator('quantity', 'unit_price', 'fees')
    @classmethod
    def non_negative_values(cls, v):
        """Quantities, prices and fees are magnitudes; direction comes from kind."""
        if v < 0:
            raise ValueError(f'Value cannot be negative: {v}')
        return v

    @field_validator('notes', mode='before')
    @classmethod
    def empty_notes(cls, v):
        if v is None:
            return None
        if isinstance(v, float) and math.isnan(v):
            return None
        return str(v) or None


class Holding(BaseModel):
    """A position in one instrument together with its operations."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    ticker: Optional[str] = None
    asset_class: str = Field(validation_alias=AliasChoices("asset_class", "assetClass", "type"))
    operations: List[Operation] = Field(default_factory=list)

    @field_validator('id', mode='before')
    @classmethod
    def coerce_identifier(cls, v):
        return str(v)

    @field_validator('ticker', mode='before')
    @classmethod
    def empty_ticker(cls, v):
        if v is None or (isinstance(v, float) and math.isnan(v)):
            return None
        return str(v).strip() or None

    @field_validator('asset_class', mode='before')
    @classmethod
    def normalize_asset_class(cls, v):
        return AssetClass.normalize(v)

    @model_validator(mode='after')
    def bind_operations(self):
        """Attach operations to this holding; reject operations of another one."""
        bound = []
        for op in self.operations:
            if op.holding_id is None:
                op = op.model_copy(update={"holding_id": self.id})
            elif op.holding_id != self.id:
                raise ValueError(
                    f"Operation {op.id} belongs to holding {op.holding_id}, not {self.id}"
                )
            bound.append(op)
        self.operations = bound
        return self
