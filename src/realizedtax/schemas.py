from __future__ import annotations

"""
Pydantic schemas (data models) for the tax engine's input and output.

- `Transaction` is the validated, immutable input row.
- `TaxSummary` and its parts are the sole output value.
- `TaxBracket` is one row of the static bracket table.

Why Decimal? Money + floating-point is dangerous. Decimal is exact. Floats
are accepted on input but converted through str() first, so 0.1 stays 0.1.
"""

import re
from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator


def _dec_to_str(v: Decimal) -> str:
    s = format(v, "f")
    return s.rstrip("0").rstrip(".") if "." in s else s


# Decimal that renders as a plain string in JSON ("1200", "0.15")
Money = Annotated[Decimal, PlainSerializer(_dec_to_str, return_type=str, when_used="json")]


class TxKind(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class TxStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


def _required_text(v: Any) -> str:
    if v is None:
        raise ValueError("field is required")
    s = str(v).strip()
    if not s:
        raise ValueError("field must not be blank")
    return s


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TransactionFields(BaseModel):
    """
    Fields and validation rules shared by stored and engine-side transactions.

    Fields:
      asset_id: the asset whose lots this row opens or closes.
      asset_title: display label supplied by the persistence layer.
      kind: BUY / SELL (other kinds are accepted but never matched).
      quantity: units bought or sold, strictly positive.
      unit_price: price per unit, never negative.
      fee: transaction fee in the same currency as unit_price.
      timestamp: when it happened (stored as aware UTC).
      status: only COMPLETED rows participate.
    """

    asset_id: str
    asset_title: Optional[str] = None
    kind: str = Field(..., examples=["BUY", "SELL"])
    quantity: Decimal = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0)
    fee: Decimal = Field(Decimal("0"), ge=0)
    timestamp: datetime
    status: str = TxStatus.COMPLETED.value

    @field_validator("asset_id", mode="before")
    @classmethod
    def _asset_id_text(cls, v: Any) -> str:
        return _required_text(v)

    @field_validator("kind", "status", mode="before")
    @classmethod
    def _normalize_code(cls, v: Any) -> str:
        if v is None:
            raise ValueError("field is required")
        if isinstance(v, Enum):
            v = v.value
        s = str(v).strip().upper().replace("-", "_").replace(" ", "_")
        if not re.fullmatch(r"[A-Z0-9_]+", s):
            raise ValueError(f"invalid code: {v!r}")
        return s

    @field_validator("quantity", "unit_price", mode="before")
    @classmethod
    def _float_via_str(cls, v: Any) -> Any:
        if v == "":
            return None
        return str(v) if isinstance(v, float) else v

    @field_validator("fee", mode="before")
    @classmethod
    def _fee_default(cls, v: Any) -> Any:
        if v is None or v == "":
            return Decimal("0")
        return str(v) if isinstance(v, float) else v

    @field_validator("timestamp", mode="before")
    @classmethod
    def _date_to_datetime(cls, v: Any) -> Any:
        if isinstance(v, date) and not isinstance(v, datetime):
            return datetime.combine(v, time.min)
        return v

    @field_validator("timestamp")
    @classmethod
    def _to_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class Transaction(TransactionFields):
    """
    Normalized transaction shape consumed by the engine. Immutable.

    `id` is the unique row id (ints are coerced to str) and the tie-breaker
    when two rows share a timestamp.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str

    @field_validator("id", mode="before")
    @classmethod
    def _required_id(cls, v: Any) -> str:
        return _required_text(v)

    @property
    def total_value(self) -> Decimal:
        return self.quantity * self.unit_price

    @property
    def is_buy(self) -> bool:
        return self.kind == TxKind.BUY.value

    @property
    def is_sell(self) -> bool:
        return self.kind == TxKind.SELL.value


class TaxBracket(BaseModel):
    """One tier of the bracket table: [lower_bound, upper_bound) taxed at `rate`."""

    model_config = ConfigDict(frozen=True)

    lower_bound: Money = Field(..., ge=0)
    upper_bound: Optional[Money] = None  # None means no upper limit
    rate: Money = Field(..., ge=0, le=1)

    @field_validator("lower_bound", "upper_bound", "rate", mode="before")
    @classmethod
    def _float_via_str(cls, v: Any) -> Any:
        return str(v) if isinstance(v, float) else v

    def contains(self, amount: Decimal) -> bool:
        if amount < self.lower_bound:
            return False
        return self.upper_bound is None or amount < self.upper_bound


# ---------- API payloads (persistence side) ----------

STORE_DECIMAL_PLACES = 6


class TransactionCreate(TransactionFields):
    """
    Payload for storing one transaction. Same rules as Transaction, minus the
    id (assigned by the database).
    Amounts may carry at most STORE_DECIMAL_PLACES digits after the point,
    the scale of the stored columns; anything finer would be rounded away.
    """

    asset_id: str = Field(..., min_length=1, max_length=64)
    asset_title: Optional[str] = Field(None, max_length=256)
    quantity: Decimal = Field(..., gt=0, decimal_places=STORE_DECIMAL_PLACES)
    unit_price: Decimal = Field(..., ge=0, decimal_places=STORE_DECIMAL_PLACES)
    fee: Decimal = Field(Decimal("0"), ge=0, decimal_places=STORE_DECIMAL_PLACES)


class TransactionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    asset_id: str
    asset_title: Optional[str] = None
    kind: str
    status: str
    quantity: Money
    unit_price: Money
    fee: Money
    timestamp: datetime


# ---------- Output ----------

class Period(BaseModel):
    start: datetime
    end: datetime


class AssetSummary(BaseModel):
    asset_id: str
    asset_title: Optional[str] = None
    buy_count: int = 0
    sell_count: int = 0
    invested: Money = Decimal("0")
    received: Money = Decimal("0")
    realized_gains: Money = Decimal("0")
    realized_losses: Money = Decimal("0")
    gain_loss: Money = Decimal("0")
    open_quantity: Money = Decimal("0")
    oversold_quantity: Money = Decimal("0")


class _LineBase(BaseModel):
    id: str
    asset_id: str
    asset_title: Optional[str] = None
    timestamp: datetime
    quantity: Money
    unit_price: Money
    total_value: Money
    fee: Money


class BuyLine(_LineBase):
    """A BUY row in the report; it never carries a realized result."""

    kind: Literal["BUY"] = "BUY"
    gain_loss: None = None


class SellLine(_LineBase):
    """A SELL row annotated with the result of its FIFO match."""

    kind: Literal["SELL"] = "SELL"
    quantity_matched: Money
    cost_basis: Money
    average_unit_cost: Optional[Money] = None  # None when nothing could be matched
    proceeds: Money
    gain_loss: Money


TransactionLine = Annotated[Union[BuyLine, SellLine], Field(discriminator="kind")]


class OversoldAnomaly(BaseModel):
    """A SELL for more units than the asset's open lots held."""

    asset_id: str
    sell_transaction_id: str
    timestamp: datetime
    quantity_requested: Money
    quantity_available: Money
    shortfall: Money
    unmatched_proceeds: Money


class SkippedRow(BaseModel):
    """An input row rejected by validation; the rest of the batch still runs."""

    row_number: int
    transaction_id: Optional[str] = None
    errors: List[Any]


class TaxSummary(BaseModel):
    period: Period
    total_buys: int = 0
    total_sells: int = 0
    total_invested: Money = Decimal("0")
    total_received: Money = Decimal("0")
    realized_gains: Money = Decimal("0")
    realized_losses: Money = Decimal("0")
    net_gain_loss: Money = Decimal("0")
    estimated_tax: Money = Decimal("0")
    tax_rate: Money = Decimal("0")
    by_asset: List[AssetSummary] = Field(default_factory=list)
    transactions: List[TransactionLine] = Field(default_factory=list)
    anomalies: List[OversoldAnomaly] = Field(default_factory=list)
    skipped: List[SkippedRow] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
