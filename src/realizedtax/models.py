from __future__ import annotations
import datetime
from decimal import Decimal
from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import Numeric, TypeDecorator

from .schemas import STORE_DECIMAL_PLACES

# ---------- Base ----------
class Base(DeclarativeBase):
    pass

# ---------- Decimal helper (fixed STORE_DECIMAL_PLACES dp) ----------
class SqliteDecimal(TypeDecorator):
    impl = Numeric(38, STORE_DECIMAL_PLACES, asdecimal=True)
    cache_ok = True
    SCALE = Decimal(1).scaleb(-STORE_DECIMAL_PLACES)
    def process_bind_param(self, value, dialect):
        if value is None: return None
        return Decimal(value).quantize(self.SCALE)
    def process_result_value(self, value, dialect):
        if value is None: return None
        return Decimal(value).quantize(self.SCALE)

# ---------- ORM models ----------
class TransactionRow(Base):
    __tablename__ = "transactions"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    asset_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    # display label copied onto report rows
    asset_title: Mapped[str | None] = mapped_column(String(256), nullable=True)

    # Use String to avoid Enum friction with kinds the engine ignores (TRANSFER, ...)
    kind: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="COMPLETED")

    quantity: Mapped[Decimal] = mapped_column(SqliteDecimal, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(SqliteDecimal, nullable=False)
    fee: Mapped[Decimal] = mapped_column(SqliteDecimal, nullable=False, default=Decimal("0"))

    # Store as naive UTC datetimes in SQLite
    timestamp: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        default=lambda: datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None),
    )

Index("idx_transactions_user_ts", TransactionRow.user_id, TransactionRow.timestamp)
