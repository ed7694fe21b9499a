"""
Transaction store queries used by the API.

The engine never touches the database; these helpers load a user's rows
and hand them over as plain mappings.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .models import TransactionRow
from .normalizer import PARTICIPATING_KINDS
from .schemas import TransactionCreate, TxStatus, as_utc


def _naive_utc(ts: datetime) -> datetime:
    # SQLite stores naive UTC
    return as_utc(ts).replace(tzinfo=None)


def add_transactions(session: Session, user_id: str, items: Sequence[TransactionCreate]) -> List[TransactionRow]:
    rows = [
        TransactionRow(
            user_id=user_id,
            asset_id=item.asset_id,
            asset_title=item.asset_title,
            kind=item.kind,
            status=item.status,
            quantity=item.quantity,
            unit_price=item.unit_price,
            fee=item.fee,
            timestamp=_naive_utc(item.timestamp),
        )
        for item in items
    ]
    session.add_all(rows)
    session.flush()  # assign ids
    return rows


def load_user_transactions(
    session: Session, user_id: str, start: datetime, end: datetime
) -> List[Dict[str, Any]]:
    """
    COMPLETED BUY/SELL rows of `user_id` with start <= timestamp <= end,
    oldest first, as engine-ready mappings (asset_title included).
    """
    stmt = (
        select(TransactionRow)
        .where(
            TransactionRow.user_id == user_id,
            TransactionRow.status == TxStatus.COMPLETED.value,
            TransactionRow.kind.in_(sorted(PARTICIPATING_KINDS)),
            TransactionRow.timestamp >= _naive_utc(start),
            TransactionRow.timestamp <= _naive_utc(end),
        )
        .order_by(TransactionRow.timestamp.asc(), TransactionRow.id.asc())
    )
    return [
        {
            "id": r.id,
            "asset_id": r.asset_id,
            "asset_title": r.asset_title,
            "kind": r.kind,
            "status": r.status,
            "quantity": r.quantity,
            "unit_price": r.unit_price,
            "fee": r.fee,
            "timestamp": r.timestamp,
        }
        for r in session.scalars(stmt)
    ]


def list_user_transactions(
    session: Session, user_id: str, page: int, page_size: int
) -> Tuple[List[TransactionRow], int]:
    total = session.scalar(
        select(func.count()).select_from(TransactionRow).where(TransactionRow.user_id == user_id)
    ) or 0
    stmt = (
        select(TransactionRow)
        .where(TransactionRow.user_id == user_id)
        .order_by(TransactionRow.timestamp.desc(), TransactionRow.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(session.scalars(stmt)), total
