# normalizer.py
"""
Filtering, validation and ordering of raw transaction rows.

Responsibilities:
- Validate each row using Pydantic (Transaction). Rows that fail are
  excluded and reported in `skipped`; one bad row never aborts the batch.
- Keep only COMPLETED BUY/SELL rows inside the inclusive period.
- Sort by (timestamp, id) so FIFO matching is deterministic even when two
  rows share a timestamp.

This module is "pure" (no DB calls). It converts raw rows -> typed objects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Union

from pydantic import ValidationError

from .schemas import SkippedRow, Transaction, TxKind, TxStatus

logger = logging.getLogger(__name__)

PARTICIPATING_KINDS = {TxKind.BUY.value, TxKind.SELL.value}

RawRecord = Union[Transaction, Mapping[str, Any]]


@dataclass
class NormalizedBatch:
    transactions: List[Transaction] = field(default_factory=list)
    skipped: List[SkippedRow] = field(default_factory=list)


def _sort_key(tx: Transaction):
    # numeric ids (database primary keys) order as numbers, so 9 comes before 10
    if tx.id.isdecimal():
        return (tx.timestamp, 0, int(tx.id), tx.id)
    return (tx.timestamp, 1, 0, tx.id)


def _raw_id(record: Any) -> str | None:
    if isinstance(record, Mapping):
        raw = record.get("id")
    else:
        raw = getattr(record, "id", None)
    return None if raw is None else str(raw)


def _validate(record: RawRecord) -> Transaction:
    if isinstance(record, Transaction):
        return record
    if isinstance(record, Mapping):
        return Transaction.model_validate(dict(record))
    # ORM rows and other attribute carriers
    return Transaction.model_validate(record, from_attributes=True)


def participates(tx: Transaction, start: datetime, end: datetime) -> bool:
    """True when the row is a COMPLETED BUY/SELL inside [start, end]."""
    return (
        tx.kind in PARTICIPATING_KINDS
        and tx.status == TxStatus.COMPLETED.value
        and start <= tx.timestamp <= end
    )


def normalize_transactions(
    records: Iterable[RawRecord], start: datetime, end: datetime
) -> NormalizedBatch:
    """
    Turn arbitrary-order raw rows into the canonical chronological sequence.

    `start` and `end` must be timezone-aware (see periods.resolve_bounds).
    Returns a NormalizedBatch with the kept transactions and the rows that
    failed validation (row_number is the 0-based position in `records`).
    """
    batch = NormalizedBatch()

    for i, record in enumerate(records):
        try:
            tx = _validate(record)
        except ValidationError as ve:
            tx_id = _raw_id(record)
            logger.warning("Skipping malformed transaction row %d (id=%s): %d error(s)",
                           i, tx_id, ve.error_count())
            batch.skipped.append(
                SkippedRow(
                    row_number=i,
                    transaction_id=tx_id,
                    errors=ve.errors(include_url=False, include_context=False, include_input=False),
                )
            )
            continue

        if participates(tx, start, end):
            batch.transactions.append(tx)

    batch.transactions.sort(key=_sort_key)
    return batch
