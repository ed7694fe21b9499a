# engine.py
"""
Public entry point: raw transactions + period -> TaxSummary.

Pipeline (one call, no shared state):
  normalize_transactions -> match_transactions -> aggregate_summary (-> TaxTierEngine)

The computation is pure and synchronous. Each call builds its own ledgers,
so calls for different users or periods may run in parallel; the FIFO pass
inside one call must not be split, since lot order decides the gains.
"""

from __future__ import annotations

import logging
from decimal import getcontext
from typing import Iterable, Optional

from .config import DEFAULT_CONFIG, TaxConfig
from .matcher import match_transactions
from .normalizer import RawRecord, normalize_transactions
from .periods import DateLike, resolve_bounds
from .schemas import Period, TaxSummary
from .summary import aggregate_summary
from .tax_tiers import TaxTierEngine

# Use sufficient precision for money math.
getcontext().prec = 28

logger = logging.getLogger(__name__)


def compute_tax_summary(
    transactions: Iterable[RawRecord],
    period_start: DateLike,
    period_end: DateLike,
    *,
    config: Optional[TaxConfig] = None,
) -> TaxSummary:
    """
    Build the period tax summary for one user's transaction history.

    transactions: Transaction objects or plain mappings, any order. Rows that
        fail validation are reported in `summary.skipped`, not raised.
    period_start / period_end: inclusive bounds; bare dates cover whole days.

    Raises InvalidPeriodError if start is after end.
    """
    cfg = config or DEFAULT_CONFIG
    start, end = resolve_bounds(period_start, period_end)

    batch = normalize_transactions(transactions, start, end)
    match = match_transactions(batch.transactions)
    summary = aggregate_summary(
        batch,
        match,
        TaxTierEngine(cfg.brackets),
        Period(start=start, end=end),
        round_dp=cfg.round_dp,
    )

    logger.debug(
        "Tax summary %s..%s: %d rows kept, %d skipped, net=%s tax=%s",
        start.isoformat(), end.isoformat(), len(batch.transactions), len(batch.skipped),
        summary.net_gain_loss, summary.estimated_tax,
    )
    return summary
