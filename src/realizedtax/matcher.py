# matcher.py
"""
Deterministic FIFO gain/loss matcher.

One forward pass over a normalized (chronological) transaction sequence:
- BUY: open a lot at the buy's unit price; invested += quantity*price + fee.
- SELL: consume lots FIFO; proceeds = quantity*price - fee; emit one
  RealizedEvent; received += quantity*price.

Fees reduce proceeds and are never added to cost basis.

If a sell exceeds the open lots (short position), only the available units
are matched. Proceeds and fee are prorated to the matched share, the
unmatched remainder is reported as an OversoldAnomaly and no zero-cost lot
is invented for it.

Design:
- This file is *pure logic* (no DB calls). Give it a list[Transaction]; get
  back a MatchResult. Every call uses its own LedgerBook.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from .ledger import ZERO, Consumption, LedgerBook, MatchedLot
from .schemas import OversoldAnomaly, Transaction

logger = logging.getLogger(__name__)


@dataclass
class RealizedEvent:
    """
    A realized gain/loss produced by one SELL, aggregating every lot it consumed.
    """

    asset_id: str
    sell_transaction_id: str
    timestamp: datetime
    quantity_sold: Decimal
    quantity_matched: Decimal
    cost_basis: Decimal
    proceeds: Decimal  # net of the (prorated) fee
    fee_applied: Decimal
    gain_or_loss: Decimal
    matched_lots: List[MatchedLot] = field(default_factory=list)
    shortfall: Decimal = ZERO

    @property
    def is_gain(self) -> bool:
        return self.gain_or_loss > 0

    @property
    def is_loss(self) -> bool:
        return self.gain_or_loss < 0

    @property
    def average_unit_cost(self) -> Optional[Decimal]:
        if self.quantity_matched == 0:
            return None
        return self.cost_basis / self.quantity_matched


@dataclass
class AssetTotals:
    asset_id: str
    asset_title: Optional[str] = None
    buy_count: int = 0
    sell_count: int = 0
    invested: Decimal = ZERO
    received: Decimal = ZERO
    oversold_quantity: Decimal = ZERO


@dataclass
class MatchResult:
    events: List[RealizedEvent] = field(default_factory=list)
    asset_totals: Dict[str, AssetTotals] = field(default_factory=dict)
    anomalies: List[OversoldAnomaly] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    book: LedgerBook = field(default_factory=LedgerBook)
    total_invested: Decimal = ZERO
    total_received: Decimal = ZERO
    total_buys: int = 0
    total_sells: int = 0


def _totals_for(result: MatchResult, tx: Transaction) -> AssetTotals:
    totals = result.asset_totals.get(tx.asset_id)
    if totals is None:
        totals = result.asset_totals[tx.asset_id] = AssetTotals(asset_id=tx.asset_id)
    if totals.asset_title is None and tx.asset_title:
        totals.asset_title = tx.asset_title
    return totals


def _apply_buy(result: MatchResult, tx: Transaction) -> None:
    result.book.ledger(tx.asset_id).acquire(tx.quantity, tx.unit_price, tx.timestamp, lot_ref=tx.id)

    cost = tx.total_value + tx.fee
    totals = _totals_for(result, tx)
    totals.buy_count += 1
    totals.invested += cost
    result.total_buys += 1
    result.total_invested += cost


def _apply_sell(result: MatchResult, tx: Transaction) -> RealizedEvent:
    ledger = result.book.get(tx.asset_id)
    available = ledger.open_quantity if ledger is not None else ZERO

    if ledger is not None:
        consumption = ledger.consume(tx.quantity)
    else:
        consumption = Consumption(shortfall=tx.quantity)

    shortfall = consumption.shortfall
    quantity_matched = consumption.quantity_matched
    cost_basis = consumption.cost_basis

    if shortfall == 0:
        fee_applied = tx.fee
    else:
        fee_applied = tx.fee * quantity_matched / tx.quantity
    proceeds = quantity_matched * tx.unit_price - fee_applied

    event = RealizedEvent(
        asset_id=tx.asset_id,
        sell_transaction_id=tx.id,
        timestamp=tx.timestamp,
        quantity_sold=tx.quantity,
        quantity_matched=quantity_matched,
        cost_basis=cost_basis,
        proceeds=proceeds,
        fee_applied=fee_applied,
        gain_or_loss=proceeds - cost_basis,
        matched_lots=consumption.matched,
        shortfall=shortfall,
    )
    result.events.append(event)

    totals = _totals_for(result, tx)
    totals.sell_count += 1
    totals.received += tx.total_value
    result.total_sells += 1
    result.total_received += tx.total_value

    if shortfall > 0:
        unmatched_proceeds = (tx.total_value - tx.fee) - proceeds
        totals.oversold_quantity += shortfall
        result.anomalies.append(
            OversoldAnomaly(
                asset_id=tx.asset_id,
                sell_transaction_id=tx.id,
                timestamp=tx.timestamp,
                quantity_requested=tx.quantity,
                quantity_available=available,
                shortfall=shortfall,
                unmatched_proceeds=unmatched_proceeds,
            )
        )
        msg = (
            f"Selling {tx.quantity} {tx.asset_id} at {tx.timestamp.isoformat()} but only "
            f"{available} available in lots. Excluding {shortfall} {tx.asset_id} from realized gain."
        )
        result.warnings.append(msg)
        logger.warning(msg)

    return event


def match_transactions(transactions: Sequence[Transaction]) -> MatchResult:
    """
    Core FIFO pass. `transactions` must already be normalized (filtered and
    sorted by (timestamp, id)); reordering them changes which lots match.
    """
    result = MatchResult()

    for tx in transactions:
        if tx.is_buy:
            _apply_buy(result, tx)
        elif tx.is_sell:
            _apply_sell(result, tx)
        else:
            msg = f"Unknown transaction kind '{tx.kind}' at {tx.timestamp.isoformat()}; skipping."
            result.warnings.append(msg)
            logger.warning(msg)

    logger.debug(
        "FIFO pass: %d buys, %d sells, %d assets, %d anomalies",
        result.total_buys, result.total_sells, len(result.asset_totals), len(result.anomalies),
    )
    return result
