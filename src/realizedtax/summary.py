# summary.py
"""
Fold the matcher's output into the final TaxSummary.

No matching happens here: realized gains are the sum of positive events,
realized losses the sum of |negative events| (zero-result sells count as
neither), and the net is handed to the TaxTierEngine.
"""

from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal
from typing import Dict, List

from .ledger import ZERO
from .matcher import MatchResult, RealizedEvent
from .normalizer import NormalizedBatch
from .schemas import AssetSummary, BuyLine, Period, SellLine, TaxSummary, Transaction
from .tax_tiers import TaxTierEngine


def _quantum(round_dp: int) -> Decimal:
    return Decimal(1).scaleb(-round_dp)


def _line_fields(tx: Transaction) -> dict:
    return dict(
        id=tx.id,
        asset_id=tx.asset_id,
        asset_title=tx.asset_title,
        timestamp=tx.timestamp,
        quantity=tx.quantity,
        unit_price=tx.unit_price,
        total_value=tx.total_value,
        fee=tx.fee,
    )


def _sell_line(tx: Transaction, ev: RealizedEvent) -> SellLine:
    return SellLine(
        **_line_fields(tx),
        quantity_matched=ev.quantity_matched,
        cost_basis=ev.cost_basis,
        average_unit_cost=ev.average_unit_cost,
        proceeds=ev.proceeds,
        gain_loss=ev.gain_or_loss,
    )


def _by_asset(match: MatchResult) -> List[AssetSummary]:
    gains: Dict[str, Decimal] = {}
    losses: Dict[str, Decimal] = {}
    for ev in match.events:
        if ev.is_gain:
            gains[ev.asset_id] = gains.get(ev.asset_id, ZERO) + ev.gain_or_loss
        elif ev.is_loss:
            losses[ev.asset_id] = losses.get(ev.asset_id, ZERO) + abs(ev.gain_or_loss)

    rows: List[AssetSummary] = []
    for asset_id in sorted(match.asset_totals):
        t = match.asset_totals[asset_id]
        g = gains.get(asset_id, ZERO)
        l = losses.get(asset_id, ZERO)
        rows.append(
            AssetSummary(
                asset_id=asset_id,
                asset_title=t.asset_title,
                buy_count=t.buy_count,
                sell_count=t.sell_count,
                invested=t.invested,
                received=t.received,
                realized_gains=g,
                realized_losses=l,
                gain_loss=g - l,
                open_quantity=match.book.open_quantity(asset_id),
                oversold_quantity=t.oversold_quantity,
            )
        )
    return rows


def aggregate_summary(
    batch: NormalizedBatch,
    match: MatchResult,
    tiers: TaxTierEngine,
    period: Period,
    round_dp: int = 2,
) -> TaxSummary:
    realized_gains = sum((ev.gain_or_loss for ev in match.events if ev.is_gain), ZERO)
    realized_losses = sum((abs(ev.gain_or_loss) for ev in match.events if ev.is_loss), ZERO)
    net = realized_gains - realized_losses
    estimate = tiers.estimate(net)

    # events were emitted one per SELL, in the same order as the sells
    events = iter(match.events)
    lines = []
    for tx in batch.transactions:
        if tx.is_buy:
            lines.append(BuyLine(**_line_fields(tx)))
        elif tx.is_sell:
            lines.append(_sell_line(tx, next(events)))

    return TaxSummary(
        period=period,
        total_buys=match.total_buys,
        total_sells=match.total_sells,
        total_invested=match.total_invested,
        total_received=match.total_received,
        realized_gains=realized_gains,
        realized_losses=realized_losses,
        net_gain_loss=net,
        estimated_tax=estimate.estimated_tax.quantize(_quantum(round_dp), rounding=ROUND_HALF_EVEN),
        tax_rate=estimate.rate,
        by_asset=_by_asset(match),
        transactions=lines,
        anomalies=list(match.anomalies),
        skipped=list(batch.skipped),
        warnings=list(match.warnings),
    )
