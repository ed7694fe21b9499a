# ledger.py
"""
Per-asset FIFO queues of open acquisition lots.

A LotLedger is created lazily by LedgerBook on the first BUY of an asset and
lives only for one engine call. Lots are appended at the tail and consumed
from the head (oldest first).
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Deque, Dict, Iterator, List

ZERO = Decimal("0")


@dataclass
class Lot:
    """
    An acquisition lot for one asset.
    - lot_ref: id of the BUY transaction that opened it
    - quantity: how much is still available to be sold
    - unit_cost: basis per unit (the BUY's unit price; fees are not capitalised)
    """

    asset_id: str
    lot_ref: str
    quantity: Decimal
    unit_cost: Decimal
    acquired_at: datetime


@dataclass
class MatchedLot:
    """How much of a sell was taken from one specific lot."""

    lot_ref: str
    quantity: Decimal
    unit_cost: Decimal

    @property
    def cost(self) -> Decimal:
        return self.quantity * self.unit_cost


@dataclass
class Consumption:
    matched: List[MatchedLot] = field(default_factory=list)
    shortfall: Decimal = ZERO

    @property
    def quantity_matched(self) -> Decimal:
        return sum((m.quantity for m in self.matched), ZERO)

    @property
    def cost_basis(self) -> Decimal:
        return sum((m.cost for m in self.matched), ZERO)


class LotLedger:
    def __init__(self, asset_id: str) -> None:
        self.asset_id = asset_id
        self._lots: Deque[Lot] = deque()

    def __iter__(self) -> Iterator[Lot]:
        return iter(self._lots)

    def __len__(self) -> int:
        return len(self._lots)

    @property
    def open_quantity(self) -> Decimal:
        return sum((lot.quantity for lot in self._lots), ZERO)

    def acquire(
        self, quantity: Decimal, unit_price: Decimal, timestamp: datetime, lot_ref: str = ""
    ) -> Lot:
        if quantity <= 0:
            raise ValueError(f"cannot acquire non-positive quantity {quantity} of {self.asset_id}")
        if self._lots and timestamp < self._lots[-1].acquired_at:
            raise ValueError(f"lot for {self.asset_id} acquired out of order at {timestamp.isoformat()}")
        lot = Lot(
            asset_id=self.asset_id,
            lot_ref=lot_ref,
            quantity=quantity,
            unit_cost=unit_price,
            acquired_at=timestamp,
        )
        self._lots.append(lot)
        return lot

    def consume(self, quantity: Decimal) -> Consumption:
        """
        Take `quantity` units from the oldest lots first.

        Fully drained lots are removed; the last lot touched may be left
        partially filled. If the ledger runs dry, the untaken remainder is
        returned as `shortfall` and nothing is fabricated for it.
        """
        if quantity <= 0:
            raise ValueError(f"cannot consume non-positive quantity {quantity} of {self.asset_id}")

        result = Consumption()
        remaining = quantity
        while remaining > 0 and self._lots:
            lot = self._lots[0]
            take = min(lot.quantity, remaining)
            result.matched.append(MatchedLot(lot_ref=lot.lot_ref, quantity=take, unit_cost=lot.unit_cost))
            lot.quantity -= take
            remaining -= take
            if lot.quantity == 0:
                self._lots.popleft()

        result.shortfall = remaining
        return result


class LedgerBook:
    """assetId -> LotLedger map scoped to a single engine call."""

    def __init__(self) -> None:
        self._ledgers: Dict[str, LotLedger] = {}

    def ledger(self, asset_id: str) -> LotLedger:
        ledger = self._ledgers.get(asset_id)
        if ledger is None:
            ledger = self._ledgers[asset_id] = LotLedger(asset_id)
        return ledger

    def get(self, asset_id: str) -> LotLedger | None:
        return self._ledgers.get(asset_id)

    def open_quantity(self, asset_id: str) -> Decimal:
        ledger = self._ledgers.get(asset_id)
        return ledger.open_quantity if ledger is not None else ZERO

    def __contains__(self, asset_id: str) -> bool:
        return asset_id in self._ledgers
