"""
Flat-rate bracket lookup for net realized gains.

The whole net gain is taxed at the rate of the single bracket it falls into
(no marginal split across bracket boundaries). Losses never produce a
negative tax: the net gain is clamped at zero before lookup.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Sequence, Tuple

from .errors import BracketConfigError
from .schemas import TaxBracket

ZERO = Decimal("0")

# Capital-gains tiers: up to 5M at 15%, 5M-10M at 17.5%, 10M-30M at 20%, above 30M at 22.5%
DEFAULT_BRACKETS: Tuple[TaxBracket, ...] = (
    TaxBracket(lower_bound=Decimal("0"), upper_bound=Decimal("5000000"), rate=Decimal("0.15")),
    TaxBracket(lower_bound=Decimal("5000000"), upper_bound=Decimal("10000000"), rate=Decimal("0.175")),
    TaxBracket(lower_bound=Decimal("10000000"), upper_bound=Decimal("30000000"), rate=Decimal("0.20")),
    TaxBracket(lower_bound=Decimal("30000000"), upper_bound=None, rate=Decimal("0.225")),
)


@dataclass(frozen=True)
class TaxEstimate:
    taxable_gain: Decimal
    rate: Decimal
    estimated_tax: Decimal


def validate_brackets(brackets: Iterable[TaxBracket]) -> Tuple[TaxBracket, ...]:
    """
    Check the table starts at 0, is ordered, contiguous and open-ended.
    Returns it as a tuple so it can't be mutated after loading.
    """
    table = tuple(brackets)
    if not table:
        raise BracketConfigError("bracket table is empty")
    if table[0].lower_bound != 0:
        raise BracketConfigError(f"first bracket must start at 0, got {table[0].lower_bound}")

    for i, (cur, nxt) in enumerate(zip(table, table[1:])):
        if cur.upper_bound is None:
            raise BracketConfigError(f"bracket {i} is unbounded but is not the last one")
        if cur.upper_bound <= cur.lower_bound:
            raise BracketConfigError(f"bracket {i} has upper_bound <= lower_bound")
        if nxt.lower_bound != cur.upper_bound:
            raise BracketConfigError(
                f"brackets {i} and {i + 1} are not contiguous ({cur.upper_bound} != {nxt.lower_bound})"
            )

    if table[-1].upper_bound is not None:
        raise BracketConfigError("last bracket must have no upper_bound")
    return table


class TaxTierEngine:
    def __init__(self, brackets: Sequence[TaxBracket] = DEFAULT_BRACKETS) -> None:
        self.brackets = validate_brackets(brackets)

    def bracket_for(self, net_gain: Decimal) -> TaxBracket:
        amount = max(net_gain, ZERO)
        for bracket in self.brackets:
            if bracket.contains(amount):
                return bracket
        # unreachable for a validated table
        raise BracketConfigError(f"no bracket contains {amount}")

    def rate(self, net_gain: Decimal) -> Decimal:
        if net_gain <= 0:
            return ZERO
        return self.bracket_for(net_gain).rate

    def estimate(self, net_gain: Decimal) -> TaxEstimate:
        taxable = max(net_gain, ZERO)
        rate = self.rate(taxable)
        return TaxEstimate(taxable_gain=taxable, rate=rate, estimated_tax=taxable * rate)
