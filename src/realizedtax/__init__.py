"""FIFO realized gain/loss and bracket-tax engine."""

from .__about__ import __title__, __version__
from .config import TaxConfig, load_config
from .engine import compute_tax_summary
from .errors import BracketConfigError, InvalidPeriodError, RealizedTaxError
from .schemas import TaxBracket, TaxSummary, Transaction
from .tax_tiers import DEFAULT_BRACKETS, TaxTierEngine

__all__ = [
    "__title__",
    "__version__",
    "compute_tax_summary",
    "load_config",
    "TaxConfig",
    "TaxBracket",
    "TaxSummary",
    "TaxTierEngine",
    "Transaction",
    "DEFAULT_BRACKETS",
    "BracketConfigError",
    "InvalidPeriodError",
    "RealizedTaxError",
]
