"""
Exception types raised by the engine and its collaborators.

Row-level problems (malformed transactions, oversold sells) are not raised:
they are collected into the summary as data. Only caller contract violations
and broken configuration become exceptions.
"""


class RealizedTaxError(Exception):
    """Base class for all errors raised by this package."""


class InvalidPeriodError(RealizedTaxError, ValueError):
    """Period bounds are unparseable or start is after end."""


class BracketConfigError(RealizedTaxError, ValueError):
    """Tax bracket table is empty, unordered, overlapping or has gaps."""
