# POS Insight - Financial analytics engine for small-business point of sale
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Error taxonomy for POS Insight.

- ValidationError: the request itself is invalid (e.g. start > end, a
  malformed month label). Raised before any ledger read or aggregation.
- DataAccessError: the ledger could not be read or written. Only the
  analytic that triggered it is aborted; other analytics are independent.

Both derive from AnalyticsError so callers (CLI, Web UI) can catch every
engine failure in one place. ValidationError is also a ValueError and
DataAccessError a RuntimeError, matching the exceptions used elsewhere in
the code base for the same situations.
"""


class AnalyticsError(Exception):
    """Base class for all errors raised by the analytics engine."""


class ValidationError(AnalyticsError, ValueError):
    """Invalid input rejected before any aggregation runs."""


class DataAccessError(AnalyticsError, RuntimeError):
    """The ledger storage is unreachable or a query failed."""
