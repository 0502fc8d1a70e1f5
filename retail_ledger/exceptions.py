"""Custom exception hierarchy for the retail ledger.

These never cross the Bank boundary: the Bank catches them, logs them and
turns them into failed results or fallbacks.
"""

from typing import Optional

from .results import FailureReason


class LedgerError(Exception):
    """Base exception for all ledger errors."""


class AccountValidationError(LedgerError, ValueError):
    """Raised when an account cannot be constructed from the given name or PIN."""

    def __init__(self, reason: FailureReason, message: str):
        super().__init__(message)
        self.reason = reason


class SnapshotError(LedgerError):
    """Raised when a snapshot cannot be read, parsed or written."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path
