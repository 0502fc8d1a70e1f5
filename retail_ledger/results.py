"""
Operation Results Module

Every ledger operation reports its outcome through OperationResult instead
of raising for expected conditions. A failed result always names the
specific FailureReason, so a wrong PIN can be told apart from a bad amount.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class FailureReason(Enum):
    """Why an operation was not applied"""
    # Validation
    INVALID_NAME = "invalid_name"
    INVALID_PIN_FORMAT = "invalid_pin_format"
    INVALID_AMOUNT = "invalid_amount"
    # Authorization
    INVALID_PIN = "invalid_pin"
    # Lookup
    ACCOUNT_NOT_FOUND = "account_not_found"
    SAME_ACCOUNT = "same_account"
    # Business rules
    OVERDRAFT_LIMIT_EXCEEDED = "overdraft_limit_exceeded"
    MINIMUM_BALANCE_VIOLATION = "minimum_balance_violation"
    CONVERSION_NOT_ALLOWED = "conversion_not_allowed"
    NO_INTEREST_DUE = "no_interest_due"
    CREDIT_FAILED = "credit_failed"
    # Backups
    BACKUP_NOT_FOUND = "backup_not_found"
    RESTORE_FAILED = "restore_failed"


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of a ledger operation.

    Truthiness follows ``success``, so ``if bank.deposit(...):`` reads the
    same as a plain boolean return.
    """
    success: bool
    reason: Optional[FailureReason] = None
    message: str = ""
    value: Any = None

    def __post_init__(self):
        if self.success and self.reason is not None:
            raise ValueError("Successful result cannot carry a failure reason")
        if not self.success and self.reason is None:
            raise ValueError("Failed result must carry a failure reason")

    def __bool__(self) -> bool:
        return self.success

    @property
    def failed(self) -> bool:
        return not self.success

    @classmethod
    def ok(cls, value: Any = None, message: str = "") -> 'OperationResult':
        return cls(success=True, value=value, message=message)

    @classmethod
    def fail(cls, reason: FailureReason, message: str = "") -> 'OperationResult':
        return cls(success=False, reason=reason, message=message)
