"""
Transaction Records Module

A Transaction is an immutable fact describing one balance-affecting event on
a single account. The amount is always a positive magnitude; direction is
implied by the transaction type.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict
from enum import Enum

from .currency import format_amount, parse_amount


class TransactionType(Enum):
    """Types of balance-affecting events"""
    DEPOSIT = "Deposit"
    WITHDRAWAL = "Withdrawal"
    INTEREST = "Interest"
    TRANSFER_IN = "TransferIn"
    TRANSFER_OUT = "TransferOut"


@dataclass(frozen=True)
class Transaction:
    """
    Immutable ledger entry owned by exactly one account
    """
    transaction_type: TransactionType
    amount: Decimal
    timestamp: datetime
    description: str = ""

    def __post_init__(self):
        amount = parse_amount(self.amount)
        if amount is None or amount <= 0:
            raise ValueError("Transaction amount must be positive")
        object.__setattr__(self, 'amount', amount)

        if self.timestamp.tzinfo is None:
            object.__setattr__(self, 'timestamp', self.timestamp.replace(tzinfo=timezone.utc))

        if self.description is None:
            object.__setattr__(self, 'description', "")

    def __str__(self) -> str:
        return (
            f"{self.timestamp:%Y-%m-%d %H:%M} | {self.transaction_type.value} | "
            f"{format_amount(self.amount)} | {self.description}"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return {
            "transaction_type": self.transaction_type.value,
            "amount": str(self.amount),
            "timestamp": self.timestamp.isoformat(),
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        """Create instance from dictionary"""
        return cls(
            transaction_type=TransactionType(data['transaction_type']),
            amount=Decimal(data['amount']),
            timestamp=datetime.fromisoformat(data['timestamp']),
            description=data.get('description', ""),
        )
