"""
Account Management Module

An Account owns a balance, a PIN, an account type and an append-only list of
transactions. The account type is a tag: interest rate, overdraft limit and
minimum balance are read from it, never stored beside it, so they cannot
drift when the type changes.
"""

from decimal import Decimal
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from enum import Enum
import hmac
import re
import uuid

from .currency import ZERO, format_amount, format_rate, parse_amount, quantize
from .exceptions import AccountValidationError
from .results import FailureReason, OperationResult
from .transactions import Transaction, TransactionType


DEFAULT_INTEREST_PRECISION = 4
MONTHS_PER_YEAR = Decimal('12')

_PIN_PATTERN = re.compile(r"[0-9]{4}")


class AccountType(Enum):
    """Account types with their fixed parameters"""
    SAVINGS = ("Savings", Decimal('0.025'), Decimal('0'), Decimal('0'), None)
    CHEQUE = ("Cheque", Decimal('0.005'), Decimal('200'), Decimal('100'), Decimal('500'))
    BUSINESS = ("Business", Decimal('0.01'), Decimal('500'), Decimal('500'), Decimal('1000'))

    def __init__(self, label: str, interest_rate: Decimal, overdraft_limit: Decimal,
                 minimum_balance: Decimal, conversion_threshold: Optional[Decimal]):
        self.label = label
        self.interest_rate = interest_rate
        self.overdraft_limit = overdraft_limit
        self.minimum_balance = minimum_balance
        # Balance an account needs before it may convert to this type
        self.conversion_threshold = conversion_threshold

    def allows_conversion_at(self, balance: Decimal) -> bool:
        """Check the balance gate for converting into this type"""
        return self.conversion_threshold is None or balance >= self.conversion_threshold

    @classmethod
    def from_label(cls, label: str) -> 'AccountType':
        """Look up a type by label, case-insensitively"""
        for account_type in cls:
            if account_type.label.lower() == str(label).strip().lower():
                return account_type
        raise ValueError(f"Unknown account type: {label}")


def is_valid_pin_format(pin: Any) -> bool:
    """A PIN is exactly four ASCII digits"""
    return isinstance(pin, str) and _PIN_PATTERN.fullmatch(pin) is not None


def is_valid_name(name: Any) -> bool:
    return isinstance(name, str) and bool(name.strip())


class Account:
    """
    Bank account holding a balance and its transaction history.

    Balance-changing operations return an OperationResult and never raise for
    bad input, wrong PINs or rule violations. Successful results carry the
    recorded Transaction as ``value``.
    """

    def __init__(
        self,
        id: str,
        name: str,
        pin: str,
        account_type: AccountType = AccountType.SAVINGS,
        balance: Decimal = ZERO,
        transactions: Optional[List[Transaction]] = None,
        created_at: Optional[datetime] = None,
        interest_precision: int = DEFAULT_INTEREST_PRECISION
    ):
        self._id = id
        self._name = name
        self._pin = pin
        self._account_type = account_type
        self._balance = Decimal(balance)
        self._transactions: List[Transaction] = list(transactions or [])
        self.created_at = created_at or datetime.now(timezone.utc)
        self.interest_precision = interest_precision

    @classmethod
    def open(
        cls,
        name: str,
        pin: str,
        account_type: AccountType = AccountType.SAVINGS,
        interest_precision: int = DEFAULT_INTEREST_PRECISION
    ) -> 'Account':
        """
        Open a new account with a zero balance

        Raises:
            AccountValidationError: If the name is blank or the PIN is not four digits
        """
        if not is_valid_name(name):
            raise AccountValidationError(
                FailureReason.INVALID_NAME, "Account name cannot be empty"
            )
        if not is_valid_pin_format(pin):
            raise AccountValidationError(
                FailureReason.INVALID_PIN_FORMAT, "PIN must be exactly 4 digits"
            )
        return cls(
            id=str(uuid.uuid4()),
            name=name.strip(),
            pin=pin,
            account_type=account_type,
            interest_precision=interest_precision
        )

    def __repr__(self) -> str:
        return (
            f"Account(id={self._id!r}, name={self._name!r}, "
            f"type={self._account_type.label}, balance={self._balance})"
        )

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def balance(self) -> Decimal:
        return self._balance

    @property
    def account_type(self) -> AccountType:
        return self._account_type

    @property
    def interest_rate(self) -> Decimal:
        """Annual interest rate"""
        return self._account_type.interest_rate

    @property
    def overdraft_limit(self) -> Decimal:
        return self._account_type.overdraft_limit

    @property
    def minimum_balance(self) -> Decimal:
        return self._account_type.minimum_balance

    @property
    def transactions(self) -> tuple:
        """Transactions in the order they were recorded"""
        return tuple(self._transactions)

    # PIN handling

    def validate_pin(self, entered_pin: Any) -> bool:
        """Compare in constant time; anything that is not a string is a mismatch"""
        if not isinstance(entered_pin, str):
            return False
        return hmac.compare_digest(self._pin.encode("utf-8"), entered_pin.encode("utf-8"))

    def change_pin(self, current_pin: str, new_pin: str) -> OperationResult:
        if not self.validate_pin(current_pin):
            return OperationResult.fail(FailureReason.INVALID_PIN, "Current PIN is incorrect")
        if not is_valid_pin_format(new_pin):
            return OperationResult.fail(FailureReason.INVALID_PIN_FORMAT, "PIN must be exactly 4 digits")

        self._pin = new_pin
        return OperationResult.ok(message="PIN changed")

    def rename(self, new_name: str) -> OperationResult:
        if not is_valid_name(new_name):
            return OperationResult.fail(FailureReason.INVALID_NAME, "Account name cannot be empty")

        self._name = new_name.strip()
        return OperationResult.ok(message="Account renamed")

    # Balance operations

    def deposit(
        self,
        amount: Any,
        pin: Optional[str] = None,
        description: Optional[str] = None
    ) -> OperationResult:
        """
        Credit the account.

        The PIN is optional: when given it must validate, when omitted the
        caller has already authorized the credit (ledger deposits, transfer
        credits and compensations).
        """
        value = parse_amount(amount)
        if value is None or value <= ZERO:
            return OperationResult.fail(FailureReason.INVALID_AMOUNT, "Deposit amount must be positive")

        if pin is not None and not self.validate_pin(pin):
            return OperationResult.fail(FailureReason.INVALID_PIN, "Invalid PIN")

        self._balance += value
        transaction = self._record(
            TransactionType.DEPOSIT, value,
            description or f"Deposit of {format_amount(value)}"
        )
        return OperationResult.ok(transaction)

    def withdraw(self, amount: Any, pin: str) -> OperationResult:
        """
        Debit the account.

        The resulting balance may not fall below -overdraft_limit, and may not
        rest in the band [0, minimum_balance).
        """
        if not self.validate_pin(pin):
            return OperationResult.fail(FailureReason.INVALID_PIN, "Invalid PIN")

        value = parse_amount(amount)
        if value is None or value <= ZERO:
            return OperationResult.fail(FailureReason.INVALID_AMOUNT, "Withdrawal amount must be positive")

        resulting_balance = self._balance - value

        if resulting_balance < -self.overdraft_limit:
            return OperationResult.fail(
                FailureReason.OVERDRAFT_LIMIT_EXCEEDED,
                f"Withdrawal would exceed overdraft limit of {format_amount(self.overdraft_limit)}"
            )

        if ZERO <= resulting_balance < self.minimum_balance:
            return OperationResult.fail(
                FailureReason.MINIMUM_BALANCE_VIOLATION,
                f"Balance may not rest between {format_amount(ZERO)} and "
                f"{format_amount(self.minimum_balance)}"
            )

        self._balance = resulting_balance
        transaction = self._record(
            TransactionType.WITHDRAWAL, value, f"Withdrawal of {format_amount(value)}"
        )
        return OperationResult.ok(transaction)

    # Interest

    def calculate_interest(self) -> Decimal:
        """One month of interest on a positive balance, zero otherwise"""
        if self._balance <= ZERO:
            return ZERO
        interest = self._balance * (self.interest_rate / MONTHS_PER_YEAR)
        return quantize(interest, self.interest_precision)

    def apply_monthly_interest(self, pin: str) -> OperationResult:
        if not self.validate_pin(pin):
            return OperationResult.fail(FailureReason.INVALID_PIN, "Invalid PIN")
        return self.apply_monthly_interest_internal()

    def apply_monthly_interest_internal(self) -> OperationResult:
        """Credit a month of interest without a PIN check (batch use only)"""
        interest = self.calculate_interest()
        if interest <= ZERO:
            return OperationResult.fail(FailureReason.NO_INTEREST_DUE, "No interest due")

        self._balance += interest
        transaction = self._record(
            TransactionType.INTEREST, interest, f"Interest payment of {format_amount(interest)}"
        )
        return OperationResult.ok(transaction)

    # Account type

    def convert_account_type(self, new_type: AccountType, pin: str) -> OperationResult:
        """
        Switch to another account type.

        The existing balance is left as it is, even when it sits outside the
        new type's limits; the new rules apply to later operations.
        """
        if not self.validate_pin(pin):
            return OperationResult.fail(FailureReason.INVALID_PIN, "Invalid PIN")

        if not new_type.allows_conversion_at(self._balance):
            return OperationResult.fail(
                FailureReason.CONVERSION_NOT_ALLOWED,
                f"{new_type.label} accounts require a balance of at least "
                f"{format_amount(new_type.conversion_threshold)}"
            )

        self._account_type = new_type
        return OperationResult.ok(new_type)

    # Transfers

    def record_transfer_out(self, amount: Decimal, counterparty: 'Account') -> Transaction:
        """Append a TransferOut entry; the balance was already debited"""
        return self._record(
            TransactionType.TRANSFER_OUT, amount, f"Transfer to {counterparty.reference}"
        )

    def record_transfer_in(self, amount: Decimal, counterparty: 'Account') -> Transaction:
        """Append a TransferIn entry; the balance was already credited"""
        return self._record(
            TransactionType.TRANSFER_IN, amount, f"Transfer from {counterparty.reference}"
        )

    @property
    def reference(self) -> str:
        """Short human-readable reference used in counterparty descriptions"""
        return f"{self._name} ({self._id[:6]}...)"

    # Reads

    def get_transaction_history(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> List[Transaction]:
        """Transactions within [start_date, end_date], newest first"""
        start_date = _as_utc(start_date)
        end_date = _as_utc(end_date)

        history = [
            t for t in self._transactions
            if (start_date is None or t.timestamp >= start_date)
            and (end_date is None or t.timestamp <= end_date)
        ]
        return sorted(history, key=lambda t: t.timestamp, reverse=True)

    def summary_fields(self) -> Dict[str, Any]:
        """Raw values for presentation"""
        return {
            "id": self._id,
            "name": self._name,
            "type": self._account_type.label,
            "balance": self._balance,
            "interest_rate": self.interest_rate,
            "overdraft_limit": self.overdraft_limit,
            "minimum_balance": self.minimum_balance,
        }

    def get_account_summary(self) -> str:
        return (
            f"Account ID: {self._id}\n"
            f"Name: {self._name}\n"
            f"Type: {self._account_type.label}\n"
            f"Balance: {format_amount(self._balance)}\n"
            f"Interest Rate: {format_rate(self.interest_rate)}\n"
            f"Overdraft Limit: {format_amount(self.overdraft_limit)}\n"
            f"Minimum Balance: {format_amount(self.minimum_balance)}"
        )

    # Storage

    def to_dict(self) -> Dict[str, Any]:
        """Convert Account to dictionary for storage"""
        return {
            "id": self._id,
            "name": self._name,
            "pin": self._pin,
            "account_type": self._account_type.label,
            "balance": str(self._balance),
            "created_at": self.created_at.isoformat(),
            "transactions": [t.to_dict() for t in self._transactions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any],
                  interest_precision: int = DEFAULT_INTEREST_PRECISION) -> 'Account':
        """
        Convert dictionary to Account

        Raises:
            ValueError: If the type is unknown or the balance is not a finite amount
        """
        balance = parse_amount(data['balance'])
        if balance is None:
            raise ValueError(f"Invalid balance: {data['balance']!r}")
        return cls(
            id=data['id'],
            name=data['name'],
            pin=data['pin'],
            account_type=AccountType.from_label(data['account_type']),
            balance=balance,
            transactions=[Transaction.from_dict(t) for t in data.get('transactions', [])],
            created_at=datetime.fromisoformat(data['created_at']),
            interest_precision=interest_precision
        )

    def _record(self, transaction_type: TransactionType, amount: Decimal,
                description: str) -> Transaction:
        transaction = Transaction(
            transaction_type=transaction_type,
            amount=amount,
            timestamp=self._next_timestamp(),
            description=description
        )
        self._transactions.append(transaction)
        return transaction

    def _next_timestamp(self) -> datetime:
        # Clamp so a clock stepping backwards cannot reorder history
        now = datetime.now(timezone.utc)
        if self._transactions and self._transactions[-1].timestamp > now:
            return self._transactions[-1].timestamp
        return now


def _as_utc(moment: Optional[datetime]) -> Optional[datetime]:
    if moment is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment
