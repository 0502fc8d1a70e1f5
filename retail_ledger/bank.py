"""
Bank Ledger Module

The Bank is the single owner of all accounts. Every read or write of the
account collection happens under one re-entrant lock, including the snapshot
writes, so all ledger operations are observed in a single total order.

Operations report expected failures (bad input, wrong PIN, rule violations)
through OperationResult. Persistence errors are logged and never raised.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
import threading

from .accounts import Account, AccountType
from .config import LedgerConfig, get_config
from .exceptions import AccountValidationError, SnapshotError
from .logging_config import get_logger, log_action
from .results import FailureReason, OperationResult
from .scheduler import AutoSaveScheduler
from .storage import JSONFileSnapshotStorage, SnapshotStorage
from .transactions import Transaction


class Bank:
    """
    Account repository with transfer orchestration and durable snapshots
    """

    def __init__(
        self,
        storage: Optional[SnapshotStorage] = None,
        config: Optional[LedgerConfig] = None,
        auto_save: Optional[bool] = None
    ):
        self.config = config or get_config()
        self.storage = storage or JSONFileSnapshotStorage(
            self.config.data_file_path,
            self.config.backup_directory,
            self.config.max_backups
        )
        self.logger = get_logger("retail_ledger.bank")
        self._accounts: Dict[str, Account] = {}
        self._lock = threading.RLock()

        self.load_accounts()

        self._auto_saver = AutoSaveScheduler(
            self._auto_save, self.config.auto_save_interval_seconds
        )
        if auto_save is None:
            auto_save = self.config.auto_save_enabled
        if auto_save:
            self._auto_saver.start()

    def __enter__(self) -> 'Bank':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Stop the auto-save thread"""
        self._auto_saver.stop()

    # Accounts

    def create_account(
        self,
        name: str,
        pin: str,
        account_type: AccountType = AccountType.SAVINGS
    ) -> OperationResult:
        """
        Open a new account and persist it

        Returns:
            OperationResult whose value is the new Account
        """
        try:
            account = Account.open(name, pin, account_type, self.config.interest_precision)
        except AccountValidationError as e:
            self.logger.warning(f"Error creating account: {e}")
            return OperationResult.fail(e.reason, str(e))

        with self._lock:
            self._accounts[account.id] = account
            self.save_accounts()

        log_action(
            self.logger, "info", f"Account created: {account_type.label}",
            account_id=account.id, action="create_account"
        )
        return OperationResult.ok(account)

    def get_account(self, account_id: str) -> Optional[Account]:
        with self._lock:
            return self._accounts.get(account_id)

    def find_account_by_name(self, name: str) -> Optional[Account]:
        """First account whose name matches, ignoring case"""
        wanted = str(name).strip().casefold()
        with self._lock:
            for account in self._accounts.values():
                if account.name.casefold() == wanted:
                    return account
            return None

    def get_all_accounts(self) -> List[Account]:
        """Copy of the account list; changing it does not touch the ledger"""
        with self._lock:
            return list(self._accounts.values())

    def get_transaction_history(
        self,
        account_id: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> Optional[List[Transaction]]:
        """Inclusive history window, newest first; None for an unknown account"""
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                return None
            return account.get_transaction_history(start_date, end_date)

    @property
    def account_count(self) -> int:
        with self._lock:
            return len(self._accounts)

    # Authorization

    def verify_pin(self, account_id: str, pin: str) -> bool:
        with self._lock:
            account = self._accounts.get(account_id)
            return account is not None and account.validate_pin(pin)

    def change_pin(self, account_id: str, current_pin: str, new_pin: str) -> OperationResult:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                return self._not_found(account_id, "change_pin")

            result = account.change_pin(current_pin, new_pin)
            return self._finish(result, account_id, "change_pin")

    def rename_account(self, account_id: str, new_name: str, pin: str) -> OperationResult:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                return self._not_found(account_id, "rename_account")

            if not account.validate_pin(pin):
                result = OperationResult.fail(FailureReason.INVALID_PIN, "Invalid PIN")
            else:
                result = account.rename(new_name)
            return self._finish(result, account_id, "rename_account")

    # Balance operations

    def deposit(self, account_id: str, amount: Any, pin: str) -> OperationResult:
        """Deposit after a single PIN check made here, not in the account"""
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                return self._not_found(account_id, "deposit")

            if not account.validate_pin(pin):
                result = OperationResult.fail(FailureReason.INVALID_PIN, "Invalid PIN")
            else:
                result = account.deposit(amount)
            return self._finish(result, account_id, "deposit")

    def withdraw(self, account_id: str, amount: Any, pin: str) -> OperationResult:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                return self._not_found(account_id, "withdraw")

            result = account.withdraw(amount, pin)
            return self._finish(result, account_id, "withdraw")

    def transfer(
        self,
        from_account_id: str,
        to_account_id: str,
        amount: Any,
        from_pin: str
    ) -> OperationResult:
        """
        Move funds between two accounts, authorized by the sender's PIN.

        The sender is debited first, then the receiver credited. If the credit
        fails the debit is compensated by crediting the sender back, which
        leaves a visible Withdrawal + Deposit pair rather than erasing the
        debit. A completed transfer leaves four entries: Withdrawal and
        TransferOut on the sender, Deposit and TransferIn on the receiver.
        """
        if from_account_id == to_account_id:
            return self._rejected(
                OperationResult.fail(FailureReason.SAME_ACCOUNT, "Cannot transfer to the same account"),
                from_account_id, "transfer"
            )

        with self._lock:
            from_account = self._accounts.get(from_account_id)
            to_account = self._accounts.get(to_account_id)
            if from_account is None:
                return self._not_found(from_account_id, "transfer")
            if to_account is None:
                return self._not_found(to_account_id, "transfer")

            debit = from_account.withdraw(amount, from_pin)
            if not debit:
                return self._rejected(debit, from_account_id, "transfer")

            value = debit.value.amount
            credit = to_account.deposit(value)
            if not credit:
                self._compensate_debit(from_account, to_account, value)
                self.save_accounts()
                return self._rejected(
                    OperationResult.fail(
                        FailureReason.CREDIT_FAILED,
                        f"Credit to {to_account.reference} failed; debit reversed"
                    ),
                    from_account_id, "transfer"
                )

            from_account.record_transfer_out(value, to_account)
            to_account.record_transfer_in(value, from_account)
            self.save_accounts()

        log_action(
            self.logger, "info", "Transfer completed",
            account_id=from_account_id, action="transfer",
            extra={"to_account_id": to_account_id, "amount": str(value)}
        )
        return OperationResult.ok(value)

    def _compensate_debit(self, from_account: Account, to_account: Account, amount: Decimal) -> None:
        """Credit the sender back once; the original Withdrawal stays on record"""
        compensation = from_account.deposit(
            amount, description=f"Reversal of failed transfer to {to_account.reference}"
        )
        if not compensation:
            self.logger.critical(
                f"Compensation failed for account {from_account.id}: {compensation.message}"
            )
        else:
            log_action(
                self.logger, "warning", "Transfer credit failed, debit compensated",
                account_id=from_account.id, action="transfer_compensation",
                extra={"to_account_id": to_account.id, "amount": str(amount)}
            )

    def convert_account_type(self, account_id: str, new_type: AccountType, pin: str) -> OperationResult:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                return self._not_found(account_id, "convert_account_type")

            result = account.convert_account_type(new_type, pin)
            return self._finish(result, account_id, "convert_account_type")

    def apply_interest_to_all_accounts(self) -> int:
        """
        Month-end batch: credit interest to every account without PIN checks.

        Saves once, and only if at least one account was credited.

        Returns:
            Number of accounts that received interest
        """
        with self._lock:
            credited = 0
            for account in self._accounts.values():
                if account.apply_monthly_interest_internal():
                    credited += 1

            if credited:
                self.save_accounts()

        self.logger.info(f"Monthly interest applied to {credited} accounts")
        return credited

    # Persistence

    def save_accounts(self) -> bool:
        """Write the whole collection to the primary snapshot"""
        with self._lock:
            try:
                self.storage.save([account.to_dict() for account in self._accounts.values()])
                return True
            except SnapshotError as e:
                self.logger.error(f"Error saving accounts: {e}")
                return False

    def load_accounts(self) -> bool:
        """
        Load the primary snapshot, falling back to backups newest first.

        Returns:
            True if a snapshot (primary or backup) was loaded or none existed yet
        """
        with self._lock:
            try:
                records = self.storage.load()
                if records is None:
                    return True
                self._accounts = self._accounts_from_records(records)
                self.logger.info(f"Loaded {len(self._accounts)} accounts")
                return True
            except SnapshotError as e:
                self.logger.error(f"Error loading accounts: {e}")
                return self._load_from_backup()

    def _load_from_backup(self) -> bool:
        for name in self.get_available_backups():
            if self.restore_from_backup(name):
                return True

        # Empty ledger is a failed recovery here, not a new bank
        self._accounts = {}
        self.logger.critical("No usable snapshot or backup found; starting with an empty ledger")
        return False

    def create_backup(self) -> Optional[str]:
        """Write a timestamped backup and prune to the newest max_backups"""
        with self._lock:
            try:
                name = self.storage.create_backup(
                    [account.to_dict() for account in self._accounts.values()]
                )
            except SnapshotError as e:
                self.logger.error(f"Error creating backup: {e}")
                return None

        self.logger.info(f"Backup created: {name}")
        return name

    def get_available_backups(self) -> List[str]:
        try:
            return self.storage.list_backups()
        except SnapshotError as e:
            self.logger.error(f"Error getting available backups: {e}")
            return []

    def restore_from_backup(self, backup_name: str) -> OperationResult:
        """Replace every account with the backup's contents and persist it as primary"""
        with self._lock:
            try:
                records = self.storage.load_backup(backup_name)
                if records is None:
                    return OperationResult.fail(
                        FailureReason.BACKUP_NOT_FOUND, f"Backup {backup_name} not found"
                    )
                accounts = self._accounts_from_records(records)
            except SnapshotError as e:
                self.logger.error(f"Error restoring from backup {backup_name}: {e}")
                return OperationResult.fail(FailureReason.RESTORE_FAILED, str(e))

            self._accounts = accounts
            self.save_accounts()

        self.logger.warning(f"Restored {len(accounts)} accounts from backup {backup_name}")
        return OperationResult.ok(backup_name)

    def _auto_save(self) -> None:
        with self._lock:
            self.save_accounts()
            self.create_backup()

    def _accounts_from_records(self, records: List[Dict[str, Any]]) -> Dict[str, Account]:
        accounts: Dict[str, Account] = {}
        for record in records:
            try:
                account = Account.from_dict(record, self.config.interest_precision)
            except (KeyError, ValueError, ArithmeticError) as e:
                raise SnapshotError(f"Invalid account record: {e}") from e
            if account.id in accounts:
                raise SnapshotError(f"Duplicate account id {account.id}")
            accounts[account.id] = account
        return accounts

    # Helpers

    def _finish(self, result: OperationResult, account_id: str, action: str) -> OperationResult:
        """Persist on success, log either way"""
        if not result:
            return self._rejected(result, account_id, action)

        self.save_accounts()
        log_action(self.logger, "info", f"{action} succeeded", account_id=account_id, action=action)
        return result

    def _rejected(self, result: OperationResult, account_id: str, action: str) -> OperationResult:
        log_action(
            self.logger, "warning", f"{action} rejected: {result.message}",
            account_id=account_id, action=action,
            extra={"reason": result.reason.value}
        )
        return result

    def _not_found(self, account_id: str, action: str) -> OperationResult:
        return self._rejected(
            OperationResult.fail(FailureReason.ACCOUNT_NOT_FOUND, f"Account {account_id} not found"),
            account_id, action
        )
