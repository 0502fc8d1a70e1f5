"""
Console Front-End

Interactive menu over the Bank. Reads commands, issues ledger operations and
prints their results; all rules live in the ledger.
"""

from typing import Callable, Dict, Optional

from .accounts import Account, AccountType
from .bank import Bank
from .config import get_config
from .currency import format_amount
from .logging_config import setup_logging
from .results import OperationResult


MENU = """
Commands:
  create    Open a new account
  list      List all accounts
  summary   Show an account summary
  deposit   Deposit funds
  withdraw  Withdraw funds
  transfer  Transfer between accounts
  history   Show transaction history
  interest  Apply monthly interest to all accounts
  convert   Convert account type
  pin       Change PIN
  rename    Rename an account
  backup    Create a backup now
  backups   List available backups
  restore   Restore from a backup
  help      Show this menu
  quit      Exit
"""


class LedgerConsole:
    """Menu loop reading from ``input_func`` and writing to ``output``"""

    def __init__(
        self,
        bank: Bank,
        input_func: Callable[[str], str] = input,
        output: Callable[[str], None] = print
    ):
        self.bank = bank
        self.input = input_func
        self.output = output
        self.commands: Dict[str, Callable[[], None]] = {
            "create": self.create_account,
            "list": self.list_accounts,
            "summary": self.show_summary,
            "deposit": self.deposit,
            "withdraw": self.withdraw,
            "transfer": self.transfer,
            "history": self.show_history,
            "interest": self.apply_interest,
            "convert": self.convert_account_type,
            "pin": self.change_pin,
            "rename": self.rename_account,
            "backup": self.create_backup,
            "backups": self.list_backups,
            "restore": self.restore_backup,
            "help": self.show_menu,
        }

    def run(self) -> None:
        self.output("=== Welcome to the Retail Ledger ===")
        self.show_menu()
        while True:
            try:
                command = self.input("> ").strip().lower()
            except EOFError:
                break
            if command in ("quit", "exit", "q"):
                break
            if not command:
                continue
            handler = self.commands.get(command)
            if handler is None:
                self.output(f"Unknown command: {command}. Type 'help' for the menu.")
                continue
            handler()
        self.output("Goodbye.")

    def show_menu(self) -> None:
        self.output(MENU)

    # Commands

    def create_account(self) -> None:
        name = self.input("Account holder name: ")
        pin = self.input("4-digit PIN: ")
        account_type = self._ask_account_type()
        if account_type is None:
            return
        result = self.bank.create_account(name, pin, account_type)
        if result:
            self.output("Account created:")
            self.output(result.value.get_account_summary())
        else:
            self._report(result)

    def list_accounts(self) -> None:
        accounts = self.bank.get_all_accounts()
        if not accounts:
            self.output("No accounts.")
            return
        for account in accounts:
            self.output(
                f"{account.id} | {account.name} | {account.account_type.label} | "
                f"{format_amount(account.balance)}"
            )

    def show_summary(self) -> None:
        account = self._ask_account()
        if account is not None:
            self.output(account.get_account_summary())

    def deposit(self) -> None:
        account = self._ask_account()
        if account is None:
            return
        amount = self.input("Amount: ")
        pin = self.input("PIN: ")
        self._report(self.bank.deposit(account.id, amount, pin), "Deposit successful.")

    def withdraw(self) -> None:
        account = self._ask_account()
        if account is None:
            return
        amount = self.input("Amount: ")
        pin = self.input("PIN: ")
        self._report(self.bank.withdraw(account.id, amount, pin), "Withdrawal successful.")

    def transfer(self) -> None:
        source = self._ask_account("From account (id or name): ")
        if source is None:
            return
        target = self._ask_account("To account (id or name): ")
        if target is None:
            return
        amount = self.input("Amount: ")
        pin = self.input("Sender PIN: ")
        self._report(self.bank.transfer(source.id, target.id, amount, pin), "Transfer successful.")

    def show_history(self) -> None:
        account = self._ask_account()
        if account is None:
            return
        history = self.bank.get_transaction_history(account.id)
        if not history:
            self.output("No transactions.")
            return
        for transaction in history:
            self.output(str(transaction))

    def apply_interest(self) -> None:
        credited = self.bank.apply_interest_to_all_accounts()
        self.output(f"Interest applied to {credited} account(s).")

    def convert_account_type(self) -> None:
        account = self._ask_account()
        if account is None:
            return
        account_type = self._ask_account_type()
        if account_type is None:
            return
        pin = self.input("PIN: ")
        self._report(
            self.bank.convert_account_type(account.id, account_type, pin),
            f"Account converted to {account_type.label}."
        )

    def change_pin(self) -> None:
        account = self._ask_account()
        if account is None:
            return
        current_pin = self.input("Current PIN: ")
        new_pin = self.input("New PIN: ")
        self._report(self.bank.change_pin(account.id, current_pin, new_pin), "PIN changed.")

    def rename_account(self) -> None:
        account = self._ask_account()
        if account is None:
            return
        new_name = self.input("New name: ")
        pin = self.input("PIN: ")
        self._report(self.bank.rename_account(account.id, new_name, pin), "Account renamed.")

    def create_backup(self) -> None:
        name = self.bank.create_backup()
        self.output(f"Backup created: {name}" if name else "Backup failed; see log.")

    def list_backups(self) -> None:
        backups = self.bank.get_available_backups()
        if not backups:
            self.output("No backups.")
        for name in backups:
            self.output(name)

    def restore_backup(self) -> None:
        name = self.input("Backup name: ").strip()
        self._report(self.bank.restore_from_backup(name), f"Restored from {name}.")

    # Prompts

    def _ask_account(self, prompt: str = "Account (id or name): ") -> Optional[Account]:
        reference = self.input(prompt).strip()
        account = self.bank.get_account(reference) or self.bank.find_account_by_name(reference)
        if account is None:
            self.output(f"Account not found: {reference}")
        return account

    def _ask_account_type(self) -> Optional[AccountType]:
        labels = "/".join(t.label for t in AccountType)
        answer = self.input(f"Account type ({labels}) [Savings]: ").strip() or AccountType.SAVINGS.label
        try:
            return AccountType.from_label(answer)
        except ValueError as e:
            self.output(str(e))
            return None

    def _report(self, result: OperationResult, success_message: str = "Done.") -> None:
        if result:
            self.output(success_message)
        else:
            self.output(f"Failed ({result.reason.value}): {result.message}")


def main() -> None:
    """Start the console against the configured snapshot files"""
    config = get_config()
    setup_logging(config.log_level, config.log_format, config.log_file)
    with Bank(config=config) as bank:
        LedgerConsole(bank).run()
        bank.save_accounts()


if __name__ == "__main__":  # pragma: no cover
    main()
