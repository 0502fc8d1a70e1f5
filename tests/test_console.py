"""
Tests for the console front-end, driven with scripted input
"""

from decimal import Decimal

from retail_ledger.accounts import AccountType
from retail_ledger.bank import Bank
from retail_ledger.config import LedgerConfig
from retail_ledger.console import LedgerConsole
from retail_ledger.storage import InMemorySnapshotStorage


class ScriptedConsole:
    """Feeds answers to the console and collects what it prints"""

    def __init__(self, bank: Bank, answers):
        self.answers = list(answers)
        self.lines = []
        self.console = LedgerConsole(bank, input_func=self.answer, output=self.lines.append)

    def answer(self, prompt: str) -> str:
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


class TestLedgerConsole:
    """Test menu commands end to end"""

    def setup_method(self):
        self.bank = Bank(storage=InMemorySnapshotStorage(), config=LedgerConfig(auto_save_enabled=False))

    def teardown_method(self):
        self.bank.close()

    def run(self, *answers) -> ScriptedConsole:
        scripted = ScriptedConsole(self.bank, answers)
        scripted.console.run()
        return scripted

    def test_create_deposit_withdraw(self):
        scripted = self.run(
            "create", "Basetsana", "1234", "",
            "deposit", "Basetsana", "1000", "1234",
            "withdraw", "basetsana", "200", "1234",
            "summary", "Basetsana",
            "quit",
        )

        account = self.bank.find_account_by_name("Basetsana")
        assert account.balance == Decimal('800')
        assert account.account_type is AccountType.SAVINGS
        assert "Deposit successful." in scripted.lines
        assert "Withdrawal successful." in scripted.lines
        assert "Balance: R800.00" in scripted.text
        assert scripted.lines[-1] == "Goodbye."

    def test_failures_show_reason(self):
        self.bank.create_account("Rele", "1234")

        scripted = self.run("withdraw", "Rele", "10", "1234", "deposit", "Rele", "5", "9999")

        assert "Failed (overdraft_limit_exceeded)" in scripted.text
        assert "Failed (invalid_pin): Invalid PIN" in scripted.lines

    def test_transfer_and_history(self):
        sender = self.bank.create_account("Amahle", "1234").value
        self.bank.create_account("Sipho", "5678")
        self.bank.deposit(sender.id, Decimal('200'), "1234")

        scripted = self.run(
            "transfer", sender.id, "Sipho", "100", "1234",
            "history", "Sipho",
        )

        assert "Transfer successful." in scripted.lines
        assert any("| TransferIn | R100.00 | Transfer from Amahle" in line for line in scripted.lines)
        assert any("| Deposit | R100.00 |" in line for line in scripted.lines)

    def test_unknown_account_and_command(self):
        scripted = self.run("summary", "Nobody", "fly")

        assert "Account not found: Nobody" in scripted.lines
        assert "Unknown command: fly. Type 'help' for the menu." in scripted.lines

    def test_convert_and_invalid_type(self):
        account = self.bank.create_account("Rele", "1234").value
        self.bank.deposit(account.id, Decimal('1000'), "1234")

        scripted = self.run(
            "convert", "Rele", "Platinum",
            "convert", "Rele", "business", "1234",
        )

        assert "Unknown account type: Platinum" in scripted.lines
        assert "Account converted to Business." in scripted.lines
        assert account.account_type is AccountType.BUSINESS

    def test_interest_pin_and_rename(self):
        account = self.bank.create_account("Rele", "1234").value
        self.bank.deposit(account.id, Decimal('1200'), "1234")

        scripted = self.run(
            "interest",
            "pin", "Rele", "1234", "4321",
            "rename", "Rele", "Rele M", "4321",
            "list",
        )

        assert "Interest applied to 1 account(s)." in scripted.lines
        assert "PIN changed." in scripted.lines
        assert "Account renamed." in scripted.lines
        assert any("| Rele M | Savings | R1,202.50" in line for line in scripted.lines)

    def test_backup_commands(self):
        self.bank.create_account("Rele", "1234")

        scripted = self.run("backup", "backups", "restore", "backup_missing.json")

        names = self.bank.get_available_backups()
        assert len(names) == 1
        assert names[0] in scripted.lines
        assert any(line.startswith("Failed (backup_not_found)") for line in scripted.lines)

    def test_empty_ledger_listing(self):
        scripted = self.run("list", "backups")

        assert "No accounts." in scripted.lines
        assert "No backups." in scripted.lines
