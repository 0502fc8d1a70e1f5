"""
Snapshot Storage Module

Provides an abstract snapshot interface and implementations for in-memory
(testing) and JSON files (persistence). A snapshot is the full list of
account records; backups are timestamped copies of it. All monetary values
are stored as Decimal strings, and every document is validated with pydantic
before any account is rebuilt from it.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Union
from decimal import Decimal, InvalidOperation
from datetime import datetime, timedelta, timezone
import json
import os
import threading
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import SnapshotError


SNAPSHOT_VERSION = 1
BACKUP_PREFIX = "backup_"
BACKUP_SUFFIX = ".json"
DEFAULT_MAX_BACKUPS = 10


class TransactionRecord(BaseModel):
    transaction_type: str
    amount: str = Field(..., description="Decimal amount as string")
    timestamp: datetime
    description: str = ""

    @field_validator("amount")
    @classmethod
    def amount_is_decimal(cls, value: str) -> str:
        return _check_decimal(value)


class AccountRecord(BaseModel):
    id: str
    name: str
    pin: str
    account_type: str
    balance: str = Field(..., description="Decimal balance as string")
    created_at: datetime
    transactions: List[TransactionRecord] = Field(default_factory=list)

    @field_validator("balance")
    @classmethod
    def balance_is_decimal(cls, value: str) -> str:
        return _check_decimal(value)


class LedgerSnapshot(BaseModel):
    version: int = SNAPSHOT_VERSION
    saved_at: datetime
    accounts: List[AccountRecord] = Field(default_factory=list)


def _check_decimal(value: str) -> str:
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise ValueError(f"Not a decimal amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    return value


def encode_snapshot(records: List[Dict[str, Any]]) -> str:
    """Serialize account records into a snapshot document"""
    document = {
        "version": SNAPSHOT_VERSION,
        "saved_at": datetime.now(timezone.utc).isoformat(),
        "accounts": records,
    }
    return json.dumps(document, indent=2, default=str)


def decode_snapshot(text: str, source: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Parse and validate a snapshot document

    Raises:
        SnapshotError: If the document is not valid JSON or does not match the schema
    """
    try:
        snapshot = LedgerSnapshot.model_validate_json(text)
    except ValidationError as e:
        raise SnapshotError(f"Invalid snapshot: {e}", path=source) from e

    records = []
    for account in snapshot.accounts:
        record = account.model_dump()
        record['created_at'] = account.created_at.isoformat()
        for transaction in record['transactions']:
            transaction['timestamp'] = transaction['timestamp'].isoformat()
        records.append(record)
    return records


def backup_name(moment: Optional[datetime] = None) -> str:
    """Backup file name for a creation time; names sort chronologically"""
    moment = moment or datetime.now()
    return f"{BACKUP_PREFIX}{moment:%Y%m%d_%H%M%S_%f}{BACKUP_SUFFIX}"


def unique_backup_name(exists: Callable[[str], bool]) -> str:
    """Backup name for now, nudged forward a microsecond at a time past any taken name"""
    moment = datetime.now()
    name = backup_name(moment)
    while exists(name):
        moment += timedelta(microseconds=1)
        name = backup_name(moment)
    return name


class SnapshotStorage(ABC):
    """Abstract interface for snapshot backends"""

    @abstractmethod
    def save(self, records: List[Dict[str, Any]]) -> None:
        """Write records as the primary snapshot"""
        pass

    @abstractmethod
    def load(self) -> Optional[List[Dict[str, Any]]]:
        """Read the primary snapshot; None when there is none yet"""
        pass

    @abstractmethod
    def create_backup(self, records: List[Dict[str, Any]]) -> str:
        """Write a new backup, prune old ones, return the backup name"""
        pass

    @abstractmethod
    def list_backups(self) -> List[str]:
        """Backup names, newest first by name"""
        pass

    @abstractmethod
    def load_backup(self, name: str) -> Optional[List[Dict[str, Any]]]:
        """Read a backup; None when no backup has that name"""
        pass


class InMemorySnapshotStorage(SnapshotStorage):
    """In-memory snapshot storage for testing"""

    def __init__(self, max_backups: int = DEFAULT_MAX_BACKUPS):
        self.max_backups = max_backups
        self._primary: Optional[str] = None
        self._backups: Dict[str, str] = {}
        self._lock = threading.RLock()
        self.save_count = 0

    def save(self, records: List[Dict[str, Any]]) -> None:
        with self._lock:
            self._primary = encode_snapshot(records)
            self.save_count += 1

    def load(self) -> Optional[List[Dict[str, Any]]]:
        with self._lock:
            if self._primary is None:
                return None
            return decode_snapshot(self._primary, source="memory")

    def create_backup(self, records: List[Dict[str, Any]]) -> str:
        with self._lock:
            name = unique_backup_name(lambda candidate: candidate in self._backups)
            self._backups[name] = encode_snapshot(records)
            # Names sort chronologically, so oldest go first
            for stale in sorted(self._backups, reverse=True)[self.max_backups:]:
                del self._backups[stale]
            return name

    def list_backups(self) -> List[str]:
        with self._lock:
            return sorted(self._backups, reverse=True)

    def load_backup(self, name: str) -> Optional[List[Dict[str, Any]]]:
        with self._lock:
            if name not in self._backups:
                return None
            return decode_snapshot(self._backups[name], source=name)

    def corrupt_primary(self, text: str = "{not json") -> None:
        """Replace the primary snapshot with arbitrary text (testing)"""
        with self._lock:
            self._primary = text

    def put_backup(self, name: str, text: str) -> None:
        """Store raw backup text under a name (testing)"""
        with self._lock:
            self._backups[name] = text


class JSONFileSnapshotStorage(SnapshotStorage):
    """JSON file snapshot storage for persistence"""

    def __init__(
        self,
        data_file_path: Union[str, Path] = "bankdata.json",
        backup_directory: Union[str, Path] = "backups",
        max_backups: int = DEFAULT_MAX_BACKUPS
    ):
        self.data_file_path = Path(data_file_path)
        self.backup_directory = Path(backup_directory)
        self.max_backups = max_backups
        self._lock = threading.RLock()

    def save(self, records: List[Dict[str, Any]]) -> None:
        with self._lock:
            self._write(self.data_file_path, encode_snapshot(records))

    def load(self) -> Optional[List[Dict[str, Any]]]:
        with self._lock:
            if not self.data_file_path.exists():
                return None
            return decode_snapshot(self._read(self.data_file_path), source=str(self.data_file_path))

    def create_backup(self, records: List[Dict[str, Any]]) -> str:
        with self._lock:
            name = unique_backup_name(lambda candidate: (self.backup_directory / candidate).exists())
            self._write(self.backup_directory / name, encode_snapshot(records))
            self._prune_backups()
            return name

    def list_backups(self) -> List[str]:
        with self._lock:
            return sorted((path.name for path in self._backup_files()), reverse=True)

    def load_backup(self, name: str) -> Optional[List[Dict[str, Any]]]:
        with self._lock:
            path = self.backup_directory / Path(name).name
            if not path.is_file():
                return None
            return decode_snapshot(self._read(path), source=str(path))

    def _backup_files(self) -> List[Path]:
        # The directory is created by the first backup write
        if not self.backup_directory.is_dir():
            return []
        try:
            return [p for p in self.backup_directory.glob(f"{BACKUP_PREFIX}*{BACKUP_SUFFIX}") if p.is_file()]
        except OSError as e:
            raise SnapshotError(f"Cannot list backups: {e}", path=str(self.backup_directory)) from e

    def _prune_backups(self) -> None:
        """Keep only the newest max_backups files by modification time"""
        dated = []
        for path in self._backup_files():
            try:
                dated.append((path.stat().st_mtime, path.name, path))
            except FileNotFoundError:
                # Removed since it was listed
                continue
            except OSError as e:
                raise SnapshotError(f"Cannot inspect backup: {e}", path=str(path)) from e

        files = [path for _, _, path in sorted(dated, reverse=True)]
        for stale in files[self.max_backups:]:
            try:
                stale.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                raise SnapshotError(f"Cannot remove old backup: {e}", path=str(stale)) from e

    def _read(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SnapshotError(f"Cannot read snapshot: {e}", path=str(path)) from e

    def _write(self, path: Path, text: str) -> None:
        # Write beside the target then swap, so a crash never leaves half a file
        temp_path = path.with_name(f".{path.name}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(text, encoding="utf-8")
            os.replace(temp_path, path)
        except OSError as e:
            raise SnapshotError(f"Cannot write snapshot: {e}", path=str(path)) from e
