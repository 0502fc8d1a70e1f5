"""
Tests for snapshot storage backends
"""

import json
import os
import time
import pytest
from datetime import datetime
from pathlib import Path

from retail_ledger.exceptions import SnapshotError
from retail_ledger.storage import (
    InMemorySnapshotStorage, JSONFileSnapshotStorage, SnapshotStorage,
    backup_name, decode_snapshot, encode_snapshot
)


# Test data
test_records = [
    {
        "id": "acc_001",
        "name": "Test Account",
        "pin": "1234",
        "account_type": "Savings",
        "balance": "100.50",
        "created_at": "2025-01-01T10:00:00+00:00",
        "transactions": [
            {
                "transaction_type": "Deposit",
                "amount": "100.50",
                "timestamp": "2025-01-01T10:05:00+00:00",
                "description": "Deposit of R100.50"
            }
        ]
    }
]


class TestSnapshotDocuments:
    """Test encoding and validation of snapshot documents"""

    def test_encode_decode(self):
        text = encode_snapshot(test_records)

        document = json.loads(text)
        assert document["version"] == 1
        assert "saved_at" in document
        assert decode_snapshot(text) == test_records

    def test_invalid_json(self):
        with pytest.raises(SnapshotError, match="Invalid snapshot"):
            decode_snapshot("{not json", source="bankdata.json")

    def test_missing_fields(self):
        text = json.dumps({"saved_at": "2025-01-01T00:00:00+00:00", "accounts": [{"id": "x"}]})
        with pytest.raises(SnapshotError):
            decode_snapshot(text)

    def test_bad_decimal(self):
        records = [dict(test_records[0], balance="lots")]
        with pytest.raises(SnapshotError):
            decode_snapshot(encode_snapshot(records))

    @pytest.mark.parametrize("value", ["NaN", "Infinity", "-Infinity", "sNaN"])
    def test_non_finite_balance(self, value):
        records = [dict(test_records[0], balance=value)]
        with pytest.raises(SnapshotError):
            decode_snapshot(encode_snapshot(records))

    def test_non_finite_transaction_amount(self):
        transaction = dict(test_records[0]["transactions"][0], amount="NaN")
        records = [dict(test_records[0], transactions=[transaction])]
        with pytest.raises(SnapshotError):
            decode_snapshot(encode_snapshot(records))

    def test_error_carries_source(self):
        with pytest.raises(SnapshotError) as excinfo:
            decode_snapshot("[]", source="primary.json")
        assert excinfo.value.path == "primary.json"

    def test_backup_names_sort_chronologically(self):
        earlier = backup_name(datetime(2025, 1, 1, 9, 59, 59, 999999))
        later = backup_name(datetime(2025, 1, 1, 10, 0, 0, 0))

        assert earlier == "backup_20250101_095959_999999.json"
        assert earlier < later


class TestInMemorySnapshotStorage:
    """Test in-memory backend"""

    def setup_method(self):
        self.storage = InMemorySnapshotStorage(max_backups=3)

    def test_is_a_snapshot_storage(self):
        assert isinstance(self.storage, SnapshotStorage)

    def test_load_without_save(self):
        assert self.storage.load() is None

    def test_save_and_load(self):
        self.storage.save(test_records)

        assert self.storage.load() == test_records
        assert self.storage.save_count == 1

    def test_corrupt_primary(self):
        self.storage.save(test_records)
        self.storage.corrupt_primary()

        with pytest.raises(SnapshotError):
            self.storage.load()

    def test_backups_pruned_and_listed_newest_first(self):
        names = []
        for _ in range(5):
            names.append(self.storage.create_backup(test_records))
            time.sleep(0.001)

        listed = self.storage.list_backups()
        assert listed == sorted(names, reverse=True)[:3]
        assert self.storage.load_backup(listed[0]) == test_records
        assert self.storage.load_backup(names[0]) is None


class TestJSONFileSnapshotStorage:
    """Test JSON file backend"""

    def make_storage(self, tmp_path: Path, max_backups: int = 10) -> JSONFileSnapshotStorage:
        return JSONFileSnapshotStorage(
            tmp_path / "bankdata.json", tmp_path / "backups", max_backups
        )

    def test_backup_directory_created_on_first_backup(self, tmp_path):
        storage = self.make_storage(tmp_path)
        assert not (tmp_path / "backups").exists()
        assert storage.list_backups() == []

        storage.create_backup(test_records)

        assert (tmp_path / "backups").is_dir()

    def test_backup_directory_blocked_by_file(self, tmp_path):
        (tmp_path / "backups").write_text("not a directory")
        storage = self.make_storage(tmp_path)

        assert storage.list_backups() == []
        with pytest.raises(SnapshotError, match="Cannot write snapshot"):
            storage.create_backup(test_records)

    def test_save_and_load(self, tmp_path):
        storage = self.make_storage(tmp_path)
        assert storage.load() is None

        storage.save(test_records)

        assert storage.load() == test_records
        assert not list(tmp_path.glob(".*.tmp"))

    def test_load_unreadable_file(self, tmp_path):
        storage = self.make_storage(tmp_path)
        (tmp_path / "bankdata.json").write_text("garbage", encoding="utf-8")

        with pytest.raises(SnapshotError):
            storage.load()

    def test_save_into_missing_directory_is_snapshot_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        storage = JSONFileSnapshotStorage(blocker / "bankdata.json", tmp_path / "backups")

        with pytest.raises(SnapshotError, match="Cannot write snapshot"):
            storage.save(test_records)

    def test_backup_round_trip(self, tmp_path):
        storage = self.make_storage(tmp_path)

        name = storage.create_backup(test_records)

        assert name.startswith("backup_") and name.endswith(".json")
        assert storage.list_backups() == [name]
        assert storage.load_backup(name) == test_records
        assert storage.load_backup("backup_missing.json") is None

    def test_load_backup_ignores_directory_parts(self, tmp_path):
        storage = self.make_storage(tmp_path)
        storage.save(test_records)

        assert storage.load_backup("../bankdata.json") is None

    def test_prune_keeps_newest_by_modification_time(self, tmp_path):
        storage = self.make_storage(tmp_path, max_backups=10)
        backups = tmp_path / "backups"
        text = encode_snapshot(test_records)
        backups.mkdir()

        # Twelve existing backups with increasing modification times
        for i in range(12):
            path = backups / f"backup_20250101_0000{i:02d}_000000.json"
            path.write_text(text, encoding="utf-8")
            os.utime(path, (1_700_000_000 + i, 1_700_000_000 + i))

        newest = storage.create_backup(test_records)

        remaining = storage.list_backups()
        assert len(remaining) == 10
        assert newest in remaining
        # The three oldest are gone
        for i in range(3):
            assert f"backup_20250101_0000{i:02d}_000000.json" not in remaining

    def test_prune_leaves_other_files(self, tmp_path):
        storage = self.make_storage(tmp_path, max_backups=1)
        (tmp_path / "backups").mkdir()
        notes = tmp_path / "backups" / "README.txt"
        notes.write_text("keep me")

        storage.create_backup(test_records)
        time.sleep(0.01)
        storage.create_backup(test_records)

        assert len(storage.list_backups()) == 1
        assert notes.exists()

    def test_prune_skips_backup_removed_after_listing(self, tmp_path, monkeypatch):
        storage = self.make_storage(tmp_path, max_backups=1)
        kept = storage.create_backup(test_records)
        vanished = tmp_path / "backups" / "backup_20000101_000000_000000.json"
        listed = storage._backup_files() + [vanished]
        monkeypatch.setattr(storage, "_backup_files", lambda: listed)

        storage._prune_backups()

        assert (tmp_path / "backups" / kept).exists()
