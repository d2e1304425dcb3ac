"""Tests for the usage store."""

import json

from syspass_cli.models import Account
from syspass_cli.usage import UsageStore


def accounts(*pairs):
    return [Account(id=account_id, name=name) for account_id, name in pairs]


class TestRank:
    """Tests for ranking search results."""

    def test_most_used_first(self):
        """Test that the higher count wins regardless of server order."""
        store = UsageStore({1: 3, 2: 7})

        ranked = store.rank(accounts((1, "test-a"), (2, "test-b")))

        assert [a.id for a in ranked] == [2, 1]

    def test_ties_broken_by_name(self):
        """Test that equal counts sort by case-insensitive name."""
        store = UsageStore({1: 2, 2: 2, 3: 2})

        ranked = store.rank(accounts((1, "zeta"), (2, "Alpha"), (3, "beta")))

        assert [a.name for a in ranked] == ["Alpha", "beta", "zeta"]

    def test_unknown_accounts_count_zero(self):
        """Test that never-used accounts rank after used ones."""
        store = UsageStore({5: 1})

        ranked = store.rank(accounts((4, "aaa"), (5, "zzz")))

        assert [a.id for a in ranked] == [5, 4]

    def test_deterministic(self):
        """Test that the same input always yields the same order."""
        items = accounts((3, "same"), (1, "same"), (2, "Same"))
        store = UsageStore()

        assert [a.id for a in store.rank(items)] == [1, 2, 3]
        assert [a.id for a in store.rank(list(reversed(items)))] == [1, 2, 3]


class TestRecordUse:
    """Tests for counter updates."""

    def test_increment(self):
        """Test that absent ids start from zero."""
        store = UsageStore()

        assert store.record_use(9) == 1
        assert store.record_use(9) == 2
        assert store.count(9) == 2


class TestPersistence:
    """Tests for load and save."""

    def test_round_trip(self, temp_dir):
        """Test that saved counters load back unchanged."""
        path = temp_dir / "usage.json"
        store = UsageStore({1: 3, 22: 7})

        assert store.save(path)

        assert UsageStore.load(path).counts == {1: 3, 22: 7}
        assert json.loads(path.read_text()) == {"1": 3, "22": 7}

    def test_save_creates_directory(self, temp_dir):
        """Test that a missing parent directory is created."""
        path = temp_dir / "nested" / "usage.json"

        assert UsageStore({1: 1}).save(path)
        assert path.exists()

    def test_missing_file(self, temp_dir):
        """Test that a missing file loads as an empty store."""
        assert UsageStore.load(temp_dir / "absent.json").counts == {}

    def test_malformed_file(self, temp_dir, caplog):
        """Test that invalid JSON is logged and ignored."""
        path = temp_dir / "usage.json"
        path.write_text("{not json")

        store = UsageStore.load(path)

        assert store.counts == {}
        assert "Ignoring usage file" in caplog.text

    def test_invalid_entries_skipped(self, temp_dir):
        """Test that bad keys and values are dropped individually."""
        path = temp_dir / "usage.json"
        path.write_text(json.dumps({"1": 4, "x": 2, "2": -1, "3": "5", "4": True, "5": 1.5, "6": 0}))

        assert UsageStore.load(path).counts == {1: 4, 6: 0}

    def test_not_an_object(self, temp_dir):
        """Test that a JSON list is ignored."""
        path = temp_dir / "usage.json"
        path.write_text("[1, 2]")

        assert UsageStore.load(path).counts == {}

    def test_save_failure_is_soft(self, temp_dir):
        """Test that an unwritable path returns False instead of raising."""
        blocker = temp_dir / "file"
        blocker.write_text("")

        assert UsageStore({1: 1}).save(blocker / "usage.json") is False
