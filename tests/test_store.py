"""Tests for planbot.data.store — SentReminderLog and SubscriberRegistry."""

import json
from unittest.mock import patch

import pytest

from planbot.core.errors import PersistenceError
from planbot.data.store import JsonFile, SentReminderLog, SubscriberRegistry


class TestJsonFile:
    def test_missing_file_returns_default_copy(self, tmp_path):
        default = {"groups": []}
        store = JsonFile(tmp_path / "x.json", default=default)
        data = store.read()
        data["groups"].append("g1")
        assert default == {"groups": []}

    def test_write_creates_parent_dirs(self, tmp_path):
        store = JsonFile(tmp_path / "nested" / "x.json", default=[])
        store.write(["a"])
        assert json.loads((tmp_path / "nested" / "x.json").read_text(encoding="utf-8")) == ["a"]
        assert not (tmp_path / "nested" / "x.json.tmp").exists()

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "x.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceError):
            JsonFile(path, default=[]).read()


class TestSentReminderLog:
    def test_starts_empty(self, sent_log):
        assert len(sent_log) == 0
        assert "E1" not in sent_log

    def test_add_flushes_to_disk(self, tmp_path):
        path = tmp_path / "sent.json"
        log = SentReminderLog(path)
        assert log.add("E1") is True
        assert json.loads(path.read_text(encoding="utf-8")) == ["E1"]
        assert "E1" in log

    def test_add_duplicate_returns_false(self, sent_log):
        sent_log.add("E1")
        assert sent_log.add("E1") is False
        assert len(sent_log) == 1

    def test_reload_keeps_ids(self, tmp_path):
        path = tmp_path / "sent.json"
        SentReminderLog(path).add("E1")
        SentReminderLog(path).add("E2")
        reloaded = SentReminderLog(path)
        assert "E1" in reloaded and "E2" in reloaded
        assert json.loads(path.read_text(encoding="utf-8")) == ["E1", "E2"]

    def test_non_array_file_raises(self, tmp_path):
        path = tmp_path / "sent.json"
        path.write_text('{"ids": []}', encoding="utf-8")
        with pytest.raises(PersistenceError):
            SentReminderLog(path)

    def test_failed_flush_keeps_id_out(self, sent_log):
        with patch.object(JsonFile, "write", side_effect=PersistenceError("disk full")):
            with pytest.raises(PersistenceError):
                sent_log.add("E1")
        assert "E1" not in sent_log
        assert sent_log.add("E1") is True


class TestSubscriberRegistry:
    def test_add_twice(self, registry):
        assert registry.add("group", "g1") is True
        assert registry.add("group", "g1") is False

    def test_remove_then_add(self, registry):
        registry.add("group", "g1")
        registry.remove("group", "g1")
        assert registry.add("group", "g1") is True

    def test_remove_absent_is_noop(self, registry):
        assert registry.remove("user", "u1") is False
        assert registry.all().users == []

    def test_kinds_are_separate(self, registry):
        registry.add("group", "1")
        registry.add("user", "1")
        snapshot = registry.all()
        assert snapshot.groups == ["1"]
        assert snapshot.users == ["1"]

    def test_file_format(self, tmp_path):
        path = tmp_path / "subs.json"
        reg = SubscriberRegistry(path)
        reg.add("user", "u1")
        assert json.loads(path.read_text(encoding="utf-8")) == {"groups": [], "users": ["u1"]}

    def test_reads_file_on_every_mutation(self, tmp_path):
        path = tmp_path / "subs.json"
        reg = SubscriberRegistry(path)
        reg.add("group", "g1")
        path.write_text(json.dumps({"groups": ["g1", "g2"], "users": []}), encoding="utf-8")
        assert reg.add("group", "g2") is False
        assert reg.all().groups == ["g1", "g2"]

    def test_unknown_kind_raises(self, registry):
        with pytest.raises(ValueError):
            registry.add("channel", "c1")
