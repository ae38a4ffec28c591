"""Tests for save envelopes, stores and snapshot round trips."""

import json
from datetime import datetime, timezone

from backlot.state import JsonStudioStore, MemoryStudioStore
from backlot.state.manager import StudioManager
from backlot.state.store import (
    build_cooldown_index,
    build_envelope,
    load_envelope,
    sanitize_state,
)

from conftest import project_named


class TestEnvelope:
    """Test versioned save envelopes."""

    def test_build(self):
        stamp = datetime(2026, 1, 2, tzinfo=timezone.utc)
        envelope = build_envelope({"current_week": 4}, saved_at=stamp)
        assert envelope == {
            "version": 1,
            "savedAt": "2026-01-02T00:00:00+00:00",
            "manager": {"current_week": 4},
        }

    def test_unwrap(self):
        assert load_envelope(build_envelope({"cash": 1})) == {"cash": 1}

    def test_rejects_other_versions(self):
        assert load_envelope({"version": 2, "manager": {}}) is None
        assert load_envelope({"manager": {}}) is None

    def test_rejects_malformed(self):
        assert load_envelope([]) is None
        assert load_envelope({"version": 1, "manager": "nope"}) is None


class TestCooldownIndex:
    """Test rebuilding the event cooldown index."""

    def test_from_pairs(self):
        snapshot = {"last_event_week_pairs": [["a", 3], ["b", 5.0], ["a", 7], ["bad"], [1, 2]]}
        assert build_cooldown_index(snapshot) == {"a": 7, "b": 5}

    def test_from_legacy_mapping(self):
        snapshot = {"last_event_week": {"a": 2, "b": "x"}}
        assert build_cooldown_index(snapshot) == {"a": 2}

    def test_pairs_win_over_legacy(self):
        snapshot = {"last_event_week_pairs": [], "last_event_week": {"a": 2}}
        assert build_cooldown_index(snapshot) == {}

    def test_missing(self):
        assert build_cooldown_index({}) == {}


class TestSanitize:
    """Test clamping of out-of-range save values."""

    def test_clamps_values(self, manager):
        state = manager.state
        state.reputation.critics = 140
        state.reputation.audience = -5
        state.turn_length_weeks = 3
        project_named(manager, "Night Ledger").scheduled_weeks_remaining = -2
        sanitize_state(state)
        assert state.reputation.critics == 100
        assert state.reputation.audience == 0
        assert state.turn_length_weeks == 1
        assert project_named(manager, "Night Ledger").scheduled_weeks_remaining == 0

    def test_bankrupt_cash_floor(self, manager):
        manager.state.is_bankrupt = True
        manager.state.cash = -400
        sanitize_state(manager.state)
        assert manager.state.cash == 0


class TestManagerPersistence:
    """Test saving and loading through the manager."""

    def test_round_trip(self, manager):
        manager.end_week()
        manager.last_event_week["creative-rewrite-offer"] = 2
        manager.save("slot1")
        week = manager.state.current_week
        cash = manager.state.cash
        titles = [p.title for p in manager.state.active_projects]

        manager.end_week()
        manager.last_event_week.clear()
        assert manager.load("slot1")
        assert manager.state.current_week == week
        assert manager.state.cash == cash
        assert [p.title for p in manager.state.active_projects] == titles
        assert manager.last_event_week["creative-rewrite-offer"] == 2

    def test_missing_slot(self, manager):
        assert not manager.load("nothing-here")

    def test_wrong_version(self, manager, memory_store):
        memory_store.save("old", {"version": 0, "manager": manager.to_snapshot()})
        assert not manager.load("old")

    def test_schema_mismatch(self, manager, memory_store):
        memory_store.save("broken", build_envelope({"current_week": "soon"}))
        week = manager.state.current_week
        assert not manager.load("broken")
        assert manager.state.current_week == week

    def test_load_from(self, manager, memory_store):
        manager.state.studio_name = "Harbor Lights"
        manager.save()
        restored = StudioManager.load_from(memory_store)
        assert restored is not None
        assert restored.state.studio_name == "Harbor Lights"
        assert StudioManager.load_from(memory_store, "missing") is None

    def test_snapshot_has_pairs(self, manager):
        manager.last_event_week["x"] = 4
        snapshot = manager.to_snapshot()
        assert snapshot["last_event_week_pairs"] == [["x", 4]]
        json.dumps(snapshot)

    def test_from_snapshot(self, manager):
        manager.last_event_week["studio-memo"] = 3
        rebuilt = StudioManager.from_snapshot(manager.to_snapshot(), bus=manager.bus)
        assert rebuilt.state.studio_name == manager.state.studio_name
        assert rebuilt.last_event_week == {"studio-memo": 3}


class TestMemoryStore:
    """Test the in-memory store."""

    def test_copies_on_save(self):
        store = MemoryStudioStore()
        envelope = build_envelope({"studio_name": "A"})
        store.save("a", envelope)
        envelope["manager"]["studio_name"] = "B"
        assert store.load("a")["manager"]["studio_name"] == "A"

    def test_delete_and_clear(self):
        store = MemoryStudioStore()
        store.save("a", build_envelope({}))
        assert store.exists("a")
        assert store.delete("a")
        assert not store.delete("a")
        store.save("b", build_envelope({}))
        store.clear()
        assert store.list_all() == []


class TestJsonStore:
    """Test the file-based store."""

    def test_save_and_load(self, tmp_path):
        store = JsonStudioStore(tmp_path)
        store.save("run", build_envelope({"studio_name": "A", "current_week": 3}))
        assert (tmp_path / "run.json").exists()
        assert store.load("run")["manager"]["current_week"] == 3

    def test_backup_on_overwrite(self, tmp_path):
        store = JsonStudioStore(tmp_path)
        store.save("run", build_envelope({"current_week": 1}))
        store.save("run", build_envelope({"current_week": 2}))
        backup = json.loads((tmp_path / "run.json.bak").read_text())
        assert backup["manager"]["current_week"] == 1

    def test_corrupt_file(self, tmp_path):
        (tmp_path / "bad.json").write_text("{not json")
        assert JsonStudioStore(tmp_path).load("bad") is None

    def test_list_skips_dotfiles(self, tmp_path):
        store = JsonStudioStore(tmp_path)
        (tmp_path / ".backlot_config.json").write_text("{}")
        store.save("run", build_envelope({"studio_name": "Harbor", "current_week": 5, "cash": 10}))
        slots = store.list_all()
        assert [s["slot"] for s in slots] == ["run"]
        assert slots[0]["studio_name"] == "Harbor"
        assert slots[0]["week"] == 5

    def test_delete(self, tmp_path):
        store = JsonStudioStore(tmp_path)
        store.save("run", build_envelope({}))
        assert store.delete("run")
        assert not store.exists("run")
        assert not store.delete("run")

    def test_manager_accepts_path(self, tmp_path, make_manager):
        manager = make_manager(store=tmp_path)
        assert isinstance(manager.store, JsonStudioStore)
        manager.save("disk")
        restored = StudioManager.load_from(JsonStudioStore(tmp_path), "disk")
        assert restored.state.current_week == manager.state.current_week
