"""
Studio save storage.

Separates persistence from simulation logic for testability. Stores deal
in versioned envelopes:

    {"version": 1, "savedAt": "<ISO-8601>", "manager": <snapshot>}

where the snapshot is a plain dict produced by StudioManager.to_snapshot().
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol, runtime_checkable

from .schema import DepartmentTrack, StudioState

logger = logging.getLogger(__name__)

ENVELOPE_VERSION = 1
COOLDOWN_PAIRS_KEY = "last_event_week_pairs"
LEGACY_COOLDOWN_KEY = "last_event_week"

TALENT_HISTORY_LIMIT = 10
RIVAL_HISTORY_LIMIT = 12
DEPARTMENT_LEVEL_LIMIT = 4


# -----------------------------------------------------------------------------
# Envelope helpers
# -----------------------------------------------------------------------------

def build_envelope(snapshot: dict, saved_at: datetime | None = None) -> dict:
    stamp = saved_at or datetime.now(timezone.utc)
    return {
        "version": ENVELOPE_VERSION,
        "savedAt": stamp.isoformat(),
        "manager": snapshot,
    }


def load_envelope(payload: object) -> dict | None:
    """
    Unwrap a save envelope.

    Returns the manager snapshot, or None if the payload is malformed or
    was written by a different envelope version.
    """
    if not isinstance(payload, dict):
        logger.warning("Save payload is not an object")
        return None
    version = payload.get("version")
    if version != ENVELOPE_VERSION:
        logger.warning(f"Unsupported save version: {version!r}")
        return None
    snapshot = payload.get("manager")
    if not isinstance(snapshot, dict):
        logger.warning("Save envelope has no manager snapshot")
        return None
    return snapshot


def build_cooldown_index(snapshot: dict) -> dict[str, int]:
    """
    Rebuild the template cooldown index from a snapshot.

    Accepts the ordered pair list written by current saves, and falls back
    to the plain mapping written by older ones. Later pairs win.
    """
    index: dict[str, int] = {}
    pairs = snapshot.get(COOLDOWN_PAIRS_KEY)
    if isinstance(pairs, list):
        for item in pairs:
            if isinstance(item, (list, tuple)) and len(item) == 2:
                key, week = item
                if isinstance(key, str) and isinstance(week, (int, float)):
                    index[key] = int(week)
        return index

    legacy = snapshot.get(LEGACY_COOLDOWN_KEY)
    if isinstance(legacy, dict):
        for key, week in legacy.items():
            if isinstance(week, (int, float)):
                index[str(key)] = int(week)
    return index


def sanitize_state(state: StudioState) -> StudioState:
    """Clamp values a hand-edited or older save could carry out of range."""
    pillars = state.reputation
    for name in pillars.PILLARS:
        setattr(pillars, name, min(100.0, max(0.0, getattr(pillars, name))))

    for talent in state.talent_pool:
        memory = talent.relationship_memory
        if memory is not None:
            memory.trust = min(100, max(0, memory.trust))
            memory.loyalty = min(100, max(0, memory.loyalty))
            memory.interaction_history = memory.interaction_history[-TALENT_HISTORY_LIMIT:]

    for rival in state.rivals:
        if rival.memory is not None:
            rival.memory.interaction_history = rival.memory.interaction_history[-RIVAL_HISTORY_LIMIT:]

    for project in state.active_projects:
        project.scheduled_weeks_remaining = max(0, project.scheduled_weeks_remaining)

    # Older saves predate departments
    for track in DepartmentTrack:
        level = state.department_levels.get(track, 0)
        state.department_levels[track] = min(DEPARTMENT_LEVEL_LIMIT, max(0, level))

    if state.turn_length_weeks not in (1, 2):
        state.turn_length_weeks = 1
    if state.is_bankrupt:
        state.cash = max(0, state.cash)
    return state


# -----------------------------------------------------------------------------
# Stores
# -----------------------------------------------------------------------------

@runtime_checkable
class StudioStore(Protocol):
    """
    Abstract storage interface for studio saves.

    Implementations:
    - JsonStudioStore: File-based persistence (production)
    - MemoryStudioStore: In-memory storage (testing)
    """

    def save(self, slot: str, envelope: dict) -> None:
        """Persist an envelope under a slot name."""
        ...

    def load(self, slot: str) -> dict | None:
        """Load an envelope. Returns None if not found."""
        ...

    def delete(self, slot: str) -> bool:
        """Delete a slot. Returns True if deleted."""
        ...

    def list_all(self) -> list[dict]:
        """List all slots with metadata."""
        ...

    def exists(self, slot: str) -> bool:
        """Check if a slot exists."""
        ...


def _slot_summary(slot: str, envelope: dict) -> dict:
    snapshot = envelope.get("manager") or {}
    return {
        "slot": slot,
        "studio_name": snapshot.get("studio_name", "Unnamed"),
        "week": snapshot.get("current_week", 1),
        "cash": snapshot.get("cash", 0),
        "saved_at": envelope.get("savedAt", ""),
    }


class JsonStudioStore:
    """
    File-based save storage using JSON.

    One file per slot; the previous save is kept as <slot>.json.bak.
    """

    def __init__(self, saves_dir: Path | str = "saves"):
        self.saves_dir = Path(saves_dir)
        self.saves_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, slot: str) -> Path:
        return self.saves_dir / f"{slot}.json"

    def save(self, slot: str, envelope: dict) -> None:
        """Save envelope to JSON file with backup."""
        save_file = self._path(slot)

        if save_file.exists():
            backup = save_file.with_suffix(".json.bak")
            backup.write_text(save_file.read_text())

        save_file.write_text(json.dumps(envelope, indent=2))
        logger.info(f"Saved studio to {save_file}")

    def load(self, slot: str) -> dict | None:
        save_file = self._path(slot)
        if not save_file.exists():
            return None
        try:
            data = json.loads(save_file.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read save {save_file}: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"Save {save_file} is not a JSON object")
            return None
        return data

    def delete(self, slot: str) -> bool:
        save_file = self._path(slot)
        if save_file.exists():
            save_file.unlink()
            return True
        return False

    def list_all(self) -> list[dict]:
        """List saves, most recently modified first."""
        slots = []
        for f in sorted(
            self.saves_dir.glob("*.json"),
            key=lambda x: x.stat().st_mtime,
            reverse=True,
        ):
            # Config and other dotfiles live beside the saves
            if f.name.startswith("."):
                continue
            try:
                data = json.loads(f.read_text())
            except (OSError, json.JSONDecodeError):
                continue
            if isinstance(data, dict):
                slots.append(_slot_summary(f.stem, data))
        return slots

    def exists(self, slot: str) -> bool:
        return self._path(slot).exists()


class MemoryStudioStore:
    """
    In-memory save storage for testing.

    Envelopes are copied through JSON on the way in, so a loaded save
    never aliases live state.
    """

    def __init__(self):
        self.saves: dict[str, str] = {}

    def save(self, slot: str, envelope: dict) -> None:
        self.saves[slot] = json.dumps(envelope)

    def load(self, slot: str) -> dict | None:
        raw = self.saves.get(slot)
        if raw is None:
            return None
        return json.loads(raw)

    def delete(self, slot: str) -> bool:
        if slot in self.saves:
            del self.saves[slot]
            return True
        return False

    def list_all(self) -> list[dict]:
        slots = [_slot_summary(slot, json.loads(raw)) for slot, raw in self.saves.items()]
        slots.sort(key=lambda x: x["saved_at"], reverse=True)
        return slots

    def exists(self, slot: str) -> bool:
        return slot in self.saves

    def clear(self) -> None:
        """Clear all saves (test utility)."""
        self.saves.clear()
