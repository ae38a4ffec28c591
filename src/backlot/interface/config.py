"""
Player preferences for the CLI.

Kept as a dotfile beside the save slots so the store's slot listing never
mistakes it for a save:

    saves/.backlot_config.json
"""

import json
import logging
from pathlib import Path
from typing import TypedDict

from ..constants import AUTO_ADVANCE_MAX_WEEKS, TURN_LENGTH_CHOICES

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".backlot_config.json"


class Config(TypedDict, total=False):
    saves_dir: str
    turn_length_weeks: int
    auto_advance_limit: int
    seed: int | None


DEFAULT_CONFIG: Config = {
    "saves_dir": "saves",
    "turn_length_weeks": 1,
    "auto_advance_limit": 26,
    "seed": None,
}


def get_config_path(saves_dir: Path | str = "saves") -> Path:
    return Path(saves_dir) / CONFIG_FILENAME


def load_config(saves_dir: Path | str = "saves") -> Config:
    """Stored preferences layered over the defaults. Unreadable files give the defaults."""
    config = DEFAULT_CONFIG.copy()
    path = get_config_path(saves_dir)
    if not path.exists():
        return config
    try:
        stored = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable config {path}: {e}")
        return config
    if isinstance(stored, dict):
        config.update(stored)
    return config


def save_config(config: Config, saves_dir: Path | str = "saves") -> bool:
    path = get_config_path(saves_dir)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(config, indent=2), encoding="utf-8")
    except OSError as e:
        logger.warning(f"Could not write config {path}: {e}")
        return False
    return True


def update_config(saves_dir: Path | str = "saves", **changes) -> Config:
    """Read, apply changes, write back."""
    config = load_config(saves_dir)
    config.update(changes)
    save_config(config, saves_dir)
    return config


def set_turn_length(weeks: int, saves_dir: Path | str = "saves") -> None:
    if weeks not in TURN_LENGTH_CHOICES:
        logger.warning(f"Turn length {weeks} is not one of {TURN_LENGTH_CHOICES}; keeping saved value")
        return
    update_config(saves_dir, turn_length_weeks=weeks)


def set_auto_advance_limit(weeks: int, saves_dir: Path | str = "saves") -> None:
    update_config(saves_dir, auto_advance_limit=max(1, min(AUTO_ADVANCE_MAX_WEEKS, weeks)))
