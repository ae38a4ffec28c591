"""Tests for CLI commands and rendering helpers."""

import pytest
from rich.console import Console

from backlot.interface import cli, renderer
from backlot.interface.cli import (
    build_manager,
    cmd_decide,
    cmd_end,
    cmd_invest,
    cmd_ip,
    cmd_load,
    cmd_resolve,
    cmd_save,
    cmd_specialize,
    cmd_status,
    create_commands,
)
from backlot.interface.renderer import money
from backlot.state.schema import DepartmentTrack
from backlot.state.store import JsonStudioStore

from conftest import open_crisis


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    """Render at a fixed width so table cells never wrap or truncate."""
    wide = Console(width=200, color_system=None)
    monkeypatch.setattr(renderer, "console", wide)
    monkeypatch.setattr(cli, "console", wide)
    return wide


def captured(fn, *args):
    with renderer.console.capture() as capture:
        fn(*args)
    return capture.get()


class TestMoney:
    @pytest.mark.parametrize(
        "amount,expected",
        [(12_340_000, "$12.3M"), (450_000, "$450K"), (-180_000, "-$180K"), (0, "$0K")],
    )
    def test_format(self, amount, expected):
        assert money(amount) == expected


class TestCommands:
    """Test commands against a fixed-roll studio."""

    def test_every_help_command_exists(self):
        commands = create_commands()
        for name in ("status", "end", "resolve", "decide", "market", "save", "load"):
            assert name in commands

    def test_status_shows_studio(self, manager):
        output = captured(cmd_status, manager, [])
        assert "Backlot Pictures" in output
        assert "Night Ledger" in output

    def test_end_blocked_by_crisis(self, manager):
        open_crisis(manager)
        output = captured(cmd_end, manager, [])
        assert "Resolve all crises before ending the week." in output
        assert manager.state.current_week == 1

    def test_resolve_by_number(self, manager):
        open_crisis(manager)
        captured(cmd_resolve, manager, ["1", "1"])
        assert manager.state.pending_crises == []

    def test_bad_index(self, manager):
        output = captured(cmd_resolve, manager, ["4", "1"])
        assert "No crisis #4." in output

    def test_decide_by_number(self, manager):
        captured(cmd_decide, manager, ["1", "2"])
        assert manager.state.decision_queue == []

    def test_save_and_load(self, manager):
        captured(cmd_save, manager, ["slot"])
        manager.state.studio_name = "Changed"
        output = captured(cmd_load, manager, ["slot"])
        assert manager.state.studio_name == "Backlot Pictures"
        assert "Loaded Backlot Pictures." in output

    def test_ip_table(self, manager):
        output = captured(cmd_ip, manager, [])
        assert "Vanta County" in output
        assert "listed" in output

    def test_invest_by_name(self, manager):
        output = captured(cmd_invest, manager, ["production"])
        assert "Production department upgraded to level 1." in output
        assert manager.state.department_levels[DepartmentTrack.PRODUCTION] == 1

    def test_unknown_specialization(self, manager):
        output = captured(cmd_specialize, manager, ["arthouse"])
        assert "Choose balanced, blockbuster, prestige or indie." in output


class TestBuildManager:
    def test_seeded_worlds_match(self, tmp_path):
        first = build_manager(tmp_path, 5)
        second = build_manager(tmp_path, 5)
        assert isinstance(first.store, JsonStudioStore)
        assert [p.title for p in first.state.script_market] == [p.title for p in second.state.script_market]
