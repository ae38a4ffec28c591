"""
Command-line interface for Backlot.

Main entry point and turn loop. Every command is a plain function taking
the manager and its arguments; numbered arguments refer to the rows of
the last table shown for that list.
"""

import argparse
import logging
from pathlib import Path

from rich.prompt import Prompt

from ..state.manager import StudioManager
from ..state.schema import DepartmentTrack, FranchiseOperation, StudioSpecialization
from ..state.seeds import seeded_rng
from ..systems.lifecycle import OFFER_TABLE
from ..systems.turns import CrisisGateError
from .config import load_config, set_auto_advance_limit, set_turn_length
from .renderer import (
    SEVERITY_COLORS,
    THEME,
    console,
    render_item,
    show_banner,
    show_help,
    show_ip_market,
    show_market,
    show_offers,
    show_projects,
    show_result,
    show_status,
    show_summary,
    show_talent,
)


def _pick(items: list, arg: str | None, label: str):
    """Resolve a 1-based index argument against a list."""
    if arg is None or not arg.isdigit():
        console.print(f"[{THEME['warning']}]Which {label}? Give its number.[/{THEME['warning']}]")
        return None
    index = int(arg) - 1
    if not 0 <= index < len(items):
        console.print(f"[{THEME['warning']}]No {label} #{arg}.[/{THEME['warning']}]")
        return None
    return items[index]


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

def cmd_status(manager: StudioManager, args: list[str]) -> None:
    show_status(manager)
    show_projects(manager)


def cmd_end(manager: StudioManager, args: list[str]) -> None:
    try:
        summary = manager.end_turn()
    except CrisisGateError as e:
        console.print(f"[{THEME['danger']}]{e}[/{THEME['danger']}]")
        cmd_crises(manager, [])
        return
    show_summary(summary)


def cmd_auto(manager: StudioManager, args: list[str], limit: int = 26) -> None:
    if args and args[0].isdigit():
        limit = int(args[0])
    result = manager.advance_until_decision(limit)
    color = THEME["good"] if result.success else THEME["warning"]
    console.print(f"[{color}]{result.message}[/{color}]")
    if manager.turns.last_summary and result.advanced_weeks:
        show_summary(manager.turns.last_summary)


def cmd_crises(manager: StudioManager, args: list[str]) -> None:
    crises = manager.state.pending_crises
    if not crises:
        console.print(f"[{THEME['dim']}]No crises pending.[/{THEME['dim']}]")
    for i, crisis in enumerate(crises, 1):
        render_item(f"{i}. {crisis.title}", crisis.body, crisis.options, SEVERITY_COLORS[crisis.severity])


def cmd_decisions(manager: StudioManager, args: list[str]) -> None:
    decisions = manager.state.decision_queue
    if not decisions:
        console.print(f"[{THEME['dim']}]Inbox is empty.[/{THEME['dim']}]")
    for i, decision in enumerate(decisions, 1):
        title = f"{i}. {decision.title} ({decision.weeks_until_expiry}w)"
        render_item(title, decision.body, decision.options, THEME["accent"])


def _choose_option(item, arg: str | None):
    if arg is None:
        arg = Prompt.ask("Option", choices=[str(i) for i in range(1, len(item.options) + 1)])
    return _pick(item.options, arg, "option")


def cmd_resolve(manager: StudioManager, args: list[str]) -> None:
    crisis = _pick(manager.state.pending_crises, args[0] if args else None, "crisis")
    if crisis is None:
        return
    option = _choose_option(crisis, args[1] if len(args) > 1 else None)
    if option is not None:
        manager.resolve_crisis(crisis.id, option.id)
        console.print(f"[{THEME['good']}]Resolved: {crisis.title}[/{THEME['good']}]")


def cmd_decide(manager: StudioManager, args: list[str]) -> None:
    decision = _pick(manager.state.decision_queue, args[0] if args else None, "decision")
    if decision is None:
        return
    option = _choose_option(decision, args[1] if len(args) > 1 else None)
    if option is not None:
        manager.resolve_decision(decision.id, option.id)
        console.print(f"[{THEME['good']}]Decided: {decision.title}[/{THEME['good']}]")


def cmd_market(manager: StudioManager, args: list[str]) -> None:
    show_market(manager)


def cmd_acquire(manager: StudioManager, args: list[str]) -> None:
    pitch = _pick(manager.state.script_market, args[0] if args else None, "script")
    if pitch is not None:
        show_result(manager.acquire_script(pitch.id))


def cmd_advance(manager: StudioManager, args: list[str]) -> None:
    project = _pick(manager.state.active_projects, args[0] if args else None, "project")
    if project is not None:
        show_result(manager.advance_project_phase(project.id))


def cmd_talent(manager: StudioManager, args: list[str]) -> None:
    show_talent(manager)


def _project_and_talent(manager: StudioManager, args: list[str]):
    project = _pick(manager.state.active_projects, args[0] if args else None, "project")
    if project is None:
        return None, None
    talent = _pick(manager.state.talent_pool, args[1] if len(args) > 1 else None, "talent")
    return project, talent


def cmd_negotiate(manager: StudioManager, args: list[str]) -> None:
    project, talent = _project_and_talent(manager, args)
    if project is not None and talent is not None:
        show_result(manager.start_talent_negotiation(project.id, talent.id))


def cmd_quick(manager: StudioManager, args: list[str]) -> None:
    project, talent = _project_and_talent(manager, args)
    if project is not None and talent is not None:
        show_result(manager.negotiate_and_attach_talent(project.id, talent.id))


def cmd_offers(manager: StudioManager, args: list[str]) -> None:
    project = _pick(manager.state.active_projects, args[0] if args else None, "project")
    if project is not None:
        show_offers(manager, project)


def cmd_accept(manager: StudioManager, args: list[str]) -> None:
    project = _pick(manager.state.active_projects, args[0] if args else None, "project")
    if project is None:
        return
    offer = _pick(manager.lifecycle.offers_for(project.id), args[1] if len(args) > 1 else None, "offer")
    if offer is not None:
        show_result(manager.accept_distribution_offer(project.id, offer.id))


def cmd_sequel(manager: StudioManager, args: list[str]) -> None:
    project = _pick(manager.state.active_projects, args[0] if args else None, "project")
    if project is not None:
        show_result(manager.start_sequel(project.id))


FRANCHISE_OPERATION_ARGS = {
    "reset": FranchiseOperation.BRAND_RESET,
    "legacy": FranchiseOperation.LEGACY_CASTING,
    "hiatus": FranchiseOperation.HIATUS_PLANNING,
}


def cmd_franchise(manager: StudioManager, args: list[str]) -> None:
    project = _pick(manager.state.active_projects, args[0] if args else None, "project")
    if project is None:
        return
    operation = FRANCHISE_OPERATION_ARGS.get(args[1] if len(args) > 1 else "")
    if operation is None:
        console.print(f"[{THEME['warning']}]Choose reset, legacy or hiatus.[/{THEME['warning']}]")
        return
    show_result(manager.franchise.run_operation(project.id, operation))


def cmd_ip(manager: StudioManager, args: list[str]) -> None:
    show_ip_market(manager)


def cmd_rights(manager: StudioManager, args: list[str]) -> None:
    ip = _pick(manager.state.owned_ips, args[0] if args else None, "IP")
    if ip is not None:
        show_result(manager.acquire_ip_rights(ip.id))


def cmd_adapt(manager: StudioManager, args: list[str]) -> None:
    ip = _pick(manager.state.owned_ips, args[0] if args else None, "IP")
    if ip is not None:
        show_result(manager.develop_project_from_ip(ip.id))


def cmd_specialize(manager: StudioManager, args: list[str]) -> None:
    try:
        specialization = StudioSpecialization(args[0].lower() if args else "")
    except ValueError:
        console.print(f"[{THEME['warning']}]Choose balanced, blockbuster, prestige or indie.[/{THEME['warning']}]")
        return
    show_result(manager.set_studio_specialization(specialization))


def cmd_invest(manager: StudioManager, args: list[str]) -> None:
    try:
        track = DepartmentTrack(args[0].lower() if args else "")
    except ValueError:
        console.print(f"[{THEME['warning']}]Choose development, production or distribution.[/{THEME['warning']}]")
        return
    show_result(manager.invest_department(track))


def cmd_partner(manager: StudioManager, args: list[str]) -> None:
    partners = [row[0] for row in OFFER_TABLE]
    partner = _pick(partners, args[0] if args else None, "partner")
    if partner is not None:
        show_result(manager.sign_exclusive_distribution_partner(partner))


def cmd_save(manager: StudioManager, args: list[str]) -> None:
    slot = args[0] if args else "autosave"
    manager.save(slot)
    console.print(f"[{THEME['good']}]Saved to {slot}.[/{THEME['good']}]")


def cmd_load(manager: StudioManager, args: list[str]) -> None:
    slot = args[0] if args else "autosave"
    if manager.load(slot):
        console.print(f"[{THEME['good']}]Loaded {manager.state.studio_name}.[/{THEME['good']}]")
        show_status(manager)
    else:
        console.print(f"[{THEME['warning']}]Could not load slot {slot}.[/{THEME['warning']}]")


def cmd_help(manager: StudioManager, args: list[str]) -> None:
    show_help()


def create_commands() -> dict:
    return {
        "status": cmd_status,
        "end": cmd_end,
        "auto": cmd_auto,
        "crises": cmd_crises,
        "resolve": cmd_resolve,
        "inbox": cmd_decisions,
        "decide": cmd_decide,
        "market": cmd_market,
        "acquire": cmd_acquire,
        "advance": cmd_advance,
        "talent": cmd_talent,
        "negotiate": cmd_negotiate,
        "quick": cmd_quick,
        "offers": cmd_offers,
        "accept": cmd_accept,
        "sequel": cmd_sequel,
        "franchise": cmd_franchise,
        "ip": cmd_ip,
        "rights": cmd_rights,
        "adapt": cmd_adapt,
        "specialize": cmd_specialize,
        "invest": cmd_invest,
        "partner": cmd_partner,
        "save": cmd_save,
        "load": cmd_load,
        "help": cmd_help,
    }


# -----------------------------------------------------------------------------
# Entry point
# -----------------------------------------------------------------------------

def build_manager(saves_dir: Path, seed: int | None) -> StudioManager:
    """Seeded runs get one generator per random source."""
    if seed is None:
        return StudioManager(store=saves_dir)
    return StudioManager(
        crisis_rng=seeded_rng(seed),
        event_rng=seeded_rng(seed + 1),
        negotiation_rng=seeded_rng(seed + 2),
        rival_rng=seeded_rng(seed + 3),
        store=saves_dir,
        world_seed=seed,
    )


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Backlot - film studio management")
    parser.add_argument("--seed", type=int, default=None, help="Seed every random source")
    parser.add_argument("--saves-dir", default=None, help="Directory for save slots")
    parser.add_argument("--turn-length", type=int, choices=(1, 2), default=None, help="Weeks per turn")
    parser.add_argument("--auto-limit", type=int, default=None, help="Default auto-advance limit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log engine activity")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    saves_dir = Path(args.saves_dir or "saves")
    if args.turn_length is not None:
        set_turn_length(args.turn_length, saves_dir)
    if args.auto_limit is not None:
        set_auto_advance_limit(args.auto_limit, saves_dir)
    config = load_config(saves_dir)
    seed = args.seed if args.seed is not None else config.get("seed")

    show_banner()
    manager = build_manager(saves_dir, seed)
    manager.set_turn_length_weeks(config.get("turn_length_weeks", 1))
    auto_limit = config.get("auto_advance_limit", 26)

    commands = create_commands()
    console.print(f"[{THEME['dim']}]Type help for commands.[/{THEME['dim']}]\n")
    show_status(manager)

    while True:
        try:
            user_input = Prompt.ask(f"[{THEME['primary']}]week {manager.state.current_week}[/{THEME['primary']}]").strip()
            if not user_input:
                continue

            parts = user_input.split()
            cmd = parts[0].lower()
            cmd_args = parts[1:]

            if cmd in ("quit", "exit"):
                console.print(f"[{THEME['dim']}]That's a wrap.[/{THEME['dim']}]")
                break
            if cmd == "auto":
                cmd_auto(manager, cmd_args, auto_limit)
            elif cmd in commands:
                commands[cmd](manager, cmd_args)
            else:
                console.print(f"[{THEME['warning']}]Unknown command: {cmd}[/{THEME['warning']}]")
                continue

            if manager.state.is_bankrupt:
                console.print(f"[{THEME['danger']}]{manager.state.bankruptcy_reason}[/{THEME['danger']}]")
                break

        except KeyboardInterrupt:
            console.print(f"\n[{THEME['dim']}]Use quit to exit[/{THEME['dim']}]")
        except EOFError:
            break


if __name__ == "__main__":
    main()
