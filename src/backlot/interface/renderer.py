"""
Display and rendering helpers for the Backlot CLI.

Handles theming, the studio status panel, tables and week summaries.
"""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..constants import DEPARTMENT_LABELS, PHASE_LABELS, TIER_LABELS
from ..state.schema import DepartmentTrack, ProjectPhase, Severity, WeekSummary


# Shared console instance
console = Console()

# -----------------------------------------------------------------------------
# Theme
# -----------------------------------------------------------------------------

THEME = {
    "primary": "gold3",
    "secondary": "grey70",
    "warning": "dark_goldenrod",
    "danger": "dark_red",
    "accent": "cyan",
    "good": "green3",
    "dim": "dim",
}

SEVERITY_COLORS = {
    Severity.RED: "red",
    Severity.ORANGE: "dark_orange",
    Severity.YELLOW: "yellow",
}


def money(amount: float) -> str:
    """$12.3M / $450K style."""
    sign = "-" if amount < 0 else ""
    value = abs(amount)
    if value >= 1_000_000:
        return f"{sign}${value / 1_000_000:.1f}M"
    return f"{sign}${round(value / 1000)}K"


def show_banner() -> None:
    console.print(
        Panel(
            f"[bold {THEME['primary']}]BACKLOT[/bold {THEME['primary']}]\n"
            f"[{THEME['dim']}]studio management simulation[/{THEME['dim']}]",
            border_style=THEME["primary"],
            expand=False,
        )
    )


def show_help() -> None:
    table = Table(title="Commands", show_header=False, box=None)
    table.add_column("Command", style=THEME["accent"])
    table.add_column("Description", style=THEME["secondary"])
    rows = [
        ("status", "Studio panel and slate"),
        ("end", "End the turn"),
        ("crises", "List pending crises"),
        ("resolve <n> [option]", "Resolve crisis n"),
        ("inbox", "List pending decisions"),
        ("decide <n> [option]", "Answer decision n"),
        ("auto [weeks]", "Auto-advance until something needs you"),
        ("market", "Show the script market"),
        ("acquire <n>", "Buy script n from the market"),
        ("advance <n>", "Advance project n to its next phase"),
        ("talent", "Show available talent"),
        ("negotiate <project> <talent>", "Open a negotiation"),
        ("quick <project> <talent>", "Quick-close a talent deal"),
        ("offers <n>", "Show distribution offers for project n"),
        ("accept <n> <offer>", "Accept an offer for project n"),
        ("sequel <n>", "Start a sequel to released project n"),
        ("franchise <n> <reset|legacy|hiatus>", "Run a franchise operation on sequel n"),
        ("ip", "Show IP rights"),
        ("rights <n>", "Buy rights to IP n"),
        ("adapt <n>", "Develop an adaptation of owned IP n"),
        ("specialize <identity>", "Set studio identity (balanced, blockbuster, prestige, indie)"),
        ("invest <department>", "Upgrade development, production or distribution"),
        ("partner <n>", "Sign an exclusive deal with distributor n"),
        ("save [slot]", "Save the studio"),
        ("load [slot]", "Load a saved studio"),
        ("quit", "Exit"),
    ]
    for cmd, desc in rows:
        table.add_row(cmd, desc)
    console.print(table)


def show_status(manager) -> None:
    """Studio panel: cash, reputation, tier and queues."""
    s = manager.state
    rep = s.reputation
    cash_color = THEME["danger"] if s.cash < 1_000_000 else THEME["good"]

    table = Table(
        title=f"[bold {THEME['primary']}]{s.studio_name}[/bold {THEME['primary']}]",
        show_header=False,
        box=None,
    )
    table.add_column("Key", style=THEME["dim"])
    table.add_column("Value", style=THEME["secondary"])

    table.add_row("Week", f"{s.current_week}")
    table.add_row("Cash", f"[{cash_color}]{money(s.cash)}[/{cash_color}]")
    table.add_row("Weekly burn", money(manager.estimate_weekly_burn()))
    table.add_row("Heat", f"{manager.studio_heat} ({TIER_LABELS[manager.tier]})")
    table.add_row(
        "Reputation",
        f"Critics {rep.critics:.0f} · Talent {rep.talent:.0f} · "
        f"Distributor {rep.distributor:.0f} · Audience {rep.audience:.0f}",
    )
    departments = " · ".join(
        f"{DEPARTMENT_LABELS[track]} {s.department_levels.get(track, 0)}" for track in DepartmentTrack
    )
    table.add_row("Identity", f"{s.studio_specialization.value.title()} · {departments}")
    partner = manager.active_exclusive_partner()
    if partner:
        table.add_row("Partner", f"{partner} (until week {s.exclusive_partner_until_week})")
    table.add_row("Slots", f"{manager.project_capacity_used}/{manager.project_capacity_limit}")
    table.add_row("Crises", f"{len(s.pending_crises)}")
    table.add_row("Decisions", f"{len(s.decision_queue)}")
    if s.is_bankrupt:
        table.add_row("Status", f"[{THEME['danger']}]{s.bankruptcy_reason}[/{THEME['danger']}]")
    console.print(table)


def show_projects(manager) -> None:
    projects = manager.state.active_projects
    if not projects:
        console.print(f"[{THEME['dim']}]No projects on the slate.[/{THEME['dim']}]")
        return

    table = Table(title="Slate")
    table.add_column("#", style=THEME["dim"])
    table.add_column("Title", style="bold")
    table.add_column("Genre")
    table.add_column("Phase")
    table.add_column("Weeks", justify="right")
    table.add_column("Script", justify="right")
    table.add_column("Hype", justify="right")
    table.add_column("Box office", justify="right")

    for i, p in enumerate(projects, 1):
        gross = money(p.final_box_office) if p.final_box_office else "-"
        phase = PHASE_LABELS[p.phase]
        if p.phase == ProjectPhase.RELEASED and not p.release_resolved:
            phase = f"{phase} ({p.release_weeks_remaining}w left)"
        table.add_row(
            str(i),
            p.title,
            p.genre.value,
            phase,
            str(p.scheduled_weeks_remaining),
            f"{p.script_quality:.1f}",
            f"{p.hype_score:.0f}",
            gross,
        )
    console.print(table)


def show_market(manager) -> None:
    table = Table(title="Script market")
    table.add_column("#", style=THEME["dim"])
    table.add_column("Title", style="bold")
    table.add_column("Genre")
    table.add_column("Price", justify="right")
    table.add_column("Script", justify="right")
    table.add_column("Read")
    table.add_column("Expires", justify="right")
    for i, pitch in enumerate(manager.state.script_market, 1):
        evaluation = manager.evaluate_script_pitch(pitch.id)
        read = evaluation.recommendation if evaluation else "-"
        table.add_row(
            str(i),
            pitch.title,
            pitch.genre.value,
            money(pitch.asking_price),
            f"{pitch.script_quality:.1f}",
            read,
            f"{pitch.expires_in_weeks}w",
        )
    console.print(table)


def show_ip_market(manager) -> None:
    """Listed rights options followed by rights the studio holds."""
    table = Table(title="IP rights")
    table.add_column("#", style=THEME["dim"])
    table.add_column("Property", style="bold")
    table.add_column("Kind")
    table.add_column("Cost", justify="right")
    table.add_column("Window", justify="right")
    table.add_column("Status")
    week = manager.state.current_week
    for i, ip in enumerate(manager.state.owned_ips, 1):
        if ip.used_project_id:
            status = "adapted"
        elif ip.owned:
            status = "owned"
        else:
            status = "listed"
        if ip.major and ip.owned:
            status += f" · {ip.remaining_releases}/{ip.required_releases} due by w{ip.deadline_week}"
        table.add_row(
            str(i),
            ip.name,
            ip.kind.value + (" (major)" if ip.major else ""),
            money(ip.acquisition_cost),
            f"{max(0, ip.expires_week - week)}w",
            status,
        )
    console.print(table)


def show_talent(manager) -> None:
    table = Table(title="Talent")
    table.add_column("#", style=THEME["dim"])
    table.add_column("Name", style="bold")
    table.add_column("Role")
    table.add_column("Star", justify="right")
    table.add_column("Craft", justify="right")
    table.add_column("Status")
    for i, t in enumerate(manager.state.talent_pool, 1):
        table.add_row(
            str(i),
            t.name,
            t.role.value,
            f"{t.star_power:.1f}",
            f"{t.craft_score:.1f}",
            t.availability.value,
        )
    console.print(table)


def show_offers(manager, project) -> None:
    offers = manager.lifecycle.offers_for(project.id)
    if not offers:
        console.print(f"[{THEME['dim']}]No open offers for {project.title}.[/{THEME['dim']}]")
        return
    table = Table(title=f"Offers for {project.title}")
    table.add_column("#", style=THEME["dim"])
    table.add_column("Partner", style="bold")
    table.add_column("Window")
    table.add_column("MG", justify="right")
    table.add_column("P&A", justify="right")
    table.add_column("Share", justify="right")
    for i, offer in enumerate(offers, 1):
        table.add_row(
            str(i),
            offer.partner,
            offer.release_window.value,
            money(offer.minimum_guarantee),
            money(offer.p_and_a_commitment),
            f"{offer.revenue_share_to_studio:.0%}",
        )
    console.print(table)


def render_item(title: str, body: str, options, color: str) -> None:
    """A crisis or decision with its numbered options."""
    lines = [body, ""]
    for i, option in enumerate(options, 1):
        lines.append(f"[{THEME['accent']}]{i}.[/{THEME['accent']}] {option.label}")
        if option.preview:
            lines.append(f"   [{THEME['dim']}]{option.preview}[/{THEME['dim']}]")
    console.print(Panel("\n".join(lines), title=title, border_style=color))


def show_summary(summary: WeekSummary) -> None:
    color = THEME["good"] if summary.cash_delta >= 0 else THEME["danger"]
    lines = [f"[{THEME['dim']}]-[/{THEME['dim']}] {event}" for event in summary.events]
    lines.append("")
    lines.append(f"Cash [{color}]{money(summary.cash_delta)}[/{color}]")
    console.print(Panel("\n".join(lines), title=f"Week {summary.week}", border_style=THEME["primary"]))


def show_result(result) -> None:
    color = THEME["good"] if result.success else THEME["warning"]
    console.print(f"[{color}]{result.message}[/{color}]")
