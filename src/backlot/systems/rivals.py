"""
Rival studio AI for Backlot.

Five personalities compete with the player. Each week every rival runs
three independent passes, each gated by a roll against its behavior
profile:

1. Talent acquisition: lock up an available (or mid-negotiation) talent.
   Poaching someone the player is negotiating with raises a red crisis.
2. Calendar moves: schedule a film, sometimes straight onto the player's
   release week, which raises a release-conflict crisis.
3. Signature moves: one personality-specific escalation. The first
   occurrence of each pressure flag also queues a counterplay decision.

Rivals also answer player releases, drift in heat (industry news) and
remember how the player treated them. Memory bends the profile: open
hostility makes a rival more aggressive, goodwill damps it.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Protocol

from ..constants import (
    MAX_COUNTERPLAY_QUEUE,
    NEWS_LOG_MAX,
    RIVAL_HEAT_BIAS,
    RIVAL_HISTORY_MAX,
    RIVAL_PROFILES,
    RIVAL_SLATE_MAX,
    clamp,
)
from ..state.schema import (
    Availability,
    CrisisEvent,
    CrisisKind,
    DecisionCategory,
    DecisionItem,
    DistributionOffer,
    EffectBundle,
    Genre,
    IndustryNewsItem,
    MovieProject,
    OptionKind,
    ProjectPhase,
    ReleaseWindow,
    RivalFilm,
    RivalInteraction,
    RivalInteractionKind,
    RivalMemory,
    RivalPersonality,
    RivalStance,
    RivalStudio,
    Severity,
    Talent,
    TalentRole,
)
from ..state.seeds import initial_rival_memory
from .events import COUNTERPLAY_PREFIX

if TYPE_CHECKING:
    from ..state.event_bus import EventBus
    from ..state.schema import StudioState
    from .crises import CrisisSystem
    from .events import EventSystem

logger = logging.getLogger(__name__)

TENTPOLE_FLAG = "rival_tentpole_threat"
AWARDS_FLAG = "awards_headwind"
TALENT_LOCK_FLAG = "rival_talent_lock"
STREAMING_FLAG = "streaming_pressure"
GUERRILLA_FLAG = "guerrilla_pressure"

# flag -> title suffix, category, body, targets a project,
#         (label, preview, cash, hype, heat, release shift) x 2
COUNTERPLAY_CARDS: dict[str, tuple] = {
    TENTPOLE_FLAG: (
        "Tentpole Threat",
        DecisionCategory.MARKETING,
        "A major rival crowded your release corridor. Decide how to defend opening-week share.",
        True,
        (
            ("Authorize Competitive Blitz", "Spend to hold awareness and trailer share.", -260_000, 3, 1, 0),
            ("Shift Date One Week", "Sidestep the collision at a moderate transition cost.", -120_000, -1, 0, -1),
        ),
    ),
    AWARDS_FLAG: (
        "Awards Surge",
        DecisionCategory.MARKETING,
        "Awards chatter has drifted away from your slate. Decide whether to contest the narrative.",
        False,
        (
            ("Launch Guild Counter-Campaign", "Spend to win back voters and press.", -180_000, 1, 2, 0),
            ("Conserve Budget", "Keep the cash and ride out a short prestige dip.", 0, -1, -1, 0),
        ),
    ),
    TALENT_LOCK_FLAG: (
        "Talent Lock",
        DecisionCategory.TALENT,
        "Rival package deals are squeezing your access to talent. Pick a labor strategy.",
        False,
        (
            ("Fund Retention Incentives", "Spend to firm up relationships across the agencies.", -220_000, 1, 1, 0),
            ("Scout Emerging Talent", "Smaller spend with a slower, broader payoff.", -80_000, 1, 0, 0),
        ),
    ),
    STREAMING_FLAG: (
        "Streaming Pressure",
        DecisionCategory.FINANCE,
        "Aggressive streaming terms are eroding your theatrical leverage.",
        True,
        (
            ("Secure Theater Incentive Bundle", "Spend now to protect theatrical leverage.", -200_000, 2, 1, 0),
            ("Take Hybrid Safety Deal", "Bank cash now and de-risk the near-term window.", 150_000, -1, 0, 0),
        ),
    ),
    GUERRILLA_FLAG: (
        "Guerrilla Blitz",
        DecisionCategory.MARKETING,
        "A rival social blitz is pulling attention away from your campaign.",
        True,
        (
            ("Run Community Counter-Blitz", "Cheap and quick way to win attention back.", -90_000, 2, 0, 0),
            ("Ignore The Noise", "No spend, but campaign momentum softens.", 0, -1, 0, 0),
        ),
    ),
}

PHASE_RANK = {phase: index for index, phase in enumerate(ProjectPhase)}
GENRE_ROLL_ORDER: list[Genre] = list(Genre)


@dataclass(frozen=True)
class RivalProfile:
    """Behavior odds for one rival this week."""
    talent_poach_chance: float
    calendar_move_chance: float
    conflict_push: float
    signature_move_chance: float
    budget_scale: float
    hype_scale: float
    arc_pressure: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class LeaderboardEntry:
    name: str
    heat: float
    is_player: bool = False


def news_headline(name: str, delta: float) -> str:
    if delta >= 8:
        return f"{name} lands a breakout hit. Heat +{delta:.0f}."
    if delta >= 3:
        return f"{name} posts a solid industry week. Heat +{delta:.0f}."
    if delta <= -8:
        return f"{name} stumbles on a costly miss. Heat {delta:.0f}."
    return f"{name} slips in the market conversation. Heat {delta:.0f}."


def _short_name(rival: RivalStudio) -> str:
    return rival.name.split(" ")[0]


class RivalHost(Protocol):
    """What the rival AI needs from the studio."""

    state: StudioState
    bus: EventBus
    rival_rng: Callable[[], float]

    @property
    def crises(self) -> CrisisSystem: ...

    @property
    def events(self) -> EventSystem: ...

    @property
    def studio_heat(self) -> int: ...

    def adjust_reputation(self, delta: float, pillar: str = "all") -> None: ...


class RivalSystem:
    """
    Weekly rival passes, counterplay and relationship memory.

    Usage:
        manager.rivals.process_talent_acquisitions(events)
        manager.rivals.stance(rival)
    """

    def __init__(self, manager: RivalHost):
        self.manager = manager

    @property
    def _state(self) -> StudioState:
        return self.manager.state

    def _roll(self) -> float:
        return self.manager.rival_rng()

    # -------------------------------------------------------------------------
    # Memory
    # -------------------------------------------------------------------------

    def memory_for(self, rival: RivalStudio) -> RivalMemory:
        if rival.memory is None:
            rival.memory = initial_rival_memory(rival.personality)
        return rival.memory

    def stance(self, rival: RivalStudio) -> RivalStance:
        memory = self.memory_for(rival)
        score = memory.hostility - memory.respect
        if score >= 20:
            return RivalStance.HOSTILE
        if score >= 8:
            return RivalStance.COMPETITIVE
        if score <= -12:
            return RivalStance.RESPECTFUL
        return RivalStance.NEUTRAL

    def record_interaction(
        self,
        rival: RivalStudio,
        kind: RivalInteractionKind,
        hostility_delta: float,
        respect_delta: float,
        note: str,
        project_id: str | None = None,
    ) -> None:
        memory = self.memory_for(rival)
        memory.hostility = clamp(round(memory.hostility + hostility_delta), 0, 100)
        memory.respect = clamp(round(memory.respect + respect_delta), 0, 100)
        memory.retaliation_bias = clamp(round(memory.retaliation_bias + hostility_delta * 0.6), 0, 100)
        memory.cooperation_bias = clamp(round(memory.cooperation_bias + respect_delta * 0.6), 0, 100)
        memory.interaction_history.append(
            RivalInteraction(
                week=self._state.current_week,
                kind=kind,
                hostility_delta=round(hostility_delta),
                respect_delta=round(respect_delta),
                note=note,
                project_id=project_id,
            )
        )
        del memory.interaction_history[:-RIVAL_HISTORY_MAX]

    def apply_memory_reversion(self) -> None:
        """Memories drift back toward neutral a little every week."""
        for rival in self._state.rivals:
            memory = self.memory_for(rival)
            memory.hostility = clamp(memory.hostility + (50 - memory.hostility) * 0.035, 0, 100)
            memory.respect = clamp(memory.respect + (50 - memory.respect) * 0.028, 0, 100)
            memory.retaliation_bias = clamp(
                memory.retaliation_bias + (50 - memory.retaliation_bias) * 0.03, 0, 100
            )
            memory.cooperation_bias = clamp(
                memory.cooperation_bias + (45 - memory.cooperation_bias) * 0.03, 0, 100
            )

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    def behavior_profile(self, rival: RivalStudio) -> RivalProfile:
        base = RIVAL_PROFILES[rival.personality]
        memory = self.memory_for(rival)
        aggression = clamp(
            (memory.hostility - memory.respect) / 100 + (memory.retaliation_bias - 50) / 200,
            -0.2,
            0.3,
        )
        damping = (memory.cooperation_bias - 45) / 250
        scale = clamp(1 + aggression - damping, 0.6, 1.5)
        return RivalProfile(
            talent_poach_chance=clamp(base["talent_poach_chance"] * scale, 0, 0.95),
            calendar_move_chance=clamp(base["calendar_move_chance"] * scale, 0, 0.95),
            conflict_push=clamp(base["conflict_push"] * scale, 0, 0.95),
            signature_move_chance=clamp(base["signature_move_chance"] * scale, 0, 0.95),
            budget_scale=base["budget_scale"],
            hype_scale=base["hype_scale"],
            arc_pressure=dict(base["arc_pressure"]),
        )

    def arc_pressure(self, arc_id: str) -> float:
        """Average pull the rival field exerts toward one story arc."""
        rivals = self._state.rivals
        if not rivals:
            return 0.0
        total = sum(self.behavior_profile(r).arc_pressure.get(arc_id, 0) for r in rivals)
        return clamp(total / max(1, len(rivals)), 0, 0.7)

    def leaderboard(self) -> list[LeaderboardEntry]:
        entries = [LeaderboardEntry(self._state.studio_name, self.manager.studio_heat, is_player=True)]
        entries.extend(LeaderboardEntry(r.name, r.studio_heat) for r in self._state.rivals)
        return sorted(entries, key=lambda e: e.heat, reverse=True)

    # -------------------------------------------------------------------------
    # Heat and news
    # -------------------------------------------------------------------------

    def tick_heat(self, events: list[str]) -> None:
        state = self._state
        for rival in state.rivals:
            delta = clamp(self._roll() * 10 - 5 + RIVAL_HEAT_BIAS[rival.personality], -12, 14)
            if abs(delta) < 3:
                continue
            rival.studio_heat = clamp(rival.studio_heat + delta, 0, 100)
            item = IndustryNewsItem(
                week=state.current_week + 1,
                studio_name=rival.name,
                headline=news_headline(rival.name, delta),
                heat_delta=delta,
            )
            state.industry_news_log.insert(0, item)
            events.append(item.headline)
        del state.industry_news_log[NEWS_LOG_MAX:]

    # -------------------------------------------------------------------------
    # Talent acquisition
    # -------------------------------------------------------------------------

    def pick_talent(self, rival: RivalStudio, candidates: list[Talent]) -> Talent | None:
        if not candidates:
            return None
        if rival.personality == RivalPersonality.BLOCKBUSTER_FACTORY:
            return max(candidates, key=lambda t: t.star_power)
        if rival.personality == RivalPersonality.PRESTIGE_HUNTER:
            return max(candidates, key=lambda t: t.craft_score)
        if rival.personality == RivalPersonality.GENRE_SPECIALIST:
            return max(candidates, key=lambda t: t.ego_level)
        index = math.floor(self._roll() * len(candidates))
        return candidates[min(index, len(candidates) - 1)]

    @staticmethod
    def _lock_talent(rival: RivalStudio, talent: Talent, until_week: int) -> None:
        talent.availability = Availability.UNAVAILABLE
        talent.unavailable_until_week = until_week
        talent.attached_project_id = None
        if talent.id not in rival.locked_talent_ids:
            rival.locked_talent_ids.append(talent.id)

    def process_talent_acquisitions(self, events: list[str]) -> None:
        state = self._state
        for rival in state.rivals:
            profile = self.behavior_profile(rival)
            if self._roll() > profile.talent_poach_chance:
                continue
            candidates = [
                t for t in state.talent_pool
                if t.availability in (Availability.AVAILABLE, Availability.IN_NEGOTIATION)
            ]
            if rival.personality == RivalPersonality.PRESTIGE_HUNTER:
                candidates = [t for t in candidates if t.role == TalentRole.DIRECTOR]
            picked = self.pick_talent(rival, candidates)
            if picked is None:
                continue

            until = state.current_week + 12 + math.floor(self._roll() * 18)
            self._lock_talent(rival, picked, until)

            negotiation = next((n for n in state.player_negotiations if n.talent_id == picked.id), None)
            if negotiation is None:
                events.append(f"{rival.name} attached {picked.name}. Available again around week {until}.")
                continue

            project = state.get_project(negotiation.project_id)
            project_title = project.title if project else "your project"
            self.manager.crises.push(
                CrisisEvent(
                    project_id=negotiation.project_id,
                    kind=CrisisKind.TALENT_POACHED,
                    title=f"{picked.name} just closed with {rival.name} ({project_title})",
                    severity=Severity.RED,
                    body=f"{project_title} lost a key attachment. Counter at a premium or walk away.",
                    options=[
                        EffectBundle(
                            label="Counter Offer (25% premium)",
                            preview="Pay a premium and try to win the attachment back.",
                            hype_delta=1,
                            kind=OptionKind.TALENT_COUNTER,
                            talent_id=picked.id,
                            rival_studio_id=rival.id,
                            premium_multiplier=1.25,
                        ),
                        EffectBundle(
                            label="Walk Away",
                            preview="Let the rival keep the deal and take the hype hit.",
                            hype_delta=-2,
                            kind=OptionKind.TALENT_WALK,
                            talent_id=picked.id,
                            rival_studio_id=rival.id,
                        ),
                    ],
                )
            )
            self.record_interaction(
                rival, RivalInteractionKind.TALENT_POACH, 3, 0,
                f"Poached {picked.name} out of talks for {project_title}.", negotiation.project_id,
            )
            events.append(
                f"{rival.name} poached {picked.name} from {project_title}. Counter-offer decision required."
            )
            logger.info(f"{rival.name} poached {picked.name} from {project_title}")

    # -------------------------------------------------------------------------
    # Calendar moves
    # -------------------------------------------------------------------------

    def _player_distribution(self) -> list[MovieProject]:
        return [
            p for p in self._state.active_projects
            if p.phase == ProjectPhase.DISTRIBUTION and p.release_week is not None
        ]

    def _push_release_conflict(self, rival: RivalStudio, target: MovieProject) -> None:
        self.manager.crises.push(
            CrisisEvent(
                project_id=target.id,
                kind=CrisisKind.RELEASE_CONFLICT,
                title=f"{target.title}: {rival.name} moved into your release window",
                severity=Severity.ORANGE,
                body=f"{target.title} faces opening pressure in week {target.release_week}.",
                options=[
                    EffectBundle(
                        label="Hold Position",
                        preview="Keep the date and fight for screens.",
                        kind=OptionKind.RELEASE_HOLD,
                    ),
                    EffectBundle(
                        label="Shift 1 Week Earlier",
                        preview="Move up to avoid the overlap.",
                        cash_delta=-120_000,
                        hype_delta=-1,
                        release_week_shift=-1,
                        kind=OptionKind.RELEASE_SHIFT,
                    ),
                    EffectBundle(
                        label="Delay 4 Weeks",
                        preview="Wait for a cleaner window; carry costs add up.",
                        cash_delta=-250_000,
                        hype_delta=1,
                        release_week_shift=4,
                        kind=OptionKind.RELEASE_SHIFT,
                    ),
                ],
            )
        )
        self.record_interaction(
            rival, RivalInteractionKind.RELEASE_COLLISION, 2, 0,
            f"Dropped a release onto {target.title}'s week.", target.id,
        )

    def process_calendar_moves(self, events: list[str]) -> None:
        state = self._state
        scheduled = self._player_distribution()
        for rival in state.rivals:
            profile = self.behavior_profile(rival)
            if self._roll() > profile.calendar_move_chance:
                continue

            target: MovieProject | None = None
            if rival.personality == RivalPersonality.BLOCKBUSTER_FACTORY:
                if scheduled:
                    target = min(scheduled, key=lambda p: p.release_week)
            else:
                index = math.floor(self._roll() * max(1, len(scheduled)))
                if index < len(scheduled):
                    target = scheduled[index]
            force = target is not None and (
                rival.personality == RivalPersonality.BLOCKBUSTER_FACTORY
                or self._roll() < profile.conflict_push
            )
            if force and target is not None:
                week = target.release_week
            else:
                week = state.current_week + 2 + math.floor(self._roll() * 14)
            genre = GENRE_ROLL_ORDER[min(7, math.floor(self._roll() * 8))]

            film = RivalFilm(
                title=f"{_short_name(rival)} Untitled {state.current_week}",
                genre=genre,
                release_week=week,
                estimated_budget=(20_000_000 + self._roll() * 120_000_000) * profile.budget_scale,
                hype_score=clamp((35 + self._roll() * 45) * profile.hype_scale, 20, 98),
            )
            rival.upcoming_releases.insert(0, film)
            rival.upcoming_releases = [
                f for f in rival.upcoming_releases if f.release_week >= state.current_week - 1
            ][:RIVAL_SLATE_MAX]
            events.append(f"{rival.name} scheduled {film.title} for week {film.release_week}.")

            if target is not None and target.release_week == film.release_week:
                self._push_release_conflict(rival, target)

    # -------------------------------------------------------------------------
    # Signature moves
    # -------------------------------------------------------------------------

    def _raise_flag(self, flag: str, rival: RivalStudio, project_id: str | None = None) -> None:
        """Stack the pressure flag; the first layer also queues counterplay."""
        flags = self._state.story_flags
        had_flag = flags.is_set(flag)
        flags.set(flag)
        if not had_flag:
            self.queue_counterplay(flag, rival.name, project_id)

    def process_signature_moves(self, events: list[str]) -> None:
        state = self._state
        for rival in state.rivals:
            profile = self.behavior_profile(rival)
            if self._roll() > profile.signature_move_chance:
                continue
            handler = {
                RivalPersonality.BLOCKBUSTER_FACTORY: self._tentpole_drop,
                RivalPersonality.PRESTIGE_HUNTER: self._awards_push,
                RivalPersonality.GENRE_SPECIALIST: self._niche_talent_lock,
                RivalPersonality.STREAMING_FIRST: self._streaming_prebuy,
                RivalPersonality.SCRAPPY_UPSTART: self._guerrilla_blitz,
            }[rival.personality]
            handler(rival, events)

    def _tentpole_drop(self, rival: RivalStudio, events: list[str]) -> None:
        target = next(iter(self._player_distribution()), None)
        if target is None:
            return
        rival.upcoming_releases.insert(
            0,
            RivalFilm(
                title=f"{_short_name(rival)} Event Tentpole",
                genre=Genre.ACTION,
                release_week=target.release_week,
                estimated_budget=170_000_000 + self._roll() * 80_000_000,
                hype_score=80 + self._roll() * 15,
            ),
        )
        self._raise_flag(TENTPOLE_FLAG, rival, target.id)
        self.record_interaction(
            rival, RivalInteractionKind.RELEASE_COLLISION, 2, 0,
            f"Parked a tentpole on {target.title}'s weekend.", target.id,
        )
        events.append(f"{rival.name} dropped a four-quadrant tentpole into your weekend corridor.")

    def _awards_push(self, rival: RivalStudio, events: list[str]) -> None:
        self.manager.adjust_reputation(-1.5, "all")
        self._raise_flag(AWARDS_FLAG, rival)
        self.record_interaction(
            rival, RivalInteractionKind.PRESTIGE_PRESSURE, 1, 1, "Ran a guild campaign against the slate.",
        )
        events.append(f"{rival.name} dominated guild chatter this week. Awards headwind intensified.")

    def _niche_talent_lock(self, rival: RivalStudio, events: list[str]) -> None:
        candidates = [
            t for t in self._state.talent_pool
            if t.availability == Availability.AVAILABLE and t.role != TalentRole.DIRECTOR
        ]
        if not candidates:
            return
        talent = max(candidates, key=lambda t: t.craft_score)
        talent.availability = Availability.UNAVAILABLE
        talent.unavailable_until_week = self._state.current_week + 6
        if talent.id not in rival.locked_talent_ids:
            rival.locked_talent_ids.append(talent.id)
        self._raise_flag(TALENT_LOCK_FLAG, rival)
        self.record_interaction(
            rival, RivalInteractionKind.TALENT_LOCK, 2, 0, f"Locked {talent.name} into a niche hold.",
        )
        events.append(f"{rival.name} locked {talent.name} into a niche franchise hold.")

    def _streaming_prebuy(self, rival: RivalStudio, events: list[str]) -> None:
        state = self._state
        in_distribution = [p for p in state.active_projects if p.phase == ProjectPhase.DISTRIBUTION]
        if not in_distribution:
            return
        project = min(in_distribution, key=lambda p: p.release_week if p.release_week is not None else 10_000)
        partner = f"{rival.name} Stream+"
        state.distribution_offers = [
            o for o in state.distribution_offers
            if not (o.project_id == project.id and o.partner == partner)
        ]
        state.distribution_offers.append(
            DistributionOffer(
                project_id=project.id,
                partner=partner,
                release_window=ReleaseWindow.STREAMING_EXCLUSIVE,
                minimum_guarantee=project.budget.ceiling * 0.46,
                p_and_a_commitment=project.budget.ceiling * 0.055,
                revenue_share_to_studio=0.68,
                projected_opening_override=0.72,
            )
        )
        self._raise_flag(STREAMING_FLAG, rival, project.id)
        self.record_interaction(
            rival, RivalInteractionKind.STREAMING_PRESSURE, 1, 0,
            f"Floated a streaming pre-buy for {project.title}.", project.id,
        )
        events.append(
            f"{rival.name} floated an aggressive competing streaming offer into your distribution stack."
        )

    def _guerrilla_blitz(self, rival: RivalStudio, events: list[str]) -> None:
        target = next(
            (
                p for p in self._state.active_projects
                if p.phase in (ProjectPhase.DISTRIBUTION, ProjectPhase.RELEASED)
            ),
            None,
        )
        if target is None:
            return
        target.hype_score = clamp(target.hype_score - 2, 0, 100)
        self._raise_flag(GUERRILLA_FLAG, rival, target.id)
        self.record_interaction(
            rival, RivalInteractionKind.GUERRILLA_PRESSURE, 2, -1,
            f"Ran a social blitz against {target.title}.", target.id,
        )
        events.append(f"{rival.name} ran a guerrilla social blitz that clipped hype on {target.title}.")

    # -------------------------------------------------------------------------
    # Counterplay
    # -------------------------------------------------------------------------

    def _has_room_for(self, title: str) -> bool:
        queue = self._state.decision_queue
        return len(queue) < MAX_COUNTERPLAY_QUEUE and not any(d.title == title for d in queue)

    def queue_counterplay(self, flag: str, rival_name: str, project_id: str | None = None) -> None:
        card = COUNTERPLAY_CARDS.get(flag)
        if card is None:
            return
        suffix, category, body, targets_project, options = card
        title = f"{COUNTERPLAY_PREFIX} {rival_name} {suffix}"
        if not self._has_room_for(title):
            return
        project = self._state.get_project(project_id) if targets_project else None
        self.manager.events.queue_decision(
            DecisionItem(
                project_id=project.id if project else None,
                title=title,
                body=body,
                category=category,
                source="rival",
                weeks_until_expiry=1,
                on_expire_clear_flag=flag,
                options=[
                    EffectBundle(
                        label=label,
                        preview=preview,
                        cash_delta=cash,
                        hype_delta=hype,
                        studio_heat_delta=heat,
                        release_week_shift=shift,
                        clear_flag=flag,
                    )
                    for label, preview, cash, hype, heat, shift in options
                ],
            )
        )

    # -------------------------------------------------------------------------
    # Release responses
    # -------------------------------------------------------------------------

    def release_responses(self, released: MovieProject, events: list[str]) -> None:
        """Let every rival answer a film that just finished its run."""
        state = self._state
        others = [p for p in state.active_projects if p.id != released.id]
        scheduled = [p for p in others if p.phase == ProjectPhase.DISTRIBUTION and p.release_week is not None]
        next_release = min(scheduled, key=lambda p: p.release_week) if scheduled else None
        pipeline = [p for p in others if p.phase != ProjectPhase.RELEASED]
        next_pipeline = min(pipeline, key=lambda p: PHASE_RANK[p.phase]) if pipeline else None

        for rival in state.rivals:
            if rival.personality == RivalPersonality.BLOCKBUSTER_FACTORY:
                if next_release is not None:
                    self._retarget_tentpole(rival, next_release, events)
            elif rival.personality == RivalPersonality.PRESTIGE_HUNTER:
                self._poach_prestige_director(rival, events)
            elif rival.personality == RivalPersonality.STREAMING_FIRST:
                if next_pipeline is not None:
                    self._offer_output_deal(rival, next_pipeline, events)
            elif rival.personality == RivalPersonality.SCRAPPY_UPSTART:
                target = next_pipeline
                if target is None and others:
                    target = max(others, key=lambda p: p.hype_score)
                if target is not None:
                    target.hype_score = clamp(target.hype_score - 3, 0, 100)
                    self.manager.adjust_reputation(-1, "all")
                    events.append(f"{rival.name} launched a counter-campaign against {target.title}. Hype -3.")

    def _retarget_tentpole(self, rival: RivalStudio, target: MovieProject, events: list[str]) -> None:
        week = self._state.current_week
        moved = next((f for f in rival.upcoming_releases if f.release_week >= week + 1), None)
        if moved is not None:
            moved.release_week = target.release_week
        else:
            rival.upcoming_releases.insert(
                0,
                RivalFilm(
                    title=f"{_short_name(rival)} Counterprogrammer",
                    genre=Genre.ACTION,
                    release_week=target.release_week,
                    estimated_budget=120_000_000 + self._roll() * 60_000_000,
                    hype_score=70 + self._roll() * 20,
                ),
            )
        self.record_interaction(
            rival, RivalInteractionKind.RELEASE_RETALIATION, 2, 0,
            f"Re-dated a tentpole onto {target.title}.", target.id,
        )
        events.append(
            f"{rival.name} moved its next tentpole into week {target.release_week} "
            "to pressure your upcoming release."
        )

    def _poach_prestige_director(self, rival: RivalStudio, events: list[str]) -> None:
        directors = [
            t for t in self._state.talent_pool
            if t.role == TalentRole.DIRECTOR
            and t.availability in (Availability.AVAILABLE, Availability.IN_NEGOTIATION)
        ]
        if not directors:
            return
        director = max(directors, key=lambda t: t.craft_score)
        until = self._state.current_week + 10 + math.floor(self._roll() * 10)
        self._lock_talent(rival, director, until)
        events.append(f"{rival.name} responded by poaching director {director.name} into a prestige package.")

    def _offer_output_deal(self, rival: RivalStudio, project: MovieProject, events: list[str]) -> None:
        title = f"{COUNTERPLAY_PREFIX} {rival.name} Output Deal ({project.title})"
        if not self._has_room_for(title):
            return
        self.manager.events.queue_decision(
            DecisionItem(
                project_id=project.id,
                title=title,
                body=f"{rival.name} offered a streaming-first output deal for {project.title}.",
                category=DecisionCategory.FINANCE,
                source="rival",
                weeks_until_expiry=1,
                options=[
                    EffectBundle(
                        label="Accept Output Deal",
                        preview="Cash and marketing support now, less theatrical upside later.",
                        cash_delta=320_000,
                        hype_delta=1,
                        marketing_delta=180_000,
                        studio_heat_delta=-1,
                    ),
                    EffectBundle(
                        label="Decline Deal",
                        preview="Stay flexible and hold out for stronger distribution leverage.",
                        studio_heat_delta=1,
                    ),
                ],
            )
        )
        events.append(f"{rival.name} put a streaming output deal on your next project.")
