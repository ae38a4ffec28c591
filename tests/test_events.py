"""Tests for the decision scheduler, effect bundles and story flags."""

import pytest

from backlot.content.event_deck import EventTemplate, get_event_deck, load_deck
from backlot.state.event_bus import EventType
from backlot.state.schema import (
    ArcStatus,
    DecisionCategory,
    DecisionItem,
    EffectBundle,
    EventScope,
    StoryArcState,
    StoryFlags,
)
from backlot.systems.events import apply_effect_bundle, compute_arc_outcome_modifiers

from conftest import project_named


def studio_template(**overrides):
    fields = dict(
        id="test-studio-memo",
        category=DecisionCategory.FINANCE,
        scope=EventScope.STUDIO,
        title="Test memo",
        decision_title="Memo for {project}",
        body="A memo lands on {project}'s desk.",
        cooldown_weeks=4,
        options=[{"label": "Bank It", "cash_delta": 100_000}, {"label": "Ignore"}],
    )
    fields.update(overrides)
    return EventTemplate(**fields)


class TestStoryFlags:
    """Test counted flags."""

    def test_set_stacks(self):
        flags = StoryFlags()
        flags.set("leak")
        flags.set("leak")
        assert flags.count("leak") == 2
        assert flags.is_set("leak")

    def test_decrement_peels_one_layer(self):
        flags = StoryFlags()
        flags.set("leak")
        flags.set("leak")
        assert flags.decrement("leak") == 1
        assert flags.decrement("leak") == 0
        assert not flags.is_set("leak")
        assert "leak" not in flags.counts

    def test_clear_removes_all_layers(self):
        flags = StoryFlags()
        flags.set("leak")
        flags.set("leak")
        flags.clear("leak")
        assert flags.count("leak") == 0


class TestEffectBundles:
    """Test applying an option to the studio and a project."""

    def test_project_fields(self, manager):
        project = project_named(manager, "Night Ledger")
        option = EffectBundle(
            label="Go", cash_delta=-100_000, hype_delta=5, script_quality_delta=0.5,
            schedule_delta=2, marketing_delta=50_000, overrun_risk_delta=0.1,
        )
        apply_effect_bundle(manager, option, project)
        assert manager.state.cash == 49_900_000
        assert project.hype_score == 38
        assert project.script_quality == pytest.approx(7.9)
        assert project.scheduled_weeks_remaining == 14
        assert project.marketing_budget == 2_050_000
        assert project.budget.overrun_risk == pytest.approx(0.48)

    def test_reputation_and_flags(self, manager):
        option = EffectBundle(label="Go", critics_delta=3, studio_heat_delta=1, set_flag="rumor")
        apply_effect_bundle(manager, option, None)
        rep = manager.state.reputation
        assert rep.critics == 16
        assert rep.audience == 13
        assert manager.state.story_flags.is_set("rumor")

    def test_clamps(self, manager):
        project = project_named(manager, "Night Ledger")
        apply_effect_bundle(manager, EffectBundle(label="Go", hype_delta=500, script_quality_delta=-50), project)
        assert project.hype_score == 100
        assert project.script_quality == 0


class TestResolveDecision:
    """Test resolving queued decisions."""

    def test_opening_decision(self, manager):
        decision = manager.state.decision_queue[0]
        project = project_named(manager, "Night Ledger")
        fund = decision.options[0]
        manager.resolve_decision(decision.id, fund.id)
        assert manager.state.decision_queue == []
        assert manager.state.cash == 50_000_000 - 360_000
        assert project.script_quality == pytest.approx(7.4 + 0.8)

    def test_studio_decision_leaves_projects_alone(self, manager):
        """A decision with no project never touches project fields."""
        before = [p.model_dump() for p in manager.state.active_projects]
        decision = DecisionItem(
            title="Studio memo",
            body="",
            options=[EffectBundle(label="Go", hype_delta=9, script_quality_delta=1, schedule_delta=3)],
        )
        manager.state.decision_queue.append(decision)
        manager.resolve_decision(decision.id, decision.options[0].id)
        assert [p.model_dump() for p in manager.state.active_projects] == before

    def test_unknown_ids_ignored(self, manager):
        decision = manager.state.decision_queue[0]
        manager.resolve_decision("decision-missing", "opt-missing")
        manager.resolve_decision(decision.id, "opt-missing")
        assert manager.state.decision_queue == [decision]
        assert manager.state.cash == 50_000_000

    def test_arc_resolution_recorded(self, manager):
        decision = DecisionItem(
            title="Arc finale",
            body="",
            arc_id="financier-control",
            options=[EffectBundle(label="Buy Them Out", resolve_arc=True)],
        )
        manager.state.decision_queue.append(decision)
        manager.resolve_decision(decision.id, decision.options[0].id)
        arc = manager.state.story_arcs["financier-control"]
        assert arc.status == ArcStatus.RESOLVED
        assert manager.state.chronicle[0].headline.endswith("resolved")

    def test_emits_event(self, manager):
        decision = manager.state.decision_queue[0]
        manager.resolve_decision(decision.id, decision.options[1].id)
        assert manager.bus.get_history(EventType.DECISION_RESOLVED)


class TestExpiry:
    """Test decision expiry."""

    def test_expired_item_costs_reputation(self, manager):
        manager.state.decision_queue[0].weeks_until_expiry = 0
        events = []
        manager.events.tick_expiry(events)
        assert manager.state.decision_queue == []
        assert manager.state.reputation.talent == 11
        assert events == ["1 decision item(s) expired."]

    def test_expiry_peels_flag(self, manager):
        flags = manager.state.story_flags
        flags.set("poach_pressure")
        flags.set("poach_pressure")
        manager.state.decision_queue = [
            DecisionItem(
                title="Counter the poach",
                body="",
                weeks_until_expiry=0,
                on_expire_clear_flag="poach_pressure",
                options=[EffectBundle(label="Ok")],
            )
        ]
        manager.events.tick_expiry([])
        assert flags.count("poach_pressure") == 1

    def test_live_items_count_down(self, manager):
        manager.events.tick_expiry([])
        assert manager.state.decision_queue[0].weeks_until_expiry == 2


class TestScheduler:
    """Test weighted draws from the deck."""

    def test_draws_from_custom_deck(self, make_manager):
        manager = make_manager(event_deck=[studio_template()])
        manager.state.decision_queue = []
        events = []
        manager.events.generate_decisions(events)
        assert len(manager.state.decision_queue) == 1
        decision = manager.state.decision_queue[0]
        assert decision.title == "Memo for Backlot Pictures"
        assert decision.project_id is None
        assert decision.template_id == "test-studio-memo"
        assert manager.last_event_week["test-studio-memo"] == manager.state.current_week
        assert events == ["New event: Test memo."]

    def test_cooldown_blocks_redraw(self, make_manager):
        manager = make_manager(event_deck=[studio_template()])
        manager.state.decision_queue = []
        manager.events.generate_decisions([])
        decision = manager.state.decision_queue[0]
        manager.resolve_decision(decision.id, decision.options[1].id)
        manager.events.generate_decisions([])
        assert manager.state.decision_queue == []

    def test_min_week_and_flags(self, make_manager):
        late = studio_template(id="late", min_week=10)
        gated = studio_template(id="gated", decision_title="Gated", requires_flag="leak")
        manager = make_manager(event_deck=[late, gated])
        manager.state.decision_queue = []
        manager.events.generate_decisions([])
        assert manager.state.decision_queue == []

        manager.state.story_flags.set("leak")
        manager.events.generate_decisions([])
        assert manager.state.decision_queue[0].template_id == "gated"

    def test_queue_cap(self, make_manager):
        manager = make_manager(event_deck=[studio_template()])
        manager.state.decision_queue = [
            DecisionItem(title=f"Filler {i}", body="", options=[EffectBundle(label="Ok")]) for i in range(4)
        ]
        manager.events.generate_decisions([])
        assert len(manager.state.decision_queue) == 4

    def test_project_scope_targets_project(self, make_manager):
        template = studio_template(
            id="project-memo", scope=EventScope.PROJECT, decision_title="Memo: {project}",
            target_phases=["production"],
        )
        manager = make_manager(event_deck=[template])
        manager.state.decision_queue = []
        manager.events.generate_decisions([])
        decision = manager.state.decision_queue[0]
        assert decision.project_id == project_named(manager, "Night Ledger").id
        assert decision.title == "Memo: Night Ledger"

    def test_repeat_category_dampened(self, make_manager):
        manager = make_manager(event_deck=[studio_template()])
        template = manager.event_deck[0]
        fresh = manager.events.weight(template)
        manager.state.recent_decision_categories = [DecisionCategory.FINANCE, DecisionCategory.FINANCE]
        assert manager.events.weight(template) == pytest.approx(fresh * 0.7 * 0.55)


class TestEventDeck:
    """Test the bundled YAML deck."""

    def test_bundled_deck_loads(self):
        deck = get_event_deck()
        assert deck
        assert len({t.id for t in deck}) == len(deck)
        assert all(t.options for t in deck)

    def test_custom_deck_file(self, tmp_path):
        path = tmp_path / "deck.yaml"
        path.write_text(
            "- id: one\n"
            "  category: creative\n"
            "  title: One\n"
            "  decision_title: One for {project}\n"
            "  body: Body\n"
            "  options:\n"
            "    - label: Accept\n"
            "      hype_delta: 2\n"
        )
        deck = load_deck(path)
        assert [t.id for t in deck] == ["one"]
        decision = deck[0].build_decision(None, None)
        assert decision.title == "One for the studio"
        assert decision.options[0].hype_delta == 2


class TestArcModifiers:
    """Test studio-wide levers from finished arcs."""

    def test_no_arcs_is_neutral(self):
        modifiers = compute_arc_outcome_modifiers({})
        assert modifiers.burn_multiplier == 1.0
        assert modifiers.talent_leverage == 0.0

    def test_executive_network_adds_leverage(self):
        modifiers = compute_arc_outcome_modifiers({}, executive_network_level=2)
        assert modifiers.talent_leverage == pytest.approx(0.024)
        assert modifiers.distribution_leverage == pytest.approx(0.02)

    def test_active_arcs_do_nothing(self):
        arcs = {"financier-control": StoryArcState(stage=2, status=ArcStatus.ACTIVE)}
        assert compute_arc_outcome_modifiers(arcs).burn_multiplier == 1.0
