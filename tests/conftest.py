"""
Pytest fixtures for Backlot engine tests.

Provides in-memory stores and managers with constant random sources so
every roll in a test is predictable.
"""

import pytest

from backlot.state import EventBus, MemoryStudioStore, reset_event_bus
from backlot.state.manager import StudioManager
from backlot.state.schema import CrisisEvent, EffectBundle


def constant(value: float):
    """A random source that always returns the same roll."""
    return lambda: value


@pytest.fixture(autouse=True)
def fresh_event_bus():
    """Each test starts with an empty global bus."""
    reset_event_bus()
    yield
    reset_event_bus()


@pytest.fixture
def memory_store():
    """In-memory save store for testing."""
    return MemoryStudioStore()


@pytest.fixture
def make_manager(memory_store):
    """
    Factory for managers with fixed rolls.

    Defaults keep crises and rival moves from firing (high rolls) and
    leave event and negotiation rolls in the middle.
    """

    def _make(crisis=0.95, event=0.5, negotiation=0.5, rival=0.95, **kwargs):
        kwargs.setdefault("store", memory_store)
        kwargs.setdefault("bus", EventBus())
        return StudioManager(
            crisis_rng=constant(crisis),
            event_rng=constant(event),
            negotiation_rng=constant(negotiation),
            rival_rng=constant(rival),
            **kwargs,
        )

    return _make


@pytest.fixture
def manager(make_manager):
    """Fresh studio with the default fixed rolls."""
    return make_manager()


def project_named(manager: StudioManager, title: str):
    return next(p for p in manager.state.active_projects if p.title == title)


def open_crisis(manager: StudioManager) -> None:
    """Push a one-option crisis on Night Ledger."""
    project = project_named(manager, "Night Ledger")
    manager.crises.push(
        CrisisEvent(
            project_id=project.id,
            title="Night Ledger: Test",
            body="",
            options=[EffectBundle(label="Fix", cash_delta=-10_000)],
        )
    )
