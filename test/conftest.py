"""
Shared fixtures: the bundled default setup and a builder for small hand-made worlds.
"""

import os
import tempfile

# The API module binds its engine at import time; point it at a throwaway database first
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(tempfile.mkdtemp(), "realm_test.db")

import pytest

from realm.engine.actions import end_turn
from realm.engine.reducer import apply_action
from realm.engine.state import GameState
from realm.engine.utils import create_game_from_setup


@pytest.fixture
def game() -> GameState:
    """Fresh state from the default setup (north, south; provinces p1-p6)."""
    state, _ = create_game_from_setup("default")
    return state


@pytest.fixture
def make_state():
    """Build a GameState from a plain document, filling in one country when none is given."""
    def _make(**doc) -> GameState:
        doc.setdefault("countries", [{"id": "a", "name": "Avaria"}])
        doc.setdefault("active_country_id", doc["countries"][0]["id"] if doc["countries"] else None)
        return GameState.from_dict(doc)
    return _make


def pass_turn(state: GameState) -> GameState:
    """End every country's turn once so exactly one global turn boundary runs."""
    for _ in range(len(state.countries)):
        state, _events = apply_action(state, end_turn(state.active_country_id))
    return state
