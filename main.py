"""
Main entry point for the Realm turn engine.
Demonstrates core functionality with a simple simulated scenario.
"""

from realm.engine.actions import (
    accept_proposal,
    end_turn,
    propose_agreement,
    start_colonization,
    start_construction,
)
from realm.engine.queries import validate_action
from realm.engine.reducer import apply_action
from realm.engine.utils import create_game_from_setup, print_game_state


def main():
    print("Realm Turn Engine - colonization, construction and diplomacy")
    print("=" * 60)

    state, setup_info = create_game_from_setup()
    print(f"Loaded setup: {setup_info['display_name']}")

    print("\n[INITIAL STATE]")
    print_game_state(state)

    # ===== SCENARIO 1: Colonize and build =====
    print("\n[SCENARIO 1: Colonization + Construction]")
    for action in (
        start_colonization("north", "p5"),
        start_construction("north", "p1", "farm"),
        start_construction("north", "p1", "farm", company_id="north_grain"),
    ):
        state, events = apply_action(state, action)
        print(f"  {action.type}: {[e.type for e in events]}")

    # A mine needs iron; p1 has none
    rejected = validate_action(state, start_construction("north", "p1", "mine"))
    print(f"  mine in p1 rejected: {rejected.reason}")

    # ===== SCENARIO 2: Foreign construction through an agreement =====
    print("\n[SCENARIO 2: Diplomacy]")
    terms = {
        "host_country_id": "north",
        "guest_country_id": "south",
        "allow_state": True,
        "allow_companies": False,
        "building_ids": ["farm"],
        "limits": {"per_province": 1},
        "duration_turns": 0,
        "title": "Northern fields",
    }
    print(f"  south farm in p1 before agreement: "
          f"{validate_action(state, start_construction('south', 'p1', 'farm')).reason}")
    state, events = apply_action(state, propose_agreement("north", "south", terms))
    proposal_id = state.proposals[-1].id
    state, events = apply_action(state, accept_proposal("south", proposal_id))
    print(f"  accepted {proposal_id}: {[e.type for e in events]}")
    state, events = apply_action(state, start_construction("south", "p1", "farm"))
    print(f"  south farm in p1 after agreement: {[e.type for e in events]}")

    # ===== SCENARIO 3: Global turn boundary =====
    print("\n[SCENARIO 3: Turn Resolution]")
    for _ in range(len(state.countries)):
        state, events = apply_action(state, end_turn(state.active_country_id))
        print(f"  end_turn: {[e.type for e in events]}")

    print_game_state(state, verbose=True)

    print("\n[EVENT LOG]")
    for entry in state.event_log:
        print(f"  turn {entry.turn} [{entry.category}/{entry.priority}] {entry.message}")


if __name__ == "__main__":
    main()
