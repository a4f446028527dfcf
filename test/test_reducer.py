"""
Reducer actions outside turn resolution: countries, companies, colonization bids,
cancelling and demolishing construction, and replay.
"""

from realm.engine.actions import (
    Action,
    cancel_colonization,
    cancel_construction,
    create_company,
    create_country,
    delete_company,
    delete_country,
    demolish_building,
    propose_agreement,
    set_colonization_disabled,
    start_colonization,
    start_construction,
)
from realm.engine.queries import (
    get_colonization_targets,
    get_construction_queue,
    get_buildable_buildings,
    validate_action,
)
from realm.engine.reducer import apply_action, replay_from_actions
from realm.engine.state import BuildingInstance, GameState, Owner


def test_unknown_action_type(game):
    result = validate_action(game, Action(type="raise_army", country="north", payload={}))
    assert result.reason == "unknown_action"
    state, events = apply_action(game, Action(type="raise_army", country="north", payload={}))
    assert state is game and events == []


def test_create_country(game):
    state, events = apply_action(game, create_country("Eastmark", "#00aa00"))
    country = state.countries[-1]
    assert country.id == "country_001"
    assert country.colonization_points == 100
    assert country.construction_points == 100
    assert state.active_country_id == "north"
    assert events[0].type == "country_created"

    assert validate_action(state, create_country("  ")).reason == "invalid_name"
    assert validate_action(state, create_country("Again", country_id="north")).reason == "duplicate_id"


def test_first_country_becomes_active():
    state, _ = apply_action(GameState(), create_country("Solo", country_id="solo"))
    assert state.active_country_id == "solo"


def test_delete_country_cleans_up(game):
    state, _ = apply_action(game, start_colonization("south", "p5"))
    state, _ = apply_action(state, propose_agreement("north", "south", {"allow_state": True}))
    state, _ = apply_action(state, create_company("south", "Sun Traders"))

    state, events = apply_action(state, delete_country("south"))
    assert [c.id for c in state.countries] == ["north"]
    assert state.provinces["p3"].owner_country_id is None
    assert state.provinces["p5"].colonization_progress == {}
    assert all(c.country_id != "south" for c in state.companies.values())
    assert state.proposals == []
    assert events[0].type == "country_deleted"


def test_delete_active_country_moves_the_turn(game):
    state, _ = apply_action(game, delete_country("north"))
    assert state.active_country_id == "south"


def test_delete_company_hands_assets_to_the_state(game):
    state, _ = apply_action(game, start_construction("north", "p1", "farm", company_id="north_grain"))
    state.provinces["p1"].buildings_built.append(BuildingInstance("farm", Owner.company("north_grain")))

    state, events = apply_action(state, delete_company("north_grain"))
    assert "north_grain" not in state.companies
    assert state.provinces["p1"].buildings_built[0].owner == Owner.state("north")
    assert state.provinces["p1"].construction_progress["farm"][0].owner == Owner.state("north")
    assert events[0].payload["country_id"] == "north"


def test_colonization_bids(game):
    assert "p5" in get_colonization_targets(game, "north")
    state, _ = apply_action(game, start_colonization("north", "p5"))
    assert state.provinces["p5"].colonization_progress == {"north": 0}
    assert "p5" not in get_colonization_targets(state, "north")

    assert validate_action(state, start_colonization("north", "p5")).reason == "already_colonizing"
    assert validate_action(state, start_colonization("north", "p1")).reason == "province_owned"

    state, _ = apply_action(state, cancel_colonization("north", "p5"))
    assert state.provinces["p5"].colonization_progress == {}
    assert validate_action(state, cancel_colonization("north", "p5")).reason == "not_colonizing"


def test_colonization_limit(game):
    game.settings.colonization_max_active = 1
    state, _ = apply_action(game, start_colonization("north", "p5"))
    assert validate_action(state, start_colonization("north", "p6")).reason == "colonization_limit"


def test_closing_a_province_clears_bids(game):
    state, _ = apply_action(game, start_colonization("north", "p5"))
    state, _ = apply_action(state, start_colonization("south", "p5"))
    state, events = apply_action(state, set_colonization_disabled("p5", True))
    assert state.provinces["p5"].colonization_progress == {}
    assert sorted(events[0].payload["cleared_country_ids"]) == ["north", "south"]
    assert validate_action(state, start_colonization("north", "p5")).reason == "colonization_disabled"

    state, _ = apply_action(state, set_colonization_disabled("p5", False))
    assert validate_action(state, start_colonization("north", "p5")).valid


def test_cancel_construction_removes_newest_entry(game):
    state, _ = apply_action(game, start_construction("north", "p1", "farm"))
    state, _ = apply_action(state, start_construction("north", "p1", "farm", company_id="north_grain"))
    assert len(get_construction_queue(state, "north")) == 2

    state, events = apply_action(state, cancel_construction("north", "p1", "farm"))
    remaining = state.provinces["p1"].construction_progress["farm"]
    assert [e.owner for e in remaining] == [Owner.state("north")]
    assert events[0].payload["owner"] == {"type": "company", "company_id": "north_grain"}

    state, _ = apply_action(state, cancel_construction("north", "p1", "farm"))
    assert "farm" not in state.provinces["p1"].construction_progress
    assert validate_action(state, cancel_construction("north", "p1", "farm")).reason == "nothing_to_cancel"


def test_demolish_charges_a_share_of_the_cost(game):
    province = game.provinces["p1"]
    province.buildings_built.extend([
        BuildingInstance("farm", Owner.company("north_grain")),
        BuildingInstance("farm", Owner.state("north")),
    ])
    state, events = apply_action(game, demolish_building("north", "p1", "farm"))
    # 20% of 100, rounded up
    assert state.get_country("north").construction_points == 80
    assert [b.owner for b in state.provinces["p1"].buildings_built] == [Owner.state("north")]
    assert events[0].payload["cost"] == 20

    assert validate_action(state, demolish_building("north", "p1", "mine")).reason == "no_building_instance"
    state.get_country("north").construction_points = 5
    assert validate_action(state, demolish_building("north", "p1", "farm")).reason == "insufficient_points"


def test_demolition_cost_rounds_up(game):
    game.settings.demolition_cost_percent = 15
    game.provinces["p2"].buildings_built.append(BuildingInstance("mine", Owner.state("north")))
    state, events = apply_action(game, demolish_building("north", "p2", "mine"))
    assert events[0].payload["cost"] == 23


def test_foreign_buildable_rows_name_the_agreement(game):
    game.agreements.append(
        GameState.from_dict({"agreements": [{
            "id": "agreement_009", "host_country_id": "north", "guest_country_id": "south",
            "allow_state": True, "building_ids": ["farm"],
        }]}).agreements[0]
    )
    rows = {r["building_id"]: r for r in get_buildable_buildings(game, "p1", "south")}
    assert rows["farm"]["agreement_id"] == "agreement_009"
    assert rows["mine"]["agreement_id"] is None


def test_replay_skips_rejected_actions(game):
    actions = [
        start_construction("north", "p1", "farm"),
        start_construction("south", "p1", "farm"),
        start_colonization("south", "p6"),
    ]
    final, events = replay_from_actions(game, actions)
    assert [e.type for e in events] == ["construction_started", "colonization_started"]
    assert game.provinces["p1"].construction_progress == {}
    assert len(final.provinces["p1"].construction_progress["farm"]) == 1
