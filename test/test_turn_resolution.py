"""
Turn boundaries: colonization and construction point splitting, grants and active country rotation.
"""

import pytest

from conftest import pass_turn
from realm.engine.actions import end_turn, start_colonization
from realm.engine.reducer import apply_action
from realm.engine.state import Owner
from realm.engine.turns import resolve_colonization, resolve_construction


def test_active_country_rotates_and_wraps(game):
    assert game.active_country_id == "north"
    state, events = apply_action(game, end_turn("north"))
    assert state.active_country_id == "south"
    assert state.turn == 1
    assert [e.type for e in events] == ["active_country_changed"]

    state, events = apply_action(state, end_turn("south"))
    assert state.active_country_id == "north"
    assert state.turn == 2
    assert events[0].type == "turn_started"
    assert events[-1].type == "active_country_changed"


def test_unknown_active_country_counts_as_first(game):
    game.active_country_id = "nobody"
    state, _ = apply_action(game, end_turn())
    assert state.active_country_id == "south"


def test_points_are_granted_each_boundary(game):
    state = pass_turn(game)
    # Starting points were spent only where there was work; idle pools carry over
    for country in state.countries:
        assert country.colonization_points == 110
        assert country.construction_points == 110


def test_colonization_splits_points_evenly(make_state):
    state = make_state(
        countries=[{"id": "a", "name": "Avaria", "colonization_points": 90}],
        provinces={
            "x": {"colonization_progress": {"a": 0}},
            "y": {"colonization_progress": {"a": 15}},
            "z": {"colonization_progress": {"a": 0}, "colonization_cost": 20},
        },
    )
    country = state.countries[0]
    events = resolve_colonization(state, country)

    assert state.provinces["x"].colonization_progress == {"a": 30}
    assert state.provinces["y"].colonization_progress == {"a": 45}
    assert state.provinces["z"].owner_country_id == "a"
    assert state.provinces["z"].colonization_progress == {}
    assert country.colonization_points == 0
    assert [e.type for e in events] == ["province_colonized"]


def test_colonization_skips_disabled_and_owned_provinces(make_state):
    state = make_state(
        countries=[{"id": "a", "name": "Avaria", "colonization_points": 50}],
        provinces={
            "x": {"colonization_progress": {"a": 0}},
            "y": {"colonization_progress": {"a": 0}, "colonization_disabled": True},
        },
    )
    resolve_colonization(state, state.countries[0])
    assert state.provinces["x"].colonization_progress == {"a": 50}
    assert state.provinces["y"].colonization_progress == {"a": 0}


def test_colonization_keeps_points_without_targets(make_state):
    state = make_state(countries=[{"id": "a", "name": "Avaria", "colonization_points": 50}])
    resolve_colonization(state, state.countries[0])
    assert state.countries[0].colonization_points == 50


def test_colonization_race(make_state):
    state = make_state(
        countries=[
            {"id": "a", "name": "Avaria", "colonization_points": 40},
            {"id": "b", "name": "Bellmar", "colonization_points": 20},
        ],
        settings={"colonization_points_per_turn": 40, "construction_points_per_turn": 0},
        provinces={"p1": {"colonization_cost": 100}},
    )
    state, _ = apply_action(state, start_colonization("a", "p1"))
    state, _ = apply_action(state, start_colonization("b", "p1"))

    state = pass_turn(state)
    province = state.provinces["p1"]
    assert province.colonization_progress == {"a": 40, "b": 20}
    assert province.owner_country_id is None

    state = pass_turn(state)
    assert state.provinces["p1"].colonization_progress == {"a": 80, "b": 60}

    # a resolves first and reaches 120 >= 100; b's progress is discarded
    state = pass_turn(state)
    province = state.provinces["p1"]
    assert province.owner_country_id == "a"
    assert province.colonization_progress == {}

    state = pass_turn(state)
    assert state.provinces["p1"].owner_country_id == "a"


def _construction_world(make_state, points, provinces):
    return make_state(
        countries=[{"id": "a", "name": "Avaria", "construction_points": points}],
        buildings=[{"id": "farm", "name": "Farm", "cost": 100}],
        settings={"construction_points_per_turn": points, "colonization_points_per_turn": 0},
        provinces=provinces,
    )


def test_construction_progress_and_completion(make_state):
    state = _construction_world(make_state, 60, {
        "x": {
            "owner_country_id": "a",
            "construction_progress": {"farm": [
                {"progress": 0, "owner": {"type": "state", "country_id": "a"}},
                {"progress": 50, "owner": {"type": "state", "country_id": "a"}},
            ]},
        },
    })

    state = pass_turn(state)
    entries = state.provinces["x"].construction_progress["farm"]
    assert [e.progress for e in entries] == [30, 80]
    assert state.provinces["x"].buildings_built == []

    state = pass_turn(state)
    province = state.provinces["x"]
    assert [e.progress for e in province.construction_progress["farm"]] == [60]
    assert len(province.buildings_built) == 1
    assert province.buildings_built[0].building_id == "farm"
    assert province.buildings_built[0].owner == Owner.state("a")


def test_construction_split_sums_to_available_points(make_state):
    state = _construction_world(make_state, 75, {
        "x": {
            "owner_country_id": "a",
            "construction_progress": {"farm": [0, 10]},
        },
        "y": {
            "owner_country_id": "a",
            "construction_progress": {"mill": [5]},
        },
        "z": {
            "construction_progress": {"farm": [0]},
        },
    })
    before = {
        pid: sum(e.progress for entries in p.construction_progress.values() for e in entries)
        for pid, p in state.provinces.items()
    }
    resolve_construction(state, state.countries[0])
    after = {
        pid: sum(e.progress for entries in p.construction_progress.values() for e in entries)
        for pid, p in state.provinces.items()
    }
    spent = (after["x"] - before["x"]) + (after["y"] - before["y"])
    assert spent == pytest.approx(75)
    # Unowned provinces are not funded
    assert after["z"] == before["z"]
    assert state.countries[0].construction_points == 0


def test_host_funds_foreign_entries(make_state):
    state = _construction_world(make_state, 100, {
        "x": {
            "owner_country_id": "a",
            "construction_progress": {"farm": [
                {"progress": 0, "owner": {"type": "state", "country_id": "b"}},
            ]},
        },
    })
    events = resolve_construction(state, state.countries[0])
    built = state.provinces["x"].buildings_built
    assert [b.owner for b in built] == [Owner.state("b")]
    assert events[0].type == "buildings_completed"
    assert events[0].payload["country_id"] == "a"


def test_completions_are_reported_per_building(make_state):
    state = _construction_world(make_state, 300, {
        "x": {
            "owner_country_id": "a",
            "construction_progress": {
                "farm": [0, 0],
                "unlisted": [0],
            },
        },
    })
    events = resolve_construction(state, state.countries[0])
    counts = {e.payload["building_id"]: e.payload["count"] for e in events}
    # Buildings missing from the catalog cost the default 100
    assert counts == {"farm": 2, "unlisted": 1}
    assert state.provinces["x"].construction_progress == {}
