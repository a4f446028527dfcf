"""
Construction eligibility against the default setup: reason codes, gate order and quotas.
"""

import pytest

from realm.engine import eligibility
from realm.engine.actions import start_construction
from realm.engine.eligibility import check_construction
from realm.engine.queries import get_buildable_buildings, validate_action
from realm.engine.reducer import apply_action
from realm.engine.state import BuildingInstance, ConstructionEntry, Owner

NORTH = Owner.state("north")
SOUTH = Owner.state("south")
NORTH_GRAIN = Owner.company("north_grain")


def _reason(state, province_id, building_id, owner):
    result = check_construction(state, province_id, building_id, owner)
    return None if result.accepted else result.reason


def test_accepts_eligible_construction(game):
    assert _reason(game, "p1", "farm", NORTH) is None
    assert _reason(game, "p1", "farm", NORTH_GRAIN) is None
    assert _reason(game, "p2", "mine", NORTH) is None
    assert _reason(game, "p4", "mine", SOUTH) is None


def test_unknown_ids(game):
    assert _reason(game, "p99", "farm", NORTH) == eligibility.UNKNOWN_PROVINCE
    assert _reason(game, "p1", "castle", NORTH) == eligibility.UNKNOWN_BUILDING


def test_unowned_province(game):
    assert _reason(game, "p5", "farm", NORTH) == eligibility.UNOWNED_PROVINCE


def test_foreign_province_without_agreement(game):
    assert _reason(game, "p1", "farm", SOUTH) == eligibility.NO_DIPLOMATIC_ACCESS
    assert _reason(game, "p4", "farm", NORTH_GRAIN) == eligibility.NO_DIPLOMATIC_ACCESS


def test_trait_requirements(game):
    # Farms avoid mountains and need a temperate or continental climate
    assert _reason(game, "p2", "farm", NORTH) == eligibility.TRAIT_REQUIREMENTS
    assert _reason(game, "p3", "farm", SOUTH) == eligibility.TRAIT_REQUIREMENTS
    # Monasteries need the old faith
    assert _reason(game, "p4", "monastery", SOUTH) == eligibility.TRAIT_REQUIREMENTS
    assert _reason(game, "p2", "monastery", NORTH) is None


def test_resource_requirements(game):
    assert _reason(game, "p1", "mine", NORTH) == eligibility.RESOURCE_REQUIREMENTS


def test_radiation_bounds(game):
    game.provinces["p6"].owner_country_id = "north"
    assert _reason(game, "p6", "reactor", NORTH) == eligibility.RADIATION
    assert _reason(game, "p1", "reactor", NORTH) is None


def test_pollution_bounds(game):
    game.provinces["p2"].buildings_built.append(BuildingInstance("mine", NORTH))
    game.provinces["p1"].pollution = 80
    assert _reason(game, "p1", "factory", NORTH) == eligibility.POLLUTION


def test_owner_allow_lists(game):
    # Reactors are reserved for the north; monastery companies list is an empty allow-list
    assert _reason(game, "p3", "reactor", SOUTH) == eligibility.OWNER_NOT_ALLOWED
    assert _reason(game, "p1", "monastery", NORTH_GRAIN) == eligibility.OWNER_NOT_ALLOWED
    assert _reason(game, "p1", "monastery", NORTH) is None


def test_deny_list(game):
    requirements = game.buildings["farm"].requirements
    requirements.allowed_countries = ["north"]
    requirements.allowed_countries_mode = "deny"
    assert _reason(game, "p1", "farm", NORTH) == eligibility.OWNER_NOT_ALLOWED
    assert _reason(game, "p4", "farm", SOUTH) is None
    requirements.allowed_countries = []
    assert _reason(game, "p1", "farm", NORTH) is None


def test_dependencies_count_completed_buildings_only(game):
    assert _reason(game, "p1", "factory", NORTH) == eligibility.BUILDING_DEPENDENCIES
    game.provinces["p2"].construction_progress["mine"] = [ConstructionEntry(90, NORTH)]
    assert _reason(game, "p1", "factory", NORTH) == eligibility.BUILDING_DEPENDENCIES
    game.provinces["p2"].buildings_built.append(BuildingInstance("mine", NORTH))
    assert _reason(game, "p1", "factory", NORTH) is None


def test_caps(game):
    game.provinces["p2"].buildings_built.append(BuildingInstance("mine", NORTH))
    for _ in range(4):
        game.provinces["p1"].buildings_built.append(BuildingInstance("factory", NORTH))
    assert _reason(game, "p1", "factory", NORTH) == eligibility.MAX_PER_COUNTRY

    game.provinces["p1"].construction_progress["reactor"] = [ConstructionEntry(0, NORTH)]
    assert _reason(game, "p2", "reactor", NORTH) == eligibility.MAX_GLOBAL


def test_caps_are_checked_before_traits(game):
    # p2 is mountainous, so farms fail traits; a full province reports the cap first
    game.provinces["p2"].buildings_built.extend(BuildingInstance("farm", NORTH) for _ in range(3))
    assert _reason(game, "p2", "farm", NORTH) == eligibility.MAX_PER_PROVINCE


def test_per_province_quota_is_monotonic(game):
    state = game
    accepted = 0
    for _ in range(5):
        before = len(state.provinces["p1"].construction_progress.get("farm", []))
        state, events = apply_action(state, start_construction("north", "p1", "farm"))
        after = len(state.provinces["p1"].construction_progress.get("farm", []))
        if events:
            accepted += 1
            assert after == before + 1
        else:
            assert after == before
    assert accepted == 3
    assert validate_action(state, start_construction("north", "p1", "farm")).reason == \
        eligibility.MAX_PER_PROVINCE


def test_rejected_action_leaves_state_untouched(game):
    snapshot = game.to_dict()
    new_state, events = apply_action(game, start_construction("south", "p1", "farm"))
    assert new_state is game
    assert events == []
    assert new_state.to_dict() == snapshot


def test_company_must_belong_to_acting_country(game):
    result = validate_action(game, start_construction("south", "p4", "farm", company_id="north_grain"))
    assert result.valid is False
    assert result.reason == "company_not_owned"


def test_accepted_construction_is_tagged_with_owner(game):
    state, events = apply_action(game, start_construction("north", "p1", "farm", company_id="north_grain"))
    entry = state.provinces["p1"].construction_progress["farm"][0]
    assert entry.progress == 0
    assert entry.owner == NORTH_GRAIN
    assert events[0].type == "construction_started"


@pytest.mark.parametrize("company_id, monastery_accepted", [(None, True), ("north_grain", False)])
def test_buildable_listing(game, company_id, monastery_accepted):
    listing = {row["building_id"]: row for row in get_buildable_buildings(game, "p1", "north", company_id)}
    assert set(listing) == set(game.buildings)
    assert listing["farm"]["accepted"] is True
    assert listing["mine"]["reason"] == eligibility.RESOURCE_REQUIREMENTS
    assert listing["monastery"]["accepted"] is monastery_accepted
