"""
Diplomacy proposal and agreement lifecycle, including expiry and renewal.
"""

import pytest

from conftest import pass_turn
from realm.engine.actions import (
    accept_proposal,
    create_country,
    decline_proposal,
    delete_agreement,
    propose_agreement,
    start_construction,
    withdraw_proposal,
)
from realm.engine.queries import get_country_agreements, get_country_proposals, validate_action
from realm.engine.reducer import apply_action

FARM_RIGHTS = {
    "host_country_id": "north",
    "guest_country_id": "south",
    "allow_state": True,
    "allow_companies": False,
    "building_ids": ["farm"],
    "limits": {"per_province": 1},
    "title": "Northern fields",
}


def _propose(state, terms=None, reciprocal=False, sender="north", recipient="south"):
    state, events = apply_action(state, propose_agreement(sender, recipient, terms or {}, reciprocal))
    assert events, "proposal was rejected"
    return state, state.proposals[-1].id


def test_proposal_defaults_host_and_guest(game):
    state, proposal_id = _propose(game, {"allow_state": True})
    proposal = state.proposals[0]
    assert proposal.id == proposal_id
    assert proposal.agreement["host_country_id"] == "north"
    assert proposal.agreement["guest_country_id"] == "south"
    assert proposal.created_turn == 1
    assert get_country_proposals(state, "south")["incoming"][0]["id"] == proposal_id
    assert get_country_proposals(state, "north")["outgoing"][0]["id"] == proposal_id


def test_proposal_to_unknown_country_is_rejected(game):
    result = validate_action(game, propose_agreement("north", "atlantis", {}))
    assert result.reason == "unknown_country"


def test_accept_creates_agreement(game):
    state, proposal_id = _propose(game, FARM_RIGHTS)
    state, events = apply_action(state, accept_proposal("south", proposal_id))
    assert state.proposals == []
    assert len(state.agreements) == 1
    agreement = state.agreements[0]
    assert agreement.start_turn == 1
    assert agreement.building_ids == ["farm"]
    assert agreement.limits.per_province == 1
    assert events[0].payload["agreement_ids"] == [agreement.id]
    assert get_country_agreements(state, "north")[0]["id"] == agreement.id


def test_reciprocal_acceptance_mirrors_the_agreement(game):
    state, proposal_id = _propose(game, FARM_RIGHTS, reciprocal=True)
    state, _ = apply_action(state, accept_proposal("south", proposal_id))
    pairs = [(a.host_country_id, a.guest_country_id) for a in state.agreements]
    assert pairs == [("north", "south"), ("south", "north")]
    assert state.agreements[1].building_ids == ["farm"]


def test_scenario_agreement_quota_blocks_second_construction(game):
    state, proposal_id = _propose(game, FARM_RIGHTS)
    state, _ = apply_action(state, accept_proposal("south", proposal_id))

    state, events = apply_action(state, start_construction("south", "p1", "farm"))
    assert [e.type for e in events] == ["construction_started"]

    result = validate_action(state, start_construction("south", "p1", "farm"))
    assert result.valid is False
    assert result.reason == "no_diplomatic_access"

    state, events = apply_action(state, start_construction("south", "p1", "farm"))
    assert events == []
    entries = state.provinces["p1"].construction_progress["farm"]
    assert len(entries) == 1
    assert entries[0].owner.country_id == "south"


def test_decline_and_withdraw_remove_proposals(game):
    state, first = _propose(game, FARM_RIGHTS)
    state, second = _propose(state, FARM_RIGHTS)

    state, events = apply_action(state, decline_proposal("south", first))
    assert [p.id for p in state.proposals] == [second]
    assert events[0].type == "proposal_declined"

    state, events = apply_action(state, withdraw_proposal("north", second))
    assert state.proposals == []
    assert events[0].type == "proposal_withdrawn"
    assert state.agreements == []

    assert validate_action(state, accept_proposal("south", second)).reason == "unknown_proposal"


def test_proposer_cannot_accept_its_own_proposal(game):
    state, proposal_id = _propose(game, {"host_country_id": "south", "guest_country_id": "north", "allow_state": True})
    result = validate_action(state, accept_proposal("north", proposal_id))
    assert not result.valid
    assert result.reason == "not_a_party"

    state, events = apply_action(state, accept_proposal("north", proposal_id))
    assert events == []
    assert state.agreements == []
    assert [p.id for p in state.proposals] == [proposal_id]


def test_only_the_recipient_declines(game):
    state, proposal_id = _propose(game, FARM_RIGHTS)
    assert validate_action(state, decline_proposal("north", proposal_id)).reason == "not_a_party"
    assert validate_action(state, decline_proposal("south", proposal_id)).valid


def test_only_the_sender_withdraws(game):
    state, proposal_id = _propose(game, FARM_RIGHTS)
    state, events = apply_action(state, withdraw_proposal("south", proposal_id))
    assert events == []
    assert [p.id for p in state.proposals] == [proposal_id]
    assert validate_action(state, withdraw_proposal("south", proposal_id)).reason == "not_a_party"


def test_delete_agreement(game):
    state, proposal_id = _propose(game, FARM_RIGHTS)
    state, _ = apply_action(state, accept_proposal("south", proposal_id))
    agreement_id = state.agreements[0].id
    state, events = apply_action(state, delete_agreement("north", agreement_id))
    assert state.agreements == []
    assert events[0].type == "agreement_deleted"
    assert validate_action(state, delete_agreement("north", agreement_id)).reason == "unknown_agreement"


def test_agreement_expires_after_its_duration(make_state):
    state = make_state(
        turn=10,
        countries=[{"id": "a", "name": "Avaria"}, {"id": "b", "name": "Bellmar"}],
        agreements=[{
            "id": "agreement_001",
            "host_country_id": "a",
            "guest_country_id": "b",
            "allow_state": True,
            "duration_turns": 5,
            "start_turn": 10,
        }],
    )
    while state.turn < 14:
        state = pass_turn(state)
    assert [a.id for a in state.agreements] == ["agreement_001"]

    state = pass_turn(state)
    assert state.turn == 15
    assert state.agreements == []

    renewal = state.proposals[0]
    assert renewal.kind == "renewal"
    assert renewal.source_agreement_id == "agreement_001"
    assert (renewal.from_country_id, renewal.to_country_id) == ("a", "b")
    assert renewal.target_country_ids == ["a", "b"]
    assert renewal.created_turn == 15
    assert "start_turn" not in renewal.agreement


def test_proposal_expires(make_state):
    state = make_state(
        turn=2,
        countries=[{"id": "a", "name": "Avaria"}, {"id": "b", "name": "Bellmar"}],
        settings={"diplomacy_proposal_expire_turns": 3},
        proposals=[{
            "id": "proposal_001",
            "from_country_id": "a",
            "to_country_id": "b",
            "agreement": {"allow_state": True},
            "created_turn": 2,
        }],
    )
    state = pass_turn(state)
    state = pass_turn(state)
    assert state.turn == 4
    assert [p.id for p in state.proposals] == ["proposal_001"]

    state = pass_turn(state)
    assert state.turn == 5
    assert state.proposals == []


@pytest.mark.parametrize("expire_turns", [0, 1])
def test_proposals_live_at_least_one_turn(make_state, expire_turns):
    state = make_state(
        settings={"diplomacy_proposal_expire_turns": expire_turns},
        proposals=[{"id": "proposal_001", "from_country_id": "a", "to_country_id": "a", "created_turn": 1}],
    )
    state = pass_turn(state)
    assert state.proposals == []


def _expired_agreement_state(game):
    state, proposal_id = _propose(game, dict(FARM_RIGHTS, duration_turns=1))
    state, _ = apply_action(state, accept_proposal("south", proposal_id))
    state = pass_turn(state)
    assert state.agreements == []
    return state, state.proposals[0].id


def test_renewal_needs_both_parties(game):
    state, renewal_id = _expired_agreement_state(game)

    state, events = apply_action(state, accept_proposal("south", renewal_id))
    assert events[0].type == "renewal_approved"
    assert events[0].payload["pending_country_ids"] == ["north"]
    assert state.agreements == []
    assert state.proposals[0].approvals == ["south"]

    state, events = apply_action(state, accept_proposal("north", renewal_id))
    assert [e.type for e in events] == ["renewal_approved", "proposal_accepted"]
    assert state.proposals == []
    assert len(state.agreements) == 1
    renewed = state.agreements[0]
    assert (renewed.host_country_id, renewed.guest_country_id) == ("north", "south")
    assert renewed.start_turn == state.turn


def test_renewal_rejects_outsiders(game):
    state, _ = apply_action(game, create_country("Eastmark", country_id="east"))
    state, renewal_id = _expired_agreement_state(state)
    result = validate_action(state, accept_proposal("east", renewal_id))
    assert result.valid is False
    assert result.reason == "not_a_party"
