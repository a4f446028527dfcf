"""
Diplomacy proposal and agreement lifecycle: propose, accept, decline, withdraw, delete,
and the per-turn expiry (with renewal offers for lapsed agreements).

All functions mutate the state they are given and return the events produced; callers pass
a copy and validate beforehand (see queries.validate_action).
"""

from copy import deepcopy
from typing import Any

from realm.engine.events import (
    GameEvent,
    agreement_deleted,
    agreement_expired,
    proposal_accepted,
    proposal_created,
    proposal_declined,
    proposal_expired,
    proposal_withdrawn,
    renewal_approved,
)
from realm.engine.state import (
    PROPOSAL_NEW,
    PROPOSAL_RENEWAL,
    DiplomacyAgreement,
    DiplomacyProposal,
    GameState,
)

# Agreement fields that are not part of the negotiated terms
_NON_TERM_KEYS = ("id", "start_turn")


def agreement_terms(agreement: dict[str, Any] | DiplomacyAgreement) -> dict[str, Any]:
    """Negotiable terms of an agreement (everything except id and start turn)."""
    data = agreement.to_dict() if isinstance(agreement, DiplomacyAgreement) else deepcopy(agreement)
    for key in _NON_TERM_KEYS:
        data.pop(key, None)
    return data


def get_proposal(state: GameState, proposal_id: str) -> DiplomacyProposal | None:
    for proposal in state.proposals:
        if proposal.id == proposal_id:
            return proposal
    return None


def get_agreement(state: GameState, agreement_id: str) -> DiplomacyAgreement | None:
    for agreement in state.agreements:
        if agreement.id == agreement_id:
            return agreement
    return None


def renewal_targets(proposal: DiplomacyProposal) -> list[str]:
    """Countries whose approval a renewal needs (defaults to the recipient)."""
    return proposal.target_country_ids or [proposal.to_country_id]


def _instantiate(state: GameState, terms: dict[str, Any]) -> list[DiplomacyAgreement]:
    """Create the agreement from terms, starting this turn."""
    data = agreement_terms(terms)
    data["id"] = state.generate_id("agreement")
    data["start_turn"] = state.turn
    agreement = DiplomacyAgreement.from_dict(data)
    state.agreements.append(agreement)
    return [agreement]


def _instantiate_reciprocal(state: GameState, terms: dict[str, Any]) -> list[DiplomacyAgreement]:
    """Create the agreement and its mirror (host and guest swapped, same start)."""
    created = _instantiate(state, terms)
    agreement = created[0]
    if agreement.host_country_id != agreement.guest_country_id:
        mirrored = agreement_terms(agreement)
        mirrored["host_country_id"] = agreement.guest_country_id
        mirrored["guest_country_id"] = agreement.host_country_id
        created.extend(_instantiate(state, mirrored))
    return created


def propose_agreement(
    state: GameState,
    from_country_id: str,
    to_country_id: str,
    terms: dict[str, Any],
    reciprocal: bool = False,
) -> list[GameEvent]:
    """Queue a new proposal; host/guest default to proposer/recipient when not given."""
    payload = agreement_terms(terms)
    payload.setdefault("host_country_id", from_country_id)
    payload.setdefault("guest_country_id", to_country_id)
    proposal = DiplomacyProposal(
        id=state.generate_id("proposal"),
        from_country_id=from_country_id,
        to_country_id=to_country_id,
        agreement=payload,
        reciprocal=reciprocal,
        created_turn=state.turn,
        kind=PROPOSAL_NEW,
    )
    state.proposals.append(proposal)
    return [proposal_created(proposal.id, from_country_id, to_country_id, PROPOSAL_NEW, reciprocal)]


def accept_proposal(state: GameState, proposal_id: str, country_id: str | None = None) -> list[GameEvent]:
    """
    Accept a proposal.

    New proposals instantiate the agreement (and its mirror when reciprocal) and are removed.
    Renewals record `country_id`'s approval; once every target approved the agreement is
    re-instantiated and the proposal removed.
    """
    proposal = get_proposal(state, proposal_id)
    if proposal is None:
        return []

    if proposal.kind == PROPOSAL_RENEWAL:
        voter = country_id or proposal.to_country_id
        if voter not in proposal.approvals:
            proposal.approvals.append(voter)
        targets = renewal_targets(proposal)
        pending = [c for c in targets if c not in proposal.approvals]
        events = [renewal_approved(proposal.id, voter, pending)]
        if pending:
            return events
        created = _instantiate(state, proposal.agreement)
        state.proposals = [p for p in state.proposals if p.id != proposal.id]
        events.append(proposal_accepted(
            proposal.id, proposal.from_country_id, proposal.to_country_id, voter,
            [a.id for a in created],
        ))
        return events

    if proposal.reciprocal:
        created = _instantiate_reciprocal(state, proposal.agreement)
    else:
        created = _instantiate(state, proposal.agreement)
    state.proposals = [p for p in state.proposals if p.id != proposal.id]
    return [proposal_accepted(
        proposal.id, proposal.from_country_id, proposal.to_country_id, proposal.to_country_id,
        [a.id for a in created],
    )]


def decline_proposal(state: GameState, proposal_id: str) -> list[GameEvent]:
    proposal = get_proposal(state, proposal_id)
    if proposal is None:
        return []
    state.proposals = [p for p in state.proposals if p.id != proposal_id]
    return [proposal_declined(proposal.id, proposal.from_country_id, proposal.to_country_id)]


def withdraw_proposal(state: GameState, proposal_id: str) -> list[GameEvent]:
    proposal = get_proposal(state, proposal_id)
    if proposal is None:
        return []
    state.proposals = [p for p in state.proposals if p.id != proposal_id]
    return [proposal_withdrawn(proposal.id, proposal.from_country_id, proposal.to_country_id)]


def delete_agreement(state: GameState, agreement_id: str) -> list[GameEvent]:
    agreement = get_agreement(state, agreement_id)
    if agreement is None:
        return []
    state.agreements = [a for a in state.agreements if a.id != agreement_id]
    return [agreement_deleted(agreement.id, agreement.host_country_id, agreement.guest_country_id)]


def expire_proposals(state: GameState) -> list[GameEvent]:
    """Drop proposals that have waited max(1, expire_turns) turns or longer."""
    expiry = max(1, state.settings.diplomacy_proposal_expire_turns)
    events: list[GameEvent] = []
    kept: list[DiplomacyProposal] = []
    for proposal in state.proposals:
        if state.turn - proposal.created_turn >= expiry:
            events.append(proposal_expired(proposal.id, proposal.from_country_id, proposal.to_country_id))
        else:
            kept.append(proposal)
    state.proposals = kept
    return events


def expire_agreements(state: GameState) -> list[GameEvent]:
    """
    Drop agreements whose duration has run out and offer each one for renewal:
    a renewal proposal from host to guest that both must approve.
    """
    events: list[GameEvent] = []
    kept: list[DiplomacyAgreement] = []
    for agreement in state.agreements:
        lapsed = (
            agreement.duration_turns is not None
            and agreement.duration_turns > 0
            and agreement.start_turn is not None
            and state.turn - agreement.start_turn >= agreement.duration_turns
        )
        if not lapsed:
            kept.append(agreement)
            continue
        events.append(agreement_expired(
            agreement.id, agreement.host_country_id, agreement.guest_country_id,
        ))
        renewal = DiplomacyProposal(
            id=state.generate_id("proposal"),
            from_country_id=agreement.host_country_id,
            to_country_id=agreement.guest_country_id,
            agreement=agreement_terms(agreement),
            reciprocal=False,
            created_turn=state.turn,
            kind=PROPOSAL_RENEWAL,
            target_country_ids=[agreement.host_country_id, agreement.guest_country_id],
            approvals=[],
            source_agreement_id=agreement.id,
        )
        state.proposals.append(renewal)
        events.append(proposal_created(
            renewal.id, renewal.from_country_id, renewal.to_country_id, PROPOSAL_RENEWAL, False,
        ))
    state.agreements = kept
    return events
