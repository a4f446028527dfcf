"""
Main game reducer.
Applies actions to state, enforcing rules and producing new state.
Returns (new_state, events) where events describe what happened.

Rejected actions never raise: the input state is returned untouched with no events.
Use queries.validate_action to learn why an action would be rejected.
"""

from realm.engine.actions import Action
from realm.engine.event_log import clear_event_log, record_events, trim_event_log
from realm.engine.events import (
    GameEvent,
    building_demolished,
    colonization_cancelled,
    colonization_disabled_changed,
    colonization_started,
    company_created,
    company_deleted,
    construction_cancelled,
    construction_started,
    country_created,
    country_deleted,
)
from realm.engine import proposals
from realm.engine.queries import construction_owner, demolition_cost, validate_action
from realm.engine.state import (
    Company,
    ConstructionEntry,
    Country,
    GameState,
    Owner,
)
from realm.engine.turns import end_turn


def apply_action(state: GameState, action: Action) -> tuple[GameState, list[GameEvent]]:
    """
    Apply a single action to the current state, returning new state and events.

    Args:
        state: Current game state (never mutated)
        action: Action to apply

    Returns:
        Tuple of (new_state, events). On rejection: (state, []) with the same state object.
    """
    if not validate_action(state, action).valid:
        return state, []

    new_state = state.copy()
    events: list[GameEvent] = []

    if action.type == "create_country":
        new_state, evts = _handle_create_country(new_state, action)
        events.extend(evts)

    elif action.type == "delete_country":
        new_state, evts = _handle_delete_country(new_state, action)
        events.extend(evts)

    elif action.type == "create_company":
        new_state, evts = _handle_create_company(new_state, action)
        events.extend(evts)

    elif action.type == "delete_company":
        new_state, evts = _handle_delete_company(new_state, action)
        events.extend(evts)

    elif action.type == "set_colonization_disabled":
        new_state, evts = _handle_set_colonization_disabled(new_state, action)
        events.extend(evts)

    elif action.type == "start_colonization":
        new_state, evts = _handle_start_colonization(new_state, action)
        events.extend(evts)

    elif action.type == "cancel_colonization":
        new_state, evts = _handle_cancel_colonization(new_state, action)
        events.extend(evts)

    elif action.type == "start_construction":
        new_state, evts = _handle_start_construction(new_state, action)
        events.extend(evts)

    elif action.type == "cancel_construction":
        new_state, evts = _handle_cancel_construction(new_state, action)
        events.extend(evts)

    elif action.type == "demolish_building":
        new_state, evts = _handle_demolish_building(new_state, action)
        events.extend(evts)

    elif action.type == "end_turn":
        events.extend(end_turn(new_state))

    elif action.type == "propose_agreement":
        events.extend(proposals.propose_agreement(
            new_state,
            action.country,
            action.payload["to_country_id"],
            action.payload.get("agreement") or {},
            bool(action.payload.get("reciprocal", False)),
        ))

    elif action.type == "accept_proposal":
        events.extend(proposals.accept_proposal(
            new_state, action.payload["proposal_id"], action.country,
        ))

    elif action.type == "decline_proposal":
        events.extend(proposals.decline_proposal(new_state, action.payload["proposal_id"]))

    elif action.type == "withdraw_proposal":
        events.extend(proposals.withdraw_proposal(new_state, action.payload["proposal_id"]))

    elif action.type == "delete_agreement":
        events.extend(proposals.delete_agreement(new_state, action.payload["agreement_id"]))

    elif action.type == "clear_event_log":
        clear_event_log(new_state)
        return new_state, events

    elif action.type == "trim_event_log":
        trim_event_log(new_state)
        return new_state, events

    record_events(new_state, events)
    return new_state, events


def _handle_create_country(state: GameState, action: Action) -> tuple[GameState, list[GameEvent]]:
    """Add a country with the configured starting points; first country becomes active."""
    country_id = action.payload.get("country_id") or state.generate_id("country")
    country = Country(
        id=country_id,
        name=action.payload["name"].strip(),
        color=action.payload.get("color") or "#888888",
        colonization_points=max(0, state.settings.starting_colonization_points),
        construction_points=max(0, state.settings.starting_construction_points),
    )
    state.countries.append(country)
    if state.active_country_id is None or state.get_country(state.active_country_id) is None:
        state.active_country_id = country.id
    return state, [country_created(country.id, country.name)]


def _handle_delete_country(state: GameState, action: Action) -> tuple[GameState, list[GameEvent]]:
    """
    Remove a country and everything that only makes sense with it:
    - provinces it owned become unowned
    - its colonization bids are dropped
    - its companies are removed
    - agreements and proposals naming it are removed
    Building instances and construction entries keep their owner tags.
    """
    country_id = action.payload["country_id"]
    country = state.get_country(country_id)
    state.countries = [c for c in state.countries if c.id != country_id]
    if state.active_country_id == country_id:
        state.active_country_id = state.countries[0].id if state.countries else None

    state.companies = {
        cid: c for cid, c in state.companies.items() if c.country_id != country_id
    }
    for province in state.provinces.values():
        if province.owner_country_id == country_id:
            province.owner_country_id = None
        province.colonization_progress.pop(country_id, None)

    state.agreements = [
        a for a in state.agreements
        if country_id not in (a.host_country_id, a.guest_country_id)
    ]
    state.proposals = [
        p for p in state.proposals
        if country_id not in (p.from_country_id, p.to_country_id)
        and country_id not in p.target_country_ids
    ]
    return state, [country_deleted(country_id, country.name if country else country_id)]


def _handle_create_company(state: GameState, action: Action) -> tuple[GameState, list[GameEvent]]:
    company = Company(
        id=state.generate_id("company"),
        name=action.payload["name"].strip(),
        country_id=action.country,
        color=action.payload.get("color"),
    )
    state.companies[company.id] = company
    return state, [company_created(company.id, company.name, company.country_id)]


def _handle_delete_company(state: GameState, action: Action) -> tuple[GameState, list[GameEvent]]:
    """Remove a company; its buildings and construction entries pass to its country's state."""
    company = state.companies.pop(action.payload["company_id"])
    for province in state.provinces.values():
        for instance in province.buildings_built:
            if instance.owner.is_company and instance.owner.company_id == company.id:
                instance.owner = Owner.state(company.country_id)
        for entries in province.construction_progress.values():
            for entry in entries:
                if entry.owner.is_company and entry.owner.company_id == company.id:
                    entry.owner = Owner.state(company.country_id)
    return state, [company_deleted(company.id, company.name, company.country_id)]


def _handle_set_colonization_disabled(state: GameState, action: Action) -> tuple[GameState, list[GameEvent]]:
    province = state.provinces[action.payload["province_id"]]
    disabled = bool(action.payload.get("disabled", True))
    cleared: list[str] = []
    province.colonization_disabled = disabled
    if disabled:
        cleared = list(province.colonization_progress.keys())
        province.colonization_progress = {}
    return state, [colonization_disabled_changed(province.id, disabled, cleared)]


def _handle_start_colonization(state: GameState, action: Action) -> tuple[GameState, list[GameEvent]]:
    province = state.provinces[action.payload["province_id"]]
    province.colonization_progress[action.country] = 0
    return state, [colonization_started(province.id, action.country)]


def _handle_cancel_colonization(state: GameState, action: Action) -> tuple[GameState, list[GameEvent]]:
    province = state.provinces[action.payload["province_id"]]
    del province.colonization_progress[action.country]
    return state, [colonization_cancelled(province.id, action.country)]


def _handle_start_construction(state: GameState, action: Action) -> tuple[GameState, list[GameEvent]]:
    """Queue a construction entry; eligibility was already checked by validate_action."""
    province = state.provinces[action.payload["province_id"]]
    building_id = action.payload["building_id"]
    owner = construction_owner(action)
    province.construction_progress.setdefault(building_id, []).append(
        ConstructionEntry(progress=0, owner=owner)
    )
    return state, [construction_started(
        province.id, building_id, owner.to_dict(), province.owner_country_id,
    )]


def _handle_cancel_construction(state: GameState, action: Action) -> tuple[GameState, list[GameEvent]]:
    """Drop the most recently started entry of the building (LIFO)."""
    province = state.provinces[action.payload["province_id"]]
    building_id = action.payload["building_id"]
    entries = province.construction_progress[building_id]
    removed = entries.pop()
    if not entries:
        del province.construction_progress[building_id]
    return state, [construction_cancelled(
        province.id, building_id, removed.owner.to_dict(), province.owner_country_id,
    )]


def _handle_demolish_building(state: GameState, action: Action) -> tuple[GameState, list[GameEvent]]:
    """Remove the first built instance of the building and charge the acting country."""
    province = state.provinces[action.payload["province_id"]]
    building_id = action.payload["building_id"]
    country = state.get_country(action.country)
    cost = demolition_cost(state, building_id)
    country.construction_points = max(0, country.construction_points - cost)
    for index, instance in enumerate(province.buildings_built):
        if instance.building_id == building_id:
            del province.buildings_built[index]
            break
    return state, [building_demolished(province.id, building_id, country.id, cost)]


def replay_from_actions(
    initial_state: GameState,
    actions: list[Action],
) -> tuple[GameState, list[GameEvent]]:
    """
    Replay a series of actions from an initial state.
    Rejected actions are skipped the same way apply_action skips them.

    Returns:
        Tuple of (final_state, all_events) after all actions applied
    """
    current_state = initial_state.copy()
    all_events: list[GameEvent] = []

    for action in actions:
        current_state, events = apply_action(current_state, action)
        all_events.extend(events)

    return current_state, all_events
