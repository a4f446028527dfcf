"""
Turn resolution.

end_turn hands play to the next country. When play wraps back to the first country a global
turn passes: the turn counter advances, every country's colonization and construction points
are split across its in-flight tasks, new points are granted, and diplomacy ages out.
"""

from realm.engine import DEFAULT_BUILDING_COST
from realm.engine.events import (
    GameEvent,
    active_country_changed,
    buildings_completed,
    points_granted,
    province_colonized,
    turn_started,
)
from realm.engine.proposals import expire_agreements, expire_proposals
from realm.engine.state import BuildingInstance, Country, GameState


def resolve_colonization(state: GameState, country: Country) -> list[GameEvent]:
    """
    Split the country's colonization points evenly over the provinces it is colonizing.
    A province whose progress reaches its cost becomes the country's and all progress on it
    (from every country) is cleared. Spent points reset to 0.
    """
    if country.colonization_points <= 0:
        return []
    targets = [
        p for p in state.provinces.values()
        if p.owner_country_id is None
        and not p.colonization_disabled
        and country.id in p.colonization_progress
    ]
    if not targets:
        return []

    events: list[GameEvent] = []
    share = country.colonization_points / len(targets)
    for province in targets:
        updated = province.colonization_progress.get(country.id, 0) + share
        if updated >= province.colonization_cost:
            province.owner_country_id = country.id
            province.colonization_progress = {}
            events.append(province_colonized(province.id, country.id))
        else:
            province.colonization_progress[country.id] = updated

    country.colonization_points = 0
    return events


def resolve_construction(state: GameState, country: Country) -> list[GameEvent]:
    """
    Split the country's construction points evenly over every construction entry in provinces
    it owns, whoever the entry belongs to. Finished entries become building instances with the
    entry's owner. Spent points reset to 0.
    """
    if country.construction_points <= 0:
        return []
    owned = [p for p in state.provinces.values() if p.owner_country_id == country.id]
    total = sum(
        len(entries)
        for province in owned
        for entries in province.construction_progress.values()
    )
    if total == 0:
        return []

    events: list[GameEvent] = []
    share = country.construction_points / total
    for province in owned:
        progress = {}
        for building_id, entries in province.construction_progress.items():
            definition = state.buildings.get(building_id)
            cost = definition.cost if definition else DEFAULT_BUILDING_COST
            remaining = []
            completed = 0
            for entry in entries:
                entry.progress += share
                if entry.progress >= cost:
                    completed += 1
                    province.buildings_built.append(BuildingInstance(building_id, entry.owner))
                else:
                    remaining.append(entry)
            if completed:
                events.append(buildings_completed(province.id, building_id, completed, country.id))
            if remaining:
                progress[building_id] = remaining
        province.construction_progress = progress

    country.construction_points = 0
    return events


def grant_points(state: GameState) -> list[GameEvent]:
    """Give every country its per-turn colonization and construction points."""
    colonization = max(0, state.settings.colonization_points_per_turn)
    construction = max(0, state.settings.construction_points_per_turn)
    for country in state.countries:
        country.colonization_points += colonization
        country.construction_points += construction
    return [points_granted(colonization, construction, [c.id for c in state.countries])]


def end_turn(state: GameState) -> list[GameEvent]:
    """
    Advance to the next country (mutates state). Unknown active ids count as the first country.

    On wrap-around the global turn boundary runs, in order: turn increment, colonization then
    construction per country (country order), point grants, proposal expiry, agreement expiry.
    """
    if not state.countries:
        return []
    events: list[GameEvent] = []
    ids = [c.id for c in state.countries]
    current_idx = ids.index(state.active_country_id) if state.active_country_id in ids else 0
    next_idx = current_idx + 1
    wraps = next_idx >= len(ids)
    next_country_id = ids[0] if wraps else ids[next_idx]

    if wraps:
        state.turn += 1
        events.append(turn_started(state.turn))
        for country in state.countries:
            events.extend(resolve_colonization(state, country))
            events.extend(resolve_construction(state, country))
        events.extend(grant_points(state))
        events.extend(expire_proposals(state))
        events.extend(expire_agreements(state))

    old_country_id = state.active_country_id
    state.active_country_id = next_country_id
    events.append(active_country_changed(old_country_id, next_country_id))
    return events
