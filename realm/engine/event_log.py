"""
Player-facing event log.
Turns GameEvents into EventLogEntry records (category, priority, English message) and
keeps the log within its retention window.
"""

import math
from datetime import datetime, timezone
from typing import Callable

from realm.engine import MAX_LOG_ENTRIES, TRIM_LOG_TO
from realm.engine import events as ev
from realm.engine.events import GameEvent
from realm.engine.state import EventLogEntry, GameState

CATEGORY_SYSTEM = "system"
CATEGORY_COLONIZATION = "colonization"
CATEGORY_ECONOMY = "economy"
CATEGORY_DIPLOMACY = "diplomacy"


def _country_name(state: GameState, country_id: str | None) -> str:
    country = state.get_country(country_id)
    if country is not None:
        return country.name
    return country_id or "Unknown country"


def _building_name(state: GameState, building_id: str) -> str:
    definition = state.buildings.get(building_id)
    return definition.name if definition else building_id


def _owner_label(state: GameState, owner: dict) -> str:
    if owner.get("type") == "company":
        company = state.companies.get(owner.get("company_id") or "")
        return company.name if company else "company"
    return _country_name(state, owner.get("country_id"))


# event type -> (category, priority, country_id(payload), message(state, payload))
_Formatter = tuple[str, str, Callable[[dict], str | None], Callable[[GameState, dict], str]]

_FORMATTERS: dict[str, _Formatter] = {
    ev.TURN_STARTED: (
        CATEGORY_SYSTEM, "low",
        lambda p: None,
        lambda s, p: f"Turn {p['turn']} has begun.",
    ),
    ev.COUNTRY_CREATED: (
        CATEGORY_SYSTEM, "low",
        lambda p: p["country_id"],
        lambda s, p: f"{p['name']} has been founded.",
    ),
    ev.COUNTRY_DELETED: (
        CATEGORY_SYSTEM, "medium",
        lambda p: None,
        lambda s, p: f"{p['name']} has been removed from the game.",
    ),
    ev.COMPANY_CREATED: (
        CATEGORY_ECONOMY, "low",
        lambda p: p["country_id"],
        lambda s, p: f"{_country_name(s, p['country_id'])} registered the company {p['name']}.",
    ),
    ev.COMPANY_DELETED: (
        CATEGORY_ECONOMY, "low",
        lambda p: p["country_id"],
        lambda s, p: f"The company {p['name']} was dissolved; its buildings pass to "
                     f"{_country_name(s, p['country_id'])}.",
    ),
    ev.COLONIZATION_STARTED: (
        CATEGORY_COLONIZATION, "medium",
        lambda p: p["country_id"],
        lambda s, p: f"{_country_name(s, p['country_id'])} started colonizing province {p['province_id']}.",
    ),
    ev.COLONIZATION_CANCELLED: (
        CATEGORY_COLONIZATION, "low",
        lambda p: p["country_id"],
        lambda s, p: f"{_country_name(s, p['country_id'])} stopped colonizing province {p['province_id']}.",
    ),
    ev.COLONIZATION_DISABLED_CHANGED: (
        CATEGORY_COLONIZATION, "low",
        lambda p: None,
        lambda s, p: f"Colonization of province {p['province_id']} is now "
                     f"{'closed' if p['disabled'] else 'open'}.",
    ),
    ev.PROVINCE_COLONIZED: (
        CATEGORY_COLONIZATION, "high",
        lambda p: p["country_id"],
        lambda s, p: f"{_country_name(s, p['country_id'])} completed the colonization of province "
                     f"{p['province_id']}.",
    ),
    ev.CONSTRUCTION_STARTED: (
        CATEGORY_ECONOMY, "low",
        lambda p: p["host_country_id"],
        lambda s, p: f"Construction of {_building_name(s, p['building_id'])} started in province "
                     f"{p['province_id']} ({_owner_label(s, p['owner'])}).",
    ),
    ev.CONSTRUCTION_CANCELLED: (
        CATEGORY_ECONOMY, "low",
        lambda p: p["host_country_id"],
        lambda s, p: f"Construction of {_building_name(s, p['building_id'])} in province "
                     f"{p['province_id']} was cancelled ({_owner_label(s, p['owner'])}).",
    ),
    ev.BUILDINGS_COMPLETED: (
        CATEGORY_ECONOMY, "medium",
        lambda p: p["country_id"],
        lambda s, p: f"{_building_name(s, p['building_id'])} completed in province {p['province_id']}"
                     + (f" (x{p['count']})." if p["count"] > 1 else "."),
    ),
    ev.BUILDING_DEMOLISHED: (
        CATEGORY_ECONOMY, "low",
        lambda p: p["country_id"],
        lambda s, p: f"{_country_name(s, p['country_id'])} demolished {_building_name(s, p['building_id'])} "
                     f"in province {p['province_id']} for {p['cost']:g} construction points.",
    ),
    ev.PROPOSAL_CREATED: (
        CATEGORY_DIPLOMACY, "low",
        lambda p: p["from_country_id"],
        lambda s, p: (
            f"Renewal of an expired agreement offered between {_country_name(s, p['from_country_id'])} "
            f"and {_country_name(s, p['to_country_id'])}."
            if p["kind"] == "renewal"
            else f"{_country_name(s, p['from_country_id'])} proposed an agreement to "
                 f"{_country_name(s, p['to_country_id'])}."
        ),
    ),
    ev.PROPOSAL_ACCEPTED: (
        CATEGORY_DIPLOMACY, "medium",
        lambda p: p["accepted_by"],
        lambda s, p: f"{_country_name(s, p['accepted_by'])} accepted the agreement between "
                     f"{_country_name(s, p['from_country_id'])} and {_country_name(s, p['to_country_id'])}.",
    ),
    ev.RENEWAL_APPROVED: (
        CATEGORY_DIPLOMACY, "low",
        lambda p: p["country_id"],
        lambda s, p: f"{_country_name(s, p['country_id'])} approved an agreement renewal"
                     + (f"; waiting for {', '.join(_country_name(s, c) for c in p['pending_country_ids'])}."
                        if p["pending_country_ids"] else "."),
    ),
    ev.PROPOSAL_DECLINED: (
        CATEGORY_DIPLOMACY, "low",
        lambda p: p["to_country_id"],
        lambda s, p: f"{_country_name(s, p['to_country_id'])} declined the proposal from "
                     f"{_country_name(s, p['from_country_id'])}.",
    ),
    ev.PROPOSAL_WITHDRAWN: (
        CATEGORY_DIPLOMACY, "low",
        lambda p: p["from_country_id"],
        lambda s, p: f"{_country_name(s, p['from_country_id'])} withdrew the proposal to "
                     f"{_country_name(s, p['to_country_id'])}.",
    ),
    ev.PROPOSAL_EXPIRED: (
        CATEGORY_DIPLOMACY, "low",
        lambda p: p["to_country_id"],
        lambda s, p: f"The proposal from {_country_name(s, p['from_country_id'])} to "
                     f"{_country_name(s, p['to_country_id'])} has expired.",
    ),
    ev.AGREEMENT_DELETED: (
        CATEGORY_DIPLOMACY, "low",
        lambda p: p["host_country_id"],
        lambda s, p: f"The agreement between {_country_name(s, p['host_country_id'])} and "
                     f"{_country_name(s, p['guest_country_id'])} was cancelled.",
    ),
    ev.AGREEMENT_EXPIRED: (
        CATEGORY_DIPLOMACY, "low",
        lambda p: p["host_country_id"],
        lambda s, p: f"The agreement between {_country_name(s, p['host_country_id'])} and "
                     f"{_country_name(s, p['guest_country_id'])} has expired.",
    ),
}


def prune_entries(entries: list[EventLogEntry], current_turn: int, retain_turns: int) -> list[EventLogEntry]:
    """Keep entries from the last `retain_turns` turns (at least one)."""
    limit = max(1, math.floor(retain_turns))
    cutoff = current_turn - (limit - 1)
    return [e for e in entries if e.turn >= cutoff]


def entry_for_event(state: GameState, event: GameEvent) -> EventLogEntry | None:
    """Build the log entry for an event; None for events that are not logged."""
    formatter = _FORMATTERS.get(event.type)
    if formatter is None:
        return None
    category, priority, country_of, message_of = formatter
    return EventLogEntry(
        id=state.generate_id("event"),
        turn=state.turn,
        timestamp=datetime.now(timezone.utc).isoformat(),
        category=category,
        priority=priority,
        message=message_of(state, event.payload),
        country_id=country_of(event.payload),
    )


def record_events(state: GameState, events: list[GameEvent]) -> None:
    """
    Append entries for events to state.event_log (mutates state), pruning to the retention
    window of the current turn and the hard cap. Oldest entries come first.
    """
    entries = prune_entries(state.event_log, state.turn, state.settings.event_log_retain_turns)
    for event in events:
        entry = entry_for_event(state, event)
        if entry is not None:
            entries.append(entry)
    state.event_log = entries[-MAX_LOG_ENTRIES:]


def clear_event_log(state: GameState) -> None:
    """Remove every entry (mutates state)."""
    state.event_log = []


def trim_event_log(state: GameState) -> None:
    """Keep only the newest entries (mutates state)."""
    state.event_log = state.event_log[-TRIM_LOG_TO:]
