"""
Game events for UI hooks and logging.
Events describe what happened during action processing; the event log is built from them.
"""

from dataclasses import dataclass
from typing import Any


@dataclass
class GameEvent:
    """Base event class. All events have a type and payload."""
    type: str
    payload: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "payload": self.payload}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameEvent":
        return cls(type=data["type"], payload=data["payload"])


# ===== Event Type Constants =====

# Turn events
TURN_STARTED = "turn_started"
ACTIVE_COUNTRY_CHANGED = "active_country_changed"
POINTS_GRANTED = "points_granted"

# Country / company events
COUNTRY_CREATED = "country_created"
COUNTRY_DELETED = "country_deleted"
COMPANY_CREATED = "company_created"
COMPANY_DELETED = "company_deleted"

# Colonization events
COLONIZATION_STARTED = "colonization_started"
COLONIZATION_CANCELLED = "colonization_cancelled"
COLONIZATION_DISABLED_CHANGED = "colonization_disabled_changed"
PROVINCE_COLONIZED = "province_colonized"

# Construction events
CONSTRUCTION_STARTED = "construction_started"
CONSTRUCTION_CANCELLED = "construction_cancelled"
BUILDINGS_COMPLETED = "buildings_completed"
BUILDING_DEMOLISHED = "building_demolished"

# Diplomacy events
PROPOSAL_CREATED = "proposal_created"
PROPOSAL_ACCEPTED = "proposal_accepted"
RENEWAL_APPROVED = "renewal_approved"
PROPOSAL_DECLINED = "proposal_declined"
PROPOSAL_WITHDRAWN = "proposal_withdrawn"
PROPOSAL_EXPIRED = "proposal_expired"
AGREEMENT_DELETED = "agreement_deleted"
AGREEMENT_EXPIRED = "agreement_expired"


# ===== Event Factory Functions =====

def turn_started(turn: int) -> GameEvent:
    return GameEvent(TURN_STARTED, {"turn": turn})


def active_country_changed(old_country_id: str | None, new_country_id: str) -> GameEvent:
    return GameEvent(ACTIVE_COUNTRY_CHANGED, {
        "old_country_id": old_country_id,
        "new_country_id": new_country_id,
    })


def points_granted(colonization: float, construction: float, country_ids: list[str]) -> GameEvent:
    """Emitted once per global turn when every country receives its per-turn points."""
    return GameEvent(POINTS_GRANTED, {
        "colonization": colonization,
        "construction": construction,
        "country_ids": country_ids,
    })


def country_created(country_id: str, name: str) -> GameEvent:
    return GameEvent(COUNTRY_CREATED, {"country_id": country_id, "name": name})


def country_deleted(country_id: str, name: str) -> GameEvent:
    return GameEvent(COUNTRY_DELETED, {"country_id": country_id, "name": name})


def company_created(company_id: str, name: str, country_id: str) -> GameEvent:
    return GameEvent(COMPANY_CREATED, {
        "company_id": company_id,
        "name": name,
        "country_id": country_id,
    })


def company_deleted(company_id: str, name: str, country_id: str) -> GameEvent:
    return GameEvent(COMPANY_DELETED, {
        "company_id": company_id,
        "name": name,
        "country_id": country_id,
    })


def colonization_started(province_id: str, country_id: str) -> GameEvent:
    return GameEvent(COLONIZATION_STARTED, {"province_id": province_id, "country_id": country_id})


def colonization_cancelled(province_id: str, country_id: str) -> GameEvent:
    return GameEvent(COLONIZATION_CANCELLED, {"province_id": province_id, "country_id": country_id})


def colonization_disabled_changed(province_id: str, disabled: bool, cleared: list[str]) -> GameEvent:
    return GameEvent(COLONIZATION_DISABLED_CHANGED, {
        "province_id": province_id,
        "disabled": disabled,
        "cleared_country_ids": cleared,  # countries whose progress was dropped
    })


def province_colonized(province_id: str, country_id: str) -> GameEvent:
    return GameEvent(PROVINCE_COLONIZED, {"province_id": province_id, "country_id": country_id})


def construction_started(
    province_id: str,
    building_id: str,
    owner: dict[str, Any],
    host_country_id: str | None,
) -> GameEvent:
    return GameEvent(CONSTRUCTION_STARTED, {
        "province_id": province_id,
        "building_id": building_id,
        "owner": owner,
        "host_country_id": host_country_id,  # province owner, who the log entry is attributed to
    })


def construction_cancelled(
    province_id: str,
    building_id: str,
    owner: dict[str, Any],
    host_country_id: str | None,
) -> GameEvent:
    return GameEvent(CONSTRUCTION_CANCELLED, {
        "province_id": province_id,
        "building_id": building_id,
        "owner": owner,
        "host_country_id": host_country_id,
    })


def buildings_completed(province_id: str, building_id: str, count: int, country_id: str) -> GameEvent:
    """One event per building per province, with how many instances completed this turn."""
    return GameEvent(BUILDINGS_COMPLETED, {
        "province_id": province_id,
        "building_id": building_id,
        "count": count,
        "country_id": country_id,
    })


def building_demolished(province_id: str, building_id: str, country_id: str, cost: float) -> GameEvent:
    return GameEvent(BUILDING_DEMOLISHED, {
        "province_id": province_id,
        "building_id": building_id,
        "country_id": country_id,
        "cost": cost,
    })


def proposal_created(
    proposal_id: str,
    from_country_id: str,
    to_country_id: str,
    kind: str,
    reciprocal: bool,
) -> GameEvent:
    return GameEvent(PROPOSAL_CREATED, {
        "proposal_id": proposal_id,
        "from_country_id": from_country_id,
        "to_country_id": to_country_id,
        "kind": kind,
        "reciprocal": reciprocal,
    })


def proposal_accepted(
    proposal_id: str,
    from_country_id: str,
    to_country_id: str,
    accepted_by: str,
    agreement_ids: list[str],
) -> GameEvent:
    return GameEvent(PROPOSAL_ACCEPTED, {
        "proposal_id": proposal_id,
        "from_country_id": from_country_id,
        "to_country_id": to_country_id,
        "accepted_by": accepted_by,
        "agreement_ids": agreement_ids,
    })


def renewal_approved(proposal_id: str, country_id: str, pending_country_ids: list[str]) -> GameEvent:
    """A renewal proposal got one more approval but still waits for others."""
    return GameEvent(RENEWAL_APPROVED, {
        "proposal_id": proposal_id,
        "country_id": country_id,
        "pending_country_ids": pending_country_ids,
    })


def proposal_declined(proposal_id: str, from_country_id: str, to_country_id: str) -> GameEvent:
    return GameEvent(PROPOSAL_DECLINED, {
        "proposal_id": proposal_id,
        "from_country_id": from_country_id,
        "to_country_id": to_country_id,
    })


def proposal_withdrawn(proposal_id: str, from_country_id: str, to_country_id: str) -> GameEvent:
    return GameEvent(PROPOSAL_WITHDRAWN, {
        "proposal_id": proposal_id,
        "from_country_id": from_country_id,
        "to_country_id": to_country_id,
    })


def proposal_expired(proposal_id: str, from_country_id: str, to_country_id: str) -> GameEvent:
    return GameEvent(PROPOSAL_EXPIRED, {
        "proposal_id": proposal_id,
        "from_country_id": from_country_id,
        "to_country_id": to_country_id,
    })


def agreement_deleted(agreement_id: str, host_country_id: str, guest_country_id: str) -> GameEvent:
    return GameEvent(AGREEMENT_DELETED, {
        "agreement_id": agreement_id,
        "host_country_id": host_country_id,
        "guest_country_id": guest_country_id,
    })


def agreement_expired(agreement_id: str, host_country_id: str, guest_country_id: str) -> GameEvent:
    return GameEvent(AGREEMENT_EXPIRED, {
        "agreement_id": agreement_id,
        "host_country_id": host_country_id,
        "guest_country_id": guest_country_id,
    })
