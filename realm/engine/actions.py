"""
Action definitions for the game.
Actions are immutable, deterministic instructions; the reducer applies them.
"""

from dataclasses import dataclass
from typing import Any


@dataclass
class Action:
    """Base action class. All actions have a type, acting country, and payload."""
    type: str  # e.g., "start_construction", "accept_proposal", "end_turn"
    country: str | None  # country_id performing the action (None for admin actions)
    payload: dict  # Action-specific data

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "country": self.country, "payload": self.payload}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Action":
        payload = data.get("payload")
        return cls(
            type=str(data.get("type") or ""),
            country=data.get("country"),
            payload=payload if isinstance(payload, dict) else {},
        )


# ===== Countries and companies =====

def create_country(name: str, color: str | None = None, country_id: str | None = None) -> Action:
    """Add a country; starting points come from settings. country_id is generated when omitted."""
    payload: dict[str, Any] = {"name": name}
    if color:
        payload["color"] = color
    if country_id:
        payload["country_id"] = country_id
    return Action(type="create_country", country=None, payload=payload)


def delete_country(country_id: str) -> Action:
    """
    Remove a country. Its provinces become unowned, its colonization bids, companies,
    agreements and proposals are dropped.
    """
    return Action(type="delete_country", country=None, payload={"country_id": country_id})


def create_company(country: str, name: str, color: str | None = None) -> Action:
    payload: dict[str, Any] = {"name": name}
    if color:
        payload["color"] = color
    return Action(type="create_company", country=country, payload=payload)


def delete_company(company_id: str) -> Action:
    """Remove a company; its buildings and construction pass to its parent country's state."""
    return Action(type="delete_company", country=None, payload={"company_id": company_id})


# ===== Colonization =====

def set_colonization_disabled(province_id: str, disabled: bool) -> Action:
    """Close (or reopen) a province to colonization. Closing drops all progress on it."""
    return Action(
        type="set_colonization_disabled",
        country=None,
        payload={"province_id": province_id, "disabled": disabled},
    )


def start_colonization(country: str, province_id: str) -> Action:
    return Action(type="start_colonization", country=country, payload={"province_id": province_id})


def cancel_colonization(country: str, province_id: str) -> Action:
    return Action(type="cancel_colonization", country=country, payload={"province_id": province_id})


# ===== Construction =====

def start_construction(
    country: str,
    province_id: str,
    building_id: str,
    company_id: str | None = None,
) -> Action:
    """
    Start building in a province.
    The owner is the acting country's state, or company_id when given (a company of that country).
    Example: start_construction("north", "p1", "farm", company_id="north_grain")
    """
    payload = {"province_id": province_id, "building_id": building_id}
    if company_id:
        payload["company_id"] = company_id
    return Action(type="start_construction", country=country, payload=payload)


def cancel_construction(country: str | None, province_id: str, building_id: str) -> Action:
    """Cancel the most recently started construction of a building in a province."""
    return Action(
        type="cancel_construction",
        country=country,
        payload={"province_id": province_id, "building_id": building_id},
    )


def demolish_building(country: str, province_id: str, building_id: str) -> Action:
    """Demolish one built instance; the acting country pays part of the building cost."""
    return Action(
        type="demolish_building",
        country=country,
        payload={"province_id": province_id, "building_id": building_id},
    )


# ===== Turn =====

def end_turn(country: str | None = None) -> Action:
    """End the active country's turn."""
    return Action(type="end_turn", country=country, payload={})


# ===== Diplomacy =====

def propose_agreement(
    country: str,
    to_country_id: str,
    agreement: dict[str, Any],
    reciprocal: bool = False,
) -> Action:
    """
    Offer an agreement to another country.
    agreement holds the terms (host/guest, allow_state/allow_companies, allow-lists, limits,
    duration_turns, title); host/guest default to proposer/recipient.
    """
    return Action(
        type="propose_agreement",
        country=country,
        payload={
            "to_country_id": to_country_id,
            "agreement": agreement,
            "reciprocal": reciprocal,
        },
    )


def accept_proposal(country: str | None, proposal_id: str) -> Action:
    return Action(type="accept_proposal", country=country, payload={"proposal_id": proposal_id})


def decline_proposal(country: str | None, proposal_id: str) -> Action:
    return Action(type="decline_proposal", country=country, payload={"proposal_id": proposal_id})


def withdraw_proposal(country: str | None, proposal_id: str) -> Action:
    return Action(type="withdraw_proposal", country=country, payload={"proposal_id": proposal_id})


def delete_agreement(country: str | None, agreement_id: str) -> Action:
    return Action(type="delete_agreement", country=country, payload={"agreement_id": agreement_id})


# ===== Event log =====

def clear_event_log() -> Action:
    return Action(type="clear_event_log", country=None, payload={})


def trim_event_log() -> Action:
    """Keep only the newest log entries."""
    return Action(type="trim_event_log", country=None, payload={})
