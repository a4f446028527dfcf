"""
Query functions for UI integration.
These functions help the UI understand what actions are available
without mutating game state.
"""

import math
from dataclasses import dataclass
from typing import Any

from realm.engine.actions import Action
from realm.engine.diplomacy import find_agreement, is_agreement_active
from realm.engine.eligibility import check_construction
from realm.engine.proposals import get_agreement, get_proposal, renewal_targets
from realm.engine.quotas import owner_country_id
from realm.engine.state import PROPOSAL_RENEWAL, GameState, Owner

# Reason codes (construction gate reasons come from eligibility)
UNKNOWN_ACTION = "unknown_action"
UNKNOWN_COUNTRY = "unknown_country"
UNKNOWN_COMPANY = "unknown_company"
UNKNOWN_PROVINCE = "unknown_province"
UNKNOWN_PROPOSAL = "unknown_proposal"
UNKNOWN_AGREEMENT = "unknown_agreement"
INVALID_NAME = "invalid_name"
DUPLICATE_ID = "duplicate_id"
COMPANY_NOT_OWNED = "company_not_owned"
PROVINCE_OWNED = "province_owned"
COLONIZATION_DISABLED = "colonization_disabled"
ALREADY_COLONIZING = "already_colonizing"
COLONIZATION_LIMIT = "colonization_limit"
NOT_COLONIZING = "not_colonizing"
NOTHING_TO_CANCEL = "nothing_to_cancel"
NO_BUILDING_INSTANCE = "no_building_instance"
INSUFFICIENT_POINTS = "insufficient_points"
NOT_A_PARTY = "not_a_party"
NO_COUNTRIES = "no_countries"


@dataclass
class ValidationResult:
    """Result of action validation. reason is a stable code, error a readable message."""
    valid: bool
    error: str | None = None
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "error": self.error, "reason": self.reason}


def _invalid(reason: str, error: str) -> ValidationResult:
    return ValidationResult(False, error, reason)


# ===== Action Validation =====

def validate_action(state: GameState, action: Action) -> ValidationResult:
    """
    Validate an action without applying it.
    Returns ValidationResult with valid=True or valid=False with reason code and error message.
    """
    handler = _VALIDATORS.get(action.type)
    if handler is None:
        return _invalid(UNKNOWN_ACTION, f"Unknown action type: {action.type}")
    return handler(state, action)


def construction_owner(action: Action) -> Owner:
    """Owner a start_construction action builds for: a company when given, else the acting state."""
    company_id = action.payload.get("company_id")
    if company_id:
        return Owner.company(str(company_id))
    return Owner.state(action.country)


def demolition_cost(state: GameState, building_id: str) -> int:
    """Construction points to demolish one instance: a percentage of the building cost, rounded up."""
    definition = state.buildings.get(building_id)
    base_cost = max(1, definition.cost if definition else 1)
    percent = max(0, state.settings.demolition_cost_percent)
    return math.ceil(base_cost * percent / 100)


def get_active_colonizations_count(state: GameState, country_id: str) -> int:
    """Provinces the country is currently colonizing."""
    return sum(
        1 for p in state.provinces.values()
        if p.owner_country_id is None and country_id in p.colonization_progress
    )


def _validate_create_country(state: GameState, action: Action) -> ValidationResult:
    name = action.payload.get("name")
    if not isinstance(name, str) or not name.strip():
        return _invalid(INVALID_NAME, "Country name is required")
    country_id = action.payload.get("country_id")
    if country_id and state.get_country(country_id) is not None:
        return _invalid(DUPLICATE_ID, f"Country {country_id} already exists")
    return ValidationResult(True)


def _validate_delete_country(state: GameState, action: Action) -> ValidationResult:
    country_id = action.payload.get("country_id")
    if state.get_country(country_id) is None:
        return _invalid(UNKNOWN_COUNTRY, f"Unknown country: {country_id}")
    return ValidationResult(True)


def _validate_create_company(state: GameState, action: Action) -> ValidationResult:
    if state.get_country(action.country) is None:
        return _invalid(UNKNOWN_COUNTRY, f"Unknown country: {action.country}")
    name = action.payload.get("name")
    if not isinstance(name, str) or not name.strip():
        return _invalid(INVALID_NAME, "Company name is required")
    return ValidationResult(True)


def _validate_delete_company(state: GameState, action: Action) -> ValidationResult:
    company_id = action.payload.get("company_id")
    if company_id not in state.companies:
        return _invalid(UNKNOWN_COMPANY, f"Unknown company: {company_id}")
    return ValidationResult(True)


def _validate_set_colonization_disabled(state: GameState, action: Action) -> ValidationResult:
    province_id = action.payload.get("province_id")
    if province_id not in state.provinces:
        return _invalid(UNKNOWN_PROVINCE, f"Unknown province: {province_id}")
    return ValidationResult(True)


def _validate_start_colonization(state: GameState, action: Action) -> ValidationResult:
    country_id = action.country
    province_id = action.payload.get("province_id")
    if state.get_country(country_id) is None:
        return _invalid(UNKNOWN_COUNTRY, f"Unknown country: {country_id}")
    province = state.provinces.get(province_id)
    if province is None:
        return _invalid(UNKNOWN_PROVINCE, f"Unknown province: {province_id}")
    if province.owner_country_id is not None:
        return _invalid(PROVINCE_OWNED, f"Province {province_id} is already owned")
    if province.colonization_disabled:
        return _invalid(COLONIZATION_DISABLED, f"Province {province_id} is closed to colonization")
    if country_id in province.colonization_progress:
        return _invalid(ALREADY_COLONIZING, f"{country_id} is already colonizing {province_id}")
    limit = state.settings.colonization_max_active
    if limit > 0 and get_active_colonizations_count(state, country_id) >= limit:
        return _invalid(
            COLONIZATION_LIMIT,
            f"{country_id} already has {limit} active colonizations",
        )
    return ValidationResult(True)


def _validate_cancel_colonization(state: GameState, action: Action) -> ValidationResult:
    province_id = action.payload.get("province_id")
    province = state.provinces.get(province_id)
    if province is None:
        return _invalid(UNKNOWN_PROVINCE, f"Unknown province: {province_id}")
    if action.country not in province.colonization_progress:
        return _invalid(NOT_COLONIZING, f"{action.country} is not colonizing {province_id}")
    return ValidationResult(True)


def _validate_start_construction(state: GameState, action: Action) -> ValidationResult:
    if state.get_country(action.country) is None:
        return _invalid(UNKNOWN_COUNTRY, f"Unknown country: {action.country}")
    owner = construction_owner(action)
    if owner.is_company:
        company = state.companies.get(owner.company_id or "")
        if company is None:
            return _invalid(UNKNOWN_COMPANY, f"Unknown company: {owner.company_id}")
        if company.country_id != action.country:
            return _invalid(
                COMPANY_NOT_OWNED,
                f"Company {company.id} does not belong to {action.country}",
            )
    result = check_construction(
        state,
        action.payload.get("province_id"),
        action.payload.get("building_id"),
        owner,
    )
    if not result.accepted:
        return _invalid(result.reason, result.message)
    return ValidationResult(True)


def _validate_cancel_construction(state: GameState, action: Action) -> ValidationResult:
    province_id = action.payload.get("province_id")
    province = state.provinces.get(province_id)
    if province is None:
        return _invalid(UNKNOWN_PROVINCE, f"Unknown province: {province_id}")
    if not province.construction_progress.get(action.payload.get("building_id")):
        return _invalid(NOTHING_TO_CANCEL, "No construction of this building in the province")
    return ValidationResult(True)


def _validate_demolish_building(state: GameState, action: Action) -> ValidationResult:
    country = state.get_country(action.country)
    if country is None:
        return _invalid(UNKNOWN_COUNTRY, f"Unknown country: {action.country}")
    province_id = action.payload.get("province_id")
    province = state.provinces.get(province_id)
    if province is None:
        return _invalid(UNKNOWN_PROVINCE, f"Unknown province: {province_id}")
    building_id = action.payload.get("building_id")
    if not any(b.building_id == building_id for b in province.buildings_built):
        return _invalid(NO_BUILDING_INSTANCE, f"No {building_id} built in {province_id}")
    cost = demolition_cost(state, building_id)
    if country.construction_points < cost:
        return _invalid(
            INSUFFICIENT_POINTS,
            f"Insufficient construction points: need {cost}, have {country.construction_points:g}",
        )
    return ValidationResult(True)


def _validate_end_turn(state: GameState, action: Action) -> ValidationResult:
    if not state.countries:
        return _invalid(NO_COUNTRIES, "No countries in the game")
    return ValidationResult(True)


def _validate_propose_agreement(state: GameState, action: Action) -> ValidationResult:
    if state.get_country(action.country) is None:
        return _invalid(UNKNOWN_COUNTRY, f"Unknown country: {action.country}")
    to_country_id = action.payload.get("to_country_id")
    if state.get_country(to_country_id) is None:
        return _invalid(UNKNOWN_COUNTRY, f"Unknown country: {to_country_id}")
    return ValidationResult(True)


def _validate_accept_proposal(state: GameState, action: Action) -> ValidationResult:
    proposal_id = action.payload.get("proposal_id")
    proposal = get_proposal(state, proposal_id)
    if proposal is None:
        return _invalid(UNKNOWN_PROPOSAL, f"Unknown proposal: {proposal_id}")
    if proposal.kind == PROPOSAL_RENEWAL:
        voter = action.country or proposal.to_country_id
        if voter not in renewal_targets(proposal):
            return _invalid(NOT_A_PARTY, f"{voter} is not a party to this renewal")
    elif action.country is not None and action.country != proposal.to_country_id:
        return _invalid(NOT_A_PARTY, f"Only {proposal.to_country_id} can accept this proposal")
    return ValidationResult(True)


def _validate_decline_proposal(state: GameState, action: Action) -> ValidationResult:
    proposal_id = action.payload.get("proposal_id")
    proposal = get_proposal(state, proposal_id)
    if proposal is None:
        return _invalid(UNKNOWN_PROPOSAL, f"Unknown proposal: {proposal_id}")
    if action.country is None:
        return ValidationResult(True)
    if proposal.kind == PROPOSAL_RENEWAL:
        if action.country not in renewal_targets(proposal):
            return _invalid(NOT_A_PARTY, f"{action.country} is not a party to this renewal")
    elif action.country != proposal.to_country_id:
        return _invalid(NOT_A_PARTY, f"Only {proposal.to_country_id} can decline this proposal")
    return ValidationResult(True)


def _validate_withdraw_proposal(state: GameState, action: Action) -> ValidationResult:
    proposal_id = action.payload.get("proposal_id")
    proposal = get_proposal(state, proposal_id)
    if proposal is None:
        return _invalid(UNKNOWN_PROPOSAL, f"Unknown proposal: {proposal_id}")
    if action.country is not None and action.country != proposal.from_country_id:
        return _invalid(NOT_A_PARTY, f"Only {proposal.from_country_id} can withdraw this proposal")
    return ValidationResult(True)


def _validate_delete_agreement(state: GameState, action: Action) -> ValidationResult:
    agreement_id = action.payload.get("agreement_id")
    if get_agreement(state, agreement_id) is None:
        return _invalid(UNKNOWN_AGREEMENT, f"Unknown agreement: {agreement_id}")
    return ValidationResult(True)


def _always_valid(state: GameState, action: Action) -> ValidationResult:
    return ValidationResult(True)


_VALIDATORS = {
    "create_country": _validate_create_country,
    "delete_country": _validate_delete_country,
    "create_company": _validate_create_company,
    "delete_company": _validate_delete_company,
    "set_colonization_disabled": _validate_set_colonization_disabled,
    "start_colonization": _validate_start_colonization,
    "cancel_colonization": _validate_cancel_colonization,
    "start_construction": _validate_start_construction,
    "cancel_construction": _validate_cancel_construction,
    "demolish_building": _validate_demolish_building,
    "end_turn": _validate_end_turn,
    "propose_agreement": _validate_propose_agreement,
    "accept_proposal": _validate_accept_proposal,
    "decline_proposal": _validate_decline_proposal,
    "withdraw_proposal": _validate_withdraw_proposal,
    "delete_agreement": _validate_delete_agreement,
    "clear_event_log": _always_valid,
    "trim_event_log": _always_valid,
}


def get_available_action_types() -> list[str]:
    """All action types the reducer understands."""
    return list(_VALIDATORS.keys())


# ===== UI Queries =====

def get_buildable_buildings(
    state: GameState,
    province_id: str,
    country_id: str,
    company_id: str | None = None,
) -> list[dict[str, Any]]:
    """
    Every building with its construction verdict in a province, for the construction panel.
    Returns [{ building_id, name, cost, accepted, reason, agreement_id }, ...] in catalog order;
    agreement_id names the agreement admitting an accepted foreign construction.
    """
    owner = Owner.company(company_id) if company_id else Owner.state(country_id)
    out = []
    for building_id, definition in state.buildings.items():
        result = check_construction(state, province_id, building_id, owner)
        out.append({
            "building_id": building_id,
            "name": definition.name,
            "cost": definition.cost,
            "accepted": result.accepted,
            "reason": result.reason,
            "agreement_id": get_granting_agreement_id(state, province_id, building_id, owner)
            if result.accepted else None,
        })
    return out


def get_granting_agreement_id(
    state: GameState,
    province_id: str,
    building_id: str,
    owner: Owner,
) -> str | None:
    """Id of the agreement that would admit this foreign construction, if any."""
    province = state.provinces.get(province_id)
    if province is None:
        return None
    agreement = find_agreement(state, province, owner, building_id)
    return agreement.id if agreement else None


def get_colonization_targets(state: GameState, country_id: str) -> list[str]:
    """Provinces the country could start colonizing now."""
    return [
        pid for pid, p in state.provinces.items()
        if p.owner_country_id is None
        and not p.colonization_disabled
        and country_id not in p.colonization_progress
    ]


def get_construction_queue(state: GameState, country_id: str) -> list[dict[str, Any]]:
    """In-flight construction funded by the country (entries in provinces it owns)."""
    out = []
    for pid, province in state.provinces.items():
        if province.owner_country_id != country_id:
            continue
        definitions = state.buildings
        for building_id, entries in province.construction_progress.items():
            cost = definitions[building_id].cost if building_id in definitions else None
            for entry in entries:
                out.append({
                    "province_id": pid,
                    "building_id": building_id,
                    "progress": entry.progress,
                    "cost": cost,
                    "owner": entry.owner.to_dict(),
                })
    return out


def get_country_proposals(state: GameState, country_id: str) -> dict[str, list[dict[str, Any]]]:
    """Proposals sent by / awaiting a country (renewals count for every target)."""
    incoming = []
    outgoing = []
    for proposal in state.proposals:
        if proposal.from_country_id == country_id and proposal.kind != PROPOSAL_RENEWAL:
            outgoing.append(proposal.to_dict())
        elif proposal.kind == PROPOSAL_RENEWAL:
            if country_id in renewal_targets(proposal) and country_id not in proposal.approvals:
                incoming.append(proposal.to_dict())
        elif proposal.to_country_id == country_id:
            incoming.append(proposal.to_dict())
    return {"incoming": incoming, "outgoing": outgoing}


def get_country_agreements(state: GameState, country_id: str) -> list[dict[str, Any]]:
    """Active agreements where the country is host or guest."""
    return [
        a.to_dict() for a in state.agreements
        if country_id in (a.host_country_id, a.guest_country_id)
        and is_agreement_active(a, state.turn)
    ]


def get_game_summary(state: GameState) -> dict[str, Any]:
    """
    Get a summary of the current game state for UI display.
    """
    province_counts: dict[str, int] = {}
    for province in state.provinces.values():
        if province.owner_country_id:
            province_counts[province.owner_country_id] = province_counts.get(province.owner_country_id, 0) + 1

    building_counts: dict[str, int] = {}
    for province in state.provinces.values():
        for instance in province.buildings_built:
            country_id = owner_country_id(state, instance.owner)
            if country_id:
                building_counts[country_id] = building_counts.get(country_id, 0) + 1

    return {
        "turn": state.turn,
        "active_country_id": state.active_country_id,
        "countries": [
            {
                "id": c.id,
                "name": c.name,
                "colonization_points": c.colonization_points,
                "construction_points": c.construction_points,
                "provinces": province_counts.get(c.id, 0),
                "buildings": building_counts.get(c.id, 0),
            }
            for c in state.countries
        ],
        "agreements": len(state.agreements),
        "proposals": len(state.proposals),
    }
