"""
Construction eligibility: the single admit/reject decision for starting a building.

Gates run in a fixed order and the first failing gate decides the reason code.
The gate only reads state; callers mutate on acceptance.
"""

from dataclasses import dataclass

from realm.engine.definitions import BuildingRequirements
from realm.engine.diplomacy import can_build
from realm.engine.quotas import (
    SCOPE_COUNTRY,
    SCOPE_GLOBAL,
    SCOPE_PROVINCE,
    count_building,
    limit_reached,
    owner_country_id,
)
from realm.engine.requirements import evaluate_requirement
from realm.engine.state import GameState, Owner, Province

# Reason codes
UNKNOWN_PROVINCE = "unknown_province"
UNKNOWN_BUILDING = "unknown_building"
UNOWNED_PROVINCE = "unowned_province"
NO_DIPLOMATIC_ACCESS = "no_diplomatic_access"
MAX_PER_PROVINCE = "max_per_province"
MAX_PER_COUNTRY = "max_per_country"
MAX_GLOBAL = "max_global"
TRAIT_REQUIREMENTS = "trait_requirements"
RESOURCE_REQUIREMENTS = "resource_requirements"
RADIATION = "radiation"
POLLUTION = "pollution"
OWNER_NOT_ALLOWED = "owner_not_allowed"
BUILDING_DEPENDENCIES = "building_dependencies"

REASON_MESSAGES = {
    UNKNOWN_PROVINCE: "Province does not exist",
    UNKNOWN_BUILDING: "Building does not exist",
    UNOWNED_PROVINCE: "Cannot build in an unowned province",
    NO_DIPLOMATIC_ACCESS: "No diplomatic agreement allows building here",
    MAX_PER_PROVINCE: "Province limit for this building reached",
    MAX_PER_COUNTRY: "Country limit for this building reached",
    MAX_GLOBAL: "World limit for this building reached",
    TRAIT_REQUIREMENTS: "Province traits do not meet the building requirements",
    RESOURCE_REQUIREMENTS: "Province resources do not meet the building requirements",
    RADIATION: "Province radiation is out of the allowed range",
    POLLUTION: "Province pollution is out of the allowed range",
    OWNER_NOT_ALLOWED: "This owner may not build this building",
    BUILDING_DEPENDENCIES: "Required buildings are missing",
}


@dataclass
class EligibilityResult:
    """Outcome of the construction gate: accepted, or the first failing reason."""
    accepted: bool
    reason: str | None = None

    @property
    def message(self) -> str | None:
        if self.reason is None:
            return None
        return REASON_MESSAGES.get(self.reason, self.reason)


def _reject(reason: str) -> EligibilityResult:
    return EligibilityResult(accepted=False, reason=reason)


def _check_caps(
    state: GameState,
    province: Province,
    building_id: str,
    owner: Owner,
    req: BuildingRequirements,
) -> str | None:
    if limit_reached(req.max_per_province, count_building(
        state, building_id, SCOPE_PROVINCE, province_id=province.id,
    )):
        return MAX_PER_PROVINCE
    if req.max_per_country and req.max_per_country > 0:
        country_id = owner_country_id(state, owner)
        # Unresolvable owner countries are not capped per country
        if country_id is not None and limit_reached(req.max_per_country, count_building(
            state, building_id, SCOPE_COUNTRY, country_id=country_id,
        )):
            return MAX_PER_COUNTRY
    if limit_reached(req.max_global, count_building(state, building_id, SCOPE_GLOBAL)):
        return MAX_GLOBAL
    return None


def _resources_ok(province: Province, req: BuildingRequirements) -> bool:
    if req.resources is None:
        return True
    amounts = province.resource_amounts
    if req.resources.any_of and not all(amounts.get(r, 0) > 0 for r in req.resources.any_of):
        return False
    if req.resources.none_of and any(amounts.get(r, 0) > 0 for r in req.resources.none_of):
        return False
    return True


def _owner_list_ok(ids: list[str] | None, mode: str, owner_id: str | None) -> bool:
    items = ids or []
    if not items:
        # An empty allow-list admits nobody; an empty deny-list is inert
        return mode != "allow"
    included = owner_id in items
    if mode == "deny":
        return not included
    return included


def _owner_allowed(owner: Owner, req: BuildingRequirements) -> bool:
    # Each list only applies to its own owner variant
    if owner.is_company:
        if req.allowed_companies is None:
            return True
        return _owner_list_ok(req.allowed_companies, req.allowed_companies_mode, owner.company_id)
    if req.allowed_countries is None:
        return True
    return _owner_list_ok(req.allowed_countries, req.allowed_countries_mode, owner.country_id)


def _dependencies_ok(
    state: GameState,
    province: Province,
    owner: Owner,
    req: BuildingRequirements,
) -> bool:
    if not req.buildings:
        return True
    country_id = owner_country_id(state, owner)
    for dep_id, constraint in req.buildings.items():
        # Dependencies count completed buildings only
        if constraint.province is not None:
            count = count_building(
                state, dep_id, SCOPE_PROVINCE, province_id=province.id, include_in_progress=False,
            )
            if not constraint.province.contains(count):
                return False
        if constraint.country is not None:
            count = 0
            if country_id is not None:
                count = count_building(
                    state, dep_id, SCOPE_COUNTRY, country_id=country_id, include_in_progress=False,
                )
            if not constraint.country.contains(count):
                return False
        if constraint.global_ is not None:
            count = count_building(state, dep_id, SCOPE_GLOBAL, include_in_progress=False)
            if not constraint.global_.contains(count):
                return False
    return True


def check_construction(
    state: GameState,
    province_id: str,
    building_id: str,
    owner: Owner,
) -> EligibilityResult:
    """
    Decide whether `owner` may start `building_id` in `province_id`.

    Order: ownership, diplomacy, per-province cap, per-country cap, global cap,
    trait logic, resources, radiation, pollution, owner allow/deny, dependencies.
    """
    province = state.provinces.get(province_id)
    if province is None:
        return _reject(UNKNOWN_PROVINCE)
    building = state.buildings.get(building_id)
    if building is None:
        return _reject(UNKNOWN_BUILDING)
    if province.owner_country_id is None:
        return _reject(UNOWNED_PROVINCE)
    if not can_build(state, province, owner, building_id):
        return _reject(NO_DIPLOMATIC_ACCESS)

    req = building.requirements
    cap_reason = _check_caps(state, province, building_id, owner, req)
    if cap_reason is not None:
        return _reject(cap_reason)
    if not evaluate_requirement(req.logic, province):
        return _reject(TRAIT_REQUIREMENTS)
    if not _resources_ok(province, req):
        return _reject(RESOURCE_REQUIREMENTS)
    if req.radiation is not None and not req.radiation.contains(province.radiation):
        return _reject(RADIATION)
    if req.pollution is not None and not req.pollution.contains(province.pollution):
        return _reject(POLLUTION)
    if not _owner_allowed(owner, req):
        return _reject(OWNER_NOT_ALLOWED)
    if not _dependencies_ok(state, province, owner, req):
        return _reject(BUILDING_DEPENDENCIES)
    return EligibilityResult(accepted=True)
