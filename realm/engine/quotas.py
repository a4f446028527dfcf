"""
Quota counting over the province collection.
Counts are derived on demand from live state (built instances plus in-flight construction),
never cached.
"""

from typing import Iterable

from realm.engine.state import (
    DiplomacyAgreement,
    GameState,
    Owner,
    Province,
)

SCOPE_PROVINCE = "province"
SCOPE_COUNTRY = "country"
SCOPE_GLOBAL = "global"


def owner_country_id(state: GameState, owner: Owner) -> str | None:
    """Country an owner belongs to: the state itself, or the company's parent country."""
    if owner.is_company:
        company = state.companies.get(owner.company_id or "")
        return company.country_id if company else None
    return owner.country_id


def _items(province: Province, building_id: str, include_in_progress: bool):
    for instance in province.buildings_built:
        if instance.building_id == building_id:
            yield instance.owner
    if include_in_progress:
        for entry in province.construction_progress.get(building_id, []):
            yield entry.owner


def count_building(
    state: GameState,
    building_id: str,
    scope: str,
    province_id: str | None = None,
    country_id: str | None = None,
    include_in_progress: bool = True,
) -> int:
    """
    Count instances of a building in scope:
    - province: in province_id only
    - country: in all provinces, owner resolves to country_id
    - global: in all provinces, any owner
    include_in_progress=False counts built instances only.
    """
    if scope == SCOPE_PROVINCE:
        province = state.provinces.get(province_id or "")
        if province is None:
            return 0
        return sum(1 for _ in _items(province, building_id, include_in_progress))

    total = 0
    for province in state.provinces.values():
        for owner in _items(province, building_id, include_in_progress):
            if scope == SCOPE_GLOBAL:
                total += 1
            elif owner_country_id(state, owner) == country_id and country_id is not None:
                total += 1
    return total


def agreement_allows_owner(agreement: DiplomacyAgreement, owner: Owner) -> bool:
    if owner.is_company:
        if not agreement.allows_companies():
            return False
        return not agreement.company_ids or owner.company_id in agreement.company_ids
    return agreement.allows_state()


def agreement_allows_building(state: GameState, agreement: DiplomacyAgreement, building_id: str) -> bool:
    if agreement.building_ids and building_id not in agreement.building_ids:
        return False
    if agreement.industries:
        definition = state.buildings.get(building_id)
        industry_id = definition.industry_id if definition else None
        if industry_id is None or industry_id not in agreement.industries:
            return False
    return True


def count_agreement_entries(
    state: GameState,
    agreement: DiplomacyAgreement,
    provinces: Iterable[Province],
    requester_country_id: str,
) -> int:
    """
    Count built instances and in-flight entries in the given provinces that fall under an
    agreement for the requesting country: the owner resolves to the requester and passes the
    agreement's owner-type/company filter, and the province, building and industry are allowed.
    """
    total = 0
    for province in provinces:
        if agreement.province_ids and province.id not in agreement.province_ids:
            continue
        items: list[tuple[str, Owner]] = [
            (b.building_id, b.owner) for b in province.buildings_built
        ]
        for building_id, entries in province.construction_progress.items():
            items.extend((building_id, e.owner) for e in entries)
        for building_id, owner in items:
            if owner_country_id(state, owner) != requester_country_id:
                continue
            if not agreement_allows_owner(agreement, owner):
                continue
            if not agreement_allows_building(state, agreement, building_id):
                continue
            total += 1
    return total


def limit_reached(limit: int | None, count: int) -> bool:
    """0 or None means unlimited; a positive limit is reached once count >= limit."""
    return bool(limit) and limit > 0 and count >= limit
