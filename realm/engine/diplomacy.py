"""
Diplomacy access: whether an owner may build in a province owned by another country.
"""

from realm.engine.quotas import (
    agreement_allows_building,
    agreement_allows_owner,
    count_agreement_entries,
    limit_reached,
    owner_country_id,
)
from realm.engine.state import DiplomacyAgreement, GameState, Owner, Province


def is_agreement_active(agreement: DiplomacyAgreement, turn: int) -> bool:
    """Agreements without a positive duration or a start turn never lapse."""
    if not agreement.duration_turns or agreement.duration_turns <= 0:
        return True
    if agreement.start_turn is None:
        return True
    return turn - agreement.start_turn < agreement.duration_turns


def active_agreements(state: GameState, host_country_id: str, guest_country_id: str) -> list[DiplomacyAgreement]:
    """Active agreements from host to guest, in list order."""
    return [
        a for a in state.agreements
        if a.host_country_id == host_country_id
        and a.guest_country_id == guest_country_id
        and is_agreement_active(a, state.turn)
    ]


def _limits_exhausted(
    state: GameState,
    agreement: DiplomacyAgreement,
    province: Province,
    requester_country_id: str,
) -> bool:
    limits = agreement.limits
    if limits.per_province > 0:
        count = count_agreement_entries(state, agreement, [province], requester_country_id)
        if limit_reached(limits.per_province, count):
            return True
    if limits.per_country > 0:
        host_provinces = [
            p for p in state.provinces.values()
            if p.owner_country_id == agreement.host_country_id
        ]
        count = count_agreement_entries(state, agreement, host_provinces, requester_country_id)
        if limit_reached(limits.per_country, count):
            return True
    if limits.global_ > 0:
        count = count_agreement_entries(
            state, agreement, state.provinces.values(), requester_country_id
        )
        if limit_reached(limits.global_, count):
            return True
    return False


def agreement_grants(
    state: GameState,
    agreement: DiplomacyAgreement,
    province: Province,
    owner: Owner,
    building_id: str,
    requester_country_id: str,
) -> bool:
    """Whether a single agreement admits this owner/province/building with quota to spare."""
    if not agreement_allows_owner(agreement, owner):
        return False
    if agreement.province_ids and province.id not in agreement.province_ids:
        return False
    if not agreement_allows_building(state, agreement, building_id):
        return False
    return not _limits_exhausted(state, agreement, province, requester_country_id)


def find_agreement(
    state: GameState,
    province: Province,
    owner: Owner,
    building_id: str,
) -> DiplomacyAgreement | None:
    """First active agreement (list order) granting access; None when none does."""
    host = province.owner_country_id
    guest = owner_country_id(state, owner)
    if host is None or guest is None:
        return None
    for agreement in active_agreements(state, host, guest):
        if agreement_grants(state, agreement, province, owner, building_id, guest):
            return agreement
    return None


def can_build(state: GameState, province: Province, owner: Owner, building_id: str) -> bool:
    """
    Diplomatic access for building in a province.

    Unowned provinces are closed to everyone. The province owner's own state and companies
    always have access; anyone else needs an active agreement from the owner that covers
    the owner type, province, building and industry with quota remaining.
    """
    host = province.owner_country_id
    if host is None:
        return False
    country_id = owner_country_id(state, owner)
    if country_id is None:
        return False
    if country_id == host:
        return True
    return find_agreement(state, province, owner, building_id) is not None
