"""
Utility functions for game setup and debugging.
"""

from collections import Counter
from typing import Any

from realm.engine.definitions import load_setup
from realm.engine.quotas import owner_country_id
from realm.engine.state import GameSettings, GameState


def initialize_game_state(setup: dict[str, Any]) -> GameState:
    """
    Create an initial game state from a setup document.

    Args:
        setup: Scenario configuration:
            {
                "settings": {...GameSettings fields...},
                "countries": [{"id": str, "name": str, "color": str}, ...],
                "provinces": {"province_id": {...Province fields...}, ...},
                "buildings": [{...BuildingDefinition fields...}, ...],
                "industries": [{"id": str, "name": str}, ...],
                "companies": [{"id": str, "name": str, "country_id": str}, ...],
                "agreements": [{...DiplomacyAgreement fields...}, ...]
            }
            Countries without explicit points start with the configured starting points.
            The first country is active.
    """
    data = dict(setup or {})
    settings = GameSettings.from_dict(data.get("settings"))

    countries = []
    for raw in data.get("countries") or []:
        if not isinstance(raw, dict):
            continue
        country = dict(raw)
        country.setdefault("colonization_points", settings.starting_colonization_points)
        country.setdefault("construction_points", settings.starting_construction_points)
        countries.append(country)
    data["countries"] = countries
    data.setdefault("turn", 1)

    state = GameState.from_dict(data)
    if state.get_country(state.active_country_id) is None:
        state.active_country_id = state.countries[0].id if state.countries else None
    return state


def create_game_from_setup(setup_id: str | None = None) -> tuple[GameState, dict[str, Any]]:
    """Load a bundled setup and build its initial state. Returns (state, setup_info)."""
    info = load_setup(setup_id)
    return initialize_game_state(info["setup"]), {"id": info["id"], "display_name": info["display_name"]}


def print_game_state(state: GameState, verbose: bool = False):
    """
    Pretty-print the current game state.

    Args:
        state: Current game state
        verbose: If True, show in-flight construction progress per entry
    """
    print(f"\n{'='*60}")
    print(f"Turn {state.turn} | Active country: {state.active_country_id}")
    print(f"{'='*60}")

    for country in state.countries:
        print(
            f"{country.name} ({country.id}): colonization={country.colonization_points:g}, "
            f"construction={country.construction_points:g}"
        )

    for province_id in sorted(state.provinces.keys()):
        province = state.provinces[province_id]
        owner_str = province.owner_country_id or "unowned"
        print(f"\n{province_id} (Owner: {owner_str})")

        if province.colonization_progress:
            for country_id, progress in sorted(province.colonization_progress.items()):
                print(f"  ~ colonizing {country_id}: {progress:g}/{province.colonization_cost:g}")

        if province.buildings_built:
            built_counts = Counter(
                (b.building_id, owner_country_id(state, b.owner)) for b in province.buildings_built
            )
            for (building_id, country_id), count in sorted(built_counts.items(), key=lambda kv: kv[0][0]):
                print(f"  - {building_id} x{count} ({country_id or 'unassigned'})")

        for building_id, entries in sorted(province.construction_progress.items()):
            if verbose:
                for entry in entries:
                    print(f"  + {building_id}: {entry.progress:g} ({entry.owner.to_dict()})")
            else:
                print(f"  + {building_id}: {len(entries)} in progress")

    if state.agreements:
        print("\nAgreements:")
        for agreement in state.agreements:
            print(f"  {agreement.id}: {agreement.host_country_id} -> {agreement.guest_country_id}")
    if state.proposals:
        print("\nProposals:")
        for proposal in state.proposals:
            print(
                f"  {proposal.id} [{proposal.kind}]: {proposal.from_country_id} -> "
                f"{proposal.to_country_id} (turn {proposal.created_turn})"
            )
