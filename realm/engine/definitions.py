"""
Static definitions for buildings, industries and their placement requirements.
Setup data lives under data/setups/<setup_id>/: setup.json (countries, provinces, catalogs, settings)
and optional manifest.json (display_name).

from_dict is the normalization boundary for building requirements: legacy shapes (flat trait
criteria, single trait ids, flat dependency lists, numeric resource maps) are converted into the
single structured shape (a logic tree and a dependency map) before the engine ever sees them.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from realm.engine import DEFAULT_BUILDING_COST

DATA_DIR = Path(__file__).parent.parent / "data"
SETUPS_DIR = DATA_DIR / "setups"

TRAIT_CATEGORIES = ("climate", "landscape", "culture", "religion")
LOGIC_OPS = ("and", "or", "not", "xor", "nand", "nor", "implies", "eq")
OWNER_LIST_MODES = ("allow", "deny")


def _default_setup_id() -> str:
    """Single place for default: realm.config.DEFAULT_SETUP_ID."""
    from realm.config import DEFAULT_SETUP_ID
    return DEFAULT_SETUP_ID


def _setup_dir(setup_id: str) -> Path:
    return SETUPS_DIR / setup_id


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(x) for x in value if x is not None]


def _optional_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def list_setups() -> list[dict]:
    """Return [{ id, display_name }, ...] for all setups (subdirs of data/setups/ with setup.json)."""
    out = []
    if not SETUPS_DIR.exists():
        return out
    for d in sorted(SETUPS_DIR.iterdir()):
        if not d.is_dir():
            continue
        setup_id = d.name
        if not (d / "setup.json").exists():
            continue
        manifest_path = d / "manifest.json"
        if manifest_path.exists():
            try:
                with open(manifest_path, "r") as f:
                    m = json.load(f)
                out.append({
                    "id": m.get("id", setup_id),
                    "display_name": m.get("display_name", setup_id),
                })
            except (json.JSONDecodeError, OSError):
                out.append({"id": setup_id, "display_name": setup_id})
        else:
            out.append({"id": setup_id, "display_name": setup_id})
    return out


def load_setup(setup_id: str | None = None) -> dict:
    """Load setup by id (default setup when None). Returns { id, display_name, setup }.
    All data read from data/setups/<setup_id>/.
    """
    if setup_id is None:
        setup_id = _default_setup_id()
    setup_dir = _setup_dir(setup_id)
    if not setup_dir.exists() or not setup_dir.is_dir():
        raise FileNotFoundError(f"Setup not found: {setup_id}")
    setup_path = setup_dir / "setup.json"
    if not setup_path.exists():
        raise FileNotFoundError(f"setup.json not found in setup: {setup_id}")
    with open(setup_path, "r") as f:
        setup = json.load(f)
    result = {"id": setup_id, "display_name": setup_id, "setup": setup}
    manifest_path = setup_dir / "manifest.json"
    if manifest_path.exists():
        try:
            with open(manifest_path, "r") as f:
                m = json.load(f)
            result["id"] = m.get("id", setup_id)
            result["display_name"] = m.get("display_name", setup_id)
        except (json.JSONDecodeError, OSError):
            pass
    return result


# ===== Requirement Nodes =====

@dataclass
class TraitNode:
    """Leaf predicate: the province's trait for `category` equals `id`."""
    category: str  # "climate", "landscape", "culture", "religion"
    id: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "trait", "category": self.category, "id": self.id}


@dataclass
class GroupNode:
    """Boolean combinator over child nodes."""
    op: str  # one of LOGIC_OPS
    children: list["RequirementNode"] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "group",
            "op": self.op,
            "children": [c.to_dict() for c in self.children],
        }


RequirementNode = Union[TraitNode, GroupNode]


def requirement_node_from_dict(data: Any) -> Optional[RequirementNode]:
    """Parse a requirement node; returns None for anything that is not a node."""
    if not isinstance(data, dict):
        return None
    if data.get("type") == "trait" or ("category" in data and "op" not in data):
        category = str(data.get("category") or "")
        trait_id = data.get("id")
        if not category or trait_id is None:
            return None
        return TraitNode(category=category, id=str(trait_id))
    op = str(data.get("op") or "and").lower()
    raw_children = data.get("children")
    if not isinstance(raw_children, list):
        raw_children = []
    children = []
    for raw in raw_children:
        child = requirement_node_from_dict(raw)
        if child is not None:
            children.append(child)
    return GroupNode(op=op, children=children)


# ===== Requirement Parts =====

@dataclass
class TraitCriteria:
    """anyOf / noneOf id lists."""
    any_of: list[str] = field(default_factory=list)
    none_of: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.any_of and not self.none_of

    def to_dict(self) -> dict[str, Any]:
        return {"any_of": list(self.any_of), "none_of": list(self.none_of)}

    @classmethod
    def from_value(cls, value: Any, legacy_id: Any = None) -> "TraitCriteria":
        if isinstance(value, dict):
            if "any_of" in value:
                any_of = _str_list(value.get("any_of"))
            else:
                any_of = [str(legacy_id)] if legacy_id else []
            return cls(any_of=any_of, none_of=_str_list(value.get("none_of")))
        return cls(any_of=[str(legacy_id)] if legacy_id else [])


@dataclass
class Bounds:
    """Inclusive min/max; an absent bound is unconstrained."""
    min: float | None = None
    max: float | None = None

    def contains(self, value: float) -> bool:
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value > self.max:
            return False
        return True

    def to_dict(self) -> dict[str, Any]:
        out = {}
        if self.min is not None:
            out["min"] = self.min
        if self.max is not None:
            out["max"] = self.max
        return out

    @classmethod
    def from_dict(cls, data: Any) -> Optional["Bounds"]:
        if not isinstance(data, dict):
            return None
        return cls(min=_optional_float(data.get("min")), max=_optional_float(data.get("max")))


@dataclass
class DependencyConstraint:
    """Counts of a dependency building required in this province / the owner's country / the world."""
    province: Bounds | None = None
    country: Bounds | None = None
    global_: Bounds | None = None

    def to_dict(self) -> dict[str, Any]:
        out = {}
        if self.province is not None:
            out["province"] = self.province.to_dict()
        if self.country is not None:
            out["country"] = self.country.to_dict()
        if self.global_ is not None:
            out["global"] = self.global_.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: Any) -> "DependencyConstraint":
        if not isinstance(data, dict):
            return cls()
        # Legacy: a bare {min, max} constrains the province count
        if not any(k in data for k in ("province", "country", "global")):
            return cls(province=Bounds.from_dict(data))
        return cls(
            province=Bounds.from_dict(data.get("province")),
            country=Bounds.from_dict(data.get("country")),
            global_=Bounds.from_dict(data.get("global")),
        )


def _flat_traits_to_logic(data: dict[str, Any]) -> Optional[RequirementNode]:
    """
    Convert flat per-category criteria into an equivalent logic tree:
    and(or(anyOf traits), nor(noneOf traits)) for every category, empty parts omitted.
    """
    parts: list[RequirementNode] = []
    for category in TRAIT_CATEGORIES:
        criteria = TraitCriteria.from_value(data.get(category), data.get(f"{category}_id"))
        if criteria.any_of:
            parts.append(GroupNode("or", [TraitNode(category, i) for i in criteria.any_of]))
        if criteria.none_of:
            parts.append(GroupNode("nor", [TraitNode(category, i) for i in criteria.none_of]))
    if not parts:
        return None
    return GroupNode("and", parts)


def _resources_from_value(value: Any) -> TraitCriteria | None:
    if not isinstance(value, dict):
        return None
    if "any_of" in value or "none_of" in value:
        return TraitCriteria(
            any_of=_str_list(value.get("any_of")),
            none_of=_str_list(value.get("none_of")),
        )
    # Legacy: {resource_id: required_amount}
    required = []
    for resource_id, amount in value.items():
        number = _optional_float(amount)
        if number is not None and number > 0:
            required.append(str(resource_id))
    return TraitCriteria(any_of=required)


@dataclass
class BuildingRequirements:
    """Placement requirements of a building type (normalized shape)."""
    logic: Optional[RequirementNode] = None
    resources: TraitCriteria | None = None
    radiation: Bounds | None = None
    pollution: Bounds | None = None
    allowed_countries: list[str] | None = None
    allowed_countries_mode: str = "allow"
    allowed_companies: list[str] | None = None
    allowed_companies_mode: str = "allow"
    # dependency building_id -> constraint
    buildings: dict[str, DependencyConstraint] = field(default_factory=dict)
    max_per_province: int | None = None
    max_per_country: int | None = None
    max_global: int | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.logic is not None:
            out["logic"] = self.logic.to_dict()
        if self.resources is not None:
            out["resources"] = self.resources.to_dict()
        if self.radiation is not None:
            out["radiation"] = self.radiation.to_dict()
        if self.pollution is not None:
            out["pollution"] = self.pollution.to_dict()
        if self.allowed_countries is not None:
            out["allowed_countries"] = list(self.allowed_countries)
            out["allowed_countries_mode"] = self.allowed_countries_mode
        if self.allowed_companies is not None:
            out["allowed_companies"] = list(self.allowed_companies)
            out["allowed_companies_mode"] = self.allowed_companies_mode
        if self.buildings:
            out["buildings"] = {k: v.to_dict() for k, v in self.buildings.items()}
        for key in ("max_per_province", "max_per_country", "max_global"):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        return out

    @classmethod
    def from_dict(cls, data: Any) -> "BuildingRequirements":
        if not isinstance(data, dict):
            return cls()

        # A logic tree supersedes the flat trait criteria
        logic = requirement_node_from_dict(data.get("logic"))
        if logic is None:
            logic = _flat_traits_to_logic(data)

        # Structured dependency map takes priority over the flat list
        buildings: dict[str, DependencyConstraint] = {}
        raw_buildings = data.get("buildings")
        if isinstance(raw_buildings, dict):
            for dep_id, constraint in raw_buildings.items():
                buildings[str(dep_id)] = DependencyConstraint.from_dict(constraint)
        else:
            for dep_id in _str_list(data.get("dependencies")):
                buildings[dep_id] = DependencyConstraint(province=Bounds(min=1))

        countries_mode = data.get("allowed_countries_mode")
        companies_mode = data.get("allowed_companies_mode")
        return cls(
            logic=logic,
            resources=_resources_from_value(data.get("resources")),
            radiation=Bounds.from_dict(data.get("radiation")),
            pollution=Bounds.from_dict(data.get("pollution")),
            allowed_countries=_str_list(data["allowed_countries"])
            if isinstance(data.get("allowed_countries"), list) else None,
            allowed_countries_mode=countries_mode if countries_mode in OWNER_LIST_MODES else "allow",
            allowed_companies=_str_list(data["allowed_companies"])
            if isinstance(data.get("allowed_companies"), list) else None,
            allowed_companies_mode=companies_mode if companies_mode in OWNER_LIST_MODES else "allow",
            buildings=buildings,
            max_per_province=_optional_int(data.get("max_per_province")),
            max_per_country=_optional_int(data.get("max_per_country")),
            max_global=_optional_int(data.get("max_global")),
        )


@dataclass
class BuildingDefinition:
    """Defines immutable properties of a building type."""
    id: str
    name: str
    cost: float = DEFAULT_BUILDING_COST  # construction points to complete one instance
    industry_id: Optional[str] = None
    requirements: BuildingRequirements = field(default_factory=BuildingRequirements)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "cost": self.cost,
            "industry_id": self.industry_id,
            "requirements": self.requirements.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BuildingDefinition":
        if not isinstance(data, dict):
            data = {}
        cost = _optional_float(data.get("cost"))
        building_id = str(data.get("id") or "")
        return cls(
            id=building_id,
            name=str(data.get("name") or building_id),
            cost=cost if cost is not None and cost > 0 else DEFAULT_BUILDING_COST,
            industry_id=str(data["industry_id"]) if data.get("industry_id") else None,
            requirements=BuildingRequirements.from_dict(data.get("requirements")),
        )


@dataclass
class Industry:
    """An industry a building may belong to (used by agreement industry filters)."""
    id: str
    name: str
    color: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "color": self.color}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Industry":
        if not isinstance(data, dict):
            data = {}
        industry_id = str(data.get("id") or "")
        return cls(
            id=industry_id,
            name=str(data.get("name") or industry_id),
            color=data.get("color") if isinstance(data.get("color"), str) else None,
        )
