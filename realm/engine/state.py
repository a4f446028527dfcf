"""
Game state representation.
All state is immutable from the engine's point of view; mutations return new state copies.
Includes JSON serialization for save/load functionality.

from_dict is where older save shapes are normalized (plain building id lists, numeric
construction progress, owners missing their country), so nothing past this module
needs to know about them.
"""

import json
from dataclasses import dataclass, field
from copy import deepcopy
from typing import Any

from realm.engine import DEFAULT_COLONIZATION_COST, MAX_LOG_ENTRIES
from realm.engine.definitions import TRAIT_CATEGORIES, BuildingDefinition, Industry

OWNER_STATE = "state"
OWNER_COMPANY = "company"


def _ensure_str_list(value: Any) -> list[str]:
    """Ensure value is a list of strings (allow-lists, approvals from DB)."""
    if value is None:
        return []
    if isinstance(value, list):
        return [str(x) for x in value if x is not None]
    return []


def _float(value: Any, default: float) -> float:
    try:
        return float(value) if value is not None else default
    except (TypeError, ValueError):
        return default


def _int(value: Any, default: int) -> int:
    try:
        return int(value) if value is not None else default
    except (TypeError, ValueError):
        return default


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


@dataclass
class Owner:
    """Who owns a building instance or construction entry: a country (state) or a company."""
    type: str  # "state" or "company"
    country_id: str | None = None
    company_id: str | None = None

    @classmethod
    def state(cls, country_id: str | None) -> "Owner":
        return cls(type=OWNER_STATE, country_id=country_id)

    @classmethod
    def company(cls, company_id: str) -> "Owner":
        return cls(type=OWNER_COMPANY, company_id=company_id)

    @property
    def is_company(self) -> bool:
        return self.type == OWNER_COMPANY

    def to_dict(self) -> dict[str, Any]:
        if self.is_company:
            return {"type": OWNER_COMPANY, "company_id": self.company_id}
        return {"type": OWNER_STATE, "country_id": self.country_id}

    @classmethod
    def from_dict(cls, data: Any, fallback_country_id: str | None = None) -> "Owner":
        """Parse an owner; state owners without a country fall back to the province owner."""
        if not isinstance(data, dict):
            return cls.state(fallback_country_id)
        if data.get("type") == OWNER_COMPANY and data.get("company_id"):
            return cls.company(str(data["company_id"]))
        return cls.state(_optional_str(data.get("country_id")) or fallback_country_id)


@dataclass
class BuildingInstance:
    """A completed building in a province."""
    building_id: str
    owner: Owner

    def to_dict(self) -> dict[str, Any]:
        return {"building_id": self.building_id, "owner": self.owner.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any], fallback_country_id: str | None = None) -> "BuildingInstance":
        if not isinstance(data, dict):
            data = {}
        return cls(
            building_id=str(data.get("building_id") or ""),
            owner=Owner.from_dict(data.get("owner"), fallback_country_id),
        )


@dataclass
class ConstructionEntry:
    """One in-flight construction of a building, accumulating construction points."""
    progress: float
    owner: Owner

    def to_dict(self) -> dict[str, Any]:
        return {"progress": self.progress, "owner": self.owner.to_dict()}

    @classmethod
    def from_dict(cls, data: Any, fallback_country_id: str | None = None) -> "ConstructionEntry":
        # Legacy: bare progress number
        if not isinstance(data, dict):
            return cls(progress=max(0.0, _float(data, 0.0)), owner=Owner.state(fallback_country_id))
        return cls(
            progress=max(0.0, _float(data.get("progress"), 0.0)),
            owner=Owner.from_dict(data.get("owner"), fallback_country_id),
        )


def _parse_buildings_built(value: Any, owner_country_id: str | None) -> list[BuildingInstance]:
    """
    Accepts owner-tagged instances, a list of building ids (legacy) or a
    building id -> count map (legacy). Legacy entries belong to the province owner.
    """
    out: list[BuildingInstance] = []
    if isinstance(value, dict):
        for building_id, count in value.items():
            for _ in range(max(0, _int(count, 0))):
                out.append(BuildingInstance(str(building_id), Owner.state(owner_country_id)))
        return out
    if not isinstance(value, list):
        return out
    for item in value:
        if isinstance(item, dict):
            instance = BuildingInstance.from_dict(item, owner_country_id)
            if instance.building_id:
                out.append(instance)
        elif item is not None:
            out.append(BuildingInstance(str(item), Owner.state(owner_country_id)))
    return out


def _parse_construction_progress(
    value: Any, owner_country_id: str | None
) -> dict[str, list[ConstructionEntry]]:
    """building_id -> entries; accepts a bare number or list of numbers per building (legacy)."""
    if not isinstance(value, dict):
        return {}
    out: dict[str, list[ConstructionEntry]] = {}
    for building_id, raw in value.items():
        items = raw if isinstance(raw, list) else [raw]
        entries = [
            ConstructionEntry.from_dict(item, owner_country_id)
            for item in items
            if item is not None
        ]
        if entries:
            out[str(building_id)] = entries
    return out


@dataclass
class Province:
    """Mutable state of a single province."""
    id: str
    owner_country_id: str | None = None
    climate_id: str | None = None
    landscape_id: str | None = None
    culture_id: str | None = None
    religion_id: str | None = None
    # resource_id -> amount (>= 0)
    resource_amounts: dict[str, float] = field(default_factory=dict)
    radiation: float = 0
    pollution: float = 0
    colonization_cost: float = DEFAULT_COLONIZATION_COST
    colonization_disabled: bool = False
    # country_id -> accumulated colonization points (only while unowned)
    colonization_progress: dict[str, float] = field(default_factory=dict)
    buildings_built: list[BuildingInstance] = field(default_factory=list)
    # building_id -> in-flight entries, in the order they were started
    construction_progress: dict[str, list[ConstructionEntry]] = field(default_factory=dict)

    def trait(self, category: str) -> str | None:
        """Province trait id for a requirement category (climate, landscape, culture, religion)."""
        if category not in TRAIT_CATEGORIES:
            return None
        return getattr(self, f"{category}_id", None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_country_id": self.owner_country_id,
            "climate_id": self.climate_id,
            "landscape_id": self.landscape_id,
            "culture_id": self.culture_id,
            "religion_id": self.religion_id,
            "resource_amounts": dict(self.resource_amounts),
            "radiation": self.radiation,
            "pollution": self.pollution,
            "colonization_cost": self.colonization_cost,
            "colonization_disabled": self.colonization_disabled,
            "colonization_progress": dict(self.colonization_progress),
            "buildings_built": [b.to_dict() for b in self.buildings_built],
            "construction_progress": {
                bid: [e.to_dict() for e in entries]
                for bid, entries in self.construction_progress.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], province_id: str | None = None) -> "Province":
        if not isinstance(data, dict):
            data = {}
        owner = _optional_str(data.get("owner_country_id"))
        resources = data.get("resource_amounts")
        if not isinstance(resources, dict):
            resources = {}
        progress = data.get("colonization_progress")
        if not isinstance(progress, dict) or owner is not None:
            # An owned province carries no colonization progress
            progress = {}
        cost = _float(data.get("colonization_cost"), DEFAULT_COLONIZATION_COST)
        return cls(
            id=str(data.get("id") or province_id or ""),
            owner_country_id=owner,
            climate_id=_optional_str(data.get("climate_id")),
            landscape_id=_optional_str(data.get("landscape_id")),
            culture_id=_optional_str(data.get("culture_id")),
            religion_id=_optional_str(data.get("religion_id")),
            resource_amounts={
                str(k): max(0.0, _float(v, 0.0)) for k, v in resources.items()
            },
            radiation=_float(data.get("radiation"), 0),
            pollution=_float(data.get("pollution"), 0),
            colonization_cost=cost if cost > 0 else DEFAULT_COLONIZATION_COST,
            colonization_disabled=bool(data.get("colonization_disabled", False)),
            colonization_progress={
                str(k): max(0.0, _float(v, 0.0)) for k, v in progress.items()
            },
            buildings_built=_parse_buildings_built(data.get("buildings_built"), owner),
            construction_progress=_parse_construction_progress(
                data.get("construction_progress"), owner
            ),
        )


@dataclass
class Country:
    """A player country with its per-turn point pools."""
    id: str
    name: str
    color: str = "#888888"
    colonization_points: float = 0
    construction_points: float = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "colonization_points": self.colonization_points,
            "construction_points": self.construction_points,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Country":
        if not isinstance(data, dict):
            data = {}
        country_id = str(data.get("id") or "")
        return cls(
            id=country_id,
            name=str(data.get("name") or country_id),
            color=str(data.get("color") or "#888888"),
            colonization_points=max(0.0, _float(data.get("colonization_points"), 0)),
            construction_points=max(0.0, _float(data.get("construction_points"), 0)),
        )


@dataclass
class Company:
    """A company belonging to a country; may own buildings."""
    id: str
    name: str
    country_id: str
    color: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "country_id": self.country_id, "color": self.color}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Company":
        if not isinstance(data, dict):
            data = {}
        company_id = str(data.get("id") or "")
        return cls(
            id=company_id,
            name=str(data.get("name") or company_id),
            country_id=str(data.get("country_id") or ""),
            color=data.get("color") if isinstance(data.get("color"), str) else None,
        )


@dataclass
class AgreementLimits:
    """Quota limits of an agreement; 0 means unlimited."""
    per_province: int = 0
    per_country: int = 0
    global_: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "per_province": self.per_province,
            "per_country": self.per_country,
            "global": self.global_,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "AgreementLimits":
        if not isinstance(data, dict):
            data = {}
        return cls(
            per_province=max(0, _int(data.get("per_province"), 0)),
            per_country=max(0, _int(data.get("per_country"), 0)),
            global_=max(0, _int(data.get("global"), 0)),
        )


@dataclass
class DiplomacyAgreement:
    """Grants the guest country (and optionally its companies) construction rights in the host's provinces."""
    id: str
    host_country_id: str
    guest_country_id: str
    kind: str = OWNER_STATE  # legacy single owner type, used when allow_* are absent
    allow_state: bool | None = None
    allow_companies: bool | None = None
    # Allow-lists; empty means all
    company_ids: list[str] = field(default_factory=list)
    building_ids: list[str] = field(default_factory=list)
    province_ids: list[str] = field(default_factory=list)
    industries: list[str] = field(default_factory=list)
    limits: AgreementLimits = field(default_factory=AgreementLimits)
    duration_turns: int | None = None
    start_turn: int | None = None
    title: str | None = None

    def allows_state(self) -> bool:
        if self.allow_state is not None:
            return self.allow_state
        return self.kind == OWNER_STATE

    def allows_companies(self) -> bool:
        if self.allow_companies is not None:
            return self.allow_companies
        return self.kind == OWNER_COMPANY

    def to_dict(self) -> dict[str, Any]:
        out = {
            "id": self.id,
            "host_country_id": self.host_country_id,
            "guest_country_id": self.guest_country_id,
            "kind": self.kind,
            "company_ids": list(self.company_ids),
            "building_ids": list(self.building_ids),
            "province_ids": list(self.province_ids),
            "industries": list(self.industries),
            "limits": self.limits.to_dict(),
        }
        if self.allow_state is not None:
            out["allow_state"] = self.allow_state
        if self.allow_companies is not None:
            out["allow_companies"] = self.allow_companies
        if self.duration_turns is not None:
            out["duration_turns"] = self.duration_turns
        if self.start_turn is not None:
            out["start_turn"] = self.start_turn
        if self.title is not None:
            out["title"] = self.title
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiplomacyAgreement":
        if not isinstance(data, dict):
            data = {}
        allow_state = data.get("allow_state")
        allow_companies = data.get("allow_companies")
        kind = data.get("kind")
        return cls(
            id=str(data.get("id") or ""),
            host_country_id=str(data.get("host_country_id") or ""),
            guest_country_id=str(data.get("guest_country_id") or ""),
            kind=kind if kind in (OWNER_STATE, OWNER_COMPANY) else OWNER_STATE,
            allow_state=allow_state if isinstance(allow_state, bool) else None,
            allow_companies=allow_companies if isinstance(allow_companies, bool) else None,
            company_ids=_ensure_str_list(data.get("company_ids")),
            building_ids=_ensure_str_list(data.get("building_ids")),
            province_ids=_ensure_str_list(data.get("province_ids")),
            industries=_ensure_str_list(data.get("industries")),
            limits=AgreementLimits.from_dict(data.get("limits")),
            duration_turns=_optional_int(data.get("duration_turns")),
            start_turn=_optional_int(data.get("start_turn")),
            title=_optional_str(data.get("title")),
        )


PROPOSAL_NEW = "new"
PROPOSAL_RENEWAL = "renewal"


@dataclass
class DiplomacyProposal:
    """A pending offer of an agreement (new, or renewal of an expired one)."""
    id: str
    from_country_id: str
    to_country_id: str
    # Agreement terms without id / start_turn
    agreement: dict[str, Any] = field(default_factory=dict)
    reciprocal: bool = False
    created_turn: int = 1
    kind: str = PROPOSAL_NEW
    # Renewals: countries that must approve, and those that already did
    target_country_ids: list[str] = field(default_factory=list)
    approvals: list[str] = field(default_factory=list)
    source_agreement_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out = {
            "id": self.id,
            "from_country_id": self.from_country_id,
            "to_country_id": self.to_country_id,
            "agreement": deepcopy(self.agreement),
            "reciprocal": self.reciprocal,
            "created_turn": self.created_turn,
            "kind": self.kind,
        }
        if self.kind == PROPOSAL_RENEWAL:
            out["target_country_ids"] = list(self.target_country_ids)
            out["approvals"] = list(self.approvals)
            out["source_agreement_id"] = self.source_agreement_id
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiplomacyProposal":
        if not isinstance(data, dict):
            data = {}
        agreement = data.get("agreement")
        kind = data.get("kind")
        return cls(
            id=str(data.get("id") or ""),
            from_country_id=str(data.get("from_country_id") or ""),
            to_country_id=str(data.get("to_country_id") or ""),
            agreement=dict(agreement) if isinstance(agreement, dict) else {},
            reciprocal=bool(data.get("reciprocal", False)),
            created_turn=_int(data.get("created_turn"), 1),
            kind=kind if kind in (PROPOSAL_NEW, PROPOSAL_RENEWAL) else PROPOSAL_NEW,
            target_country_ids=_ensure_str_list(data.get("target_country_ids")),
            approvals=_ensure_str_list(data.get("approvals")),
            source_agreement_id=_optional_str(data.get("source_agreement_id")),
        )


@dataclass
class EventLogEntry:
    """A player-facing record of something that happened."""
    id: str
    turn: int
    timestamp: str  # ISO-8601 UTC
    category: str  # "system", "colonization", "economy", "diplomacy"
    priority: str  # "low", "medium", "high"
    message: str
    visibility: str = "public"  # "public" or "private"
    title: str | None = None
    country_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out = {
            "id": self.id,
            "turn": self.turn,
            "timestamp": self.timestamp,
            "category": self.category,
            "priority": self.priority,
            "visibility": self.visibility,
            "message": self.message,
        }
        if self.title is not None:
            out["title"] = self.title
        if self.country_id is not None:
            out["country_id"] = self.country_id
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EventLogEntry":
        if not isinstance(data, dict):
            data = {}
        return cls(
            id=str(data.get("id") or ""),
            turn=_int(data.get("turn"), 1),
            timestamp=str(data.get("timestamp") or ""),
            category=str(data.get("category") or "system"),
            priority=str(data.get("priority") or "low"),
            message=str(data.get("message") or ""),
            visibility=str(data.get("visibility") or "public"),
            title=_optional_str(data.get("title")),
            country_id=_optional_str(data.get("country_id")),
        )


@dataclass
class GameSettings:
    """Game rules carried inside the state document. Negative values clamp to 0 on load."""
    colonization_points_per_turn: float = 10
    construction_points_per_turn: float = 10
    diplomacy_proposal_expire_turns: int = 3
    event_log_retain_turns: int = 3
    starting_colonization_points: float = 100
    starting_construction_points: float = 100
    colonization_max_active: int = 0  # 0 = unlimited
    demolition_cost_percent: float = 20

    def to_dict(self) -> dict[str, Any]:
        return {
            "colonization_points_per_turn": self.colonization_points_per_turn,
            "construction_points_per_turn": self.construction_points_per_turn,
            "diplomacy_proposal_expire_turns": self.diplomacy_proposal_expire_turns,
            "event_log_retain_turns": self.event_log_retain_turns,
            "starting_colonization_points": self.starting_colonization_points,
            "starting_construction_points": self.starting_construction_points,
            "colonization_max_active": self.colonization_max_active,
            "demolition_cost_percent": self.demolition_cost_percent,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "GameSettings":
        if not isinstance(data, dict):
            data = {}
        defaults = cls()
        return cls(
            colonization_points_per_turn=max(0.0, _float(
                data.get("colonization_points_per_turn"), defaults.colonization_points_per_turn)),
            construction_points_per_turn=max(0.0, _float(
                data.get("construction_points_per_turn"), defaults.construction_points_per_turn)),
            diplomacy_proposal_expire_turns=max(0, _int(
                data.get("diplomacy_proposal_expire_turns"), defaults.diplomacy_proposal_expire_turns)),
            event_log_retain_turns=max(0, _int(
                data.get("event_log_retain_turns"), defaults.event_log_retain_turns)),
            starting_colonization_points=max(0.0, _float(
                data.get("starting_colonization_points"), defaults.starting_colonization_points)),
            starting_construction_points=max(0.0, _float(
                data.get("starting_construction_points"), defaults.starting_construction_points)),
            colonization_max_active=max(0, _int(
                data.get("colonization_max_active"), defaults.colonization_max_active)),
            demolition_cost_percent=max(0.0, _float(
                data.get("demolition_cost_percent"), defaults.demolition_cost_percent)),
        )


@dataclass
class GameState:
    """Complete game state."""
    turn: int = 1
    active_country_id: str | None = None
    countries: list[Country] = field(default_factory=list)
    # province_id -> Province
    provinces: dict[str, Province] = field(default_factory=dict)
    # Catalogs: building_id -> BuildingDefinition, industry_id -> Industry, company_id -> Company
    buildings: dict[str, BuildingDefinition] = field(default_factory=dict)
    industries: dict[str, Industry] = field(default_factory=dict)
    companies: dict[str, Company] = field(default_factory=dict)
    agreements: list[DiplomacyAgreement] = field(default_factory=list)
    proposals: list[DiplomacyProposal] = field(default_factory=list)
    settings: GameSettings = field(default_factory=GameSettings)
    event_log: list[EventLogEntry] = field(default_factory=list)
    # Counters for generating unique ids (prefix -> last issued number)
    id_counters: dict[str, int] = field(default_factory=dict)

    def copy(self) -> "GameState":
        """Return a deep copy of this game state."""
        return deepcopy(self)

    def generate_id(self, prefix: str) -> str:
        """Generate a unique id for a new entity (e.g. "agreement_004")."""
        self.id_counters[prefix] = self.id_counters.get(prefix, 0) + 1
        return f"{prefix}_{self.id_counters[prefix]:03d}"

    def get_country(self, country_id: str | None) -> Country | None:
        if country_id is None:
            return None
        for country in self.countries:
            if country.id == country_id:
                return country
        return None

    # ===== Serialization Methods =====

    def to_dict(self) -> dict[str, Any]:
        """Convert GameState to a dictionary for JSON serialization."""
        return {
            "turn": self.turn,
            "active_country_id": self.active_country_id,
            "countries": [c.to_dict() for c in self.countries],
            "provinces": {pid: p.to_dict() for pid, p in self.provinces.items()},
            "buildings": {bid: b.to_dict() for bid, b in self.buildings.items()},
            "industries": {iid: i.to_dict() for iid, i in self.industries.items()},
            "companies": {cid: c.to_dict() for cid, c in self.companies.items()},
            "agreements": [a.to_dict() for a in self.agreements],
            "proposals": [p.to_dict() for p in self.proposals],
            "settings": self.settings.to_dict(),
            "event_log": [e.to_dict() for e in self.event_log],
            "id_counters": dict(self.id_counters),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameState":
        """Create GameState from a dictionary (handles missing/None and legacy shapes)."""
        if not isinstance(data, dict):
            data = {}

        def _dict(key: str) -> dict:
            value = data.get(key) or {}
            return value if isinstance(value, dict) else {}

        def _list(key: str) -> list:
            value = data.get(key) or []
            return value if isinstance(value, list) else []

        # Catalogs may be stored as id-keyed maps or plain lists
        def _catalog(key: str, parse) -> dict:
            raw = data.get(key)
            items = raw.values() if isinstance(raw, dict) else (raw if isinstance(raw, list) else [])
            out = {}
            for item in items:
                if isinstance(item, dict):
                    parsed = parse(item)
                    if parsed.id:
                        out[parsed.id] = parsed
            return out

        counters = {}
        for k, v in _dict("id_counters").items():
            counters[str(k)] = max(0, _int(v, 0))

        event_log = [EventLogEntry.from_dict(e) for e in _list("event_log") if isinstance(e, dict)]

        return cls(
            turn=max(1, _int(data.get("turn"), 1)),
            active_country_id=_optional_str(data.get("active_country_id")),
            countries=[Country.from_dict(c) for c in _list("countries") if isinstance(c, dict)],
            provinces={
                str(pid): Province.from_dict(p, str(pid))
                for pid, p in _dict("provinces").items()
                if isinstance(p, dict)
            },
            buildings=_catalog("buildings", BuildingDefinition.from_dict),
            industries=_catalog("industries", Industry.from_dict),
            companies=_catalog("companies", Company.from_dict),
            agreements=[
                DiplomacyAgreement.from_dict(a) for a in _list("agreements") if isinstance(a, dict)
            ],
            proposals=[
                DiplomacyProposal.from_dict(p) for p in _list("proposals") if isinstance(p, dict)
            ],
            settings=GameSettings.from_dict(data.get("settings")),
            event_log=event_log[-MAX_LOG_ENTRIES:],
            id_counters=counters,
        )

    def to_json(self, indent: int = 2) -> str:
        """Serialize GameState to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> "GameState":
        """Deserialize GameState from a JSON string."""
        return cls.from_dict(json.loads(json_str))

    def save(self, filepath: str) -> None:
        """Save GameState to a JSON file."""
        with open(filepath, "w") as f:
            f.write(self.to_json())

    @classmethod
    def load(cls, filepath: str) -> "GameState":
        """Load GameState from a JSON file."""
        with open(filepath, "r") as f:
            return cls.from_json(f.read())
