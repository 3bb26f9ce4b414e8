"""
design_entities.py

Defines the core furniture design entity classes (Part, Stock, Group, GroupMember,
Assembly and its embedded records) together with the project-level records
(settings, cut list, snap guides, shopping items).
Entities hold only their intrinsic attributes. Relationships (group membership,
stock assignment) are stored as id references and managed centrally by the
FurnitureProject class.

Every entity converts to and from the design document form through to_dict()
and from_dict(), using the document's camelCase keys.
"""

import random
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .cad_common import (
    Vector3, STOCK_COLORS, MEMBER_TYPES, PART_MEMBER, UNITS, PART_GRAIN_DIRECTIONS,
    STOCK_GRAIN_DIRECTIONS, PRICING_UNITS, GUIDE_AXES, DEFAULT_UNITS, DEFAULT_GRID_SIZE,
    DEFAULT_KERF_WIDTH, DEFAULT_OVERAGE_FACTOR, ProjectConfigurationError
)
from .design_snapshot import generate_id, timestamp_now

logger = logging.getLogger(__name__)

VALID_ROTATIONS = (0, 90, 180, 270)

# --- Helper Functions ---

def _vec_to_dict(vec: Tuple[float, float, float]) -> Dict[str, float]:
    return {"x": vec[0], "y": vec[1], "z": vec[2]}


def _vec_from_dict(data: Optional[Dict[str, Any]], default: Vector3 = (0.0, 0.0, 0.0)) -> Vector3:
    if not data:
        return default
    return (float(data.get("x", default[0])),
            float(data.get("y", default[1])),
            float(data.get("z", default[2])))


def _float_tuple(vec) -> Vector3:
    if len(vec) != 3:
        raise ProjectConfigurationError(f"Expected 3 coordinates, got {len(vec)}")
    return (float(vec[0]), float(vec[1]), float(vec[2]))


def _check_positive(owner: str, **dims: float) -> None:
    for name, value in dims.items():
        if value is None or value <= 0:
            raise ProjectConfigurationError(f"{owner} {name} must be positive, got {value}")


def _check_choice(owner: str, name: str, value: Any, choices: Tuple) -> None:
    if value not in choices:
        raise ProjectConfigurationError(f"{owner} {name} must be one of {choices}, got {value!r}")


def _put_optional(data: Dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        data[key] = value


def _random_stock_color() -> str:
    return random.choice(STOCK_COLORS)

# --- Base Entity Class ---

@dataclass
class DesignEntity:
    """Base class for all id-bearing design entities."""
    id: str = field(default_factory=generate_id)

# --- Stock ---

@dataclass
class Stock(DesignEntity):
    """A named raw-material definition that parts may reference."""
    name: str = "New Stock"
    length: float = 96.0
    width: float = 48.0
    thickness: float = 0.75
    grain_direction: str = "length"
    pricing_unit: str = "per_item"
    price_per_unit: float = 50.0
    color: str = field(default_factory=_random_stock_color)

    def __post_init__(self):
        _check_positive("Stock", length=self.length, width=self.width, thickness=self.thickness)
        self.length, self.width, self.thickness = float(self.length), float(self.width), float(self.thickness)
        self.price_per_unit = float(self.price_per_unit)
        _check_choice("Stock", "grain_direction", self.grain_direction, STOCK_GRAIN_DIRECTIONS)
        _check_choice("Stock", "pricing_unit", self.pricing_unit, PRICING_UNITS)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "length": self.length,
            "width": self.width,
            "thickness": self.thickness,
            "grainDirection": self.grain_direction,
            "pricingUnit": self.pricing_unit,
            "pricePerUnit": self.price_per_unit,
            "color": self.color,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Stock':
        return cls(
            id=data.get("id") or generate_id(),
            name=data.get("name", "New Stock"),
            length=float(data.get("length", 96.0)),
            width=float(data.get("width", 48.0)),
            thickness=float(data.get("thickness", 0.75)),
            grain_direction=data.get("grainDirection", "length"),
            pricing_unit=data.get("pricingUnit", "per_item"),
            price_per_unit=float(data.get("pricePerUnit", 0.0)),
            color=data.get("color", STOCK_COLORS[0]),
        )


@dataclass
class EmbeddedStock:
    """Value-only copy of a Stock carried inside an assembly part."""
    name: str = "New Stock"
    length: float = 96.0
    width: float = 48.0
    thickness: float = 0.75
    grain_direction: str = "length"
    pricing_unit: str = "per_item"
    price_per_unit: float = 50.0
    color: str = STOCK_COLORS[0]

    @classmethod
    def from_stock(cls, stock: Stock) -> 'EmbeddedStock':
        return cls(name=stock.name, length=stock.length, width=stock.width,
                   thickness=stock.thickness, grain_direction=stock.grain_direction,
                   pricing_unit=stock.pricing_unit, price_per_unit=stock.price_per_unit,
                   color=stock.color)

    def matches(self, stock: Stock) -> bool:
        """True if stock has the same name, dimensions and color as this snapshot."""
        return (stock.name == self.name and
                stock.thickness == self.thickness and
                stock.length == self.length and
                stock.width == self.width and
                stock.color == self.color)

    def to_stock(self) -> Stock:
        """Creates a brand-new Stock (fresh id) from this snapshot."""
        return Stock(name=self.name, length=self.length, width=self.width,
                     thickness=self.thickness, grain_direction=self.grain_direction,
                     pricing_unit=self.pricing_unit, price_per_unit=self.price_per_unit,
                     color=self.color)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "length": self.length,
            "width": self.width,
            "thickness": self.thickness,
            "grainDirection": self.grain_direction,
            "pricingUnit": self.pricing_unit,
            "pricePerUnit": self.price_per_unit,
            "color": self.color,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EmbeddedStock':
        return cls(
            name=data.get("name", "New Stock"),
            length=float(data.get("length", 96.0)),
            width=float(data.get("width", 48.0)),
            thickness=float(data.get("thickness", 0.75)),
            grain_direction=data.get("grainDirection", "length"),
            pricing_unit=data.get("pricingUnit", "per_item"),
            price_per_unit=float(data.get("pricePerUnit", 0.0)),
            color=data.get("color", STOCK_COLORS[0]),
        )

# --- Part ---

@dataclass
class Part(DesignEntity):
    """A single physical board or panel placed in the workspace."""
    name: str = "New Part"
    length: float = 24.0
    width: float = 12.0
    thickness: float = 0.75
    position: Vector3 = (0.0, 0.375, 0.0)  # y = thickness / 2 rests on the ground
    rotation: Tuple[int, int, int] = (0, 0, 0)
    stock_id: Optional[str] = None
    grain_sensitive: bool = True
    grain_direction: str = "length"
    color: str = STOCK_COLORS[0]
    notes: Optional[str] = None
    # Joinery allowances, only used by the cut list
    extra_length: Optional[float] = None
    extra_width: Optional[float] = None
    glue_up_panel: Optional[bool] = None
    ignore_overlap: Optional[bool] = None

    def __post_init__(self):
        _check_positive("Part", length=self.length, width=self.width, thickness=self.thickness)
        self.length, self.width, self.thickness = float(self.length), float(self.width), float(self.thickness)
        _check_choice("Part", "grain_direction", self.grain_direction, PART_GRAIN_DIRECTIONS)
        self.position = _float_tuple(self.position)
        self.rotation = tuple(int(r) for r in self.rotation)
        if len(self.rotation) != 3:
            raise ProjectConfigurationError(f"Part rotation needs 3 angles, got {len(self.rotation)}")
        for angle in self.rotation:
            _check_choice("Part", "rotation", angle, VALID_ROTATIONS)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "length": self.length,
            "width": self.width,
            "thickness": self.thickness,
            "position": _vec_to_dict(self.position),
            "rotation": _vec_to_dict(self.rotation),
            "stockId": self.stock_id,
            "grainSensitive": self.grain_sensitive,
            "grainDirection": self.grain_direction,
            "color": self.color,
        }
        _put_optional(data, "notes", self.notes)
        _put_optional(data, "extraLength", self.extra_length)
        _put_optional(data, "extraWidth", self.extra_width)
        _put_optional(data, "glueUpPanel", self.glue_up_panel)
        _put_optional(data, "ignoreOverlap", self.ignore_overlap)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Part':
        rotation = _vec_from_dict(data.get("rotation"))
        return cls(
            id=data.get("id") or generate_id(),
            name=data.get("name", "New Part"),
            length=float(data.get("length", 24.0)),
            width=float(data.get("width", 12.0)),
            thickness=float(data.get("thickness", 0.75)),
            position=_vec_from_dict(data.get("position"), (0.0, 0.375, 0.0)),
            rotation=tuple(int(r) for r in rotation),
            stock_id=data.get("stockId"),
            grain_sensitive=bool(data.get("grainSensitive", True)),
            grain_direction=data.get("grainDirection", "length"),
            color=data.get("color", STOCK_COLORS[0]),
            notes=data.get("notes"),
            extra_length=data.get("extraLength"),
            extra_width=data.get("extraWidth"),
            glue_up_panel=data.get("glueUpPanel"),
            ignore_overlap=data.get("ignoreOverlap"),
        )

# --- Groups ---

@dataclass
class Group(DesignEntity):
    """A named container. Membership lives in GroupMember records."""
    name: str = "Group"

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Group':
        return cls(id=data.get("id") or generate_id(), name=data.get("name", "Group"))


@dataclass
class GroupMember(DesignEntity):
    """Join record placing a part or a group inside a group."""
    group_id: str = ""
    member_type: str = PART_MEMBER
    member_id: str = ""

    def __post_init__(self):
        _check_choice("GroupMember", "member_type", self.member_type, MEMBER_TYPES)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "groupId": self.group_id,
            "memberType": self.member_type,
            "memberId": self.member_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GroupMember':
        return cls(
            id=data.get("id") or generate_id(),
            group_id=data.get("groupId", ""),
            member_type=data.get("memberType", PART_MEMBER),
            member_id=data.get("memberId", ""),
        )

# --- Assemblies ---

@dataclass
class AssemblyPart:
    """Part template inside an assembly, positioned relative to the assembly origin."""
    name: str = "New Part"
    length: float = 24.0
    width: float = 12.0
    thickness: float = 0.75
    relative_position: Vector3 = (0.0, 0.0, 0.0)
    rotation: Tuple[int, int, int] = (0, 0, 0)
    stock_id: Optional[str] = None
    grain_sensitive: bool = True
    grain_direction: str = "length"
    color: str = STOCK_COLORS[0]
    notes: Optional[str] = None
    extra_length: Optional[float] = None
    extra_width: Optional[float] = None
    glue_up_panel: Optional[bool] = None
    ignore_overlap: Optional[bool] = None
    embedded_stock: Optional[EmbeddedStock] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "length": self.length,
            "width": self.width,
            "thickness": self.thickness,
            "relativePosition": _vec_to_dict(self.relative_position),
            "rotation": _vec_to_dict(self.rotation),
            "stockId": self.stock_id,
            "grainSensitive": self.grain_sensitive,
            "grainDirection": self.grain_direction,
            "color": self.color,
        }
        _put_optional(data, "notes", self.notes)
        _put_optional(data, "extraLength", self.extra_length)
        _put_optional(data, "extraWidth", self.extra_width)
        _put_optional(data, "glueUpPanel", self.glue_up_panel)
        _put_optional(data, "ignoreOverlap", self.ignore_overlap)
        if self.embedded_stock is not None:
            data["embeddedStock"] = self.embedded_stock.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AssemblyPart':
        rotation = _vec_from_dict(data.get("rotation"))
        embedded = data.get("embeddedStock")
        return cls(
            name=data.get("name", "New Part"),
            length=float(data.get("length", 24.0)),
            width=float(data.get("width", 12.0)),
            thickness=float(data.get("thickness", 0.75)),
            relative_position=_vec_from_dict(data.get("relativePosition")),
            rotation=tuple(int(r) for r in rotation),
            stock_id=data.get("stockId"),
            grain_sensitive=bool(data.get("grainSensitive", True)),
            grain_direction=data.get("grainDirection", "length"),
            color=data.get("color", STOCK_COLORS[0]),
            notes=data.get("notes"),
            extra_length=data.get("extraLength"),
            extra_width=data.get("extraWidth"),
            glue_up_panel=data.get("glueUpPanel"),
            ignore_overlap=data.get("ignoreOverlap"),
            embedded_stock=EmbeddedStock.from_dict(embedded) if embedded else None,
        )


@dataclass
class AssemblyGroup:
    """Group template inside an assembly. original_id is a diagnostic breadcrumb only."""
    original_id: str = ""
    name: str = "Group"

    def to_dict(self) -> Dict[str, Any]:
        return {"originalId": self.original_id, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AssemblyGroup':
        return cls(original_id=data.get("originalId", ""), name=data.get("name", "Group"))


@dataclass
class AssemblyGroupMember:
    """Membership template using positional indices into the assembly's own arrays."""
    group_index: int = 0
    member_type: str = PART_MEMBER
    member_index: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"groupIndex": self.group_index, "memberType": self.member_type,
                "memberIndex": self.member_index}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AssemblyGroupMember':
        return cls(group_index=int(data.get("groupIndex", 0)),
                   member_type=data.get("memberType", PART_MEMBER),
                   member_index=int(data.get("memberIndex", 0)))


@dataclass
class Assembly(DesignEntity):
    """Portable, index-addressed snapshot of a sub-design."""
    name: str = "Assembly"
    description: str = ""
    thumbnail: Optional[str] = None
    thumbnail_data: Optional[Dict[str, Any]] = None
    parts: List[AssemblyPart] = field(default_factory=list)
    groups: List[AssemblyGroup] = field(default_factory=list)
    group_members: List[AssemblyGroupMember] = field(default_factory=list)
    created_at: str = field(default_factory=timestamp_now)
    modified_at: str = field(default_factory=timestamp_now)

    def index_errors(self) -> List[str]:
        """Lists group member records whose indices fall outside the assembly's arrays."""
        errors = []
        for i, gm in enumerate(self.group_members):
            if not 0 <= gm.group_index < len(self.groups):
                errors.append(f"Member {i} has invalid group index {gm.group_index}")
            limit = len(self.parts) if gm.member_type == PART_MEMBER else len(self.groups)
            if not 0 <= gm.member_index < limit:
                errors.append(f"Member {i} has invalid {gm.member_type} index {gm.member_index}")
        return errors

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "parts": [p.to_dict() for p in self.parts],
            "groups": [g.to_dict() for g in self.groups],
            "groupMembers": [gm.to_dict() for gm in self.group_members],
            "createdAt": self.created_at,
            "modifiedAt": self.modified_at,
        }
        _put_optional(data, "thumbnail", self.thumbnail)
        _put_optional(data, "thumbnailData", self.thumbnail_data)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Assembly':
        now = timestamp_now()
        return cls(
            id=data.get("id") or generate_id(),
            name=data.get("name", "Assembly"),
            description=data.get("description") or "",
            thumbnail=data.get("thumbnail"),
            thumbnail_data=data.get("thumbnailData"),
            parts=[AssemblyPart.from_dict(p) for p in data.get("parts", [])],
            groups=[AssemblyGroup.from_dict(g) for g in data.get("groups", [])],
            group_members=[AssemblyGroupMember.from_dict(gm) for gm in data.get("groupMembers", [])],
            created_at=data.get("createdAt", now),
            modified_at=data.get("modifiedAt", now),
        )

# --- Clipboard ---

@dataclass
class Clipboard:
    """Transient holding area for copied parts and groups (clipboard-local ids)."""
    parts: List[Part] = field(default_factory=list)
    groups: List[Group] = field(default_factory=list)
    group_members: List[GroupMember] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.parts

# --- Project-level Records ---

CUT_LIST_FIELDS = ("id", "generatedAt", "projectModifiedAt", "isStale", "kerfWidth", "overageFactor")


@dataclass
class CutList:
    """
    A generated cut list. Only the bookkeeping fields are modeled; the
    generated content (instructions, boards, statistics) is carried as an
    opaque payload and round-tripped unchanged.
    """
    id: str = field(default_factory=generate_id)
    generated_at: str = field(default_factory=timestamp_now)
    project_modified_at: str = ""
    is_stale: bool = False
    kerf_width: float = DEFAULT_KERF_WIDTH
    overage_factor: float = DEFAULT_OVERAGE_FACTOR
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.payload)
        data.update({
            "id": self.id,
            "generatedAt": self.generated_at,
            "projectModifiedAt": self.project_modified_at,
            "isStale": self.is_stale,
            "kerfWidth": self.kerf_width,
            "overageFactor": self.overage_factor,
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CutList':
        payload = {k: v for k, v in data.items() if k not in CUT_LIST_FIELDS}
        return cls(
            id=data.get("id") or generate_id(),
            generated_at=data.get("generatedAt", ""),
            project_modified_at=data.get("projectModifiedAt", ""),
            is_stale=bool(data.get("isStale", False)),
            kerf_width=float(data.get("kerfWidth", DEFAULT_KERF_WIDTH)),
            overage_factor=float(data.get("overageFactor", DEFAULT_OVERAGE_FACTOR)),
            payload=payload,
        )


@dataclass
class SnapGuide(DesignEntity):
    """Persistent alignment guide perpendicular to one axis."""
    axis: str = "x"
    position: float = 0.0
    label: Optional[str] = None

    def __post_init__(self):
        _check_choice("SnapGuide", "axis", self.axis, GUIDE_AXES)

    def to_dict(self) -> Dict[str, Any]:
        data = {"id": self.id, "axis": self.axis, "position": self.position}
        _put_optional(data, "label", self.label)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SnapGuide':
        return cls(id=data.get("id") or generate_id(), axis=data.get("axis", "x"),
                   position=float(data.get("position", 0.0)), label=data.get("label"))


@dataclass
class CustomShoppingItem(DesignEntity):
    """User-defined shopping list entry (hardware, glue, finish)."""
    name: str = ""
    description: Optional[str] = None
    quantity: int = 1
    unit_price: float = 0.0
    category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"id": self.id, "name": self.name, "quantity": self.quantity,
                "unitPrice": self.unit_price}
        _put_optional(data, "description", self.description)
        _put_optional(data, "category", self.category)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CustomShoppingItem':
        return cls(id=data.get("id") or generate_id(), name=data.get("name", ""),
                   description=data.get("description"), quantity=data.get("quantity", 1),
                   unit_price=float(data.get("unitPrice", 0.0)), category=data.get("category"))


@dataclass
class StockConstraintSettings:
    constrain_dimensions: bool = True
    constrain_grain: bool = True
    constrain_color: bool = True
    prevent_overlap: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "constrainDimensions": self.constrain_dimensions,
            "constrainGrain": self.constrain_grain,
            "constrainColor": self.constrain_color,
            "preventOverlap": self.prevent_overlap,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'StockConstraintSettings':
        data = data or {}
        return cls(
            constrain_dimensions=bool(data.get("constrainDimensions", True)),
            constrain_grain=bool(data.get("constrainGrain", True)),
            constrain_color=bool(data.get("constrainColor", True)),
            prevent_overlap=bool(data.get("preventOverlap", True)),
        )


@dataclass
class CameraState:
    position: Vector3 = (0.0, 0.0, 0.0)
    target: Vector3 = (0.0, 0.0, 0.0)

    def to_dict(self) -> Dict[str, Any]:
        return {"position": _vec_to_dict(self.position), "target": _vec_to_dict(self.target)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CameraState':
        return cls(position=_vec_from_dict(data.get("position")),
                   target=_vec_from_dict(data.get("target")))


@dataclass
class ProjectThumbnail:
    data: str = ""  # base64 PNG
    width: int = 0
    height: int = 0
    generated_at: str = field(default_factory=timestamp_now)
    manually_set: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"data": self.data, "width": self.width, "height": self.height,
                "generatedAt": self.generated_at}
        _put_optional(data, "manuallySet", self.manually_set)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectThumbnail':
        return cls(data=data.get("data", ""), width=int(data.get("width", 0)),
                   height=int(data.get("height", 0)),
                   generated_at=data.get("generatedAt", ""),
                   manually_set=data.get("manuallySet", data.get("isCustom")))


@dataclass
class ProjectSettings:
    """Project metadata and settings stored in the document's project block."""
    name: str = "Untitled Project"
    units: str = DEFAULT_UNITS
    grid_size: float = DEFAULT_GRID_SIZE
    kerf_width: float = DEFAULT_KERF_WIDTH
    overage_factor: float = DEFAULT_OVERAGE_FACTOR
    project_notes: str = ""
    stock_constraints: StockConstraintSettings = field(default_factory=StockConstraintSettings)
    created_at: str = field(default_factory=timestamp_now)
    modified_at: str = field(default_factory=timestamp_now)

    def __post_init__(self):
        _check_choice("Project", "units", self.units, UNITS)

    def to_dict(self, include_timestamps: bool = True) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "units": self.units,
            "gridSize": self.grid_size,
            "kerfWidth": self.kerf_width,
            "overageFactor": self.overage_factor,
            "projectNotes": self.project_notes,
            "stockConstraints": self.stock_constraints.to_dict(),
        }
        if include_timestamps:
            data["createdAt"] = self.created_at
            data["modifiedAt"] = self.modified_at
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectSettings':
        now = timestamp_now()
        units = data.get("units", DEFAULT_UNITS)
        if units not in UNITS:
            logger.warning(f"Invalid units '{units}', defaulting to {DEFAULT_UNITS}")
            units = DEFAULT_UNITS
        kerf = data.get("kerfWidth")
        overage = data.get("overageFactor")
        return cls(
            name=data.get("name", "Untitled Project"),
            units=units,
            grid_size=float(data.get("gridSize") or DEFAULT_GRID_SIZE),
            kerf_width=float(DEFAULT_KERF_WIDTH if kerf is None else kerf),
            overage_factor=float(DEFAULT_OVERAGE_FACTOR if overage is None else overage),
            project_notes=data.get("projectNotes") or "",
            stock_constraints=StockConstraintSettings.from_dict(data.get("stockConstraints")),
            created_at=data.get("createdAt") or now,
            modified_at=data.get("modifiedAt") or now,
        )


@dataclass
class ProjectData:
    """
    The persisted subset of a project: everything that is saved to disk and
    recorded in undo history. Selection, hover and camera state are excluded.
    """
    settings: ProjectSettings = field(default_factory=ProjectSettings)
    parts: List[Part] = field(default_factory=list)
    stocks: List[Stock] = field(default_factory=list)
    groups: List[Group] = field(default_factory=list)
    group_members: List[GroupMember] = field(default_factory=list)
    assemblies: List[Assembly] = field(default_factory=list)
    snap_guides: List[SnapGuide] = field(default_factory=list)
    custom_shopping_items: List[CustomShoppingItem] = field(default_factory=list)
    cut_list: Optional[CutList] = None

    def to_dict(self, include_timestamps: bool = True) -> Dict[str, Any]:
        return {
            "project": self.settings.to_dict(include_timestamps=include_timestamps),
            "parts": [p.to_dict() for p in self.parts],
            "stocks": [s.to_dict() for s in self.stocks],
            "groups": [g.to_dict() for g in self.groups],
            "groupMembers": [gm.to_dict() for gm in self.group_members],
            "assemblies": [a.to_dict() for a in self.assemblies],
            "snapGuides": [g.to_dict() for g in self.snap_guides],
            "customShoppingItems": [i.to_dict() for i in self.custom_shopping_items],
            "cutList": self.cut_list.to_dict() if self.cut_list else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectData':
        cut_list = data.get("cutList")
        return cls(
            settings=ProjectSettings.from_dict(data.get("project", {})),
            parts=[Part.from_dict(p) for p in data.get("parts") or []],
            stocks=[Stock.from_dict(s) for s in data.get("stocks") or []],
            groups=[Group.from_dict(g) for g in data.get("groups") or []],
            group_members=[GroupMember.from_dict(gm) for gm in data.get("groupMembers") or []],
            assemblies=[Assembly.from_dict(a) for a in data.get("assemblies") or []],
            snap_guides=[SnapGuide.from_dict(g) for g in data.get("snapGuides") or []],
            custom_shopping_items=[CustomShoppingItem.from_dict(i)
                                   for i in data.get("customShoppingItems") or []],
            cut_list=CutList.from_dict(cut_list) if cut_list else None,
        )
