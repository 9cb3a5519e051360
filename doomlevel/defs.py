"""Shared constants and level data structures."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, NamedTuple, Optional

if TYPE_CHECKING:
    from doomlevel.geometry import BSPPlane

# Offsets of the decoded lumps from their level marker
ML_LINEDEFS = 2
ML_SIDEDEFS = 3
ML_VERTEXES = 4
ML_SEGS = 5
ML_SSECTORS = 6
ML_NODES = 7
ML_SECTORS = 8

# Lumps following a level marker, in directory order
LEVEL_LUMPS = (
    "THINGS", "LINEDEFS", "SIDEDEFS", "VERTEXES", "SEGS",
    "SSECTORS", "NODES", "SECTORS", "REJECT", "BLOCKMAP",
)

# LineDef flags
ML_TWOSIDED = 4

# BSP node child indicator
NF_SUBSECTOR = 0x8000
NF_INDEX_MASK = 0x7FFF

# Texture name meaning "nothing drawn here"
NO_TEXTURE = "-"

FLAT_SIZE = 64


# ─── Map data structures ───

@dataclass(frozen=True)
class Vertex:
    x: int
    y: int


@dataclass(frozen=True)
class BBox:
    min: Vertex
    max: Vertex

    def union(self, other: BBox) -> BBox:
        return BBox(
            Vertex(min(self.min.x, other.min.x), min(self.min.y, other.min.y)),
            Vertex(max(self.max.x, other.max.x), max(self.max.y, other.max.y)),
        )

    @property
    def center(self) -> tuple[float, float]:
        return ((self.min.x + self.max.x) / 2, (self.min.y + self.max.y) / 2)


@dataclass(eq=False)
class Sector:
    index: int
    floor_height: int
    ceiling_height: int
    floor_texture: str
    ceiling_texture: str
    brightness: int
    special_type: int
    tag: int
    # Filled in once the subsector table has been decoded
    subsectors: list = field(default_factory=list, repr=False)


@dataclass(eq=False)
class Sidedef:
    texture_offset_x: int
    texture_offset_y: int
    upper_texture: str
    lower_texture: str
    middle_texture: str
    sector: Sector

    @property
    def texture_names(self) -> tuple[str, str, str]:
        return (self.upper_texture, self.lower_texture, self.middle_texture)


@dataclass(eq=False)
class Linedef:
    start: Vertex
    end: Vertex
    flags: int
    special_type: int
    tag: int
    front_sidedef: Sidedef
    back_sidedef: Optional[Sidedef] = None

    @property
    def two_sided(self) -> bool:
        return bool(self.flags & ML_TWOSIDED)


@dataclass(eq=False)
class Seg:
    start: Vertex
    end: Vertex
    angle: int
    linedef: Linedef
    direction: int  # 0 = along the linedef, 1 = against it
    offset: int

    @property
    def sidedef(self) -> Optional[Sidedef]:
        """The sidedef facing this seg's side of the linedef."""
        if self.direction == 0:
            return self.linedef.front_sidedef
        return self.linedef.back_sidedef


@dataclass(eq=False)
class Subsector:
    index: int
    segs: list
    sector: Sector


class Child(NamedTuple):
    """Decoded BSP child reference: a subsector leaf or another node."""
    is_leaf: bool
    index: int

    @classmethod
    def from_raw(cls, raw: int) -> Child:
        return cls(bool(raw & NF_SUBSECTOR), raw & NF_INDEX_MASK)


@dataclass(eq=False)
class BSPNode:
    x: int
    y: int
    dx: int
    dy: int
    right_bbox: BBox
    left_bbox: BBox
    right_child: Child
    left_child: Child
    right_plane: BSPPlane = field(repr=False)
    left_plane: BSPPlane = field(repr=False)

    @property
    def bbox(self) -> BBox:
        return self.right_bbox.union(self.left_bbox)


@dataclass(eq=False)
class LevelData:
    """Holds every decoded table for one level."""
    name: str
    vertices: list = field(default_factory=list)
    sectors: list = field(default_factory=list)
    sidedefs: list = field(default_factory=list)
    linedefs: list = field(default_factory=list)
    segs: list = field(default_factory=list)
    subsectors: list = field(default_factory=list)
    nodes: list = field(default_factory=list)
    bounds: Optional[BBox] = None

    @property
    def root(self) -> Optional[BSPNode]:
        # A level with a single subsector has no nodes at all
        return self.nodes[-1] if self.nodes else None

    @property
    def center(self) -> tuple[float, float]:
        """Centre of the root node's bounding box (vertex bounds without nodes)."""
        if self.root is not None:
            return self.root.bbox.center
        if self.bounds is not None:
            return self.bounds.center
        return (0.0, 0.0)
