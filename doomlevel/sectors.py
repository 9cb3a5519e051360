"""
Per-sector floor/ceiling polygons recovered from the BSP tree.

Each subsector is a convex leaf.  Its footprint is found by clipping a huge
square by the subsector's own segs (each wall keeps the side it faces) and
then by every partition line on the path from the root, since a leaf only
stores the segs that carry walls and relies on the tree for the rest of its
boundary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from doomlevel.defs import Child, LevelData, Subsector
from doomlevel.errors import DegenerateClip, MalformedRecord
from doomlevel.geometry import (
    BSPPlane, clip_polygon, drop_repeats, square, triangulate,
)

log = logging.getLogger(__name__)

DEFAULT_CLIP_EXTENT = 100000.0


@dataclass
class SubsectorPolygon:
    vertices: list
    indices: list
    subsector: Subsector = field(repr=False)

    @property
    def sector_index(self) -> int:
        return self.subsector.sector.index

    def ceiling(self) -> tuple[list, list]:
        """(x, y, z) vertices at ceiling height, in clipped order, plus indices."""
        z = self.subsector.sector.ceiling_height
        return [(p.x, p.y, z) for p in self.vertices], list(self.indices)

    def floor(self) -> tuple[list, list]:
        """(x, y, z) vertices at floor height, in reversed order, plus indices."""
        z = self.subsector.sector.floor_height
        return [(p.x, p.y, z) for p in reversed(self.vertices)], list(self.indices)


def seg_planes(subsector: Subsector) -> list[BSPPlane]:
    """One plane per seg, keeping the side its wall faces."""
    return [
        BSPPlane(seg.start, seg.start.x - seg.end.x, seg.start.y - seg.end.y)
        for seg in subsector.segs
    ]


def process_subsector(
    subsector: Subsector,
    node_planes: list[BSPPlane],
    clip_extent: float = DEFAULT_CLIP_EXTENT,
) -> SubsectorPolygon:
    vertices = clip_polygon(square(clip_extent), seg_planes(subsector))
    vertices = clip_polygon(vertices, node_planes)
    vertices = drop_repeats(vertices)
    if len(vertices) < 3:
        raise DegenerateClip(
            f"subsector {subsector.index} (sector {subsector.sector.index}) "
            f"clipped to {len(vertices)} vertices"
        )
    return SubsectorPolygon(vertices, triangulate(len(vertices)), subsector)


def build_sectors(
    level: LevelData,
    clip_extent: float = DEFAULT_CLIP_EXTENT,
) -> dict[int, list[SubsectorPolygon]]:
    """
    Walk the BSP tree from the root and return sector index -> leaf polygons.

    The walk keeps its own stack so deep or unbalanced trees are not bounded
    by the interpreter's recursion limit.  Right children are visited before
    left children.
    """
    sector_polygons: dict[int, list[SubsectorPolygon]] = {}

    def add_leaf(index: int, planes: list[BSPPlane]) -> None:
        subsector = level.subsectors[index]
        polygon = process_subsector(subsector, planes, clip_extent)
        sector_polygons.setdefault(subsector.sector.index, []).append(polygon)

    if not level.nodes:
        for i in range(len(level.subsectors)):
            add_leaf(i, [])
        return sector_polygons

    visited: set[int] = set()
    stack: list[tuple[Child, list[BSPPlane]]] = [
        (Child(False, len(level.nodes) - 1), [])
    ]
    while stack:
        child, planes = stack.pop()
        if child.is_leaf:
            add_leaf(child.index, planes)
            continue

        # Every node has exactly one parent
        if child.index in visited:
            raise MalformedRecord(f"BSP node {child.index} is reached twice")
        visited.add(child.index)
        node = level.nodes[child.index]
        # Pushed left first so the right side is processed first
        stack.append((node.left_child, planes + [node.left_plane]))
        stack.append((node.right_child, planes + [node.right_plane]))

    log.debug(
        "%s: %d leaf polygons across %d sectors",
        level.name, sum(len(p) for p in sector_polygons.values()),
        len(sector_polygons),
    )
    return sector_polygons


def sector_mesh(polygons: list[SubsectorPolygon]) -> tuple[list, list]:
    """
    Merge one sector's leaves into a single floor+ceiling buffer pair.

    Returns flat (x, y, z) vertices and indices; each leaf contributes its
    ceiling face followed by its floor face.
    """
    vertices: list = []
    indices: list = []
    for polygon in polygons:
        for verts, idx in (polygon.ceiling(), polygon.floor()):
            base = len(vertices)
            vertices.extend(verts)
            indices.extend(base + i for i in idx)
    return vertices, indices
