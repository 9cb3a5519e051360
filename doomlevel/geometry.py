"""
Half-planes and Sutherland-Hodgman clipping for BSP leaf reconstruction.

A half-plane is the line A*x + B*y + D = 0 built from a start point and a
direction.  Points with A*x + B*y + D >= 0 are *inside*, which for a
direction (dx, dy) is the left-hand side.  The same inclusive test is used
for seg planes and node planes, so a point lying exactly on a split line is
kept by both children of that split.
"""

from typing import NamedTuple, Sequence

from doomlevel.errors import DegenerateClip


class Point(NamedTuple):
    x: float
    y: float


class BSPPlane:
    __slots__ = ("start", "dx", "dy", "A", "B", "D")

    def __init__(self, start, dx: float, dy: float) -> None:
        self.start = Point(float(start.x), float(start.y))
        self.dx = dx
        self.dy = dy
        self.A = -dy
        self.B = dx
        self.D = -self.A * self.start.x - self.B * self.start.y

    def __repr__(self) -> str:
        return f"BSPPlane(A={self.A}, B={self.B}, D={self.D})"

    def flipped(self) -> "BSPPlane":
        """The antiparallel plane through the same start point."""
        return BSPPlane(self.start, -self.dx, -self.dy)

    def side_value(self, p) -> float:
        return self.A * p.x + self.B * p.y + self.D

    def is_inside(self, p) -> bool:
        return self.side_value(p) >= 0

    def intersect(self, a, b) -> Point:
        """
        Point where segment a->b crosses this plane's line.

        Callers must only pass segments whose ends lie on different sides; a
        segment parallel to the line has no single crossing and raises
        DegenerateClip.
        """
        dx = a.x - b.x
        dy = a.y - b.y
        udenom = self.A * dx + self.B * dy
        if udenom == 0:
            raise DegenerateClip(
                f"segment ({a.x}, {a.y})->({b.x}, {b.y}) is parallel to {self!r}"
            )
        u = (self.A * a.x + self.B * a.y + self.D) / udenom
        return Point(a.x - dx * u, a.y - dy * u)

    def clip(self, polygon: Sequence) -> list[Point]:
        """Keep the part of the closed vertex ring *polygon* inside this plane."""
        output: list[Point] = []
        if not polygon:
            return output

        prev = polygon[-1]
        prev_inside = self.is_inside(prev)
        for current in polygon:
            current_inside = self.is_inside(current)
            if current_inside:
                if not prev_inside:
                    output.append(self.intersect(prev, current))
                output.append(Point(current.x, current.y))
            elif prev_inside:
                output.append(self.intersect(prev, current))
            prev, prev_inside = current, current_inside
        return output


def clip_polygon(polygon: Sequence, planes: Sequence[BSPPlane]) -> list[Point]:
    """Clip *polygon* by each plane in turn."""
    vertices = [Point(p.x, p.y) for p in polygon]
    for plane in planes:
        vertices = plane.clip(vertices)
        if not vertices:
            break
    return vertices


def drop_repeats(polygon: Sequence[Point]) -> list[Point]:
    """Remove consecutive duplicate points (including last == first)."""
    out: list[Point] = []
    for p in polygon:
        if not out or p != out[-1]:
            out.append(p)
    while len(out) > 1 and out[-1] == out[0]:
        out.pop()
    return out


def square(extent: float) -> list[Point]:
    """Axis-aligned square of half-side *extent* around the origin, CCW."""
    return [
        Point(-extent, -extent), Point(extent, -extent),
        Point(extent, extent), Point(-extent, extent),
    ]


def triangulate(vertex_count: int) -> list[int]:
    """Fan indices (0, i, i+1) for a convex polygon."""
    indices: list[int] = []
    for i in range(1, vertex_count - 1):
        indices.extend((0, i, i + 1))
    return indices


def signed_area(polygon: Sequence) -> float:
    """Shoelace area; positive for counter-clockwise rings."""
    total = 0.0
    n = len(polygon)
    for i in range(n):
        a = polygon[i]
        b = polygon[(i + 1) % n]
        total += a.x * b.y - b.x * a.y
    return total / 2


def is_convex(polygon: Sequence, eps: float = 1e-6) -> bool:
    """True when every turn of the ring has the same sign (collinear allowed)."""
    n = len(polygon)
    if n < 3:
        return False
    sign = 0
    for i in range(n):
        a, b, c = polygon[i], polygon[(i + 1) % n], polygon[(i + 2) % n]
        cross = (b.x - a.x) * (c.y - b.y) - (b.y - a.y) * (c.x - b.x)
        if abs(cross) <= eps:
            continue
        s = 1 if cross > 0 else -1
        if sign == 0:
            sign = s
        elif s != sign:
            return False
    return True
