from __future__ import annotations

import pytest

from doomlevel.defs import Vertex
from doomlevel.errors import DegenerateClip
from doomlevel.geometry import (
    BSPPlane, Point, clip_polygon, drop_repeats, is_convex, signed_area,
    square, triangulate,
)


def test_plane_coefficients() -> None:
    plane = BSPPlane(Vertex(2, 3), 4, 5)
    assert (plane.A, plane.B) == (-5, 4)
    assert plane.D == -(-5 * 2) - 4 * 3
    assert plane.side_value(Vertex(2, 3)) == 0


def test_inside_is_left_of_direction_and_boundary_inclusive() -> None:
    # Direction +y through the origin: left is -x
    plane = BSPPlane(Point(0, 0), 0, 10)
    assert plane.is_inside(Point(-1, 5))
    assert not plane.is_inside(Point(1, 5))
    assert plane.is_inside(Point(0, 123))


def test_boundary_points_are_inside_both_antiparallel_planes() -> None:
    left = BSPPlane(Vertex(32, 0), 0, 64)
    right = left.flipped()
    for p in (Point(32, -5), Point(32, 0), Point(32, 1000.5)):
        assert left.is_inside(p)
        assert right.is_inside(p)
    assert left.is_inside(Point(31, 0)) != right.is_inside(Point(31, 0))


def test_intersection() -> None:
    plane = BSPPlane(Point(0, 0), 1, 0)  # the x axis, inside is y >= 0
    hit = plane.intersect(Point(2, -2), Point(4, 2))
    assert hit == Point(3, 0)


def test_parallel_intersection_raises() -> None:
    plane = BSPPlane(Point(0, 0), 1, 0)
    with pytest.raises(DegenerateClip, match="parallel"):
        plane.intersect(Point(0, 1), Point(5, 1))


def test_clip_square_in_half() -> None:
    sq = [Point(0, 0), Point(10, 0), Point(10, 10), Point(0, 10)]
    plane = BSPPlane(Point(5, 0), 0, 1)  # keep x <= 5
    out = plane.clip(sq)
    assert sorted(out) == sorted([Point(0, 0), Point(5, 0), Point(5, 10), Point(0, 10)])
    assert signed_area(out) == pytest.approx(50)


def test_clip_emits_intersection_before_current_when_entering() -> None:
    tri = [Point(-1, 1), Point(1, -1), Point(1, 1)]
    plane = BSPPlane(Point(0, 0), 1, 0)  # keep y >= 0
    assert plane.clip(tri) == [Point(-1, 1), Point(0, 0), Point(1, 0), Point(1, 1)]


def test_clip_fully_inside_and_fully_outside() -> None:
    sq = [Point(0, 0), Point(1, 0), Point(1, 1), Point(0, 1)]
    assert BSPPlane(Point(0, -5), 1, 0).clip(sq) == sq
    assert BSPPlane(Point(0, 5), 1, 0).clip(sq) == []
    assert clip_polygon(sq, [BSPPlane(Point(0, 5), 1, 0), BSPPlane(Point(0, 0), 1, 0)]) == []


def test_vertex_on_line_is_repeated_then_dropped() -> None:
    sq = [Point(0, 0), Point(10, 0), Point(10, 10), Point(0, 10)]
    # Keep x <= 0: the left edge lies on the line, the rest is outside
    out = clip_polygon(sq, [BSPPlane(Point(0, 0), 0, 1)])
    assert out == [Point(0, 0), Point(0, 0), Point(0, 10), Point(0, 10)]
    assert drop_repeats(out) == [Point(0, 0), Point(0, 10)]


def test_drop_repeats_handles_wraparound() -> None:
    pts = [Point(0, 0), Point(0, 0), Point(1, 0), Point(1, 1), Point(0, 0)]
    assert drop_repeats(pts) == [Point(0, 0), Point(1, 0), Point(1, 1)]


def test_square_is_counter_clockwise() -> None:
    assert signed_area(square(10)) == pytest.approx(400)


@pytest.mark.parametrize("n", [3, 4, 5, 8])
def test_fan_triangulation(n: int) -> None:
    indices = triangulate(n)
    assert len(indices) == 3 * (n - 2)
    assert all(0 <= i < n for i in indices)
    assert indices[:3] == [0, 1, 2]


def test_fan_triangulation_of_too_few_vertices_is_empty() -> None:
    assert triangulate(2) == []


def test_is_convex() -> None:
    assert is_convex([Point(0, 0), Point(2, 0), Point(2, 2), Point(0, 2)])
    assert not is_convex([Point(0, 0), Point(2, 0), Point(1, 1), Point(2, 2), Point(0, 2)])
    assert not is_convex([Point(0, 0), Point(1, 1)])
