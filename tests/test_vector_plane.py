import math

import pytest

from bspcsg.geom import Plane, Polygon, Vector, Vertex, polygon_from_points, vertex


def test_vector_algebra():
    a = Vector(1, 2, 3)
    b = Vector(4, 5, 6)
    assert a + b == Vector(5, 7, 9)
    assert b - a == Vector(3, 3, 3)
    assert a * 2 == Vector(2, 4, 6)
    assert 2 * a == Vector(2, 4, 6)
    assert -a == Vector(-1, -2, -3)
    assert a.dot(b) == 32
    assert Vector(1, 0, 0).cross(Vector(0, 1, 0)) == Vector(0, 0, 1)


def test_vector_unit_and_lerp():
    v = Vector(3, 0, 4).unit()
    assert v.length() == pytest.approx(1.0)
    assert v.x == pytest.approx(0.6)
    assert Vector().unit() == Vector()
    mid = Vector(0, 0, 0).lerp(Vector(2, 4, 6), 0.5)
    assert mid == Vector(1, 2, 3)


def test_vector_finite():
    assert Vector(1, 2, 3).is_finite()
    assert not Vector(math.nan, 0, 0).is_finite()
    assert not Vector(0, math.inf, 0).is_finite()


def test_plane_from_points():
    plane = Plane.from_points(Vector(0, 0, 1), Vector(1, 0, 1), Vector(0, 1, 1))
    assert plane.normal == Vector(0, 0, 1)
    assert plane.w == pytest.approx(1.0)
    assert plane.signed_distance(Vector(5, 5, 3)) == pytest.approx(2.0)


def test_plane_from_collinear_points_is_none():
    assert Plane.from_points(Vector(0, 0, 0), Vector(1, 1, 1), Vector(2, 2, 2)) is None


def test_plane_flip():
    plane = Plane(Vector(0, 1, 0), 2.0)
    flipped = plane.flipped()
    assert flipped.normal == Vector(0, -1, 0)
    assert flipped.w == -2.0
    assert flipped.flipped() == plane


def test_vertex_interpolate_all_attributes():
    a = Vertex(Vector(0, 0, 0), Vector(0, 0, 1), (0.0, 0.0), (1.0, 0.0, 0.0))
    b = Vertex(Vector(2, 0, 0), Vector(0, 0, 1), (1.0, 0.5), (0.0, 0.0, 1.0))
    mid = a.interpolate(b, 0.25)
    assert mid.pos == Vector(0.5, 0, 0)
    assert mid.uv == pytest.approx((0.25, 0.125))
    assert mid.color == pytest.approx((0.75, 0.0, 0.25))


def test_vertex_interpolate_without_color():
    a = vertex(0, 0, 0)
    b = vertex(1, 0, 0)
    assert a.interpolate(b, 0.5).color is None


def test_polygon_plane_from_first_three():
    poly = polygon_from_points([(0, 0, 0), (1, 0, 0), (1, 1, 0), (0, 1, 0)], shared='m')
    assert poly.plane.normal == Vector(0, 0, 1)
    assert poly.shared == 'm'
    assert poly.vertices[0].normal == Vector(0, 0, 1)
    assert poly.area() == pytest.approx(1.0)
    assert poly.centroid() == Vector(0.5, 0.5, 0)


def test_polygon_plane_skips_collinear_prefix():
    poly = polygon_from_points([(0, 0, 0), (1, 0, 0), (2, 0, 0), (2, 1, 0), (0, 1, 0)])
    assert poly.plane is not None
    assert poly.plane.normal == Vector(0, 0, 1)


def test_polygon_without_plane():
    poly = Polygon([vertex(0, 0, 0), vertex(1, 1, 1), vertex(2, 2, 2)])
    assert poly.plane is None


def test_polygon_flip():
    poly = polygon_from_points([(0, 0, 0), (1, 0, 0), (0, 1, 0)], shared=3)
    flipped = poly.flipped()
    assert [v.pos for v in flipped.vertices] == [Vector(0, 1, 0), Vector(1, 0, 0), Vector(0, 0, 0)]
    assert flipped.plane.normal == Vector(0, 0, -1)
    assert all(v.normal == Vector(0, 0, -1) for v in flipped.vertices)
    assert flipped.shared == 3
    # the source polygon is untouched
    assert poly.plane.normal == Vector(0, 0, 1)


def test_polygon_clone_is_independent():
    poly = polygon_from_points([(0, 0, 0), (1, 0, 0), (0, 1, 0)])
    copy = poly.clone()
    copy.vertices.append(vertex(5, 5, 5))
    assert len(poly) == 3
