import math

import pytest

from bspcsg.bsp import BSPNode
from bspcsg.config import settings_override
from bspcsg.csg import CSG, OPERATIONS, boolean, intersect, inverse, subtract, union
from bspcsg.geom import Polygon, Vector, polygon_from_points, vertex
from bspcsg.primitives import cube, cylinder
from bspcsg.result import CSGError, ErrorKind, failure
from bspcsg.validation import soup_bounds, soup_volume, soup_watertight

EPS = 1e-5


def _canonical(csg):
    return sorted(tuple(sorted(p.key(EPS))) for p in csg.polygons)


def _assert_bounds(csg, lo, hi):
    box = soup_bounds(csg.polygons)
    assert box is not None
    assert tuple(box[0]) == pytest.approx(lo, abs=EPS)
    assert tuple(box[1]) == pytest.approx(hi, abs=EPS)


@pytest.fixture
def overlapping():
    return cube(), cube(center=(0.25, 0.0, 0.0))


def test_union_of_overlapping_cubes(overlapping):
    a, b = overlapping
    res = a.union(b)
    assert res
    result = res.value
    check = soup_watertight(result.polygons)
    assert check.ok, check.warnings
    assert soup_volume(result.polygons) == pytest.approx(1.25)
    _assert_bounds(result, (-0.5, -0.5, -0.5), (0.75, 0.5, 0.5))


def test_subtract_of_overlapping_cubes(overlapping):
    a, b = overlapping
    result = a.subtract(b).unwrap()
    check = soup_watertight(result.polygons)
    assert check.ok, check.warnings
    assert soup_volume(result.polygons) == pytest.approx(0.25)
    _assert_bounds(result, (-0.5, -0.5, -0.5), (-0.25, 0.5, 0.5))


def test_intersect_of_overlapping_cubes(overlapping):
    a, b = overlapping
    result = a.intersect(b).unwrap()
    check = soup_watertight(result.polygons)
    assert check.ok, check.warnings
    assert soup_volume(result.polygons) == pytest.approx(0.75)
    _assert_bounds(result, (-0.25, -0.5, -0.5), (0.5, 0.5, 0.5))


def test_every_face_points_outward(overlapping):
    a, b = overlapping
    for op in (union, subtract, intersect):
        result = op(a, b).unwrap()
        lo, hi = soup_bounds(result.polygons)
        middle = (lo + hi) * 0.5
        # every result here is a box, so outward means away from its center
        for poly in result.polygons:
            outward = poly.centroid() - middle
            assert poly.plane.normal.dot(outward) > 0


def test_disjoint_union_keeps_polygon_count():
    a = cube()
    b = cube(center=(3.0, 0.0, 0.0))
    result = union(a, b).unwrap()
    assert result.polygon_count == a.polygon_count + b.polygon_count
    assert soup_volume(result.polygons) == pytest.approx(2.0)


def test_de_morgan_identity():
    a = cube()
    b = cube(center=(0.5, 0.0, 0.0))
    direct = subtract(a, b).unwrap()
    via_union = inverse(union(inverse(a).unwrap(), b).unwrap()).unwrap()
    assert direct.polygon_count == via_union.polygon_count
    assert _canonical(direct) == _canonical(via_union)
    assert soup_volume(direct.polygons) == pytest.approx(soup_volume(via_union.polygons))
    assert soup_volume(direct.polygons) == pytest.approx(0.5)


def test_inverse_flips_every_polygon():
    a = cube()
    inv = a.inverse().unwrap()
    assert inv.polygon_count == 6
    assert soup_volume(inv.polygons) == pytest.approx(-1.0)
    for original, flipped in zip(a.polygons, inv.polygons):
        assert flipped.plane.normal == -original.plane.normal
    back = inv.inverse().unwrap()
    assert _canonical(back) == _canonical(a)


def test_operands_are_not_modified(overlapping):
    a, b = overlapping
    before_a = [p.key(EPS) for p in a.polygons]
    before_b = [p.key(EPS) for p in b.polygons]
    for name in ('union', 'subtract', 'intersect'):
        assert boolean(a, b, name)
    assert a.inverse()
    assert [p.key(EPS) for p in a.polygons] == before_a
    assert [p.key(EPS) for p in b.polygons] == before_b


def test_degenerate_polygon_never_reaches_output():
    bad = Polygon([vertex(10, 10, 10), vertex(10, 10, 10), vertex(11, 10, 10)])
    soup = cube().polygons + [bad]
    wrapped = CSG.from_polygons(soup).unwrap()
    assert wrapped.polygon_count == 6
    for op in (union, subtract, intersect):
        result = op(soup, cube(center=(0.25, 0, 0))).unwrap()
        assert all(v.pos.x < 5 for p in result.polygons for v in p.vertices)


def test_from_polygons_logs_dropped(caplog):
    bad = Polygon([vertex(0, 0, 0), vertex(1, 0, 0)])
    with caplog.at_level('WARNING', logger='bspcsg.csg'):
        csg = CSG.from_polygons([bad]).unwrap()
    assert csg.is_empty()
    assert 'filtered out 1 invalid polygons' in caplog.text


def test_limits_are_checked_before_tree_work(monkeypatch, overlapping):
    a, b = overlapping

    def _unexpected(self, polygons):
        raise AssertionError('tree built despite limit failure')

    monkeypatch.setattr(BSPNode, 'build', _unexpected)
    with settings_override(max_polygons=5):
        res = a.union(b)
    assert not res
    assert res.kind == ErrorKind.EXCEEDS_LIMITS
    assert res.error == 'union operand A: polygon count 6 exceeds maximum 5'


def test_triangle_limit(overlapping):
    a, b = overlapping
    with settings_override(max_triangles=11):
        res = a.intersect(b)
    assert res.kind == ErrorKind.EXCEEDS_LIMITS
    with pytest.raises(CSGError) as info:
        res.unwrap()
    assert info.value.kind == ErrorKind.EXCEEDS_LIMITS


def test_step_failure_aborts_operation(monkeypatch, overlapping):
    a, b = overlapping
    monkeypatch.setattr(BSPNode, 'invert', lambda self: failure('boom'))
    res = a.subtract(b)
    assert not res
    assert res.value is None
    assert res.kind == ErrorKind.OPERATION_FAILURE
    assert res.error == 'subtract failed during A.invert(): boom'


def test_union_failure_mentions_step(monkeypatch, overlapping):
    a, b = overlapping
    monkeypatch.setattr(BSPNode, 'clip_to', lambda self, other: failure('clip broke'))
    res = union(a, b)
    assert res.error == 'union failed during A.clip_to(B): clip broke'


def test_boolean_dispatch():
    assert set(OPERATIONS) == {'union', 'subtract', 'difference', 'intersect', 'intersection'}
    a = cube()
    b = cube(center=(0.25, 0, 0))
    diff = boolean(a, b, 'Difference').unwrap()
    assert soup_volume(diff.polygons) == pytest.approx(0.25)
    res = boolean(a, b, 'xor')
    assert not res
    assert 'xor' in res.error


def test_cylinder_hole_through_cube():
    block = cube(size=2.0)
    rod = cylinder(start=(0, -2, 0), end=(0, 2, 0), radius=0.5, slices=16)
    result = block.subtract(rod).unwrap()
    section = 0.5 * 16 * 0.25 * math.sin(2 * math.pi / 16)
    assert soup_volume(result.polygons) == pytest.approx(8.0 - 2.0 * section, abs=1e-3)
    _assert_bounds(result, (-1, -1, -1), (1, 1, 1))


def test_csg_counts_and_bounds():
    a = cube(center=(1, 2, 3), size=(2, 4, 6))
    assert a.polygon_count == 6
    assert a.vertex_count == 24
    assert a.triangle_count == 12
    lo, hi = a.bounds()
    assert lo == Vector(0, 0, 0)
    assert hi == Vector(2, 4, 6)


def test_union_with_sliver_pieces_succeeds():
    x = 2e-5
    wall = polygon_from_points([(x, -1, -1), (x, -1, 1), (x, 1, 1), (x, 1, -1)])
    thin = polygon_from_points([(0, 0, 0), (1, 0, 0), (1, 1e-3, 0)])
    for op in (union, subtract, intersect):
        res = op([wall], [thin])
        assert res, res.error
        assert all(p.plane is not None for p in res.value.polygons)


def test_unexpected_error_inside_operation_is_reported(monkeypatch):
    import bspcsg.bsp as bsp_module

    def _broken(*args, **kwargs):
        raise IndexError('vertex list exhausted')

    monkeypatch.setattr(bsp_module, 'split_polygon', _broken)
    res = union(cube(), cube(center=(0.25, 0, 0)))
    assert not res
    assert res.kind == ErrorKind.OPERATION_FAILURE
    assert res.error == 'union failed building A: BSP tree build failed: vertex list exhausted'
