"""Validation helpers for polygon soups."""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from bspcsg.config import CSGSettings, get_settings
from bspcsg.geom import Polygon, Vector
from bspcsg.result import ErrorKind, Result, failure, success

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    ok: bool
    warnings: List[str]

    def __bool__(self) -> bool:
        return self.ok


def polygon_problems(polygon: Polygon, eps: Optional[float] = None) -> List[str]:
    """Return the reasons ``polygon`` is unusable; empty when it is valid."""

    if eps is None:
        eps = get_settings().epsilon
    problems: List[str] = []
    vertices = getattr(polygon, 'vertices', None)
    if vertices is None:
        return ['missing vertices']
    if len(vertices) < 3:
        problems.append(f'{len(vertices)} vertices, need at least 3')
    if not all(v.pos.is_finite() for v in vertices):
        problems.append('non-finite vertex coordinates')
        return problems
    for i in range(len(vertices)):
        for j in range(i + 1, len(vertices)):
            if vertices[i].pos.distance(vertices[j].pos) <= eps:
                problems.append(f'coincident vertices {i} and {j}')
                break
        else:
            continue
        break
    plane = polygon.plane
    if plane is None or not plane.is_valid(eps):
        problems.append('degenerate plane')
        return problems
    for idx, v in enumerate(vertices):
        if abs(plane.signed_distance(v.pos)) > eps:
            problems.append(f'vertex {idx} off the polygon plane')
            break
    return problems


def is_valid_polygon(polygon: Polygon, eps: Optional[float] = None) -> bool:
    return not polygon_problems(polygon, eps)


def filter_valid(polygons: Iterable[Polygon], eps: Optional[float] = None) -> Tuple[List[Polygon], int]:
    """Split out the valid polygons, returning them with the dropped count."""

    valid = []
    dropped = 0
    for poly in polygons:
        if is_valid_polygon(poly, eps):
            valid.append(poly)
        else:
            dropped += 1
    return valid, dropped


def soup_counts(polygons: Sequence[Polygon]) -> Tuple[int, int, int]:
    """Return ``(polygons, vertices, triangles)`` for a fan triangulation."""

    vertices = 0
    triangles = 0
    for poly in polygons:
        n = len(poly.vertices)
        vertices += n
        triangles += max(n - 2, 0)
    return len(polygons), vertices, triangles


def check_limits(polygons: Sequence[Polygon], settings: Optional[CSGSettings] = None) -> Result[None]:
    """Reject soups larger than the configured ceilings."""

    if settings is None:
        settings = get_settings()
    n_polys, n_verts, n_tris = soup_counts(polygons)
    if n_polys > settings.max_polygons:
        return failure(f'polygon count {n_polys} exceeds maximum {settings.max_polygons}',
                       ErrorKind.EXCEEDS_LIMITS)
    if n_verts > settings.max_vertices:
        return failure(f'vertex count {n_verts} exceeds maximum {settings.max_vertices}',
                       ErrorKind.EXCEEDS_LIMITS)
    if n_tris > settings.max_triangles:
        return failure(f'triangle count {n_tris} exceeds maximum {settings.max_triangles}',
                       ErrorKind.EXCEEDS_LIMITS)
    return success()


def soup_bounds(polygons: Iterable[Polygon]) -> Optional[Tuple[Vector, Vector]]:
    """Axis-aligned ``(min, max)`` corners, or ``None`` for an empty soup."""

    lo = [math.inf, math.inf, math.inf]
    hi = [-math.inf, -math.inf, -math.inf]
    seen = False
    for poly in polygons:
        for v in poly.vertices:
            seen = True
            for axis, value in enumerate(v.pos):
                lo[axis] = min(lo[axis], value)
                hi[axis] = max(hi[axis], value)
    if not seen:
        return None
    return Vector(*lo), Vector(*hi)


def soup_area(polygons: Iterable[Polygon]) -> float:
    return sum(poly.area() for poly in polygons)


def soup_volume(polygons: Iterable[Polygon]) -> float:
    """Signed enclosed volume by the divergence theorem.

    Positive for a closed soup with outward (counter-clockwise) winding.
    T-junctions do not affect the result.
    """

    total = 0.0
    for poly in polygons:
        verts = poly.vertices
        if len(verts) < 3:
            continue
        p0 = verts[0].pos
        for i in range(1, len(verts) - 1):
            total += p0.dot(verts[i].pos.cross(verts[i + 1].pos))
    return total / 6.0


def _point_key(p: Vector, eps: float) -> Tuple[int, int, int]:
    scale = 1.0 / eps
    return (round(p.x * scale), round(p.y * scale), round(p.z * scale))


def _edge_key(a, b):
    return (a, b) if a < b else (b, a)


def _points_on_segment(a: Vector, b: Vector, candidates: Sequence[Vector], eps: float) -> List[Vector]:
    direction = b - a
    length_sq = direction.dot(direction)
    if length_sq <= eps * eps:
        return []
    hits = []
    for p in candidates:
        t = (p - a).dot(direction) / length_sq
        if t <= 0.0 or t >= 1.0:
            continue
        if (a + direction * t).distance(p) > eps:
            continue
        if p.distance(a) <= eps or p.distance(b) <= eps:
            continue
        hits.append((t, p))
    hits.sort(key=lambda item: item[0])
    return [p for _, p in hits]


def soup_watertight(polygons: Sequence[Polygon], eps: Optional[float] = None) -> CheckResult:
    """Check that every edge of the soup bounds exactly two polygon sides.

    Edges are first subdivided at any soup vertex lying on them, so a long
    edge meeting two shorter ones (a T-junction) still counts as closed.
    """

    if eps is None:
        eps = get_settings().epsilon
    unique = {}
    for poly in polygons:
        for v in poly.vertices:
            unique.setdefault(_point_key(v.pos, eps), v.pos)
    points = list(unique.values())

    edges = Counter()
    for poly in polygons:
        verts = poly.vertices
        for i in range(len(verts)):
            a = verts[i].pos
            b = verts[(i + 1) % len(verts)].pos
            chain = [a] + _points_on_segment(a, b, points, eps) + [b]
            for start, end in zip(chain, chain[1:]):
                ka = _point_key(start, eps)
                kb = _point_key(end, eps)
                if ka == kb:
                    continue
                edges[_edge_key(ka, kb)] += 1

    boundary = [edge for edge, count in edges.items() if count == 1]
    invalid = [edge for edge, count in edges.items() if count > 2]

    warnings: List[str] = []
    ok = True
    if not edges:
        ok = False
        warnings.append('no edges found')
    if boundary:
        ok = False
        warnings.append(f'{len(boundary)} boundary edges detected')
    if invalid:
        ok = False
        warnings.append(f'{len(invalid)} edges with multiplicity >2')
    return CheckResult(ok, warnings)


__all__ = [
    'CheckResult',
    'check_limits',
    'filter_valid',
    'is_valid_polygon',
    'polygon_problems',
    'soup_area',
    'soup_bounds',
    'soup_counts',
    'soup_volume',
    'soup_watertight',
]
