"""Plane classification and polygon splitting."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from bspcsg.config import get_settings
from bspcsg.geom import Plane, Polygon, Vector

COPLANAR = 0
FRONT = 1
BACK = 2
SPANNING = 3


@dataclass
class SplitResult:
    coplanar_front: List[Polygon] = field(default_factory=list)
    coplanar_back: List[Polygon] = field(default_factory=list)
    front: List[Polygon] = field(default_factory=list)
    back: List[Polygon] = field(default_factory=list)


def _eps(eps: Optional[float]) -> float:
    return get_settings().epsilon if eps is None else eps


def classify_point(point: Vector, plane: Plane, eps: Optional[float] = None) -> int:
    t = plane.normal.dot(point) - plane.w
    e = _eps(eps)
    if t < -e:
        return BACK
    if t > e:
        return FRONT
    return COPLANAR


def classify_polygon(polygon: Polygon, plane: Plane, eps: Optional[float] = None) -> int:
    e = _eps(eps)
    kind = COPLANAR
    for v in polygon.vertices:
        kind |= classify_point(v.pos, plane, e)
    return kind


def split_polygon(polygon: Polygon, plane: Plane, eps: Optional[float] = None) -> SplitResult:
    """Split ``polygon`` by ``plane`` into the four classification buckets.

    A spanning polygon yields at most one front and one back piece, both
    tagged with the original ``shared`` value. Pieces left with fewer than
    three vertices, or too thin to define a plane, are dropped.
    """

    e = _eps(eps)
    result = SplitResult()
    types = [classify_point(v.pos, plane, e) for v in polygon.vertices]
    kind = COPLANAR
    for t in types:
        kind |= t

    if kind == COPLANAR:
        if plane.normal.dot(polygon.plane.normal) > 0:
            result.coplanar_front.append(polygon)
        else:
            result.coplanar_back.append(polygon)
    elif kind == FRONT:
        result.front.append(polygon)
    elif kind == BACK:
        result.back.append(polygon)
    else:
        f = []
        b = []
        verts = polygon.vertices
        n = len(verts)
        for i in range(n):
            j = (i + 1) % n
            ti = types[i]
            tj = types[j]
            vi = verts[i]
            vj = verts[j]
            if ti != BACK:
                f.append(vi)
            if ti != FRONT:
                b.append(vi.clone() if ti != BACK else vi)
            if (ti | tj) == SPANNING:
                denom = plane.normal.dot(vj.pos - vi.pos)
                t = (plane.w - plane.normal.dot(vi.pos)) / denom
                v = vi.interpolate(vj, t)
                f.append(v)
                b.append(v.clone())
        for verts_out, bucket in ((f, result.front), (b, result.back)):
            if len(verts_out) < 3:
                continue
            piece = Polygon(verts_out, polygon.shared)
            # slivers too thin to span a plane are dropped like short pieces
            if piece.plane is not None:
                bucket.append(piece)
    return result


__all__ = [
    'BACK',
    'COPLANAR',
    'FRONT',
    'SPANNING',
    'SplitResult',
    'classify_point',
    'classify_polygon',
    'split_polygon',
]
