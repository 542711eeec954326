"""Primitive solids built directly as polygon soups.

All primitives are closed, wound counter-clockwise when seen from
outside, and carry outward vertex normals.
"""

from __future__ import annotations

import math
from typing import Any, Sequence, Union

from bspcsg.csg import CSG
from bspcsg.geom import Polygon, Vector, Vertex

Size = Union[float, Sequence[float]]

# corner indices and outward normal for each cube face
_CUBE_FACES = (
    ((0, 4, 6, 2), (-1, 0, 0)),
    ((1, 3, 7, 5), (1, 0, 0)),
    ((0, 1, 5, 4), (0, -1, 0)),
    ((2, 6, 7, 3), (0, 1, 0)),
    ((0, 2, 3, 1), (0, 0, -1)),
    ((4, 5, 7, 6), (0, 0, 1)),
)

# uv corners matching the face index order above
_FACE_UVS = ((0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0))


def _triple(value: Size) -> Vector:
    if isinstance(value, (int, float)):
        return Vector(float(value), float(value), float(value))
    return Vector.of(value)


def cube(center: Sequence[float] = (0.0, 0.0, 0.0), size: Size = 1.0, shared: Any = None) -> CSG:
    """Axis-aligned box with edge lengths ``size`` centered at ``center``."""

    c = Vector.of(center)
    half = _triple(size) * 0.5
    if min(half) <= 0.0:
        raise ValueError('cube size must be positive')
    polygons = []
    for indices, normal in _CUBE_FACES:
        n = Vector(*map(float, normal))
        verts = []
        for k, i in enumerate(indices):
            pos = Vector(
                c.x + half.x * (2 * bool(i & 1) - 1),
                c.y + half.y * (2 * bool(i & 2) - 1),
                c.z + half.z * (2 * bool(i & 4) - 1),
            )
            verts.append(Vertex(pos, n, _FACE_UVS[k]))
        polygons.append(Polygon(verts, shared))
    return CSG(polygons)


def sphere(center: Sequence[float] = (0.0, 0.0, 0.0), radius: float = 1.0,
           slices: int = 16, stacks: int = 8, shared: Any = None) -> CSG:
    """UV sphere; the poles lie on the y axis."""

    if radius <= 0.0:
        raise ValueError('sphere radius must be positive')
    if slices < 3 or stacks < 2:
        raise ValueError('sphere needs at least 3 slices and 2 stacks')
    c = Vector.of(center)

    def _vertex(u: float, v: float) -> Vertex:
        theta = u * math.pi * 2.0
        phi = v * math.pi
        direction = Vector(math.cos(theta) * math.sin(phi),
                           math.cos(phi),
                           math.sin(theta) * math.sin(phi))
        return Vertex(c + direction * radius, direction, (u, v))

    polygons = []
    for i in range(slices):
        for j in range(stacks):
            verts = [_vertex(i / slices, j / stacks)]
            if j > 0:
                verts.append(_vertex((i + 1) / slices, j / stacks))
            if j < stacks - 1:
                verts.append(_vertex((i + 1) / slices, (j + 1) / stacks))
            verts.append(_vertex(i / slices, (j + 1) / stacks))
            polygons.append(Polygon(verts, shared))
    return CSG(polygons)


def cylinder(start: Sequence[float] = (0.0, -1.0, 0.0), end: Sequence[float] = (0.0, 1.0, 0.0),
             radius: float = 1.0, slices: int = 16, shared: Any = None) -> CSG:
    """Capped cylinder between ``start`` and ``end``."""

    if radius <= 0.0:
        raise ValueError('cylinder radius must be positive')
    if slices < 3:
        raise ValueError('cylinder needs at least 3 slices')
    s = Vector.of(start)
    e = Vector.of(end)
    ray = e - s
    if ray.length() == 0.0:
        raise ValueError('cylinder start and end must differ')
    axis_z = ray.unit()
    is_y = abs(axis_z.y) > 0.5
    axis_x = Vector(float(is_y), float(not is_y), 0.0).cross(axis_z).unit()
    axis_y = axis_x.cross(axis_z).unit()
    start_v = Vertex(s, axis_z.negated())
    end_v = Vertex(e, axis_z)

    def _point(stack: float, slice_: float, normal_blend: float) -> Vertex:
        angle = slice_ * math.pi * 2.0
        out = axis_x * math.cos(angle) + axis_y * math.sin(angle)
        pos = s + ray * stack + out * radius
        normal = out * (1.0 - abs(normal_blend)) + axis_z * normal_blend
        return Vertex(pos, normal, (slice_, stack))

    polygons = []
    for i in range(slices):
        t0 = i / slices
        t1 = (i + 1) / slices
        polygons.append(Polygon([start_v, _point(0, t0, -1), _point(0, t1, -1)], shared))
        polygons.append(Polygon([_point(0, t1, 0), _point(0, t0, 0),
                                 _point(1, t0, 0), _point(1, t1, 0)], shared))
        polygons.append(Polygon([end_v, _point(1, t1, 1), _point(1, t0, 1)], shared))
    return CSG(polygons)


__all__ = ['cube', 'cylinder', 'sphere']
