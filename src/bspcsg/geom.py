"""Value types for polygon-soup CSG: vectors, planes, vertices, polygons.

Vectors, planes and vertices are immutable, so copying one is the same as
sharing it. Polygons hold a list of vertices and are never modified in
place by the engine; flipping or splitting always produces new polygons.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Iterable, List, Optional, Sequence, Tuple

UV = Tuple[float, float]
Color = Tuple[float, float, float]

# cross products shorter than this have no usable direction
_MIN_NORMAL_LENGTH = 1e-12


@dataclass(frozen=True)
class Vector:
    """Immutable ``(x, y, z)`` triple."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @classmethod
    def of(cls, value: Sequence[float] | "Vector") -> "Vector":
        if isinstance(value, Vector):
            return value
        if len(value) < 3:
            raise ValueError("value must have at least three components")
        return cls(float(value[0]), float(value[1]), float(value[2]))

    def __iter__(self):
        yield self.x
        yield self.y
        yield self.z

    def __add__(self, other: "Vector") -> "Vector":
        return Vector(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Vector") -> "Vector":
        return Vector(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, s: float) -> "Vector":
        return Vector(self.x * s, self.y * s, self.z * s)

    __rmul__ = __mul__

    def __truediv__(self, s: float) -> "Vector":
        return Vector(self.x / s, self.y / s, self.z / s)

    def __neg__(self) -> "Vector":
        return self.negated()

    def negated(self) -> "Vector":
        return Vector(-self.x, -self.y, -self.z)

    def dot(self, other: "Vector") -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: "Vector") -> "Vector":
        return Vector(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x,
        )

    def length(self) -> float:
        return math.sqrt(self.dot(self))

    def unit(self) -> "Vector":
        """Return the normalized vector; the zero vector stays zero."""
        m = self.length()
        if m == 0.0:
            return self
        return self / m

    def lerp(self, other: "Vector", t: float) -> "Vector":
        return self + (other - self) * t

    def distance(self, other: "Vector") -> float:
        return (self - other).length()

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y) and math.isfinite(self.z)

    def to_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)


@dataclass(frozen=True)
class Plane:
    """Oriented plane ``{p : normal . p = w}`` with a unit ``normal``."""

    normal: Vector
    w: float

    @classmethod
    def from_points(cls, a: Vector, b: Vector, c: Vector) -> Optional["Plane"]:
        """Plane through three points wound counter-clockwise.

        Returns ``None`` when the points are collinear or not finite.
        """
        n = (b - a).cross(c - a)
        length = n.length()
        if not math.isfinite(length) or length <= _MIN_NORMAL_LENGTH:
            return None
        n = n / length
        return cls(n, n.dot(a))

    def flipped(self) -> "Plane":
        return Plane(self.normal.negated(), -self.w)

    def clone(self) -> "Plane":
        return Plane(self.normal, self.w)

    def signed_distance(self, p: Vector) -> float:
        return self.normal.dot(p) - self.w

    def is_valid(self, eps: float) -> bool:
        if not self.normal.is_finite() or not math.isfinite(self.w):
            return False
        return abs(self.normal.length() - 1.0) <= eps


@dataclass(frozen=True)
class Vertex:
    """Polygon corner with the attributes carried through splitting."""

    pos: Vector
    normal: Vector = Vector()
    uv: UV = (0.0, 0.0)
    color: Optional[Color] = None

    def clone(self) -> "Vertex":
        return replace(self)

    def flipped(self) -> "Vertex":
        return replace(self, normal=self.normal.negated())

    def interpolate(self, other: "Vertex", t: float) -> "Vertex":
        """Linear blend of every attribute; ``t=0`` is ``self``."""
        uv = (self.uv[0] + (other.uv[0] - self.uv[0]) * t,
              self.uv[1] + (other.uv[1] - self.uv[1]) * t)
        color = None
        if self.color is not None or other.color is not None:
            c0 = self.color if self.color is not None else other.color
            c1 = other.color if other.color is not None else self.color
            color = tuple(a + (b - a) * t for a, b in zip(c0, c1))
        return Vertex(self.pos.lerp(other.pos, t),
                      self.normal.lerp(other.normal, t),
                      uv,
                      color)

    def is_finite(self) -> bool:
        return self.pos.is_finite()


def vertex(x: float, y: float, z: float, normal: Sequence[float] | Vector = (0.0, 0.0, 0.0),
           uv: UV = (0.0, 0.0), color: Optional[Color] = None) -> Vertex:
    """Convenience constructor from plain coordinates."""

    return Vertex(Vector(float(x), float(y), float(z)), Vector.of(normal),
                  (float(uv[0]), float(uv[1])),
                  tuple(float(c) for c in color) if color is not None else None)


def _derive_plane(vertices: Sequence[Vertex]) -> Optional[Plane]:
    if len(vertices) < 3:
        return None
    plane = Plane.from_points(vertices[0].pos, vertices[1].pos, vertices[2].pos)
    if plane is not None:
        return plane
    # first three corners are collinear; use the first usable triple
    a = vertices[0].pos
    for j in range(1, len(vertices) - 1):
        for k in range(j + 1, len(vertices)):
            plane = Plane.from_points(a, vertices[j].pos, vertices[k].pos)
            if plane is not None:
                return plane
    return None


class Polygon:
    """Convex planar polygon with an opaque ``shared`` tag.

    ``shared`` is usually a material index; the engine only carries it
    from input polygons to the pieces split off them.
    """

    def __init__(self, vertices: Iterable[Vertex], shared: Any = None,
                 plane: Optional[Plane] = None):
        self.vertices: List[Vertex] = list(vertices)
        self.shared = shared
        self.plane: Optional[Plane] = plane if plane is not None else _derive_plane(self.vertices)

    def __repr__(self) -> str:
        return f"Polygon({len(self.vertices)} vertices, shared={self.shared!r})"

    def __len__(self) -> int:
        return len(self.vertices)

    def clone(self) -> "Polygon":
        return Polygon([v.clone() for v in self.vertices], self.shared, self.plane)

    def flipped(self) -> "Polygon":
        """Reverse winding, negate normals and the plane."""
        plane = self.plane.flipped() if self.plane is not None else None
        return Polygon([v.flipped() for v in reversed(self.vertices)], self.shared, plane)

    @property
    def positions(self) -> List[Vector]:
        return [v.pos for v in self.vertices]

    def centroid(self) -> Vector:
        total = Vector()
        for v in self.vertices:
            total = total + v.pos
        return total / len(self.vertices)

    def area(self) -> float:
        """Area of the polygon, assumed planar."""
        if len(self.vertices) < 3:
            return 0.0
        total = Vector()
        p0 = self.vertices[0].pos
        for i in range(1, len(self.vertices) - 1):
            total = total + (self.vertices[i].pos - p0).cross(self.vertices[i + 1].pos - p0)
        return 0.5 * total.length()

    def key(self, eps: float) -> Tuple[Tuple[int, int, int], ...]:
        """Hashable identity of the vertex positions quantized to ``eps``."""
        scale = 1.0 / eps
        return tuple((round(p.x * scale), round(p.y * scale), round(p.z * scale))
                     for p in self.positions)


def polygon_from_points(points: Sequence[Sequence[float]], shared: Any = None,
                        normal: Optional[Sequence[float]] = None) -> Polygon:
    """Build a polygon from bare coordinates.

    Vertex normals default to the polygon plane normal.
    """

    positions = [Vector.of(p) for p in points]
    plane = _derive_plane([Vertex(p) for p in positions])
    if normal is not None:
        n = Vector.of(normal)
    elif plane is not None:
        n = plane.normal
    else:
        n = Vector()
    return Polygon([Vertex(p, n) for p in positions], shared)


__all__ = [
    'Color',
    'Plane',
    'Polygon',
    'UV',
    'Vector',
    'Vertex',
    'polygon_from_points',
    'vertex',
]
