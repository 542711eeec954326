"""Conversion between polygon soups and renderable triangle buffers.

Buffers are numpy arrays laid out the way GPU meshes expect them:
``positions`` and ``normals`` are ``(n, 3)``, ``uvs`` is ``(n, 2)`` and
``indices`` lists three vertex indices per triangle. Draw groups map
contiguous index ranges to the ``shared`` tag (material) of the polygons
they came from.

Interop with :class:`trimesh.Trimesh` is available when the optional
``trimesh`` package is installed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

try:
    import trimesh
except ImportError:  # pragma: no cover - optional dependency
    trimesh = None  # type: ignore[assignment]

from bspcsg.config import get_settings
from bspcsg.geom import Polygon, Vector, Vertex
from bspcsg.result import ErrorKind, Result, failure, success
from bspcsg.validation import soup_counts

logger = logging.getLogger(__name__)


@dataclass
class MeshGroup:
    start: int
    count: int
    shared: Any = None


@dataclass
class MeshBuffers:
    positions: np.ndarray
    normals: np.ndarray
    uvs: np.ndarray
    indices: np.ndarray
    colors: Optional[np.ndarray] = None
    groups: List[MeshGroup] = field(default_factory=list)

    @property
    def triangle_count(self) -> int:
        return int(len(self.indices) // 3)


def _as_array(values, width: int, name: str) -> Optional[np.ndarray]:
    if values is None:
        return None
    arr = np.asarray(values, dtype=float)
    if arr.ndim == 1:
        if arr.size % width:
            raise ValueError(f'{name} length {arr.size} is not a multiple of {width}')
        arr = arr.reshape(-1, width)
    if arr.ndim != 2 or arr.shape[1] != width:
        raise ValueError(f'{name} must have shape (n, {width}), got {arr.shape}')
    return arr


def _group_for(index_pos: int, groups: Sequence[Tuple[int, int, Any]]) -> Any:
    for start, count, material in groups:
        if start <= index_pos < start + count:
            return material
    return None


def polygons_from_buffers(positions, indices=None, normals=None, uvs=None, colors=None,
                          groups: Optional[Sequence[Tuple[int, int, Any]]] = None,
                          shared: Any = None) -> List[Polygon]:
    """Build one triangle polygon per face of an (optionally indexed) mesh.

    Without ``indices`` the positions are read as consecutive triangles.
    ``groups`` holds ``(start, count, material)`` ranges over the index
    array; when ``shared`` is ``None`` each triangle is tagged with the
    material of the group containing it. Degenerate triangles are skipped.
    """

    pos = _as_array(positions, 3, 'positions')
    nrm = _as_array(normals, 3, 'normals')
    uv = _as_array(uvs, 2, 'uvs')
    col = _as_array(colors, 3, 'colors')
    if indices is None:
        idx = np.arange(len(pos), dtype=np.int64)
    else:
        idx = np.asarray(indices, dtype=np.int64).reshape(-1)
    if idx.size % 3:
        raise ValueError(f'index count {idx.size} is not a multiple of 3')
    if idx.size and (idx.min() < 0 or idx.max() >= len(pos)):
        raise ValueError('index out of range for positions')

    polygons = []
    skipped = 0
    for i in range(0, idx.size, 3):
        verts = []
        for vi in idx[i:i + 3]:
            verts.append(Vertex(
                Vector(*pos[vi]),
                Vector(*nrm[vi]) if nrm is not None else Vector(),
                (float(uv[vi][0]), float(uv[vi][1])) if uv is not None else (0.0, 0.0),
                tuple(float(c) for c in col[vi]) if col is not None else None,
            ))
        tag = shared
        if tag is None and groups:
            tag = _group_for(i, groups)
        poly = Polygon(verts, tag)
        if poly.plane is None:
            skipped += 1
            continue
        if nrm is None:
            poly = Polygon([Vertex(v.pos, poly.plane.normal, v.uv, v.color) for v in verts],
                           tag, poly.plane)
        polygons.append(poly)
    if skipped:
        logger.warning('skipped %d degenerate triangles', skipped)
    return polygons


def polygons_to_buffers(polygons: Iterable[Polygon], max_triangles: Optional[int] = None) -> Result[MeshBuffers]:
    """Fan-triangulate ``polygons`` into flat buffers grouped by tag.

    Polygons with a ``shared`` tag are grouped in order of first
    appearance; untagged polygons form a final group.
    """

    polygons = list(polygons)
    if max_triangles is None:
        max_triangles = get_settings().max_triangles
    tri_count = soup_counts(polygons)[2]
    if tri_count > max_triangles:
        return failure(f'triangle count {tri_count} exceeds maximum {max_triangles}',
                       ErrorKind.EXCEEDS_LIMITS)

    n = tri_count * 3
    positions = np.zeros((n, 3), dtype=float)
    normals = np.zeros((n, 3), dtype=float)
    uvs = np.zeros((n, 2), dtype=float)
    has_color = any(v.color is not None for p in polygons for v in p.vertices)
    colors = np.zeros((n, 3), dtype=float) if has_color else None

    tagged: Dict[Any, List[int]] = {}
    untagged: List[int] = []
    top = 0
    for poly in polygons:
        verts = poly.vertices
        fallback = next((v.color for v in verts if v.color is not None), None)
        target = untagged if poly.shared is None else tagged.setdefault(poly.shared, [])
        for j in range(2, len(verts)):
            for v in (verts[0], verts[j - 1], verts[j]):
                positions[top] = v.pos.to_tuple()
                normals[top] = v.normal.to_tuple()
                uvs[top] = v.uv
                if colors is not None:
                    colors[top] = v.color if v.color is not None else (fallback or (0.0, 0.0, 0.0))
                target.append(top)
                top += 1

    indices: List[int] = []
    groups: List[MeshGroup] = []
    for tag, idx in tagged.items():
        groups.append(MeshGroup(len(indices), len(idx), tag))
        indices.extend(idx)
    if untagged:
        groups.append(MeshGroup(len(indices), len(untagged), None))
        indices.extend(untagged)

    return success(MeshBuffers(positions, normals, uvs,
                               np.asarray(indices, dtype=np.int64), colors, groups))


def transform_polygons(polygons: Iterable[Polygon], matrix) -> List[Polygon]:
    """Apply a 4x4 affine ``matrix`` to positions and normals.

    Normals use the inverse transpose of the linear part. Mirroring
    matrices reverse the winding so faces keep pointing outward.
    """

    m = np.asarray(matrix, dtype=float)
    if m.shape != (4, 4):
        raise ValueError(f'matrix must be 4x4, got {m.shape}')
    linear = m[:3, :3]
    det = np.linalg.det(linear)
    if abs(det) < 1e-12:
        raise ValueError('matrix is singular')
    normal_matrix = np.linalg.inv(linear).T
    mirror = det < 0

    result = []
    for poly in polygons:
        verts = []
        for v in poly.vertices:
            p = m @ np.array([v.pos.x, v.pos.y, v.pos.z, 1.0])
            if p[3] != 1.0 and p[3] != 0.0:
                p = p / p[3]
            nvec = normal_matrix @ np.array(v.normal.to_tuple())
            normal = Vector(*nvec).unit()
            verts.append(Vertex(Vector(p[0], p[1], p[2]), normal, v.uv, v.color))
        if mirror:
            verts.reverse()
        result.append(Polygon(verts, poly.shared))
    return result


def translation(offset: Sequence[float]) -> np.ndarray:
    m = np.eye(4)
    m[:3, 3] = np.asarray(offset, dtype=float)[:3]
    return m


def polygons_from_trimesh(mesh: "trimesh.Trimesh", shared: Any = None) -> List[Polygon]:
    """Convert a :class:`trimesh.Trimesh` into a polygon soup."""

    if trimesh is None:  # pragma: no cover - optional dependency
        raise RuntimeError('trimesh is not installed')
    vertices = np.asarray(mesh.vertices, dtype=float)
    faces = np.asarray(mesh.faces, dtype=np.int64)
    return polygons_from_buffers(vertices, faces, shared=shared)


def polygons_to_trimesh(polygons: Iterable[Polygon]) -> "trimesh.Trimesh":
    """Convert a polygon soup into a :class:`trimesh.Trimesh`.

    Coincident vertices are merged; T-junctions are left as they are.
    """

    if trimesh is None:  # pragma: no cover - optional dependency
        raise RuntimeError('trimesh is not installed')
    buffers = polygons_to_buffers(polygons).unwrap()
    faces = buffers.indices.reshape(-1, 3)
    mesh = trimesh.Trimesh(vertices=buffers.positions, faces=faces, process=False)
    mesh.merge_vertices()
    return mesh


__all__ = [
    'MeshBuffers',
    'MeshGroup',
    'polygons_from_buffers',
    'polygons_from_trimesh',
    'polygons_to_buffers',
    'polygons_to_trimesh',
    'transform_polygons',
    'translation',
]
