"""Binary space partitioning tree over convex polygons.

Each node stores the polygons lying in its plane; ``front`` and ``back``
hold everything strictly on either side. A node without a plane is an
empty leaf. In ``clip_polygons`` a missing back child stands for solid
space, so anything that reaches it is removed.

Every walk uses an explicit stack rather than recursion, so deep trees
built from large soups stay within Python's recursion limit.
"""

from __future__ import annotations

import functools
import logging
from typing import Iterable, List, Optional

from bspcsg.config import get_settings
from bspcsg.geom import Plane, Polygon
from bspcsg.result import Result, failure, success
from bspcsg.split import split_polygon
from bspcsg.validation import filter_valid

logger = logging.getLogger(__name__)


def _guarded(step: str):
    """Turn any error raised inside a tree walk into a failed Result."""

    def decorate(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except Exception as exc:
                message = f'{step} failed: {exc}'
                logger.exception(message)
                return failure(message)
        return wrapper
    return decorate


def _node_key(polygon: Polygon, eps: float):
    # faces doubled with another material are distinct polygons
    tag = polygon.shared
    try:
        hash(tag)
    except TypeError:
        tag = id(polygon.shared)
    return tag, polygon.key(eps)


def _refiltered(pieces: List[Polygon], eps: float) -> List[Polygon]:
    valid, dropped = filter_valid(pieces, eps)
    if dropped:
        logger.debug('dropped %d degenerate split pieces', dropped)
    return valid


class BSPNode:
    """One node of a BSP tree; the root node owns the whole tree."""

    def __init__(self):
        self.polygons: List[Polygon] = []
        self.plane: Optional[Plane] = None
        self.front: Optional[BSPNode] = None
        self.back: Optional[BSPNode] = None

    def __repr__(self) -> str:
        return (f"BSPNode(polygons={len(self.polygons)}, "
                f"front={'yes' if self.front else 'no'}, back={'yes' if self.back else 'no'})")

    @classmethod
    def from_polygons(cls, polygons: Iterable[Polygon]) -> Result["BSPNode"]:
        node = cls()
        res = node.build(polygons)
        if not res:
            return res
        return success(node)

    def is_empty(self) -> bool:
        return self.plane is None

    def _nodes(self):
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            if node.back is not None:
                stack.append(node.back)
            if node.front is not None:
                stack.append(node.front)

    def clone(self) -> "BSPNode":
        """Deep copy of the tree rooted here."""
        root = BSPNode()
        stack = [(self, root)]
        while stack:
            src, dst = stack.pop()
            dst.plane = src.plane.clone() if src.plane is not None else None
            dst.polygons = [p.clone() for p in src.polygons]
            if src.front is not None:
                dst.front = BSPNode()
                stack.append((src.front, dst.front))
            if src.back is not None:
                dst.back = BSPNode()
                stack.append((src.back, dst.back))
        return root

    @_guarded('BSP tree inversion')
    def invert(self) -> Result[None]:
        """Swap solid and empty space for the whole tree."""
        for node in list(self._nodes()):
            node.polygons = [p.flipped() for p in node.polygons]
            if node.plane is not None:
                node.plane = node.plane.flipped()
            node.front, node.back = node.back, node.front
        return success()

    @_guarded('polygon clipping')
    def clip_polygons(self, polygons: Iterable[Polygon]) -> Result[List[Polygon]]:
        """Return the parts of ``polygons`` outside the solid of this tree."""
        eps = get_settings().epsilon
        kept: List[Polygon] = []
        stack = [(self, list(polygons))]
        while stack:
            node, polys = stack.pop()
            if not polys:
                continue
            if node.plane is None:
                kept.extend(polys)
                continue
            front: List[Polygon] = []
            back: List[Polygon] = []
            for poly in polys:
                parts = split_polygon(poly, node.plane, eps)
                front.extend(parts.coplanar_front)
                front.extend(parts.front)
                back.extend(parts.coplanar_back)
                back.extend(parts.back)
            # front pieces must come out before back pieces
            if node.back is not None:
                stack.append((node.back, back))
            if node.front is not None:
                stack.append((node.front, front))
            else:
                kept.extend(front)
        return success(kept)

    @_guarded('BSP tree clipping')
    def clip_to(self, other: "BSPNode") -> Result[None]:
        """Remove every polygon of this tree that lies inside ``other``."""
        for node in list(self._nodes()):
            res = other.clip_polygons(node.polygons)
            if not res:
                return res.prefixed('clip_to')
            node.polygons = res.value
        return success()

    def all_polygons(self) -> List[Polygon]:
        """Pre-order list of every polygon in the tree."""
        polygons: List[Polygon] = []
        for node in self._nodes():
            polygons.extend(node.polygons)
        return polygons

    @_guarded('BSP tree build')
    def build(self, polygons: Iterable[Polygon]) -> Result[None]:
        """Insert ``polygons`` into the tree.

        Malformed polygons are dropped with a warning, and split pieces are
        re-checked before they move down the tree. Polygons already stored
        at the node they land on with the same ``shared`` tag are not added
        twice, so building the same input again leaves the tree unchanged.
        """
        polygons = list(polygons)
        if not polygons:
            return success()
        eps = get_settings().epsilon
        valid, dropped = filter_valid(polygons, eps)
        if dropped:
            logger.warning('dropped %d invalid polygons while building BSP tree', dropped)
        stack = [(self, valid)]
        while stack:
            node, polys = stack.pop()
            if not polys:
                continue
            if node.plane is None:
                node.plane = polys[0].plane.clone()
            seen = {_node_key(p, eps) for p in node.polygons}
            front: List[Polygon] = []
            back: List[Polygon] = []
            for poly in polys:
                parts = split_polygon(poly, node.plane, eps)
                for piece in parts.coplanar_front + parts.coplanar_back:
                    key = _node_key(piece, eps)
                    if key in seen:
                        logger.debug('skipped duplicate polygon %r at BSP node', piece)
                        continue
                    seen.add(key)
                    node.polygons.append(piece)
                front.extend(parts.front)
                back.extend(parts.back)
            front = _refiltered(front, eps)
            back = _refiltered(back, eps)
            if front:
                if node.front is None:
                    node.front = BSPNode()
                stack.append((node.front, front))
            if back:
                if node.back is None:
                    node.back = BSPNode()
                stack.append((node.back, back))
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug('built BSP tree: %d nodes, depth %d', self.node_count(), self.depth())
        return success()

    def node_count(self) -> int:
        return sum(1 for _ in self._nodes())

    def depth(self) -> int:
        deepest = 0
        stack = [(self, 1)]
        while stack:
            node, level = stack.pop()
            deepest = max(deepest, level)
            if node.front is not None:
                stack.append((node.front, level + 1))
            if node.back is not None:
                stack.append((node.back, level + 1))
        return deepest


__all__ = ['BSPNode']
