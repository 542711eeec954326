"""Boolean operations on polygon soups.

Each operation copies both operands into fresh BSP trees and runs a fixed
sequence of clip/invert/build steps on them. The sequences do not commute
and are reproduced exactly; the operands themselves are never modified.

The result of every operation is a :class:`~bspcsg.result.Result`. A
failure in any step aborts the whole operation and no geometry is
returned.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from bspcsg.bsp import BSPNode
from bspcsg.config import CSGSettings, get_settings
from bspcsg.geom import Polygon, Vector
from bspcsg.result import ErrorKind, Result, failure, success
from bspcsg.validation import check_limits, filter_valid, soup_bounds, soup_counts

logger = logging.getLogger(__name__)


class CSG:
    """An immutable-by-convention polygon soup describing a solid."""

    def __init__(self, polygons: Optional[Iterable[Polygon]] = None):
        self._polygons: List[Polygon] = list(polygons) if polygons is not None else []

    def __repr__(self) -> str:
        return f"CSG({len(self._polygons)} polygons)"

    @classmethod
    def from_polygons(cls, polygons: Iterable[Polygon]) -> Result["CSG"]:
        """Wrap ``polygons``, dropping any that fail validation."""

        polygons = list(polygons)
        valid, dropped = filter_valid(polygons)
        if dropped:
            logger.warning('filtered out %d invalid polygons', dropped)
        return success(cls(valid))

    @property
    def polygons(self) -> List[Polygon]:
        return self._polygons

    def to_polygons(self) -> List[Polygon]:
        return list(self._polygons)

    def clone(self) -> "CSG":
        return CSG(p.clone() for p in self._polygons)

    @property
    def polygon_count(self) -> int:
        return len(self._polygons)

    @property
    def vertex_count(self) -> int:
        return soup_counts(self._polygons)[1]

    @property
    def triangle_count(self) -> int:
        return soup_counts(self._polygons)[2]

    def bounds(self) -> Optional[Tuple[Vector, Vector]]:
        return soup_bounds(self._polygons)

    def is_empty(self) -> bool:
        return not self._polygons

    def union(self, other: "CSG") -> Result["CSG"]:
        return _run('union', self, other, _union_steps)

    def subtract(self, other: "CSG") -> Result["CSG"]:
        return _run('subtract', self, other, _subtract_steps)

    def intersect(self, other: "CSG") -> Result["CSG"]:
        return _run('intersect', self, other, _intersect_steps)

    def inverse(self) -> Result["CSG"]:
        """Solid/void complement: every polygon flipped, no tree involved."""
        try:
            return success(CSG(p.flipped() for p in self._polygons))
        except Exception as exc:
            message = f'inverse failed: {exc}'
            logger.exception(message)
            return failure(message)


Step = Tuple[str, Callable[[], Result[None]]]


def _union_steps(a: BSPNode, b: BSPNode) -> List[Step]:
    return [
        ('A.clip_to(B)', lambda: a.clip_to(b)),
        ('B.clip_to(A)', lambda: b.clip_to(a)),
        ('B.invert()', b.invert),
        ('B.clip_to(A)', lambda: b.clip_to(a)),
        ('B.invert()', b.invert),
        ('A.build(B.all_polygons())', lambda: a.build(b.all_polygons())),
    ]


def _subtract_steps(a: BSPNode, b: BSPNode) -> List[Step]:
    return [
        ('A.invert()', a.invert),
        ('A.clip_to(B)', lambda: a.clip_to(b)),
        ('B.clip_to(A)', lambda: b.clip_to(a)),
        ('B.invert()', b.invert),
        ('B.clip_to(A)', lambda: b.clip_to(a)),
        ('B.invert()', b.invert),
        ('A.build(B.all_polygons())', lambda: a.build(b.all_polygons())),
        ('A.invert()', a.invert),
    ]


def _intersect_steps(a: BSPNode, b: BSPNode) -> List[Step]:
    return [
        ('A.invert()', a.invert),
        ('B.clip_to(A)', lambda: b.clip_to(a)),
        ('B.invert()', b.invert),
        ('A.clip_to(B)', lambda: a.clip_to(b)),
        ('B.clip_to(A)', lambda: b.clip_to(a)),
        ('A.build(B.all_polygons())', lambda: a.build(b.all_polygons())),
        ('A.invert()', a.invert),
    ]


def _preflight(name: str, a: CSG, b: CSG, settings: CSGSettings) -> Result[None]:
    for label, operand in (('A', a), ('B', b)):
        res = check_limits(operand.polygons, settings)
        if not res:
            logger.error('%s rejected: operand %s %s', name, label, res.error)
            return res.prefixed(f'{name} operand {label}')
    return success()


def _run(name: str, a: CSG, b: CSG,
         steps_for: Callable[[BSPNode, BSPNode], List[Step]]) -> Result[CSG]:
    settings = get_settings()
    res = _preflight(name, a, b, settings)
    if not res:
        return res

    logger.debug('%s: %d x %d polygons', name, a.polygon_count, b.polygon_count)
    tree_a = BSPNode()
    res = tree_a.build(a.clone().polygons)
    if not res:
        return res.prefixed(f'{name} failed building A')
    tree_b = BSPNode()
    res = tree_b.build(b.clone().polygons)
    if not res:
        return res.prefixed(f'{name} failed building B')

    for label, step in steps_for(tree_a, tree_b):
        res = step()
        if not res:
            logger.error('%s failed during %s: %s', name, label, res.error)
            return res.prefixed(f'{name} failed during {label}')

    polygons = tree_a.all_polygons()
    logger.debug('%s produced %d polygons', name, len(polygons))
    return CSG.from_polygons(polygons)


Operand = Union[CSG, Sequence[Polygon]]


def _as_csg(value: Operand) -> CSG:
    if isinstance(value, CSG):
        return value
    return CSG(value)


def union(a: Operand, b: Operand) -> Result[CSG]:
    return _as_csg(a).union(_as_csg(b))


def subtract(a: Operand, b: Operand) -> Result[CSG]:
    return _as_csg(a).subtract(_as_csg(b))


def intersect(a: Operand, b: Operand) -> Result[CSG]:
    return _as_csg(a).intersect(_as_csg(b))


def inverse(a: Operand) -> Result[CSG]:
    return _as_csg(a).inverse()


OPERATIONS: Dict[str, Callable[[Operand, Operand], Result[CSG]]] = {
    'union': union,
    'subtract': subtract,
    'difference': subtract,
    'intersect': intersect,
    'intersection': intersect,
}


def boolean(a: Operand, b: Operand, operation: str) -> Result[CSG]:
    """Dispatch a boolean operation by name."""

    op = OPERATIONS.get(operation.lower())
    if op is None:
        return failure(f'unsupported boolean operation {operation!r}', ErrorKind.OPERATION_FAILURE)
    return op(a, b)


__all__ = [
    'CSG',
    'OPERATIONS',
    'boolean',
    'intersect',
    'inverse',
    'subtract',
    'union',
]
