# -*- coding: utf-8 -*-
from importlib.metadata import PackageNotFoundError, version


try:
    __version__ = version("bspcsg")
except PackageNotFoundError:  # pragma: no cover - handled when package not installed
    __version__ = "unknown"

from bspcsg.config import CSGSettings, configure, get_settings, load_settings, settings_override
from bspcsg.csg import CSG, boolean, intersect, inverse, subtract, union
from bspcsg.geom import Plane, Polygon, Vector, Vertex
from bspcsg.result import CSGError, ErrorKind, Result

__all__ = [
    'CSG',
    'CSGError',
    'CSGSettings',
    'ErrorKind',
    'Plane',
    'Polygon',
    'Result',
    'Vector',
    'Vertex',
    'boolean',
    'configure',
    'get_settings',
    'intersect',
    'inverse',
    'load_settings',
    'settings_override',
    'subtract',
    'union',
    '__version__',
]
