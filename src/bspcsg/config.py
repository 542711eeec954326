"""Tunable tolerances and limits for the CSG engine.

Every classification in :mod:`bspcsg.split` reads ``epsilon`` from the
active settings at call time, so changing it here changes it everywhere.
Settings can be adjusted programmatically with :func:`configure`, loaded
from YAML with :func:`load_settings`, or picked up from the file named by
the ``BSPCSG_CONFIG`` environment variable the first time they are read.
"""

from __future__ import annotations

import logging
import math
import os
from contextlib import contextmanager
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger(__name__)

ENV_VAR = "BSPCSG_CONFIG"

EPSILON = 1e-5
MAX_POLYGONS = 100_000
MAX_VERTICES = 1_000_000
MAX_TRIANGLES = 500_000


@dataclass(frozen=True)
class CSGSettings:
    """Numeric tolerance and pre-flight ceilings."""

    epsilon: float = EPSILON
    max_polygons: int = MAX_POLYGONS
    max_vertices: int = MAX_VERTICES
    max_triangles: int = MAX_TRIANGLES

    def __post_init__(self) -> None:
        if not isinstance(self.epsilon, (int, float)) or not math.isfinite(self.epsilon) or self.epsilon <= 0:
            raise ValueError(f"epsilon must be a positive finite number, got {self.epsilon!r}")
        for name in ("max_polygons", "max_vertices", "max_triangles"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_active: Optional[CSGSettings] = None


def _field_names() -> set[str]:
    return {f.name for f in fields(CSGSettings)}


def settings_from_dict(data: Dict[str, Any]) -> CSGSettings:
    """Build settings from a mapping, rejecting unknown keys."""

    unknown = set(data) - _field_names()
    if unknown:
        raise ValueError(f"unknown CSG settings: {sorted(unknown)}")
    return CSGSettings(**data)


def load_settings(path: Path | str) -> CSGSettings:
    """Read settings from a YAML document.

    The document may hold the keys at top level or under a ``csg``
    section. The loaded settings become active and are returned.
    """

    import yaml  # local import to avoid hard dependency if unused

    cfg_path = Path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(f"settings file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError(f"settings file {cfg_path} must contain a mapping")
    if "csg" in data and isinstance(data["csg"], dict):
        data = data["csg"]
    settings = settings_from_dict(data)
    set_settings(settings)
    logger.debug("loaded CSG settings from %s: %s", cfg_path, settings)
    return settings


def get_settings() -> CSGSettings:
    global _active
    if _active is None:
        env_path = os.environ.get(ENV_VAR)
        if env_path:
            return load_settings(env_path)
        _active = CSGSettings()
    return _active


def set_settings(settings: CSGSettings) -> None:
    global _active
    if not isinstance(settings, CSGSettings):
        raise TypeError("set_settings expects a CSGSettings instance")
    _active = settings


def configure(**overrides: Any) -> CSGSettings:
    """Replace selected fields of the active settings."""

    unknown = set(overrides) - _field_names()
    if unknown:
        raise ValueError(f"unknown CSG settings: {sorted(unknown)}")
    settings = replace(get_settings(), **overrides)
    set_settings(settings)
    return settings


def reset_settings() -> None:
    """Forget the active settings; the next read falls back to defaults."""

    global _active
    _active = None


def current_epsilon() -> float:
    return get_settings().epsilon


@contextmanager
def settings_override(**overrides: Any) -> Iterator[CSGSettings]:
    """Temporarily apply ``overrides`` within a ``with`` block."""

    previous = get_settings()
    try:
        yield configure(**overrides)
    finally:
        set_settings(previous)


__all__ = [
    "CSGSettings",
    "ENV_VAR",
    "EPSILON",
    "MAX_POLYGONS",
    "MAX_VERTICES",
    "MAX_TRIANGLES",
    "configure",
    "current_epsilon",
    "get_settings",
    "load_settings",
    "reset_settings",
    "set_settings",
    "settings_from_dict",
    "settings_override",
]
