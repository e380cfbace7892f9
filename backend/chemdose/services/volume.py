"""
Level-to-volume conversion for the supported tank shapes.
All dimensions are centimeters; results are liters.
"""
import math
from typing import Optional

import numpy as np

from chemdose.models import ShapeType, HeadType

CM3_PER_LITER = 1000.0
DEFAULT_SPECIFIC_GRAVITY = 1.0


def _linear_fallback(tank, level_cm: float) -> float:
    return level_cm * tank.factor if tank.factor else 0.0


def _has_geometry(tank) -> bool:
    shape = tank.shape_type or ShapeType.VERTICAL_CYLINDER
    if shape == ShapeType.VERTICAL_CYLINDER:
        return bool(tank.diameter_cm)
    if shape == ShapeType.RECTANGULAR:
        return bool(tank.length_cm and tank.width_cm)
    if shape == ShapeType.HORIZONTAL_CYLINDER:
        return bool(tank.diameter_cm and tank.length_cm)
    return False


def _sphere_segment_cm3(radius: float, h: float) -> float:
    return math.pi * h ** 2 / 3 * (3 * radius - h)


def _horizontal_cylinder_cm3(tank, h: float) -> float:
    diameter = tank.diameter_cm
    r = diameter / 2
    h = min(h, diameter)

    # Circular segment area times straight length
    if h <= 0:
        segment = 0.0
    elif h >= diameter:
        segment = math.pi * r ** 2
    else:
        segment = r ** 2 * math.acos((r - h) / r) - (r - h) * math.sqrt(2 * r * h - h ** 2)
    body = tank.length_cm * segment

    # Two heads together form a sphere (hemispherical) or half of one (2:1 ellipsoidal)
    head_type = tank.head_type or HeadType.SEMI_ELLIPTICAL_2_1
    if head_type == HeadType.HEMISPHERICAL:
        heads = _sphere_segment_cm3(r, h)
    elif head_type == HeadType.SEMI_ELLIPTICAL_2_1:
        heads = 0.5 * _sphere_segment_cm3(r, h)
    else:
        heads = 0.0
    return body + heads


def _geometric_volume(tank, h: float) -> float:
    """Volume in liters at true liquid height h (cm) for a tank with usable geometry."""
    shape = tank.shape_type or ShapeType.VERTICAL_CYLINDER
    if shape == ShapeType.HORIZONTAL_CYLINDER:
        return _horizontal_cylinder_cm3(tank, h) / CM3_PER_LITER
    if shape == ShapeType.RECTANGULAR:
        return tank.length_cm * tank.width_cm * h / CM3_PER_LITER
    r = tank.diameter_cm / 2
    return math.pi * r ** 2 * h / CM3_PER_LITER


def calculate_volume(tank, level_cm: float) -> float:
    """
    Liquid volume in liters for a measured level.

    The sensor offset is subtracted before the geometric formula and the
    resulting height is clamped to [0, height]. Tanks without usable
    geometry fall back to the legacy liters-per-cm factor.
    """
    if level_cm is None:
        return 0.0
    if not _has_geometry(tank):
        return _linear_fallback(tank, level_cm)

    h = level_cm - (tank.sensor_offset_cm or 0.0)
    upper = tank.height_cm if tank.height_cm else np.inf
    h = float(np.clip(h, 0.0, upper))
    return _geometric_volume(tank, h)


def calculate_weight(volume_liters: float, specific_gravity: Optional[float]) -> float:
    sg = specific_gravity if specific_gravity is not None else DEFAULT_SPECIFIC_GRAVITY
    return volume_liters * sg


def geometric_capacity(tank) -> Optional[float]:
    """Full volume in liters from geometry, or None when it cannot be derived."""
    if not _has_geometry(tank):
        return None
    shape = tank.shape_type or ShapeType.VERTICAL_CYLINDER
    if shape == ShapeType.HORIZONTAL_CYLINDER:
        return _geometric_volume(tank, tank.diameter_cm)
    if not tank.height_cm:
        return None
    return _geometric_volume(tank, tank.height_cm)


def tank_capacity(tank, default: float = 10000.0) -> float:
    """Declared capacity, else geometric capacity, else the default."""
    if tank.capacity_liters:
        return tank.capacity_liters
    capacity = geometric_capacity(tank)
    return capacity if capacity else default
