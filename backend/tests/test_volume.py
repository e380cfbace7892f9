import math

import pytest

from chemdose.models import HeadType, ShapeType
from chemdose.services.volume import calculate_volume, calculate_weight, tank_capacity
from conftest import make_tank


def horizontal_tank(head_type):
    return make_tank(
        factor=None,
        capacity_liters=None,
        shape_type=ShapeType.HORIZONTAL_CYLINDER,
        diameter_cm=100.0,
        length_cm=200.0,
        head_type=head_type,
    )


def test_vertical_cylinder(vertical_tank):
    assert calculate_volume(vertical_tank, 100) == pytest.approx(math.pi * 50 ** 2 * 100 / 1000)


def test_sensor_offset_is_subtracted(vertical_tank):
    vertical_tank.sensor_offset_cm = 10.0
    assert calculate_volume(vertical_tank, 110) == pytest.approx(calculate_volume(make_tank(
        factor=None, shape_type=ShapeType.VERTICAL_CYLINDER, diameter_cm=100.0, height_cm=200.0,
    ), 100))
    assert calculate_volume(vertical_tank, 5) == 0.0


def test_level_is_clamped_to_tank_height(vertical_tank):
    full = math.pi * 50 ** 2 * 200 / 1000
    assert calculate_volume(vertical_tank, 300) == pytest.approx(full)
    assert calculate_volume(vertical_tank, -20) == 0.0


def test_rectangular():
    tank = make_tank(factor=None, shape_type=ShapeType.RECTANGULAR, length_cm=100.0, width_cm=50.0, height_cm=100.0)
    assert calculate_volume(tank, 20) == pytest.approx(100.0)


def test_factor_fallback_without_geometry():
    tank = make_tank(factor=10.0, shape_type=ShapeType.VERTICAL_CYLINDER, diameter_cm=None)
    assert calculate_volume(tank, 12) == pytest.approx(120.0)


def test_horizontal_cylinder_full_and_half():
    flat = horizontal_tank(HeadType.FLAT)
    body = math.pi * 50 ** 2 * 200 / 1000
    assert calculate_volume(flat, 100) == pytest.approx(body)
    assert calculate_volume(flat, 50) == pytest.approx(body / 2)

    hemi = horizontal_tank(HeadType.HEMISPHERICAL)
    sphere = 4 / 3 * math.pi * 50 ** 3 / 1000
    assert calculate_volume(hemi, 100) == pytest.approx(body + sphere)

    ellipsoidal = horizontal_tank(HeadType.SEMI_ELLIPTICAL_2_1)
    assert calculate_volume(ellipsoidal, 100) == pytest.approx(body + sphere / 2)


@pytest.mark.parametrize("head_type", list(HeadType))
def test_horizontal_volume_is_monotonic(head_type):
    tank = horizontal_tank(head_type)
    volumes = [calculate_volume(tank, level) for level in range(0, 101, 5)]
    assert all(a <= b for a, b in zip(volumes, volumes[1:]))


def test_vertical_volume_is_monotonic(vertical_tank):
    volumes = [calculate_volume(vertical_tank, level) for level in range(0, 201, 10)]
    assert all(a <= b for a, b in zip(volumes, volumes[1:]))


def test_weight_defaults_to_water():
    assert calculate_weight(100.0, None) == 100.0
    assert calculate_weight(100.0, 1.2) == pytest.approx(120.0)


def test_capacity_resolution(vertical_tank):
    assert tank_capacity(make_tank(capacity_liters=500.0)) == 500.0
    assert tank_capacity(vertical_tank) == pytest.approx(math.pi * 50 ** 2 * 200 / 1000)
    assert tank_capacity(make_tank(capacity_liters=None), default=10000.0) == 10000.0
