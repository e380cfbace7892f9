from datetime import date, datetime

import pytest

from chemdose.models import BWSParameterRecord, CalculationMethod, CWSParameterRecord
from chemdose.services.consumption import Metric
from chemdose.services.theoretical import (
    blowdown_m3, bws_usage_kg, concentration_cycles, cws_usage_kg, daily_theoretical,
    deviation_percent, period_theoretical, record_temp_diff, weekly_theoretical,
)
from conftest import make_supply, make_tank

LATER = date(2025, 1, 1)


def cws_record(week_start, rate, ppm=50.0, **kwargs):
    values = dict(temp_diff=5.0, cws_hardness=800.0, makeup_hardness=200.0)
    values.update(kwargs)
    return CWSParameterRecord(tank_id=1, week_start=week_start, circulation_rate=rate, target_ppm=ppm, **values)


@pytest.fixture
def cooling_tank():
    return make_tank(calculation_method=CalculationMethod.CWS_BLOWDOWN)


@pytest.fixture
def two_weeks():
    return [
        cws_record(datetime(2024, 1, 29), 500.0),
        cws_record(datetime(2024, 2, 5), 1000.0),
    ]


def test_blowdown_example():
    assert cws_usage_kg(500, 5, 4, 50, 7) == pytest.approx(12.6)


def test_concentration_cycles_sources():
    assert concentration_cycles(cws_record(None, 0)) == 4.0
    manual = cws_record(None, 0, cws_hardness=None, concentration_cycles=3.0)
    assert concentration_cycles(manual) == 3.0
    manual.concentration_cycles = 0.5
    assert concentration_cycles(manual) == 1.0


def test_no_blowdown_at_one_cycle():
    assert blowdown_m3(756.0, 1.0) == 0.0
    assert cws_usage_kg(500, 5, 1, 50, 7) == 0.0


def test_temp_diff_from_temperatures():
    record = cws_record(None, 0, temp_diff=None, temp_outlet=30.0, temp_return=35.0)
    assert record_temp_diff(record) == 5.0


def test_boiler_steam_model():
    assert bws_usage_kg(700.0, 10.0, 7) == pytest.approx(7.0)
    assert bws_usage_kg(700.0, 10.0, 1) == pytest.approx(1.0)

    tank = make_tank(calculation_method=CalculationMethod.BWS_STEAM)
    records = [BWSParameterRecord(tank_id=1, week_start=datetime(2024, 1, 1), steam_production=700.0, target_ppm=10.0)]
    assert daily_theoretical(tank, date(2024, 1, 3), records, []) == pytest.approx(1.0)


def test_weekly_theoretical(cooling_tank, two_weeks):
    assert weekly_theoretical(cooling_tank, date(2024, 1, 29), two_weeks, []) == pytest.approx(12.6)
    assert weekly_theoretical(cooling_tank, date(2024, 2, 12), two_weeks, []) is None


def test_month_is_summed_day_by_day(cooling_tank, two_weeks):
    # Feb 1-4 fall in the 500 m3/h week, Feb 5-11 in the 1000 m3/h week
    total = period_theoretical(cooling_tank, date(2024, 2, 1), date(2024, 2, 29), two_weeks, [], today=LATER)
    assert total == pytest.approx(4 * 1.8 + 7 * 3.6)
    assert total != pytest.approx(12.6 * 29 / 7)


def test_future_days_are_skipped(cooling_tank, two_weeks):
    total = period_theoretical(cooling_tank, date(2024, 2, 1), date(2024, 2, 29), two_weeks, [], today=date(2024, 2, 2))
    assert total == pytest.approx(3.6)


def test_ppm_falls_back_to_contract(cooling_tank):
    records = [cws_record(datetime(2024, 1, 29), 500.0, ppm=None)]
    supplies = [make_supply(datetime(2024, 1, 1), ppm=50.0, price=2.0, id=1)]
    assert weekly_theoretical(cooling_tank, date(2024, 1, 29), records, supplies) == pytest.approx(12.6)
    assert weekly_theoretical(cooling_tank, date(2024, 1, 29), records, supplies, Metric.COST) == pytest.approx(25.2)
    # make_supply defaults to SG 1.2
    assert weekly_theoretical(cooling_tank, date(2024, 1, 29), records, supplies, Metric.VOLUME) == pytest.approx(10.5)
    assert weekly_theoretical(cooling_tank, date(2024, 1, 29), records, []) is None


def test_method_none_has_no_theoretical(two_weeks):
    tank = make_tank(calculation_method=CalculationMethod.NONE)
    assert daily_theoretical(tank, date(2024, 2, 1), two_weeks, []) is None
    assert period_theoretical(tank, date(2024, 2, 1), date(2024, 2, 29), two_weeks, [], today=LATER) is None


def test_deviation():
    assert deviation_percent(110.0, 100.0) == pytest.approx(10.0)
    assert deviation_percent(5.0, 0.0) == 0.0
    assert deviation_percent(5.0, None) == 0.0
