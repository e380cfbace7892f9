from datetime import datetime, timedelta

from chemdose.services.anomaly_detection import (
    AnomalyOptions, classify_change, daily_threshold, detect_anomalies, format_anomaly_message,
)
from conftest import make_reading, make_tank

D0 = datetime(2024, 5, 1)


def day(n: int) -> datetime:
    return D0 + timedelta(days=n)


def test_threshold_from_capacity_and_percent():
    assert daily_threshold(make_tank(capacity_liters=1000.0, validation_threshold=30.0), AnomalyOptions()) == 300.0
    assert daily_threshold(make_tank(capacity_liters=None, factor=None, validation_threshold=None), AnomalyOptions()) == 3000.0


def test_threshold_boundary_is_strict():
    tank = make_tank()
    existing = [make_reading(day(0), 1000)]

    at_limit = detect_anomalies(tank, [make_reading(day(1), 700)], existing)
    assert not at_limit.has_anomalies

    over_limit = detect_anomalies(tank, [make_reading(day(1), 699.99)], existing)
    assert len(over_limit.anomalies) == 1
    anomaly = over_limit.anomalies[0]
    assert anomaly.is_possible_refill is False
    assert anomaly.prev_value == 1000
    assert anomaly.date == "2024-05-02"


def test_refill_vs_abnormal_consumption():
    assert classify_change(-4000, 4000, 100) is True
    assert classify_change(-500, 500, 100) is False
    assert classify_change(500, 500, 100) is False
    assert classify_change(-50, 50, 100) is None


def test_large_rise_is_flagged_as_refill():
    tank = make_tank(validation_threshold=10.0)
    report = detect_anomalies(tank, [make_reading(day(1), 5000)], [make_reading(day(0), 1000)])
    assert report.refill_count == 1


def test_added_amount_explains_rise():
    tank = make_tank()
    report = detect_anomalies(tank, [make_reading(day(1), 1100, added=400)], [make_reading(day(0), 1000)])
    assert not report.has_anomalies


def test_same_day_candidate_replaces_existing():
    tank = make_tank()
    existing = [make_reading(day(0), 1000), make_reading(day(1), 100)]
    report = detect_anomalies(tank, [make_reading(day(1), 990)], existing)
    assert not report.has_anomalies


def test_only_candidates_are_reported_with_next_context():
    tank = make_tank()
    existing = [make_reading(day(0), 1000), make_reading(day(1), 100), make_reading(day(3), 950)]
    report = detect_anomalies(tank, [make_reading(day(2), 980)], existing)
    # day(1) is already stored, only the new day(2) reading is checked
    assert len(report.anomalies) == 1
    assert report.anomalies[0].date == "2024-05-03"
    assert report.anomalies[0].next_value == 950


def test_daily_change_is_averaged_over_gap():
    tank = make_tank()
    report = detect_anomalies(tank, [make_reading(day(4), 0)], [make_reading(day(0), 1000)])
    assert not report.has_anomalies


def test_message_templates():
    assert format_anomaly_message("{DIFF} over {limit}{Unit}", diff=5, limit=3, unit="L") == "5 over 3L"

    options = AnomalyOptions(anomaly_template="[check] {text}")
    report = detect_anomalies(make_tank(), [make_reading(day(1), 100)], [make_reading(day(0), 1000)], options)
    reason = report.anomalies[0].reason
    assert reason.startswith("[check] ")
    assert "900.0" in reason and "300.0" in reason


def test_default_message_without_template():
    report = detect_anomalies(make_tank(), [make_reading(day(1), 100)], [make_reading(day(0), 1000)])
    assert "900.0" in report.anomalies[0].reason
