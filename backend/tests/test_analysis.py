from datetime import date, datetime

import pytest

from chemdose.services.analysis import build_annual_overview, build_usage_report, month_contract_info, summarize
from chemdose.services.consumption import Metric
from conftest import make_reading, make_supply, make_tank

TODAY = date(2025, 1, 1)


def test_padding_days_stay_out_of_month_totals():
    readings = [make_reading(datetime(2024, 1, 1), 3000), make_reading(datetime(2024, 3, 1), 3000 - 60 * 10)]
    report = build_usage_report(make_tank(), readings, [], [], date(2024, 1, 17), date(2024, 1, 31), Metric.VOLUME, TODAY)

    assert report["daily"][0]["date"] == date(2024, 1, 15)
    assert report["daily"][-1]["date"] == date(2024, 2, 4)
    assert [w["days"] for w in report["weekly"]] == [7, 7, 7]
    assert report["monthly"] == [{
        "year": 2024, "month": 1, "actual": 150.0, "theoretical": None, "deviation_percent": 0.0, "days": 15,
    }]
    assert report["summary"]["total"] == 150.0


def test_contract_changes_within_month():
    supplies = [
        make_supply(datetime(2023, 12, 1), sg=1.1, price=10.0, id=1),
        make_supply(datetime(2024, 2, 10), sg=1.2, price=12.0, id=2),
    ]
    january = month_contract_info(supplies, 1, 2024, 1)
    assert january["price"] == 10.0 and january["changes"] == []

    february = month_contract_info(supplies, 1, 2024, 2)
    assert february["price"] == 12.0
    assert february["specific_gravity"] == 1.2
    assert [c["date"] for c in february["changes"]] == [date(2024, 2, 10)]


def test_annual_overview_has_every_month():
    readings = [make_reading(datetime(2024, 1, 1), 1000), make_reading(datetime(2024, 1, 11), 900)]
    overview = build_annual_overview(make_tank(), readings, [], [], 2024, Metric.VOLUME, TODAY)
    assert [m["month"] for m in overview["months"]] == list(range(1, 13))
    assert overview["months"][0]["actual"] == pytest.approx(100.0)
    assert overview["months"][1]["actual"] is None


def test_summary_statistics():
    assert summarize([1.0, 2.0, 6.0]) == {"total": 9.0, "average_daily": 3.0, "peak_daily": 6.0, "days": 3}
    assert summarize([])["days"] == 0
