from datetime import date, datetime

import pytest

from chemdose.models import (
    Tank, Reading, ChemicalSupply, CWSParameterRecord, FluctuationAlert, InputUnit, SystemType,
)
from chemdose.services.import_service import RowSchema, ColumnSpec, SpreadsheetImporter, area_tanks
from chemdose.services.normalization import parse_number
from chemdose.services.storage import StorageService

TODAY = date(2024, 6, 30)


@pytest.fixture
def storage(db):
    db.add_all([
        Tank(name="T-1", capacity_liters=1000.0, factor=10.0, sg_range_min=1.0, sg_range_max=1.3),
        Tank(name="T-M", capacity_liters=1000.0, factor=10.0, input_unit=InputUnit.PERCENT),
        Tank(name="CWS-1 Inhibitor", system=SystemType.COOLING, factor=10.0),
        Tank(name="Dispersant A", system=SystemType.COOLING, description="一階 冷卻水", factor=10.0),
        Tank(name="CT2 Inhibitor", system=SystemType.COOLING, factor=10.0),
        Tank(name="Boiler PO4", system=SystemType.BOILER, factor=10.0),
    ])
    db.commit()
    return StorageService(db)


@pytest.fixture
def importer(storage):
    return SpreadsheetImporter(storage, today=TODAY)


def tank_id(storage, name):
    return storage.find_tank_by_name(name).id


def test_row_schema_maps_aliases_and_reports_problems():
    schema = RowSchema(
        ColumnSpec('tank_name', ('儲槽名稱', 'Tank'), required=True),
        ColumnSpec('sg', ('比重', 'SG'), parse_number, required=True),
    )
    valid, issues = schema.validate([
        {' 儲槽名稱 ': 'T-1', '比重': '1.2'},
        {'Tank': 'T-2', 'SG': 'heavy'},
        {'SG': 1.1},
    ])
    assert valid == [(2, {'tank_name': 'T-1', 'sg': 1.2})]
    assert [i.row for i in issues] == [3, 4]
    assert "invalid sg" in issues[0].reason
    assert "missing tank_name" in issues[1].reason


def test_level_import_two_phase(importer, storage, db):
    rows = [
        {'儲槽名稱': 'T-1', '2024/6/1': 50, '2024/6/2': 48, '2024/7/5': 40, '備註': 'x'},
        {'儲槽名稱': 'T-M', '6/1': '1.5', '6/2': 'broken'},
        {'儲槽名稱': 'Nope', '6/1': 10},
    ]
    plan = importer.prepare_levels(rows)

    assert len(plan.candidates) == 3
    assert plan.converted_count == 1
    reasons = " ".join(i.reason for i in plan.issues)
    assert "future" in reasons and "non-numeric" in reasons and "unknown tank" in reasons
    assert not plan.report.has_anomalies
    assert db.query(Reading).count() == 0

    result = importer.commit_levels(plan)
    assert result.imported == 3
    assert result.skipped == 3
    readings = storage.get_readings(tank_id=tank_id(storage, "T-M"))
    assert readings[0].level_cm == pytest.approx(150.0)
    assert readings[0].operator_name == "Batch Import"


def test_level_import_updates_same_day_reading(importer, storage, db):
    t1 = tank_id(storage, "T-1")
    existing = Reading(
        tank_id=t1, timestamp=datetime(2024, 6, 1), level_cm=60.0, calculated_volume=600.0,
        calculated_weight_kg=600.0, applied_specific_gravity=1.0, added_amount_liters=30.0,
    )
    db.add(existing)
    db.commit()
    existing_id = existing.id

    importer.commit_levels(importer.prepare_levels([{'儲槽名稱': 'T-1', '2024-06-01': 55}]))

    readings = storage.get_readings(tank_id=t1)
    assert len(readings) == 1
    assert readings[0].id == existing_id
    assert readings[0].level_cm == 55.0
    assert readings[0].added_amount_liters == 30.0


def test_level_import_anomalies_become_alerts(importer, db):
    plan = importer.prepare_levels([{'儲槽名稱': 'T-1', '2024/6/1': 50, '2024/6/2': 10}])
    assert len(plan.report.anomalies) == 1

    importer.commit_levels(plan)
    alert = db.query(FluctuationAlert).one()
    assert alert.source == "IMPORT"
    assert alert.date_str == "2024-06-02"


def test_supply_import_soft_blocks_and_cascades(importer, storage, db):
    t1 = tank_id(storage, "T-1")
    db.add(Reading(
        tank_id=t1, timestamp=datetime(2024, 6, 10), level_cm=50.0, calculated_volume=500.0,
        calculated_weight_kg=500.0, applied_specific_gravity=1.0, added_amount_liters=0.0,
    ))
    db.commit()
    rows = [
        {'儲槽名稱': 'T-1', '供應商': 'Acme', '比重': 1.2, '生效日期': '2024-01-01', '目標濃度': 40},
        {'儲槽名稱': 'T-1', '供應商': 'Acme', '比重': 1.5, '生效日期': '2024-06-01', '單價': '35'},
    ]

    blocked = importer.import_supplies(rows)
    assert blocked.needs_confirmation
    assert len(blocked.warnings) == 1
    assert db.query(ChemicalSupply).count() == 0

    result = importer.import_supplies(rows, confirm=True)
    assert result.imported == 2
    assert result.sg_updated == 1
    june = storage.get_active_supply(t1, datetime(2024, 6, 15))
    assert june.target_ppm == 40
    assert june.price == 35.0
    reading = storage.get_readings(tank_id=t1)[0]
    assert reading.applied_specific_gravity == 1.5
    assert reading.calculated_weight_kg == pytest.approx(750.0)
    assert reading.supply_id == june.id


def test_area_membership(storage):
    tanks = storage.get_tanks()
    assert sorted(t.name for t in area_tanks(tanks, "CT-1")) == ["CWS-1 Inhibitor", "Dispersant A"]
    assert [t.name for t in area_tanks(tanks, "ct2")] == ["CT2 Inhibitor"]
    assert area_tanks(tanks, "North") == []


def test_cws_area_import_merges_week(importer, storage, db):
    first = importer.import_cws([{
        '區域': 'CT-1', '日期': '2024-06-12', '循環水量': 500, '出水溫': 30, '回水溫': 35,
        '冷卻水硬度': 800, '補水硬度': 200,
    }])
    assert first.imported == 2

    record = storage.find_cws_param(tank_id(storage, "CWS-1 Inhibitor"), datetime(2024, 6, 10))
    assert record.temp_diff == 5.0
    assert record.concentration_cycles == 4.0

    importer.import_cws([{'區域': 'CT-1', '日期': '2024-06-14', '冷卻水硬度': 900, '補水硬度': 300}])
    db.expire_all()
    record = storage.find_cws_param(tank_id(storage, "CWS-1 Inhibitor"), datetime(2024, 6, 10))
    assert record.circulation_rate == 500.0
    assert record.cws_hardness == 900.0
    assert record.concentration_cycles == 3.0
    assert db.query(CWSParameterRecord).count() == 2


def test_cws_import_rejects_future_and_unknown(importer):
    result = importer.import_cws([
        {'Tank': 'CT2 Inhibitor', 'Date': '2024-08-01', 'Circulation Rate': 500},
        {'Area': 'CT-9', 'Date': '2024-06-01'},
    ])
    assert result.imported == 0
    assert result.skipped == 2


def test_bws_import(importer, storage):
    result = importer.import_bws([
        {'儲槽名稱': 'Boiler PO4', '日期': '2024-06-05', '蒸汽總產量': '1,400', '目標濃度': 10},
        {'儲槽名稱': 'Boiler PO4', '日期': '2024-06-05'},
    ])
    assert result.imported == 1
    assert result.skipped == 1
    history = storage.get_bws_params_history(tank_id(storage, "Boiler PO4"))
    assert history[0].week_start == datetime(2024, 6, 3)
    assert history[0].steam_production == 1400.0
