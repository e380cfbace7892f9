def create_tank(client, **overrides):
    payload = {"name": "T-1", "factor": 10, "capacity_liters": 1000, "sg_range_min": 1.0, "sg_range_max": 1.3}
    payload.update(overrides)
    response = client.post("/api/tanks", json=payload)
    assert response.status_code == 200, response.text
    return response.json()


def post_readings(client, tank_id, entries, confirm=False):
    body = {"readings": [
        {"tank_id": tank_id, "timestamp": ts, "level": level} for ts, level in entries
    ]}
    return client.post("/api/readings", json=body, params={"confirm": confirm})


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_tank_crud(client):
    tank = create_tank(client)
    assert client.post("/api/tanks", json={"name": "T-1"}).status_code == 400

    updated = client.put(f"/api/tanks/{tank['id']}", json={"description": "Inhibitor day tank"})
    assert updated.json()["description"] == "Inhibitor day tank"
    assert client.get("/api/tanks/999").status_code == 404

    assert client.delete(f"/api/tanks/{tank['id']}").status_code == 200
    assert client.get("/api/tanks").json() == []


def test_tank_reorder_and_status(client):
    a = create_tank(client, name="A", safe_min_level=20)
    b = create_tank(client, name="B")
    client.put("/api/tanks/reorder", json={"items": [{"id": a["id"], "sort_order": 2}, {"id": b["id"], "sort_order": 1}]})
    assert [t["name"] for t in client.get("/api/tanks").json()] == ["B", "A"]

    post_readings(client, a["id"], [("2024-01-01", 15)])
    status = client.get(f"/api/tanks/{a['id']}/status").json()
    assert status["is_low"] is True
    assert status["volume_liters"] == 150.0
    assert status["percent_full"] == 15.0


def test_readings_two_phase_entry(client):
    tank = create_tank(client)
    assert post_readings(client, tank["id"], [("2024-01-01", 100)]).status_code == 200

    blocked = post_readings(client, tank["id"], [("2024-01-02", 50)])
    assert blocked.status_code == 409
    assert len(blocked.json()["detail"]["anomalies"]) == 1
    assert len(client.get("/api/readings", params={"tank_id": tank["id"]}).json()) == 1

    confirmed = post_readings(client, tank["id"], [("2024-01-02", 50)], confirm=True)
    assert confirmed.status_code == 200
    assert confirmed.json()["alerts"] == 1

    alerts = client.get("/api/alerts").json()
    assert alerts[0]["source"] == "MANUAL"
    noted = client.put(f"/api/alerts/{alerts[0]['id']}/note", json={"note": "sensor cleaned"})
    assert noted.json()["note"] == "sensor cleaned"
    assert client.post("/api/alerts/batch-delete", json={"ids": [alerts[0]["id"]]}).json() == {"deleted": 1}


def test_reading_validation_errors(client):
    tank = create_tank(client)
    assert post_readings(client, tank["id"], [("not a date", 10)]).status_code == 400
    assert post_readings(client, tank["id"], [("2024-01-01", "abc")]).status_code == 400
    assert post_readings(client, tank["id"], [("2999-01-01", 10)]).status_code == 400
    assert post_readings(client, 999, [("2024-01-01", 10)]).status_code == 404


def test_reading_update_recomputes_volume(client):
    tank = create_tank(client)
    post_readings(client, tank["id"], [("2024-01-01", 100)])
    reading = client.get("/api/readings").json()[0]

    updated = client.put(f"/api/readings/{reading['id']}", json={"level": 80})
    assert updated.json()["calculated_volume"] == 800.0
    assert client.delete(f"/api/readings/{reading['id']}").status_code == 200
    assert client.delete(f"/api/readings/{reading['id']}").status_code == 404


def test_same_day_entries_in_one_batch_keep_the_last(client):
    tank = create_tank(client)
    response = post_readings(client, tank["id"], [("2024-01-01", 100), ("2024-01-01 15:00", 95)])
    assert response.status_code == 200
    assert response.json()["saved"] == 1

    rows = client.get("/api/readings", params={"tank_id": tank["id"]}).json()
    assert len(rows) == 1
    assert rows[0]["level_cm"] == 95.0


def test_recalculation_picks_up_geometry_changes(client):
    tank = create_tank(client)
    post_readings(client, tank["id"], [("2024-01-01", 100)])
    client.put(f"/api/tanks/{tank['id']}", json={"factor": 12})

    assert client.post("/api/supplies/recalculate-sg").json() == {"updated": 1}
    reading = client.get("/api/readings").json()[0]
    assert reading["calculated_volume"] == 1200.0
    assert reading["calculated_weight_kg"] == 1200.0
    assert client.post("/api/supplies/recalculate-sg").json() == {"updated": 0}


def test_supply_soft_block_and_cascade(client):
    tank = create_tank(client)
    post_readings(client, tank["id"], [("2024-02-01", 100)])
    supply = {"tank_id": tank["id"], "supplier_name": "Acme", "specific_gravity": 1.5, "start_date": "2024-01-15"}

    assert client.post("/api/supplies", json=supply).status_code == 409

    saved = client.post("/api/supplies", json=supply, params={"confirm": True})
    assert saved.status_code == 200
    assert saved.json()["sg_updated"] == 1
    reading = client.get("/api/readings").json()[0]
    assert reading["calculated_weight_kg"] == 1500.0

    active = client.get("/api/supplies/active", params={"tank_id": tank["id"], "on": "2024-03-01"}).json()
    assert active["specific_gravity"] == 1.5

    deleted = client.delete(f"/api/supplies/{active['id']}")
    assert deleted.status_code == 200
    assert deleted.json()["sg_updated"] == 1
    assert client.get("/api/supplies").json() == []
    reading = client.get("/api/readings").json()[0]
    assert reading["supply_id"] is None
    assert reading["applied_specific_gravity"] == 1.0
    assert reading["calculated_weight_kg"] == 1000.0


def test_weekly_params_snap_to_monday(client):
    tank = create_tank(client, calculation_method="CWS_BLOWDOWN")
    body = {"tank_id": tank["id"], "date": "2024-01-03", "circulation_rate": 500, "temp_diff": 5,
            "cws_hardness": 800, "makeup_hardness": 200, "target_ppm": 50}
    first = client.post("/api/params/cws", json=body).json()
    assert first["week_start"].startswith("2024-01-01")

    body["date"] = "2024-01-05"
    body["circulation_rate"] = 600
    second = client.post("/api/params/cws", json=body).json()
    assert second["id"] == first["id"]

    history = client.get("/api/params/cws", params={"tank_id": tank["id"]}).json()
    assert len(history) == 1 and history[0]["circulation_rate"] == 600


def test_level_upload_and_export(client):
    tank = create_tank(client)
    csv_content = "儲槽名稱,2024/1/1,2024/1/2\nT-1,100,95\n".encode("utf-8")

    response = client.post("/api/import/levels", files={"file": ("levels.csv", csv_content, "text/csv")})
    assert response.status_code == 200, response.text
    assert response.json()["imported"] == 2

    exported = client.get("/api/readings/export", params={"format": "csv", "tank_id": tank["id"]})
    assert exported.status_code == 200
    text = exported.content.decode("utf-8-sig")
    assert text.splitlines()[0] == "Date,Tank,Level(cm),Volume(L),Weight(kg),SG,Operator"
    assert "2024-01-02,T-1,95" in text


def test_usage_and_annual_analysis(client):
    tank = create_tank(client, calculation_method="CWS_BLOWDOWN")
    post_readings(client, tank["id"], [("2024-01-01", 100), ("2024-01-08", 93)])
    client.post("/api/params/cws", json={"tank_id": tank["id"], "date": "2024-01-01", "circulation_rate": 500,
                                         "temp_diff": 5, "cws_hardness": 800, "makeup_hardness": 200,
                                         "target_ppm": 50})

    report = client.get("/api/analysis/usage", params={
        "tank_id": tank["id"], "start": "2024-01-01", "end": "2024-01-07", "metric": "L",
    }).json()
    assert report["weekly"][0]["actual"] == 70.0
    assert report["weekly"][0]["theoretical"] == 12.6
    assert report["monthly"][0]["days"] == 7
    assert report["summary"]["average_daily"] == 10.0

    annual = client.get("/api/analysis/annual", params={"year": 2024, "metric": "L"}).json()
    months = annual["tanks"][0]["months"]
    assert len(months) == 12
    assert months[0]["actual"] == 70.0


def test_notes_crud(client):
    note = client.post("/api/notes", json={"date_str": "2024-01-01", "area": "CT-1", "note": "Dosing pump swapped"}).json()
    client.put(f"/api/notes/{note['id']}", json={"note": "Pump B in service"})
    assert client.get("/api/notes").json()[0]["note"] == "Pump B in service"
    assert client.delete(f"/api/notes/{note['id']}").status_code == 200
