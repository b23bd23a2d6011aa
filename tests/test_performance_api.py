from fastapi import status
from app.models import PeriodCategory

def _url(path):
    return f"/api/performance{path}"

def test_recompute_period(client, seeded_period):
    period_id = seeded_period["period_id"]
    response = client.post(_url(f"/periods/{period_id}/recompute"))
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["success"] is True
    assert body["data"]["scored_staff"] == 3
    assert body["data"]["unit_summaries"] == 5
    assert body["metadata"]["is_partial"] is False

    scores = client.get(_url(f"/periods/{period_id}/scores")).json()["data"]
    assert [s["final_score"] for s in scores] == [80, 60, 90]

def test_live_staff_score(client, seeded_period):
    period_id = seeded_period["period_id"]
    staff_id = seeded_period["staff_ids"][0]
    response = client.get(_url(f"/periods/{period_id}/staff/{staff_id}/score"))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["percentage"] == 80
    assert data["grade"] == "Accomplished"

def test_live_staff_gaps(client, seeded_period):
    period_id = seeded_period["period_id"]
    staff_id = seeded_period["staff_ids"][0]
    gaps = client.get(_url(f"/periods/{period_id}/staff/{staff_id}/gaps")).json()["data"]
    assert len(gaps) == 1
    assert gaps[0]["gap"] == 1
    assert gaps[0]["have_gap"] is True

def test_unit_summary(client, seeded_period):
    period_id = seeded_period["period_id"]
    division_id = seeded_period["division_id"]
    response = client.get(_url(f"/periods/{period_id}/units/{division_id}/summary"), params={"level": "DIVISION"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["average_percentage"] == 76.67
    assert data["covered_units"] == 2
    assert data["grade"] == "Competent"

def test_unit_summary_wrong_level(client, seeded_period):
    period_id = seeded_period["period_id"]
    division_id = seeded_period["division_id"]
    response = client.get(_url(f"/periods/{period_id}/units/{division_id}/summary"), params={"level": "OFFICE"})
    assert response.status_code == 422
    assert response.json()["errors"][0]["code"] == "INVALID_HIERARCHY"

def test_recompute_staff(client, seeded_period):
    period_id = seeded_period["period_id"]
    staff_id = seeded_period["staff_ids"][1]
    response = client.post(_url(f"/periods/{period_id}/staff/{staff_id}/recompute"))
    assert response.status_code == 200
    assert response.json()["data"]["final_score"] == 60

def test_unknown_period_is_404(client):
    response = client.post(_url("/periods/999/recompute"))
    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["errors"][0]["code"] == "NOT_FOUND"

def test_inconsistent_weights_are_rejected(client, db_session, seeded_period):
    period_id = seeded_period["period_id"]
    row = db_session.query(PeriodCategory).filter_by(
        review_period_id=period_id, category_id=seeded_period["category_ids"][0]
    ).one()
    row.share_percent = 70
    db_session.commit()

    response = client.post(_url(f"/periods/{period_id}/recompute"))
    assert response.status_code == 422
    assert response.json()["errors"][0]["code"] == "INCONSISTENT_WEIGHTS"
    assert client.get(_url(f"/periods/{period_id}/scores")).json()["data"] == []

def test_stored_unit_summaries(client, seeded_period):
    period_id = seeded_period["period_id"]
    client.post(_url(f"/periods/{period_id}/recompute"))
    response = client.get(_url(f"/periods/{period_id}/units"), params={"level": "OFFICE"})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert [u["unit_id"] for u in body["data"]] == seeded_period["office_ids"]
    assert body["data"][0]["grade_distribution"]["Accomplished"] == 1

def test_every_endpoint_uses_the_envelope(client, seeded_period):
    period_id = seeded_period["period_id"]
    staff_id = seeded_period["staff_ids"][0]
    for path in (f"/periods/{period_id}/scores", f"/periods/{period_id}/staff/{staff_id}/gaps"):
        body = client.get(_url(path)).json()
        assert set(body) == {"success", "data", "metadata", "timestamp"}
