"""HTTP tests for the progress router."""

import pytest
from fastapi.testclient import TestClient

from api import app

PREFIX = "/api/v1/progress"


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def key_result_body(**overrides):
    body = {
        "id": "kr-1",
        "krType": "metric",
        "direction": "increase",
        "aggregation": "cumulative",
        "startValue": 0,
        "targetValue": 100,
    }
    body.update(overrides)
    return body


class TestComputeEndpoint:
    def test_returns_camel_case_result(self, client):
        resp = client.post(f"{PREFIX}/key-results/compute", json={
            "keyResult": key_result_body(),
            "checkIns": [{"value": 50, "occurredAt": "2025-03-01T12:00:00"}],
            "year": 2025,
            "asOf": "2025-07-01T00:00:00",
        })

        assert resp.status_code == 200
        data = resp.json()
        assert data["progress"] == pytest.approx(50)
        assert data["isComplete"] is False
        assert data["paceStatus"] == "on_track"
        assert data["checkInCount"] == 1

    def test_accepts_recorded_at_alias(self, client):
        resp = client.post(f"{PREFIX}/key-results/compute", json={
            "keyResult": key_result_body(),
            "checkIns": [{"value": 150, "recordedAt": "2025-03-01T12:00:00Z"}],
            "year": 2025,
            "asOf": "2025-07-01T00:00:00Z",
        })

        assert resp.status_code == 200
        assert resp.json()["progress"] == 100
        assert resp.json()["isComplete"] is True

    def test_same_id_with_new_snapshot_is_recomputed(self, client):
        def post(current_value):
            return client.post(f"{PREFIX}/key-results/compute", json={
                "keyResult": key_result_body(id="kr-x", currentValue=current_value),
                "year": 2025,
                "asOf": "2025-07-01T00:00:00",
            }).json()

        assert post(20)["progress"] == pytest.approx(20)
        assert post(90)["progress"] == pytest.approx(90)

    def test_same_id_with_new_quarter_value_is_recomputed(self, client):
        def post(q1_value):
            return client.post(f"{PREFIX}/key-results/compute", json={
                "keyResult": key_result_body(
                    id="kr-q",
                    aggregation="reset_quarterly",
                    quarterTargets=[{"id": "q1", "quarter": 1, "targetValue": 25, "currentValue": q1_value}],
                ),
                "year": 2025,
                "asOf": "2025-07-01T00:00:00",
            }).json()

        assert post(20)["currentValue"] == 20
        assert post(40)["currentValue"] == 40

    def test_duplicate_quarter_is_422(self, client):
        resp = client.post(f"{PREFIX}/key-results/compute", json={
            "keyResult": key_result_body(quarterTargets=[
                {"quarter": 1, "targetValue": 10},
                {"quarter": 1, "targetValue": 20},
            ]),
            "year": 2025,
        })

        assert resp.status_code == 422
        assert resp.json()["detail"]["details"]["errors"] == ["Duplicate quarter target for Q1"]

    def test_contract_violation_is_422_with_code(self, client):
        resp = client.post(f"{PREFIX}/key-results/compute", json={
            "keyResult": key_result_body(),
            "checkIns": [{
                "value": 10,
                "occurredAt": "2025-03-01T12:00:00",
                "quarterTargetId": "unknown",
            }],
            "year": 2025,
        })

        assert resp.status_code == 422
        detail = resp.json()["detail"]
        assert detail["code"] == "INVALID_KEY_RESULT_INPUT"
        assert detail["details"]["keyResultId"] == "kr-1"

    def test_missing_target_is_rejected(self, client):
        body = key_result_body()
        del body["targetValue"]

        resp = client.post(f"{PREFIX}/key-results/compute", json={"keyResult": body})

        assert resp.status_code == 422


class TestQuarterEndpoint:
    def test_quarter_progress(self, client):
        resp = client.post(f"{PREFIX}/key-results/quarter", json={
            "keyResult": key_result_body(
                aggregation="reset_quarterly",
                quarterTargets=[{"id": "q2", "quarter": 2, "targetValue": 25}],
            ),
            "checkIns": [{"value": 20, "occurredAt": "2025-05-10T12:00:00", "quarterTargetId": "q2"}],
            "quarter": 2,
            "year": 2025,
            "asOf": "2025-05-16T12:00:00",
        })

        assert resp.status_code == 200
        assert resp.json()["progress"] == pytest.approx(80)

    def test_missing_quarter_target(self, client):
        resp = client.post(f"{PREFIX}/key-results/quarter", json={
            "keyResult": key_result_body(),
            "quarter": 3,
            "year": 2025,
        })

        assert resp.status_code == 422
        assert resp.json()["detail"]["code"] == "INVALID_KEY_RESULT_INPUT"


class TestSeriesEndpoint:
    def test_daily_and_weekly(self, client):
        resp = client.post(f"{PREFIX}/key-results/series", json={
            "keyResult": key_result_body(),
            "year": 2025,
            "start": "2025-01-01",
            "end": "2025-01-14",
        })

        assert resp.status_code == 200
        data = resp.json()
        assert data["keyResultId"] == "kr-1"
        assert len(data["daily"]) == 14
        assert data["weekly"][0]["day"] == "2024-12-30"

    def test_series_stops_at_as_of(self, client):
        resp = client.post(f"{PREFIX}/key-results/series", json={
            "keyResult": key_result_body(currentValue=80),
            "year": 2025,
            "asOf": "2025-01-10T12:00:00",
        })

        assert resp.status_code == 200
        daily = resp.json()["daily"]
        assert len(daily) == 10
        assert daily[-1]["day"] == "2025-01-10"
        assert daily[0]["currentValue"] == 0


class TestRollupEndpoints:
    def test_objective_rollup(self, client):
        resp = client.post(f"{PREFIX}/objectives/rollup", json={
            "objectiveId": "obj-1",
            "keyResults": [
                {"keyResultId": "a", "progress": 0},
                {"keyResultId": "b", "progress": 50},
                {"keyResultId": "c", "progress": 100},
            ],
        })

        assert resp.status_code == 200
        assert resp.json()["progress"] == pytest.approx(50)
        assert resp.json()["krCount"] == 3

    def test_objective_compute(self, client):
        resp = client.post(f"{PREFIX}/objectives/compute", json={
            "objectiveId": "obj-1",
            "keyResults": [
                {
                    "keyResult": key_result_body(id="kr-a"),
                    "checkIns": [{"value": 100, "occurredAt": "2025-03-01T12:00:00"}],
                },
                {"keyResult": key_result_body(id="kr-b")},
            ],
            "year": 2025,
            "asOf": "2025-07-01T00:00:00",
        })

        assert resp.status_code == 200
        assert resp.json()["progress"] == pytest.approx(50)

    def test_plan_rollup(self, client):
        resp = client.post(f"{PREFIX}/plans/rollup", json={
            "planId": "plan-1",
            "objectives": [
                {"objectiveId": "o1", "progress": 80},
                {"objectiveId": "o2", "progress": 40},
            ],
        })

        assert resp.status_code == 200
        assert resp.json()["progress"] == pytest.approx(60)
        assert resp.json()["objectiveCount"] == 2

    def test_empty_objective(self, client):
        resp = client.post(f"{PREFIX}/objectives/rollup", json={"objectiveId": "obj-empty"})

        assert resp.status_code == 200
        assert resp.json()["progress"] == 0
        assert resp.json()["paceStatus"] == "behind"


class TestCacheEndpoint:
    def test_invalidate_after_compute(self, client):
        body = {
            "keyResult": key_result_body(),
            "year": 2025,
            "asOf": "2025-07-01T00:00:00",
        }
        client.post(f"{PREFIX}/key-results/compute", json=body)

        resp = client.delete(f"{PREFIX}/key-results/kr-1/cache")

        assert resp.status_code == 200
        assert resp.json() == {"keyResultId": "kr-1", "removed": 1}


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "ok"
