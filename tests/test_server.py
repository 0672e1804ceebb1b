"""REST API tests — FastAPI TestClient against a temporary queue file.

Each test gets its own app instance (lifespan included) whose queue document
lives in ``tmp_path``.  Checks the HTTP status mapping for every SDK error:
ValidationError → 400, not found → 404, wrong state → 409,
storage / recovery failures → 500, always with an ``{error}`` body.
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from triage_server.app import create_app
from triage_server.config import ServerSettings, load_settings

from helpers.factories import patient_dict, queue_document

ROUTINE_VITALS = {
    "vitalsStable": "yes",
    "painLevel": 2,
    "chestPain": "no",
    "breathingDifficulty": "none",
    "consciousness": "alert",
    "bleeding": "no",
    "onset": "gradual",
    "age": 30,
}


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "patients.json"


@pytest.fixture
def client(data_file):
    settings = ServerSettings(data_file=str(data_file), catalog="vitals", log_level="WARNING")
    with TestClient(create_app(settings)) as c:
        yield c


def _complete_assessment(client, answers):
    created = client.post("/api/assessments").json()
    sid = created["session"]["session_id"]
    step = created["step"]
    while step["type"] == "question":
        qid = step["question"]["qid"]
        resp = client.post(f"/api/assessments/{sid}/submit", json={"value": answers[qid], "qid": qid})
        assert resp.status_code == 200, resp.text
        step = resp.json()
    return sid, step


# =====================================================================
# Settings and health
# =====================================================================


def test_load_settings_from_env(monkeypatch):
    monkeypatch.setenv("SERVER_PORT", "4000")
    monkeypatch.setenv("SERVER_CORS_ORIGINS", "http://a.test, http://b.test")
    monkeypatch.setenv("TRIAGE_CATALOG", "progression")
    monkeypatch.setenv("SESSION_TTL_MINUTES", "15")
    settings = load_settings()
    assert settings.port == 4000
    assert settings.cors_origins == ["http://a.test", "http://b.test"]
    assert settings.catalog == "progression"
    assert settings.session_ttl_minutes == 15


def test_default_port():
    assert ServerSettings().port == 3000


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_health_reports_corrupt_file(client, data_file):
    data_file.write_text("{oops", encoding="utf-8")
    assert client.get("/health").json()["status"] == "error"


# =====================================================================
# /api/patients
# =====================================================================


class TestPatients:

    def test_empty_queue(self, client):
        resp = client.get("/api/patients")
        assert resp.status_code == 200
        assert resp.json() == {"patients": [], "lastId": 0}

    def test_corrupt_file_still_returns_default(self, client, data_file):
        data_file.write_text("not json", encoding="utf-8")
        resp = client.get("/api/patients")
        assert resp.status_code == 200
        assert resp.json() == {"patients": [], "lastId": 0}

    def test_admit_on_corrupt_file_refused(self, client, data_file):
        data_file.write_text("not json", encoding="utf-8")
        resp = client.post("/api/patients", json={"esi": 2})
        assert resp.status_code == 500
        assert "recover_from_backup" in resp.json()["error"]
        assert data_file.read_text(encoding="utf-8") == "not json"

    def test_admit(self, client):
        resp = client.post("/api/patients", json={"esi": 2, "chiefComplaint": "Chest pain", "waitTime": 5})
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert body["success"] is True
        patient = body["patient"]
        assert patient["id"] == "P001"
        assert patient["status"] == "Waiting"
        assert patient["chiefComplaint"] == "Chest pain"
        assert "arrivalTime" in patient
        assert client.get("/api/patients").json()["lastId"] == 1

    def test_admit_invalid_esi(self, client):
        resp = client.post("/api/patients", json={"esi": 6})
        assert resp.status_code == 400
        assert "error" in resp.json()
        assert resp.json()["field"] == "esi"

    def test_replace(self, client):
        doc = queue_document(3, 1)
        resp = client.put("/api/patients", json=doc)
        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        stored = client.get("/api/patients").json()
        assert [p["id"] for p in stored["patients"]] == ["P001", "P002"]
        assert stored["lastId"] == 2

    def test_replace_invalid_patient(self, client, data_file):
        client.post("/api/patients", json={"esi": 3})
        before = data_file.read_text()
        resp = client.put(
            "/api/patients",
            json={"patients": [patient_dict(1), patient_dict(2, esi=6)], "lastId": 2},
        )
        assert resp.status_code == 400
        assert resp.json()["field"] == "patients[1].esi"
        assert data_file.read_text() == before, "A rejected replace must not touch the file"

    def test_replace_invalid_last_id(self, client):
        resp = client.put("/api/patients", json={"patients": [], "lastId": "seven"})
        assert resp.status_code == 400
        assert resp.json()["field"] == "lastId"

    def test_status(self, client):
        client.post("/api/patients", json={"esi": 3})
        client.post("/api/patients", json={"esi": 4})
        body = client.get("/api/patients/status").json()
        assert body["patientCount"] == 2
        assert body["lastId"] == 2
        assert body["backupExists"] is True

    def test_recover_without_backup(self, client):
        resp = client.post("/api/patients/recover")
        assert resp.status_code == 500
        assert "backup" in resp.json()["error"]

    def test_recover(self, client, data_file):
        client.post("/api/patients", json={"esi": 3})
        client.post("/api/patients", json={"esi": 1})
        data_file.write_text("corrupted", encoding="utf-8")
        resp = client.post("/api/patients/recover")
        assert resp.status_code == 200, resp.text
        assert resp.json() == {"success": True, "message": "Recovered 1 patients from backup"}
        assert client.get("/api/patients").json()["lastId"] == 1

    def test_update_status(self, client):
        client.post("/api/patients", json={"esi": 3})
        resp = client.patch("/api/patients/P001/status", json={"status": "Being Seen"})
        assert resp.status_code == 200
        assert resp.json()["patient"]["status"] == "Being Seen"

    def test_update_status_unknown_patient(self, client):
        resp = client.patch("/api/patients/P999/status", json={"status": "Waiting"})
        assert resp.status_code == 404
        assert "P999" in resp.json()["error"]

    def test_update_status_bad_value(self, client):
        client.post("/api/patients", json={"esi": 3})
        resp = client.patch("/api/patients/P001/status", json={"status": "Asleep"})
        assert resp.status_code == 400

    def test_set_esi(self, client):
        client.post("/api/patients", json={"esi": 5})
        resp = client.patch("/api/patients/P001/esi", json={"esi": 1})
        assert resp.status_code == 200
        assert resp.json()["patient"]["esi"] == 1
        assert client.patch("/api/patients/P001/esi", json={"esi": 0}).status_code == 400


# =====================================================================
# /api/queue
# =====================================================================


def test_queue_view(client):
    client.put("/api/patients", json=queue_document(3, 1, 5, 1))
    body = client.get("/api/queue").json()
    assert [(p["position"], p["id"]) for p in body["patients"]] == [
        (1, "P002"), (2, "P004"), (3, "P001"), (4, "P003"),
    ]
    assert body["patients"][0]["label"] == "Immediate"
    assert body["stats"] == {"total": 4, "critical": 2, "avgWait": 25}


# =====================================================================
# /api/assessments
# =====================================================================


class TestAssessments:

    def test_create(self, client):
        resp = client.post("/api/assessments")
        assert resp.status_code == 201
        body = resp.json()
        assert body["session"]["status"] == "in_progress"
        assert body["step"]["type"] == "question"
        assert body["step"]["question"]["qid"] == "vitalsStable"

    def test_unknown_session(self, client):
        resp = client.get("/api/assessments/nope")
        assert resp.status_code == 404
        assert "error" in resp.json()

    def test_idle_session_expires(self, client):
        sid = client.post("/api/assessments").json()["session"]["session_id"]
        session = client.app.state.sessions.get(sid)
        session.updated_at -= timedelta(minutes=61)
        resp = client.post(f"/api/assessments/{sid}/answer", json={"value": "yes"})
        assert resp.status_code == 404
        assert len(client.app.state.sessions) == 0

    def test_answer_and_navigate(self, client):
        sid = client.post("/api/assessments").json()["session"]["session_id"]
        step = client.post(f"/api/assessments/{sid}/answer", json={"value": "yes"}).json()
        assert step["answered"] is True
        step = client.post(f"/api/assessments/{sid}/advance").json()
        assert step["question"]["qid"] == "painLevel"
        step = client.post(f"/api/assessments/{sid}/retreat").json()
        assert step["question"]["previous_value"] == "yes"
        step = client.post(f"/api/assessments/{sid}/reset").json()
        assert step["answered"] is False

    def test_invalid_answer(self, client):
        sid = client.post("/api/assessments").json()["session"]["session_id"]
        resp = client.post(f"/api/assessments/{sid}/answer", json={"value": "perhaps"})
        assert resp.status_code == 400
        assert resp.json()["field"] == "vitalsStable"

    def test_advance_unanswered(self, client):
        sid = client.post("/api/assessments").json()["session"]["session_id"]
        assert client.post(f"/api/assessments/{sid}/advance").status_code == 400

    def test_complete_and_admit(self, client):
        sid, step = _complete_assessment(client, {**ROUTINE_VITALS, "vitalsStable": "no"})
        assert step["type"] == "complete"
        assert step["esi"] == 1
        assert step["label"] == "Immediate"

        # Finished sessions only accept reset
        resp = client.post(f"/api/assessments/{sid}/answer", json={"value": "yes"})
        assert resp.status_code == 409

        resp = client.post(f"/api/assessments/{sid}/admit", json={"waitTime": 12})
        assert resp.status_code == 200, resp.text
        patient = resp.json()["patient"]
        assert patient["esi"] == 1
        assert patient["waitTime"] == 12
        assert patient["chiefComplaint"] == "Self-assessed symptoms"
        assert patient["answers"]["vitalsStable"] == "no"

        # The session is consumed by admission
        assert client.post(f"/api/assessments/{sid}/admit").status_code == 404

    def test_admit_incomplete(self, client):
        sid = client.post("/api/assessments").json()["session"]["session_id"]
        resp = client.post(f"/api/assessments/{sid}/admit")
        assert resp.status_code == 409
        assert "not complete" in resp.json()["error"]


# =====================================================================
# /api/reference
# =====================================================================


def test_reference_questions(client):
    body = client.get("/api/reference/questions").json()
    assert body["catalog"] == "vitals"
    assert body["policy"] == "vitals"
    assert len(body["questions"]) == 8


def test_reference_esi_levels(client):
    levels = client.get("/api/reference/esi-levels").json()
    assert [lv["level"] for lv in levels] == [1, 2, 3, 4, 5]
    assert levels[0]["label"] == "Immediate"
