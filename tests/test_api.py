import pytest
from fastapi.testclient import TestClient

from src.api.main import create_app
from src.integrations.contracts.errors import NetworkUnavailable
from src.matrix.catalogue import CodeCatalogue
from src.matrix.orchestrator import SelectionOrchestrator


@pytest.fixture
def client(backend, config):
    app = create_app(orchestrator=SelectionOrchestrator(backend, config), catalogue=CodeCatalogue(backend))
    with TestClient(app) as test_client:
        yield test_client


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "healthy"
    assert body["phase"] == "idle"
    assert body["pending_lookups"] == 0


def test_select_returns_settled_matrix(client):
    resp = client.post("/api/v1/matrix/select", json={"code": "21686"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["state"]["progress"] == 100
    assert body["state"]["phase"] == "settled"
    assert body["state"]["related_codes"] == ["31001", "31002"]
    assert len(body["rows"]) == 4
    first = body["rows"][0]
    assert first["kind"] == "주계약"
    assert first["availability"] == "준비금키 Y/준비금 Y/보험료 Y"
    assert first["male_premium"] == 1215

    again = client.get("/api/v1/matrix")
    assert again.json() == body


def test_select_rejects_empty_code(client):
    resp = client.post("/api/v1/matrix/select", json={"code": ""})
    assert resp.status_code == 422


def test_age_and_base_amount_changes(client):
    client.post("/api/v1/matrix/select", json={"code": "21686"})

    resp = client.post("/api/v1/matrix/age", json={"age": 40})
    assert resp.status_code == 200
    assert resp.json()["failed_rows"] == 0
    assert resp.json()["state"]["age"] == 40
    assert all(r["male_premium"] == 1240 for r in resp.json()["rows"])

    resp = client.post("/api/v1/matrix/base-amount", json={"amount": 200})
    assert resp.status_code == 200
    assert all(r["male_premium"] == 2440 for r in resp.json()["rows"])


def test_invalid_age_is_rejected(client):
    resp = client.post("/api/v1/matrix/age", json={"age": -1})
    assert resp.status_code == 422


def test_refresh_schedules_follow_ups(client):
    client.post("/api/v1/matrix/select", json={"code": "21686"})

    resp = client.post("/api/v1/matrix/refresh", json={"suppress": True})

    assert resp.status_code == 200
    assert resp.json()["failed_rows"] == 0
    assert resp.json()["follow_up_pending"] is True


def test_catalogue_endpoints(client):
    pdfs = client.get("/api/v1/catalogue/pdfs").json()["pdfs"]
    assert [p["name"] for p in pdfs] == ["다사랑암보험_사업방법서.pdf"]

    codes = client.get("/api/v1/catalogue/codes", params={"file": pdfs[0]["name"]}).json()
    assert [c["code"] for c in codes["codes"]] == ["21686"]
    assert codes["diagnostic"] is None

    inspection = client.get("/api/v1/catalogue/codes/21686", params={"age": 30}).json()
    assert inspection["code"] == "21686"
    assert inspection["age"] == 30
    assert inspection["limit"]["max_won"] == 100_000_000
    assert inspection["messages"] == []


def test_pdf_listing_failure_returns_fallback_payload(client, backend):
    backend.fail("pdfs", "*", NetworkUnavailable("down"))

    resp = client.get("/api/v1/catalogue/pdfs")

    assert resp.status_code == 502
    assert resp.json()["detail"]["fallback"] is True
    assert resp.json()["detail"]["metadata"]["kind"] == "NetworkUnavailable"
