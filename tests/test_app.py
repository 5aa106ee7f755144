import json

import pytest
from fastapi.testclient import TestClient
from prometheus_client.parser import text_string_to_metric_families

import costboard.app as app_module
from costboard.loader import DocumentState


@pytest.fixture
def state(monkeypatch, now):
    fresh = DocumentState()
    monkeypatch.setattr(app_module, "state", fresh)
    monkeypatch.setattr(app_module, "local_now", lambda: now)
    return fresh


@pytest.fixture
def client(state):
    return TestClient(app_module.app)


@pytest.fixture
def loaded(state, charges_file):
    state.load_default(str(charges_file))
    return state


def test_health_without_document(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "document_loaded": False}


def test_costs_404_until_upload(client):
    resp = client.get("/api/costs")
    assert resp.status_code == 404
    assert "upload" in resp.json()["detail"]


def test_costs_report(client, loaded):
    body = client.get("/api/costs").json()
    assert body["totals"]["monthly"] == pytest.approx(335.9)
    assert body["totals"]["current"] == pytest.approx(164.05)
    assert body["over_threshold"] is True
    assert [s["name"] for s in body["servers"]] == ["db-1", "web-1", "batch-1"]


def test_servers_filter_by_status(client, loaded):
    body = client.get("/api/servers", params={"status": "stopped"}).json()
    assert [s["name"] for s in body] == ["batch-1"]
    assert body[0]["cost"]["monthly"]["compute"] == 0


def test_server_detail(client, loaded):
    resp = client.get("/api/servers/web-1-1")
    assert resp.status_code == 200
    body = resp.json()
    assert body["cost"]["current"]["hours"] == 240
    assert body["cost"]["current"]["days"] == 10
    assert body["volume_price"] == 0.05
    assert client.get("/api/servers/web-1-0").status_code == 404


def test_upload_replaces_document(client, charges):
    payload = json.dumps(charges).encode()
    resp = client.post("/api/upload", files={"file": ("charges.json", payload, "application/json")})
    assert resp.status_code == 200
    assert resp.json()["totals"]["monthly"] == pytest.approx(335.9)
    assert client.get("/api/health").json()["document_loaded"] is True


def test_bad_json_upload_is_rejected_and_state_kept(client, loaded):
    before = loaded.document
    resp = client.post("/api/upload", files={"file": ("charges.json", b"{oops", "application/json")})
    assert resp.status_code == 400
    assert "Invalid JSON" in resp.json()["detail"]
    assert loaded.document is before


def test_invalid_field_upload_names_field(client, charges, loaded):
    charges["AWS_usable_services"][0]["volume_amount_per_iteration"] = "cheap"
    resp = client.post("/api/upload", files={"file": ("charges.json", json.dumps(charges).encode(), "application/json")})
    assert resp.status_code == 422
    detail = resp.json()["detail"]
    assert detail[0]["field"] == "AWS_usable_services[0].volume_amount_per_iteration"
    assert client.get("/api/costs").json()["totals"]["monthly"] == pytest.approx(335.9)


def test_metrics(client, loaded):
    resp = client.get("/metrics")
    assert resp.status_code == 200
    samples = _samples(resp.text)
    assert samples[("cost_month_total", ())] == pytest.approx(335.9)
    assert samples[("cost_month_to_date_total", ())] == pytest.approx(164.05)
    assert samples[("cost_servers", (("status", "Running"),))] == 2
    assert samples[("cost_service_month_total", (("service", "VPC"),))] == pytest.approx(104.4)


def test_metrics_without_document(client):
    resp = client.get("/metrics")
    assert resp.status_code == 200
    samples = _samples(resp.text)
    assert samples[("cost_threshold", ())] == app_module.COST_ALERT_THRESHOLD
    assert samples[("cost_month_total", ())] == 0


def _samples(text):
    return {
        (s.name, tuple(sorted(s.labels.items()))): s.value
        for family in text_string_to_metric_families(text)
        for s in family.samples
    }


@pytest.mark.parametrize("name", [{}, ["Elastic Compute Cloud"]])
def test_non_string_service_name_upload_is_rejected(client, loaded, name):
    before = loaded.document
    body = json.dumps({"AWS_usable_services": [{"service": name}], "AWS_default_services": []}).encode()
    resp = client.post("/api/upload", files={"file": ("charges.json", body, "application/json")})
    assert resp.status_code == 422
    assert resp.json()["detail"][0]["field"] == "AWS_usable_services[0].service"
    assert loaded.document is before
