"""Tests for hcregister.web routes - shared state, export and health."""

from __future__ import annotations

from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from openpyxl import load_workbook

from hcregister.models import ActivityLog
from hcregister.web.app import create_app


@pytest.fixture
def client():
    """Test client with lifespan (creates the backend tables)."""
    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def document(sample_records):
    return {
        "records": [r.to_wire() for r in sample_records],
        "activities": [ActivityLog(user="alice", action="bulk uploaded 3 records").to_wire()],
    }


class TestSharedState:
    """Tests for GET/POST /api/state."""

    def test_empty_before_first_save(self, client):
        response = client.get("/api/state")
        assert response.status_code == 200
        assert response.json() == {}

    def test_save_then_fetch(self, client, document):
        response = client.post("/api/state", json=document, headers={"X-User": "alice"})
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "records": 3, "activities": 1}

        fetched = client.get("/api/state").json()
        assert [r["id"] for r in fetched["records"]] == ["rec1", "rec2", "rec3"]
        assert fetched["records"][0]["listNo"] == "L1"
        assert fetched["activities"][0]["user"] == "alice"

    def test_last_write_wins(self, client, document):
        client.post("/api/state", json=document)
        client.post("/api/state", json={"records": [], "activities": []})
        assert client.get("/api/state").json() == {"records": [], "activities": []}

    def test_invalid_document_rejected(self, client):
        response = client.post("/api/state", json={"records": [{"feasible": "Maybe"}]})
        assert response.status_code == 422


class TestExport:
    """Tests for GET /api/export/xlsx."""

    def test_download_all(self, client, document):
        client.post("/api/state", json=document)
        response = client.get("/api/export/xlsx")

        assert response.status_code == 200
        assert "HC_Framework_Full_Export_" in response.headers["content-disposition"]
        wb = load_workbook(BytesIO(response.content))
        assert wb.sheetnames == ["Master Register", "HC-001", "HC-002", "rec3"]

    def test_download_selection(self, client, document):
        client.post("/api/state", json=document)
        response = client.get("/api/export/xlsx", params={"ids": ["rec2"]})
        wb = load_workbook(BytesIO(response.content))
        assert wb.sheetnames == ["Master Register", "HC-002"]

    def test_empty_selection_is_400(self, client):
        response = client.get("/api/export/xlsx")
        assert response.status_code == 400
        assert response.json() == {"detail": "Select at least one record"}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok", "database": "connected"}
