"""Tests for internal job endpoints (/internal/run_forensics_worker, /internal/run_hotspot_scan)."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from lumora.api.deps import get_forensic_oracles, get_oracle
from lumora.forensics import submit
from lumora.forensics.oracles import TamperDetector, TamperReading, TextExtractor, TextReading
from lumora.main import app
from lumora.services.risk_oracle import RiskOracle
from tests.test_constants import TEST_INTERNAL_JOB_TOKEN

HEADERS = {"X-Internal-Token": TEST_INTERNAL_JOB_TOKEN}


@pytest.fixture
def forensic_oracles():
    detector = MagicMock(spec=TamperDetector)
    detector.detect_tamper.return_value = TamperReading(confidence=25.0)
    extractor = MagicMock(spec=TextExtractor)
    extractor.extract_text.return_value = TextReading(text="")
    app.dependency_overrides[get_forensic_oracles] = lambda: (detector, extractor)
    yield detector, extractor
    app.dependency_overrides.pop(get_forensic_oracles, None)


@pytest.fixture
def risk_oracle():
    oracle = MagicMock(spec=RiskOracle)
    oracle.analyze.return_value = []
    app.dependency_overrides[get_oracle] = lambda: oracle
    yield oracle
    app.dependency_overrides.pop(get_oracle, None)


class TestRunForensicsWorker:
    def test_drains_queue(self, client_with_db: TestClient, db, make_manufacturer, forensic_oracles):
        manufacturer = make_manufacturer()
        submit(db, manufacturer.id, "/certs/forged.jpg")

        resp = client_with_db.post("/internal/run_forensics_worker", headers=HEADERS)

        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "completed"
        assert data["jobs_processed"] == 1
        assert data["completed"] == 1
        db.refresh(manufacturer)
        assert manufacturer.ai_status == "FAKE"

    def test_missing_token_returns_422(self, client_with_db: TestClient):
        resp = client_with_db.post("/internal/run_forensics_worker")
        assert resp.status_code == 422

    def test_wrong_token_returns_403(self, client_with_db: TestClient, forensic_oracles):
        resp = client_with_db.post(
            "/internal/run_forensics_worker", headers={"X-Internal-Token": "wrong-token"}
        )
        assert resp.status_code == 403


class TestRunHotspotScan:
    def test_runs_scan(self, client_with_db: TestClient, risk_oracle):
        resp = client_with_db.post(
            "/internal/run_hotspot_scan", params={"window_days": 14}, headers=HEADERS
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "completed"
        assert data["advisories_created"] == 0
        assert data["job_run_id"] is not None

    def test_wrong_token_returns_403(self, client_with_db: TestClient, risk_oracle):
        resp = client_with_db.post(
            "/internal/run_hotspot_scan", headers={"X-Internal-Token": "wrong-token"}
        )
        assert resp.status_code == 403
