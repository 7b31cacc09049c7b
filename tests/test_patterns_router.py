"""Tests for the patterns REST router.

Uses FastAPI TestClient with DB dependency override. Validates status codes,
merged suggestion payloads, application counting and error mapping.
"""

from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from bizcap.exceptions import StorageUnavailableError
from bizcap.patterns.models import AssignmentPattern
from bizcap.patterns.router import _get_db, patterns_router


@pytest.fixture
def app(db_session):
    """Create FastAPI app with DB dependency override."""
    test_app = FastAPI()
    test_app.include_router(patterns_router)

    def override_db():
        yield db_session

    test_app.dependency_overrides[_get_db] = override_db
    return test_app


@pytest.fixture
def client(app):
    """TestClient for the patterns API."""
    return TestClient(app)


# =============================================================================
# POST /api/patterns/assign
# =============================================================================


class TestAssignEndpoint:
    def test_merges_patterns_with_lookups(self, client, db_session, catalog, make_pattern):
        make_pattern(
            'canvas:facility:MINING_METALS:["COPPER"]',
            sector_codes=["COPPER"],
            assignment_data={"facility_types": ["HEAP_LEACH_PAD", "OPEN_PIT_MINE"]},
            confidence_score=0.6,
        )

        resp = client.post(
            "/api/patterns/assign",
            json={
                "industry": "MINING_METALS",
                "sectors": ["COPPER"],
                "location": "Brisbane, QLD",
            },
        )

        assert resp.status_code == 200
        data = resp.json()
        # Pattern values first, then association values, deduplicated
        assert data["facility_types"] == [
            "HEAP_LEACH_PAD",
            "OPEN_PIT_MINE",
            "UNDERGROUND_MINE",
            "PROCESSING_PLANT",
        ]
        assert data["operational_streams"] == ["Exploration", "Copper Smelting"]
        assert "QLD_WHS_ACT_2011" in data["compliance_requirements"]
        assert "QLD_EPA_FRAMEWORK" in data["regulatory_frameworks"]
        assert data["confidence"] == pytest.approx(0.6)
        assert data["applied_patterns"] == ['canvas:facility:MINING_METALS:["COPPER"]']
        assert data["assignment_method"] == "pattern_engine"
        assert data["timestamp"]

    def test_records_application(self, client, db_session, catalog, make_pattern):
        make_pattern("p", sector_codes=["COPPER"])

        client.post(
            "/api/patterns/assign",
            json={"industry": "MINING_METALS", "sectors": ["COPPER"]},
        )
        client.post(
            "/api/patterns/assign",
            json={"industry": "MINING_METALS", "sectors": ["COPPER"]},
        )

        row = db_session.get(AssignmentPattern, "p")
        db_session.refresh(row)
        assert row.application_count == 2

    def test_no_patterns_still_returns_lookups(self, client, catalog):
        resp = client.post(
            "/api/patterns/assign",
            json={"industry": "MINING_METALS", "sectors": ["GOLD"]},
        )

        assert resp.status_code == 200
        data = resp.json()
        assert data["confidence"] == 0.0
        assert data["applied_patterns"] == []
        assert data["operational_streams"] == ["Exploration", "Gold Refining"]

    def test_missing_industry_rejected(self, client):
        resp = client.post("/api/patterns/assign", json={"sectors": ["COPPER"]})
        assert resp.status_code == 422

    def test_empty_sectors_rejected(self, client):
        resp = client.post(
            "/api/patterns/assign",
            json={"industry": "MINING_METALS", "sectors": []},
        )
        assert resp.status_code == 422

    def test_blank_industry_returns_400(self, client):
        resp = client.post(
            "/api/patterns/assign",
            json={"industry": "  ", "sectors": ["COPPER"]},
        )
        assert resp.status_code == 400
        assert "Industry is required" in resp.json()["detail"]

    def test_storage_failure_returns_503(self, client):
        with patch(
            "bizcap.patterns.router.PatternEngine.get_matching_patterns",
            side_effect=StorageUnavailableError(detail="db down"),
        ):
            resp = client.post(
                "/api/patterns/assign",
                json={"industry": "MINING_METALS", "sectors": ["COPPER"]},
            )

        assert resp.status_code == 503
        assert "Storage is unavailable" in resp.json()["detail"]


# =============================================================================
# GET /api/patterns/assign
# =============================================================================


class TestAnalysisEndpoint:
    def test_requires_industry(self, client):
        resp = client.get("/api/patterns/assign")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Industry parameter is required"

    def test_summarises_industry_patterns(self, client, catalog, make_canvas):
        for _ in range(2):
            make_canvas(
                "MINING_METALS",
                ["COPPER"],
                facility_types=[catalog.facility["OPEN_PIT_MINE"]],
                streams=[catalog.stream["EXTRACTION"]],
            )
        make_canvas(
            "OIL_GAS",
            ["OFFSHORE"],
            facility_types=[catalog.facility["OFFSHORE_PLATFORM"]],
        )

        resp = client.get(
            "/api/patterns/assign",
            params={"industry": "MINING_METALS", "sectors": "COPPER,GOLD", "location": "Perth, WA"},
        )

        assert resp.status_code == 200
        data = resp.json()
        assert data["industry"] == "MINING_METALS"
        assert data["sectors"] == ["COPPER", "GOLD"]
        assert data["location"] == "Perth, WA"
        assert data["patterns"]["total"] == 3
        assert data["patterns"]["industry_specific"] == 2
        assert data["patterns"]["facility_patterns"] == 1
        assert len(data["pattern_details"]["facility"]) == 1
        assert len(data["pattern_details"]["operational"]) == 1
        assert data["pattern_details"]["compliance"] == []
        assert data["pattern_details"]["regulatory"] == []
        assert data["statistics"]["total_canvases"] == 3

    def test_analysis_does_not_persist(self, client, db_session, catalog, make_canvas):
        make_canvas(
            "MINING_METALS",
            ["COPPER"],
            facility_types=[catalog.facility["OPEN_PIT_MINE"]],
        )

        client.get("/api/patterns/assign", params={"industry": "MINING_METALS"})

        assert db_session.query(AssignmentPattern).count() == 0


# =============================================================================
# POST /api/patterns/refresh
# =============================================================================


class TestRefreshEndpoint:
    def test_persists_pattern_set(self, client, db_session, catalog, make_canvas):
        make_canvas(
            "MINING_METALS",
            ["COPPER"],
            facility_types=[catalog.facility["OPEN_PIT_MINE"]],
        )

        resp = client.post("/api/patterns/refresh")

        assert resp.status_code == 200
        data = resp.json()
        assert data["saved"] == 2
        assert data["statistics"]["total_canvases"] == 1
        ids = {p.id for p in db_session.query(AssignmentPattern).all()}
        assert ids == {
            'canvas:facility:MINING_METALS:["COPPER"]',
            "association:facility:OIL_GAS",
        }

    def test_storage_failure_returns_503(self, client):
        with patch(
            "bizcap.patterns.router.PatternAnalysisService.build_pattern_set",
            side_effect=StorageUnavailableError(),
        ):
            resp = client.post("/api/patterns/refresh")

        assert resp.status_code == 503
