"""Integration tests for the HTTP API."""

import io

import pytest
from fastapi.testclient import TestClient

from loan_compliance.api.app import app, get_pipeline
from loan_compliance.pipeline import CompliancePipeline, PipelineConfig


CONTENT = {
    "type": "doc",
    "content": [
        {"type": "paragraph", "content": [
            {"type": "text", "text": "This green loan finances a natural gas turbine at the Lender's discretion."},
        ]},
    ],
}


@pytest.fixture
def client():
    pipeline = CompliancePipeline(PipelineConfig(enable_advisory=False))
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()
    pipeline.close()


class TestListings:
    """Tests for rule, country and advisory listings."""

    def test_rules(self, client):
        response = client.get("/api/rules")

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == len(body["rules"])
        assert {"id", "name", "severity", "jurisdiction"} <= set(body["rules"][0])

    def test_applicable_rules(self, client):
        everywhere = client.get("/api/rules/applicable").json()
        german = client.get("/api/rules/applicable", params={"provider_country": "DE"}).json()

        assert german["count"] == everywhere["count"] + 1
        assert "de-bgb-form" in [rule["id"] for rule in german["rules"]]

    def test_countries(self, client):
        countries = client.get("/api/countries").json()["countries"]

        assert len(countries) == 27
        assert {"code": "DE", "name": "Germany"} in countries

    def test_advisory_status(self, client):
        assert client.get("/api/advisory/status").json() == {"available": False}


class TestAnalyze:
    """Tests for analysis endpoints."""

    def test_analyze(self, client):
        response = client.post("/api/analyze", json={"content": CONTENT, "document_id": "loan-001"})

        assert response.status_code == 200
        report = response.json()
        assert report["document_id"] == "loan-001"
        assert 0 <= report["score"] <= 100
        assert any(issue["text_match"] == "natural gas" for issue in report["issues"])

    def test_analyze_rejects_non_positive_advisory_timeout(self, client):
        response = client.post("/api/analyze", json={"content": CONTENT, "advisory_timeout": 0})
        assert response.status_code == 422

    def test_rules_only(self, client):
        response = client.post("/api/analyze/rules-only", json={"content": CONTENT})

        assert response.status_code == 200
        assert response.json()["metadata"]["advisory_used"] is False

    def test_analyze_and_highlight(self, client):
        response = client.post("/api/analyze/highlight", json={"content": CONTENT, "document_id": "loan-001"})

        body = response.json()
        assert response.status_code == 200
        assert body["applied"] > 0
        assert body["skipped_issue_ids"] == []
        assert body["document"]["id"] == "loan-001"
        assert len(body["document"]["annotations"]) == body["applied"]

    def test_apply_highlights(self, client):
        analyzed = client.post("/api/analyze/highlight", json={"content": CONTENT, "document_id": "loan-001"}).json()

        response = client.post("/api/highlights", json={
            "document": analyzed["document"],
            "issues": analyzed["report"]["issues"],
        })

        assert response.status_code == 200
        assert response.json()["applied"] == analyzed["applied"]

    def test_apply_highlights_rejects_bad_document(self, client):
        response = client.post("/api/highlights", json={"document": {"content": CONTENT, "annotations": [{"to": 5}]}})
        assert response.status_code == 422

    @pytest.mark.parametrize("start, end", [("27", "38"), (27.0, 38.0)])
    def test_apply_highlights_accepts_numeric_offsets(self, client, start, end):
        issue = {
            "id": "gas-1",
            "severity": "error",
            "category": "Greenwashing",
            "message": "Fossil fuel financing",
            "textMatch": "natural gas",
            "startOffset": start,
            "endOffset": end,
        }

        response = client.post("/api/highlights", json={"document": {"content": CONTENT}, "issues": [issue]})

        assert response.status_code == 200
        assert response.json()["applied"] == 1
        assert [mark["attrs"]["issueId"] for mark in response.json()["document"]["annotations"]] == ["gas-1"]

    @pytest.mark.parametrize("offset", ["abc", 2.5, True, [1]])
    def test_apply_highlights_rejects_bad_offset(self, client, offset):
        issue = {"severity": "error", "message": "m", "textMatch": "natural gas", "startOffset": offset}

        response = client.post("/api/highlights", json={"document": {"content": CONTENT}, "issues": [issue]})

        assert response.status_code == 422
        assert "Invalid offset" in response.json()["detail"]

    def test_view(self, client):
        response = client.post("/api/view", json={"content": CONTENT})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "data-compliance-highlight" in response.text


class TestReportsAndNegotiation:
    """Tests for history and negotiation endpoints."""

    def test_reports_without_store(self, client):
        assert client.get("/api/reports/loan-001").json() == {"document_id": "loan-001", "reports": []}
        assert client.get("/api/reports/loan-001/latest").status_code == 404

    def test_negotiation_without_advisory(self, client):
        response = client.post("/api/negotiation", json={"clause": "Fees apply", "concern": "Too high"})

        assert response.status_code == 200
        assert "unavailable" in response.json()["advice"]


class TestUpload:
    """Tests for file upload."""

    def test_upload_text_file(self, client):
        data = b"This green loan supports gas-fired generation.\nSigned by the Borrower."

        response = client.post(
            "/api/upload",
            files={"file": ("facility.txt", io.BytesIO(data), "text/plain")},
            data={"provider_country": "FR"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["report"]["document_id"] == "facility"
        assert "fr-code-consommation" in body["report"]["metadata"]["applicable_rules"]
        assert any(issue["text_match"] == "gas-fired" for issue in body["report"]["issues"])

    def test_upload_unsupported_format(self, client):
        response = client.post(
            "/api/upload",
            files={"file": ("facility.rtf", io.BytesIO(b"{\\rtf1}"), "application/rtf")},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["error_type"] == "UnsupportedFormatError"
