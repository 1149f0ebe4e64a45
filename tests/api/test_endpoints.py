"""
Tests for the HTTP API.
"""

import pytest
from fastapi.testclient import TestClient

from regrader.core.config import settings
from regrader.main import app

PREFIX = settings.API_V1_PREFIX


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def exam_payload(exam_rows):
    return [row.model_dump(by_alias=True) for row in exam_rows]


@pytest.fixture
def mapping_payload(item_analysis_rows):
    return [row.model_dump() for row in item_analysis_rows]


class TestHealth:
    """Tests for health and root endpoints."""

    def test_health(self, client):
        response = client.get(f"{PREFIX}/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == settings.APP_NAME
        assert "timestamp" in data

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["docs"] == f"{PREFIX}/docs"


class TestRegradeEndpoint:
    """Tests for POST /regrade."""

    def test_regrade(self, client, exam_payload):
        response = client.post(
            f"{PREFIX}/regrade",
            json={"examRows": exam_payload, "pointsPerQuestion": 5},
        )
        assert response.status_code == 200
        data = response.json()

        assert data["numQuestions"] == 3
        assert [r["Tot"] for r in data["results"]] == [15, 10, 5, 0, 15, 10, 5, 0]
        assert data["rankedResults"][0]["Rank"] == "T1"
        assert data["voidedQuestions"] == []
        assert data["missingSolutionCodes"] == []

    def test_numeric_codes_accepted(self, client, exam_payload):
        for row in exam_payload:
            row["Code"] = int(row["Code"])

        response = client.post(
            f"{PREFIX}/regrade",
            json={"examRows": exam_payload, "pointsPerQuestion": 5},
        )
        assert response.status_code == 200
        data = response.json()
        assert [r["Tot"] for r in data["results"]] == [15, 10, 5, 0, 15, 10, 5, 0]
        assert data["results"][0]["Code"] == "1"
        assert data["revisedRows"][0]["Code"] == "1"

    def test_edited_key(self, client, exam_payload):
        response = client.post(
            f"{PREFIX}/regrade",
            json={
                "examRows": exam_payload,
                "pointsPerQuestion": 5,
                "correctAnswers": {
                    "1": [["A"], [], ["d", "C"]],
                    "2": [["C"], ["A"], ["B"]],
                },
            },
        )
        assert response.status_code == 200
        data = response.json()

        assert data["revisedRows"][0]["answers"] == ["A", "", "CD"]
        assert data["voidedQuestions"] == [{"code": "1", "question": 2}]
        # S2: A, (voided), D
        assert data["results"][1]["Tot"] == 10

    def test_empty_sheet(self, client):
        response = client.post(f"{PREFIX}/regrade", json={"examRows": []})
        assert response.status_code == 422
        assert response.json()["detail"] == "The answer sheet is empty."

    def test_too_many_questions(self, client, exam_payload):
        response = client.post(
            f"{PREFIX}/regrade", json={"examRows": exam_payload, "numQuestions": 9}
        )
        assert response.status_code == 422
        assert "only has 3 question columns" in response.json()["detail"]

    def test_invalid_body(self, client):
        response = client.post(f"{PREFIX}/regrade", json={"rows": []})
        assert response.status_code == 422
        assert isinstance(response.json()["detail"], list)


class TestCrossVersionEndpoint:
    """Tests for POST /cross-version."""

    def test_averages(self, client, exam_payload, mapping_payload):
        response = client.post(
            f"{PREFIX}/cross-version",
            json={"examRows": exam_payload, "itemAnalysisRows": mapping_payload},
        )
        assert response.status_code == 200
        data = response.json()

        assert data["averageResults"][0]["Average_score"] == 62.5
        assert data["averageResults"][0]["codeStats"]["2"]["count"] == 4
        assert [c["Code"] for c in data["codeAverages"]] == ["1", "2"]

    def test_mismatched_codes(self, client, exam_payload):
        response = client.post(
            f"{PREFIX}/cross-version",
            json={
                "examRows": exam_payload,
                "itemAnalysisRows": [{"code": "Z", "order": 1, "order_in_master": 1}],
            },
        )
        assert response.status_code == 422
        assert "Codes in item analysis file: Z" in response.json()["detail"]

    def test_empty_mapping(self, client, exam_payload):
        response = client.post(
            f"{PREFIX}/cross-version",
            json={"examRows": exam_payload, "itemAnalysisRows": []},
        )
        assert response.status_code == 422
        assert response.json()["detail"] == "The item analysis table is empty."


class TestItemAnalysisEndpoint:
    """Tests for POST /item-analysis."""

    def test_analysis(self, client, exam_payload, mapping_payload):
        response = client.post(
            f"{PREFIX}/item-analysis",
            json={
                "examRows": exam_payload,
                "itemAnalysisRows": mapping_payload,
                "pointsPerQuestion": 5,
            },
        )
        assert response.status_code == 200
        data = response.json()

        summary = data["analysis"]["testSummary"]
        assert summary["KR20"] == pytest.approx(0.6375)
        assert summary["reliabilityLabel"] == "Poor"
        decisions = [i["decision"] for i in data["analysis"]["itemStatistics"]]
        assert decisions == ["KEEP", "REVISE", "KEEP"]
        assert len(data["distractors"]) == 3
        assert data["distractors"][0]["masterQuestion"] == 1

    def test_missing_permutations(self, client, exam_payload, mapping_payload):
        for row in mapping_payload:
            row["permutation"] = None
        response = client.post(
            f"{PREFIX}/item-analysis",
            json={"examRows": exam_payload, "itemAnalysisRows": mapping_payload},
        )
        assert response.status_code == 422
        assert "Missing permutation for" in response.json()["detail"]

    def test_key_mismatch(self, client, exam_payload, mapping_payload):
        mapping_payload[0]["correct"] = "E"
        response = client.post(
            f"{PREFIX}/item-analysis",
            json={"examRows": exam_payload, "itemAnalysisRows": mapping_payload},
        )
        assert response.status_code == 422
        assert response.json()["detail"].startswith("Correct answer mismatch detected:")


class TestItemMappingEndpoint:
    """Tests for POST /item-mapping/normalize."""

    def test_detects_new_schema(self, client):
        response = client.post(
            f"{PREFIX}/item-mapping/normalize",
            json={
                "records": [
                    {"Version": "1", "Version Q#": "2", "Master Q#": "1"},
                    {"Version": "2", "Version Q#": "1", "Master Q#": "1"},
                ]
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["schema"] == "NEW"
        assert [(r["code"], r["order"]) for r in data["rows"]] == [(1, 2), (2, 1)]

    def test_column_mapping(self, client):
        response = client.post(
            f"{PREFIX}/item-mapping/normalize",
            json={
                "records": [{"Form": "A", "Pos": "1", "Master": "3"}],
                "columnMapping": {"code": "Form", "order": "Pos", "order_in_master": "Master"},
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["schema"] == "UNKNOWN"
        assert data["rows"][0]["order_in_master"] == 3

    def test_unknown_layout(self, client):
        response = client.post(
            f"{PREFIX}/item-mapping/normalize",
            json={"records": [{"Form": "A", "Pos": "1"}]},
        )
        assert response.status_code == 422
        assert "column mapping is required" in response.json()["detail"]

    def test_no_records(self, client):
        response = client.post(f"{PREFIX}/item-mapping/normalize", json={"records": []})
        assert response.status_code == 422
