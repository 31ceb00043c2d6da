import pytest
from fastapi.testclient import TestClient

from mdcat_generator.core.errors import ModelTimeoutError, UpstreamServiceError
from mdcat_generator.main import app
from mdcat_generator.services.generation_service import GenerationService

GENERATE_URL = "/api/generate-questions"


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def failing_generate_test(error):
    async def generate_test(self, params):
        raise error
    return generate_test


def test_full_test_request(client):
    response = client.post(GENERATE_URL, json={"count": 10, "testFormat": "full-test"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert 1 <= len(body["questions"]) <= 10
    for question in body["questions"]:
        assert len(question["options"]) == 4
        assert question["answer"] in {"A", "B", "C", "D"}
    assert body["metadata"]["requested"] == 10
    assert body["metadata"]["generated"] == len(body["questions"])
    assert body["metadata"]["testFormat"] == "full-test"


def test_count_out_of_range(client):
    response = client.post(GENERATE_URL, json={"count": 300})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "between 1 and 180" in body["error"]
    assert body["type"] == "validation_error"


@pytest.mark.parametrize("payload", [
    {"count": 0},
    {"count": "10"},
    {"count": 10.5},
    {"testFormat": "full-test"},
])
def test_count_must_be_integer_in_range(client, payload):
    response = client.post(GENERATE_URL, json=payload)

    assert response.status_code == 400
    assert "between 1 and 180" in response.json()["error"]


def test_subject_test_returns_only_that_subject(client):
    response = client.post(
        GENERATE_URL,
        json={"testFormat": "subject-test", "selectedSubject": "Biology", "count": 5}
    )

    assert response.status_code == 200
    questions = response.json()["questions"]
    assert questions
    assert all(q["subject"].lower() == "biology" for q in questions)


def test_topic_test_requires_topic(client):
    response = client.post(GENERATE_URL, json={"testFormat": "topic-test", "count": 5})

    assert response.status_code == 400
    body = response.json()
    assert body["type"] == "topic_or_subject_required"
    assert body["error"] == "Topic is required for topic-test format"
    assert "responseTime" in body


def test_subject_test_requires_subject(client):
    response = client.post(GENERATE_URL, json={"testFormat": "subject-test", "count": 5, "topic": "  "})

    assert response.status_code == 400
    assert response.json()["error"] == "Subject is required for subject-test format"


def test_subject_test_rejects_unknown_subject(client):
    response = client.post(
        GENERATE_URL,
        json={"testFormat": "subject-test", "selectedSubject": "Astronomy", "count": 5}
    )

    assert response.status_code == 400
    body = response.json()
    assert body["type"] == "validation_error"
    assert body["error"].startswith("Invalid subject. Must be one of: biology, chemistry")


def test_legacy_subject_field(client):
    response = client.post(GENERATE_URL, json={"testFormat": "subject-test", "subject": "biology", "count": 3})

    assert response.status_code == 200
    assert response.json()["metadata"]["selectedSubject"] == "biology"


def test_unknown_fields_are_rejected(client):
    response = client.post(GENERATE_URL, json={"count": 5, "questionCount": 5})

    assert response.status_code == 400
    assert "questionCount" in response.json()["error"]


def test_invalid_year_range_is_rejected(client):
    response = client.post(GENERATE_URL, json={"count": 5, "yearRange": {"start": 2020, "end": 2010}})
    assert response.status_code == 400


def test_custom_year_range_is_echoed(client):
    response = client.post(GENERATE_URL, json={"count": 5, "yearRange": {"start": 2015, "end": 2016}})

    assert response.status_code == 200
    assert response.json()["metadata"]["yearRange"] == {"start": 2015, "end": 2016}


def test_malformed_json(client):
    response = client.post(
        GENERATE_URL,
        content='{"count": 10,',
        headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Malformed JSON in request body"


def test_legacy_generate_path(client):
    response = client.post("/generate-questions", json={"count": 3})
    assert response.status_code == 200


@pytest.mark.parametrize("error,status,error_type", [
    (UpstreamServiceError("Model API error: overloaded", status=503), 503, "upstream_service_error"),
    (ModelTimeoutError("API request timeout after 45 seconds"), 408, "timeout_error"),
])
def test_upstream_failures_map_to_status(client, monkeypatch, error, status, error_type):
    monkeypatch.setattr(GenerationService, "generate_test", failing_generate_test(error))

    response = client.post(GENERATE_URL, json={"count": 5})

    assert response.status_code == status
    body = response.json()
    assert body["type"] == error_type
    assert body["detail"] == error.message
    assert "try" in body["error"].lower()


def test_unexpected_error_is_500(monkeypatch):
    monkeypatch.setattr(GenerationService, "generate_test", failing_generate_test(RuntimeError("boom")))

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.post(GENERATE_URL, json={"count": 5})

    assert response.status_code == 500
    assert response.json()["success"] is False


def test_unknown_api_route(client):
    response = client.get("/api/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "error": "API endpoint not found",
        "availableEndpoints": ["/api/generate-questions"]
    }


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert isinstance(body["hasApiKey"], bool)
    assert set(body["syllabusStats"]) == {"biology", "chemistry", "physics", "english", "logical"}
    assert body["universities"] == ["UHS", "KMU", "DUHS", "BUMHS", "NUMS"]
    assert body["version"] == "3.1.0"
    assert body["timestamp"].endswith("Z")


def test_info(client):
    body = client.get("/info").json()
    assert body["configuration"]["max_questions"] == 180
    assert body["features"]["offline_mode"] is True


def test_index_page(client):
    response = client.get("/")

    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]


@pytest.mark.parametrize("year_range", [{"start": 0, "end": 0}, {"start": 1850, "end": 2020}])
def test_implausible_year_range_is_rejected(client, year_range):
    response = client.post(GENERATE_URL, json={"count": 5, "yearRange": year_range})

    assert response.status_code == 400
    assert response.json()["type"] == "validation_error"


@pytest.mark.parametrize("method", ["OPTIONS", "HEAD", "PUT", "DELETE"])
def test_unknown_api_route_for_any_method(client, method):
    response = client.request(method, "/api/x")

    assert response.status_code == 404
    if method != "HEAD":
        assert response.json()["error"] == "API endpoint not found"
