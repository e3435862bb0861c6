"""
Integration tests for POST /api/analyze, with the Gemini calls replaced.
"""

import base64
import json

import httpx
import pytest
from fastapi.testclient import TestClient

import main
from career_assistant import gemini

REAL_GENERATE_TEXT = gemini.generate_text


class FakeGemini:
    """Stands in for the Gemini helpers: records probes and generation calls."""

    def __init__(self, valid_keys=(), reply="", error=None):
        self.valid_keys = set(valid_keys)
        self.reply = reply
        self.error = error
        self.probes = []
        self.generations = []

    async def is_api_key_valid(self, api_key):
        self.probes.append(api_key)
        return api_key in self.valid_keys

    async def generate_text(self, prompt, api_key, model=None, transport=None):
        self.generations.append((prompt, api_key))
        if self.error:
            raise self.error
        return self.reply


@pytest.fixture
def client():
    return TestClient(main.app)


@pytest.fixture
def fake(monkeypatch, generation_json):
    fake = FakeGemini(reply="Here you go:\n" + json.dumps(generation_json) + "\nGood luck!")
    monkeypatch.setattr(gemini, "is_api_key_valid", fake.is_api_key_valid)
    monkeypatch.setattr(gemini, "generate_text", fake.generate_text)
    return fake


def _multipart(pdf, title="Backend Engineer", description="We need a Python backend engineer.", content_type="application/pdf"):
    return {
        "files": {"resume": ("resume.pdf", pdf, content_type)},
        "data": {"jobTitle": title, "jobDescription": description},
    }


def _json_body(pdf, api_key=None, mime="application/pdf", description="We need a Python backend engineer."):
    body = {
        "resume": {
            "name": "resume.pdf",
            "type": mime,
            "data": f"data:{mime};base64," + base64.b64encode(pdf).decode("ascii"),
        },
        "jobTitle": "Backend Engineer",
        "jobDescription": description,
    }
    if api_key:
        body["apiKey"] = api_key
    return body


# ----------------------------------------------------------------------------
# Key resolution
# ----------------------------------------------------------------------------


@pytest.mark.integration
def test_header_key_is_trusted_without_probe(client, fake, pdf_bytes, make_key):
    key = make_key("hdr")
    response = client.post("/api/analyze", headers={"x-api-key": key}, **_multipart(pdf_bytes))

    assert response.status_code == 200
    assert fake.probes == []
    assert fake.generations[0][1] == key


@pytest.mark.integration
def test_environment_key_is_probed_then_used(client, fake, monkeypatch, pdf_bytes, make_key):
    env_key = make_key("env")
    monkeypatch.setenv("GEMINI_API_KEY", env_key)
    fake.valid_keys = {env_key}

    response = client.post("/api/analyze", json=_json_body(pdf_bytes))

    assert response.status_code == 200
    assert fake.probes == [env_key]
    assert fake.generations[0][1] == env_key


@pytest.mark.integration
def test_google_api_key_variable_is_honoured(client, fake, monkeypatch, pdf_bytes, make_key):
    env_key = make_key("google")
    monkeypatch.setenv("GOOGLE_API_KEY", env_key)
    fake.valid_keys = {env_key}

    response = client.post("/api/analyze", json=_json_body(pdf_bytes))

    assert response.status_code == 200
    assert fake.generations[0][1] == env_key


@pytest.mark.integration
def test_body_key_used_when_environment_key_fails(client, fake, monkeypatch, pdf_bytes, make_key):
    env_key, body_key = make_key("env"), make_key("body")
    monkeypatch.setenv("GEMINI_API_KEY", env_key)
    fake.valid_keys = {body_key}

    response = client.post("/api/analyze", json=_json_body(pdf_bytes, api_key=body_key))

    assert response.status_code == 200
    assert fake.probes == [env_key, body_key]
    assert fake.generations[0][1] == body_key


@pytest.mark.integration
def test_body_key_used_when_environment_key_check_gets_non_json(client, monkeypatch, pdf_bytes, make_key, generation_json):
    env_key, body_key = make_key("env"), make_key("body")
    monkeypatch.setenv("GEMINI_API_KEY", env_key)
    used_keys = []

    def handler(request):
        key = request.url.params["key"]
        used_keys.append(key)
        if key == env_key:
            return httpx.Response(200, text="<html>proxy login</html>")
        prompt = json.loads(request.content)["contents"][0]["parts"][0]["text"]
        text = "ok" if prompt == "Test" else json.dumps(generation_json)
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})

    async def generate_text(prompt, api_key, model=None, transport=None):
        return await REAL_GENERATE_TEXT(prompt, api_key, model=model, transport=httpx.MockTransport(handler))

    monkeypatch.setattr(gemini, "generate_text", generate_text)

    response = client.post("/api/analyze", json=_json_body(pdf_bytes, api_key=body_key))

    assert response.status_code == 200
    assert used_keys == [env_key, body_key, body_key]
    assert response.json()["cover_letter"] == generation_json["cover_letter"]


@pytest.mark.integration
def test_no_usable_key_returns_401(client, fake, monkeypatch, pdf_bytes, make_key):
    monkeypatch.setenv("GEMINI_API_KEY", make_key("env"))

    response = client.post("/api/analyze", json=_json_body(pdf_bytes, api_key=make_key("body")))

    assert response.status_code == 401
    assert response.json() == {"error": "API key is required", "requiresApiKey": True}
    assert len(fake.probes) == 2
    assert fake.generations == []


@pytest.mark.integration
def test_no_key_anywhere_returns_401_without_probing(client, fake, pdf_bytes):
    response = client.post("/api/analyze", **_multipart(pdf_bytes))

    assert response.status_code == 401
    assert response.json()["requiresApiKey"] is True
    assert fake.probes == []


# ----------------------------------------------------------------------------
# Body parsing and validation
# ----------------------------------------------------------------------------


@pytest.mark.integration
def test_multipart_success_returns_generation_result(client, fake, pdf_bytes, make_key, generation_json):
    response = client.post("/api/analyze", headers={"x-api-key": make_key("k")}, **_multipart(pdf_bytes))

    assert response.status_code == 200
    data = response.json()
    assert data["cover_letter"] == generation_json["cover_letter"]
    assert data["youtube_links"] == generation_json["youtube_links"]
    assert data["resume_analysis"]["missing_skills"] == ["Kafka", "Terraform"]
    assert data["interview_questions"] == generation_json["interview_questions"]


@pytest.mark.integration
def test_json_success_decodes_base64_resume(client, fake, pdf_bytes, make_key):
    response = client.post("/api/analyze", headers={"x-api-key": make_key("k")}, json=_json_body(pdf_bytes))

    assert response.status_code == 200
    prompt = fake.generations[0][0]
    assert "Jane Doe" in prompt
    assert "Job Title: Backend Engineer" in prompt


@pytest.mark.integration
def test_json_accepts_bare_base64_payload(client, fake, pdf_bytes, make_key):
    body = _json_body(pdf_bytes)
    body["resume"]["data"] = base64.b64encode(pdf_bytes).decode("ascii")

    response = client.post("/api/analyze", headers={"x-api-key": make_key("k")}, json=body)

    assert response.status_code == 200


@pytest.mark.integration
def test_unsupported_content_type_is_400(client, fake, make_key):
    response = client.post(
        "/api/analyze",
        headers={"x-api-key": make_key("k"), "content-type": "text/plain"},
        content=b"hello",
    )

    assert response.status_code == 400
    assert "Unsupported content type" in response.json()["error"]


@pytest.mark.integration
def test_malformed_json_body_is_400(client, fake, make_key):
    response = client.post(
        "/api/analyze",
        headers={"x-api-key": make_key("k"), "content-type": "application/json"},
        content=b"{not json",
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid JSON body"}


@pytest.mark.integration
def test_invalid_base64_is_400(client, fake, pdf_bytes, make_key):
    body = _json_body(pdf_bytes)
    body["resume"]["data"] = "data:application/pdf;base64,@@@not-base64@@@"

    response = client.post("/api/analyze", headers={"x-api-key": make_key("k")}, json=body)

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid file data in request"


@pytest.mark.integration
def test_non_string_job_title_is_400(client, fake, pdf_bytes, make_key):
    body = _json_body(pdf_bytes)
    body["jobTitle"] = 42

    response = client.post("/api/analyze", headers={"x-api-key": make_key("k")}, json=body)

    assert response.status_code == 400
    assert response.json()["error"] == "All fields are required"
    assert fake.generations == []


@pytest.mark.integration
def test_missing_file_part_is_400(client, fake, make_key):
    response = client.post(
        "/api/analyze",
        headers={"x-api-key": make_key("k")},
        data={"jobTitle": "Engineer", "jobDescription": "d" * 30},
        files={"other": ("x.txt", b"x", "text/plain")},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "No file uploaded"


@pytest.mark.integration
def test_missing_text_field_is_400(client, fake, pdf_bytes, make_key):
    response = client.post(
        "/api/analyze",
        headers={"x-api-key": make_key("k")},
        files={"resume": ("resume.pdf", pdf_bytes, "application/pdf")},
        data={"jobTitle": "Engineer"},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "All fields are required"


@pytest.mark.integration
def test_non_pdf_upload_is_400(client, fake, pdf_bytes, make_key):
    response = client.post(
        "/api/analyze", headers={"x-api-key": make_key("k")}, **_multipart(pdf_bytes, content_type="text/plain")
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Only PDF files are allowed"
    assert fake.generations == []


@pytest.mark.integration
def test_oversize_upload_is_400(client, fake, make_key):
    big = b"%PDF-1.4\n" + b"0" * (5 * 1024 * 1024)
    response = client.post("/api/analyze", headers={"x-api-key": make_key("k")}, **_multipart(big))

    assert response.status_code == 400
    assert response.json()["error"] == "File size must be less than 5MB"


@pytest.mark.integration
def test_short_job_description_is_400(client, fake, pdf_bytes, make_key):
    response = client.post(
        "/api/analyze", headers={"x-api-key": make_key("k")}, json=_json_body(pdf_bytes, description="d" * 19)
    )

    assert response.status_code == 400
    assert "at least 20" in response.json()["error"]


@pytest.mark.integration
def test_pdf_without_text_is_400(client, fake, blank_pdf_bytes, make_key):
    response = client.post("/api/analyze", headers={"x-api-key": make_key("k")}, **_multipart(blank_pdf_bytes))

    assert response.status_code == 400
    assert response.json()["error"].startswith("Could not extract text from PDF")
    assert fake.generations == []


@pytest.mark.integration
def test_corrupt_pdf_is_400(client, fake, make_key):
    response = client.post("/api/analyze", headers={"x-api-key": make_key("k")}, **_multipart(b"not a pdf"))

    assert response.status_code == 400
    assert response.json()["error"].startswith("Failed to parse PDF file")


# ----------------------------------------------------------------------------
# Model response and provider errors
# ----------------------------------------------------------------------------


@pytest.mark.integration
def test_reply_without_json_is_ai_service_error(client, fake, pdf_bytes, make_key):
    fake.reply = "Sorry, I cannot help with that."

    response = client.post("/api/analyze", headers={"x-api-key": make_key("k")}, **_multipart(pdf_bytes))

    assert response.status_code == 500
    assert response.json() == {"error": "Invalid response format from AI service", "type": "AI_SERVICE_ERROR"}


@pytest.mark.integration
def test_incomplete_reply_is_rejected(client, fake, pdf_bytes, make_key):
    fake.reply = '{"cover_letter": "x", "learning_roadmap": "y", "study_notes": "z"}'

    response = client.post("/api/analyze", headers={"x-api-key": make_key("k")}, **_multipart(pdf_bytes))

    assert response.status_code == 500
    assert response.json()["type"] == "AI_SERVICE_ERROR"
    assert len(fake.generations) == 1


@pytest.mark.integration
@pytest.mark.parametrize("message", ["Quota exceeded for this project", "QUOTA limit reached", "you hit the quota"])
def test_quota_message_returns_429_with_retry_after(client, fake, pdf_bytes, make_key, message):
    fake.error = gemini.GeminiError(message, status_code=400)

    response = client.post("/api/analyze", headers={"x-api-key": make_key("k")}, **_multipart(pdf_bytes))

    assert response.status_code == 429
    assert response.headers["retry-after"] == "86400"
    body = response.json()
    assert body["type"] == "QUOTA_EXCEEDED"
    assert body["documentation"] == "https://ai.google.dev/gemini-api/docs/rate-limits"
    assert "details" in body


@pytest.mark.integration
def test_rejected_key_mid_call_is_invalid_api_key(client, fake, pdf_bytes, make_key):
    fake.error = gemini.GeminiError("API key not valid. Please pass a valid API key.", status_code=400)

    response = client.post("/api/analyze", headers={"x-api-key": make_key("k")}, **_multipart(pdf_bytes))

    assert response.status_code == 500
    assert response.json() == {"error": "Invalid API key configuration", "type": "INVALID_API_KEY"}


@pytest.mark.integration
def test_other_provider_error_is_ai_service_error(client, fake, pdf_bytes, make_key):
    fake.error = gemini.GeminiError("The model is overloaded.", status_code=503)

    response = client.post("/api/analyze", headers={"x-api-key": make_key("k")}, **_multipart(pdf_bytes))

    assert response.status_code == 500
    assert response.json() == {"error": "The model is overloaded.", "type": "AI_SERVICE_ERROR"}


@pytest.mark.integration
def test_network_failure_is_server_error(client, fake, pdf_bytes, make_key):
    fake.error = httpx.ConnectTimeout("timed out")

    response = client.post("/api/analyze", headers={"x-api-key": make_key("k")}, **_multipart(pdf_bytes))

    assert response.status_code == 500
    assert response.json()["type"] == "SERVER_ERROR"


@pytest.mark.integration
def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
