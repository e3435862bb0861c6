"""Shared fixtures: isolated environment, sample keys and real PDFs."""

import fitz
import pytest

RESUME_TEXT = (
    "Jane Doe - Backend Engineer\n"
    "Experience: Python, FastAPI, PostgreSQL, Docker, Kubernetes.\n"
    "Built payment APIs serving 2M requests per day."
)


def _make_key(tag: str) -> str:
    """A well-formed Google AI Studio key (AIza prefix, 39 characters)."""
    return ("AIza" + tag + "x" * 40)[:39]


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """No real keys or home-directory key store leak into tests."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_BASE", raising=False)
    monkeypatch.delenv("GEMINI_MODEL", raising=False)
    monkeypatch.setenv("CAREER_ASSISTANT_KEY_FILE", str(tmp_path / "credentials.json"))


@pytest.fixture
def pdf_bytes() -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), RESUME_TEXT)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def blank_pdf_bytes() -> bytes:
    doc = fitz.open()
    doc.new_page()
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def job_description() -> str:
    return "We are hiring a backend engineer with Python and FastAPI experience."


@pytest.fixture
def generation_json() -> dict:
    return {
        "cover_letter": "Dear Hiring Manager, ...",
        "learning_roadmap": "# Roadmap\n- Month 1: Kubernetes",
        "study_notes": "Notes on distributed systems.",
        "youtube_links": [
            {"title": "Kubernetes", "url": "https://www.youtube.com/results?search_query=Kubernetes"}
        ],
        "resume_analysis": {
            "missing_skills": ["Kafka", "Kafka", "Terraform"],
            "areas_for_improvement": ["Quantify impact"],
            "score": 72,
            "feedback": "Strong backend profile.",
        },
        "interview_questions": {
            "technical_questions": ["Explain ACID."],
            "behavioral_questions": ["Tell me about a conflict."],
            "system_design_questions": ["Design a URL shortener."],
            "job_specific_questions": ["How would you scale FastAPI?"],
        },
    }


@pytest.fixture
def make_key():
    return _make_key
