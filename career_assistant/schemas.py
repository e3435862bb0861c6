"""
GenerationResult schema and the two-stage parse of raw model output.
"""

import json
import logging
import re
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from career_assistant.errors import MalformedModelResponse

logger = logging.getLogger(__name__)

# First "{" to last "}", across newlines.
JSON_OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)


class YoutubeLink(BaseModel):
    title: str
    url: str


class ResumeAnalysis(BaseModel):
    missing_skills: List[str] = Field(default_factory=list)
    areas_for_improvement: List[str] = Field(default_factory=list)
    score: int = Field(..., ge=0, le=100, strict=True)
    feedback: str

    @field_validator("missing_skills")
    @classmethod
    def unique_skills(cls, v: List[str]) -> List[str]:
        seen = set()
        return [s for s in v if not (s in seen or seen.add(s))]


class InterviewQuestions(BaseModel):
    technical_questions: List[str] = Field(default_factory=list)
    behavioral_questions: List[str] = Field(default_factory=list)
    system_design_questions: List[str] = Field(default_factory=list)
    job_specific_questions: List[str] = Field(default_factory=list)


class GenerationResult(BaseModel):
    cover_letter: str
    learning_roadmap: str
    study_notes: str
    youtube_links: List[YoutubeLink]
    resume_analysis: Optional[ResumeAnalysis] = None
    interview_questions: Optional[InterviewQuestions] = None

    @field_validator("cover_letter", "learning_roadmap", "study_notes")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Field must not be empty")
        return v


def extract_json_object(text: str) -> str:
    """Stage one: the greedy `{ ... }` substring of the model's answer."""
    match = JSON_OBJECT_PATTERN.search(text or "")
    if not match:
        raise MalformedModelResponse("Invalid response format from AI service")
    return match.group(0)


def parse_generation_result(text: str) -> GenerationResult:
    """
    Stage two: decode and validate. Anything short of a complete
    GenerationResult is rejected; no partial data is returned.
    """
    json_str = extract_json_object(text)
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        logger.error(f"❌ Model output is not valid JSON: {e}")
        logger.debug(f"Raw model output (first 1000 chars): {text[:1000]}")
        raise MalformedModelResponse("Invalid response format from AI service")

    if not isinstance(data, dict):
        raise MalformedModelResponse("Invalid response format from AI service")

    try:
        return GenerationResult.model_validate(data)
    except ValidationError as e:
        logger.error(f"❌ Model output failed schema validation: {e.error_count()} error(s)")
        logger.debug(f"Validation errors: {e.errors()}")
        raise MalformedModelResponse("Incomplete response from AI service")
