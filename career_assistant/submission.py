"""
The submission triple (résumé PDF, job title, job description) and its checks.

`validate_submission` is the one rule set used by both the client pre-check
and the server's authoritative check.
"""

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from career_assistant.errors import UploadValidationError

PDF_MIME_TYPE = "application/pdf"
MAX_FILE_SIZE = 5 * 1024 * 1024
MIN_JOB_DESCRIPTION_LENGTH = 20


@dataclass(frozen=True)
class ResumeFile:
    name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: Path) -> "ResumeFile":
        path = Path(path)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(name=path.name, content_type=content_type, data=path.read_bytes())


@dataclass(frozen=True)
class SubmissionPayload:
    resume: Optional[ResumeFile]
    job_title: Optional[str]
    job_description: Optional[str]


def validate_submission(payload: SubmissionPayload) -> None:
    """Raise UploadValidationError on the first broken rule."""
    if not payload.resume or not payload.job_title or not payload.job_description:
        raise UploadValidationError("All fields are required")

    if not payload.job_title.strip():
        raise UploadValidationError("Job title is required")

    if len(payload.job_description) < MIN_JOB_DESCRIPTION_LENGTH:
        raise UploadValidationError(
            f"Job description must be at least {MIN_JOB_DESCRIPTION_LENGTH} characters"
        )

    if payload.resume.content_type != PDF_MIME_TYPE:
        raise UploadValidationError("Only PDF files are allowed")

    if payload.resume.size > MAX_FILE_SIZE:
        raise UploadValidationError("File size must be less than 5MB")
