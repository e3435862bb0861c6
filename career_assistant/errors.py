"""
Error taxonomy for the analyze flow.

Every failure of a submission is one of these classes. The server turns them
into JSON responses; the client rebuilds them from the response so both sides
handle the same exceptions.
"""

from typing import Any, Dict, Optional

QUOTA_RETRY_AFTER_SECONDS = 86400
QUOTA_DOCUMENTATION_URL = "https://ai.google.dev/gemini-api/docs/rate-limits"


class AnalyzeError(Exception):
    """Base class: carries the HTTP status, body `type` and extra body fields."""

    status_code: int = 500
    error_type: Optional[str] = "SERVER_ERROR"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def extra_fields(self) -> Dict[str, Any]:
        return {}

    def headers(self) -> Dict[str, str]:
        return {}

    def to_content(self) -> Dict[str, Any]:
        content: Dict[str, Any] = {"error": self.message}
        if self.error_type:
            content["type"] = self.error_type
        content.update(self.extra_fields())
        return content


class CredentialMissing(AnalyzeError):
    """No candidate key validated; the caller must obtain and submit one."""

    status_code = 401
    error_type = None
    default_message = "API key is required"

    def extra_fields(self) -> Dict[str, Any]:
        return {"requiresApiKey": True}


class CredentialInvalid(AnalyzeError):
    status_code = 500
    error_type = "INVALID_API_KEY"
    default_message = "Invalid API key configuration"


class QuotaExceeded(AnalyzeError):
    status_code = 429
    error_type = "QUOTA_EXCEEDED"
    default_message = "Daily free tier quota exceeded. Please try again tomorrow or upgrade your plan."

    def __init__(
        self,
        message: Optional[str] = None,
        details: str = "You've reached the free tier limit for the Gemini API.",
        retry_after: int = QUOTA_RETRY_AFTER_SECONDS,
    ):
        super().__init__(message)
        self.details = details
        self.retry_after = retry_after

    def extra_fields(self) -> Dict[str, Any]:
        return {"details": self.details, "documentation": QUOTA_DOCUMENTATION_URL}

    def headers(self) -> Dict[str, str]:
        return {"Retry-After": str(self.retry_after)}


class UploadValidationError(AnalyzeError):
    """Malformed upload, wrong MIME type, oversize file, missing fields or unreadable PDF."""

    status_code = 400
    error_type = None
    default_message = "Invalid submission"


class AIServiceError(AnalyzeError):
    status_code = 500
    error_type = "AI_SERVICE_ERROR"
    default_message = "Failed to generate content. Please try again."


class MalformedModelResponse(AIServiceError):
    default_message = "Invalid response format from AI service"


class ServerError(AnalyzeError):
    """Timeouts, network failures and anything unexpected."""


def is_credential_error(error: Exception) -> bool:
    return isinstance(error, (CredentialMissing, CredentialInvalid))


def error_from_response(status_code: int, body: Any, headers: Optional[Dict[str, str]] = None) -> AnalyzeError:
    """Rebuild the server's classified error from a non-200 analyze response."""
    body = body if isinstance(body, dict) else {}
    headers = headers or {}
    message = body.get("error") or None
    error_type = body.get("type")

    if status_code == 401 or body.get("requiresApiKey"):
        return CredentialMissing(message)
    if status_code == 429 or error_type == "QUOTA_EXCEEDED":
        retry_after = headers.get("retry-after") or headers.get("Retry-After")
        try:
            seconds = int(retry_after) if retry_after else QUOTA_RETRY_AFTER_SECONDS
        except ValueError:
            seconds = QUOTA_RETRY_AFTER_SECONDS
        kwargs = {"retry_after": seconds}
        if body.get("details"):
            kwargs["details"] = body["details"]
        return QuotaExceeded(message, **kwargs)
    if status_code == 400:
        return UploadValidationError(message)
    if error_type == "INVALID_API_KEY":
        return CredentialInvalid(message)
    if error_type == "AI_SERVICE_ERROR":
        return AIServiceError(message)
    return ServerError(message or f"Unexpected response from server (HTTP {status_code})")
