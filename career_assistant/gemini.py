"""
Google Gemini REST helpers (async, httpx).

No retries anywhere: a failed call surfaces immediately and the caller decides.
"""

import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from career_assistant.config import get_settings
from career_assistant.errors import AIServiceError, AnalyzeError, CredentialInvalid, QuotaExceeded

logger = logging.getLogger(__name__)

PROBE_PROMPT = "Test"


class GeminiError(Exception):
    """The Gemini API answered with an error (or with no usable text)."""

    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details


def mask_key(api_key: Optional[str]) -> str:
    if not api_key:
        return "<none>"
    if len(api_key) <= 8:
        return "****"
    return f"{api_key[:4]}…{api_key[-4:]}"


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict):
        return error.get("message") or error.get("status") or f"HTTP {response.status_code}"
    return response.text or f"HTTP {response.status_code}"


async def call_gemini_api(
    payload: Dict[str, Any],
    api_key: str,
    model: Optional[str] = None,
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """
    POST a generateContent request.

    Raises GeminiError on an HTTP error status. Network failures propagate as
    httpx.RequestError.
    """
    settings = get_settings()
    target_model = model or settings.gemini_model
    url = f"{settings.gemini_api_base}/models/{target_model}:generateContent"
    logger.info(f"🔗 Calling Gemini API (model={target_model}, key={mask_key(api_key)})")

    async with httpx.AsyncClient(timeout=timeout or settings.request_timeout, transport=transport) as client:
        response = await client.post(
            url,
            params={"key": api_key},
            headers={"Content-Type": "application/json"},
            json=payload,
        )
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response)
            logger.error(f"❌ Gemini HTTP Error: {e.response.status_code} - {message}")
            raise GeminiError(message, status_code=e.response.status_code, details=e.response.text)

        logger.info(f"✅ Gemini API response received successfully (Status: {response.status_code})")
        try:
            result = response.json()
        except ValueError:
            logger.error(f"❌ Gemini returned a non-JSON body (Status: {response.status_code})")
            raise GeminiError("Invalid response from Gemini API", status_code=response.status_code)
        logger.debug(f"Response preview: {str(result)[:500]}...")
        return result


def response_text(result: Dict[str, Any]) -> str:
    """Pull the first candidate's text out of a generateContent response."""
    try:
        return result["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        feedback = result.get("promptFeedback") if isinstance(result, dict) else None
        raise GeminiError(f"Gemini returned no text content (feedback: {feedback})")


async def generate_text(
    prompt: str,
    api_key: str,
    model: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    payload = {"contents": [{"parts": [{"text": prompt}]}]}
    result = await call_gemini_api(payload, api_key, model=model, transport=transport)
    return response_text(result)


async def is_api_key_valid(api_key: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> bool:
    """Probe a key with one minimal generation call. Any failure means invalid."""
    try:
        await generate_text(PROBE_PROMPT, api_key, transport=transport)
    except (GeminiError, httpx.HTTPError) as e:
        logger.info(f"🔑 Key {mask_key(api_key)} failed validation: {e}")
        return False
    logger.info(f"🔑 Key {mask_key(api_key)} validated")
    return True


async def check_api_key(api_key: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> Tuple[bool, str]:
    """
    Check a key by listing the available models (no generation quota used).

    Returns (success, human-readable message).
    """
    if not api_key or not api_key.strip():
        return False, "Please enter an API key."

    settings = get_settings()
    try:
        async with httpx.AsyncClient(timeout=settings.key_test_timeout, transport=transport) as client:
            response = await client.get(f"{settings.gemini_api_base}/models", params={"key": api_key.strip()})
    except httpx.HTTPError as e:
        logger.warning(f"⚠️  Key test request failed: {e}")
        return False, str(e) or "Failed to validate API key. Please check your key and try again."

    if response.status_code == 200:
        try:
            models = response.json().get("models")
        except (ValueError, AttributeError):
            models = None
        if isinstance(models, list):
            return True, "API key is valid and working!"
        return False, "Invalid response from API"

    message = _error_message(response)
    if "API key not valid" in message:
        return False, "The provided API key is invalid or has been deleted."
    return False, message


def classify_gemini_error(error: GeminiError) -> AnalyzeError:
    """Map a provider failure onto the analyze error taxonomy."""
    message = error.message or ""
    lowered = message.lower()
    if error.status_code == 429 or "429" in message or "quota" in lowered:
        return QuotaExceeded()
    if "api_key" in lowered or "api key" in lowered:
        return CredentialInvalid()
    return AIServiceError(message or None)
