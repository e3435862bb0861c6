"""
Client side of POST /api/analyze.

The wire encoding is chosen once, from the resolved credential's origin:

* server-configured key -> multipart form, PDF as a raw binary part, key in
  the `x-api-key` header;
* any other key -> JSON document with the PDF as a base64 data URL and the key
  in the body.
"""

import base64
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

import httpx
from pydantic import ValidationError

from career_assistant.credentials import Credential, CredentialOrigin
from career_assistant.errors import MalformedModelResponse, ServerError, error_from_response
from career_assistant.schemas import GenerationResult
from career_assistant.submission import SubmissionPayload, validate_submission

logger = logging.getLogger(__name__)

ANALYZE_PATH = "/api/analyze"
API_KEY_HEADER = "x-api-key"


@dataclass(frozen=True)
class MultipartEncoding:
    files: Dict[str, Tuple[str, bytes, str]]
    data: Dict[str, str]
    headers: Dict[str, str]


@dataclass(frozen=True)
class JsonBase64Encoding:
    body: Dict[str, object]


Encoding = Union[MultipartEncoding, JsonBase64Encoding]


def to_data_url(content_type: str, data: bytes) -> str:
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


def select_encoding(payload: SubmissionPayload, credential: Credential) -> Encoding:
    resume = payload.resume
    if credential.origin is CredentialOrigin.SERVER_CONFIGURED:
        return MultipartEncoding(
            files={"resume": (resume.name, resume.data, resume.content_type)},
            data={"jobTitle": payload.job_title, "jobDescription": payload.job_description},
            headers={API_KEY_HEADER: credential.value},
        )
    return JsonBase64Encoding(
        body={
            "resume": {
                "name": resume.name,
                "type": resume.content_type,
                "data": to_data_url(resume.content_type, resume.data),
            },
            "jobTitle": payload.job_title,
            "jobDescription": payload.job_description,
            "apiKey": credential.value,
        }
    )


class AnalyzeClient:
    """
    Sends one submission at a time to the analyze endpoint.

    A second dispatch while one is in flight is refused; there is no queue and
    no automatic retry.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self.busy = False

    async def dispatch(self, payload: SubmissionPayload, credential: Credential) -> GenerationResult:
        if self.busy:
            raise RuntimeError("A submission is already in flight")

        validate_submission(payload)
        encoding = select_encoding(payload, credential)
        logger.info(f"📤 Dispatching submission as {type(encoding).__name__} ({credential.origin.value} key)")

        self.busy = True
        try:
            response = await self._send(encoding)
        finally:
            self.busy = False

        return self._interpret(response)

    async def _send(self, encoding: Encoding) -> httpx.Response:
        url = f"{self.base_url}{ANALYZE_PATH}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                if isinstance(encoding, MultipartEncoding):
                    return await client.post(
                        url, files=encoding.files, data=encoding.data, headers=encoding.headers
                    )
                return await client.post(url, json=encoding.body)
        except httpx.TimeoutException as e:
            logger.error(f"❌ Request timed out: {e}")
            raise ServerError("The request timed out. Please try again.")
        except httpx.RequestError as e:
            logger.error(f"❌ Request Error: {e}")
            raise ServerError(f"Could not reach the server: {e}")

    def _interpret(self, response: httpx.Response) -> GenerationResult:
        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code != 200:
            error = error_from_response(response.status_code, body, dict(response.headers))
            logger.warning(f"⚠️  Analyze failed ({response.status_code}): {error.message}")
            raise error

        if not isinstance(body, dict):
            raise MalformedModelResponse("Server returned a non-JSON result")
        try:
            return GenerationResult.model_validate(body)
        except ValidationError:
            raise MalformedModelResponse("Incomplete response from AI service")
