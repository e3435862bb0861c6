"""
AI Career Assistant FastAPI Application
Accepts a resume PDF and a job description, asks Google Gemini for a cover
letter, learning roadmap, resume critique and interview questions.
"""

# ============================================================================
# PART 1: IMPORTS
# ============================================================================

from fastapi import FastAPI, Request, Header
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import UploadFile
import uvicorn
import httpx
import base64
import binascii
import json
import logging
from typing import Optional, Dict, Any, Tuple
from datetime import datetime

from career_assistant import gemini
from career_assistant.config import get_settings
from career_assistant.credentials import build_candidates, resolve_credential
from career_assistant.errors import (
    AnalyzeError,
    CredentialMissing,
    ServerError,
    UploadValidationError,
)
from career_assistant.pdf_parsing import extract_pdf_text, has_readable_text
from career_assistant.prompts import build_analysis_prompt
from career_assistant.schemas import parse_generation_result
from career_assistant.submission import PDF_MIME_TYPE, ResumeFile, SubmissionPayload, validate_submission

# ============================================================================
# LOGGING CONFIGURATION
# ============================================================================

settings = get_settings()

# Configure logging for console output (Render-friendly)
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)
logger.info("=" * 80)
logger.info("AI Career Assistant Service Started")
logger.info("=" * 80)


# ============================================================================
# PART 2: FASTAPI APP SETUP
# ============================================================================

app = FastAPI(title="AI Career Assistant")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info(f"✓ CORS middleware configured for origins: {settings.cors_origins}")

# --- Gemini API Configuration ---
logger.info(f"Gemini model configured: {settings.gemini_model}")
logger.info(f"Server default API key present: {bool(settings.gemini_api_key)}")
if not settings.gemini_api_key:
    logger.warning("⚠️  GEMINI_API_KEY is not set. Requests must supply their own API key.")


@app.exception_handler(AnalyzeError)
async def analyze_error_handler(request: Request, exc: AnalyzeError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_content(), headers=exc.headers())


# ============================================================================
# PART 3: REQUEST BODY HELPERS
# ============================================================================

async def read_json_body(request: Request) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """Returns (body, error). The body is read once and reused for the key and the fields."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.error(f"❌ Invalid JSON body: {e}")
        return None, "Invalid JSON body"
    if not isinstance(body, dict):
        return None, "Invalid JSON body"
    return body, None


def decode_data_url(data: str) -> bytes:
    """Accepts `data:<mime>;base64,<payload>` or a bare base64 payload."""
    payload = data.split(",", 1)[1] if "," in data else data
    return base64.b64decode(payload, validate=True)


def _text_field(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def payload_from_json(body: Dict[str, Any]) -> SubmissionPayload:
    resume = body.get("resume")
    if not isinstance(resume, dict) or not resume.get("data") or not resume.get("name"):
        raise UploadValidationError("Invalid file data in request")
    try:
        data = decode_data_url(str(resume["data"]))
    except (binascii.Error, ValueError):
        raise UploadValidationError("Invalid file data in request")

    return SubmissionPayload(
        resume=ResumeFile(
            name=resume.get("name") or "resume.pdf",
            content_type=resume.get("type") or PDF_MIME_TYPE,
            data=data,
        ),
        job_title=_text_field(body.get("jobTitle")),
        job_description=_text_field(body.get("jobDescription")),
    )


async def payload_from_form(request: Request) -> SubmissionPayload:
    try:
        form = await request.form()
    except Exception as e:
        logger.error(f"❌ Error parsing multipart body: {e}")
        raise UploadValidationError("Failed to parse request")
    upload = form.get("resume")
    if not isinstance(upload, UploadFile):
        raise UploadValidationError("No file uploaded")
    data = await upload.read()
    job_title = form.get("jobTitle")
    job_description = form.get("jobDescription")

    return SubmissionPayload(
        resume=ResumeFile(
            name=upload.filename or "resume.pdf",
            content_type=upload.content_type or PDF_MIME_TYPE,
            data=data,
        ),
        job_title=_text_field(job_title),
        job_description=_text_field(job_description),
    )


# ============================================================================
# PART 4: MAIN FASTAPI ENDPOINT
# ============================================================================

@app.post("/api/analyze")
async def analyze_endpoint(request: Request, x_api_key: Optional[str] = Header(default=None)):
    """
    Main endpoint: resume PDF + job title + job description in, GenerationResult out.
    Accepts multipart/form-data or application/json (base64 resume).
    """
    request_id = datetime.now().strftime("%Y%m%d_%H%M%S_%f")[:19]
    content_type = request.headers.get("content-type", "")
    logger.info("=" * 80)
    logger.info(f"🚀 NEW ANALYZE REQUEST (ID: {request_id})")
    logger.info(f"   Content-Type: {content_type or 'N/A'}")
    logger.info(f"   x-api-key header present: {bool(x_api_key)}")
    logger.info("=" * 80)

    try:
        json_body, json_error = (None, None)
        if "application/json" in content_type:
            json_body, json_error = await read_json_body(request)

        # --- 1. Resolve API key: header -> environment default -> body ---
        body_key = json_body.get("apiKey") if json_body else None
        candidates = build_candidates(
            supplied=x_api_key,
            server_default=get_settings().gemini_api_key,
            persisted=body_key if isinstance(body_key, str) else None,
        )
        credential = await resolve_credential(candidates, gemini.is_api_key_valid)
        if credential is None:
            raise CredentialMissing()
        logger.info(f"✅ Using {credential.origin.value} API key")

        # --- 2. Parse body by content type ---
        if "multipart/form-data" in content_type:
            payload = await payload_from_form(request)
        elif "application/json" in content_type:
            if json_error:
                raise UploadValidationError(json_error)
            payload = payload_from_json(json_body)
        else:
            raise UploadValidationError(
                "Unsupported content type. Please use multipart/form-data or application/json"
            )

        # --- 3. Validate fields, MIME type and size ---
        validate_submission(payload)
        logger.info(f"📥 Resume: {payload.resume.name} ({payload.resume.size} bytes)")
        logger.info(f"   Job Title: {payload.job_title}")
        logger.info(f"   Job Description length: {len(payload.job_description)} characters")

        # --- 4. Extract PDF text ---
        resume_text = extract_pdf_text(payload.resume.data)
        if resume_text is None:
            raise UploadValidationError("Failed to parse PDF file. Please ensure it's a valid PDF.")
        if not has_readable_text(resume_text):
            raise UploadValidationError(
                "Could not extract text from PDF. Please ensure the PDF contains readable text."
            )

        # --- 5. Single generation call ---
        prompt = build_analysis_prompt(resume_text, payload.job_title, payload.job_description)
        logger.debug(f"✅ Prompt constructed. Length: {len(prompt)} characters")
        logger.info("🤖 Calling Gemini API for career analysis...")
        try:
            raw_text = await gemini.generate_text(prompt, credential.value)
        except gemini.GeminiError as e:
            error = gemini.classify_gemini_error(e)
            logger.error(f"❌ AI generation error ({type(error).__name__}): {e.message}")
            raise error

        # --- 6. Parse the model's answer (fails closed) ---
        logger.info("📊 Parsing AI response...")
        result = parse_generation_result(raw_text)

    except AnalyzeError as e:
        logger.error(f"❌ Request {request_id} failed: {type(e).__name__}: {e.message}")
        raise
    except httpx.RequestError as e:
        logger.error(f"❌ Request Error talking to Gemini: {e}", exc_info=True)
        raise ServerError(f"Failed to reach the AI service: {e}")
    except Exception as e:
        logger.error(f"❌ Unexpected error: {e}", exc_info=True)
        raise ServerError(str(e) or None)

    logger.info(f"✅ ANALYSIS COMPLETE (ID: {request_id})")
    logger.info(f"   YouTube links: {len(result.youtube_links)}")
    logger.info(f"   Resume analysis included: {result.resume_analysis is not None}")
    logger.info("=" * 80)
    return result.model_dump(exclude_none=True)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    logger.debug("Health check requested")
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


# ============================================================================
# PART 5: UVICORN RUNNER
# ============================================================================

def run(host: str = "0.0.0.0", port: int = 8000):
    logger.info("🚀 Starting Uvicorn server...")
    logger.info(f"📍 API will be available at: http://{host}:{port}")
    logger.info(f"📚 API documentation at: http://{host}:{port}/docs")
    # Suppress uvicorn access logs
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    uvicorn.run(app, host=host, port=port, access_log=False)


if __name__ == "__main__":
    run()
