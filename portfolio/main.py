"""Portfolio API — FastAPI app serving profile data and streamed AI pitches.

Loads config.yaml and the profile on startup. Exposes /api/generate-pitch
and /api/ask-assistant as SSE streams, plus contact, profile, health and
hot-reload endpoints.
"""

from __future__ import annotations

import json
import logging
import re
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from portfolio.config import get_config, load_config, reload_config
from portfolio.generation import get_llm, stream_answer, stream_pitch
from portfolio.profile import get_profile, load_profile
from portfolio.schemas import (
    AssistantRequest,
    ContactRequest,
    MessageResponse,
    PitchRequest,
    StreamFragment,
    UserSummary,
)
from portfolio.security import enforce_rate_limit, verify_api_key

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MAX_LOG_LINE = 80


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the profile on startup."""
    config = get_config()
    profile = load_profile(config.profile_path)
    logger.info(
        f"Portfolio API started (origins={config.allowed_origins}, "
        f"auth={'enabled' if config.api_key else 'disabled'}, "
        f"profile={profile.name!r}, model={config.llm.model})"
    )
    yield
    logger.info("Portfolio API shutting down")


# Load config early so we can read allowed_origins for CORS middleware.
_boot_config = load_config()

app = FastAPI(title="Portfolio API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_boot_config.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_api_requests(request: Request, call_next):
    """One line per /api call: method, path, status, duration."""
    start = time.perf_counter()
    response = await call_next(request)
    path = request.url.path
    if path.startswith("/api"):
        duration_ms = int((time.perf_counter() - start) * 1000)
        line = f"{request.method} {path} {response.status_code} in {duration_ms}ms"
        if len(line) > MAX_LOG_LINE:
            line = line[: MAX_LOG_LINE - 1] + "…"
        logger.info(line)
    return response


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    body = MessageResponse(success=False, message=str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"] if part != "body")
        problems.append(f"{field}: {err['msg']}" if field else err["msg"])
    body = MessageResponse(success=False, message="Invalid request: " + "; ".join(problems))
    return JSONResponse(status_code=400, content=body.model_dump())


# ---------------------------------------------------------------------------
# Streaming helpers
# ---------------------------------------------------------------------------


def _require_llm():
    """Build the chat model before any bytes are sent, so config errors get a status code."""
    try:
        return get_llm(get_config().llm)
    except RuntimeError as e:
        logger.error(f"LLM unavailable: {e}")
        raise HTTPException(status_code=503, detail="The AI service is not configured.")


def _event_stream(fragments: AsyncIterator[StreamFragment]) -> StreamingResponse:
    async def stream():
        async for fragment in fragments:
            data = json.dumps(fragment.model_dump(exclude_none=True))
            yield f"data: {data}\n\n"

    return StreamingResponse(
        stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


# ---------------------------------------------------------------------------
# /api routes
# ---------------------------------------------------------------------------

api = APIRouter(prefix="/api", dependencies=[Depends(enforce_rate_limit)])


@api.get("/user-data", response_model=UserSummary)
async def user_data():
    profile = get_profile()
    return UserSummary(name=profile.name, title=profile.title, experience=profile.experience)


@api.get("/portfolio")
async def portfolio():
    """The full profile: skills, experience, projects, education."""
    return get_profile().model_dump(exclude_none=True)


@api.post("/generate-pitch")
async def generate_pitch(request: PitchRequest):
    """Stream a project proposal for the submitted business problem as SSE."""
    config = get_config()
    problem = request.business_problem.strip()
    if len(problem) < config.min_problem_length:
        raise HTTPException(
            status_code=400,
            detail=(
                "A detailed problem description is required "
                f"(minimum {config.min_problem_length} characters)."
            ),
        )

    llm = _require_llm()
    return _event_stream(stream_pitch(llm, get_profile(), problem))


@api.post("/ask-assistant")
async def ask_assistant(request: AssistantRequest):
    """Stream an answer about the portfolio as SSE."""
    config = get_config()
    question = request.question.strip()
    if not question:
        raise HTTPException(status_code=400, detail="A question is required.")

    llm = _require_llm()
    return _event_stream(
        stream_answer(
            llm,
            get_profile(),
            question,
            request.history,
            config.max_history_turns,
        )
    )


@api.post("/contact", response_model=MessageResponse)
async def contact(request: ContactRequest):
    name, email, message = (
        request.name.strip(),
        request.email.strip(),
        request.message.strip(),
    )
    if not name or not email or not message:
        raise HTTPException(status_code=400, detail="All fields are required")
    if not EMAIL_RE.match(email):
        raise HTTPException(status_code=400, detail="Invalid email format")

    logger.info(f"Contact form submission: name={name!r}, email={email!r}, chars={len(message)}")
    return MessageResponse(
        success=True,
        message="Thank you for your message. I'll get back to you soon!",
    )


app.include_router(api)


# ---------------------------------------------------------------------------
# Operational endpoints
# ---------------------------------------------------------------------------


@app.get("/health")
async def health():
    """Liveness check."""
    profile = get_profile()
    return {"status": "healthy", "profile": profile.name}


@app.post("/reload", dependencies=[Depends(verify_api_key)])
async def reload():
    """Hot-reload config.yaml and the profile without a restart."""
    try:
        new_config = reload_config()
        profile = load_profile(new_config.profile_path)
    except Exception as e:
        logger.error(f"Reload failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Reload failed: {e}")

    return {"status": "reloaded", "profile": profile.name}
