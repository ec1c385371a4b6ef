"""FastAPI application for the MathTutor API.

Builds the app instance: logging, optional API-key auth, CORS allowlist,
exception handlers for MathTutorError and the domain errors, and the
``/api`` routers.
"""

import logging
import os
import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mathtutor import __version__
from mathtutor.api.middleware.auth import maybe_require_api_key
from mathtutor.api.routes import (
    approval,
    chat,
    chat_history,
    conversations,
    files,
    upload,
)
from mathtutor.db.connection import close_db, init_db
from mathtutor.errors import MathTutorError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_startup_time: float = 0.0


def configure_logging(level: str | None = None) -> None:
    """Send application logs to stdout so uvicorn captures them.

    Level comes from ``MATHTUTOR_LOG_LEVEL`` when not given (default INFO).
    """
    name = (level or os.environ.get("MATHTUTOR_LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=logging.INFO,
        format="%(levelname)s:%(name)s:%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("mathtutor").setLevel(getattr(logging, name, logging.INFO))


def _parse_allowed_origins() -> list[str]:
    """Split the comma-separated ALLOWED_ORIGINS env var into origins."""
    raw = os.environ.get("ALLOWED_ORIGINS", "")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup; dispose the engine on shutdown."""
    global _startup_time
    init_db()
    _startup_time = time.time()
    logger.info("MathTutor API %s started", __version__)
    yield
    close_db()
    logger.info("MathTutor API stopped")


async def mathtutor_error_handler(request: Request, exc: MathTutorError) -> JSONResponse:
    status_code = exc.http_status
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content=exc.to_response_body())


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": str(exc)})


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """400 for bad client input, including storage paths that escape the root."""
    content = {"error": str(exc)}
    if exc.field:
        content["field"] = exc.field
    return JSONResponse(status_code=400, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MathTutorError, mathtutor_error_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)


configure_logging()

app = FastAPI(
    title="MathTutor API",
    description="Streaming math tutor chat with sandbox file bridging",
    version=__version__,
    lifespan=lifespan,
)

# API-key check is a no-op unless MATHTUTOR_API_KEY is set.
app.middleware("http")(maybe_require_api_key)

allowed_origins = _parse_allowed_origins()
if allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key"],
    )

register_exception_handlers(app)

for _module in (chat, conversations, chat_history, upload, files, approval):
    app.include_router(_module.router, prefix="/api")


@app.get("/health")
def health_check() -> dict:
    uptime = int(time.time() - _startup_time) if _startup_time else 0
    return {"status": "ok", "version": __version__, "uptime_seconds": uptime}
