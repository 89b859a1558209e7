#!/usr/bin/env python
"""FastAPI server for the video preview API."""

import sys
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

# Add src directory to Python path for imports
src_dir = Path(__file__).parent.parent
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routers import core, preview
from services.preview_service import build_preview_service
from utils.config import load_config, validate_config
from utils.errors import INTERNAL, INVALID_INPUT, NOT_FOUND, UPSTREAM, PreviewError
from utils.logging import clear_request_context, get_logger, set_request_context, setup_logging

logger = get_logger(__name__)

STATUS_BY_CATEGORY = {
    INVALID_INPUT: 400,
    NOT_FOUND: 404,
    UPSTREAM: 502,
    INTERNAL: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the preview service on startup and close its clients on shutdown."""
    config = load_config()
    setup_logging(config["log_level"], json_output=config["log_json"])

    for problem in validate_config(config):
        logger.warning("config_problem", problem=problem)

    app.state.preview_service = build_preview_service(config)
    logger.info("preview_service_started", port=config["port"])
    try:
        yield
    finally:
        await app.state.preview_service.aclose()
        logger.info("preview_service_stopped")


app = FastAPI(title="Video Preview API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Tag every log line of a request with its correlation id."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
    set_request_context(request_id, method=request.method, path=request.url.path)
    try:
        response = await call_next(request)
    finally:
        clear_request_context()
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(PreviewError)
async def preview_error_handler(request: Request, exc: PreviewError) -> JSONResponse:
    status_code = STATUS_BY_CATEGORY.get(exc.category, 500)
    log = logger.warning if status_code < 500 else logger.error
    log(
        "request_failed",
        path=request.url.path,
        error=type(exc).__name__,
        message=exc.message,
        status_code=status_code,
    )
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": exc.message, "category": exc.category},
    )


app.include_router(core.router)
app.include_router(preview.router)
