"""Service access and shared request parsing for the preview API."""

from typing import Optional

from fastapi import Query, Request

from models.clip import ClipOptions
from services.preview_service import PreviewService


def get_preview_service(request: Request) -> PreviewService:
    """Get the preview service built at startup."""
    return request.app.state.preview_service


def get_clip_options(
    quality: Optional[str] = Query(None, description="low, medium or max"),
    duration: Optional[str] = Query(None, description="Clip length in seconds (3-10)"),
    audio: Optional[str] = Query(None, description="Include audio track (true/false)"),
    width: Optional[str] = Query(None, description="Output width (240-1920, even)"),
    height: Optional[str] = Query(None, description="Output height (180-1080, even)"),
) -> ClipOptions:
    """Clip options from query parameters, clamped into range."""
    query = {
        "quality": quality,
        "duration": duration,
        "width": width,
        "height": height,
    }
    if audio is not None:
        query["audio"] = audio
    return ClipOptions.from_query(query)
