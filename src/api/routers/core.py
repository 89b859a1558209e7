"""Core routes for the preview API (root, health, info and cache control)."""

import logging

from api.dependencies import get_preview_service
from api.schemas import HealthResponse, InfoResponse, MessageResponse, RootResponse
from fastapi import APIRouter, Depends
from services.preview_service import PreviewService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Core"])

API_NAME = "Video Preview API"
API_VERSION = "1.0.0"


@router.get(
    "/",
    response_model=RootResponse,
    summary="API root",
    description="Returns API name and version.",
)
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": API_NAME, "version": API_VERSION}


@router.get(
    "/api/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns server health status and cache statistics.",
)
async def health(service: PreviewService = Depends(get_preview_service)) -> dict:
    """Health check endpoint."""
    return {"status": "healthy", "cache": service.get_stats()}


@router.get(
    "/api/info",
    response_model=InfoResponse,
    summary="API information",
    description="Describes the endpoints and clip parameters.",
)
async def info() -> dict:
    return {
        "name": API_NAME,
        "version": API_VERSION,
        "description": "Generate video previews from Spotify songs or YouTube videos",
        "endpoints": {
            "/api/preview/{input}": {
                "description": "Generate a video preview",
                "input": "Spotify ID/URL or YouTube ID/URL",
                "parameters": {
                    "quality": {"type": "string", "options": ["low", "medium", "max"], "default": "medium"},
                    "duration": {"type": "integer", "min": 3, "max": 10, "default": 7},
                    "audio": {"type": "boolean", "default": True},
                    "width": {"type": "integer", "min": 240, "max": 1920, "default": 640},
                    "height": {"type": "integer", "min": 180, "max": 1080, "default": 360},
                },
                "examples": [
                    "/api/preview/3jEqW8QNyPB5MxWEGc8tJK",
                    "/api/preview/FvLDcOIYo5o?quality=max&duration=5",
                    "/api/preview/3jEqW8QNyPB5MxWEGc8tJK?width=1280&height=720&audio=false",
                ],
            },
            "/api/fetch/metadata": "Resolve metadata (spotifyid or youtubeid query parameter)",
            "/api/fetch/preview/{cache_key}": "Serve the clip for a metadata cache key",
            "/api/cache": "DELETE to clear the cache",
            "/api/health": "Health check",
            "/api/info": "API information",
        },
    }


@router.delete(
    "/api/cache",
    response_model=MessageResponse,
    summary="Clear cache",
    description="Removes every cached metadata record and clip.",
)
async def clear_cache(service: PreviewService = Depends(get_preview_service)) -> dict[str, str]:
    removed = service.clear_cache()
    logger.info(f"Cache cleared via API ({removed} files)")
    return {"message": "Cache cleared successfully"}
