"""Preview routes: metadata lookup and clip delivery."""

import logging
from typing import Optional

from api.dependencies import get_clip_options, get_preview_service
from api.schemas import ErrorResponse, MetadataFetchResponse
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import FileResponse
from models.clip import ClipOptions
from services.preview_service import PreviewService
from utils.errors import InvalidIdentifier
from utils.logging import bind_cache_key
from utils.identifiers import (
    extract_spotify_id,
    extract_youtube_id,
    is_spotify_id,
    is_valid_video_id,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Preview"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}

CLIP_HEADERS = {"Cache-Control": "public, max-age=3600"}


def _clip_response(path) -> FileResponse:
    return FileResponse(path, media_type="video/mp4", headers=CLIP_HEADERS)


@router.get(
    "/api/fetch/metadata",
    response_model=MetadataFetchResponse,
    responses=ERROR_RESPONSES,
    summary="Resolve preview metadata",
    description="Looks up the track, finds its video and returns metadata plus the clip URL.",
)
async def fetch_metadata(
    request: Request,
    spotifyid: Optional[str] = Query(None, description="Spotify track id or URL"),
    youtubeid: Optional[str] = Query(None, description="YouTube video id or URL"),
    options: ClipOptions = Depends(get_clip_options),
    service: PreviewService = Depends(get_preview_service),
) -> dict:
    if spotifyid:
        raw_input = extract_spotify_id(spotifyid.strip())
        if not is_spotify_id(raw_input):
            raise InvalidIdentifier(f"Invalid Spotify track id: {spotifyid}")
    elif youtubeid:
        raw_input = extract_youtube_id(youtubeid.strip())
        if not is_valid_video_id(raw_input):
            raise InvalidIdentifier(f"Invalid YouTube video id: {youtubeid}")
    else:
        raise InvalidIdentifier("Either spotifyid or youtubeid parameter is required")

    metadata = await service.get_or_create_metadata(raw_input, options)
    bind_cache_key(metadata.cache_key)
    preview_url = str(request.url_for("fetch_preview", cache_key=metadata.cache_key))

    return {
        "success": True,
        "metadata": metadata.to_dict(),
        "video_preview_url": preview_url,
    }


@router.get(
    "/api/fetch/preview/{cache_key}",
    response_class=FileResponse,
    responses=ERROR_RESPONSES,
    summary="Serve preview clip",
    description="Returns the mp4 clip for a metadata cache key, rendering it on first request.",
)
async def fetch_preview(
    cache_key: str,
    service: PreviewService = Depends(get_preview_service),
) -> FileResponse:
    bind_cache_key(cache_key)
    clip_path = await service.get_or_create_clip(cache_key)
    return _clip_response(clip_path)


@router.get(
    "/api/preview/{track_input:path}",
    response_class=FileResponse,
    responses=ERROR_RESPONSES,
    summary="Generate preview clip",
    description="Resolves a Spotify or YouTube input and returns its mp4 preview clip.",
)
async def preview(
    track_input: str,
    options: ClipOptions = Depends(get_clip_options),
    service: PreviewService = Depends(get_preview_service),
) -> FileResponse:
    _, clip_path = await service.get_or_create_preview(track_input, options)
    return _clip_response(clip_path)
