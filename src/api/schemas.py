"""Pydantic request/response models for the preview API."""

from typing import Optional

from pydantic import BaseModel, Field

# =============================================================================
# Core
# =============================================================================


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str

    model_config = {"json_schema_extra": {"examples": [{"message": "Cache cleared successfully"}]}}


class RootResponse(BaseModel):
    """Root endpoint response."""

    message: str
    version: str

    model_config = {"json_schema_extra": {"examples": [{"message": "Video Preview API", "version": "1.0.0"}]}}


class CacheStatsResponse(BaseModel):
    """Cache statistics."""

    metadata_cached: int
    clips_cached: int
    memory_cache_entries: int
    clips_in_flight: int = 0


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    cache: Optional[CacheStatsResponse] = None

    model_config = {"json_schema_extra": {"examples": [{"status": "healthy"}]}}


class InfoResponse(BaseModel):
    """API information response."""

    name: str
    version: str
    description: str
    endpoints: dict


class ErrorResponse(BaseModel):
    """Error body for every failed request."""

    success: bool = False
    error: str
    category: str

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "success": False,
                    "error": "No suitable music video found for: Artist Song",
                    "category": "not_found",
                }
            ]
        }
    }


# =============================================================================
# Preview metadata
# =============================================================================


class YouTubeMetadataResponse(BaseModel):
    """The matched video's own details."""

    title: str
    duration_seconds: int = Field(ge=0)
    channel: str


class PreviewMetadataResponse(BaseModel):
    """Resolved metadata for one track and option set."""

    cache_key: str
    spotify_id: Optional[str] = None
    title: str
    artist: str
    album: str
    duration_ms: int = Field(ge=0)
    thumbnail: Optional[str] = None
    youtube_video_id: str
    youtube_metadata: YouTubeMetadataResponse
    clip_start_ms: int = Field(ge=0)
    clip_duration_ms: int = Field(ge=0)


class MetadataFetchResponse(BaseModel):
    """Metadata lookup response with the URL that serves the clip."""

    success: bool = True
    metadata: PreviewMetadataResponse
    video_preview_url: str

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "success": True,
                    "metadata": {
                        "cache_key": "3f1c…",
                        "spotify_id": "3jEqW8QNyPB5MxWEGc8tJK",
                        "title": "Song",
                        "artist": "Artist",
                        "album": "Album",
                        "duration_ms": 200000,
                        "thumbnail": "https://i.scdn.co/image/abc",
                        "youtube_video_id": "abc12345678",
                        "youtube_metadata": {
                            "title": "Artist - Song (Official Video)",
                            "duration_seconds": 200,
                            "channel": "ArtistVEVO",
                        },
                        "clip_start_ms": 96500,
                        "clip_duration_ms": 7000,
                    },
                    "video_preview_url": "http://localhost:3000/api/fetch/preview/3f1c…",
                }
            ]
        }
    }
