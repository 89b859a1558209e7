"""Tests for the preview HTTP API."""

from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_preview_service
from api.server import app
from models.clip import ClipOptions
from utils.errors import (
    CatalogUnavailable,
    InvalidIdentifier,
    MetadataNotFound,
    NoMatchFound,
    RenderFailed,
    SourceUnavailable,
)

TRACK_ID = "3jEqW8QNyPB5MxWEGc8tJK"


@pytest.fixture
def clip_file(tmp_path):
    path = tmp_path / ("a" * 64 + ".mp4")
    path.write_bytes(b"fake mp4 data")
    return path


@pytest.fixture
def service(sample_metadata, clip_file):
    service = Mock()
    service.get_or_create_metadata = AsyncMock(return_value=sample_metadata)
    service.get_or_create_clip = AsyncMock(return_value=clip_file)
    service.get_or_create_preview = AsyncMock(return_value=(sample_metadata, clip_file))
    service.get_stats.return_value = {
        "metadata_cached": 1,
        "clips_cached": 1,
        "memory_cache_entries": 1,
        "clips_in_flight": 0,
    }
    service.clear_cache.return_value = 2
    return service


@pytest.fixture
def client(service):
    # Without a context manager the lifespan (and real service) never starts
    app.dependency_overrides[get_preview_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestCoreRoutes:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json() == {"message": "Video Preview API", "version": "1.0.0"}

    def test_health(self, client):
        body = client.get("/api/health").json()
        assert body["status"] == "healthy"
        assert body["cache"]["clips_cached"] == 1

    def test_info_lists_parameters(self, client):
        endpoints = client.get("/api/info").json()["endpoints"]
        assert set(endpoints["/api/preview/{input}"]["parameters"]) == {
            "quality",
            "duration",
            "audio",
            "width",
            "height",
        }

    def test_clear_cache(self, client, service):
        response = client.delete("/api/cache")
        assert response.json() == {"message": "Cache cleared successfully"}
        service.clear_cache.assert_called_once()

    def test_request_id_echoed(self, client):
        response = client.get("/", headers={"X-Request-ID": "req-1"})
        assert response.headers["X-Request-ID"] == "req-1"


class TestFetchMetadata:
    def test_spotify_id(self, client, service, sample_metadata):
        response = client.get("/api/fetch/metadata", params={"spotifyid": TRACK_ID})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["metadata"]["clip_start_ms"] == 96500
        assert body["metadata"]["youtube_video_id"] == "abc12345678"
        assert body["video_preview_url"].endswith(f"/api/fetch/preview/{sample_metadata.cache_key}")
        service.get_or_create_metadata.assert_awaited_once_with(TRACK_ID, ClipOptions())

    def test_spotify_url_is_reduced_to_id(self, client, service):
        client.get("/api/fetch/metadata", params={"spotifyid": f"https://open.spotify.com/track/{TRACK_ID}"})
        assert service.get_or_create_metadata.await_args[0][0] == TRACK_ID

    def test_youtube_id_with_options(self, client, service):
        client.get(
            "/api/fetch/metadata",
            params={"youtubeid": "abc12345678", "quality": "max", "duration": "30", "audio": "false"},
        )
        raw_input, options = service.get_or_create_metadata.await_args[0]
        assert raw_input == "abc12345678"
        assert options == ClipOptions(quality="max", duration_seconds=10, include_audio=False)

    @pytest.mark.parametrize(
        "params",
        [{}, {"spotifyid": "too-short"}, {"youtubeid": "bad id"}],
    )
    def test_invalid_parameters(self, client, service, params):
        response = client.get("/api/fetch/metadata", params=params)

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert response.json()["category"] == "invalid_input"
        service.get_or_create_metadata.assert_not_called()


class TestClipRoutes:
    def test_fetch_preview_serves_mp4(self, client, service):
        response = client.get(f"/api/fetch/preview/{'a' * 64}")

        assert response.status_code == 200
        assert response.headers["content-type"] == "video/mp4"
        assert response.headers["cache-control"] == "public, max-age=3600"
        assert response.content == b"fake mp4 data"
        service.get_or_create_clip.assert_awaited_once_with("a" * 64)

    def test_preview_accepts_urls_in_path(self, client, service):
        response = client.get("/api/preview/https://youtu.be/abc12345678", params={"width": "1280"})

        assert response.status_code == 200
        raw_input, options = service.get_or_create_preview.await_args[0]
        assert raw_input == "https://youtu.be/abc12345678"
        assert options.width == 1280


class TestErrorMapping:
    @pytest.mark.parametrize(
        "error, status",
        [
            (InvalidIdentifier("bad"), 400),
            (MetadataNotFound("missing"), 404),
            (NoMatchFound("no match"), 404),
            (CatalogUnavailable("down"), 502),
            (SourceUnavailable("blocked"), 502),
            (RenderFailed("ffmpeg"), 500),
        ],
    )
    def test_status_codes(self, client, service, error, status):
        service.get_or_create_clip.side_effect = error

        response = client.get(f"/api/fetch/preview/{'a' * 64}")

        assert response.status_code == status
        assert response.json() == {"success": False, "error": error.message, "category": error.category}
