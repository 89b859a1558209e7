"""Shared pytest fixtures for preview service tests."""

import sys
from pathlib import Path
from typing import Dict, Optional

import pytest

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

# Test modules import the fakes below with "from conftest import ..."
tests_path = Path(__file__).parent
if str(tests_path) not in sys.path:
    sys.path.insert(0, str(tests_path))

from models.preview import PreviewMetadata, TrackInfo, YouTubeMetadata  # noqa: E402
from models.video import StreamHandle, VideoInfo  # noqa: E402
from services.video_sources.base import VideoPlatform  # noqa: E402
from utils.errors import TrackNotFound  # noqa: E402


def results_page(*video_ids: str) -> str:
    """Minimal results page text carrying the given video ids."""
    return "".join(f'{{"videoRenderer":{{"videoId":"{vid}"}}}}' for vid in video_ids)


class FakeCatalog:
    """In-memory catalog recording every lookup."""

    def __init__(self, tracks: Optional[Dict[str, TrackInfo]] = None):
        self.tracks = tracks or {}
        self.calls: list[str] = []

    async def get_track(self, track_id: str) -> TrackInfo:
        self.calls.append(track_id)
        if track_id not in self.tracks:
            raise TrackNotFound(f"Track not found: {track_id}")
        return self.tracks[track_id]


class FakePlatform(VideoPlatform):
    """Scriptable platform: search pages and per-video info from dictionaries."""

    def __init__(
        self,
        pages: Optional[Dict[str, str]] = None,
        videos: Optional[Dict[str, VideoInfo]] = None,
        default_page: str = "",
    ):
        self.pages = pages or {}
        self.videos = videos or {}
        self.default_page = default_page
        self.calls: list[tuple[str, str]] = []

    async def fetch_search_page(self, query: str) -> str:
        self.calls.append(("search", query))
        return self.pages.get(query, self.default_page)

    async def get_stream_info(self, video_id: str) -> VideoInfo:
        self.calls.append(("stream_info", video_id))
        if video_id not in self.videos:
            raise ValueError(f"Video unavailable: {video_id}")
        info = self.videos[video_id]
        return VideoInfo(
            video_id=video_id,
            title=info.title,
            duration=info.duration,
            channel=info.channel,
            formats=[{"format_id": "18", "ext": "mp4"}],
            strategy="stream_info",
        )

    async def get_best_url(self, video_id: str) -> VideoInfo:
        self.calls.append(("best_url", video_id))
        raise ValueError("best_url not scripted")

    async def get_mp4_url(self, video_id: str) -> VideoInfo:
        self.calls.append(("mp4_url", video_id))
        raise ValueError("mp4_url not scripted")

    async def open_stream(self, video_id: str, formats) -> StreamHandle:
        self.calls.append(("open_stream", video_id))
        return StreamHandle(chunks=iter([b"\x00" * 16]), format_id="18")

    def network_calls(self) -> int:
        return len(self.calls)


class FakeRenderer:
    """Renderer that writes a small placeholder file instead of running FFmpeg."""

    def __init__(self, fail_with: Optional[Exception] = None):
        self.fail_with = fail_with
        self.calls: list[dict] = []

    async def render(self, source, start_seconds, options, output_path, deadline=None) -> Path:
        self.calls.append(
            {"source": source, "start_seconds": start_seconds, "options": options, "output_path": output_path}
        )
        if self.fail_with is not None:
            raise self.fail_with
        output_path = Path(output_path)
        output_path.write_bytes(b"fake mp4 data")
        return output_path


@pytest.fixture
def sample_config(tmp_path) -> Dict:
    """Sample configuration pointing every directory into tmp_path."""
    return {
        "spotify_client_id": "test_client_id",
        "spotify_client_secret": "test_client_secret",
        "cache_dir": str(tmp_path / "cache"),
        "metadata_cache_dir": str(tmp_path / "cache" / "metadata"),
        "clips_cache_dir": str(tmp_path / "cache" / "clips"),
        "temp_dir": str(tmp_path / "temp"),
        "cache_ttl_seconds": 3600,
        "cache_max_keys": 500,
        "stream_info_timeout": 7,
        "url_lookup_timeout": 10,
        "candidate_info_timeout": 8,
        "search_timeout": 10,
        "catalog_timeout": 10,
        "render_timeout": 120,
        "ffmpeg_path": "ffmpeg",
        "ytdlp_cookies_file": None,
        "port": 3000,
        "log_level": "INFO",
        "log_json": False,
    }


@pytest.fixture
def sample_track() -> TrackInfo:
    return TrackInfo(
        id="3jEqW8QNyPB5MxWEGc8tJK",
        title="Song",
        artists=["Artist"],
        album="Album",
        duration_ms=200000,
        cover_art_url="https://i.scdn.co/image/cover",
    )


@pytest.fixture
def sample_metadata() -> PreviewMetadata:
    return PreviewMetadata(
        cache_key="a" * 64,
        input="spotify:3jEqW8QNyPB5MxWEGc8tJK",
        spotify_id="3jEqW8QNyPB5MxWEGc8tJK",
        title="Song",
        artist="Artist",
        album="Album",
        duration_ms=200000,
        thumbnail="https://i.scdn.co/image/cover",
        youtube_video_id="abc12345678",
        youtube_metadata=YouTubeMetadata(
            title="Artist - Song (Official Video)", duration_seconds=200, channel="ArtistVEVO"
        ),
        clip_start_ms=96500,
        clip_duration_ms=7000,
        options={"quality": "medium", "duration": 7, "audio": True, "width": 640, "height": 360},
    )
