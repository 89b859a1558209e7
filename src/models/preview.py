"""Track and preview metadata models."""

from dataclasses import asdict, dataclass, field
from typing import Any, List, Mapping, Optional

from utils.errors import CacheCorrupt


@dataclass
class TrackInfo:
    """A catalog track as returned by the catalog lookup."""

    id: str
    title: str
    artists: List[str] = field(default_factory=list)
    album: Optional[str] = None
    duration_ms: int = 0
    cover_art_url: Optional[str] = None

    @property
    def artist(self) -> str:
        return ", ".join(self.artists)

    @property
    def search_query(self) -> str:
        """Query used to look the track up on the video platform."""
        return " ".join([*self.artists, self.title]).strip()


@dataclass(frozen=True)
class YouTubeMetadata:
    """The matched video's own title, duration and channel."""

    title: str
    duration_seconds: int
    channel: str = "Unknown"


@dataclass(frozen=True)
class PreviewMetadata:
    """Resolved metadata for one fingerprint.

    Created once on first successful resolution and never modified after.
    """

    cache_key: str
    input: str  # Logical input, e.g. "spotify:<id>"
    spotify_id: Optional[str]
    title: str
    artist: str
    album: str
    duration_ms: int
    thumbnail: Optional[str]
    youtube_video_id: str
    youtube_metadata: YouTubeMetadata
    clip_start_ms: int
    clip_duration_ms: int
    options: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to a JSON-serialisable dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PreviewMetadata":
        """Rebuild a record from its dictionary form.

        Raises:
            CacheCorrupt: If required keys are missing or ill-typed
        """
        try:
            yt = data["youtube_metadata"]
            return cls(
                cache_key=str(data["cache_key"]),
                input=str(data["input"]),
                spotify_id=data.get("spotify_id"),
                title=str(data["title"]),
                artist=str(data["artist"]),
                album=str(data["album"]),
                duration_ms=int(data["duration_ms"]),
                thumbnail=data.get("thumbnail"),
                youtube_video_id=str(data["youtube_video_id"]),
                youtube_metadata=YouTubeMetadata(
                    title=str(yt["title"]),
                    duration_seconds=int(yt["duration_seconds"]),
                    channel=str(yt.get("channel") or "Unknown"),
                ),
                clip_start_ms=int(data["clip_start_ms"]),
                clip_duration_ms=int(data["clip_duration_ms"]),
                options=dict(data.get("options") or {}),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CacheCorrupt(f"Malformed metadata record: {e}") from e
