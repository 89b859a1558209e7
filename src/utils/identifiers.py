"""Input identifier parsing for catalog tracks and platform videos."""

import re
from dataclasses import dataclass

from utils.errors import InvalidIdentifier

SPOTIFY = "spotify"
YOUTUBE = "youtube"

_SPOTIFY_TRACK_RE = re.compile(r"track/([a-zA-Z0-9]+)")
_SPOTIFY_ID_RE = re.compile(r"^[a-zA-Z0-9]{22}$")
_YOUTUBE_URL_RE = re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/)([^&\n?#]+)")
_VIDEO_ID_RE = re.compile(r"^[a-zA-Z0-9_-]{11}$")


@dataclass(frozen=True)
class TrackInput:
    """A parsed request input: which platform it names and its bare id."""

    kind: str  # spotify or youtube
    id: str

    @property
    def logical_input(self) -> str:
        """Stable string used as the fingerprint's logical input."""
        return f"{self.kind}:{self.id}"


def extract_spotify_id(value: str) -> str:
    """Return the track id from a Spotify URL, or the value unchanged."""
    match = _SPOTIFY_TRACK_RE.search(value)
    return match.group(1) if match else value


def extract_youtube_id(value: str) -> str:
    """Return the video id from a YouTube URL, or the value unchanged."""
    match = _YOUTUBE_URL_RE.search(value)
    return match.group(1) if match else value


def is_valid_video_id(video_id: str) -> bool:
    return bool(video_id) and bool(_VIDEO_ID_RE.match(video_id))


def is_spotify_id(value: str) -> bool:
    return bool(_SPOTIFY_ID_RE.match(value))


def parse_track_input(raw: str) -> TrackInput:
    """Classify a raw request input as a Spotify track or a YouTube video.

    Args:
        raw: Track/video id or share URL

    Returns:
        TrackInput with the bare id

    Raises:
        InvalidIdentifier: If the input matches neither platform
    """
    value = (raw or "").strip()
    if not value:
        raise InvalidIdentifier("Input is empty")

    if "spotify.com" in value or is_spotify_id(value):
        track_id = extract_spotify_id(value)
        if not is_spotify_id(track_id):
            raise InvalidIdentifier(f"Invalid Spotify track id: {track_id}")
        return TrackInput(kind=SPOTIFY, id=track_id)

    if "youtube.com" in value or "youtu.be" in value:
        video_id = extract_youtube_id(value)
    else:
        video_id = value

    if not is_valid_video_id(video_id):
        raise InvalidIdentifier(f"Invalid input format: {raw}")
    return TrackInput(kind=YOUTUBE, id=video_id)
