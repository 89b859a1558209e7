"""Clip option and encoding preset models."""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

QUALITIES = ("low", "medium", "max")

MIN_DURATION, MAX_DURATION = 3, 10
MIN_WIDTH, MAX_WIDTH = 240, 1920
MIN_HEIGHT, MAX_HEIGHT = 180, 1080


@dataclass(frozen=True)
class QualityPreset:
    """Fixed encoder settings for one quality level."""

    video_bitrate: str
    audio_bitrate: str
    crf: str
    profile: str  # H.264 profile
    level: str  # H.264 level
    max_bitrate: str
    bufsize: str
    speed_preset: str  # x264 -preset


QUALITY_PRESETS = {
    "low": QualityPreset(
        video_bitrate="800k",
        audio_bitrate="96k",
        crf="28",
        profile="baseline",
        level="3.0",
        max_bitrate="1200k",
        bufsize="1600k",
        speed_preset="fast",
    ),
    "medium": QualityPreset(
        video_bitrate="2500k",
        audio_bitrate="192k",
        crf="23",
        profile="high",
        level="4.0",
        max_bitrate="3500k",
        bufsize="5000k",
        speed_preset="fast",
    ),
    "max": QualityPreset(
        video_bitrate="6000k",
        audio_bitrate="320k",
        crf="18",
        profile="high",
        level="4.2",
        max_bitrate="8000k",
        bufsize="12000k",
        speed_preset="medium",
    ),
}


def _clamp(value: int, low: int, high: int) -> int:
    return min(max(value, low), high)


def _to_int(value: Any, default: int) -> int:
    """Parse an untrusted numeric value, falling back to the default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


def _even(value: int) -> int:
    return value + 1 if value % 2 else value


@dataclass(frozen=True)
class ClipOptions:
    """Validated option set for one rendered clip.

    Durations and sizes are always within range and width/height are
    always even. Construct through ``from_query`` for untrusted input.
    """

    quality: str = "medium"
    duration_seconds: int = 7
    include_audio: bool = True
    width: int = 640
    height: int = 360

    @classmethod
    def from_query(cls, query: Optional[Mapping[str, Any]] = None) -> "ClipOptions":
        """Build options from request parameters, clamping instead of rejecting.

        Args:
            query: Mapping with any of quality, duration, audio, width, height

        Returns:
            ClipOptions with every field inside its allowed range
        """
        query = query or {}
        defaults = cls()

        quality = query.get("quality")
        if quality not in QUALITIES:
            quality = defaults.quality

        audio = query.get("audio", True)
        include_audio = not (audio is False or str(audio).lower() == "false")

        return cls(
            quality=quality,
            duration_seconds=_clamp(
                _to_int(query.get("duration"), defaults.duration_seconds),
                MIN_DURATION,
                MAX_DURATION,
            ),
            include_audio=include_audio,
            width=_even(_clamp(_to_int(query.get("width"), defaults.width), MIN_WIDTH, MAX_WIDTH)),
            height=_even(
                _clamp(_to_int(query.get("height"), defaults.height), MIN_HEIGHT, MAX_HEIGHT)
            ),
        )

    @property
    def preset(self) -> QualityPreset:
        return QUALITY_PRESETS[self.quality]

    @property
    def duration_ms(self) -> int:
        return self.duration_seconds * 1000

    def to_dict(self) -> dict:
        """Option set as used for fingerprinting and persisted metadata."""
        return {
            "quality": self.quality,
            "duration": self.duration_seconds,
            "audio": self.include_audio,
            "width": self.width,
            "height": self.height,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClipOptions":
        return cls.from_query(data)
