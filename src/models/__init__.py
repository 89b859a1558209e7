# Data models for the preview service
from .video import VideoInfo, DirectURL, StreamHandle, SourceDescriptor
from .clip import ClipOptions, QualityPreset, QUALITY_PRESETS
from .preview import TrackInfo, YouTubeMetadata, PreviewMetadata

__all__ = [
    "VideoInfo",
    "DirectURL",
    "StreamHandle",
    "SourceDescriptor",
    "ClipOptions",
    "QualityPreset",
    "QUALITY_PRESETS",
    "TrackInfo",
    "YouTubeMetadata",
    "PreviewMetadata",
]
