"""Video platform package for preview source acquisition."""

from services.video_sources.base import VideoPlatform
from services.video_sources.youtube import YouTubePlatform, extract_video_ids

__all__ = ["VideoPlatform", "YouTubePlatform", "extract_video_ids"]
