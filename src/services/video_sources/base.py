"""Base abstraction for video platforms."""

from abc import ABC, abstractmethod
from typing import Optional

from models.video import StreamHandle, VideoInfo


class VideoPlatform(ABC):
    """Abstract base class for a platform that hosts playable videos.

    Every method performs network I/O and may raise any exception; callers
    bound each call with their own timeout.
    """

    @abstractmethod
    async def fetch_search_page(self, query: str) -> str:
        """Fetch the raw results page for a search query.

        Args:
            query: Search query string

        Returns:
            Page text to be scanned for candidate video ids
        """

    @abstractmethod
    async def get_stream_info(self, video_id: str) -> VideoInfo:
        """Look up metadata together with the full format list.

        Returns:
            VideoInfo with ``formats`` set and no direct URL
        """

    @abstractmethod
    async def get_best_url(self, video_id: str) -> VideoInfo:
        """Look up a single direct URL at the best available resolution tier.

        Returns:
            VideoInfo with ``url`` set
        """

    @abstractmethod
    async def get_mp4_url(self, video_id: str) -> VideoInfo:
        """Look up a direct URL restricted to mp4 at 720p or better when available.

        Returns:
            VideoInfo with ``url`` set
        """

    @abstractmethod
    async def open_stream(self, video_id: str, formats: Optional[list[dict]]) -> StreamHandle:
        """Open a live byte stream for one of the given formats."""

    def get_platform_name(self) -> str:
        return self.__class__.__name__
