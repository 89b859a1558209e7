"""YouTube platform implementation using yt-dlp, httpx and requests."""

import asyncio
import logging
import re
from typing import Optional

import httpx
import requests
import yt_dlp

from models.video import StreamHandle, VideoInfo
from services.video_sources.base import VideoPlatform

logger = logging.getLogger(__name__)

# Configure yt-dlp logging to be silent
logging.getLogger("yt_dlp").setLevel(logging.CRITICAL)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

SEARCH_URL = "https://www.youtube.com/results"
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

BEST_URL_FORMAT = "best[height>=720]/best[height>=480]/best"
MP4_URL_FORMAT = "best[height>=720][ext=mp4]/best[height>=720]/best[ext=mp4]/best"

STREAM_HEIGHTS = (1080, 720, 480)
STREAM_CHUNK_SIZE = 64 * 1024

_VIDEO_ID_RE = re.compile(r'"videoId":"([a-zA-Z0-9_-]{11})"')


def extract_video_ids(page: str, limit: int = 5) -> list[str]:
    """Scan a results page for video ids.

    Args:
        page: Raw results page text
        limit: Maximum number of ids to return

    Returns:
        Unique ids in order of first appearance
    """
    video_ids: list[str] = []
    for match in _VIDEO_ID_RE.finditer(page):
        video_id = match.group(1)
        if video_id in video_ids:
            continue
        video_ids.append(video_id)
        if len(video_ids) >= limit:
            break
    return video_ids


def select_stream_format(formats: Optional[list[dict]]) -> Optional[dict]:
    """Pick an mp4 format carrying both audio and video, highest tier first."""
    for height in STREAM_HEIGHTS:
        for fmt in formats or []:
            if (
                fmt.get("ext") == "mp4"
                and fmt.get("vcodec") not in (None, "none")
                and fmt.get("acodec") not in (None, "none")
                and fmt.get("height") == height
                and fmt.get("url")
            ):
                return fmt
    return None


class YouTubePlatform(VideoPlatform):
    """YouTube access through page scraping and yt-dlp extraction."""

    def __init__(
        self,
        cookies_file: Optional[str] = None,
        search_timeout: float = 10.0,
        stream_timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the platform client.

        Args:
            cookies_file: Optional Netscape cookie file passed to yt-dlp
            search_timeout: HTTP timeout for results pages
            stream_timeout: Connect/read timeout for opened streams
            client: Optional preconfigured httpx client
        """
        self.cookies_file = cookies_file
        self.stream_timeout = stream_timeout
        self.client = client or httpx.AsyncClient(
            timeout=search_timeout,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        )

    def get_platform_name(self) -> str:
        return "youtube"

    async def close(self) -> None:
        await self.client.aclose()

    async def fetch_search_page(self, query: str) -> str:
        response = await self.client.get(SEARCH_URL, params={"search_query": query})
        response.raise_for_status()
        return response.text

    def _ydl_opts(self, fmt: Optional[str] = None) -> dict:
        opts = {
            "quiet": True,
            "no_warnings": True,
            "noplaylist": True,
            "nocheckcertificate": True,
            "skip_download": True,
            "http_headers": {"User-Agent": USER_AGENT},
        }
        if fmt:
            opts["format"] = fmt
        if self.cookies_file:
            opts["cookiefile"] = self.cookies_file
        return opts

    def _extract(self, video_id: str, fmt: Optional[str] = None) -> dict:
        with yt_dlp.YoutubeDL(self._ydl_opts(fmt)) as ydl:
            info = ydl.extract_info(WATCH_URL.format(video_id=video_id), download=False)
        if not info:
            raise ValueError(f"No video info returned for {video_id}")
        return info

    async def get_stream_info(self, video_id: str) -> VideoInfo:
        info = await asyncio.to_thread(self._extract, video_id)
        formats = info.get("formats") or []
        return VideoInfo(
            video_id=video_id,
            title=info.get("title") or "Unknown Title",
            duration=int(info.get("duration") or 0),
            channel=info.get("channel") or info.get("uploader"),
            formats=formats,
            strategy="stream_info",
        )

    async def _get_url(self, video_id: str, fmt: str, strategy: str) -> VideoInfo:
        info = await asyncio.to_thread(self._extract, video_id, fmt)
        url = info.get("url")
        if not url:
            raise ValueError(f"No valid video URL found for {video_id}")

        logger.info(
            f"[YouTube] Using format {info.get('format_id')} "
            f"({info.get('width')}x{info.get('height')}) for {video_id}"
        )
        return VideoInfo(
            video_id=video_id,
            title=info.get("title") or "Unknown Title",
            duration=int(info.get("duration") or 0),
            channel=info.get("channel") or info.get("uploader"),
            url=url,
            http_headers=dict(info.get("http_headers") or {}),
            strategy=strategy,
        )

    async def get_best_url(self, video_id: str) -> VideoInfo:
        return await self._get_url(video_id, BEST_URL_FORMAT, "best_url")

    async def get_mp4_url(self, video_id: str) -> VideoInfo:
        return await self._get_url(video_id, MP4_URL_FORMAT, "mp4_url")

    async def open_stream(self, video_id: str, formats: Optional[list[dict]]) -> StreamHandle:
        fmt = select_stream_format(formats)
        if fmt is None:
            raise ValueError(f"No streamable mp4 format with audio and video for {video_id}")

        headers = {"User-Agent": USER_AGENT, **(fmt.get("http_headers") or {})}
        response = await asyncio.to_thread(
            requests.get,
            fmt["url"],
            headers=headers,
            stream=True,
            timeout=self.stream_timeout,
        )
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError:
            response.close()
            raise

        logger.info(f"[YouTube] Opened stream {fmt.get('format_id')} ({fmt.get('height')}p) for {video_id}")
        return StreamHandle(
            chunks=response.iter_content(chunk_size=STREAM_CHUNK_SIZE),
            close=response.close,
            format_id=fmt.get("format_id"),
        )
