"""Source resolution for preview clips.

Turns a platform video id into something the clip renderer can read, and
finds the video id for a track by searching the platform.

Resolution is an ordered chain of strategies, each bounded by its own
timeout. The first strategy that succeeds wins; no strategy is retried.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, Sequence, TypeVar

from models.video import DirectURL, SourceDescriptor, VideoInfo
from services.video_matcher import Candidate, is_acceptable_match
from services.video_sources.base import VideoPlatform
from services.video_sources.youtube import extract_video_ids
from utils.errors import InvalidIdentifier, NoMatchFound, SourceUnavailable
from utils.identifiers import is_valid_video_id

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_CANDIDATES = 5


@dataclass
class ResolutionStrategy(Generic[T]):
    """One way of resolving a video id, with its own time limit."""

    name: str
    timeout: float
    fn: Callable[[str], Awaitable[T]]


async def first_success(strategies: Sequence[ResolutionStrategy[T]], video_id: str) -> T:
    """Try each strategy in order and return the first result.

    Args:
        strategies: Strategies in priority order
        video_id: Platform video id passed to every strategy

    Returns:
        Result of the first strategy that completes in time

    Raises:
        SourceUnavailable: If every strategy fails or times out
    """
    failures: list[str] = []

    for strategy in strategies:
        try:
            result = await asyncio.wait_for(strategy.fn(video_id), timeout=strategy.timeout)
            logger.debug(f"Strategy '{strategy.name}' succeeded for {video_id}")
            return result
        except asyncio.TimeoutError:
            logger.warning(f"Strategy '{strategy.name}' timed out after {strategy.timeout}s for {video_id}")
            failures.append(f"{strategy.name}: timeout")
        except Exception as e:
            logger.warning(f"Strategy '{strategy.name}' failed for {video_id}: {e}")
            failures.append(f"{strategy.name}: {e}")

    raise SourceUnavailable(f"All extraction methods failed for {video_id} ({'; '.join(failures)})")


def search_phrasings(query: str) -> list[str]:
    """Query phrasings tried in order, most specific first."""
    return [f'"{query}" official', f"{query} official", query]


class SourceResolver:
    """Resolves video ids to playable sources and searches for tracks."""

    def __init__(
        self,
        platform: VideoPlatform,
        stream_info_timeout: float = 7,
        url_lookup_timeout: float = 10,
        candidate_info_timeout: float = 8,
        search_timeout: float = 10,
        stream_open_timeout: float = 15,
    ):
        """Initialize the resolver.

        Args:
            platform: Video platform client
            stream_info_timeout: Limit for the stream-capable info lookup
            url_lookup_timeout: Limit for each direct-URL lookup
            candidate_info_timeout: Overall limit for one search candidate's info
            search_timeout: Limit for one results page fetch
            stream_open_timeout: Limit for opening a live byte stream
        """
        self.platform = platform
        self.stream_info_timeout = stream_info_timeout
        self.url_lookup_timeout = url_lookup_timeout
        self.candidate_info_timeout = candidate_info_timeout
        self.search_timeout = search_timeout
        self.stream_open_timeout = stream_open_timeout

    def resolution_strategies(self) -> list[ResolutionStrategy[VideoInfo]]:
        return [
            ResolutionStrategy("stream_info", self.stream_info_timeout, self.platform.get_stream_info),
            ResolutionStrategy("best_url", self.url_lookup_timeout, self.platform.get_best_url),
        ]

    async def resolve(self, video_id: str) -> VideoInfo:
        """Resolve a video id to its info and either a format list or a direct URL.

        Raises:
            InvalidIdentifier: If the id is malformed
            SourceUnavailable: If every strategy fails
        """
        if not is_valid_video_id(video_id):
            raise InvalidIdentifier(f"Invalid video id: {video_id!r}")

        info = await first_success(self.resolution_strategies(), video_id)
        logger.info(f"Resolved {video_id} via {info.strategy} ({info.duration}s)")
        return info

    async def get_video_info(self, video_id: str) -> VideoInfo:
        """Resolve info for a search candidate under one overall time limit."""
        try:
            return await asyncio.wait_for(self.resolve(video_id), timeout=self.candidate_info_timeout)
        except asyncio.TimeoutError as e:
            raise SourceUnavailable(f"Timed out resolving candidate {video_id}") from e

    async def open_source(self, resolved: VideoInfo) -> SourceDescriptor:
        """Turn resolved info into a source the renderer can read.

        Direct URLs are used as-is. Format lists are opened as a live
        stream; if the stream cannot be constructed, a separate mp4
        direct-URL lookup is tried.

        Raises:
            SourceUnavailable: If neither the stream nor the fallback URL works
        """
        if resolved.use_direct_url:
            return DirectURL(url=resolved.url, headers=dict(resolved.http_headers))

        async def open_stream(video_id: str) -> SourceDescriptor:
            return await self.platform.open_stream(video_id, resolved.formats)

        async def mp4_url(video_id: str) -> SourceDescriptor:
            info = await self.platform.get_mp4_url(video_id)
            if not info.url:
                raise ValueError("No direct URL returned")
            return DirectURL(url=info.url, headers=dict(info.http_headers))

        strategies: list[ResolutionStrategy[Any]] = [
            ResolutionStrategy("stream", self.stream_open_timeout, open_stream),
            ResolutionStrategy("mp4_url", self.url_lookup_timeout, mp4_url),
        ]
        return await first_success(strategies, resolved.video_id)

    async def search_video_info(self, query: str) -> VideoInfo:
        """Find the first acceptable candidate for a query.

        Returns:
            Info of the accepted candidate

        Raises:
            SourceUnavailable: If no results page could be fetched at all
            NoMatchFound: If every phrasing and candidate was exhausted
        """
        phrasings = search_phrasings(query)
        failed_fetches = 0

        for phrasing in phrasings:
            logger.info(f"Trying search: {phrasing}")
            try:
                page = await asyncio.wait_for(
                    self.platform.fetch_search_page(phrasing), timeout=self.search_timeout
                )
            except asyncio.TimeoutError:
                logger.warning(f"Search page timed out for: {phrasing}")
                failed_fetches += 1
                continue
            except Exception as e:
                logger.warning(f"Search page failed for '{phrasing}': {e}")
                failed_fetches += 1
                continue

            for video_id in extract_video_ids(page, limit=MAX_CANDIDATES):
                try:
                    info = await self.get_video_info(video_id)
                except Exception as e:
                    logger.info(f"Skipping {video_id}: {e}")
                    continue

                candidate = Candidate(title=info.title, duration_seconds=info.duration, video_id=video_id)
                if is_acceptable_match(candidate, query):
                    logger.info(f"Found valid video: {info.title} ({info.duration}s)")
                    return info

        if failed_fetches == len(phrasings):
            raise SourceUnavailable(f"Search unavailable for: {query}")
        raise NoMatchFound(f"No suitable music video found for: {query}")

    async def search_video(self, query: str) -> str:
        """Find the video id of the first acceptable candidate for a query."""
        info = await self.search_video_info(query)
        return info.video_id


def describe_source(source: Optional[SourceDescriptor]) -> str:
    if isinstance(source, DirectURL):
        return "direct url"
    if source is None:
        return "none"
    return f"stream ({source.format_id or 'unknown format'})"
