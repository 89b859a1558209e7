"""Preview acquisition service.

Coordinates the full path from a track or video input to a cached preview
clip:
- Parse the input and compute its fingerprint
- Resolve metadata (catalog lookup, platform search, candidate matching)
- Resolve a playable source and render the clip
- Promote results into the fingerprint cache

Nothing partial is ever cached: metadata is stored only once fully
resolved, and a clip only once rendered successfully.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, AsyncIterator, Optional

from models.clip import ClipOptions
from models.preview import PreviewMetadata, YouTubeMetadata
from services.clip_renderer import get_clip_start_ms
from services.source_resolver import describe_source
from utils.cache import is_fingerprint
from utils.errors import CacheWriteFailed, InvalidIdentifier, MetadataNotFound
from utils.identifiers import SPOTIFY, TrackInput, parse_track_input

if TYPE_CHECKING:
    from models.video import VideoInfo
    from services.catalog_service import SpotifyCatalog
    from services.clip_renderer import ClipRenderer
    from services.preview_cache import PreviewCache
    from services.source_resolver import SourceResolver

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"
THUMBNAIL_URL = "https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"


@dataclass
class _InFlight:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class PreviewService:
    """Service for turning track inputs into cached preview clips.

    Clip creation is single-flight per fingerprint within one process:
    concurrent requests for the same fingerprint wait for the first render
    and then reuse its cached clip. Different fingerprints never contend.
    """

    def __init__(
        self,
        cache: "PreviewCache",
        catalog: "SpotifyCatalog",
        resolver: "SourceResolver",
        renderer: "ClipRenderer",
        temp_dir: str | Path,
    ):
        """Initialize the preview service.

        Args:
            cache: Two-tier fingerprint cache
            catalog: Catalog client for track lookups
            resolver: Source resolver for search and extraction
            renderer: Clip renderer
            temp_dir: Scratch directory for rendered clips before promotion
        """
        self.cache = cache
        self.catalog = catalog
        self.resolver = resolver
        self.renderer = renderer
        self.temp_dir = Path(temp_dir)
        self.temp_dir.mkdir(parents=True, exist_ok=True)

        self._inflight: dict[str, _InFlight] = {}

    # =========================================================================
    # Fingerprints
    # =========================================================================

    def _fingerprint(self, track_input: TrackInput, options: ClipOptions) -> str:
        return self.cache.compute_fingerprint(track_input.logical_input, options.to_dict())

    def fingerprint_for(self, raw_input: str, options: Optional[ClipOptions] = None) -> str:
        """Fingerprint for a raw input and option set without resolving anything."""
        return self._fingerprint(parse_track_input(raw_input), options or ClipOptions())

    # =========================================================================
    # Metadata
    # =========================================================================

    async def get_or_create_metadata(
        self, raw_input: str, options: Optional[ClipOptions] = None
    ) -> PreviewMetadata:
        """Return cached metadata for the input, resolving it on a miss.

        Args:
            raw_input: Spotify track id/URL or YouTube video id/URL
            options: Clip options (defaults when omitted)

        Returns:
            PreviewMetadata whose ``cache_key`` is the fingerprint

        Raises:
            InvalidIdentifier: If the input is malformed
            TrackNotFound: If the catalog has no such track
            NoMatchFound: If search found no acceptable video
            CatalogUnavailable: If the catalog could not be reached
            SourceUnavailable: If the platform could not be reached
        """
        options = options or ClipOptions()
        track_input = parse_track_input(raw_input)
        fingerprint = self._fingerprint(track_input, options)

        cached = self.cache.get_metadata(fingerprint)
        if cached is not None:
            logger.info(f"Metadata cache hit for {track_input.logical_input}")
            return cached

        logger.info(f"Resolving metadata for {track_input.logical_input}")
        metadata = await self._resolve_metadata(track_input, options, fingerprint)

        try:
            self.cache.put_metadata(fingerprint, metadata)
        except CacheWriteFailed as e:
            logger.warning(f"Metadata kept in memory only: {e}")

        return metadata

    async def _resolve_metadata(
        self, track_input: TrackInput, options: ClipOptions, fingerprint: str
    ) -> PreviewMetadata:
        if track_input.kind == SPOTIFY:
            track = await self.catalog.get_track(track_input.id)
            info = await self.resolver.search_video_info(track.search_query)
            return self._build_metadata(
                fingerprint,
                track_input,
                options,
                info,
                title=track.title,
                artist=track.artist or UNKNOWN,
                album=track.album or UNKNOWN,
                duration_ms=track.duration_ms,
                thumbnail=track.cover_art_url,
                spotify_id=track_input.id,
            )

        info = await self.resolver.resolve(track_input.id)
        return self._build_metadata(
            fingerprint,
            track_input,
            options,
            info,
            title=info.title,
            artist=UNKNOWN,
            album=UNKNOWN,
            duration_ms=info.duration * 1000,
            thumbnail=THUMBNAIL_URL.format(video_id=info.video_id),
            spotify_id=None,
        )

    @staticmethod
    def _build_metadata(
        fingerprint: str,
        track_input: TrackInput,
        options: ClipOptions,
        info: "VideoInfo",
        *,
        title: str,
        artist: str,
        album: str,
        duration_ms: int,
        thumbnail: Optional[str],
        spotify_id: Optional[str],
    ) -> PreviewMetadata:
        return PreviewMetadata(
            cache_key=fingerprint,
            input=track_input.logical_input,
            spotify_id=spotify_id,
            title=title,
            artist=artist,
            album=album,
            duration_ms=duration_ms,
            thumbnail=thumbnail,
            youtube_video_id=info.video_id,
            youtube_metadata=YouTubeMetadata(
                title=info.title,
                duration_seconds=info.duration,
                channel=info.channel or UNKNOWN,
            ),
            # Centred on the matched video, which is what gets rendered
            clip_start_ms=get_clip_start_ms(info.duration * 1000, options.duration_ms),
            clip_duration_ms=options.duration_ms,
            options=options.to_dict(),
        )

    # =========================================================================
    # Clips
    # =========================================================================

    @asynccontextmanager
    async def _single_flight(self, fingerprint: str) -> AsyncIterator[None]:
        entry = self._inflight.get(fingerprint)
        if entry is None:
            entry = self._inflight[fingerprint] = _InFlight()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                self._inflight.pop(fingerprint, None)

    async def get_or_create_clip(self, fingerprint: str) -> Path:
        """Return the cached clip for a fingerprint, rendering it on a miss.

        The fingerprint must already have a metadata record.

        Returns:
            Path of the durable clip file

        Raises:
            InvalidIdentifier: If the value is not a fingerprint
            MetadataNotFound: If no metadata exists for the fingerprint
            SourceUnavailable: If no playable source could be resolved
            RenderTimeout: If the render exceeded its deadline
            RenderFailed: If the transcoder failed
            CacheWriteFailed: If the clip could not be stored
        """
        if not is_fingerprint(fingerprint):
            raise InvalidIdentifier(f"Invalid cache key: {fingerprint}")

        async with self._single_flight(fingerprint):
            clip_path = self.cache.get_clip_path(fingerprint)
            if clip_path is not None:
                logger.info(f"Clip cache hit: {fingerprint}")
                return clip_path

            metadata = self.cache.get_metadata(fingerprint)
            if metadata is None:
                raise MetadataNotFound(f"Cache key not found: {fingerprint}. Generate metadata first.")

            return await self._create_clip(fingerprint, metadata)

    async def _create_clip(self, fingerprint: str, metadata: PreviewMetadata) -> Path:
        options = ClipOptions.from_dict(metadata.options)

        resolved = await self.resolver.resolve(metadata.youtube_video_id)
        source = await self.resolver.open_source(resolved)
        logger.info(f"Rendering {metadata.youtube_video_id} from {describe_source(source)}")

        rendered_path = self.temp_dir / f"{fingerprint}_{uuid.uuid4().hex}.mp4"
        try:
            await self.renderer.render(
                source,
                metadata.clip_start_ms / 1000,
                options,
                rendered_path,
            )
            return self.cache.put_clip(fingerprint, rendered_path)
        finally:
            rendered_path.unlink(missing_ok=True)

    async def get_or_create_preview(
        self, raw_input: str, options: Optional[ClipOptions] = None
    ) -> tuple[PreviewMetadata, Path]:
        """Resolve metadata and clip for an input in one call."""
        metadata = await self.get_or_create_metadata(raw_input, options)
        clip_path = await self.get_or_create_clip(metadata.cache_key)
        return metadata, clip_path

    # =========================================================================
    # Cache management
    # =========================================================================

    def clear_cache(self) -> int:
        return self.cache.clear()

    def cache_has(self, fingerprint: str) -> bool:
        return self.cache.has(fingerprint)

    def get_stats(self) -> dict:
        stats = self.cache.get_stats()
        stats["clips_in_flight"] = len(self._inflight)
        return stats

    async def aclose(self) -> None:
        """Close network clients owned by collaborators."""
        for component in (self.catalog, getattr(self.resolver, "platform", None)):
            close = getattr(component, "close", None)
            if close is not None:
                await close()


def build_preview_service(config: dict) -> PreviewService:
    """Construct the service and its collaborators from configuration."""
    from services.catalog_service import SpotifyCatalog
    from services.clip_renderer import ClipRenderer
    from services.preview_cache import PreviewCache
    from services.source_resolver import SourceResolver
    from services.video_sources import YouTubePlatform

    cache = PreviewCache(
        metadata_dir=config["metadata_cache_dir"],
        clips_dir=config["clips_cache_dir"],
        ttl_seconds=config.get("cache_ttl_seconds", 3600),
        max_keys=config.get("cache_max_keys", 500),
    )
    catalog = SpotifyCatalog(
        client_id=config.get("spotify_client_id"),
        client_secret=config.get("spotify_client_secret"),
        timeout=config.get("catalog_timeout", 10),
    )
    platform = YouTubePlatform(
        cookies_file=config.get("ytdlp_cookies_file"),
        search_timeout=config.get("search_timeout", 10),
    )
    resolver = SourceResolver(
        platform,
        stream_info_timeout=config.get("stream_info_timeout", 7),
        url_lookup_timeout=config.get("url_lookup_timeout", 10),
        candidate_info_timeout=config.get("candidate_info_timeout", 8),
        search_timeout=config.get("search_timeout", 10),
    )
    renderer = ClipRenderer(
        temp_dir=config["temp_dir"],
        ffmpeg_path=config.get("ffmpeg_path", "ffmpeg"),
        timeout=config.get("render_timeout", 120),
    )

    return PreviewService(cache, catalog, resolver, renderer, temp_dir=config["temp_dir"])
