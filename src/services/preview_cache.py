"""Two-tier fingerprint cache for preview metadata and rendered clips.

Tier 1: In-memory TTL cache with least-recently-used eviction (fast, volatile)
Tier 2: Flat files on disk (durable until explicitly deleted)

Metadata lives in both tiers. Clips are large binary artifacts and live on
disk only.
"""

import json
import logging
import os
import shutil
import threading
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from models.preview import PreviewMetadata
from utils.cache import compute_fingerprint
from utils.errors import CacheCorrupt, CacheWriteFailed

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """In-memory cache entry with TTL."""
    value: Any
    expires_at: float


class MemoryTier:
    """Thread-safe TTL cache bounded by key count.

    Reads refresh recency; inserting past ``max_keys`` evicts the least
    recently used entry.
    """

    def __init__(self, ttl_seconds: float = 3600, max_keys: int = 500, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.max_keys = max_keys
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        """Get value if present and not expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                # Expired, remove it
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return entry.value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(
                value=value,
                expires_at=self._clock() + self.ttl_seconds,
            )
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_keys:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted {evicted} from memory tier")

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def clear_expired(self) -> int:
        """Clear expired entries. Returns count cleared."""
        now = self._clock()
        with self._lock:
            expired_keys = [k for k, v in self._entries.items() if v.expires_at <= now]
            for key in expired_keys:
                del self._entries[key]
        return len(expired_keys)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class PreviewCache:
    """Content-addressed cache keyed by request fingerprint.

    Durable layout:
        <metadata_dir>/<fingerprint>.json
        <clips_dir>/<fingerprint>.mp4
    """

    META_PREFIX = "meta_"

    def __init__(
        self,
        metadata_dir: str,
        clips_dir: str,
        ttl_seconds: float = 3600,
        max_keys: int = 500,
    ):
        """Initialize the cache.

        Args:
            metadata_dir: Directory for durable metadata records
            clips_dir: Directory for durable clip files
            ttl_seconds: Memory tier time-to-live
            max_keys: Memory tier capacity before LRU eviction
        """
        self.metadata_dir = Path(metadata_dir)
        self.clips_dir = Path(clips_dir)
        self.metadata_dir.mkdir(parents=True, exist_ok=True)
        self.clips_dir.mkdir(parents=True, exist_ok=True)

        self._memory = MemoryTier(ttl_seconds=ttl_seconds, max_keys=max_keys)

        logger.info(
            f"PreviewCache initialized (metadata: {self.metadata_dir}, clips: {self.clips_dir})"
        )

    @staticmethod
    def compute_fingerprint(logical_input: str, options: Optional[Mapping[str, Any]] = None) -> str:
        return compute_fingerprint(logical_input, options)

    def _metadata_path(self, fingerprint: str) -> Path:
        return self.metadata_dir / f"{fingerprint}.json"

    def _clip_path(self, fingerprint: str) -> Path:
        return self.clips_dir / f"{fingerprint}.mp4"

    # =========================================================================
    # Metadata
    # =========================================================================

    def get_metadata(self, fingerprint: str) -> Optional[PreviewMetadata]:
        """Get a metadata record.

        Checks the memory tier first, then disk. A disk hit is written back
        into the memory tier. An unreadable disk record is deleted and
        treated as a miss.
        """
        cache_key = f"{self.META_PREFIX}{fingerprint}"

        cached = self._memory.get(cache_key)
        if cached is not None:
            logger.debug(f"Memory cache hit for metadata: {fingerprint}")
            return cached

        file_path = self._metadata_path(fingerprint)
        if not file_path.exists():
            return None

        try:
            metadata = self._read_metadata_file(file_path)
        except CacheCorrupt as e:
            logger.error(f"Corrupt metadata cache file {file_path.name}: {e}")
            file_path.unlink(missing_ok=True)
            return None

        self._memory.set(cache_key, metadata)
        logger.info(f"File cache hit for metadata: {fingerprint}")
        return metadata

    @staticmethod
    def _read_metadata_file(file_path: Path) -> PreviewMetadata:
        try:
            data = json.loads(file_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CacheCorrupt(str(e)) from e
        if not isinstance(data, dict):
            raise CacheCorrupt("Metadata record is not an object")
        return PreviewMetadata.from_dict(data)

    def put_metadata(self, fingerprint: str, metadata: PreviewMetadata) -> Path:
        """Store a metadata record in both tiers.

        The memory tier is written first and kept even if the disk write
        fails, so the record stays servable for this process.

        Returns:
            Path of the durable record

        Raises:
            CacheWriteFailed: If the durable write fails
        """
        self._memory.set(f"{self.META_PREFIX}{fingerprint}", metadata)

        file_path = self._metadata_path(fingerprint)
        payload = json.dumps(metadata.to_dict(), indent=2)
        try:
            self._atomic_write(file_path, payload.encode("utf-8"))
        except OSError as e:
            logger.error(f"Error writing metadata cache file: {e}")
            raise CacheWriteFailed(f"Could not persist metadata {fingerprint}: {e}") from e

        logger.info(f"Metadata cached: {fingerprint}")
        return file_path

    # =========================================================================
    # Clips
    # =========================================================================

    def get_clip_path(self, fingerprint: str) -> Optional[Path]:
        """Return the durable clip path if it exists."""
        file_path = self._clip_path(fingerprint)
        if file_path.is_file():
            logger.debug(f"Clip cache hit: {fingerprint}")
            return file_path
        return None

    def put_clip(self, fingerprint: str, source_path: str | Path) -> Path:
        """Copy a rendered clip into the durable tier.

        The source file is never deleted here; the caller owns it.

        Raises:
            CacheWriteFailed: If the source is missing or the copy fails
        """
        source = Path(source_path)
        if not source.is_file():
            logger.error(f"Source clip file does not exist: {source}")
            raise CacheWriteFailed(f"Source clip file does not exist: {source}")

        target = self._clip_path(fingerprint)
        tmp_target = target.with_name(f".{target.name}.{uuid.uuid4().hex}.part")
        try:
            shutil.copyfile(source, tmp_target)
            os.replace(tmp_target, target)
        except OSError as e:
            tmp_target.unlink(missing_ok=True)
            logger.error(f"Error caching clip file: {e}")
            raise CacheWriteFailed(f"Could not cache clip {fingerprint}: {e}") from e

        logger.info(f"Clip cached: {fingerprint}")
        return target

    def has(self, fingerprint: str) -> bool:
        return self.get_clip_path(fingerprint) is not None

    # =========================================================================
    # Removal
    # =========================================================================

    def delete(self, fingerprint: str) -> None:
        """Remove one fingerprint from both tiers. Missing entries are ignored."""
        self._memory.delete(f"{self.META_PREFIX}{fingerprint}")

        for file_path in (self._metadata_path(fingerprint), self._clip_path(fingerprint)):
            try:
                file_path.unlink(missing_ok=True)
            except OSError as e:
                logger.error(f"Error deleting cache file {file_path}: {e}")

    def clear(self) -> int:
        """Remove every entry from both tiers.

        Returns:
            Number of durable files removed
        """
        self._memory.clear()

        removed = 0
        for directory in (self.metadata_dir, self.clips_dir):
            if not directory.exists():
                continue
            for file_path in directory.iterdir():
                if not file_path.is_file():
                    continue
                try:
                    file_path.unlink(missing_ok=True)
                    removed += 1
                except OSError as e:
                    logger.error(f"Error clearing cache file {file_path}: {e}")

        logger.info(f"Cache cleared ({removed} files removed)")
        return removed

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_stats(self) -> Dict:
        """Get cache statistics."""
        expired = self._memory.clear_expired()
        if expired:
            logger.debug(f"Dropped {expired} expired entries from memory tier")
        return {
            "metadata_cached": sum(1 for _ in self.metadata_dir.glob("*.json")),
            "clips_cached": sum(1 for _ in self.clips_dir.glob("*.mp4")),
            "memory_cache_entries": len(self._memory),
            "metadata_dir": str(self.metadata_dir),
            "clips_dir": str(self.clips_dir),
        }

    @staticmethod
    def _atomic_write(file_path: Path, data: bytes) -> None:
        """Write via a sibling temp file so readers never see partial content."""
        tmp_path = file_path.with_name(f".{file_path.name}.{uuid.uuid4().hex}.part")
        try:
            tmp_path.write_bytes(data)
            os.replace(tmp_path, file_path)
        finally:
            tmp_path.unlink(missing_ok=True)
