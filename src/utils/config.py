"""Configuration loading and validation for the preview service."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from rich.logging import RichHandler

from utils.logging import NOISY_LOGGERS

# Get the project root directory (parent of src)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Load environment variables from .env file in project root
load_dotenv(PROJECT_ROOT / ".env")


def load_config() -> dict:
    """Load configuration from environment variables."""

    # Helper function to resolve paths relative to project root
    def resolve_path(path: str | None, default_relative: str) -> str:
        if not path:
            return str(PROJECT_ROOT / default_relative)
        if Path(path).is_absolute():
            return path
        return str(PROJECT_ROOT / path)

    cache_dir = resolve_path(os.getenv("CACHE_DIR"), "cache")

    config = {
        # Catalog credentials (only needed for Spotify inputs)
        "spotify_client_id": os.getenv("SPOTIFY_CLIENT_ID"),
        "spotify_client_secret": os.getenv("SPOTIFY_CLIENT_SECRET"),
        # Cache and scratch directories
        "cache_dir": cache_dir,
        "metadata_cache_dir": resolve_path(
            os.getenv("METADATA_CACHE_DIR"), str(Path(cache_dir) / "metadata")
        ),
        "clips_cache_dir": resolve_path(
            os.getenv("CLIPS_CACHE_DIR"), str(Path(cache_dir) / "clips")
        ),
        "temp_dir": resolve_path(os.getenv("TEMP_DIR"), "temp"),
        # In-memory tier
        "cache_ttl_seconds": int(os.getenv("CACHE_TTL", "3600")),
        "cache_max_keys": int(os.getenv("MAX_CACHE_SIZE", "500")),
        # Per-call timeouts (seconds)
        "stream_info_timeout": float(os.getenv("STREAM_INFO_TIMEOUT", "7")),
        "url_lookup_timeout": float(os.getenv("URL_LOOKUP_TIMEOUT", "10")),
        "candidate_info_timeout": float(os.getenv("CANDIDATE_INFO_TIMEOUT", "8")),
        "search_timeout": float(os.getenv("SEARCH_TIMEOUT", "10")),
        "catalog_timeout": float(os.getenv("CATALOG_TIMEOUT", "10")),
        # Overall transcode deadline
        "render_timeout": float(os.getenv("RENDER_TIMEOUT", "120")),
        # Transcoding engine
        "ffmpeg_path": os.getenv("FFMPEG_PATH", "ffmpeg"),
        # Optional cookie file for yt-dlp
        "ytdlp_cookies_file": os.getenv("YTDLP_COOKIES_FILE"),
        # Server
        "port": int(os.getenv("PORT", "3000")),
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
        "log_json": os.getenv("LOG_JSON", "false").lower() == "true",
    }

    return config


def validate_config(config: dict) -> list[str]:
    """Validate configuration and return list of errors."""
    errors = []

    for key in ("metadata_cache_dir", "clips_cache_dir", "temp_dir"):
        folder = config.get(key)
        if not folder:
            errors.append(f"{key} is required")
            continue
        try:
            Path(folder).mkdir(parents=True, exist_ok=True)
        except Exception as e:
            errors.append(f"Cannot create {key} ({folder}): {e}")

    # Spotify is optional: YouTube inputs work without it
    if not config.get("spotify_client_id") or not config.get("spotify_client_secret"):
        errors.append(
            "SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET not set; Spotify inputs will fail"
        )

    if config.get("render_timeout", 0) <= 0:
        errors.append("RENDER_TIMEOUT must be positive")

    return errors


def setup_logging(log_level: str = "INFO") -> None:
    """Console logging for the command-line tool, rendered with Rich.

    The server uses structured logging instead (see utils.logging).
    """
    logging.root.handlers.clear()

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        handlers=[RichHandler(show_path=False, rich_tracebacks=True, markup=False)],
        format="%(message)s",
    )

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
