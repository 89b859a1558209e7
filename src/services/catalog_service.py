"""Catalog Service - HTTP client for track lookups against the Spotify Web API."""

import asyncio
import base64
import logging
import time
from typing import Optional

import httpx

from models.preview import TrackInfo
from utils.errors import CatalogUnavailable, TrackNotFound

logger = logging.getLogger(__name__)

TOKEN_URL = "https://accounts.spotify.com/api/token"
API_BASE_URL = "https://api.spotify.com/v1"

# Refresh slightly before the token actually expires
TOKEN_EXPIRY_MARGIN = 30


class SpotifyCatalog:
    """Spotify track lookup using the client-credentials flow."""

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the catalog client.

        Args:
            client_id: Spotify application client id
            client_secret: Spotify application client secret
            timeout: Per-request timeout in seconds
            client: Optional preconfigured httpx client
        """
        self.client_id = client_id or ""
        self.client_secret = client_secret or ""
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock = asyncio.Lock()

    def is_configured(self) -> bool:
        """Check if the service is configured."""
        return bool(self.client_id and self.client_secret)

    async def close(self) -> None:
        await self.client.aclose()

    async def _authenticate(self) -> str:
        credentials = base64.b64encode(f"{self.client_id}:{self.client_secret}".encode()).decode()
        try:
            response = await self.client.post(
                TOKEN_URL,
                data={"grant_type": "client_credentials"},
                headers={"Authorization": f"Basic {credentials}"},
            )
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException as e:
            raise CatalogUnavailable("Spotify authentication timed out") from e
        except httpx.HTTPStatusError as e:
            raise CatalogUnavailable(f"Spotify auth failed: {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise CatalogUnavailable(f"Spotify auth failed: {e}") from e

        token = body.get("access_token")
        if not token:
            raise CatalogUnavailable("Spotify auth response had no access token")

        self._access_token = token
        self._token_expires_at = time.monotonic() + int(body.get("expires_in", 3600))
        logger.info("Authenticated with Spotify")
        return token

    async def _ensure_valid_token(self) -> str:
        if not self.is_configured():
            raise CatalogUnavailable("Spotify credentials not configured")

        async with self._token_lock:
            if (
                self._access_token is None
                or time.monotonic() >= self._token_expires_at - TOKEN_EXPIRY_MARGIN
            ):
                return await self._authenticate()
            return self._access_token

    async def get_track(self, track_id: str) -> TrackInfo:
        """Fetch one track's details.

        Args:
            track_id: Spotify track id

        Returns:
            TrackInfo with title, artists, album, duration and cover art

        Raises:
            TrackNotFound: If the catalog has no such track
            CatalogUnavailable: If the catalog cannot be reached or authenticated
        """
        token = await self._ensure_valid_token()

        try:
            response = await self.client.get(
                f"{API_BASE_URL}/tracks/{track_id}",
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.TimeoutException as e:
            raise CatalogUnavailable(f"Spotify request timed out for track {track_id}") from e
        except httpx.HTTPError as e:
            raise CatalogUnavailable(f"Spotify request failed: {e}") from e

        if response.status_code in (400, 404):
            raise TrackNotFound(f"Track not found: {track_id}")
        if response.status_code == 401:
            # Token revoked early; the next call re-authenticates
            self._access_token = None
            raise CatalogUnavailable("Spotify rejected the access token")
        if response.status_code >= 400:
            raise CatalogUnavailable(f"Spotify API error: {response.status_code}")

        try:
            track = response.json()
        except ValueError as e:
            raise CatalogUnavailable("Spotify returned an unreadable response") from e

        images = (track.get("album") or {}).get("images") or []
        info = TrackInfo(
            id=track.get("id") or track_id,
            title=track.get("name") or "",
            artists=[artist.get("name", "") for artist in track.get("artists") or []],
            album=(track.get("album") or {}).get("name"),
            duration_ms=int(track.get("duration_ms") or 0),
            cover_art_url=images[0].get("url") if images else None,
        )
        logger.info(f"Catalog track {track_id}: {info.artist} - {info.title}")
        return info
