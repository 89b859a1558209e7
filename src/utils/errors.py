"""Typed failures raised by the preview pipeline.

Every error carries a human-readable message and a category so callers can
tell bad input and missing tracks apart from upstream outages and internal
render failures without inspecting message text.
"""

INVALID_INPUT = "invalid_input"
NOT_FOUND = "not_found"
UPSTREAM = "upstream"
INTERNAL = "internal"


class PreviewError(Exception):
    """Base class for all preview pipeline errors."""

    category = INTERNAL

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidIdentifier(PreviewError):
    """Input is neither a catalog track id/URL nor a video id/URL."""

    category = INVALID_INPUT


class TrackNotFound(PreviewError):
    """Catalog has no track with the given id."""

    category = NOT_FOUND


class NoMatchFound(PreviewError):
    """Search exhausted every phrasing and candidate without a match."""

    category = NOT_FOUND


class MetadataNotFound(PreviewError):
    """No metadata record exists for a fingerprint."""

    category = NOT_FOUND


class CatalogUnavailable(PreviewError):
    """Catalog lookup failed for reasons other than a missing track."""

    category = UPSTREAM


class SourceUnavailable(PreviewError):
    """Every extraction strategy failed to produce a playable source."""

    category = UPSTREAM


class RenderTimeout(PreviewError):
    """Transcode exceeded its wall-clock deadline and was killed."""


class RenderFailed(PreviewError):
    """Transcoding engine reported an error."""


class OutputMoveFailed(PreviewError):
    """Rendered clip could not be moved to its final path."""


class CacheWriteFailed(PreviewError):
    """Durable cache tier could not be written."""


class CacheCorrupt(PreviewError):
    """Durable cache entry could not be parsed. Never leaves the cache."""
