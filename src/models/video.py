"""Video-related data models."""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Union


@dataclass
class VideoInfo:
    """Basic information about a platform video, as returned by a lookup.

    Exactly one of ``formats`` (stream-capable lookup) or ``url``
    (single-URL lookup) is normally set.
    """

    video_id: str
    title: str
    duration: int  # in seconds
    channel: Optional[str] = None
    formats: Optional[List[dict]] = None  # Full format list for stream construction
    url: Optional[str] = None  # Direct media URL
    http_headers: Dict[str, str] = field(default_factory=dict)
    strategy: str = ""  # Name of the lookup that produced this info

    @property
    def use_direct_url(self) -> bool:
        return bool(self.url)


@dataclass(frozen=True)
class DirectURL:
    """A remote media URL the transcoder reads directly."""

    url: str
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def requires_auth_headers(self) -> bool:
        return bool(self.headers)


@dataclass
class StreamHandle:
    """A readable byte stream piped into the transcoder.

    Consumed at most once; ``close`` releases the underlying connection.
    """

    chunks: Iterator[bytes]
    close: Callable[[], None] = lambda: None
    format_id: Optional[str] = None


SourceDescriptor = Union[DirectURL, StreamHandle]
