"""Search candidate matching for track previews.

Decides whether a platform search result is plausibly the official
recording of a track, using only the candidate's title and duration.

Rules, applied in order (the first failing rule rejects):
- Duration between 30 seconds and 20 minutes
- No unwanted-content keyword unless the query itself asks for it
- Enough query words present in the title (strict, then loose prefix pass)
- Titles without a music signal word must match more query words
"""

import logging
import math
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

MIN_DURATION = 30
MAX_DURATION = 1200  # 20 minutes

UNWANTED_KEYWORDS = ("cover", "remix", "live", "sped up", "slowed", "lyrics", "fan made")
MUSIC_SIGNAL_WORDS = ("official", "music", "video", "clip", "mv", "theme", "soundtrack", "audio")

STRICT_RATIO = 0.4
ACCEPT_RATIO = 0.3
NO_SIGNAL_RATIO = 0.6

_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass
class Candidate:
    """A search result considered as a possible match."""

    title: str
    duration_seconds: int
    video_id: str = ""


def normalize_text(text: str) -> str:
    """Replace punctuation with spaces, collapse whitespace and lowercase."""
    text = _PUNCTUATION_RE.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", text).strip().lower()


def _query_tokens(normalized_query: str) -> list[str]:
    return [word for word in normalized_query.split(" ") if len(word) > 2]


def _loose_match(word: str, normalized_title: str, title_words: list[str]) -> bool:
    prefix = word[:3]
    if prefix in normalized_title:
        return True
    return any(
        title_word.startswith(prefix) or prefix.startswith(title_word[:3])
        for title_word in title_words
        if title_word
    )


def count_matched_tokens(title: str, query: str) -> tuple[int, int]:
    """Count query tokens found in the title.

    Returns:
        Tuple of (matched_count, token_count)
    """
    normalized_title = normalize_text(title)
    tokens = _query_tokens(normalize_text(query))

    matched = sum(1 for word in tokens if word in normalized_title)

    if matched < math.floor(len(tokens) * STRICT_RATIO):
        title_words = normalized_title.split(" ")
        loose = sum(1 for word in tokens if _loose_match(word, normalized_title, title_words))
        matched = max(matched, loose)

    return matched, len(tokens)


def evaluate_candidate(candidate: Candidate, query: str) -> tuple[bool, str]:
    """
    Decide whether a candidate matches the query.

    Args:
        candidate: Search result with title and duration
        query: The track search query (artists and title)

    Returns:
        Tuple of (accepted, reason)
    """
    title_lower = candidate.title.lower()
    query_lower = query.lower()
    duration = candidate.duration_seconds

    # Rule 1: Duration gate
    if duration < MIN_DURATION or duration > MAX_DURATION:
        return False, f"Invalid duration: {duration}s (must be {MIN_DURATION}s-{MAX_DURATION}s)"

    # Rule 2: Unwanted content the query did not ask for
    for keyword in UNWANTED_KEYWORDS:
        if keyword in title_lower and keyword not in query_lower:
            return False, f"Unwanted content '{keyword}' not in query"

    # Rule 3: Lexical overlap
    matched, token_count = count_matched_tokens(candidate.title, query)
    threshold = max(1, math.floor(token_count * ACCEPT_RATIO))
    if matched < threshold:
        return False, f"Title does not match query enough ({matched}/{token_count} words)"

    # Rule 4: Titles without a music signal need more overlap
    if not any(word in title_lower for word in MUSIC_SIGNAL_WORDS):
        required = math.floor(token_count * NO_SIGNAL_RATIO)
        if matched < required:
            return False, f"No music signal and weak match ({matched}/{token_count} words)"
        return True, "Matched without music signal"

    return True, "Passed all rules"


def is_acceptable_match(candidate: Candidate, query: str) -> bool:
    """Return True if the candidate should be used for the query."""
    accepted, reason = evaluate_candidate(candidate, query)
    if not accepted:
        logger.debug(f"Rejected '{candidate.title}': {reason}")
    return accepted
