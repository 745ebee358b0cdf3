"""Source link detection and video-title cleaning."""

from __future__ import annotations

import re
from typing import Optional, Tuple
from urllib.parse import urlparse

from errors import UnsupportedSource

YOUTUBE = "youtube"
TIKTOK = "tiktok"
UNKNOWN = "unknown"

_BRACKETED_RE = re.compile(r"\(.*?\)|\[.*?\]")
_WHITESPACE_RE = re.compile(r"\s+")

# Only the first occurrence of each phrase is removed, as a plain substring,
# in this order. Longer phrases precede the shorter phrases they contain.
NOISE_PHRASES: Tuple[str, ...] = (
    "official music video",
    "official video",
    "music video",
    "video",
    "lyrics",
    "audio",
    "remastered",
    "remaster",
    "hd",
    "4k",
    "tiktok",
    "sound",
)

ARTIST_TRACK_SEPARATOR = " - "


def detect_platform(url: Optional[str]) -> str:
    """Detect the source platform from the link's hostname."""
    if not url:
        return UNKNOWN
    candidate = url.strip()
    if "://" not in candidate:
        candidate = f"https://{candidate}"
    try:
        host = (urlparse(candidate).hostname or "").lower()
    except ValueError:
        return UNKNOWN
    if "youtube.com" in host or "youtu.be" in host or "youtube-nocookie.com" in host:
        return YOUTUBE
    if "tiktok.com" in host:
        return TIKTOK
    return UNKNOWN


def require_platform(url: str) -> str:
    platform = detect_platform(url)
    if platform == UNKNOWN:
        raise UnsupportedSource("Unsupported link: only YouTube and TikTok URLs can be converted")
    return platform


def _strip_noise(text: str) -> str:
    lowered = text.lower()
    for phrase in NOISE_PHRASES:
        lowered = lowered.replace(phrase, "", 1)
    return lowered


def split_artist_track(text: str) -> Tuple[str, str]:
    """Split ``"artist - track"`` into its parts.

    Everything after the first separator is the track, so ``"a - b - c"``
    yields ``("a", "b - c")``. Without a separator the artist is empty.
    """
    parts = text.split(ARTIST_TRACK_SEPARATOR)
    if len(parts) < 2:
        return "", text
    return parts[0].strip(), ARTIST_TRACK_SEPARATOR.join(parts[1:]).strip()


def clean_title(title: Optional[str], artist: str = "") -> str:
    """Turn a noisy video title into a catalog search string.

    Bracketed groups and noise phrases are removed, whitespace is collapsed and
    an ``"artist - track"`` title is rejoined as ``"artist track"``. Platforms
    that report the artist separately (TikTok) pass it as ``artist``; it is
    prepended before cleaning. The result is lowercase.
    """
    if not title:
        return ""
    text = f"{artist} {title}" if artist else title
    text = _BRACKETED_RE.sub("", text)
    text = _strip_noise(text)
    text = _WHITESPACE_RE.sub(" ", text).strip()

    if ARTIST_TRACK_SEPARATOR not in text:
        return text
    track_artist, track = split_artist_track(text)
    return f"{track_artist} {track}".strip()
