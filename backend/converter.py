"""
Link conversion pipeline.

1. detect the source platform and read the video title via oEmbed
2. clean the title into a search query
3. search Spotify and iTunes concurrently, waiting for both to settle
4. pick the best candidate per catalog and combine the scores
5. expose direct links only when the combined confidence is high enough
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from catalogs import (
    Candidate,
    ITunesCatalog,
    OEmbedClient,
    SoundCloudCatalog,
    SpotifyAuth,
    SpotifyCatalog,
)
from config import Settings
from errors import ValidationError
from matching import MatchResult, aggregate_confidence, expose_link, select_best
from titles import YOUTUBE, clean_title, require_platform

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionResult:
    source_url: str
    platform: str
    source_title: str
    artist: str
    cleaned_query: str
    confidence: int
    match_type: str
    spotify_url: str
    apple_music_url: str
    sound_cloud_url: str
    spotify_match: MatchResult
    apple_match: MatchResult

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "sourceUrl": self.source_url,
            "platform": self.platform,
            "sourceTitle": self.source_title,
            "artist": self.artist,
            "cleanedQuery": self.cleaned_query,
            "confidence": self.confidence,
            "matchType": self.match_type,
            "spotifyUrl": self.spotify_url,
            "appleMusicUrl": self.apple_music_url,
            "soundCloudUrl": self.sound_cloud_url,
            "debug": {
                "spotifyScore": round(self.spotify_match.score, 4),
                "appleScore": round(self.apple_match.score, 4),
                "spotifyMatch": self.spotify_match.url,
                "appleMatch": self.apple_match.url,
            },
        }
        if self.platform == YOUTUBE:
            # Field names the YouTube-only frontend reads.
            payload["youtubeUrl"] = self.source_url
            payload["youtubeTitle"] = self.source_title
        return payload


def _settle(future: Future, service: str) -> List[Candidate]:
    try:
        return future.result()
    except Exception as exc:
        logger.warning("[%s.search] no candidates: %s", service, exc)
        return []


class Converter:
    """Turns one media link into per-catalog links and a confidence score."""

    def __init__(
        self,
        settings: Settings,
        oembed: OEmbedClient,
        spotify: SpotifyCatalog,
        itunes: ITunesCatalog,
        soundcloud: Optional[SoundCloudCatalog] = None,
    ) -> None:
        self.settings = settings
        self.oembed = oembed
        self.spotify = spotify
        self.itunes = itunes
        self.soundcloud = soundcloud or SoundCloudCatalog()

    def convert(self, source_url: Optional[str]) -> ConversionResult:
        if not source_url or not source_url.strip():
            raise ValidationError("youtubeUrl is required")
        source_url = source_url.strip()
        platform = require_platform(source_url)

        metadata = self.oembed.fetch(source_url, platform)
        query = clean_title(metadata.title, metadata.artist)
        logger.info("[convert] platform=%s title=%r query=%r", platform, metadata.title, query)

        with ThreadPoolExecutor(max_workers=2) as pool:
            spotify_future = pool.submit(self.spotify.search, query)
            itunes_future = pool.submit(self.itunes.search, query)
            spotify_candidates = _settle(spotify_future, self.spotify.name)
            itunes_candidates = _settle(itunes_future, self.itunes.name)

        spotify_match = select_best(query, spotify_candidates)
        apple_match = select_best(query, itunes_candidates)
        confidence = aggregate_confidence(spotify_match.score, apple_match.score)
        threshold = self.settings.direct_link_min_confidence
        logger.info(
            "[convert] spotify=%.3f apple=%.3f confidence=%d (%s)",
            spotify_match.score,
            apple_match.score,
            confidence.value,
            confidence.match_type,
        )

        return ConversionResult(
            source_url=source_url,
            platform=platform,
            source_title=metadata.title,
            artist=metadata.artist,
            cleaned_query=query,
            confidence=confidence.value,
            match_type=confidence.match_type,
            spotify_url=expose_link(spotify_match, self.spotify.search_page_url(query), confidence.value, threshold),
            apple_music_url=expose_link(apple_match, self.itunes.search_page_url(query), confidence.value, threshold),
            sound_cloud_url=self.soundcloud.search_page_url(query),
            spotify_match=spotify_match,
            apple_match=apple_match,
        )


def build_converter(settings: Settings) -> Converter:
    """Wire the real HTTP clients. The Spotify token cache lives as long as the converter."""
    return Converter(
        settings,
        oembed=OEmbedClient(settings),
        spotify=SpotifyCatalog(settings, SpotifyAuth(settings)),
        itunes=ITunesCatalog(settings),
        soundcloud=SoundCloudCatalog(),
    )
