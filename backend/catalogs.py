"""
Outbound clients for the source metadata lookup and the music catalogs.

The oEmbed endpoints of YouTube and TikTok are keyless and return the title
(and uploader) of a link. The Spotify search endpoint requires an OAuth token,
which we obtain via the client-credentials flow and keep until shortly before
it expires. The iTunes Search API does not require authentication; ``term``
holds the search string and ``entity=song`` limits results to tracks.
SoundCloud is never searched, we only build a link to its search page.

Every client raises :class:`errors.UpstreamUnavailable` when its call fails,
so the caller can decide whether a failure is fatal (metadata) or just means
"no candidates" (catalogs).
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from config import Settings
from errors import CredentialMissing, UpstreamUnavailable
from titles import TIKTOK, YOUTUBE

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 5


@dataclass(frozen=True)
class SourceMetadata:
    platform: str
    title: str
    artist: str = ""


@dataclass(frozen=True)
class Candidate:
    """One search result from a catalog."""

    display_name: str
    artist_names: Tuple[str, ...]
    url: str
    external_id: Optional[str] = None

    @property
    def combined_text(self) -> str:
        return f"{' '.join(self.artist_names)} {self.display_name}".strip()


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def encode_component(text: str) -> str:
    """Percent-encode ``text`` for use inside a URL path or query value."""
    return quote(text or "", safe="-_.!~*'()")


def _json_body(resp: requests.Response, service: str) -> Dict[str, Any]:
    try:
        data = resp.json()
    except ValueError as exc:
        raise UpstreamUnavailable(f"{service} returned a non-JSON body") from exc
    if not isinstance(data, dict):
        raise UpstreamUnavailable(f"{service} returned an unexpected payload")
    return data


class OEmbedClient:
    """Looks up the title of a YouTube or TikTok link."""

    ENDPOINTS = {
        YOUTUBE: "https://www.youtube.com/oembed",
        TIKTOK: "https://www.tiktok.com/oembed",
    }

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        self.timeout = settings.catalog_timeout
        self.session = session or requests.Session()

    def fetch(self, url: str, platform: str) -> SourceMetadata:
        endpoint = self.ENDPOINTS.get(platform)
        if endpoint is None:
            raise UpstreamUnavailable(f"No metadata endpoint for platform {platform!r}")
        params = {"url": url}
        if platform == YOUTUBE:
            params["format"] = "json"
        try:
            resp = self.session.get(endpoint, params=params, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise UpstreamUnavailable(f"{platform} oEmbed lookup failed: {exc}") from exc
        data = _json_body(resp, f"{platform} oEmbed")

        title = data.get("title") or ""
        # YouTube's author is the channel, which is often a label or a fan upload.
        artist = (data.get("author_name") or "") if platform == TIKTOK else ""
        logger.info("[oembed.%s] title=%r artist=%r", platform, title, artist)
        return SourceMetadata(platform=platform, title=title, artist=artist)


class _TransientTokenError(Exception):
    pass


class SpotifyAuth:
    """Client-credentials token holder shared by every request in the process."""

    TOKEN_URL = "https://accounts.spotify.com/api/token"
    EXPIRY_MARGIN = 60

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None, clock=time.monotonic) -> None:
        self.client_id = settings.spotify_client_id
        self.client_secret = settings.spotify_client_secret
        self._configured = settings.has_spotify_credentials
        self.timeout = settings.catalog_timeout
        self.session = session or requests.Session()
        self._clock = clock
        self._token: Optional[str] = None
        self._expires_at = 0.0
        self._lock = threading.Lock()

    def get_access_token(self) -> str:
        if not self._configured:
            raise CredentialMissing("Spotify client credentials are not configured")
        with self._lock:
            if self._token and self._clock() < self._expires_at:
                return self._token
            try:
                payload = self._request_token()
            except (requests.RequestException, _TransientTokenError) as exc:
                raise UpstreamUnavailable(f"Spotify token exchange failed: {exc}") from exc
            token = payload.get("access_token")
            if not token:
                raise UpstreamUnavailable("Spotify token response had no access_token")
            expires_in = payload.get("expires_in") or 3600
            self._token = token
            self._expires_at = self._clock() + max(float(expires_in) - self.EXPIRY_MARGIN, 0.0)
            return token

    def invalidate(self) -> None:
        with self._lock:
            self._token = None
            self._expires_at = 0.0

    @retry(
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout, _TransientTokenError)),
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.2, max=2),
        reraise=True,
    )
    def _request_token(self) -> Dict[str, Any]:
        resp = self.session.post(
            self.TOKEN_URL,
            data={"grant_type": "client_credentials"},
            auth=(self.client_id, self.client_secret),
            timeout=self.timeout,
        )
        if resp.status_code >= 500:
            raise _TransientTokenError(f"HTTP {resp.status_code} from token endpoint")
        resp.raise_for_status()
        return _json_body(resp, "Spotify token endpoint")


class SpotifyCatalog:
    """Track search against the Spotify Web API."""

    name = "spotify"
    SEARCH_URL = "https://api.spotify.com/v1/search"
    TRACK_URL = "https://open.spotify.com/track/{id}"
    SEARCH_PAGE_URL = "https://open.spotify.com/search/{query}"

    def __init__(self, settings: Settings, auth: SpotifyAuth, session: Optional[requests.Session] = None) -> None:
        self.auth = auth
        self.timeout = settings.catalog_timeout
        self.session = session or requests.Session()

    def search(self, query: str) -> List[Candidate]:
        if not query or not query.strip():
            return []
        params: Dict[str, Any] = {"q": query, "type": "track", "limit": SEARCH_LIMIT}
        logger.info("[spotify.query] params=%s", params)

        resp = self._get(params)
        if resp.status_code == 401:
            # Token revoked or expired early; one fresh attempt.
            self.auth.invalidate()
            resp = self._get(params)
        try:
            resp.raise_for_status()
        except requests.HTTPError as exc:
            raise UpstreamUnavailable(f"Spotify search failed: {exc}") from exc

        data = _json_body(resp, "Spotify search")
        items = (data.get("tracks") or {}).get("items") or []
        candidates = []
        for item in items[:SEARCH_LIMIT]:
            track_id = item.get("id")
            if not track_id:
                continue
            candidates.append(
                Candidate(
                    display_name=_text(item.get("name")),
                    artist_names=tuple(_text((a or {}).get("name")) for a in item.get("artists") or []),
                    url=self.TRACK_URL.format(id=track_id),
                    external_id=_text(track_id),
                )
            )
        logger.info("[spotify.results] %d tracks", len(candidates))
        return candidates

    def _get(self, params: Dict[str, Any]) -> requests.Response:
        headers = {"Authorization": f"Bearer {self.auth.get_access_token()}"}
        try:
            return self.session.get(self.SEARCH_URL, headers=headers, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise UpstreamUnavailable(f"Spotify search failed: {exc}") from exc

    def search_page_url(self, query: str) -> str:
        return self.SEARCH_PAGE_URL.format(query=encode_component(query))


class ITunesCatalog:
    """Song search against the iTunes Search API."""

    name = "apple"
    SEARCH_URL = "https://itunes.apple.com/search"
    SEARCH_PAGE_URL = "https://music.apple.com/{country}/search?term={query}"

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        self.country = settings.itunes_country
        self.timeout = settings.catalog_timeout
        self.session = session or requests.Session()

    def search(self, query: str) -> List[Candidate]:
        if not query or not query.strip():
            return []
        params = {
            "term": query,
            "media": "music",
            "entity": "song",
            "limit": SEARCH_LIMIT,
            "country": self.country,
        }
        logger.info("[itunes.query] params=%s", params)
        try:
            resp = self.session.get(self.SEARCH_URL, params=params, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise UpstreamUnavailable(f"iTunes search failed: {exc}") from exc

        data = _json_body(resp, "iTunes search")
        candidates = []
        for result in (data.get("results") or [])[:SEARCH_LIMIT]:
            view_url = result.get("trackViewUrl")
            if not isinstance(view_url, str) or not view_url:
                continue
            track_id = result.get("trackId")
            candidates.append(
                Candidate(
                    display_name=_text(result.get("trackName")),
                    artist_names=(_text(result.get("artistName")),),
                    url=view_url,
                    external_id=str(track_id) if track_id is not None else None,
                )
            )
        logger.info("[itunes.results] %d tracks", len(candidates))
        return candidates

    def search_page_url(self, query: str) -> str:
        return self.SEARCH_PAGE_URL.format(country=self.country, query=encode_component(query))


class SoundCloudCatalog:
    """SoundCloud is only ever linked through its search page."""

    name = "soundcloud"
    SEARCH_PAGE_URL = "https://soundcloud.com/search/sounds?q={query}"

    def search_page_url(self, query: str) -> str:
        return self.SEARCH_PAGE_URL.format(query=encode_component(query))
