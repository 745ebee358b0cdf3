"""
Runtime configuration for the converter backend.

Settings are read once from the process environment (after loading an optional
``.env`` file) into an immutable :class:`Settings` object that is handed to the
catalog clients explicitly. Nothing else in the backend reads ``os.environ``.

Environment variables used:

* ``SPOTIFY_CLIENT_ID`` and ``SPOTIFY_CLIENT_SECRET`` – credentials for the
  Spotify client-credentials exchange. Without them Spotify simply contributes
  no candidates.
* ``PORT`` – listen port when started with ``python main.py`` (default 5000).
* ``CORS_ORIGINS`` – comma separated list of allowed frontend origins.
* ``CATALOG_TIMEOUT`` – timeout in seconds for every outbound request.
* ``DIRECT_LINK_MIN_CONFIDENCE`` – confidence below which search-page links are
  returned instead of direct track links.
* ``ITUNES_COUNTRY`` – storefront used for iTunes search and Apple Music links.
* ``LOG_LEVEL`` – root log level.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

DEFAULT_CORS_ORIGINS: Tuple[str, ...] = (
    "https://yt-to-spotify-frontend.vercel.app",
    "http://localhost:5173",
)
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    """Immutable process configuration."""

    spotify_client_id: Optional[str] = None
    spotify_client_secret: Optional[str] = None
    port: int = 5000
    cors_origins: Tuple[str, ...] = field(default=DEFAULT_CORS_ORIGINS)
    catalog_timeout: float = 5.0
    direct_link_min_confidence: int = 74
    itunes_country: str = "us"
    log_level: str = "INFO"

    @property
    def has_spotify_credentials(self) -> bool:
        return bool(self.spotify_client_id and self.spotify_client_secret)


def _env_or_default(environ: Mapping[str, str], name: str, default: str) -> str:
    value = environ.get(name)
    return value.strip() if value and value.strip() else default


def _parse_origins(raw: str) -> Tuple[str, ...]:
    return tuple(origin.strip() for origin in raw.split(",") if origin.strip())


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from ``environ`` (defaults to ``os.environ``).

    Malformed numeric values raise ``ValueError`` at startup rather than
    surfacing later inside a request.
    """
    env = os.environ if environ is None else environ
    origins = _parse_origins(_env_or_default(env, "CORS_ORIGINS", ""))
    return Settings(
        spotify_client_id=env.get("SPOTIFY_CLIENT_ID") or None,
        spotify_client_secret=env.get("SPOTIFY_CLIENT_SECRET") or None,
        port=int(_env_or_default(env, "PORT", "5000")),
        cors_origins=origins or DEFAULT_CORS_ORIGINS,
        catalog_timeout=float(_env_or_default(env, "CATALOG_TIMEOUT", "5")),
        direct_link_min_confidence=int(_env_or_default(env, "DIRECT_LINK_MIN_CONFIDENCE", "74")),
        itunes_country=_env_or_default(env, "ITUNES_COUNTRY", "us").lower(),
        log_level=_env_or_default(env, "LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
