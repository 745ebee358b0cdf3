import threading

import pytest

from catalogs import Candidate, ITunesCatalog, SpotifyAuth, SpotifyCatalog
from config import Settings
from converter import Converter
from errors import UnsupportedSource, UpstreamUnavailable, ValidationError
from tests.fakes import FakeSession, StubCatalog, StubOEmbed, failing_catalog, make_response

YOUTUBE_URL = "https://www.youtube.com/watch?v=FGBhQbmPwH8"
TITLE = "Daft Punk - One More Time (Official Video)"
QUERY = "daft punk one more time"

SPOTIFY_HIT = Candidate("One More Time", ("Daft Punk",), "https://open.spotify.com/track/0DiWol3AO6WpXZgp0goxAV", "0DiWol3AO6WpXZgp0goxAV")
APPLE_HIT = Candidate("One More Time", ("Daft Punk",), "https://music.apple.com/us/album/one-more-time/697194953?i=697195462")


def build(settings, spotify=None, itunes=None, oembed=None):
    return Converter(
        settings,
        oembed=oembed or StubOEmbed(TITLE),
        spotify=spotify or StubCatalog("spotify", [SPOTIFY_HIT]),
        itunes=itunes or StubCatalog("apple", [APPLE_HIT]),
    )


def test_confident_match_exposes_direct_links(settings):
    result = build(settings).convert(YOUTUBE_URL)

    assert result.cleaned_query == QUERY
    assert result.source_title == TITLE
    assert result.confidence == 100
    assert result.match_type == "exact"
    assert result.spotify_url == SPOTIFY_HIT.url
    assert result.apple_music_url == APPLE_HIT.url
    assert result.sound_cloud_url == "https://soundcloud.com/search/sounds?q=daft%20punk%20one%20more%20time"


def test_both_catalogs_receive_cleaned_query(settings):
    spotify = StubCatalog("spotify", [SPOTIFY_HIT])
    itunes = StubCatalog("apple", [APPLE_HIT])
    build(settings, spotify=spotify, itunes=itunes).convert(YOUTUBE_URL)
    assert spotify.queries == [QUERY]
    assert itunes.queries == [QUERY]


def test_all_catalogs_failing_degrades_to_search_pages(settings):
    converter = build(settings, spotify=failing_catalog("spotify"), itunes=StubCatalog("apple", error=RuntimeError("boom")))

    result = converter.convert(YOUTUBE_URL)

    assert result.confidence == 0
    assert result.match_type == "very_low"
    assert result.spotify_url == f"https://spotify.search/{QUERY}"
    assert result.apple_music_url == f"https://apple.search/{QUERY}"
    assert result.spotify_match.url is None
    assert result.apple_match.score == 0


def test_one_failing_catalog_does_not_affect_the_other(settings):
    result = build(settings, spotify=failing_catalog("spotify")).convert(YOUTUBE_URL)

    assert result.confidence == 100
    assert result.apple_music_url == APPLE_HIT.url
    assert result.spotify_url == f"https://spotify.search/{QUERY}"


def test_missing_spotify_credentials_fail_only_that_branch():
    settings = Settings()
    spotify = SpotifyCatalog(settings, SpotifyAuth(settings, session=FakeSession()), session=FakeSession())

    result = build(settings, spotify=spotify).convert(YOUTUBE_URL)

    assert result.confidence == 100
    assert result.spotify_url == "https://open.spotify.com/search/daft%20punk%20one%20more%20time"
    assert result.apple_music_url == APPLE_HIT.url


def test_low_confidence_uses_search_pages(settings):
    partial = Candidate("One More Time Remastered", ("Someone Else",), "https://catalog/partial")
    converter = build(settings, spotify=StubCatalog("spotify", [partial]), itunes=StubCatalog("apple", [partial]))

    result = converter.convert(YOUTUBE_URL)

    assert result.confidence < settings.direct_link_min_confidence
    assert result.spotify_url == f"https://spotify.search/{QUERY}"
    assert result.apple_music_url == f"https://apple.search/{QUERY}"


def test_threshold_is_configurable():
    settings = Settings(direct_link_min_confidence=40)
    partial = Candidate("One More Time", ("Someone",), "https://catalog/partial")
    converter = build(settings, spotify=StubCatalog("spotify", [partial]), itunes=StubCatalog("apple", [partial]))

    result = converter.convert(YOUTUBE_URL)

    assert result.confidence == 50
    assert result.match_type == "medium"
    assert result.spotify_url == "https://catalog/partial"


def test_empty_title_searches_nothing(settings):
    itunes = ITunesCatalog(settings, session=FakeSession())
    spotify_auth = SpotifyAuth(settings, session=FakeSession())
    spotify = SpotifyCatalog(settings, spotify_auth, session=FakeSession())

    result = build(settings, spotify=spotify, itunes=itunes, oembed=StubOEmbed("")).convert(YOUTUBE_URL)

    assert result.cleaned_query == ""
    assert result.confidence == 0
    assert result.spotify_url == "https://open.spotify.com/search/"


def test_tiktok_artist_is_part_of_query(settings):
    spotify = StubCatalog("spotify", [])
    converter = build(settings, spotify=spotify, oembed=StubOEmbed("One More Time #fyp", artist="daftpunk"))

    result = converter.convert("https://www.tiktok.com/@daftpunk/video/1")

    assert result.platform == "tiktok"
    assert spotify.queries == ["daftpunk one more time #fyp"]


@pytest.mark.parametrize("url", ["", "   ", None])
def test_missing_url(settings, url):
    with pytest.raises(ValidationError):
        build(settings).convert(url)


def test_unsupported_link(settings):
    with pytest.raises(UnsupportedSource):
        build(settings).convert("https://open.spotify.com/track/abc")


def test_metadata_failure_propagates(settings):
    converter = build(settings, oembed=StubOEmbed(error=UpstreamUnavailable("oembed down")))
    with pytest.raises(UpstreamUnavailable):
        converter.convert(YOUTUBE_URL)


class TestToDict:
    def test_youtube_payload(self, settings):
        payload = build(settings).convert(YOUTUBE_URL).to_dict()

        assert payload["sourceTitle"] == TITLE
        assert payload["cleanedQuery"] == QUERY
        assert payload["confidence"] == 100
        assert payload["matchType"] == "exact"
        assert payload["spotifyUrl"] == SPOTIFY_HIT.url
        assert payload["appleMusicUrl"] == APPLE_HIT.url
        assert payload["soundCloudUrl"].startswith("https://soundcloud.com/search/sounds?q=")
        assert payload["youtubeUrl"] == YOUTUBE_URL
        assert payload["youtubeTitle"] == TITLE
        assert payload["debug"]["spotifyScore"] == 1.0

    def test_tiktok_payload_has_no_youtube_fields(self, settings):
        converter = build(settings, oembed=StubOEmbed("One More Time", artist="daftpunk"))
        payload = converter.convert("https://www.tiktok.com/@daftpunk/video/1").to_dict()

        assert payload["platform"] == "tiktok"
        assert payload["artist"] == "daftpunk"
        assert "youtubeUrl" not in payload


class RendezvousCatalog(StubCatalog):
    """Search only returns once the other catalog's search is running too."""

    def __init__(self, name, barrier, candidates=(), error=None):
        super().__init__(name, candidates, error)
        self.barrier = barrier

    def search(self, query):
        self.barrier.wait()
        return super().search(query)


def test_catalog_searches_run_concurrently(settings):
    barrier = threading.Barrier(2, timeout=1)
    spotify = RendezvousCatalog("spotify", barrier, [SPOTIFY_HIT])
    itunes = RendezvousCatalog("apple", barrier, [APPLE_HIT])

    result = build(settings, spotify=spotify, itunes=itunes).convert(YOUTUBE_URL)

    assert not barrier.broken
    assert result.spotify_url == SPOTIFY_HIT.url
    assert result.apple_music_url == APPLE_HIT.url


def test_concurrent_failure_keeps_other_branch(settings):
    barrier = threading.Barrier(2, timeout=1)
    spotify = RendezvousCatalog("spotify", barrier, error=UpstreamUnavailable("spotify is down"))
    itunes = RendezvousCatalog("apple", barrier, [APPLE_HIT])

    result = build(settings, spotify=spotify, itunes=itunes).convert(YOUTUBE_URL)

    assert not barrier.broken
    assert result.confidence == 100
    assert result.apple_music_url == APPLE_HIT.url
    assert result.spotify_url == f"https://spotify.search/{QUERY}"


def test_null_spotify_artist_does_not_fail_request(settings):
    token = {"access_token": "tok", "expires_in": 3600}
    payload = {"tracks": {"items": [{"id": "abc", "name": "One More Time", "artists": [{"name": None}]}]}}
    spotify = SpotifyCatalog(
        settings,
        SpotifyAuth(settings, session=FakeSession(post=[make_response(200, token)])),
        session=FakeSession(get=[make_response(200, payload)]),
    )

    result = build(settings, spotify=spotify).convert(YOUTUBE_URL)

    assert result.spotify_match.url == "https://open.spotify.com/track/abc"
    assert result.spotify_match.candidate.artist_names == ("",)
    assert result.spotify_match.score == pytest.approx(0.6)
    assert result.apple_music_url == APPLE_HIT.url
