import dataclasses

import pytest

from config import DEFAULT_CORS_ORIGINS, Settings, load_settings


def test_defaults_from_empty_environment():
    settings = load_settings({})
    assert settings == Settings()
    assert settings.port == 5000
    assert settings.direct_link_min_confidence == 74
    assert settings.cors_origins == DEFAULT_CORS_ORIGINS
    assert not settings.has_spotify_credentials


def test_reads_environment():
    settings = load_settings(
        {
            "SPOTIFY_CLIENT_ID": "id",
            "SPOTIFY_CLIENT_SECRET": "secret",
            "PORT": "8080",
            "CORS_ORIGINS": "https://a.example, https://b.example ,",
            "CATALOG_TIMEOUT": "3.5",
            "DIRECT_LINK_MIN_CONFIDENCE": "60",
            "ITUNES_COUNTRY": "GB",
            "LOG_LEVEL": "debug",
        }
    )
    assert settings.has_spotify_credentials
    assert settings.port == 8080
    assert settings.cors_origins == ("https://a.example", "https://b.example")
    assert settings.catalog_timeout == 3.5
    assert settings.direct_link_min_confidence == 60
    assert settings.itunes_country == "gb"
    assert settings.log_level == "DEBUG"


def test_blank_values_fall_back_to_defaults():
    settings = load_settings({"PORT": "  ", "SPOTIFY_CLIENT_ID": "", "CORS_ORIGINS": " , "})
    assert settings.port == 5000
    assert settings.spotify_client_id is None
    assert settings.cors_origins == DEFAULT_CORS_ORIGINS


def test_one_credential_is_not_enough():
    assert not load_settings({"SPOTIFY_CLIENT_ID": "id"}).has_spotify_credentials


def test_bad_number_fails_fast():
    with pytest.raises(ValueError):
        load_settings({"PORT": "eighty"})


def test_settings_are_immutable():
    with pytest.raises(dataclasses.FrozenInstanceError):
        Settings().port = 1
