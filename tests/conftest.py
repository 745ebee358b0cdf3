"""Shared fixtures for the converter tests."""

import pytest

from config import Settings


@pytest.fixture
def settings() -> Settings:
    """Settings with fake Spotify credentials and a short timeout."""
    return Settings(
        spotify_client_id="client-id",
        spotify_client_secret="client-secret",
        catalog_timeout=1.0,
    )
