"""Exceptions raised while converting a media link.

Each carries the HTTP status the API layer maps it to and a message that is
safe to show to the caller.
"""

from __future__ import annotations


class ConversionError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ConversionError):
    """The request is missing the link or is not a JSON object."""

    status_code = 400


class UnsupportedSource(ConversionError):
    """The link does not point at a platform we can read titles from."""

    status_code = 400


class UpstreamUnavailable(ConversionError):
    """A metadata or catalog call failed (transport, HTTP status or payload)."""


class CredentialMissing(UpstreamUnavailable):
    """Spotify application credentials are not configured."""
