"""Exception hierarchy for the Gotify REST client."""

from __future__ import annotations


class GotifyError(Exception):
    """Base exception for all Gotify client errors."""


class GotifyConnectionError(GotifyError):
    """Failed to reach the Gotify server."""


class GotifyAPIError(GotifyError):
    """Gotify answered with a non-2xx status."""

    def __init__(self, status_code: int, description: str = "") -> None:
        self.status_code = status_code
        self.description = description
        detail = f": {description}" if description else ""
        super().__init__(f"Gotify API returned {status_code}{detail}")


class GotifyParseError(GotifyError):
    """Gotify returned a body we could not interpret."""
