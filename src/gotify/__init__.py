"""Gotify REST client."""

from src.gotify.client import GotifyClient, MessageManager, MessageSender
from src.gotify.exceptions import (
    GotifyAPIError,
    GotifyConnectionError,
    GotifyError,
    GotifyParseError,
)

__all__ = [
    "GotifyAPIError",
    "GotifyClient",
    "GotifyConnectionError",
    "GotifyError",
    "GotifyParseError",
    "MessageManager",
    "MessageSender",
]
