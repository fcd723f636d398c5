"""Exception hierarchy for the relay service."""

from __future__ import annotations


class RelayError(Exception):
    """Base exception for relay errors."""


class StartupError(RelayError):
    """The relay cannot start serving (config, Gotify or listener problem)."""


class ShutdownTimeoutError(RelayError):
    """In-flight requests did not drain within the shutdown timeout."""
