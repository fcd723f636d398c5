"""Startup checks and construction of the relay dependencies."""

from __future__ import annotations

import httpx
import structlog

from src.core.config import Settings
from src.core.types import ResolvedPolicy, ServerVersion
from src.gotify.client import GotifyClient, MessageManager
from src.gotify.exceptions import GotifyError
from src.relay.exceptions import StartupError
from src.relay.reconciler import ResolutionReconciler
from src.relay.translator import AlertTranslator
from src.relay.types import RelayDeps

logger = structlog.get_logger(__name__)


def validate_gotify_url(url: str) -> str:
    """Reject anything that is not an absolute http(s) URL."""
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise StartupError(f"invalid Gotify url: {url!r}") from exc
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise StartupError(f"invalid Gotify url: {url!r}")
    return url


async def check_version(client: GotifyClient) -> ServerVersion:
    """Fail startup unless Gotify answers ``/version``."""
    try:
        version = await client.get_version()
    except GotifyError as exc:
        raise StartupError(f"could not request Gotify version: {exc}") from exc
    logger.info("gotify_version", version=version.version, commit=version.commit)
    return version


async def resolve_app_identity(manager: MessageManager, app_token: str) -> int:
    """Find the id of the application whose token we send with."""
    try:
        apps = await manager.list_applications()
    except GotifyError as exc:
        raise StartupError(
            f"unable to retrieve application list: {exc} (is the client token valid?)"
        ) from exc

    for app in apps:
        if app.token == app_token:
            logger.info("app_identity_resolved", app_id=app.id, app_name=app.name)
            return app.id
    raise StartupError("could not find an application matching the configured token")


async def build_relay(settings: Settings, client: GotifyClient) -> RelayDeps:
    """Run the startup checks and wire translator/reconciler for *settings*.

    Args:
        settings: Loaded settings.
        client: Connected Gotify client.

    Raises:
        StartupError: any check failed; the relay must not serve.
    """
    await check_version(client)

    policy = settings.relay.resolved
    translator = AlertTranslator(client.sender())
    if policy != ResolvedPolicy.DELETE:
        return RelayDeps(policy=policy, translator=translator)

    try:
        manager = client.manager()
    except GotifyError as exc:
        raise StartupError(f"resolved policy 'delete': {exc}") from exc
    app_id = await resolve_app_identity(manager, settings.gotify.token.get_secret_value())
    return RelayDeps(
        policy=policy,
        translator=translator,
        reconciler=ResolutionReconciler(manager, app_id),
    )
