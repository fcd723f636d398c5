#!/usr/bin/env python3
"""Relay entrypoint — receives Alertmanager webhooks and forwards them to Gotify.

Meant to be started by systemd socket activation (exactly one listening
socket). With ``--exitafter`` the process exits once it has been idle for
that many seconds, so the socket unit can start it again on demand.

Usage::

    # Config from config/settings.yaml
    python scripts/run.py

    # Flags override the config file
    python scripts/run.py --url https://gotify.example.com --token AbC \\
        --resolved delete --ctoken XyZ --exitafter 300
"""

from __future__ import annotations

import argparse
import asyncio
import os
import signal
import socket
import sys
from typing import Any

import structlog
from aiohttp import web
from pydantic import ValidationError

from src.core.config import Settings, load_settings
from src.core.logging import setup_logging
from src.core.types import ResolvedPolicy
from src.gotify.client import GotifyClient
from src.relay.activation import activated_listener
from src.relay.bootstrap import build_relay, validate_gotify_url
from src.relay.exceptions import ShutdownTimeoutError, StartupError
from src.relay.handler import create_relay_app
from src.relay.idle import IdleShutdownScheduler
from src.relay.types import RelayDeps

logger = structlog.get_logger(__name__)


def flag_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Nested settings mapping for the flags that were given."""
    gotify: dict[str, Any] = {}
    relay: dict[str, Any] = {}
    if args.url is not None:
        gotify["url"] = args.url
    if args.token is not None:
        gotify["token"] = args.token
    if args.ctoken is not None:
        gotify["client_token"] = args.ctoken
    if args.resolved is not None:
        relay["resolved"] = args.resolved
    if args.exitafter is not None:
        relay["exit_after_secs"] = args.exitafter

    overrides: dict[str, Any] = {}
    if gotify:
        overrides["gotify"] = gotify
    if relay:
        overrides["relay"] = relay
    return overrides


def _listener(settings: Settings) -> socket.socket | None:
    if settings.server.socket_activation:
        return activated_listener()
    return None


async def run(args: argparse.Namespace) -> int:
    """Start the relay and serve until a signal or the idle timeout."""
    try:
        settings = load_settings(args.config, overrides=flag_overrides(args))
    except ValidationError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 1
    setup_logging(level=args.log_level)

    logger.info(
        "relay_starting",
        gotify=settings.gotify.url,
        resolved=settings.relay.resolved.value,
        exit_after_secs=settings.relay.exit_after_secs,
    )

    try:
        validate_gotify_url(settings.gotify.url)
        sock = _listener(settings)
    except StartupError as exc:
        logger.error("startup_failed", error=str(exc))
        return 1

    client = GotifyClient(settings.gotify)
    await client.connect()
    try:
        try:
            deps = await build_relay(settings, client)
        except StartupError as exc:
            logger.error("startup_failed", error=str(exc))
            return 1
        return await _serve(settings, deps, sock)
    finally:
        await client.close()


async def _serve(
    settings: Settings,
    deps: RelayDeps,
    sock: socket.socket | None,
) -> int:
    runner: web.AppRunner | None = None

    async def _drain() -> None:
        if runner is not None:
            await runner.cleanup()

    # ── Idle shutdown ────────────────────────────────────────────
    scheduler: IdleShutdownScheduler | None = None
    if settings.relay.exit_after_secs > 0:
        scheduler = IdleShutdownScheduler(
            idle_secs=settings.relay.exit_after_secs,
            drain=_drain,
            drain_timeout_secs=settings.relay.shutdown_timeout_secs,
        )

    # ── HTTP server ──────────────────────────────────────────────
    app = create_relay_app(deps, scheduler, path=settings.server.path)
    runner = web.AppRunner(app)
    await runner.setup()
    site: web.BaseSite
    if sock is not None:
        site = web.SockSite(runner, sock)
    else:
        site = web.TCPSite(runner, settings.server.host, settings.server.port)
    await site.start()
    if scheduler is not None:
        await scheduler.start()

    logger.info(
        "relay_running",
        listen=site.name,
        resolved=deps.policy.value,
        app_id=deps.app_id,
    )

    # ── Wait for a signal or the idle drain ──────────────────────
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            pass

    waiters: list[asyncio.Task[None]] = [asyncio.create_task(stop_event.wait())]
    if scheduler is not None:
        waiters.append(asyncio.create_task(scheduler.await_shutdown()))
    done, pending = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
    for task in pending:
        task.cancel()

    for task in done:
        exc = task.exception()
        if isinstance(exc, ShutdownTimeoutError):
            logger.critical("shutdown_aborted", error=str(exc))
            # Hung handlers would also block a normal interpreter exit.
            os._exit(2)

    # ── Graceful shutdown ────────────────────────────────────────
    if stop_event.is_set():
        if scheduler is not None:
            await scheduler.stop()
        await runner.cleanup()

    logger.info("relay_stopped")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Forward Alertmanager webhooks to Gotify.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    parser.add_argument("--url", default=None, help="Gotify server URL")
    parser.add_argument("--token", default=None, help="Gotify application token")
    parser.add_argument(
        "--ctoken",
        default=None,
        help="Gotify client token, required for --resolved=delete",
    )
    parser.add_argument(
        "--resolved",
        default=None,
        choices=[p.value for p in ResolvedPolicy],
        help="Behaviour for resolved alerts (default: notify)",
    )
    parser.add_argument(
        "--exitafter",
        type=int,
        default=None,
        help="Exit after this many idle seconds; 0 stays up forever",
    )
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
