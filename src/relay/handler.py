"""Alertmanager webhook endpoint.

Runs as an ``aiohttp`` web application. A single route (any method, and
any path unless one is configured) accepts the webhook JSON and answers:

- ``204``: every alert was handled
- ``400``: the body is not a valid webhook payload (nothing was sent)
- ``500``: at least one Gotify call failed; the text names the last one
"""

from __future__ import annotations

from typing import Any

import structlog
from aiohttp import web
from pydantic import ValidationError

from src.core.types import Alert, AlertBatch, AlertStatus, ResolvedPolicy
from src.gotify.exceptions import GotifyError
from src.relay.idle import IdleShutdownScheduler
from src.relay.types import BatchOutcome, RelayDeps

logger = structlog.get_logger(__name__)

_ANY_PATH = "/{tail:.*}"


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


@web.middleware
async def _activity_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Ping the idle scheduler once per request, however the handler exits."""
    scheduler: IdleShutdownScheduler | None = request.app.get("scheduler")
    try:
        response = await handler(request)
        if scheduler is not None and scheduler.shutting_down:
            response.force_close()
        return response
    finally:
        if scheduler is not None:
            scheduler.notify_activity()


async def process_batch(deps: RelayDeps, batch: AlertBatch) -> BatchOutcome:
    """Apply the resolved-alert policy to every alert, in order.

    A failing alert never stops the loop; the outcome keeps the last
    failure for the response.
    """
    outcome = BatchOutcome()
    for alert in batch.alerts:
        if alert.status == AlertStatus.RESOLVED:
            if deps.policy == ResolvedPolicy.IGNORE:
                outcome.ignored += 1
                continue
            if deps.policy == ResolvedPolicy.DELETE:
                await _reconcile(deps, alert, outcome)
                continue
        await _translate(deps, alert, outcome)
    return outcome


async def _translate(deps: RelayDeps, alert: Alert, outcome: BatchOutcome) -> None:
    try:
        await deps.translator.translate(alert)
    except GotifyError as exc:
        outcome.failed += 1
        outcome.last_error = f"error sending Gotify message: {exc}"
        logger.warning("message_send_failed", fingerprint=alert.fingerprint, error=str(exc))
        return
    outcome.sent += 1


async def _reconcile(deps: RelayDeps, alert: Alert, outcome: BatchOutcome) -> None:
    reconciler = deps.require_reconciler()
    try:
        outcome.deleted += await reconciler.reconcile(alert)
    except GotifyError as exc:
        outcome.failed += 1
        outcome.last_error = f"listing Gotify messages failed: {exc}"
        logger.warning(
            "message_list_failed",
            app_id=reconciler.app_id,
            fingerprint=alert.fingerprint,
            error=str(exc),
        )
        return
    outcome.reconciled += 1


async def _handle_alerts(request: web.Request) -> web.Response:
    deps: RelayDeps = request.app["deps"]
    raw = await request.read()
    try:
        batch = AlertBatch.model_validate_json(raw)
    except ValidationError as exc:
        logger.info("alert_batch_rejected", error=_describe(exc))
        return web.Response(
            status=400,
            text=f"error decoding AM hook message: {_describe(exc)}",
        )

    with structlog.contextvars.bound_contextvars(
        receiver=batch.receiver,
        group_key=batch.group_key,
    ):
        outcome = await process_batch(deps, batch)
        logger.info(
            "alert_batch_handled",
            alerts=len(batch.alerts),
            sent=outcome.sent,
            ignored=outcome.ignored,
            reconciled=outcome.reconciled,
            deleted=outcome.deleted,
            failed=outcome.failed,
        )

    if not outcome.ok:
        return web.Response(status=500, text=outcome.last_error)
    return web.Response(status=204)


def create_relay_app(
    deps: RelayDeps,
    scheduler: IdleShutdownScheduler | None = None,
    path: str = "",
) -> web.Application:
    """Create the aiohttp web application.

    With an empty *path* the webhook is accepted on every path.
    """
    app = web.Application(middlewares=[_activity_middleware])
    app["deps"] = deps
    app["scheduler"] = scheduler
    app.router.add_route("*", path or _ANY_PATH, _handle_alerts)
    return app
