"""Deletion of earlier Gotify messages when their alert resolves."""

from __future__ import annotations

import structlog

from src.core.types import Alert
from src.gotify.client import MessageManager
from src.gotify.exceptions import GotifyError

logger = structlog.get_logger(__name__)


class ResolutionReconciler:
    """Removes every message of our application tagged with an alert's fingerprint.

    - Listing failure is fatal for the call and propagates.
    - A failed delete is logged and skipped; the remaining matches are
      still attempted.
    - No match at all is a no-op, so reconciling twice is harmless.
    """

    def __init__(self, manager: MessageManager, app_id: int) -> None:
        self._manager = manager
        self._app_id = app_id

    @property
    def app_id(self) -> int:
        return self._app_id

    async def reconcile(self, alert: Alert) -> int:
        """Delete matching messages. Returns how many deletes succeeded."""
        messages = await self._manager.list_app_messages(self._app_id)

        deleted = 0
        for m in messages:
            if not m.has_fingerprint(alert.fingerprint):
                continue
            try:
                await self._manager.delete_message(m.id)
            except GotifyError as exc:
                logger.warning(
                    "message_delete_failed",
                    message_id=m.id,
                    fingerprint=alert.fingerprint,
                    error=str(exc),
                )
                continue
            deleted += 1
            logger.info("message_deleted", message_id=m.id, fingerprint=alert.fingerprint)

        if deleted == 0:
            logger.debug("no_message_to_delete", fingerprint=alert.fingerprint)
        return deleted
