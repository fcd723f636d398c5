"""Types shared by the relay components."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel

from src.core.types import ResolvedPolicy
from src.relay.reconciler import ResolutionReconciler
from src.relay.translator import AlertTranslator


@dataclass(frozen=True)
class RelayDeps:
    """Everything a request needs, built once before the listener accepts."""

    policy: ResolvedPolicy
    translator: AlertTranslator
    reconciler: ResolutionReconciler | None = None

    def __post_init__(self) -> None:
        if self.policy == ResolvedPolicy.DELETE and self.reconciler is None:
            raise ValueError("resolved policy 'delete' needs a reconciler")

    def require_reconciler(self) -> ResolutionReconciler:
        if self.reconciler is None:
            raise RuntimeError(f"no reconciler configured for policy '{self.policy.value}'")
        return self.reconciler

    @property
    def app_id(self) -> int | None:
        return self.reconciler.app_id if self.reconciler is not None else None


class BatchOutcome(BaseModel):
    """Per-request tally, logged once the batch is done."""

    sent: int = 0
    ignored: int = 0
    reconciled: int = 0
    deleted: int = 0
    failed: int = 0
    last_error: str = ""

    @property
    def ok(self) -> bool:
        return self.failed == 0
