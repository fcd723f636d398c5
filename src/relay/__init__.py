"""Alertmanager → Gotify relay: translation, reconciliation, idle shutdown."""

from src.relay.bootstrap import build_relay
from src.relay.exceptions import RelayError, ShutdownTimeoutError, StartupError
from src.relay.handler import create_relay_app, process_batch
from src.relay.idle import IdleShutdownScheduler, IdleState
from src.relay.reconciler import ResolutionReconciler
from src.relay.translator import AlertTranslator, build_message
from src.relay.types import BatchOutcome, RelayDeps

__all__ = [
    "AlertTranslator",
    "BatchOutcome",
    "IdleShutdownScheduler",
    "IdleState",
    "RelayDeps",
    "RelayError",
    "ResolutionReconciler",
    "ShutdownTimeoutError",
    "StartupError",
    "build_message",
    "build_relay",
    "create_relay_app",
    "process_batch",
]
