"""Listening socket inherited from the service manager (systemd socket activation)."""

from __future__ import annotations

import os
import socket
from collections.abc import MutableMapping

import structlog

from src.relay.exceptions import StartupError

logger = structlog.get_logger(__name__)

# First inherited descriptor, per sd_listen_fds(3).
LISTEN_FDS_START = 3


def inherited_fds(
    env: MutableMapping[str, str] | None = None,
    unset_environment: bool = True,
) -> list[int]:
    """Return the file descriptors passed via ``LISTEN_PID``/``LISTEN_FDS``.

    The variables are only honoured when ``LISTEN_PID`` names this process.
    """
    env = os.environ if env is None else env
    try:
        pid = int(env.get("LISTEN_PID", ""))
        count = int(env.get("LISTEN_FDS", ""))
    except ValueError:
        return []
    finally:
        if unset_environment:
            for key in ("LISTEN_PID", "LISTEN_FDS", "LISTEN_FDNAMES"):
                env.pop(key, None)

    if pid != os.getpid() or count <= 0:
        return []
    return list(range(LISTEN_FDS_START, LISTEN_FDS_START + count))


def activated_listener(env: MutableMapping[str, str] | None = None) -> socket.socket:
    """Wrap the single inherited listening socket.

    Raises:
        StartupError: zero or more than one socket was passed.
    """
    fds = inherited_fds(env)
    if len(fds) != 1:
        raise StartupError(f"unexpected number of socket activation ({len(fds)} != 1)")
    sock = socket.socket(fileno=fds[0])
    sock.setblocking(False)
    logger.info("socket_activation_listener", fd=fds[0], address=sock.getsockname())
    return sock
