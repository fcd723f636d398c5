"""Tests for inherited listener discovery."""

from __future__ import annotations

import os
import socket
from unittest.mock import patch

import pytest

from src.relay.activation import activated_listener, inherited_fds
from src.relay.exceptions import StartupError


def _env(count: int, pid: int | None = None) -> dict[str, str]:
    return {
        "LISTEN_PID": str(os.getpid() if pid is None else pid),
        "LISTEN_FDS": str(count),
        "LISTEN_FDNAMES": "relay",
    }


class TestInheritedFds:
    def test_no_variables(self) -> None:
        assert inherited_fds({}) == []

    def test_one_socket(self) -> None:
        assert inherited_fds(_env(1)) == [3]

    def test_several_sockets(self) -> None:
        assert inherited_fds(_env(3)) == [3, 4, 5]

    def test_other_pid_ignored(self) -> None:
        assert inherited_fds(_env(1, pid=os.getpid() + 1)) == []

    def test_garbage_ignored(self) -> None:
        assert inherited_fds({"LISTEN_PID": "x", "LISTEN_FDS": "1"}) == []

    def test_environment_unset(self) -> None:
        env = _env(1)
        inherited_fds(env)
        assert env == {}

    def test_environment_kept_on_request(self) -> None:
        env = _env(1)
        inherited_fds(env, unset_environment=False)
        assert "LISTEN_FDS" in env


class TestActivatedListener:
    def test_zero_sockets_is_fatal(self) -> None:
        with pytest.raises(StartupError, match=r"0 != 1"):
            activated_listener({})

    def test_two_sockets_is_fatal(self) -> None:
        with pytest.raises(StartupError, match=r"2 != 1"):
            activated_listener(_env(2))

    def test_wraps_single_socket(self) -> None:
        server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        server.bind(("127.0.0.1", 0))
        server.listen()
        try:
            with patch("src.relay.activation.inherited_fds", return_value=[server.fileno()]):
                sock = activated_listener({})
            assert sock.getsockname() == server.getsockname()
            sock.detach()
        finally:
            server.close()
