"""Tests for the entrypoint's flag handling and startup failures."""

from __future__ import annotations

import argparse
from pathlib import Path

import pytest

from src.core.config import reset_settings

from scripts.run import flag_overrides, run


@pytest.fixture(autouse=True)
def _clean_settings() -> None:
    reset_settings()


def _args(**kw: object) -> argparse.Namespace:
    defaults: dict[str, object] = {
        "config": None,
        "log_level": None,
        "url": None,
        "token": None,
        "ctoken": None,
        "resolved": None,
        "exitafter": None,
    }
    defaults.update(kw)
    return argparse.Namespace(**defaults)


class TestFlagOverrides:
    def test_no_flags(self) -> None:
        assert flag_overrides(_args()) == {}

    def test_all_flags(self) -> None:
        overrides = flag_overrides(_args(
            url="https://gotify.test",
            token="t",
            ctoken="c",
            resolved="delete",
            exitafter=30,
        ))
        assert overrides == {
            "gotify": {"url": "https://gotify.test", "token": "t", "client_token": "c"},
            "relay": {"resolved": "delete", "exit_after_secs": 30},
        }

    def test_zero_exitafter_is_kept(self) -> None:
        assert flag_overrides(_args(exitafter=0)) == {"relay": {"exit_after_secs": 0}}


class TestStartupFailures:
    async def test_delete_without_ctoken(self, tmp_path: Path) -> None:
        code = await run(_args(
            config=str(tmp_path / "missing.yaml"),
            url="https://gotify.test",
            resolved="delete",
        ))
        assert code == 1

    async def test_bad_url(self, tmp_path: Path) -> None:
        code = await run(_args(config=str(tmp_path / "missing.yaml"), url="not a url"))
        assert code == 1

    async def test_no_inherited_socket(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("LISTEN_FDS", raising=False)
        monkeypatch.delenv("LISTEN_PID", raising=False)
        code = await run(_args(config=str(tmp_path / "missing.yaml"), url="https://gotify.test"))
        assert code == 1
