"""Shared fixtures: invokers wired to the scripted fake helper."""

import sys
from pathlib import Path

import pytest

from rx_tools.config import BridgeConfig
from rx_tools.invoker import ToolInvoker
from tests.helpers.procs import FAKE_HELPER

PROJECT_ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture
def make_invoker(tmp_path):
    """Build a ToolInvoker that runs the fake helper in the given mode."""

    def _make(mode: str, *extra: str, timeout: float = 5.0, kill_grace: float = 0.5) -> ToolInvoker:
        config = BridgeConfig(
            command=[sys.executable, str(FAKE_HELPER), mode, *extra],
            cwd=str(tmp_path),
            timeout=timeout,
            kill_grace=kill_grace,
        )
        return ToolInvoker(config)

    return _make


@pytest.fixture
def echo_invoker():
    """ToolInvoker running the real echo helper."""
    config = BridgeConfig(
        command=[sys.executable, "-m", "rx_tools.servers.echo"],
        cwd=str(PROJECT_ROOT),
        timeout=10.0,
    )
    return ToolInvoker(config)
