"""Configuration defaults and BridgeConfig validation."""

import os
import sys

import pytest

from rx_tools import config
from rx_tools.config import BridgeConfig
from rx_tools.invoker import ToolInvoker


def test_from_env_uses_module_settings() -> None:
    built = BridgeConfig.from_env()

    assert built.command == config.RX_HELPER_COMMAND
    assert built.cwd == config.RX_APP_ROOT
    assert built.timeout == config.RX_TOOL_TIMEOUT
    assert built.kill_grace == config.RX_KILL_GRACE


@pytest.mark.skipif("RX_HELPER_COMMAND" in os.environ, reason="helper command overridden")
def test_default_helper_is_echo() -> None:
    assert config.RX_HELPER_COMMAND == [sys.executable, "-m", "rx_tools.servers.echo"]


@pytest.mark.skipif("RX_TOOL_TIMEOUT" in os.environ, reason="timeout overridden")
def test_default_timeout_is_thirty_seconds() -> None:
    assert BridgeConfig().timeout == 30.0


def test_from_env_returns_independent_command() -> None:
    built = BridgeConfig.from_env()
    built.command.append("--extra")
    assert "--extra" not in config.RX_HELPER_COMMAND


@pytest.mark.parametrize(
    "kwargs",
    [{"command": []}, {"timeout": 0}, {"timeout": -5}, {"timeout": float("inf")}, {"timeout": float("nan")}],
)
def test_invalid_config(kwargs) -> None:
    with pytest.raises(ValueError):
        BridgeConfig(**kwargs)


def test_invoker_reads_only_its_config(tmp_path, monkeypatch) -> None:
    invoker = ToolInvoker(BridgeConfig(cwd=str(tmp_path), timeout=3))
    monkeypatch.setattr(config, "RX_APP_ROOT", "/somewhere/else")
    assert invoker.config.cwd == str(tmp_path)
    assert invoker.config.timeout == 3
