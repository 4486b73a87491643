"""Configuration for the tool invocation bridge.

Settings come from environment variables (or a .env file at the project
root). Every value has a default so the package imports cleanly without
any environment set up.

The invoker itself never reads these at call time: build a BridgeConfig
once (BridgeConfig.from_env() or explicitly) and pass it in.
"""

from __future__ import annotations

import math
import os
import shlex
import sys
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent

load_dotenv(PROJECT_ROOT / ".env")

# --- Helper process ---
# Command line of the helper program. Shell-style quoting is honoured.
_default_command = [sys.executable, "-m", "rx_tools.servers.echo"]
RX_HELPER_COMMAND: list[str] = (
    shlex.split(os.environ["RX_HELPER_COMMAND"])
    if os.getenv("RX_HELPER_COMMAND")
    else _default_command
)

# Working directory the helper is started in (the application root)
RX_APP_ROOT: str = os.getenv("RX_APP_ROOT", str(PROJECT_ROOT))

# --- Timeouts (seconds) ---
RX_TOOL_TIMEOUT: float = float(os.getenv("RX_TOOL_TIMEOUT", "30"))
# How long a helper gets between SIGTERM and SIGKILL during cleanup
RX_KILL_GRACE: float = float(os.getenv("RX_KILL_GRACE", "2"))

# --- Inbound action defaults ---
# Used when a caller does not say which doctor the request is for
RX_DEFAULT_DOCTOR_ID: str = os.getenv("RX_DEFAULT_DOCTOR_ID", "DOC001")
RX_DEFAULT_DOCTOR_NAME: str = os.getenv("RX_DEFAULT_DOCTOR_NAME", "Attending Physician")


@dataclass
class BridgeConfig:
    """Everything a ToolInvoker needs to launch helpers."""
    command: list[str] = field(default_factory=lambda: list(RX_HELPER_COMMAND))
    cwd: str | None = RX_APP_ROOT
    env: dict[str, str] | None = None
    timeout: float = RX_TOOL_TIMEOUT
    kill_grace: float = RX_KILL_GRACE

    def __post_init__(self):
        if not self.command:
            raise ValueError("BridgeConfig.command must not be empty")
        if not math.isfinite(self.timeout) or self.timeout <= 0:
            raise ValueError(f"BridgeConfig.timeout must be a positive number of seconds, got {self.timeout}")

    @classmethod
    def from_env(cls) -> "BridgeConfig":
        return cls(
            command=list(RX_HELPER_COMMAND),
            cwd=RX_APP_ROOT,
            timeout=RX_TOOL_TIMEOUT,
            kill_grace=RX_KILL_GRACE,
        )
