"""Process liveness helpers for tests."""

import os
import time
from pathlib import Path

import pytest

FAKE_HELPER = Path(__file__).parent / "fake_helper.py"

posix_only = pytest.mark.skipif(os.name != "posix", reason="process groups and liveness checks need POSIX")


def pid_alive(pid: int) -> bool:
    """True if pid names a running (non-zombie) process."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    status = Path(f"/proc/{pid}/status")
    try:
        text = status.read_text()
    except OSError:
        return True
    for line in text.splitlines():
        if line.startswith("State:"):
            return line.split()[1] != "Z"
    return True


def wait_until_dead(pid: int, grace: float = 2.0) -> bool:
    deadline = time.monotonic() + grace
    while time.monotonic() < deadline:
        if not pid_alive(pid):
            return True
        time.sleep(0.01)
    return not pid_alive(pid)


def read_pid(path: Path, grace: float = 2.0) -> int:
    deadline = time.monotonic() + grace
    while time.monotonic() < deadline:
        text = path.read_text().strip() if path.exists() else ""
        if text:
            return int(text)
        time.sleep(0.01)
    raise AssertionError(f"helper never wrote {path}")
