"""
Helper process lifecycle for one-shot tool invocations.

A HelperProcess is spawned for exactly one request. Four daemon threads
serve it:

  - a writer pushes the request line into stdin and closes it (some
    helpers only start work on EOF); a helper that never reads cannot
    stall the caller past its deadline
  - a stdout reader pushes chunks onto a per-process event queue,
    followed by an EOF marker
  - a stderr reader accumulates a private buffer for diagnostics
  - a waiter reaps the helper and posts its exit code

so the owner can wait on "more output", "stream closed", "process exited"
and "deadline" with a single blocking get().

On POSIX the helper gets its own session. Signals go to the whole process
group, so children the helper started are stopped with it even after the
helper itself has exited.
"""

from __future__ import annotations

import logging
import os
import queue
import signal
import subprocess
import threading
import time
from typing import Any

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536

# Event kinds on HelperProcess.events
STDOUT = "stdout"
EOF = "eof"
EXIT = "exit"

_POSIX = os.name == "posix"


class HelperProcess:
    """
    One spawned helper process and its stream threads.

    Owned by a single invocation; never shared.
    """

    def __init__(
        self,
        command: list[str],
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        kill_grace: float = 2.0,
    ):
        self.command = command
        self.cwd = cwd
        self.env = env
        self.kill_grace = kill_grace
        self.events: queue.Queue[tuple[str, Any]] = queue.Queue()
        self._process: subprocess.Popen | None = None
        self._stderr_chunks: list[bytes] = []
        self._readers: list[threading.Thread] = []
        self._writer: threading.Thread | None = None
        self._waiter: threading.Thread | None = None
        self._exited = threading.Event()
        self._signals_sent: set[str] = set()
        self._closed = False

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._exited.is_set() else None

    @property
    def threads(self) -> list[threading.Thread]:
        """Every thread started for this helper."""
        threads = list(self._readers)
        if self._writer is not None:
            threads.append(self._writer)
        if self._waiter is not None:
            threads.append(self._waiter)
        return threads

    def start(self) -> None:
        """Launch the helper. Raises OSError if it cannot be executed."""
        kwargs: dict[str, Any] = {}
        if _POSIX:
            kwargs["start_new_session"] = True

        logger.debug(f"Spawning helper: {' '.join(self.command)} (cwd={self.cwd})")
        self._process = subprocess.Popen(
            self.command,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=self.cwd,
            env=self.env,
            **kwargs,
        )

        pid = self._process.pid
        self._readers = [
            threading.Thread(target=self._pump_stdout, name=f"helper-{pid}-stdout", daemon=True),
            threading.Thread(target=self._pump_stderr, name=f"helper-{pid}-stderr", daemon=True),
        ]
        self._waiter = threading.Thread(target=self._reap, name=f"helper-{pid}-waiter", daemon=True)
        for thread in (*self._readers, self._waiter):
            thread.start()

    def send(self, line: bytes) -> None:
        """Hand the request to the writer thread; returns immediately."""
        self._writer = threading.Thread(
            target=self._pump_stdin,
            args=(line,),
            name=f"helper-{self.pid}-stdin",
            daemon=True,
        )
        self._writer.start()

    def is_alive(self) -> bool:
        """Check if the helper is running."""
        return self._process is not None and not self._exited.is_set()

    def join_stderr(self, timeout: float) -> None:
        """Wait (bounded) for the stderr reader to hit EOF."""
        if len(self._readers) > 1:
            self._readers[1].join(timeout=timeout)

    def stderr_text(self) -> str:
        return b"".join(self._stderr_chunks).decode("utf-8", errors="replace")

    def kill(self) -> None:
        """Forcibly terminate the helper and its process group."""
        self._signal("kill")

    def terminate(self) -> None:
        """Ask the helper to stop; escalate to kill after the grace period."""
        self._signal("terminate")
        if not self._settle(self.kill_grace):
            logger.warning(f"Helper {self.pid} ignored SIGTERM, killing")
            self.kill()

    def close(self) -> None:
        """
        Release everything: stop the helper and anything it left behind in
        its process group, reap it, join the threads and close the pipes.
        Safe to call more than once.
        """
        if self._closed or self._process is None:
            return
        self._closed = True

        # The group can outlive its leader, so it is signalled even after exit
        if self.is_alive() or _POSIX:
            self.terminate()
        self._waiter.join(timeout=self.kill_grace)
        if self.is_alive():
            logger.error(f"Helper {self.pid} did not exit after kill")

        if self._writer is not None:
            self._writer.join(timeout=self.kill_grace)
        streams = (self._process.stdout, self._process.stderr)
        for reader, stream in zip(self._readers, streams):
            reader.join(timeout=self.kill_grace)
            if reader.is_alive():
                # Something outside the process group still holds the pipe;
                # closing under a blocked read would block us too
                logger.warning(f"Reader {reader.name} still attached after helper exit")
                continue
            stream.close()

    def _settle(self, timeout: float) -> bool:
        """Wait until the helper has exited and both output pipes are closed."""
        deadline = time.monotonic() + timeout
        if not self._exited.wait(timeout):
            return False
        for reader in self._readers:
            reader.join(timeout=max(deadline - time.monotonic(), 0))
            if reader.is_alive():
                return False
        return True

    def _signal(self, action: str) -> None:
        # Each action is sent at most once, and nothing follows a kill
        if action in self._signals_sent or "kill" in self._signals_sent or self._process is None:
            return
        if not _POSIX and self._exited.is_set():
            return
        self._signals_sent.add(action)
        try:
            if _POSIX:
                sig = signal.SIGKILL if action == "kill" else signal.SIGTERM
                os.killpg(self._process.pid, sig)
            elif action == "kill":
                self._process.kill()
            else:
                self._process.terminate()
        except (ProcessLookupError, PermissionError):
            logger.debug(f"Helper {self.pid} group already gone before {action}")

    def _pump_stdin(self, line: bytes) -> None:
        stdin = self._process.stdin
        try:
            stdin.write(line)
            stdin.flush()
        except (OSError, ValueError):
            # Helper is gone or was killed mid-write; the outcome is decided elsewhere
            logger.debug(f"Helper {self.pid} stopped reading before the request was written")
        finally:
            try:
                stdin.close()
            except (OSError, ValueError):
                pass

    def _pump_stdout(self) -> None:
        stream = self._process.stdout
        try:
            while True:
                chunk = stream.read1(CHUNK_SIZE)
                if not chunk:
                    break
                self.events.put((STDOUT, chunk))
        except (OSError, ValueError):
            # Pipe closed under us during close()
            pass
        finally:
            self.events.put((EOF, None))

    def _pump_stderr(self) -> None:
        stream = self._process.stderr
        try:
            while True:
                chunk = stream.read1(CHUNK_SIZE)
                if not chunk:
                    break
                self._stderr_chunks.append(chunk)
        except (OSError, ValueError):
            pass

    def _reap(self) -> None:
        exit_code = self._process.wait()
        self._exited.set()
        self.events.put((EXIT, exit_code))
