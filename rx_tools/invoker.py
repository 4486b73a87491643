"""
Tool Invocation Bridge — one helper process per tool call.

Usage:
    from rx_tools.config import BridgeConfig
    from rx_tools.invoker import ToolInvoker

    invoker = ToolInvoker(BridgeConfig(command=["python", "-m", "rx_tools.servers.echo"]))
    result = invoker.invoke("echo", {"message": "hi"}, timeout=5)

Each call runs through a small state machine:

    CREATED → SPAWNING → AWAITING_RESPONSE → RESOLVED_*

While awaiting, three things race: a correlated response showing up on
stdout, the helper exiting, and the deadline. The first one decides the
outcome. An exit is only final once stdout has been drained, or once a
short drain window has passed when a leftover child keeps the pipe open.
Whatever the outcome, the helper and its process group are stopped and
reaped before the call returns.
"""

from __future__ import annotations

import enum
import itertools
import logging
import math
import queue
import time
from typing import Any, NoReturn

from rx_tools.config import BridgeConfig
from rx_tools.errors import (
    InvalidArgumentsError,
    InvocationTimeout,
    ProcessExitError,
    ProtocolError,
    SpawnError,
    ToolError,
    excerpt,
)
from rx_tools.process import EOF, EXIT, STDOUT, HelperProcess
from rx_tools.protocol import JsonRpcRequest, JsonRpcResponse, ResponseScanner

logger = logging.getLogger(__name__)

# How long stdout may stay open after the helper exits before the exit counts
EXIT_DRAIN = 0.25


class InvocationState(str, enum.Enum):
    CREATED = "created"
    SPAWNING = "spawning"
    AWAITING_RESPONSE = "awaiting_response"
    RESOLVED_SUCCESS = "resolved_success"
    RESOLVED_TOOL_ERROR = "resolved_tool_error"
    RESOLVED_PROCESS_EXIT = "resolved_process_exit"
    RESOLVED_PROTOCOL_ERROR = "resolved_protocol_error"
    RESOLVED_TIMEOUT = "resolved_timeout"
    RESOLVED_SPAWN_ERROR = "resolved_spawn_error"

    @property
    def terminal(self) -> bool:
        return self.value.startswith("resolved_")


class Invocation:
    """
    A single request/response exchange with a freshly spawned helper.

    Owns its request id, deadline, response buffer and helper process.
    Run it once with run().
    """

    def __init__(
        self,
        config: BridgeConfig,
        request_id: int,
        method: str,
        params: dict[str, Any],
        timeout: float,
        label: str,
    ):
        self.config = config
        self.request_id = request_id
        self.method = method
        self.params = params
        self.timeout = timeout
        self.label = label
        self.state = InvocationState.CREATED
        self.deadline: float | None = None
        self.scanner = ResponseScanner(request_id)
        self.process: HelperProcess | None = None

    def run(self) -> Any:
        if self.state is not InvocationState.CREATED:
            raise RuntimeError(f"Invocation {self.request_id} already ran ({self.state.value})")

        try:
            line = JsonRpcRequest(self.method, self.params, self.request_id).to_line()
        except (TypeError, ValueError) as e:
            raise InvalidArgumentsError(
                f"Arguments for {self.label} are not JSON-serializable: {e}",
                tool_name=self.label,
                request_id=self.request_id,
            ) from e

        self.deadline = time.monotonic() + self.timeout
        self.process = HelperProcess(
            self.config.command,
            cwd=self.config.cwd,
            env=self.config.env,
            kill_grace=self.config.kill_grace,
        )

        self._transition(InvocationState.SPAWNING)
        try:
            self.process.start()
        except OSError as e:
            self._transition(InvocationState.RESOLVED_SPAWN_ERROR)
            raise SpawnError(
                f"Could not start helper {self.config.command[0]!r}: {e}",
                command=list(self.config.command),
                tool_name=self.label,
                request_id=self.request_id,
            ) from e

        try:
            self.process.send(line)
            self._transition(InvocationState.AWAITING_RESPONSE)
            return self._await_response()
        finally:
            self.process.close()

    def _await_response(self) -> Any:
        exit_code: int | None = None
        stdout_closed = False
        drain_until: float | None = None

        while True:
            now = time.monotonic()
            remaining = self.deadline - now
            if exit_code is not None and (remaining <= 0 or drain_until - now <= 0):
                # Exited, but a leftover child still holds stdout open
                return self._finish_exit(exit_code)
            if remaining <= 0:
                self._fail_timeout()

            wait = remaining if drain_until is None else min(remaining, drain_until - now)
            try:
                kind, payload = self.process.events.get(timeout=wait)
            except queue.Empty:
                continue

            if kind == STDOUT:
                response = self.scanner.feed(payload)
                if response is not None:
                    return self._resolve(response)
            elif kind == EOF:
                stdout_closed = True
                response = self.scanner.finish()
                if response is not None:
                    return self._resolve(response)
                if exit_code is not None:
                    self._fail_exit(exit_code)
            elif kind == EXIT:
                exit_code = payload
                if stdout_closed:
                    self._fail_exit(exit_code)
                drain_until = time.monotonic() + EXIT_DRAIN

    def _finish_exit(self, exit_code: int) -> Any:
        response = self.scanner.finish()
        if response is not None:
            return self._resolve(response)
        self._fail_exit(exit_code)

    def _resolve(self, response: JsonRpcResponse) -> Any:
        if response.is_error:
            self._transition(InvocationState.RESOLVED_TOOL_ERROR)
            error = response.error
            message = str(error.get("message") or "Tool call failed")
            logger.info(f"{self.label} returned error {error.get('code')}: {message}")
            raise ToolError(
                message,
                code=error.get("code"),
                data=error.get("data"),
                tool_name=self.label,
                request_id=self.request_id,
            )

        self._transition(InvocationState.RESOLVED_SUCCESS)
        return response.result

    def _fail_exit(self, exit_code: int) -> NoReturn:
        # Let the stderr reader catch up with whatever the helper wrote last
        self.process.join_stderr(EXIT_DRAIN)
        stderr = self.process.stderr_text()
        if exit_code == 0:
            self._transition(InvocationState.RESOLVED_PROTOCOL_ERROR)
            error_cls = ProtocolError
            message = (
                f"Helper exited without a response to request {self.request_id} "
                f"({self.scanner.lines_seen} lines of output, none correlated)"
            )
        else:
            self._transition(InvocationState.RESOLVED_PROCESS_EXIT)
            error_cls = ProcessExitError
            message = f"Helper exited with code {exit_code} before responding"

        if stderr.strip():
            message += f". stderr: {excerpt(stderr)}"
        logger.warning(f"{self.label}: {message}")
        raise error_cls(
            message,
            exit_code=exit_code,
            stderr=stderr,
            tool_name=self.label,
            request_id=self.request_id,
        )

    def _fail_timeout(self) -> NoReturn:
        self.process.kill()
        self._transition(InvocationState.RESOLVED_TIMEOUT)
        logger.warning(
            f"{self.label} timed out after {self.timeout:.3f}s; killed helper {self.process.pid}"
        )
        raise InvocationTimeout(
            f"No response from helper within {self.timeout:g}s",
            timeout=self.timeout,
            stderr=self.process.stderr_text(),
            tool_name=self.label,
            request_id=self.request_id,
        )

    def _transition(self, state: InvocationState) -> None:
        logger.debug(f"Invocation {self.request_id}: {self.state.value} -> {state.value}")
        self.state = state


class ToolInvoker:
    """
    Calls helper tools over one-shot stdio JSON-RPC.

    Stateless between calls apart from the request id counter; concurrent
    calls from several threads each get their own helper process.
    """

    def __init__(self, config: BridgeConfig | None = None):
        self.config = config or BridgeConfig.from_env()
        self._ids = itertools.count(1)

    def invoke(
        self,
        tool_name: str,
        arguments: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """
        Call a tool and return its result.

        Args:
            tool_name: Tool name understood by the helper (passed through as-is)
            arguments: JSON-serializable tool arguments
            timeout: Seconds to wait for the response (default: config.timeout)

        Raises:
            ToolInvocationError subclasses, see rx_tools.errors.
        """
        if not isinstance(tool_name, str) or not tool_name.strip():
            raise InvalidArgumentsError(f"Tool name must be a non-empty string, got {tool_name!r}")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise InvalidArgumentsError(
                f"Arguments must be an object, got {type(arguments).__name__}",
                tool_name=tool_name,
            )

        started = time.monotonic()
        result = self._call("tools/call", {"name": tool_name, "arguments": arguments}, timeout, tool_name)
        logger.info(f"Tool {tool_name} completed in {time.monotonic() - started:.3f}s")
        return result

    def list_tools(self, timeout: float | None = None) -> list[dict]:
        """Ask a helper for its tool schemas."""
        result = self._call("tools/list", {}, timeout, "tools/list")
        if isinstance(result, dict) and "tools" in result:
            result = result["tools"]
        return list(result or [])

    def _call(self, method: str, params: dict[str, Any], timeout: float | None, label: str) -> Any:
        timeout = self.config.timeout if timeout is None else timeout
        if (
            isinstance(timeout, bool)
            or not isinstance(timeout, (int, float))
            or not math.isfinite(timeout)
            or timeout <= 0
        ):
            raise InvalidArgumentsError(f"Timeout must be a positive number of seconds, got {timeout}", tool_name=label)

        invocation = Invocation(
            self.config,
            request_id=next(self._ids),
            method=method,
            params=params,
            timeout=timeout,
            label=label,
        )
        logger.info(f"Invoking {label} (request {invocation.request_id}, timeout {timeout:g}s)")
        return invocation.run()
