"""
Failure taxonomy for tool invocations.

Every way a call through ToolInvoker can fail is one of these. They are
structured: callers can tell transient failures (InvocationTimeout,
ProcessExitError) from semantic ones (ToolError) by type, and boundary
layers render them with to_dict().
"""

from __future__ import annotations

from typing import Any

# Captured stderr is truncated to this many characters in messages
STDERR_EXCERPT = 500


class ToolInvocationError(RuntimeError):
    """Base class for all tool invocation failures."""

    kind = "invocation_error"
    http_status = 500
    transient = False

    def __init__(
        self,
        message: str,
        tool_name: str | None = None,
        request_id: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.tool_name = tool_name
        self.request_id = request_id

    def details(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "tool": self.tool_name,
            "requestId": self.request_id,
            "transient": self.transient,
            "details": self.details(),
        }


class InvalidArgumentsError(ToolInvocationError):
    """The call was rejected before any process was spawned."""

    kind = "invalid_arguments"
    http_status = 400


class SpawnError(ToolInvocationError):
    """The helper process could not be started."""

    kind = "spawn_error"
    http_status = 503

    def __init__(self, message: str, command: list[str], **kwargs: Any):
        super().__init__(message, **kwargs)
        self.command = command

    def details(self) -> dict[str, Any]:
        return {"command": self.command}


class ProcessExitError(ToolInvocationError):
    """The helper exited before producing a correlated response."""

    kind = "process_exit"
    http_status = 502
    transient = True

    def __init__(self, message: str, exit_code: int | None, stderr: str = "", **kwargs: Any):
        super().__init__(message, **kwargs)
        self.exit_code = exit_code
        self.stderr = stderr

    def details(self) -> dict[str, Any]:
        return {"exitCode": self.exit_code, "stderr": self.stderr}


class ProtocolError(ProcessExitError):
    """The helper exited cleanly but its output never held a correlated response."""

    kind = "protocol_error"


class InvocationTimeout(ToolInvocationError):
    """No correlated response before the deadline; the helper was killed."""

    kind = "timeout"
    http_status = 504
    transient = True

    def __init__(self, message: str, timeout: float, stderr: str = "", **kwargs: Any):
        super().__init__(message, **kwargs)
        self.timeout = timeout
        self.stderr = stderr

    def details(self) -> dict[str, Any]:
        return {"timeoutSeconds": self.timeout, "stderr": self.stderr}


class ToolError(ToolInvocationError):
    """The helper answered with a JSON-RPC error object."""

    kind = "tool_error"
    http_status = 422

    def __init__(self, message: str, code: int | None = None, data: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.code = code
        self.data = data

    def details(self) -> dict[str, Any]:
        details: dict[str, Any] = {"code": self.code}
        if self.data is not None:
            details["data"] = self.data
        return details


def excerpt(text: str, limit: int = STDERR_EXCERPT) -> str:
    """Trim captured stream text for inclusion in a message."""
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
