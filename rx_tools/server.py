"""
Helper process base class.

A helper is a short-lived process that:
1. Reads JSON-RPC requests from stdin (usually exactly one)
2. Dispatches to registered ToolHandlers
3. Writes one JSON-RPC response line per request to stdout
4. Exits when stdin closes

ToolInvoker spawns one helper per call, so handlers can be plain
blocking code with no shared state between calls.

To write a helper:

    from rx_tools.server import StdioToolServer, ToolHandler, ToolHandlerError

    class CheckDose(ToolHandler):
        name = "check_dose"
        description = "Validate a dose against the formulary"
        parameters = {
            "medication": {"type": "string", "description": "Drug name"},
            "dose_mg": {"type": "number", "description": "Dose in mg"},
        }

        def handle(self, params: dict) -> dict:
            if params.get("dose_mg", 0) <= 0:
                raise ToolHandlerError(400, "dose_mg must be positive")
            return {"ok": True}

    if __name__ == "__main__":
        server = StdioToolServer()
        server.register(CheckDose())
        server.run()
"""

from __future__ import annotations

import json
import logging
import sys
from abc import ABC, abstractmethod
from typing import IO, Any

logger = logging.getLogger(__name__)

# JSON-RPC 2.0 reserved error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class ToolHandlerError(Exception):
    """Raised by a handler to answer with a specific JSON-RPC error."""

    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


class ToolHandler(ABC):
    """
    Base class for a tool implementation.

    Subclasses define what a tool does. The server handles transport.
    """

    # Subclasses must set these
    name: str = ""
    description: str = ""
    parameters: dict[str, dict] = {}
    required: list[str] = []

    @abstractmethod
    def handle(self, params: dict[str, Any]) -> Any:
        """
        Execute the tool with the given parameters.

        Args:
            params: Dict of parameter name → value

        Returns:
            The tool result (will be JSON-serialized in the response)

        Raises:
            ToolHandlerError: to report a tool-level failure with a code
        """
        ...

    def get_schema(self) -> dict:
        """Return the tool schema for discovery."""
        schema = {
            "name": self.name,
            "description": self.description,
            "parameters": {
                "type": "object",
                "properties": self.parameters,
            },
        }
        if self.required:
            schema["parameters"]["required"] = list(self.required)
        return schema

    def check_required(self, params: dict[str, Any]) -> None:
        missing = [p for p in self.required if params.get(p) in (None, "")]
        if missing:
            raise ToolHandlerError(INVALID_PARAMS, f"Missing required parameters: {missing}")


class StdioToolServer:
    """
    JSON-RPC tool server that communicates via stdin/stdout.

    Protocol:
    - One JSON-RPC message per line
    - Supports methods:
        - "tools/list" → returns registered tool schemas
        - "tools/call" → calls a tool by name with arguments
        - "ping"       → health check

    stdout carries nothing but responses; diagnostics go to stderr.
    """

    def __init__(self):
        self._handlers: dict[str, ToolHandler] = {}
        self._stdout: IO[str] = sys.stdout

    def register(self, handler: ToolHandler) -> None:
        """Register a tool handler."""
        if not handler.name:
            raise ValueError(f"ToolHandler {handler.__class__.__name__} has no name")
        self._handlers[handler.name] = handler
        logger.debug(f"Registered tool: {handler.name}")

    def run(self, stdin: IO[str] | None = None, stdout: IO[str] | None = None) -> None:
        """
        Main loop: read requests, dispatch, write responses.

        Returns when stdin is closed.
        """
        stdin = stdin or sys.stdin
        self._stdout = stdout or sys.stdout
        logger.debug(f"Helper starting with tools: {list(self._handlers.keys())}")

        for line in stdin:
            line = line.strip()
            if not line:
                continue

            try:
                request = json.loads(line)
            except json.JSONDecodeError as e:
                self._write_error(None, PARSE_ERROR, f"Parse error: {e}")
                continue

            if not isinstance(request, dict) or not isinstance(request.get("method"), str):
                self._write_error(None, INVALID_REQUEST, "Invalid request")
                continue

            request_id = request.get("id")
            method = request["method"]
            params = request.get("params") or {}

            try:
                result = self._dispatch(method, params)
            except ToolHandlerError as e:
                self._write_error(request_id, e.code, e.message, e.data)
            except Exception as e:
                logger.exception(f"Tool call failed: {method}")
                self._write_error(request_id, INTERNAL_ERROR, str(e))
            else:
                try:
                    self._write_result(request_id, result)
                except (TypeError, ValueError) as e:
                    self._write_error(request_id, INTERNAL_ERROR, f"Result is not JSON-serializable: {e}")

    def _dispatch(self, method: str, params: dict) -> Any:
        """Route a method call to the appropriate handler."""

        if method == "ping":
            return {"status": "ok", "tools": list(self._handlers.keys())}

        if method == "tools/list":
            return [h.get_schema() for h in self._handlers.values()]

        if method == "tools/call":
            tool_name = params.get("name", "")
            tool_params = params.get("arguments") or {}

            handler = self._handlers.get(tool_name)
            if not handler:
                raise ToolHandlerError(
                    INVALID_PARAMS,
                    f"Unknown tool: '{tool_name}'. Available: {list(self._handlers.keys())}",
                )

            handler.check_required(tool_params)
            return handler.handle(tool_params)

        raise ToolHandlerError(METHOD_NOT_FOUND, f"Unknown method: '{method}'")

    def _write_result(self, request_id: Any, result: Any) -> None:
        """Write a JSON-RPC success response."""
        self._write({"jsonrpc": "2.0", "id": request_id, "result": result})

    def _write_error(self, request_id: Any, code: int, message: str, data: Any = None) -> None:
        """Write a JSON-RPC error response."""
        error: dict[str, Any] = {"code": code, "message": message}
        if data is not None:
            error["data"] = data
        self._write({"jsonrpc": "2.0", "id": request_id, "error": error})

    def _write(self, response: dict) -> None:
        self._stdout.write(json.dumps(response) + "\n")
        self._stdout.flush()


def serve(*handlers: ToolHandler) -> None:
    """Entry point for helper modules: log to stderr, register, run."""
    logging.basicConfig(
        level=logging.WARNING,
        stream=sys.stderr,
        format="%(levelname)s: %(message)s",
    )
    server = StdioToolServer()
    for handler in handlers:
        server.register(handler)
    server.run()
