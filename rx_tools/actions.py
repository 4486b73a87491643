"""
Inbound action requests → tool invocations.

The web layer receives bodies like

    {"action": "create_prescription_with_gemini", "patientId": "P001", ...}
    {"tool": "validate_prescription_safety", "args": {...}}

ActionDispatcher turns one of these into a ToolInvoker.invoke() call and
the outcome into an HTTP status plus a JSON-ready body. It never raises
ToolInvocationError; every failure becomes a {"success": False, ...} body.
"""

from __future__ import annotations

import logging
from typing import Any

from rx_tools import config
from rx_tools.errors import ToolInvocationError
from rx_tools.invoker import ToolInvoker

logger = logging.getLogger(__name__)

# Keys that select the tool or carry arguments rather than being arguments
_CONTROL_KEYS = ("tool", "action", "args", "timeout")


class ActionDispatcher:
    """Maps action request bodies onto tool invocations."""

    def __init__(
        self,
        invoker: ToolInvoker,
        default_doctor_id: str = config.RX_DEFAULT_DOCTOR_ID,
        default_doctor_name: str = config.RX_DEFAULT_DOCTOR_NAME,
    ):
        self.invoker = invoker
        self.default_doctor_id = default_doctor_id
        self.default_doctor_name = default_doctor_name

    def build_call(self, body: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:
        """Extract (tool name, arguments) from a request body."""
        tool_name = body.get("tool") or body.get("action")

        args = body.get("args")
        if isinstance(args, dict):
            arguments = dict(args)
        else:
            arguments = {k: v for k, v in body.items() if k not in _CONTROL_KEYS}

        # Identity is relayed, not verified; only fill in what is missing
        if not arguments.get("doctorId"):
            arguments["doctorId"] = self.default_doctor_id
        if not arguments.get("doctorName"):
            arguments["doctorName"] = self.default_doctor_name

        return tool_name, arguments

    def dispatch(self, body: dict[str, Any]) -> tuple[int, dict[str, Any]]:
        """
        Run the action described by body.

        Returns:
            (status, response body)
        """
        if not isinstance(body, dict):
            return 400, {"success": False, "error": "Request body must be a JSON object"}
        if body.get("args") is not None and not isinstance(body["args"], dict):
            return 400, {"success": False, "error": "args must be an object"}

        tool_name, arguments = self.build_call(body)
        if not tool_name:
            logger.info(f"Rejected action request without tool: keys={sorted(body)}")
            return 400, {"success": False, "error": "No tool or action specified"}

        timeout = body.get("timeout")
        try:
            result = self.invoker.invoke(tool_name, arguments, timeout=timeout)
        except ToolInvocationError as e:
            logger.warning(f"Action {tool_name} failed ({e.kind}): {e.message}")
            return e.http_status, failure_body(e)

        return 200, {"success": True, "tool": tool_name, "data": result}


def failure_body(error: ToolInvocationError) -> dict[str, Any]:
    """Render a failure as a response body."""
    return {
        "success": False,
        "error": error.message,
        "kind": error.kind,
        "transient": error.transient,
        "details": error.details(),
    }
