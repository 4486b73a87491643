"""
Bridge between helper tools and LangChain.

Wraps ToolInvoker calls as LangChain StructuredTools so an agent can use
helper tools directly. Every call still spawns its own helper process.

Usage:
    from rx_tools.bridge import invoker_to_langchain_tool, load_langchain_tools

    # Single tool
    lc_tool = invoker_to_langchain_tool(invoker, "validate_prescription_safety")

    # Everything the helper advertises via tools/list
    lc_tools = load_langchain_tools(invoker)
"""

from __future__ import annotations

import json
from typing import Any

from langchain_core.tools import StructuredTool

from rx_tools.errors import ToolInvocationError
from rx_tools.invoker import ToolInvoker


def invoker_to_langchain_tool(
    invoker: ToolInvoker,
    tool_name: str,
    description: str | None = None,
    schema: dict | None = None,
    timeout: float | None = None,
) -> StructuredTool:
    """
    Create a LangChain StructuredTool that calls a helper tool.

    Args:
        invoker: The ToolInvoker that launches helpers
        tool_name: The tool name (as understood by the helper)
        description: Optional description; defaults to the schema's
        schema: Tool schema from tools/list, if already discovered
        timeout: Per-call timeout in seconds (default: invoker config)

    Returns:
        A StructuredTool whose result is a string. Failures are returned
        as an error message rather than raised, so the agent can react.
    """
    schema = schema or {}
    description = description or schema.get("description") or f"Helper tool: {tool_name}"

    def _call_tool(**kwargs: Any) -> str:
        """Proxy call to the helper."""
        try:
            result = invoker.invoke(tool_name, kwargs, timeout=timeout)
        except ToolInvocationError as e:
            return f"Error calling {tool_name} ({e.kind}): {e.message}"
        if isinstance(result, str):
            return result
        return json.dumps(result, indent=2)

    args_schema = schema.get("parameters")
    if args_schema and args_schema.get("properties"):
        return StructuredTool.from_function(
            func=_call_tool,
            name=tool_name,
            description=description,
            args_schema=args_schema,
        )
    return StructuredTool.from_function(
        func=_call_tool,
        name=tool_name,
        description=description,
    )


def load_langchain_tools(
    invoker: ToolInvoker,
    timeout: float | None = None,
) -> list[StructuredTool]:
    """Discover the helper's tools and wrap each one."""
    return [
        invoker_to_langchain_tool(invoker, s["name"], schema=s, timeout=timeout)
        for s in invoker.list_tools(timeout=timeout)
        if s.get("name")
    ]


def auto_prompt_instructions(schema: dict) -> str:
    """Generate prompt instructions from a tool schema."""
    name = schema.get("name", "unknown")
    description = schema.get("description", "")
    params = schema.get("parameters", {}).get("properties", {})
    required = set(schema.get("parameters", {}).get("required", []))

    lines = [f"## Tool: {name}", description, ""]
    if params:
        lines.append("Parameters:")
        for pname, pinfo in params.items():
            ptype = pinfo.get("type", "any")
            pdesc = pinfo.get("description", "")
            marker = ", required" if pname in required else ""
            lines.append(f"  - {pname} ({ptype}{marker}): {pdesc}")

    return "\n".join(lines)
