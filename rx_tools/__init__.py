"""
rx_tools — one-shot stdio tool invocation for prescription assistance.

Architecture:
    ┌──────────────┐   stdin: 1 request   ┌──────────────┐
    │  Web layer /  │ ──────────────────▶ │    Helper     │
    │  ToolInvoker  │ ◀────────────────── │ (subprocess)  │
    └──────────────┘  stdout: JSON-RPC    └──────────────┘

Every tool call spawns a fresh helper process, writes one JSON-RPC 2.0
request to its stdin, closes stdin, and waits for the correlated
response on stdout, for the helper to exit, or for the deadline,
whichever comes first. The helper never outlives the call.

ToolInvoker is the entry point. ActionDispatcher adapts web-style action
requests onto it, and StdioToolServer/ToolHandler are the base for
writing helpers.
"""

from rx_tools.actions import ActionDispatcher
from rx_tools.config import BridgeConfig
from rx_tools.errors import (
    InvalidArgumentsError,
    InvocationTimeout,
    ProcessExitError,
    ProtocolError,
    SpawnError,
    ToolError,
    ToolInvocationError,
)
from rx_tools.invoker import InvocationState, ToolInvoker
from rx_tools.server import StdioToolServer, ToolHandler, ToolHandlerError


# Bridge requires langchain; lazy import keeps helpers lightweight
def invoker_to_langchain_tool(*args, **kwargs):
    from rx_tools.bridge import invoker_to_langchain_tool as _impl
    return _impl(*args, **kwargs)


def load_langchain_tools(*args, **kwargs):
    from rx_tools.bridge import load_langchain_tools as _impl
    return _impl(*args, **kwargs)


__all__ = [
    "ActionDispatcher",
    "BridgeConfig",
    "InvalidArgumentsError",
    "InvocationState",
    "InvocationTimeout",
    "ProcessExitError",
    "ProtocolError",
    "SpawnError",
    "StdioToolServer",
    "ToolError",
    "ToolHandler",
    "ToolHandlerError",
    "ToolInvocationError",
    "ToolInvoker",
    "invoker_to_langchain_tool",
    "load_langchain_tools",
]
