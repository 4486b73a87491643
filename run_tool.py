"""
Run Tool — call a helper tool from the command line.

Spawns the configured helper (RX_HELPER_COMMAND, default: the echo helper),
sends one request through ToolInvoker, and prints the JSON result.

Usage:
    # List the tools the helper advertises
    python run_tool.py --list

    # Call a tool
    python run_tool.py --tool echo --args '{"message": "hello"}'

    # Use a different helper and a short timeout
    python run_tool.py --command "node dist/mcp-server/server.js" --tool list_patients --timeout 10

    # Show debug output (ignored helper lines, state transitions)
    python run_tool.py --tool echo --args '{}' -v
"""

from __future__ import annotations

import argparse
import json
import logging
import shlex
import sys
from pathlib import Path

# Ensure project root is on path
PROJECT_ROOT = Path(__file__).parent.resolve()
sys.path.insert(0, str(PROJECT_ROOT))

from rx_tools.bridge import auto_prompt_instructions
from rx_tools.config import BridgeConfig
from rx_tools.errors import ToolInvocationError
from rx_tools.invoker import ToolInvoker

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def build_config(args: argparse.Namespace) -> BridgeConfig:
    """Environment defaults, overridden by command-line flags."""
    config = BridgeConfig.from_env()
    if args.command:
        config.command = shlex.split(args.command)
    if args.cwd:
        config.cwd = args.cwd
    return config


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Invoke a helper tool over one-shot stdio JSON-RPC.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_tool.py --list
  python run_tool.py --tool echo --args '{"message": "hello"}'
        """,
    )
    parser.add_argument("--list", action="store_true", help="List the helper's tools and exit")
    parser.add_argument("--tool", "-t", type=str, help="Tool name to call")
    parser.add_argument("--args", "-a", type=str, default="{}", help="Tool arguments as a JSON object")
    parser.add_argument("--timeout", type=float, default=None, help="Timeout in seconds (default: RX_TOOL_TIMEOUT)")
    parser.add_argument("--command", "-c", type=str, default=None, help="Helper command line (default: RX_HELPER_COMMAND)")
    parser.add_argument("--cwd", type=str, default=None, help="Helper working directory (default: RX_APP_ROOT)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug output")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    invoker = ToolInvoker(build_config(args))

    if args.list:
        try:
            tools = invoker.list_tools(timeout=args.timeout)
        except ToolInvocationError as e:
            print(json.dumps(e.to_dict(), indent=2))
            return 1
        print(f"\nAvailable tools ({len(tools)}):\n")
        for schema in tools:
            print(auto_prompt_instructions(schema))
            print()
        return 0

    if not args.tool:
        parser.error("--tool is required (or use --list)")

    try:
        arguments = json.loads(args.args)
    except json.JSONDecodeError as e:
        parser.error(f"--args is not valid JSON: {e}")

    try:
        result = invoker.invoke(args.tool, arguments, timeout=args.timeout)
    except ToolInvocationError as e:
        print(json.dumps(e.to_dict(), indent=2))
        return 1

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
