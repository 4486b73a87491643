"""
Echo helper — minimal reference implementation.

Use this as a template for building new helpers. Its single tool echoes
back whatever arguments it was called with, which makes it handy for
checking the invocation bridge end to end (argument reshaping included).

Launch (with rx_tools installed or on PYTHONPATH):
    python -m rx_tools.servers.echo

Test:
    echo '{"jsonrpc":"2.0","id":1,"method":"tools/call","params":{"name":"echo","arguments":{"message":"hi"}}}' | python -m rx_tools.servers.echo
"""

from rx_tools.server import ToolHandler, ToolHandlerError, serve


class EchoTool(ToolHandler):
    name = "echo"
    description = "Echoes back the message and the full argument object. Useful for testing."
    parameters = {
        "message": {
            "type": "string",
            "description": "The message to echo back",
        },
    }

    def handle(self, params: dict) -> dict:
        message = params.get("message", "")
        if not isinstance(message, str):
            raise ToolHandlerError(400, "message must be a string")
        return {"echoed": message, "length": len(message), "arguments": params}


if __name__ == "__main__":
    serve(EchoTool())
