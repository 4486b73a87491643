"""Failure values render consistently for boundary layers."""

from rx_tools.errors import InvocationTimeout, ProtocolError, ProcessExitError, ToolError, excerpt


def test_to_dict() -> None:
    error = ToolError("bad input", code=400, data={"field": "dose"}, tool_name="check_dose", request_id=3)
    assert error.to_dict() == {
        "kind": "tool_error",
        "message": "bad input",
        "tool": "check_dose",
        "requestId": 3,
        "transient": False,
        "details": {"code": 400, "data": {"field": "dose"}},
    }


def test_protocol_error_is_a_process_exit() -> None:
    error = ProtocolError("no response", exit_code=0)
    assert isinstance(error, ProcessExitError)
    assert error.kind == "protocol_error"
    assert error.http_status == 502


def test_timeout_details() -> None:
    error = InvocationTimeout("slow", timeout=0.05, stderr="loading model")
    assert error.details() == {"timeoutSeconds": 0.05, "stderr": "loading model"}
    assert error.http_status == 504


def test_excerpt() -> None:
    assert excerpt("  short \n") == "short"
    assert excerpt("x" * 600, limit=10) == "x" * 10 + "..."
