"""
JSON-RPC 2.0 framing for helper-process communication.

One message per line. Requests are written to the helper's stdin as a
single compact JSON object followed by "\\n". Responses are read back from
stdout, which may interleave arbitrary non-JSON text (log lines, progress
output) with the one response we care about.

ResponseScanner owns the per-invocation response buffer: it is fed raw
stdout chunks as they arrive, splits them into lines, and reports the first
line that parses as a JSON-RPC response correlated to our request id.
"""

from __future__ import annotations

import codecs
import json
import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"


@dataclass
class JsonRpcRequest:
    """JSON-RPC 2.0 request."""
    method: str
    params: dict[str, Any]
    id: int

    def to_json(self) -> str:
        return json.dumps(
            {
                "jsonrpc": JSONRPC_VERSION,
                "id": self.id,
                "method": self.method,
                "params": self.params,
            },
            separators=(",", ":"),
        )

    def to_line(self) -> bytes:
        """Encode as one newline-terminated line, ready for the helper's stdin."""
        return (self.to_json() + "\n").encode("utf-8")


@dataclass
class JsonRpcResponse:
    """JSON-RPC 2.0 response."""
    id: int
    result: Any = None
    error: dict | None = None

    @classmethod
    def from_dict(cls, parsed: dict) -> "JsonRpcResponse":
        error = parsed.get("error")
        if error is not None and not isinstance(error, dict):
            error = {"message": str(error)}
        return cls(
            id=parsed.get("id"),
            result=parsed.get("result"),
            error=error,
        )

    @property
    def is_error(self) -> bool:
        return self.error is not None


def is_response(obj: Any, request_id: int) -> bool:
    """True if obj is a JSON-RPC response object correlated to request_id."""
    if not isinstance(obj, dict):
        return False
    response_id = obj.get("id")
    # True == 1 in Python; a boolean id is never a match
    if isinstance(response_id, bool) or response_id != request_id:
        return False
    return "result" in obj or "error" in obj


@dataclass
class ResponseScanner:
    """
    Incremental newline-delimited JSON scanner for one invocation.

    The buffer is append-only: feed() adds decoded text, complete lines are
    consumed from the front and checked exactly once. The first correlated
    response is kept; anything after it is ignored.
    """
    request_id: int
    lines_seen: int = 0
    lines_ignored: int = 0
    response: JsonRpcResponse | None = None
    _buffer: str = field(default="", init=False, repr=False)
    _decoder: Any = field(
        default_factory=lambda: codecs.getincrementaldecoder("utf-8")(errors="replace"),
        init=False,
        repr=False,
    )

    def feed(self, chunk: bytes) -> JsonRpcResponse | None:
        """Append a stdout chunk; return the correlated response once found."""
        if self.response is not None:
            return self.response

        self._buffer += self._decoder.decode(chunk)
        while "\n" in self._buffer:
            line, self._buffer = self._buffer.split("\n", 1)
            if self._check_line(line):
                return self.response
        return None

    def finish(self) -> JsonRpcResponse | None:
        """Stream closed: flush the decoder and check a final unterminated line."""
        if self.response is not None:
            return self.response

        self._buffer += self._decoder.decode(b"", final=True)
        tail, self._buffer = self._buffer, ""
        if tail.strip() and self._check_line(tail):
            return self.response
        return None

    def _check_line(self, line: str) -> bool:
        line = line.strip()
        if not line:
            return False

        self.lines_seen += 1
        try:
            parsed = json.loads(line)
        except json.JSONDecodeError:
            self.lines_ignored += 1
            logger.debug(f"Ignoring non-JSON helper output: {line[:200]!r}")
            return False

        if not is_response(parsed, self.request_id):
            self.lines_ignored += 1
            logger.debug(f"Ignoring uncorrelated helper message: {line[:200]!r}")
            return False

        self.response = JsonRpcResponse.from_dict(parsed)
        return True
