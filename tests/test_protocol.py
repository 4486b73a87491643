"""Tests for JSON-RPC framing and response correlation."""

import json

import pytest

from rx_tools.protocol import JsonRpcRequest, JsonRpcResponse, ResponseScanner, is_response


class TestRequest:
    def test_line_format(self) -> None:
        request = JsonRpcRequest("tools/call", {"name": "list_patients", "arguments": {"doctorId": "DOC001"}}, 4)
        line = request.to_line()

        assert line.endswith(b"\n")
        assert line.count(b"\n") == 1
        assert json.loads(line) == {
            "jsonrpc": "2.0",
            "id": 4,
            "method": "tools/call",
            "params": {"name": "list_patients", "arguments": {"doctorId": "DOC001"}},
        }

    def test_embedded_newlines_are_escaped(self) -> None:
        line = JsonRpcRequest("tools/call", {"notes": "line one\nline two"}, 1).to_line()
        assert line.count(b"\n") == 1

    def test_unserializable_params(self) -> None:
        with pytest.raises(TypeError):
            JsonRpcRequest("tools/call", {"when": object()}, 1).to_line()

    def test_circular_params(self) -> None:
        params: dict = {}
        params["self"] = params
        with pytest.raises(ValueError):
            JsonRpcRequest("tools/call", params, 1).to_line()


class TestIsResponse:
    @pytest.mark.parametrize(
        "obj",
        [
            {"jsonrpc": "2.0", "id": 3, "result": None},
            {"jsonrpc": "2.0", "id": 3, "error": {"code": 1, "message": "x"}},
        ],
    )
    def test_matches(self, obj) -> None:
        assert is_response(obj, 3)

    @pytest.mark.parametrize(
        "obj",
        [
            {"jsonrpc": "2.0", "id": 4, "result": 1},
            {"jsonrpc": "2.0", "id": "3", "result": 1},
            {"jsonrpc": "2.0", "id": 3, "method": "tools/call"},
            {"jsonrpc": "2.0", "method": "notifications/progress"},
            [{"id": 3, "result": 1}],
            "3",
            None,
        ],
    )
    def test_rejects(self, obj) -> None:
        assert not is_response(obj, 3)

    def test_boolean_id_never_matches(self) -> None:
        assert not is_response({"id": True, "result": 1}, 1)


class TestScanner:
    def test_finds_response_among_noise(self) -> None:
        scanner = ResponseScanner(request_id=2)
        assert scanner.feed(b"booting\n{oops\n") is None
        assert scanner.feed(b'{"jsonrpc":"2.0","id":1,"result":"other"}\n') is None

        response = scanner.feed(b'{"jsonrpc":"2.0","id":2,"result":{"ok":true}}\n')

        assert response == JsonRpcResponse(id=2, result={"ok": True})
        assert scanner.lines_seen == 4
        assert scanner.lines_ignored == 3

    def test_response_split_across_chunks(self) -> None:
        scanner = ResponseScanner(request_id=1)
        assert scanner.feed(b'{"jsonrpc":"2.0",') is None
        assert scanner.feed(b'"id":1,"result":') is None
        assert scanner.feed(b"[1,2]}\n").result == [1, 2]

    def test_multibyte_character_split_across_chunks(self) -> None:
        raw = '{"id":1,"result":"Müller"}\n'.encode("utf-8")
        cut = raw.index("ü".encode("utf-8")) + 1
        scanner = ResponseScanner(request_id=1)

        assert scanner.feed(raw[:cut]) is None
        assert scanner.feed(raw[cut:]).result == "Müller"

    def test_invalid_utf8_is_ignored(self) -> None:
        scanner = ResponseScanner(request_id=1)
        assert scanner.feed(b"\xff\xfe garbage\n") is None
        assert scanner.lines_ignored == 1

    def test_finish_parses_unterminated_tail(self) -> None:
        scanner = ResponseScanner(request_id=5)
        assert scanner.feed(b'{"id":5,"error":{"code":400,"message":"bad input"}}') is None

        response = scanner.finish()

        assert response.is_error
        assert response.error == {"code": 400, "message": "bad input"}

    def test_finish_without_match(self) -> None:
        scanner = ResponseScanner(request_id=5)
        scanner.feed(b"partial garbage")
        assert scanner.finish() is None

    def test_first_match_is_kept(self) -> None:
        scanner = ResponseScanner(request_id=1)
        first = scanner.feed(b'{"id":1,"result":"first"}\n{"id":1,"result":"second"}\n')
        assert first.result == "first"
        assert scanner.feed(b'{"id":1,"result":"third"}\n').result == "first"
        assert scanner.finish().result == "first"

    def test_non_object_error_is_wrapped(self) -> None:
        scanner = ResponseScanner(request_id=1)
        response = scanner.feed(b'{"id":1,"error":"boom"}\n')
        assert response.error == {"message": "boom"}
