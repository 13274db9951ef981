"""Tests for newline framing and the stdio line server."""

import asyncio
import json

import pytest

from office_whisperer.transport import LineBuffer, LineServer


class FakeReader:
    """Returns the given byte chunks one per read, then EOF."""

    def __init__(self, chunks):
        self._chunks = list(chunks)

    async def read(self, n):
        if not self._chunks:
            return b""
        return self._chunks.pop(0)


class FakeWriter:
    def __init__(self):
        self.data = b""

    def write(self, data):
        self.data += data

    async def drain(self):
        pass

    def messages(self):
        return [json.loads(line) for line in self.data.decode("utf-8").splitlines()]


def serve(dispatcher, chunks):
    writer = FakeWriter()
    code = asyncio.run(LineServer(dispatcher).run(FakeReader(chunks), writer))
    return code, writer


# ── LineBuffer ─────────────────────────────────────────────────────────────


class TestLineBuffer:

    def test_complete_lines(self):
        buffer = LineBuffer()
        assert buffer.feed('{"a":1}\n{"b":2}\n') == ['{"a":1}', '{"b":2}']
        assert buffer.pending == ""

    def test_partial_line_carried_over(self):
        buffer = LineBuffer()
        assert buffer.feed('{"a"') == []
        assert buffer.feed(':1}\n') == ['{"a":1}']

    def test_blank_lines_skipped(self):
        buffer = LineBuffer()
        assert buffer.feed("\n   \n{}\n") == ["{}"]

    def test_crlf_stripped(self):
        buffer = LineBuffer()
        assert buffer.feed("{}\r\n") == ["{}"]

    def test_flush_returns_unterminated_tail(self):
        buffer = LineBuffer()
        buffer.feed('{"tail":true}')
        assert buffer.flush() == ['{"tail":true}']
        assert buffer.flush() == []


# ── LineServer ─────────────────────────────────────────────────────────────


class TestLineServer:

    def test_request_split_across_chunks(self, dispatcher):
        request = json.dumps({"jsonrpc": "2.0", "id": 1, "method": "initialize"}).encode()
        code, writer = serve(dispatcher, [request[:10], request[10:] + b"\n"])
        assert code == 0
        [message] = writer.messages()
        assert message["id"] == 1
        assert message["result"]["serverInfo"]["name"] == "office-whisperer"

    def test_multibyte_character_split_across_chunks(self, dispatcher):
        request = json.dumps({"jsonrpc": "2.0", "id": "é", "method": "initialize"}, ensure_ascii=False).encode()
        cut = request.index("é".encode()) + 1
        code, writer = serve(dispatcher, [request[:cut], request[cut:] + b"\n"])
        assert writer.messages()[0]["id"] == "é"

    def test_final_line_without_newline_is_processed(self, dispatcher):
        request = json.dumps({"jsonrpc": "2.0", "id": 7, "method": "initialize"}).encode()
        _, writer = serve(dispatcher, [request])
        assert writer.messages()[0]["id"] == 7

    def test_malformed_line_dropped(self, dispatcher):
        good = json.dumps({"jsonrpc": "2.0", "id": 2, "method": "initialize"}).encode()
        _, writer = serve(dispatcher, [b"{not json}\n" + good + b"\n"])
        assert [m["id"] for m in writer.messages()] == [2]

    def test_malformed_line_between_valid_lines(self, dispatcher):
        first = json.dumps({"jsonrpc": "2.0", "id": 1, "method": "initialize"}).encode()
        last = json.dumps({"jsonrpc": "2.0", "id": 3, "method": "initialize"}).encode()
        code, writer = serve(dispatcher, [first + b"\n{\"jsonrpc\": \"2.0\", \"id\": 2,\n" + last + b"\n"])
        assert code == 0
        assert sorted(m["id"] for m in writer.messages()) == [1, 3]

    def test_notification_not_answered(self, dispatcher):
        note = json.dumps({"jsonrpc": "2.0", "method": "notifications/initialized"}).encode()
        _, writer = serve(dispatcher, [note + b"\n"])
        assert writer.data == b""

    def test_one_response_per_request(self, dispatcher):
        lines = b"".join(
            json.dumps({"jsonrpc": "2.0", "id": i, "method": "initialize"}).encode() + b"\n" for i in range(5)
        )
        _, writer = serve(dispatcher, [lines])
        assert sorted(m["id"] for m in writer.messages()) == [0, 1, 2, 3, 4]

    def test_responses_are_single_lines(self, dispatcher):
        request = json.dumps({"jsonrpc": "2.0", "id": 1, "method": "tools/list"}).encode()
        _, writer = serve(dispatcher, [request + b"\n"])
        assert writer.data.count(b"\n") == 1

    def test_empty_input_exits_cleanly(self, dispatcher):
        code, writer = serve(dispatcher, [])
        assert code == 0
        assert writer.data == b""
