"""
Channel Tests
-------------
WebSocketChannel over a stand-in connection object.
"""

import asyncio
import pytest
from pathlib import Path
import sys

from websockets.exceptions import ConnectionClosedError

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import MalformedMessage, TransportFailure
from session.channel import WebSocketChannel, redact_url


class StubConnection:
    """The slice of a websockets connection the channel uses."""

    def __init__(self, frames=()):
        self.frames = list(frames)
        self.sent = []
        self.closed = False

    async def send(self, text):
        if self.closed:
            raise ConnectionClosedError(None, None)
        self.sent.append(text)

    async def recv(self):
        if not self.frames:
            raise ConnectionClosedError(None, None)
        return self.frames.pop(0)

    async def close(self):
        self.closed = True


class TestWebSocketChannel:

    def test_frames_in_order(self):
        channel = WebSocketChannel(StubConnection(['{"a":1}', '{"b":2}']))

        async def read_two():
            return [await channel.receive(), await channel.receive()]

        assert asyncio.run(read_two()) == ['{"a":1}', '{"b":2}']

    def test_binary_frame_decoded(self):
        channel = WebSocketChannel(StubConnection([b'{"type":"exec"}']))

        assert asyncio.run(channel.receive()) == '{"type":"exec"}'

    def test_binary_frame_not_utf8(self):
        channel = WebSocketChannel(StubConnection([b"\xff"]))

        with pytest.raises(MalformedMessage):
            asyncio.run(channel.receive())

    def test_closed_connection_is_transport_failure(self):
        channel = WebSocketChannel(StubConnection())

        with pytest.raises(TransportFailure):
            asyncio.run(channel.receive())

    def test_send_after_close(self):
        connection = StubConnection()
        channel = WebSocketChannel(connection)
        asyncio.run(channel.close())

        assert connection.closed
        with pytest.raises(TransportFailure):
            asyncio.run(channel.send("{}"))


class TestRedaction:

    def test_session_token_hidden(self):
        url = redact_url("wss://h/v2/receiver?session_token=abc&x=1")

        assert "abc" not in url
        assert "x=1" in url

    def test_mask_is_readable(self):
        url = redact_url("wss://h/v2/receiver?session_token=abc")

        assert url == "wss://h/v2/receiver?session_token=***"

    def test_plain_url_untouched(self):
        assert redact_url("wss://h/v2/receiver") == "wss://h/v2/receiver"
