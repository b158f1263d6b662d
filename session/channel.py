"""
Session Channel
---------------
The one persistent, ordered WebSocket connection to the server.

Frames are passed through in the order the transport delivers them.
There is no retry and no reconnect: any transport error ends the session.
"""

from typing import Any, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit
import asyncio
import logging

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from core.errors import MalformedMessage, TransportFailure


SECRET_QUERY_PARAMS = {"session_token"}


def redact_url(url: str) -> str:
    """Hide session tokens before a URL goes into a log line."""
    parts = urlsplit(url)
    if not parts.query:
        return url
    query = [
        (k, "***" if k in SECRET_QUERY_PARAMS else v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(query, safe="*")))


class SessionChannel:
    """Send/receive of discrete text messages over one connection."""

    async def send(self, text: str) -> None:
        raise NotImplementedError

    async def receive(self) -> str:
        raise NotImplementedError

    async def close(self) -> None:
        raise NotImplementedError


class WebSocketChannel(SessionChannel):
    """SessionChannel backed by a ``websockets`` client connection."""

    def __init__(self, connection: Any, url: str = ""):
        self._connection = connection
        self._url = url
        self._logger = logging.getLogger("macron.session.channel")

    @classmethod
    async def connect(
        cls,
        url: str,
        open_timeout: Optional[float] = 10.0,
        ping_interval: Optional[float] = 20.0,
    ) -> "WebSocketChannel":
        """Open the connection or raise TransportFailure."""
        logger = logging.getLogger("macron.session.channel")
        logger.info(f"Connecting to websocket endpoint at {redact_url(url)}")
        try:
            connection = await ws_connect(
                url,
                open_timeout=open_timeout,
                ping_interval=ping_interval,
                max_size=2 ** 20,
            )
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            raise TransportFailure(
                f"Could not connect to {redact_url(url)}: {e}",
                details={"url": redact_url(url)},
            ) from e
        return cls(connection, url)

    async def send(self, text: str) -> None:
        try:
            await self._connection.send(text)
        except (ConnectionClosed, OSError) as e:
            raise TransportFailure(f"Send failed: {e}") from e

    async def receive(self) -> str:
        try:
            frame = await self._connection.recv()
        except ConnectionClosed as e:
            raise TransportFailure(f"Connection closed: {e}") from e
        except OSError as e:
            raise TransportFailure(f"Receive failed: {e}") from e

        if isinstance(frame, bytes):
            try:
                return frame.decode("utf-8")
            except UnicodeDecodeError as e:
                raise MalformedMessage(f"Binary frame is not UTF-8 text: {e}") from e
        return frame

    async def close(self) -> None:
        try:
            await self._connection.close()
        except (ConnectionClosed, OSError) as e:
            self._logger.debug(f"Error while closing connection: {e}")
