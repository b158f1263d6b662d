"""
Authentication
--------------
Establishes a trusted session before the dispatch loop starts.

Two strategies, picked by the shape of the server configuration:

- TokenLoginAuthenticator: email + password are exchanged at the REST
  login endpoint for a session token, which then qualifies the websocket
  URL. The auth message carries no password.
- InlinePasswordAuthenticator: the password goes inside the first
  websocket message.

Either way the server must answer the auth message with ``auth_success``.
Anything else is AuthRejected, which ends the process with status 2.
"""

from typing import Awaitable, Callable, Optional
from urllib.parse import urlencode
import logging

import httpx

from api.client import APIClient, APIConfig, APIStatus
from core.errors import AuthRejected, TransportFailure
from infra.config import AgentConfig, ServerConfig
from .channel import SessionChannel, WebSocketChannel
from .messages import (
    AuthResponse, CredentialMessage, MSG_AUTH_SUCCESS, auth_message, decode, encode,
)


LOGIN_ENDPOINT = "/v2/login"

Connector = Callable[[str], Awaitable[SessionChannel]]


class Authenticator:
    """Produces an authenticated SessionChannel or raises."""

    def __init__(
        self,
        server: ServerConfig,
        receiver_name: str,
        connector: Optional[Connector] = None,
        disclose_password: Optional[bool] = None
    ):
        self.server = server
        self.receiver_name = receiver_name
        self._disclose_password = disclose_password
        self._connector = connector or WebSocketChannel.connect
        self._logger = logging.getLogger("macron.session.auth")

    @property
    def disclosure_password(self) -> Optional[str]:
        """Password re-attached to ``functions`` replies, if any.

        ``disclose_password`` forces it on or off; left unset, each
        strategy decides.
        """
        if self._disclose_password is None:
            return self._default_disclosure()
        return self.server.password if self._disclose_password else None

    def _default_disclosure(self) -> Optional[str]:
        return None

    async def authenticate(self) -> SessionChannel:
        raise NotImplementedError

    async def _handshake(self, url: str, password: Optional[str]) -> SessionChannel:
        """Connect, send the auth message and wait for exactly one reply."""
        channel = await self._connector(url)
        try:
            await channel.send(encode(auth_message(self.receiver_name, password=password)))
            reply = decode(await channel.receive())
        except BaseException:
            await channel.close()
            raise

        if reply.type != MSG_AUTH_SUCCESS:
            await channel.close()
            self._logger.error("Cannot confirm authentication")
            raise AuthRejected(
                f"Server answered {reply.type!r} instead of {MSG_AUTH_SUCCESS!r}",
                details={"type": reply.type, "error": reply.error},
            )

        self._logger.info("Auth success")
        return channel


class TokenLoginAuthenticator(Authenticator):
    """REST login for a session token, then a token-qualified websocket."""

    def __init__(
        self,
        server: ServerConfig,
        receiver_name: str,
        connector: Optional[Connector] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        disclose_password: Optional[bool] = None
    ):
        super().__init__(server, receiver_name, connector, disclose_password)
        if server.email is None:
            raise ValueError("Token login needs server.email")
        self._api = APIClient(
            APIConfig(name="login", base_url=server.http_base_url),
            transport=transport,
        )

    async def login(self) -> str:
        """Exchange email + password for a session token."""
        creds = CredentialMessage(email=self.server.email, password=self.server.password)
        response = await self._api.post(LOGIN_ENDPOINT, data=creds.to_dict())

        if response.status == APIStatus.AUTH_ERROR:
            raise AuthRejected(
                f"Login refused ({response.status_code})",
                details={"status_code": response.status_code},
            )
        if not response.success:
            raise TransportFailure(
                f"Login request failed: {response.error}",
                details={"status_code": response.status_code},
            )

        token = AuthResponse.from_json(response.data or "").session_token
        self._logger.info(f"Logged in as {self.server.email}")
        return token

    def session_url(self, token: str) -> str:
        return f"{self.server.receiver_url}?{urlencode({'session_token': token})}"

    async def authenticate(self) -> SessionChannel:
        token = await self.login()
        return await self._handshake(self.session_url(token), password=None)


class InlinePasswordAuthenticator(Authenticator):
    """Password presented in the first websocket message."""

    def _default_disclosure(self) -> Optional[str]:
        return self.server.password

    async def authenticate(self) -> SessionChannel:
        return await self._handshake(self.server.receiver_url, password=self.server.password)


def select_authenticator(
    config: AgentConfig,
    connector: Optional[Connector] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> Authenticator:
    """Pick the strategy matching the configured credentials."""
    receiver_name = config.agent.receiver_name
    disclose = config.agent.disclose_password
    if config.server.uses_token_login:
        return TokenLoginAuthenticator(
            config.server, receiver_name, connector=connector, transport=transport,
            disclose_password=disclose,
        )
    return InlinePasswordAuthenticator(
        config.server, receiver_name, connector=connector, disclose_password=disclose
    )
