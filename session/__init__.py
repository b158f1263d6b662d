# Session module - Authentication, websocket channel and wire codec
# One session per process, no reconnect

from .messages import (
    OutboundMessage, InboundMessage, CredentialMessage, AuthResponse,
    encode, decode,
)
from .channel import SessionChannel, WebSocketChannel
from .auth import (
    Authenticator, TokenLoginAuthenticator, InlinePasswordAuthenticator,
    select_authenticator,
)

__all__ = [
    "OutboundMessage", "InboundMessage", "CredentialMessage", "AuthResponse",
    "encode", "decode",
    "SessionChannel", "WebSocketChannel",
    "Authenticator", "TokenLoginAuthenticator", "InlinePasswordAuthenticator",
    "select_authenticator",
]
