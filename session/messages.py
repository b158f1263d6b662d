"""
Message Codec
-------------
Wire shapes exchanged with the server, and their JSON encoding.

Every message is a JSON object tagged by a "type" string. Optional fields
are left out of the JSON entirely when absent.

Inbound types the agent acts on:
    auth_success   handshake accepted
    functions      disclose the registry
    exec           run one function by id
Anything else decodes fine and is ignored by the dispatcher.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import json

from core.errors import MalformedMessage


# Outbound types
MSG_AUTH = "auth"
MSG_FUNCTIONS = "functions"

# Inbound types
MSG_AUTH_SUCCESS = "auth_success"
MSG_EXEC = "exec"


def _parse_object(text: Any) -> Dict[str, Any]:
    if isinstance(text, (bytes, bytearray)):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedMessage(f"Frame is not valid UTF-8: {e}")
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise MalformedMessage(f"Invalid JSON: {e}")
    if not isinstance(data, dict):
        raise MalformedMessage(f"Expected a JSON object, got {type(data).__name__}")
    return data


def _required_str(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise MalformedMessage(f"Field {key!r} must be a string")
    return value


def _optional_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise MalformedMessage(f"Field {key!r} must be a string")
    return value


def _optional_id(data: Dict[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    # bool is an int subclass; true/false is not an id
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise MalformedMessage(f"Field {key!r} must be a non-negative integer")
    return value


def _compact(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in fields.items() if v is not None}


@dataclass(frozen=True)
class OutboundMessage:
    """Agent → Server."""
    type: str
    receiver_name: str
    client_id: Optional[str] = None
    password: Optional[str] = None
    functions: Optional[List[Dict[str, Any]]] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "type": self.type,
            "client_id": self.client_id,
            "password": self.password,
            "receiver_name": self.receiver_name,
            "functions": self.functions,
        })

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str) -> "OutboundMessage":
        data = _parse_object(text)
        functions = data.get("functions")
        if functions is not None and not (
            isinstance(functions, list) and all(isinstance(f, dict) for f in functions)
        ):
            raise MalformedMessage("Field 'functions' must be a list of objects")
        return cls(
            type=_required_str(data, "type"),
            receiver_name=_required_str(data, "receiver_name"),
            client_id=_optional_str(data, "client_id"),
            password=_optional_str(data, "password"),
            functions=functions,
        )

    def __repr__(self) -> str:
        # Never show the password
        count = len(self.functions) if self.functions is not None else None
        return (
            f"OutboundMessage(type={self.type}, client_id={self.client_id}, "
            f"functions={count})"
        )


@dataclass(frozen=True)
class InboundMessage:
    """Server → Agent."""
    type: str
    client_id: Optional[str] = None
    error: Optional[str] = None
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "type": self.type,
            "client_id": self.client_id,
            "error": self.error,
            "id": self.id,
        })

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str) -> "InboundMessage":
        data = _parse_object(text)
        return cls(
            type=_required_str(data, "type"),
            client_id=_optional_str(data, "client_id"),
            error=_optional_str(data, "error"),
            id=_optional_id(data, "id"),
        )


@dataclass(frozen=True)
class CredentialMessage:
    """Body of the REST login request."""
    email: str
    password: str

    def to_dict(self) -> Dict[str, Any]:
        return {"email": self.email, "password": self.password}

    def __repr__(self) -> str:
        return f"CredentialMessage(email={self.email})"


@dataclass(frozen=True)
class AuthResponse:
    """Body of the REST login response."""
    type: str
    session_token: str

    @classmethod
    def from_json(cls, text: Any) -> "AuthResponse":
        data = _parse_object(text)
        return cls(
            type=_required_str(data, "type"),
            session_token=_required_str(data, "session_token"),
        )

    def __repr__(self) -> str:
        return f"AuthResponse(type={self.type})"


def encode(message: OutboundMessage) -> str:
    """Serialize an outbound message to a text frame."""
    return message.to_json()


def decode(text: Any) -> InboundMessage:
    """Parse a text frame into an inbound message.

    Raises MalformedMessage when the frame is not a tagged JSON object.
    """
    return InboundMessage.from_json(text)


def auth_message(receiver_name: str, password: Optional[str] = None) -> OutboundMessage:
    return OutboundMessage(type=MSG_AUTH, receiver_name=receiver_name, password=password)


def functions_message(
    receiver_name: str,
    functions: List[Dict[str, Any]],
    client_id: Optional[str] = None,
    password: Optional[str] = None,
) -> OutboundMessage:
    return OutboundMessage(
        type=MSG_FUNCTIONS,
        receiver_name=receiver_name,
        client_id=client_id,
        password=password,
        functions=functions,
    )
