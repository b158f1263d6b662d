"""
Macron Test Configuration
-------------------------
Shared fixtures and fakes for all tests.

Tests never open a real websocket: the channel is an in-memory fake and
processes are recorded instead of spawned, unless a test asks for the
real launcher explicitly.
"""

import json
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from commands.executor import ProcessLauncher
from core.errors import TransportFailure
from infra.config import AgentConfig, parse_config
from session.channel import SessionChannel, WebSocketChannel


# =============================================================================
# Fakes
# =============================================================================

class FakeChannel(SessionChannel):
    """
    Scripted in-memory channel.

    Inbound items are returned in order (dicts are JSON-encoded); once the
    script runs out, receive() behaves like a closed connection.
    """

    def __init__(self, inbound: Iterable[Any] = ()):
        self.inbound: List[Any] = list(inbound)
        self.sent: List[str] = []
        self.closed = False

    async def send(self, text: str) -> None:
        if self.closed:
            raise TransportFailure("Send on closed channel")
        self.sent.append(text)

    async def receive(self) -> str:
        if self.closed or not self.inbound:
            raise TransportFailure("Connection closed")
        item = self.inbound.pop(0)
        if isinstance(item, dict):
            return json.dumps(item)
        return item

    async def close(self) -> None:
        self.closed = True

    @property
    def sent_messages(self) -> List[Dict[str, Any]]:
        return [json.loads(text) for text in self.sent]


class RecordingLauncher(ProcessLauncher):
    """Records commands instead of running them."""

    def __init__(self, missing: Optional[Set[str]] = None, returncode: int = 0):
        self.commands: List[str] = []
        self.missing = missing or set()
        self.returncode = returncode

    async def run(self, command: str) -> int:
        if command in self.missing:
            raise FileNotFoundError(2, "No such file or directory", command)
        self.commands.append(command)
        return self.returncode


# =============================================================================
# Test Isolation: Block Side Effects
# =============================================================================

@pytest.fixture(autouse=True)
def block_websocket_connect(monkeypatch):
    """
    Forbid real websocket connections during tests.

    Authenticators get a fake connector injected; if anything falls back
    to WebSocketChannel.connect, fail loudly instead of touching the network.
    """
    async def _blocked(*args, **kwargs):
        raise RuntimeError(
            "WebSocketChannel.connect() is forbidden during tests. "
            "Inject a connector returning a FakeChannel."
        )

    monkeypatch.setattr(WebSocketChannel, "connect", _blocked)


# =============================================================================
# Fixtures
# =============================================================================

SCENARIO_FUNCTIONS = [
    {"id": 1, "name": "ls", "description": "List files", "command": "/bin/ls"},
    {"id": 5, "name": "date", "description": "Print the date", "command": "/bin/date"},
]


@pytest.fixture(scope="session")
def project_root():
    return PROJECT_ROOT


@pytest.fixture
def scenario_functions() -> List[Dict[str, Any]]:
    return [dict(f) for f in SCENARIO_FUNCTIONS]


@pytest.fixture
def make_config(scenario_functions):
    """Factory for AgentConfig values built from plain dicts."""
    def _make(
        functions: Optional[List[Dict[str, Any]]] = None,
        email: Optional[str] = None,
        **agent: Any
    ) -> AgentConfig:
        server = {"url": "macron.test", "password": "s3cret"}
        if email is not None:
            server["email"] = email
        data: Dict[str, Any] = {
            "server": server,
            "functions": scenario_functions if functions is None else functions,
        }
        if agent:
            data["agent"] = agent
        return parse_config(data)
    return _make


@pytest.fixture
def launcher() -> RecordingLauncher:
    return RecordingLauncher()


@pytest.fixture
def make_launcher():
    return RecordingLauncher


@pytest.fixture
def make_channel():
    return FakeChannel
