"""
Contract Tests
---------------
API surface tests.

These tests verify:
- Public symbols exist
- Wire constants stay stable
- Breaking changes cause test failure
"""

import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))


class TestCoreAPI:
    """Verify core exports."""

    def test_exports_exist(self):
        from core import (
            StateMachine, SessionState, ErrorCategory, ErrorHandler, MacronError,
            ConfigMissing, AuthRejected, TransportFailure, MalformedMessage,
            FunctionNotFound, LaunchFailure, exit_code_for,
        )
        from core.dispatcher import Dispatcher
        from core.agent import Agent

        assert Dispatcher is not None
        assert Agent is not None

    def test_error_category_values(self):
        from core.errors import ErrorCategory

        for name in (
            "CONFIG_MISSING", "AUTH_REJECTED", "TRANSPORT_FAILURE",
            "MALFORMED_MESSAGE", "FUNCTION_NOT_FOUND", "LAUNCH_FAILURE",
        ):
            assert hasattr(ErrorCategory, name)

    def test_session_states(self):
        from core.state_machine import SessionState

        assert [s.name for s in SessionState] == [
            "DISCONNECTED", "AUTHENTICATING", "AUTHENTICATED", "CLOSED",
        ]


class TestWireConstants:
    """Values the server depends on."""

    def test_message_types(self):
        from session import messages

        assert messages.MSG_AUTH == "auth"
        assert messages.MSG_AUTH_SUCCESS == "auth_success"
        assert messages.MSG_FUNCTIONS == "functions"
        assert messages.MSG_EXEC == "exec"

    def test_endpoints(self):
        from session.auth import LOGIN_ENDPOINT
        from infra.config import CONFIG_ENV_VAR, ServerConfig

        assert LOGIN_ENDPOINT == "/v2/login"
        assert CONFIG_ENV_VAR == "MACRON_CONFIG"
        assert ServerConfig(url="h", password="p").receiver_url == "wss://h/v2/receiver"


class TestPackageExports:
    """Verify package-level __all__ lists resolve."""

    @pytest.mark.parametrize("package", ["api", "commands", "core", "infra", "session"])
    def test_all_resolves(self, package):
        module = __import__(package)

        for name in module.__all__:
            assert hasattr(module, name), f"{package}.{name} missing"
