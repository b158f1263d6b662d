# Core module - Session lifecycle, dispatch loop and error taxonomy
# Dispatcher and Agent live in core.dispatcher / core.agent; import them
# from there (they depend on commands and session, which depend on us)

from .state_machine import StateMachine, SessionState, StateTransition
from .errors import (
    ErrorCategory, ErrorHandler, MacronError,
    ConfigMissing, ConfigInvalid, AuthRejected, TransportFailure,
    MalformedMessage, FunctionNotFound, LaunchFailure,
    exit_code_for,
)

__all__ = [
    "StateMachine", "SessionState", "StateTransition",
    "ErrorCategory", "ErrorHandler", "MacronError",
    "ConfigMissing", "ConfigInvalid", "AuthRejected", "TransportFailure",
    "MalformedMessage", "FunctionNotFound", "LaunchFailure",
    "exit_code_for",
]
