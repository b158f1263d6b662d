"""
Error Handling Tests
--------------------
Categories, exit codes, the error handler and the CLI's use of them.
"""

import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import (
    AuthRejected, ConfigInvalid, ConfigMissing, ErrorCategory, ErrorHandler,
    FunctionNotFound, LaunchFailure, MalformedMessage, TransportFailure,
    exit_code_for,
)


class TestExitCodes:

    def test_auth_rejected_exits_2(self):
        assert exit_code_for(AuthRejected("no")) == 2

    @pytest.mark.parametrize("error", [
        ConfigMissing("x"), ConfigInvalid("x"), TransportFailure("x"),
        MalformedMessage("x"), FunctionNotFound(3), LaunchFailure("x"),
    ])
    def test_other_errors_exit_1(self, error):
        assert exit_code_for(error) == 1

    def test_interrupt_and_unknown(self):
        assert exit_code_for(KeyboardInterrupt()) == 130
        assert exit_code_for(RuntimeError("x")) == 1


class TestRecoverable:

    def test_only_exec_failures_recoverable(self):
        assert FunctionNotFound(1).recoverable
        assert LaunchFailure("x").recoverable
        assert not TransportFailure("x").recoverable
        assert not MalformedMessage("x").recoverable
        assert not AuthRejected("x").recoverable

    def test_function_not_found_message(self):
        error = FunctionNotFound(7)

        assert str(error) == "Function not found"
        assert error.details == {"key": 7}
        assert error.category == ErrorCategory.FUNCTION_NOT_FOUND


class TestErrorHandler:

    def test_handle_logs_and_records(self, caplog):
        handler = ErrorHandler()

        with caplog.at_level("WARNING", logger="macron.errors"):
            record = handler.handle(FunctionNotFound(4))

        assert record.category == ErrorCategory.FUNCTION_NOT_FOUND
        assert record.stack_trace is None
        assert "FUNCTION_NOT_FOUND: Function not found" in caplog.text

    def test_raised_error_keeps_trace(self):
        handler = ErrorHandler()
        try:
            raise LaunchFailure("cannot exec")
        except LaunchFailure as e:
            record = handler.handle(e)

        assert "cannot exec" in record.stack_trace

    def test_stats_and_bounded_history(self):
        handler = ErrorHandler(max_history=3)
        for key in range(4):
            handler.handle(FunctionNotFound(key))
        handler.handle(LaunchFailure("x"))

        assert len(handler.history) == 3
        assert handler.get_error_stats() == {"FUNCTION_NOT_FOUND": 2, "LAUNCH_FAILURE": 1}

        handler.clear_history()
        assert handler.get_error_stats() == {}


class TestMain:
    """The CLI maps startup failures to exit codes."""

    def test_missing_config_exits_1(self, tmp_path):
        from main import main

        assert main(["--config", str(tmp_path / "missing.toml")]) == 1

    def test_invalid_config_exits_1(self, tmp_path):
        from main import main

        path = tmp_path / "config.toml"
        path.write_text('[server]\nurl = "x"\n')

        assert main(["--config", str(path)]) == 1

    def test_check_lists_functions(self, tmp_path):
        from main import main

        path = tmp_path / "config.toml"
        path.write_text(
            '[server]\nurl = "macron.test"\npassword = "pw"\n\n'
            '[[functions]]\nid = 1\nname = "ls"\ncommand = "/bin/ls"\n'
        )

        assert main(["--config", str(path), "--check"]) == 0

    def test_auth_rejection_exits_2(self, tmp_path, monkeypatch):
        import main as main_module
        from core.agent import Agent

        path = tmp_path / "config.toml"
        path.write_text('[server]\nurl = "macron.test"\npassword = "pw"\n')

        async def rejected(self):
            raise AuthRejected("Cannot confirm authentication")

        monkeypatch.setattr(Agent, "run", rejected)

        assert main_module.main(["--config", str(path)]) == 2
