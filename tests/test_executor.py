"""
Executor Tests
--------------
Resolution, launching and failure reporting of the function executor.
"""

import asyncio
import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from commands.executor import (
    ExecutionStatus, FunctionExecutor, MISSING_ID, SubprocessLauncher,
)
from commands.registry import FunctionDefinition, FunctionRegistry, LOOKUP_BY_ID
from core.errors import FunctionNotFound, LaunchFailure


@pytest.fixture
def registry():
    return FunctionRegistry([
        FunctionDefinition(id=1, name="ls", command="/bin/ls"),
        FunctionDefinition(id=5, name="date", command="/bin/date"),
    ])


class TestExecute:
    """Scenario from the protocol: lookup by list position."""

    def test_runs_by_position(self, registry, launcher):
        executor = FunctionExecutor(registry, launcher=launcher)

        first = asyncio.run(executor.execute(0))
        second = asyncio.run(executor.execute(1))

        assert first.success and second.success
        assert launcher.commands == ["/bin/ls", "/bin/date"]

    def test_out_of_range_never_spawns(self, registry, launcher):
        executor = FunctionExecutor(registry, launcher=launcher)

        result = asyncio.run(executor.execute(2))

        assert result.status == ExecutionStatus.NOT_FOUND
        assert launcher.commands == []
        with pytest.raises(FunctionNotFound):
            result.raise_for_status()

    def test_missing_id_is_not_found(self, registry, launcher):
        executor = FunctionExecutor(registry, launcher=launcher)

        result = asyncio.run(executor.execute(None))

        assert result.key == MISSING_ID
        assert result.status == ExecutionStatus.NOT_FOUND
        assert launcher.commands == []

    def test_id_lookup(self, launcher):
        registry = FunctionRegistry([
            FunctionDefinition(id=1, name="ls", command="/bin/ls"),
            FunctionDefinition(id=5, name="date", command="/bin/date"),
        ], lookup=LOOKUP_BY_ID)
        executor = FunctionExecutor(registry, launcher=launcher)

        assert asyncio.run(executor.execute(5)).success
        assert not asyncio.run(executor.execute(0)).success
        assert launcher.commands == ["/bin/date"]

    def test_launch_failure_distinct_from_not_found(self, registry, make_launcher):
        launcher = make_launcher(missing={"/bin/ls"})
        executor = FunctionExecutor(registry, launcher=launcher)

        result = asyncio.run(executor.execute(0))

        assert result.status == ExecutionStatus.LAUNCH_FAILURE
        assert result.function.name == "ls"
        assert isinstance(result.to_error(), LaunchFailure)
        with pytest.raises(LaunchFailure):
            result.raise_for_status()

    def test_nonzero_exit_still_success(self, registry, make_launcher):
        launcher = make_launcher(returncode=3)
        executor = FunctionExecutor(registry, launcher=launcher)

        result = asyncio.run(executor.execute(1))

        assert result.success
        assert result.returncode == 3
        assert result.to_error() is None


class TestSubprocessLauncher:
    """The real launcher, against harmless programs."""

    def test_runs_program(self):
        # The interpreter reads an empty script from /dev/null and exits 0
        returncode = asyncio.run(SubprocessLauncher().run(sys.executable))

        assert returncode == 0

    def test_missing_program_raises_oserror(self, tmp_path):
        missing = str(tmp_path / "does-not-exist")

        with pytest.raises(OSError):
            asyncio.run(SubprocessLauncher().run(missing))

    def test_executor_reports_missing_program(self, tmp_path):
        registry = FunctionRegistry([
            FunctionDefinition(id=0, name="ghost", command=str(tmp_path / "ghost")),
        ])
        executor = FunctionExecutor(registry)

        result = asyncio.run(executor.execute(0))

        assert result.status == ExecutionStatus.LAUNCH_FAILURE

    def test_embedded_nul_is_launch_failure(self):
        registry = FunctionRegistry([
            FunctionDefinition(id=0, name="broken", command="/bin/true\x00x"),
        ])
        executor = FunctionExecutor(registry)

        result = asyncio.run(executor.execute(0))

        assert result.status == ExecutionStatus.LAUNCH_FAILURE
        assert isinstance(result.to_error(), LaunchFailure)
