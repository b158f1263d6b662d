"""
Function Executor
-----------------
Resolves an exec id against the registry and runs the matching command.

Rules:
- No shell, no arguments, no captured output, no timeout
- An unresolved id never spawns anything
- The caller waits until the command exits
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Optional
import asyncio
import logging

from core.errors import FunctionNotFound, LaunchFailure, MacronError
from .registry import FunctionDefinition, FunctionRegistry


# Stand-in for an exec message without an id. No policy resolves it.
MISSING_ID = -1


class ExecutionStatus(Enum):
    """Outcome of one exec request."""
    SUCCESS = auto()
    NOT_FOUND = auto()
    LAUNCH_FAILURE = auto()


@dataclass
class ExecutionResult:
    """Result of running one function."""
    key: int
    status: ExecutionStatus
    function: Optional[FunctionDefinition] = None
    returncode: Optional[int] = None
    error: Optional[str] = None
    execution_time_ms: float = 0.0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def success(self) -> bool:
        return self.status == ExecutionStatus.SUCCESS

    def to_error(self) -> Optional[MacronError]:
        """The exception matching this result, or None on success."""
        if self.status == ExecutionStatus.NOT_FOUND:
            return FunctionNotFound(self.key)
        if self.status == ExecutionStatus.LAUNCH_FAILURE:
            return LaunchFailure(
                self.error or "Launch failed",
                details={"function": self.function.name if self.function else None},
            )
        return None

    def raise_for_status(self) -> None:
        error = self.to_error()
        if error is not None:
            raise error

    def __repr__(self) -> str:
        status = "✓" if self.success else "✗"
        name = self.function.name if self.function else self.key
        return f"ExecutionResult({status} {name}: {self.error or self.returncode})"


class ProcessLauncher:
    """Capability to run an external program and wait for it."""

    async def run(self, command: str) -> int:
        """Run ``command`` to completion and return its exit status.

        Raises OSError when the program cannot be started and ValueError
        when the command cannot be passed to the OS (embedded NUL).
        """
        raise NotImplementedError


class SubprocessLauncher(ProcessLauncher):
    """Spawns commands with asyncio, discarding their output."""

    async def run(self, command: str) -> int:
        process = await asyncio.create_subprocess_exec(
            command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        return await process.wait()


class FunctionExecutor:
    """
    Executes registry functions by exec id.

    This is the ONLY place a configured command gets launched.
    """

    def __init__(
        self,
        registry: FunctionRegistry,
        launcher: Optional[ProcessLauncher] = None
    ):
        self.registry = registry
        self.launcher = launcher or SubprocessLauncher()
        self._logger = logging.getLogger("macron.commands.executor")

    async def execute(self, key: Optional[int]) -> ExecutionResult:
        """Resolve ``key`` and run the function it names."""
        if key is None:
            key = MISSING_ID

        func = self.registry.resolve(key)
        if func is None:
            self._logger.warning(f"No function for exec id {key} (lookup={self.registry.lookup})")
            return ExecutionResult(key=key, status=ExecutionStatus.NOT_FOUND)

        self._logger.info(f"Executing function {func.name!r} (exec id {key})")
        start_time = datetime.now(timezone.utc)

        try:
            returncode = await self.launcher.run(func.command)
        except (OSError, ValueError) as e:
            self._logger.error(f"Could not launch {func.name!r}: {e}")
            return ExecutionResult(
                key=key,
                status=ExecutionStatus.LAUNCH_FAILURE,
                function=func,
                error=f"Could not launch {func.name}: {e}",
            )

        execution_time = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000

        if returncode != 0:
            self._logger.warning(f"Function {func.name!r} exited with status {returncode}")
        else:
            self._logger.info(f"Function {func.name!r} finished in {execution_time:.1f}ms")

        return ExecutionResult(
            key=key,
            status=ExecutionStatus.SUCCESS,
            function=func,
            returncode=returncode,
            execution_time_ms=execution_time,
        )
