# Commands module - Function registry and execution
# The registry never discloses command paths; only the executor launches them

from .registry import FunctionDefinition, FunctionRegistry, LOOKUP_BY_ID, LOOKUP_BY_INDEX
from .executor import (
    FunctionExecutor, ExecutionResult, ExecutionStatus,
    ProcessLauncher, SubprocessLauncher, MISSING_ID,
)

__all__ = [
    "FunctionDefinition", "FunctionRegistry", "LOOKUP_BY_ID", "LOOKUP_BY_INDEX",
    "FunctionExecutor", "ExecutionResult", "ExecutionStatus",
    "ProcessLauncher", "SubprocessLauncher", "MISSING_ID",
]
