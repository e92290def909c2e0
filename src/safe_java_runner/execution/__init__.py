from .compiler import Compiler
from .engine import ProgramRunner, SourceCompiler
from .runner import Runner
from .types import (
    CompileFailure,
    CompileOutcome,
    CompileSuccess,
    Completed,
    ExecutionOutcome,
    TimedOut,
)

__all__ = [
    "Compiler",
    "CompileFailure",
    "CompileOutcome",
    "CompileSuccess",
    "Completed",
    "ExecutionOutcome",
    "ProgramRunner",
    "Runner",
    "SourceCompiler",
    "TimedOut",
]
