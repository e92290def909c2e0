__version__ = "1.0.0"

from .artifacts import ArtifactHandle, ArtifactStore, Reaper, SweepSummary, sweep
from .errors import (
    CompileError,
    ExecutionTimeout,
    InternalError,
    RunnerError,
    SecurityViolation,
    ValidationError,
)
from .execution.compiler import Compiler
from .execution.runner import Runner
from .normalizer import normalize
from .pipeline import CompileRequest, CompileResponse, Pipeline
from .policy import RunnerPolicy
from .security import ScanResult, SecurityFilter

__all__ = [
    "ArtifactHandle",
    "ArtifactStore",
    "CompileError",
    "CompileRequest",
    "CompileResponse",
    "Compiler",
    "ExecutionTimeout",
    "InternalError",
    "Pipeline",
    "Reaper",
    "Runner",
    "RunnerError",
    "RunnerPolicy",
    "ScanResult",
    "SecurityFilter",
    "SecurityViolation",
    "SweepSummary",
    "ValidationError",
    "normalize",
    "sweep",
    "__version__",
]
