from __future__ import annotations

from pathlib import Path
from typing import Protocol

from .types import CompileOutcome, ExecutionOutcome


class SourceCompiler(Protocol):
    def compile(self, source_path: Path, out_dir: Path, timeout_seconds: int) -> CompileOutcome:
        """Compile one source file and return the classified outcome.

        Example:
            ```python
            outcome = compiler.compile(Path("/tmp/run_1/Main.java"), Path("/tmp/run_1"), 10)
            ```
        """
        ...


class ProgramRunner(Protocol):
    def run(self, artifact: str, work_dir: Path, timeout_seconds: int) -> ExecutionOutcome:
        """Run one compiled artifact and return the classified outcome.

        Example:
            ```python
            outcome = runner.run("Main", Path("/tmp/run_1"), 5)
            ```
        """
        ...
