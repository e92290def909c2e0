from __future__ import annotations

import logging
from pathlib import Path

from .process import render_command, run_bounded
from .types import CompileFailure, CompileOutcome, CompileSuccess

logger = logging.getLogger(__name__)


class Compiler:
    """Compile one source file with the external toolchain.

    Example:
        ```python
        compiler = Compiler(["javac", "-d", "{out_dir}", "{source_path}"])
        outcome = compiler.compile(Path("/tmp/run_1/Main.java"), Path("/tmp/run_1"), timeout_seconds=10)
        ```
    """

    def __init__(self, command: list[str], *, max_output_chars: int | None = None) -> None:
        """Store the compile command template.

        Example:
            ```python
            compiler = Compiler(["javac", "-d", "{out_dir}", "{source_path}"], max_output_chars=131072)
            ```
        """
        if not command:
            raise ValueError("Compiler requires a non-empty command template")
        self._command = list(command)
        self._max_output_chars = max_output_chars

    def compile(self, source_path: Path, out_dir: Path, timeout_seconds: int) -> CompileOutcome:
        """Compile ``source_path`` into ``out_dir`` within ``timeout_seconds``.

        Example:
            ```python
            outcome = compiler.compile(handle.source_path, handle.work_dir, timeout_seconds=10)
            ```
        """
        cmd = render_command(
            self._command,
            source_path=source_path,
            out_dir=out_dir,
            work_dir=out_dir,
            entry_class=source_path.stem,
            artifact_id=out_dir.name,
        )
        result = run_bounded(
            cmd,
            cwd=out_dir,
            timeout_seconds=max(1, int(timeout_seconds)),
            max_output_chars=self._max_output_chars,
        )
        if result.timed_out:
            logger.info("Compilation of %s timed out after %ss", out_dir.name, timeout_seconds)
            return CompileFailure(
                error_text=f"Compilation timed out after {timeout_seconds}s",
                timed_out=True,
            )
        if result.returncode != 0:
            return CompileFailure(
                error_text=result.stderr
                or result.stdout
                or f"Compiler exited with status {result.returncode}"
            )
        return CompileSuccess(output=result.stdout)
