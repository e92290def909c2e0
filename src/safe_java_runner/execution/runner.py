from __future__ import annotations

import logging
from pathlib import Path

from .process import render_command, run_bounded
from .types import Completed, ExecutionOutcome, TimedOut

logger = logging.getLogger(__name__)


class Runner:
    """Launch a compiled artifact under a strict wall-clock limit.

    Example:
        ```python
        runner = Runner(["java", "-cp", "{work_dir}", "{entry_class}"])
        outcome = runner.run("Main", Path("/tmp/run_1"), timeout_seconds=5)
        ```
    """

    def __init__(self, command: list[str], *, max_output_chars: int | None = None) -> None:
        """Store the run command template and output cap.

        Example:
            ```python
            runner = Runner(["java", "-cp", "{work_dir}", "{entry_class}"], max_output_chars=131072)
            ```
        """
        if not command:
            raise ValueError("Runner requires a non-empty command template")
        self._command = list(command)
        self._max_output_chars = max_output_chars

    def run(self, artifact: str, work_dir: Path, timeout_seconds: int) -> ExecutionOutcome:
        """Run ``artifact`` (the entry class) from ``work_dir``.

        Stdin is the null device, so a program reading input sees EOF
        instead of blocking.

        Example:
            ```python
            outcome = runner.run(handle.entry_class, handle.work_dir, timeout_seconds=5)
            ```
        """
        cmd = render_command(
            self._command,
            work_dir=work_dir,
            out_dir=work_dir,
            entry_class=artifact,
            artifact_id=work_dir.name,
            source_path=work_dir / f"{artifact}.java",
        )
        result = run_bounded(
            cmd,
            cwd=work_dir,
            timeout_seconds=max(1, int(timeout_seconds)),
            max_output_chars=self._max_output_chars,
        )
        if result.timed_out:
            logger.info("Execution of %s timed out after %ss", work_dir.name, timeout_seconds)
            return TimedOut(timeout_seconds=timeout_seconds)
        if result.overflowed:
            logger.info("Execution of %s stopped after exceeding the output cap", work_dir.name)
        return Completed(
            stdout=result.stdout,
            stderr=result.stderr,
            returncode=result.returncode,
            truncated=result.overflowed,
        )
