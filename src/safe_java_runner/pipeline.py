from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from . import formatting
from .artifacts import ArtifactHandle, ArtifactStore
from .errors import (
    CompileError,
    ExecutionTimeout,
    InternalError,
    RunnerError,
    SecurityViolation,
    ValidationError,
)
from .execution.compiler import Compiler
from .execution.engine import ProgramRunner, SourceCompiler
from .execution.runner import Runner
from .execution.types import CompileFailure, TimedOut
from .normalizer import normalize
from .policy import RunnerPolicy
from .security import SecurityFilter

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CompileRequest:
    """One submission as received from a caller.

    ``source_text`` is typed loosely because it comes straight from a JSON
    body; validation rejects anything that is not a non-blank string.

    Example:
        ```python
        req = CompileRequest(source_text='System.out.println("hi");')
        ```
    """

    source_text: Any
    language: str | None = None
    version: str | None = None


@dataclass(slots=True)
class CompileResponse:
    """Normalized result of one pipeline run.

    Example:
        ```python
        resp = CompileResponse(success=True, output="hi\\n", execution_time_ms=812)
        ```
    """

    success: bool
    output: str
    execution_time_ms: int
    error: str | None = None
    status_code: int = 200

    def to_json(self) -> dict[str, Any]:
        """Render the wire shape returned by ``POST /compile``.

        Example:
            ```python
            body = resp.to_json()  # {"success": True, "output": "hi\\n", "executionTime": 812}
            ```
        """
        body: dict[str, Any] = {
            "success": self.success,
            "output": self.output,
            "executionTime": self.execution_time_ms,
        }
        if self.error is not None:
            body["error"] = self.error
        return body


def _elapsed_ms(started: float) -> int:
    """Milliseconds since ``started`` (a ``time.monotonic`` reading).

    Example:
        ```python
        _elapsed_ms(time.monotonic())  # 0
        ```
    """
    return int((time.monotonic() - started) * 1000)


class Pipeline:
    """Validate, filter, write, compile, run and clean up one submission.

    Example:
        ```python
        pipeline = Pipeline(RunnerPolicy())
        resp = pipeline.submit(CompileRequest(source_text='System.out.println("hi");'))
        ```
    """

    def __init__(
        self,
        policy: RunnerPolicy | None = None,
        *,
        store: ArtifactStore | None = None,
        security_filter: SecurityFilter | None = None,
        compiler: SourceCompiler | None = None,
        runner: ProgramRunner | None = None,
    ) -> None:
        """Wire components from ``policy``; any component may be injected.

        Example:
            ```python
            pipeline = Pipeline(policy, runner=Runner(policy.run_command))
            ```
        """
        self.policy = policy or RunnerPolicy()
        self.store = store or ArtifactStore(self.policy.scratch_dir, entry_class=self.policy.entry_class)
        self.security_filter = security_filter or SecurityFilter(self.policy.blocked_patterns)
        self.compiler = compiler or Compiler(
            self.policy.compile_command, max_output_chars=self.policy.max_output_chars
        )
        self.runner = runner or Runner(
            self.policy.run_command, max_output_chars=self.policy.max_output_chars
        )

    def submit(self, request: CompileRequest) -> CompileResponse:
        """Run one request to completion and return its response.

        Never raises: every outcome, including unexpected failures, becomes a
        ``CompileResponse`` with the matching ``status_code``.

        Example:
            ```python
            resp = pipeline.submit(CompileRequest(source_text="int x = ;"))
            resp.success  # False
            ```
        """
        started = time.monotonic()
        logger.info("Received compilation request (%s chars)", _length(request.source_text))

        try:
            source_text = self._validate(request)
            logger.debug("Request validated")
            self._filter(source_text)
            logger.debug("Request passed security filter")
        except (ValidationError, SecurityViolation) as exc:
            return self._error_response(exc, started)

        try:
            output = self._build_and_run(source_text)
        except (CompileError, ExecutionTimeout) as exc:
            return self._error_response(exc, started)
        except Exception:
            logger.exception("Unexpected failure while compiling or running submission")
            return self._error_response(
                InternalError("Internal server error", output=formatting.format_internal_error()),
                started,
            )

        elapsed = _elapsed_ms(started)
        logger.info("Request completed in %d ms", elapsed)
        return CompileResponse(success=True, output=output, execution_time_ms=elapsed)

    def _validate(self, request: CompileRequest) -> str:
        """Check type and size before any side effect.

        ``language`` and ``version`` are accepted but never change how the
        source runs; a language other than the configured one is only logged.

        Example:
            ```python
            source = pipeline._validate(CompileRequest(source_text="int x = 1;"))
            ```
        """
        source_text = request.source_text
        if not isinstance(source_text, str) or not source_text.strip():
            raise ValidationError("No code provided", output=formatting.format_missing_code())
        limit = self.policy.max_source_chars
        if len(source_text) > limit:
            raise ValidationError(
                f"Code too long (max {limit:,} characters)",
                output=formatting.format_oversized(limit),
            )
        language = request.language
        if language is not None and (
            not isinstance(language, str) or language.strip().lower() != self.policy.language.lower()
        ):
            logger.warning(
                "Ignoring requested language %r; submissions always run as %s", language, self.policy.language
            )
        if request.version:
            logger.debug("Ignoring requested version %r; toolchain decides the language level", request.version)
        return source_text

    def _filter(self, source_text: str) -> None:
        """Raise ``SecurityViolation`` when the denylist matches.

        Example:
            ```python
            pipeline._filter("new ProcessBuilder(cmd)")  # raises SecurityViolation
            ```
        """
        verdict = self.security_filter.scan(source_text)
        if verdict.blocked:
            logger.warning("Blocked submission: %s", verdict.reason)
            raise SecurityViolation(
                "Potentially malicious code detected",
                rule=verdict.rule,
                output=formatting.format_blocked(),
            )

    def _build_and_run(self, source_text: str) -> str:
        """Write, compile and run inside one artifact scope; return program output.

        Example:
            ```python
            output = pipeline._build_and_run('System.out.println("hi");')
            ```
        """
        with self.store.allocate() as handle:
            return self._compile_and_execute(handle, source_text)

    def _compile_and_execute(self, handle: ArtifactHandle, source_text: str) -> str:
        """Compile and run the handle's source, raising on routine failures.

        Example:
            ```python
            output = pipeline._compile_and_execute(handle, 'System.out.println("hi");')
            ```
        """
        handle.write_source(normalize(source_text, handle.entry_class))
        logger.debug("Wrote source for %s", handle.artifact_id)

        compiled = self.compiler.compile(
            handle.source_path, handle.work_dir, self.policy.compile_timeout_seconds
        )
        if isinstance(compiled, CompileFailure):
            logger.info("Compilation failed for %s", handle.artifact_id)
            raise CompileError(
                "Compilation failed",
                output=formatting.format_compile_error(
                    compiled.error_text,
                    work_dir=handle.work_dir,
                    entry_class=handle.entry_class,
                ),
            )
        logger.debug("Compiled %s: %s", handle.artifact_id, [p.name for p in handle.output_paths()])

        executed = self.runner.run(
            handle.entry_class, handle.work_dir, self.policy.execution_timeout_seconds
        )
        if isinstance(executed, TimedOut):
            raise ExecutionTimeout(
                f"Execution timed out after {executed.timeout_seconds}s",
                output=formatting.format_timeout(executed.timeout_seconds),
            )
        logger.debug("Executed %s (exit %s)", handle.artifact_id, executed.returncode)
        if executed.truncated:
            return executed.text + formatting.format_truncated(self.policy.max_output_chars)
        return executed.text

    def _error_response(self, exc: RunnerError, started: float) -> CompileResponse:
        """Map a pipeline exception onto the response shape.

        Example:
            ```python
            resp = pipeline._error_response(ValidationError("No code provided"), time.monotonic())
            ```
        """
        elapsed = _elapsed_ms(started)
        if exc.status_code >= 400:
            logger.info("Request rejected (%s) in %d ms: %s", exc.status_code, elapsed, exc.message)
            error: str | None = exc.message
        else:
            logger.info("Request finished without success in %d ms: %s", elapsed, exc.message)
            error = None
        return CompileResponse(
            success=False,
            output=exc.output,
            execution_time_ms=elapsed,
            error=error,
            status_code=exc.status_code,
        )


def _length(value: Any) -> str:
    """Describe the size of an untrusted body field for logging.

    Example:
        ```python
        _length("abc")  # "3"
        ```
    """
    return str(len(value)) if isinstance(value, str) else "n/a"
