from __future__ import annotations


class RunnerError(Exception):
    """Base class for pipeline outcomes that end a request early.

    ``status_code`` is the HTTP status the outcome maps to and ``output`` is
    the user-facing text; ``str(exc)`` is a short machine-oriented summary.

    Example:
        ```python
        raise RunnerError("boom", output="Something went wrong")
        ```
    """

    status_code = 500

    def __init__(self, message: str, *, output: str | None = None) -> None:
        """Store the short message and the user-facing output text.

        Example:
            ```python
            err = RunnerError("boom", output="Something went wrong")
            ```
        """
        super().__init__(message)
        self.message = message
        self.output = output if output is not None else message


class ValidationError(RunnerError):
    """Request body is missing, not text, oversized or names another language.

    Example:
        ```python
        raise ValidationError("No code provided")
        ```
    """

    status_code = 400


class SecurityViolation(RunnerError):
    """Source text matched a denylisted pattern.

    Example:
        ```python
        raise SecurityViolation("Potentially malicious code detected", rule="process_builder")
        ```
    """

    status_code = 400

    def __init__(self, message: str, *, rule: str | None = None, output: str | None = None) -> None:
        """Record the name of the rule that matched.

        Example:
            ```python
            err = SecurityViolation("Potentially malicious code detected", rule="socket")
            ```
        """
        super().__init__(message, output=output)
        self.rule = rule


class CompileError(RunnerError):
    """The toolchain rejected the source; a routine user-facing outcome.

    Example:
        ```python
        raise CompileError("Compilation failed", output=formatted_text)
        ```
    """

    status_code = 200


class ExecutionTimeout(RunnerError):
    """The compiled program exceeded its wall-clock budget.

    Example:
        ```python
        raise ExecutionTimeout("Execution timed out after 5s")
        ```
    """

    status_code = 200


class InternalError(RunnerError):
    """Unexpected failure in orchestration or I/O.

    Example:
        ```python
        raise InternalError("Internal server error")
        ```
    """

    status_code = 500
