from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(slots=True)
class ProcessResult:
    """Raw result of one bounded subprocess invocation.

    Example:
        ```python
        res = ProcessResult(stdout="hi\\n", stderr="", returncode=0, timed_out=False)
        ```
    """

    stdout: str
    stderr: str
    returncode: int
    timed_out: bool
    overflowed: bool = False


@dataclass(slots=True)
class CompileSuccess:
    """The toolchain accepted the source.

    Example:
        ```python
        outcome = CompileSuccess(output="")
        ```
    """

    output: str = ""


@dataclass(slots=True)
class CompileFailure:
    """The toolchain rejected the source or ran out of time.

    Example:
        ```python
        outcome = CompileFailure(error_text="Main.java:3: error: ';' expected")
        ```
    """

    error_text: str
    timed_out: bool = False


@dataclass(slots=True)
class Completed:
    """The program exited within the time limit, or was stopped for flooding output.

    ``truncated`` is set when the output cap was exceeded and the program was
    killed early.

    Example:
        ```python
        outcome = Completed(stdout="hi\\n", stderr="", returncode=0)
        ```
    """

    stdout: str
    stderr: str
    returncode: int
    truncated: bool = False

    @property
    def text(self) -> str:
        """Return stdout, falling back to stderr when stdout is empty.

        Example:
            ```python
            Completed(stdout="", stderr="Exception in thread", returncode=1).text
            ```
        """
        return self.stdout or self.stderr


@dataclass(slots=True)
class TimedOut:
    """The program was killed after exceeding its wall-clock limit.

    Example:
        ```python
        outcome = TimedOut(timeout_seconds=5)
        ```
    """

    timeout_seconds: int


CompileOutcome = Union[CompileSuccess, CompileFailure]
ExecutionOutcome = Union[Completed, TimedOut]
