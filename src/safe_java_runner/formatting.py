from __future__ import annotations

import os
import re
from pathlib import Path

_RULE = "═" * 40

# Any absolute POSIX path with at least one directory component.
_ABSOLUTE_PATH = re.compile(r"(?<![\w.])(?:/[^\s/:]+)+/(?P<name>[^\s/:]+)")

_COMPILE_TIPS = (
    "💡 Tips:\n"
    "• Check for missing semicolons\n"
    "• Ensure braces are balanced\n"
    "• Verify variable declarations\n"
    "• Check method signatures"
)


def strip_paths(text: str, work_dir: Path | None = None) -> str:
    """Remove absolute filesystem paths, keeping only file names.

    Example:
        ```python
        strip_paths("/tmp/sjr/run_1/Main.java:3: error: x", Path("/tmp/sjr/run_1"))  # "Main.java:3: error: x"
        ```
    """
    if work_dir is not None:
        text = text.replace(str(work_dir) + os.sep, "")
        text = text.replace(str(work_dir), ".")
    return _ABSOLUTE_PATH.sub(lambda match: match.group("name"), text)


def format_compile_error(raw: str, *, work_dir: Path | None = None, entry_class: str = "Main") -> str:
    """Turn raw compiler diagnostics into the user-facing error report.

    Example:
        ```python
        text = format_compile_error("/tmp/sjr/run_1/Main.java:3: error: ';' expected", work_dir=Path("/tmp/sjr/run_1"))
        ```
    """
    text = strip_paths(str(raw), work_dir)
    text = re.sub(r"\berror:", "❌ Error:", text, flags=re.IGNORECASE)
    text = re.sub(r"\bwarning:", "⚠️ Warning:", text, flags=re.IGNORECASE)
    text = re.sub(rf"\b{re.escape(entry_class)}\.java:(\d+):", r"Line \1:", text)
    return f"❌ Compilation Failed\n{_RULE}\n\n{text.rstrip()}\n\n{_COMPILE_TIPS}"


def format_timeout(timeout_seconds: int) -> str:
    """Explain an execution timeout to the user.

    Example:
        ```python
        format_timeout(5)
        ```
    """
    return (
        f"⏰ Error: Program execution timed out ({timeout_seconds} seconds)\n\n"
        "Possible reasons:\n"
        "• Infinite loop\n"
        "• Waiting for input (Scanner not supported)\n"
        "• Too much computation\n\n"
        "Tip: Use simple loops and avoid infinite loops."
    )


def format_missing_code() -> str:
    """Message for an empty or non-text submission.

    Example:
        ```python
        format_missing_code()
        ```
    """
    return "❌ Error: No Java code to compile"


def format_oversized(max_chars: int) -> str:
    """Message for a submission over the size bound.

    Example:
        ```python
        format_oversized(10000)  # "... (10,000 characters)"
        ```
    """
    return f"❌ Error: Code exceeds maximum length ({max_chars:,} characters)"


def format_truncated(max_chars: int) -> str:
    """Note appended when a program was stopped for exceeding the output cap.

    Example:
        ```python
        format_truncated(131072)
        ```
    """
    return f"\n\n⚠️ Output truncated: program stopped after exceeding {max_chars:,} bytes of output"


def format_blocked() -> str:
    """Message for a submission rejected by the security filter.

    Example:
        ```python
        format_blocked()
        ```
    """
    return "❌ Security Error: Code contains restricted patterns"


def format_internal_error() -> str:
    """Generic message for unexpected failures; never includes exception text.

    Example:
        ```python
        format_internal_error()
        ```
    """
    return "❌ Server Error: An internal error occurred.\n\nPlease try again or contact support."
