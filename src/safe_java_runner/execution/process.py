from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
from pathlib import Path
from typing import BinaryIO, Callable

from .types import ProcessResult

logger = logging.getLogger(__name__)

_CHUNK_BYTES = 64 * 1024
_DRAIN_GRACE_SECONDS = 2.0


def render_command(template: list[str], **values: object) -> list[str]:
    """Fill ``{placeholder}`` fields of a command template.

    Example:
        ```python
        cmd = render_command(["javac", "-d", "{out_dir}", "{source_path}"], out_dir="/tmp/a", source_path="/tmp/a/Main.java")
        ```
    """
    try:
        return [part.format(**values) for part in template]
    except KeyError as exc:
        raise ValueError(f"Unknown placeholder {exc} in command template {template!r}") from exc


def _kill_process_group(proc: subprocess.Popen[bytes]) -> None:
    """Kill the process and everything it spawned in its session.

    Example:
        ```python
        _kill_process_group(proc)
        ```
    """
    if os.name == "posix":
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
    else:  # pragma: no cover - windows
        proc.kill()


class _CappedReader:
    """Drain one pipe on a background thread, keeping at most ``limit`` bytes.

    Once the cap is exceeded ``on_overflow`` fires (once) and the rest of the
    stream is read and discarded, so memory stays bounded whatever the child
    writes.

    Example:
        ```python
        reader = _CappedReader(proc.stdout, 1024, on_overflow=lambda: None)
        reader.start()
        ```
    """

    def __init__(self, stream: BinaryIO, limit: int | None, on_overflow: Callable[[], None]) -> None:
        """Bind the stream and cap; the thread starts on ``start()``.

        Example:
            ```python
            reader = _CappedReader(proc.stderr, None, on_overflow=lambda: None)
            ```
        """
        self._stream = stream
        self._limit = limit
        self._on_overflow = on_overflow
        self._chunks: list[bytes] = []
        self._size = 0
        self.overflowed = False
        self._thread = threading.Thread(target=self._pump, name="sjr-pipe-reader", daemon=True)

    def start(self) -> None:
        """Begin draining the stream.

        Example:
            ```python
            reader.start()
            ```
        """
        self._thread.start()

    def join(self, timeout: float | None = None) -> None:
        """Wait for the stream to reach EOF.

        Example:
            ```python
            reader.join(2.0)
            ```
        """
        self._thread.join(timeout)

    def text(self) -> str:
        """Decode what was kept.

        Example:
            ```python
            reader.text()  # "hi\\n"
            ```
        """
        return b"".join(self._chunks).decode("utf-8", errors="replace")

    def _pump(self) -> None:
        """Read chunks until EOF, keeping only what fits under the cap.

        Example:
            ```python
            reader._pump()
            ```
        """
        while True:
            chunk = self._stream.read1(_CHUNK_BYTES)
            if not chunk:
                return
            if self.overflowed:
                continue
            if self._limit is not None and self._size + len(chunk) > self._limit:
                keep = self._limit - self._size
                if keep > 0:
                    self._chunks.append(chunk[:keep])
                    self._size += keep
                self.overflowed = True
                self._on_overflow()
                continue
            self._chunks.append(chunk)
            self._size += len(chunk)


def run_bounded(
    cmd: list[str],
    *,
    cwd: Path,
    timeout_seconds: int,
    max_output_chars: int | None = None,
) -> ProcessResult:
    """Run a command with stdin closed, a hard wall-clock limit and capped output.

    The child gets its own session so a timeout kills the whole group. Each
    pipe keeps at most ``max_output_chars`` bytes; a child that writes more
    is killed the same way, and the result is marked ``overflowed``. The
    single ``wait`` either returns (exit or overflow kill) or raises
    ``TimeoutExpired`` (timeout kill), so exactly one result is produced.

    Example:
        ```python
        res = run_bounded(["java", "-cp", ".", "Main"], cwd=Path("/tmp/run_1"), timeout_seconds=5)
        ```
    """
    with subprocess.Popen(
        cmd,
        cwd=str(cwd),
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        start_new_session=True,
    ) as proc:
        overflow = threading.Event()

        def _on_overflow() -> None:
            """Kill the group the first time either pipe exceeds the cap.

            Example:
                ```python
                _on_overflow()
                ```
            """
            if not overflow.is_set():
                overflow.set()
                logger.debug("Killing pid %s after output exceeded %s bytes", proc.pid, max_output_chars)
                _kill_process_group(proc)

        readers = [
            _CappedReader(proc.stdout, max_output_chars, _on_overflow),
            _CappedReader(proc.stderr, max_output_chars, _on_overflow),
        ]
        for reader in readers:
            reader.start()

        timed_out = False
        try:
            proc.wait(timeout=timeout_seconds)
        except subprocess.TimeoutExpired:
            logger.debug("Killing pid %s after %ss", proc.pid, timeout_seconds)
            _kill_process_group(proc)
            proc.wait()
            timed_out = True

        for reader in readers:
            reader.join(_DRAIN_GRACE_SECONDS)
        stdout_reader, stderr_reader = readers
        return ProcessResult(
            stdout=stdout_reader.text(),
            stderr=stderr_reader.text(),
            returncode=proc.returncode,
            timed_out=timed_out,
            overflowed=overflow.is_set(),
        )
