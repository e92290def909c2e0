from __future__ import annotations

import logging
import secrets
import shutil
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

ARTIFACT_PREFIX = "run_"


def new_artifact_id() -> str:
    """Return a collision-resistant id from the epoch milliseconds and a random suffix.

    Example:
        ```python
        artifact_id = new_artifact_id()  # "run_1760900000000_9f2c41d0a7be"
        ```
    """
    return f"{ARTIFACT_PREFIX}{int(time.time() * 1000)}_{secrets.token_hex(6)}"


def _remove_entry(path: Path) -> None:
    """Delete a file or directory tree; a missing entry is not an error.

    Example:
        ```python
        _remove_entry(Path("/tmp/safe-java-runner/run_1"))
        ```
    """
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except FileNotFoundError:
        pass


@dataclass(frozen=True, slots=True)
class ArtifactHandle:
    """Files owned by one request: a private directory, its source and build outputs.

    Example:
        ```python
        handle = ArtifactHandle("run_1_ab", Path("/tmp/sjr/run_1_ab"), Path("/tmp/sjr/run_1_ab/Main.java"), "Main")
        ```
    """

    artifact_id: str
    work_dir: Path
    source_path: Path
    entry_class: str

    def write_source(self, text: str) -> Path:
        """Persist the (normalized) source text.

        Example:
            ```python
            handle.write_source("public class Main { }")
            ```
        """
        self.source_path.write_text(text, encoding="utf-8")
        return self.source_path

    def output_paths(self) -> list[Path]:
        """Return the build outputs produced so far.

        Example:
            ```python
            classes = handle.output_paths()  # [Path(".../Main.class")]
            ```
        """
        if not self.work_dir.exists():
            return []
        return sorted(self.work_dir.glob("*.class"))


class ArtifactStore:
    """Scratch directory that hands out one private directory per request.

    Example:
        ```python
        store = ArtifactStore("/tmp/safe-java-runner")
        with store.allocate() as handle:
            handle.write_source(source)
        ```
    """

    def __init__(self, root: str | Path, *, entry_class: str = "Main") -> None:
        """Create the scratch directory if needed.

        Example:
            ```python
            store = ArtifactStore("/tmp/safe-java-runner", entry_class="Main")
            ```
        """
        self._root = Path(root).expanduser()
        self._entry_class = entry_class
        self.ensure()

    @property
    def root(self) -> Path:
        """Return the scratch directory path.

        Example:
            ```python
            store.root  # Path("/tmp/safe-java-runner")
            ```
        """
        return self._root

    def ensure(self) -> None:
        """Create the scratch directory (idempotent).

        Example:
            ```python
            store.ensure()
            ```
        """
        self._root.mkdir(parents=True, exist_ok=True)

    def entries(self) -> list[Path]:
        """List everything currently in the scratch directory.

        Example:
            ```python
            count = len(store.entries())
            ```
        """
        if not self._root.exists():
            return []
        return sorted(self._root.iterdir())

    def create(self) -> ArtifactHandle:
        """Allocate a fresh handle and its directory.

        The directory is created exclusively, so an id collision raises
        instead of two requests sharing files.

        Example:
            ```python
            handle = store.create()
            ```
        """
        self.ensure()
        artifact_id = new_artifact_id()
        work_dir = self._root / artifact_id
        work_dir.mkdir(mode=0o700)
        return ArtifactHandle(
            artifact_id=artifact_id,
            work_dir=work_dir,
            source_path=work_dir / f"{self._entry_class}.java",
            entry_class=self._entry_class,
        )

    def release(self, handle: ArtifactHandle) -> bool:
        """Delete every file of ``handle``; failures are logged, never raised.

        Example:
            ```python
            store.release(handle)
            ```
        """
        try:
            _remove_entry(handle.work_dir)
        except OSError as exc:
            logger.warning("Could not delete artifacts for %s: %s", handle.artifact_id, exc)
            return False
        return True

    @contextmanager
    def allocate(self) -> Iterator[ArtifactHandle]:
        """Yield a new handle and release it on every exit path.

        Example:
            ```python
            with store.allocate() as handle:
                compiler.compile(handle.source_path, handle.work_dir, 10)
            ```
        """
        handle = self.create()
        try:
            yield handle
        finally:
            self.release(handle)

    def destroy(self) -> None:
        """Remove the whole scratch directory (process shutdown).

        Example:
            ```python
            store.destroy()
            ```
        """
        try:
            shutil.rmtree(self._root)
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.warning("Could not clean up scratch directory %s: %s", self._root, exc)
            return
        logger.info("Cleaned up scratch directory %s", self._root)


@dataclass(frozen=True, slots=True)
class SweepSummary:
    """Counts from one sweep of the scratch directory.

    Example:
        ```python
        summary = SweepSummary(removed=2, retained=1, failed=0)
        ```
    """

    removed: int
    retained: int
    failed: int


def sweep(scratch_dir: str | Path, max_age_seconds: float, now: float | None = None) -> SweepSummary:
    """Delete scratch entries whose mtime is older than ``max_age_seconds``.

    Entries that disappear mid-sweep (a request cleaning up after itself)
    are skipped silently.

    Example:
        ```python
        summary = sweep("/tmp/safe-java-runner", max_age_seconds=300)
        ```
    """
    root = Path(scratch_dir)
    current = time.time() if now is None else now
    removed = retained = failed = 0
    try:
        children = list(root.iterdir())
    except FileNotFoundError:
        return SweepSummary(0, 0, 0)
    except OSError as exc:
        logger.warning("Could not list scratch directory %s: %s", root, exc)
        return SweepSummary(0, 0, 1)

    for child in children:
        try:
            age = current - child.lstat().st_mtime
            if age <= max_age_seconds:
                retained += 1
                continue
            _remove_entry(child)
        except FileNotFoundError:
            continue
        except OSError as exc:
            logger.warning("Could not remove stale artifact %s: %s", child, exc)
            failed += 1
            continue
        removed += 1

    if removed or failed:
        logger.info("Swept %s: removed=%d retained=%d failed=%d", root, removed, retained, failed)
    return SweepSummary(removed=removed, retained=retained, failed=failed)


class Reaper:
    """Background thread that sweeps the scratch directory on an interval.

    Runs one sweep immediately on ``start`` and then every
    ``interval_seconds`` until ``stop``.

    Example:
        ```python
        reaper = Reaper("/tmp/safe-java-runner", max_age_seconds=300, interval_seconds=600)
        reaper.start()
        ```
    """

    def __init__(self, scratch_dir: str | Path, *, max_age_seconds: float, interval_seconds: float) -> None:
        """Configure the sweep target and schedule.

        Example:
            ```python
            reaper = Reaper(policy.scratch_dir, max_age_seconds=300, interval_seconds=600)
            ```
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._scratch_dir = Path(scratch_dir)
        self._max_age_seconds = max_age_seconds
        self._interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.last_summary: SweepSummary | None = None

    @property
    def running(self) -> bool:
        """Return True while the sweep thread is alive.

        Example:
            ```python
            reaper.running
            ```
        """
        return self._thread is not None and self._thread.is_alive()

    def sweep_once(self) -> SweepSummary:
        """Run a single sweep now.

        Example:
            ```python
            summary = reaper.sweep_once()
            ```
        """
        self.last_summary = sweep(self._scratch_dir, self._max_age_seconds)
        return self.last_summary

    def start(self) -> None:
        """Sweep once, then keep sweeping on a daemon thread.

        Example:
            ```python
            reaper.start()
            ```
        """
        if self.running:
            return
        self._stop.clear()
        self.sweep_once()
        self._thread = threading.Thread(target=self._loop, name="sjr-reaper", daemon=True)
        self._thread.start()

    def stop(self, timeout_seconds: float = 5.0) -> None:
        """Signal the sweep thread to exit and wait for it.

        Example:
            ```python
            reaper.stop()
            ```
        """
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout_seconds)
            self._thread = None

    def _loop(self) -> None:
        """Sweep every interval until stopped.

        Example:
            ```python
            reaper._loop()  # runs on the reaper thread
            ```
        """
        while not self._stop.wait(self._interval_seconds):
            try:
                self.sweep_once()
            except Exception:
                logger.exception("Scratch sweep failed")
