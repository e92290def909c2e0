from __future__ import annotations

import sys
from pathlib import Path

import pytest

from safe_java_runner import RunnerPolicy

# Stand-in toolchain built on the test interpreter: "compiling" copies the
# source to Main.class, "running" prints that file back.
COPY_SOURCE = "import shutil, sys; shutil.copy(sys.argv[1], sys.argv[2] + '/' + sys.argv[3] + '.class')"
PRINT_ARTIFACT = "import sys; sys.stdout.write(open(sys.argv[1] + '.class').read())"
FAIL_COMPILE = (
    "import sys; sys.stderr.write(sys.argv[1] + ':3: error: ; expected' + chr(10)); sys.exit(1)"
)
SPIN_FOREVER = "while True: pass"

PY_COMPILE_COMMAND = [sys.executable, "-c", COPY_SOURCE, "{source_path}", "{out_dir}", "{entry_class}"]
PY_RUN_COMMAND = [sys.executable, "-c", PRINT_ARTIFACT, "{entry_class}"]


def make_policy(scratch: Path, **overrides: object) -> RunnerPolicy:
    options: dict[str, object] = {
        "scratch_dir": str(scratch),
        "compile_timeout_seconds": 10,
        "execution_timeout_seconds": 2,
        "compile_command": list(PY_COMPILE_COMMAND),
        "run_command": list(PY_RUN_COMMAND),
    }
    options.update(overrides)
    return RunnerPolicy(**options)  # type: ignore[arg-type]


@pytest.fixture
def scratch(tmp_path: Path) -> Path:
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def py_policy(scratch: Path) -> RunnerPolicy:
    return make_policy(scratch)
