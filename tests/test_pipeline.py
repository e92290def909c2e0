from __future__ import annotations

import sys
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from safe_java_runner import CompileRequest, Pipeline, RunnerPolicy
from safe_java_runner.execution import CompileSuccess, Completed, TimedOut

from conftest import FAIL_COMPILE, SPIN_FOREVER, make_policy


class _RecordingCompiler:
    def __init__(self) -> None:
        self.calls: list[Path] = []

    def compile(self, source_path: Path, out_dir: Path, timeout_seconds: int):
        self.calls.append(source_path)
        return CompileSuccess()


class _ExplodingCompiler:
    def compile(self, source_path: Path, out_dir: Path, timeout_seconds: int):
        raise RuntimeError(f"disk on fire at {out_dir}")


class _FixedRunner:
    def __init__(self, outcome) -> None:
        self.outcome = outcome
        self.calls = 0

    def run(self, artifact: str, work_dir: Path, timeout_seconds: int):
        self.calls += 1
        return self.outcome


def test_bare_statement_is_wrapped_compiled_and_run(py_policy: RunnerPolicy, scratch: Path) -> None:
    response = Pipeline(py_policy).submit(CompileRequest(source_text='System.out.println("hi");'))

    assert response.success is True
    assert response.status_code == 200
    assert response.error is None
    assert "public class Main {" in response.output
    assert 'System.out.println("hi");' in response.output
    assert response.execution_time_ms >= 0
    assert list(scratch.iterdir()) == []


def test_oversized_source_is_rejected_without_side_effects(scratch: Path) -> None:
    compiler = _RecordingCompiler()
    pipeline = Pipeline(make_policy(scratch, max_source_chars=50), compiler=compiler)

    response = pipeline.submit(CompileRequest(source_text="x" * 51))

    assert response.success is False
    assert response.status_code == 400
    assert response.error == "Code too long (max 50 characters)"
    assert "exceeds maximum length" in response.output
    assert compiler.calls == []
    assert list(scratch.iterdir()) == []


def test_source_at_the_size_bound_is_accepted(scratch: Path) -> None:
    pipeline = Pipeline(make_policy(scratch, max_source_chars=50))
    response = pipeline.submit(CompileRequest(source_text="int x = 1;".ljust(50)))
    assert response.success is True


@pytest.mark.parametrize("source", [None, "", "   \n", 42, ["System.out.println(1);"]])
def test_missing_or_non_text_source_is_rejected(py_policy: RunnerPolicy, scratch: Path, source: object) -> None:
    response = Pipeline(py_policy).submit(CompileRequest(source_text=source))
    assert response.status_code == 400
    assert response.error == "No code provided"
    assert list(scratch.iterdir()) == []


def test_blocked_source_creates_no_artifact(py_policy: RunnerPolicy, scratch: Path) -> None:
    compiler = _RecordingCompiler()
    pipeline = Pipeline(py_policy, compiler=compiler)

    response = pipeline.submit(
        CompileRequest(source_text='Runtime.getRuntime().exec("rm -rf /");')
    )

    assert response.success is False
    assert response.status_code == 400
    assert response.error == "Potentially malicious code detected"
    assert "restricted patterns" in response.output
    assert compiler.calls == []
    assert list(scratch.iterdir()) == []


def test_other_language_is_accepted_and_ignored(
    py_policy: RunnerPolicy, caplog: pytest.LogCaptureFixture
) -> None:
    response = Pipeline(py_policy).submit(
        CompileRequest(source_text='System.out.println("still java");', language="python")
    )
    assert response.success is True
    assert response.status_code == 200
    assert response.error is None
    assert "public class Main {" in response.output
    assert "Ignoring requested language 'python'" in caplog.text


def test_language_and_version_are_accepted(py_policy: RunnerPolicy) -> None:
    response = Pipeline(py_policy).submit(
        CompileRequest(source_text="int x = 1;", language="Java", version="21")
    )
    assert response.success is True


def test_compile_error_is_sanitized_and_cleaned_up(scratch: Path) -> None:
    policy = make_policy(scratch, compile_command=[sys.executable, "-c", FAIL_COMPILE, "{source_path}"])

    response = Pipeline(policy).submit(CompileRequest(source_text="int x = 1"))

    assert response.success is False
    assert response.status_code == 200
    assert response.error is None
    assert "Compilation Failed" in response.output
    assert "Line 3: ❌ Error: ; expected" in response.output
    assert str(scratch) not in response.output
    assert "/tmp/" not in response.output
    assert list(scratch.iterdir()) == []


def test_runaway_program_times_out(scratch: Path) -> None:
    policy = make_policy(
        scratch,
        execution_timeout_seconds=1,
        run_command=[sys.executable, "-c", SPIN_FOREVER],
    )
    started = time.monotonic()

    response = Pipeline(policy).submit(
        CompileRequest(source_text="public class Main { public static void main(String[] a) { while(true){} } }")
    )

    assert response.success is False
    assert response.status_code == 200
    assert "timed out (1 seconds)" in response.output
    assert time.monotonic() - started < 1 + 5
    assert list(scratch.iterdir()) == []


def test_timeout_outcome_from_runner_is_reported(py_policy: RunnerPolicy) -> None:
    runner = _FixedRunner(TimedOut(timeout_seconds=5))
    response = Pipeline(py_policy, compiler=_RecordingCompiler(), runner=runner).submit(
        CompileRequest(source_text="while (true) {}")
    )
    assert response.success is False
    assert "timed out (5 seconds)" in response.output
    assert runner.calls == 1


def test_runtime_exception_output_is_returned(py_policy: RunnerPolicy) -> None:
    runner = _FixedRunner(Completed(stdout="", stderr="Exception in thread \"main\"", returncode=1))
    response = Pipeline(py_policy, compiler=_RecordingCompiler(), runner=runner).submit(
        CompileRequest(source_text="int[] a = new int[1]; a[2] = 0;")
    )
    assert response.success is True
    assert response.output == 'Exception in thread "main"'


def test_internal_error_is_generic_and_cleaned_up(
    py_policy: RunnerPolicy, scratch: Path, caplog: pytest.LogCaptureFixture
) -> None:
    response = Pipeline(py_policy, compiler=_ExplodingCompiler()).submit(
        CompileRequest(source_text="int x = 1;")
    )

    assert response.success is False
    assert response.status_code == 500
    assert "disk on fire" not in response.output
    assert "disk on fire" not in (response.error or "")
    assert "Server Error" in response.output
    assert "disk on fire" in caplog.text
    assert list(scratch.iterdir()) == []


def test_missing_toolchain_is_an_internal_error(scratch: Path) -> None:
    policy = make_policy(scratch, compile_command=["definitely-not-a-real-javac", "{source_path}"])
    response = Pipeline(policy).submit(CompileRequest(source_text="int x = 1;"))
    assert response.status_code == 500
    assert list(scratch.iterdir()) == []


def test_concurrent_requests_do_not_mix_output(py_policy: RunnerPolicy, scratch: Path) -> None:
    pipeline = Pipeline(py_policy)
    markers = [f"<req-{index:02d}>" for index in range(12)]

    def submit(marker: str):
        return pipeline.submit(CompileRequest(source_text=f'System.out.println("{marker}");'))

    with ThreadPoolExecutor(max_workers=12) as pool:
        responses = list(pool.map(submit, markers))

    for marker, response in zip(markers, responses):
        assert response.success is True
        assert marker in response.output
        others = [other for other in markers if other != marker]
        assert not any(other in response.output for other in others)
    assert list(scratch.iterdir()) == []


def test_to_json_uses_wire_names(py_policy: RunnerPolicy) -> None:
    response = Pipeline(py_policy).submit(CompileRequest(source_text=""))
    body = response.to_json()
    assert set(body) == {"success", "output", "executionTime", "error"}
    assert body["success"] is False


def test_flooding_program_output_is_truncated_with_a_note(scratch: Path) -> None:
    policy = make_policy(
        scratch,
        max_output_kb=1,
        run_command=[sys.executable, "-c", "import sys\nwhile True: sys.stdout.write('z' * 4096)"],
    )

    response = Pipeline(policy).submit(CompileRequest(source_text='while (true) System.out.println("z");'))

    assert response.success is True
    assert response.output.startswith("z" * 1024)
    assert "Output truncated" in response.output
    assert "1,024 bytes" in response.output
    assert list(scratch.iterdir()) == []
