from pathlib import Path

from safe_java_runner import formatting


def test_strip_paths_removes_work_dir() -> None:
    work_dir = Path("/tmp/safe-java-runner/run_1_ab")
    text = formatting.strip_paths(f"{work_dir}/Main.java:3: error: ';' expected", work_dir)
    assert text == "Main.java:3: error: ';' expected"


def test_strip_paths_removes_other_absolute_paths() -> None:
    text = formatting.strip_paths("error: cannot read /var/lib/build/other/Helper.java")
    assert "/var" not in text
    assert text.endswith("Helper.java")


def test_compile_error_is_readable_and_path_free() -> None:
    work_dir = Path("/tmp/safe-java-runner/run_1_ab")
    raw = (
        f"{work_dir}/Main.java:3: error: ';' expected\n"
        "        int x = 1\n"
        "                 ^\n"
        "1 error\n"
    )
    text = formatting.format_compile_error(raw, work_dir=work_dir)
    assert text.startswith("❌ Compilation Failed")
    assert "Line 3: ❌ Error: ';' expected" in text
    assert "/tmp" not in text
    assert "Tips:" in text


def test_warnings_are_highlighted() -> None:
    text = formatting.format_compile_error("Main.java:1: warning: [deprecation] x")
    assert "⚠️ Warning:" in text


def test_timeout_message_names_the_limit() -> None:
    text = formatting.format_timeout(5)
    assert "timed out (5 seconds)" in text
    assert "Infinite loop" in text


def test_oversized_message_formats_limit() -> None:
    assert "(10,000 characters)" in formatting.format_oversized(10000)


def test_truncated_note_names_the_cap() -> None:
    note = formatting.format_truncated(131072)
    assert note.startswith("\n\n")
    assert "Output truncated" in note
    assert "131,072 bytes" in note
