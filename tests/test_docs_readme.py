from pathlib import Path


def _readme() -> str:
    root = Path(__file__).resolve().parents[1]
    return (root / "README.md").read_text(encoding="utf-8")


def test_readme_has_explicit_honest_scope_statement() -> None:
    readme = _readme()

    assert "Honest scope:" in readme
    assert "Good fit:" in readme
    assert "Not good alone:" in readme
    assert "The denylist is a pre-filter, not" in readme


def test_readme_common_gotchas_are_current() -> None:
    readme = _readme()

    assert "### Common Gotchas" in readme
    assert "`language` and `version` are accepted and ignored" in readme
    assert "Programs get an empty stdin" in readme


def test_readme_policy_keys_match_bundled_policy() -> None:
    root = Path(__file__).resolve().parents[1]
    bundled = (root / "src" / "safe_java_runner" / "default_policy.toml").read_text(encoding="utf-8")
    readme = _readme()

    for key in ("max_source_chars", "compile_timeout_seconds", "execution_timeout_seconds", "retention_seconds"):
        assert key in readme
        assert key in bundled
