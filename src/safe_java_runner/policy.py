from __future__ import annotations

import re
import tempfile
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

_FALLBACK_BLOCKED_PATTERNS = {
    "runtime_exec": r"Runtime\.getRuntime\(\)",
    "process_builder": r"ProcessBuilder",
    "exec_call": r"exec\(",
    "system_exit": r"System\.exit\(",
    "thread_sleep": r"Thread\.sleep\(",
    "thread_create": r"new\s+Thread\b",
    "file_writer": r"FileWriter",
    "file_output_stream": r"FileOutputStream",
    "random_access_file": r"RandomAccessFile",
    "socket": r"Socket\(",
    "server_socket": r"ServerSocket\(",
    "class_for_name": r"Class\.forName",
    "class_loader": r"ClassLoader",
    "script_engine": r"javax\.script",
    "native_method": r"native\s",
    "synchronized_block": r"synchronized\s*\(",
    "monitor_wait": r"\bwait\(",
    "monitor_notify": r"\bnotify\(",
}


def _default_policy_path() -> Path:
    """Return bundled default policy TOML path.

    Example:
        ```python
        path = _default_policy_path()
        ```
    """
    return Path(__file__).with_name("default_policy.toml")


def _default_scratch_dir() -> str:
    """Return the process-wide scratch directory used when none is configured.

    Example:
        ```python
        scratch = _default_scratch_dir()  # e.g. /tmp/safe-java-runner
        ```
    """
    return str(Path(tempfile.gettempdir()) / "safe-java-runner")


def _read_policy_toml(path: Path) -> dict[str, Any]:
    """Read policy TOML and return normalized policy dictionary.

    Example:
        ```python
        raw = _read_policy_toml(Path("/tmp/policy.toml"))
        ```
    """
    if not path.exists():
        return {
            "language": "java",
            "entry_class": "Main",
            "max_source_chars": 10000,
            "compile_timeout_seconds": 10,
            "execution_timeout_seconds": 5,
            "max_output_kb": 128,
            "retention_seconds": 300,
            "sweep_interval_seconds": 600,
            "compile_command": ["javac", "-d", "{out_dir}", "{source_path}"],
            "run_command": ["java", "-cp", "{work_dir}", "{entry_class}"],
            "cors_allowed_origins": ["*"],
            "blocked_patterns": dict(_FALLBACK_BLOCKED_PATTERNS),
        }
    raw = tomllib.loads(path.read_text(encoding="utf-8"))
    policy_obj = raw.get("policy", raw)
    if not isinstance(policy_obj, dict):
        raise ValueError("Policy config must be a TOML table")
    return policy_obj


def _list_of_str(value: Any, field_name: str) -> list[str]:
    """Validate and normalize a list-of-strings policy field.

    Example:
        ```python
        command = _list_of_str(["javac", "{source_path}"], "compile_command")
        ```
    """
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"'{field_name}' must be a list of strings")
    out: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"'{field_name}' must contain only strings")
        out.append(item)
    return out


def _dict_of_str(value: Any, field_name: str) -> dict[str, str]:
    """Validate and normalize a name-to-string policy table.

    Example:
        ```python
        rules = _dict_of_str({"process_builder": "ProcessBuilder"}, "blocked_patterns")
        ```
    """
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"'{field_name}' must be a TOML table of strings")
    out: dict[str, str] = {}
    for key, item in value.items():
        if not isinstance(item, str):
            raise ValueError(f"'{field_name}.{key}' must be a string")
        out[str(key)] = item
    return out


_DEFAULT_POLICY_RAW = _read_policy_toml(_default_policy_path())
DEFAULT_LANGUAGE = str(_DEFAULT_POLICY_RAW.get("language", "java"))
DEFAULT_ENTRY_CLASS = str(_DEFAULT_POLICY_RAW.get("entry_class", "Main"))
DEFAULT_MAX_SOURCE_CHARS = int(_DEFAULT_POLICY_RAW.get("max_source_chars", 10000))
DEFAULT_COMPILE_TIMEOUT_SECONDS = int(_DEFAULT_POLICY_RAW.get("compile_timeout_seconds", 10))
DEFAULT_EXECUTION_TIMEOUT_SECONDS = int(_DEFAULT_POLICY_RAW.get("execution_timeout_seconds", 5))
DEFAULT_MAX_OUTPUT_KB = int(_DEFAULT_POLICY_RAW.get("max_output_kb", 128))
DEFAULT_RETENTION_SECONDS = int(_DEFAULT_POLICY_RAW.get("retention_seconds", 300))
DEFAULT_SWEEP_INTERVAL_SECONDS = int(_DEFAULT_POLICY_RAW.get("sweep_interval_seconds", 600))
DEFAULT_COMPILE_COMMAND = _list_of_str(
    _DEFAULT_POLICY_RAW.get("compile_command", []), "compile_command"
)
DEFAULT_RUN_COMMAND = _list_of_str(_DEFAULT_POLICY_RAW.get("run_command", []), "run_command")
DEFAULT_CORS_ALLOWED_ORIGINS = _list_of_str(
    _DEFAULT_POLICY_RAW.get("cors_allowed_origins", []), "cors_allowed_origins"
)
DEFAULT_BLOCKED_PATTERNS = _dict_of_str(
    _DEFAULT_POLICY_RAW.get("blocked_patterns", {}), "blocked_patterns"
)


@dataclass(slots=True)
class RunnerPolicy:
    """Limits, toolchain commands and denylist for untrusted Java source.

    Example:
        ```python
        policy = RunnerPolicy(execution_timeout_seconds=3, scratch_dir="/tmp/sjr")
        ```
    """

    language: str = DEFAULT_LANGUAGE
    entry_class: str = DEFAULT_ENTRY_CLASS
    max_source_chars: int = DEFAULT_MAX_SOURCE_CHARS
    compile_timeout_seconds: int = DEFAULT_COMPILE_TIMEOUT_SECONDS
    execution_timeout_seconds: int = DEFAULT_EXECUTION_TIMEOUT_SECONDS
    max_output_kb: int = DEFAULT_MAX_OUTPUT_KB
    scratch_dir: str = field(default_factory=_default_scratch_dir)
    retention_seconds: int = DEFAULT_RETENTION_SECONDS
    sweep_interval_seconds: int = DEFAULT_SWEEP_INTERVAL_SECONDS
    compile_command: list[str] = field(default_factory=lambda: DEFAULT_COMPILE_COMMAND.copy())
    run_command: list[str] = field(default_factory=lambda: DEFAULT_RUN_COMMAND.copy())
    blocked_patterns: dict[str, str] = field(
        default_factory=lambda: DEFAULT_BLOCKED_PATTERNS.copy()
    )
    cors_allowed_origins: list[str] = field(
        default_factory=lambda: DEFAULT_CORS_ALLOWED_ORIGINS.copy()
    )
    config_path: str | None = None

    def __post_init__(self) -> None:
        """Validate bounds, commands and patterns after dataclass initialization.

        Example:
            ```python
            RunnerPolicy(compile_timeout_seconds=10, execution_timeout_seconds=5)
            ```
        """
        for name in (
            "max_source_chars",
            "compile_timeout_seconds",
            "execution_timeout_seconds",
            "max_output_kb",
            "sweep_interval_seconds",
        ):
            if int(getattr(self, name)) <= 0:
                raise ValueError(f"'{name}' must be a positive integer")
        if self.retention_seconds < self.min_retention_seconds:
            raise ValueError(
                "retention_seconds must be at least twice "
                "compile_timeout_seconds + execution_timeout_seconds "
                f"({self.min_retention_seconds}s), got {self.retention_seconds}s"
            )
        if not self.entry_class.isidentifier():
            raise ValueError("entry_class must be a valid Java identifier")
        if not self.compile_command:
            raise ValueError("'compile_command' must not be empty")
        if not self.run_command:
            raise ValueError("'run_command' must not be empty")
        if not self.scratch_dir.strip():
            raise ValueError("'scratch_dir' must not be empty")
        for name, pattern in self.blocked_patterns.items():
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(f"Invalid blocked pattern '{name}': {exc}") from exc

    @property
    def min_retention_seconds(self) -> int:
        """Smallest safe sweep age: twice the longest a request can stay in flight.

        Example:
            ```python
            RunnerPolicy().min_retention_seconds  # 30
            ```
        """
        return 2 * (self.compile_timeout_seconds + self.execution_timeout_seconds)

    @property
    def max_output_chars(self) -> int:
        """Return the captured-output cap in characters.

        Example:
            ```python
            RunnerPolicy(max_output_kb=1).max_output_chars  # 1024
            ```
        """
        return self.max_output_kb * 1024

    @classmethod
    def from_file(cls, config_path: str) -> "RunnerPolicy":
        """Create a policy instance from a TOML file.

        Keys missing from the file keep their bundled defaults.

        Example:
            ```python
            policy = RunnerPolicy.from_file("/etc/safe-java-runner/policy.toml")
            ```
        """
        path = Path(config_path)
        if not path.exists():
            raise ValueError(f"Policy file not found: {config_path}")
        raw = _read_policy_toml(path)
        return cls(
            language=str(raw.get("language", DEFAULT_LANGUAGE)),
            entry_class=str(raw.get("entry_class", DEFAULT_ENTRY_CLASS)),
            max_source_chars=int(raw.get("max_source_chars", DEFAULT_MAX_SOURCE_CHARS)),
            compile_timeout_seconds=int(
                raw.get("compile_timeout_seconds", DEFAULT_COMPILE_TIMEOUT_SECONDS)
            ),
            execution_timeout_seconds=int(
                raw.get("execution_timeout_seconds", DEFAULT_EXECUTION_TIMEOUT_SECONDS)
            ),
            max_output_kb=int(raw.get("max_output_kb", DEFAULT_MAX_OUTPUT_KB)),
            scratch_dir=str(raw.get("scratch_dir") or _default_scratch_dir()),
            retention_seconds=int(raw.get("retention_seconds", DEFAULT_RETENTION_SECONDS)),
            sweep_interval_seconds=int(
                raw.get("sweep_interval_seconds", DEFAULT_SWEEP_INTERVAL_SECONDS)
            ),
            compile_command=_list_of_str(
                raw.get("compile_command", DEFAULT_COMPILE_COMMAND), "compile_command"
            ),
            run_command=_list_of_str(raw.get("run_command", DEFAULT_RUN_COMMAND), "run_command"),
            blocked_patterns=_dict_of_str(
                raw.get("blocked_patterns", DEFAULT_BLOCKED_PATTERNS), "blocked_patterns"
            ),
            cors_allowed_origins=_list_of_str(
                raw.get("cors_allowed_origins", DEFAULT_CORS_ALLOWED_ORIGINS),
                "cors_allowed_origins",
            ),
            config_path=config_path,
        )
