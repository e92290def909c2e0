from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToolchainCapabilities:
    """Availability of the configured compiler and runtime executables.

    Example:
        ```python
        caps = ToolchainCapabilities(compiler="/usr/bin/javac", runtime="/usr/bin/java")
        ```
    """

    compiler: str | None
    runtime: str | None

    @property
    def ready(self) -> bool:
        """Return True when both executables resolve on PATH.

        Example:
            ```python
            ToolchainCapabilities(compiler=None, runtime="/usr/bin/java").ready  # False
            ```
        """
        return self.compiler is not None and self.runtime is not None


def capabilities_for_toolchain(compile_command: list[str], run_command: list[str]) -> ToolchainCapabilities:
    """Resolve the executables named by the compile and run command templates.

    Example:
        ```python
        caps = capabilities_for_toolchain(["javac", "{source_path}"], ["java", "{entry_class}"])
        ```
    """
    compiler = shutil.which(compile_command[0]) if compile_command else None
    runtime = shutil.which(run_command[0]) if run_command else None
    return ToolchainCapabilities(compiler=compiler, runtime=runtime)


def preflight_validate_toolchain(compile_command: list[str], run_command: list[str]) -> ToolchainCapabilities:
    """Probe the toolchain at startup and log what is missing.

    A missing executable is not fatal here; requests will fail with an
    internal error until the toolchain is installed.

    Example:
        ```python
        caps = preflight_validate_toolchain(policy.compile_command, policy.run_command)
        ```
    """
    caps = capabilities_for_toolchain(compile_command, run_command)
    if caps.compiler is None:
        logger.warning("Compiler executable %r not found on PATH", compile_command[:1])
    if caps.runtime is None:
        logger.warning("Runtime executable %r not found on PATH", run_command[:1])
    return caps
